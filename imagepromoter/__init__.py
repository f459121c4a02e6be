"""imagepromoter: declarative container image promotion, gated and audited.

Core pieces:
  - Promotion Edge Builder: manifests (+ inventory) -> set of promotion edges
  - Image Removal Check: no promoted image may disappear from the manifests
  - Image Size Check: no promoted image may exceed the size ceiling
  - Audit Verifier: classifies live registry mutations against the edges
"""

__version__ = "0.1.0"

from imagepromoter.audit.verifier import AuditVerifier
from imagepromoter.core.edge_builder import to_promotion_edges
from imagepromoter.core.removal_check import ImageRemovalCheck
from imagepromoter.core.size_check import ImageSizeCheck

__all__ = [
    "AuditVerifier",
    "ImageRemovalCheck",
    "ImageSizeCheck",
    "to_promotion_edges",
    "__version__",
]
