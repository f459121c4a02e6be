"""imagepromoter data models — all Pydantic v2, all frozen (immutable)."""

from imagepromoter.models.edges import EdgeSet, ImageTag, PromotionEdge, sorted_edges
from imagepromoter.models.manifest import Image, Manifest, ManifestError, ManifestSnapshot
from imagepromoter.models.registry import RegistryContext, RegistryInventory
from imagepromoter.models.reports import ImageSizeReport, RemovalReport, SizeViolation
from imagepromoter.models.transactions import (
    Action,
    EventState,
    MalformedEventError,
    RegistryEvent,
    Verdict,
    VerificationTransaction,
)

__all__ = [
    # registry
    "RegistryContext",
    "RegistryInventory",
    # edges
    "EdgeSet",
    "ImageTag",
    "PromotionEdge",
    "sorted_edges",
    # manifest
    "Image",
    "Manifest",
    "ManifestError",
    "ManifestSnapshot",
    # reports
    "ImageSizeReport",
    "RemovalReport",
    "SizeViolation",
    # transactions
    "Action",
    "EventState",
    "MalformedEventError",
    "RegistryEvent",
    "Verdict",
    "VerificationTransaction",
]
