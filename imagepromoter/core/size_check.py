"""Image Size Check — every promoted image must have a sane, bounded size."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from imagepromoter.core.units import mb_to_bytes
from imagepromoter.models.edges import EdgeSet, PromotionEdge, sorted_edges
from imagepromoter.models.reports import ImageSizeReport, SizeViolation

logger = logging.getLogger(__name__)


class ImageSizeCheck:
    """Checks candidate edges against a MiB ceiling.

    An edge is oversized when its size is strictly above the ceiling and
    invalid when its size is 0 or negative (a broken inventory entry).
    Both conditions are evaluated independently for every edge.
    """

    name = "ImageSizeCheck"

    def __init__(
        self,
        max_image_size_mib: int,
        candidate_edges: EdgeSet,
        digest_image_size: Mapping[str, int],
    ) -> None:
        if max_image_size_mib < 0:
            raise ValueError(
                f"max image size must be non-negative, got {max_image_size_mib}"
            )
        self.max_image_size_mib = max_image_size_mib
        self.candidate_edges = candidate_edges
        self._sizes = digest_image_size

    def run(self) -> ImageSizeReport:
        ceiling = mb_to_bytes(self.max_image_size_mib)
        oversized: dict[PromotionEdge, int] = {}
        invalid: dict[PromotionEdge, int] = {}
        for edge in self.candidate_edges:
            size = self._sizes.get(edge.digest, 0)
            if size > ceiling:
                oversized[edge] = size
            if size <= 0:
                invalid[edge] = size

        report = ImageSizeReport(
            max_image_size_mib=self.max_image_size_mib,
            oversized=_violations(oversized),
            invalid=_violations(invalid),
        )
        if not report.passed:
            logger.warning(
                "Size check failed: %d oversized, %d invalid",
                len(report.oversized),
                len(report.invalid),
            )
        return report


def _violations(found: dict[PromotionEdge, int]) -> list[SizeViolation]:
    # Several edges (one per tag or destination) can share an image name and
    # digest; they describe the same image, so report it once.
    unique = {
        (edge.image_name, edge.digest): found[edge] for edge in sorted_edges(found)
    }
    return [
        SizeViolation(image_name=name, digest=digest, size_bytes=size)
        for (name, digest), size in sorted(unique.items())
    ]
