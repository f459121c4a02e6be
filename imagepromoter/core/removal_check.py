"""Image Removal Check — no promoted image may silently disappear.

The check compares the edge set of the trusted (baseline) revision of the
manifest repository against the candidate edge set.  Only the
``(dst_image_tag, digest)`` projection of each edge is compared.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from imagepromoter.config import RevisionPair
from imagepromoter.core.edge_builder import to_promotion_edges
from imagepromoter.core.revisions import GitRevisionReader, RevisionReader
from imagepromoter.models.edges import EdgeSet
from imagepromoter.models.registry import RegistryInventory
from imagepromoter.models.reports import RemovalReport

logger = logging.getLogger(__name__)


class ImageRemovalCheck:
    """Fails when the candidate revision drops an image the baseline promotes.

    Parameters
    ----------
    revisions:
        Validated baseline / candidate revision identifiers.
    candidate_edges:
        Edge set already computed from the candidate revision.
    reader:
        Working-tree access used to materialize the baseline.
    inventory:
        Optional inventory for fat-manifest expansion of the baseline.
    """

    name = "ImageRemovalCheck"

    def __init__(
        self,
        revisions: RevisionPair,
        candidate_edges: EdgeSet,
        reader: RevisionReader,
        inventory: RegistryInventory | None = None,
    ) -> None:
        self.revisions = revisions
        self.candidate_edges = candidate_edges
        self._reader = reader
        self._inventory = inventory

    @classmethod
    def from_env(
        cls,
        repo_path: Path,
        candidate_edges: EdgeSet,
        reader: RevisionReader | None = None,
        environ: Mapping[str, str] | None = None,
        *,
        inventory: RegistryInventory | None = None,
        manifest_subdir: Path = Path("."),
    ) -> ImageRemovalCheck:
        """Build the check from the CI job's ``PULL_*_SHA`` variables.

        Validation happens before any checkout is attempted.  Pass the same
        *inventory* used for *candidate_edges* so that both sides are
        expanded with their fat-manifest children.
        """
        revisions = RevisionPair.from_env(environ)
        if reader is None:
            from imagepromoter.manifests.loader import load_manifests_from_dir

            reader = GitRevisionReader(
                repo_path, load_manifests_from_dir, manifest_subdir=manifest_subdir
            )
        return cls(revisions, candidate_edges, reader, inventory)

    def run(self) -> RemovalReport:
        """Materialize the baseline, restore the candidate, then compare.

        The working tree is always restored to the candidate revision, even
        when materializing or parsing the baseline fails.
        """
        with self._reader.exclusive():
            try:
                snapshot = self._reader.materialize(self.revisions.baseline)
                baseline_edges = to_promotion_edges(snapshot, self._inventory)
            finally:
                self._reader.restore(self.revisions.candidate)
        return self.compare(baseline_edges, self.candidate_edges)

    def compare(self, baseline: EdgeSet, candidate: EdgeSet) -> RemovalReport:
        """Report every baseline image whose projection is absent from *candidate*."""
        present = {edge.projection() for edge in candidate}
        removed = sorted(
            {edge.image_name for edge in baseline if edge.projection() not in present}
        )
        if removed:
            logger.warning("%d images removed: %s", len(removed), ", ".join(removed))
        else:
            logger.info(
                "No images removed (%d baseline edges, %d candidate edges)",
                len(baseline),
                len(candidate),
            )
        return RemovalReport(removed_images=removed)
