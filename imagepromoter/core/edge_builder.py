"""Promotion Edge Builder — manifests (+ inventory) to a canonical edge set.

Every declared ``(image, digest, tag)`` yields one edge per destination
registry.  Renames are resolved before edge construction, and when a
source inventory is supplied every child of a fat manifest gets its own
untagged edge carrying the parent digest.

The result is a pure function of its inputs: manifests, images and tags
are walked in sorted order and collected into a ``frozenset``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from imagepromoter.models.edges import EdgeSet, ImageTag, PromotionEdge
from imagepromoter.models.manifest import Manifest, ManifestSnapshot
from imagepromoter.models.registry import RegistryInventory

logger = logging.getLogger(__name__)


class EdgeConflictError(ValueError):
    """Raised when one destination tag is bound to more than one digest."""


def _manifest_edges(manifest: Manifest) -> list[PromotionEdge]:
    renames = manifest.rename_map()
    src = manifest.src_registry
    edges: list[PromotionEdge] = []
    for image in sorted(manifest.images, key=lambda i: i.name):
        for digest in sorted(image.dmap):
            tags = sorted(image.dmap[digest]) or [""]
            for tag in tags:
                for dst in sorted(manifest.dst_registries, key=lambda r: r.name):
                    dst_name = renames.get((image.name, dst.name), image.name)
                    edges.append(
                        PromotionEdge(
                            src_registry=src,
                            src_image_tag=ImageTag(image_name=image.name, tag=tag),
                            digest=digest,
                            dst_registry=dst,
                            dst_image_tag=ImageTag(image_name=dst_name, tag=tag),
                        )
                    )
    return edges


def _child_edges(edge: PromotionEdge, inventory: RegistryInventory) -> list[PromotionEdge]:
    return [
        PromotionEdge(
            src_registry=edge.src_registry,
            src_image_tag=ImageTag(image_name=edge.src_image_tag.image_name),
            digest=child,
            dst_registry=edge.dst_registry,
            dst_image_tag=ImageTag(image_name=edge.dst_image_tag.image_name),
            parent_digest=edge.digest,
        )
        for child in sorted(inventory.children_of(edge.digest))
    ]


def to_promotion_edges(
    snapshot: ManifestSnapshot,
    inventory: RegistryInventory | None = None,
) -> EdgeSet:
    """Reduce a manifest snapshot to its set of promotion edges.

    Parameters
    ----------
    snapshot:
        Every parsed manifest at one revision.
    inventory:
        Source-registry inventory used to resolve fat-manifest children.
        When ``None`` no expansion takes place.
    """
    edges: set[PromotionEdge] = set()
    for manifest in snapshot.manifests:
        declared = _manifest_edges(manifest)
        edges.update(declared)
        if inventory is not None:
            for edge in declared:
                edges.update(_child_edges(edge, inventory))

    result = frozenset(edges)
    check_overlapping_edges(result)
    logger.debug(
        "Built %d promotion edges from %d manifests (revision=%s)",
        len(result),
        len(snapshot.manifests),
        snapshot.revision or "working-tree",
    )
    return result


def check_overlapping_edges(edges: Iterable[PromotionEdge]) -> None:
    """Fail if a tagged destination is pointed at by more than one digest."""
    digests_by_dst: dict[tuple[str, str, str], set[str]] = defaultdict(set)
    for edge in edges:
        if not edge.dst_image_tag.tag:
            continue
        key = (edge.dst_registry.name, edge.dst_image_tag.image_name, edge.dst_image_tag.tag)
        digests_by_dst[key].add(edge.digest)

    conflicts = [
        f"{registry}/{image}:{tag} -> {', '.join(sorted(digests))}"
        for (registry, image, tag), digests in sorted(digests_by_dst.items())
        if len(digests) > 1
    ]
    if conflicts:
        raise EdgeConflictError(
            "The following tags are pointed to by more than one digest:\n"
            + "\n".join(conflicts)
        )
