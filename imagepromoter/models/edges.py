"""Promotion edge models — the shared vocabulary of every check.

A promotion edge says: "this digest, taken from the source registry, must
exist at this destination (image name + optional tag)".  Edges are frozen
pydantic models, so equality and hashing are structural and an edge set is
simply a ``frozenset`` of edges.
"""

from __future__ import annotations

import re
from typing import Iterable

from pydantic import BaseModel, ConfigDict, field_validator

from imagepromoter.models.registry import RegistryContext

DIGEST_PATTERN = re.compile(r"^sha256:[0-9a-f]{64}$")
TAG_PATTERN = re.compile(r"^[\w][\w.-]{0,127}$", re.ASCII)


def validate_digest(value: str) -> str:
    """Raise ``ValueError`` unless *value* is ``sha256:<64 hex>``."""
    if not DIGEST_PATTERN.match(value):
        raise ValueError(f"invalid digest {value!r}")
    return value


def validate_tag(value: str) -> str:
    """Raise ``ValueError`` unless *value* is a valid docker tag."""
    if not TAG_PATTERN.match(value):
        raise ValueError(f"invalid tag {value!r}")
    return value


class ImageTag(BaseModel):
    """An image name paired with a tag.  The tag may be empty."""

    model_config = ConfigDict(frozen=True)

    image_name: str
    tag: str = ""

    @field_validator("tag")
    @classmethod
    def _check_tag(cls, value: str) -> str:
        return validate_tag(value) if value else value


class PromotionEdge(BaseModel):
    """The atomic unit of promotion intent.

    ``parent_digest`` is set only for children of a fat manifest; such
    edges always carry an empty tag.
    """

    model_config = ConfigDict(frozen=True)

    src_registry: RegistryContext
    src_image_tag: ImageTag
    digest: str
    dst_registry: RegistryContext
    dst_image_tag: ImageTag
    parent_digest: str = ""

    @field_validator("digest")
    @classmethod
    def _check_digest(cls, value: str) -> str:
        return validate_digest(value)

    @field_validator("parent_digest")
    @classmethod
    def _check_parent_digest(cls, value: str) -> str:
        return validate_digest(value) if value else value

    @property
    def dst_path(self) -> str:
        """Full destination path, e.g. ``us.gcr.io/prod/foo``."""
        return self.dst_registry.path_of(self.dst_image_tag.image_name)

    @property
    def image_name(self) -> str:
        return self.dst_image_tag.image_name

    def projection(self) -> tuple[ImageTag, str]:
        """The ``(dst_image_tag, digest)`` pair compared by the removal check."""
        return (self.dst_image_tag, self.digest)

    def sort_key(self) -> tuple[str, str, str, str, str]:
        return (
            self.dst_registry.name,
            self.dst_image_tag.image_name,
            self.dst_image_tag.tag,
            self.digest,
            self.parent_digest,
        )


EdgeSet = frozenset[PromotionEdge]


def sorted_edges(edges: Iterable[PromotionEdge]) -> list[PromotionEdge]:
    """Return *edges* in a stable destination/tag/digest order."""
    return sorted(edges, key=PromotionEdge.sort_key)
