"""Promoter manifest models (parsed declarative intent).

A manifest names one source registry, any number of destination
registries, the images to promote (each with a ``dmap`` of
digest -> tags) and optional renames.  A ``ManifestSnapshot`` is every
manifest found in the manifest repository at one revision.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from imagepromoter.models.edges import validate_digest, validate_tag
from imagepromoter.models.registry import RegistryContext


class ManifestError(ValueError):
    """Raised when a manifest is structurally invalid or cannot be parsed."""


class Image(BaseModel):
    """One promotable image and its digest -> tags mapping."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    dmap: dict[str, list[str]] = {}

    @field_validator("dmap")
    @classmethod
    def _check_dmap(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        for digest, tags in value.items():
            validate_digest(digest)
            for tag in tags:
                validate_tag(tag)
        return value


class Manifest(BaseModel):
    """A single promoter manifest."""

    model_config = ConfigDict(frozen=True)

    registries: list[RegistryContext]
    images: list[Image] = []
    renames: list[list[str]] = []
    filepath: Path | None = None

    @model_validator(mode="after")
    def _check_structure(self) -> Manifest:
        sources = [r for r in self.registries if r.src]
        if len(sources) != 1:
            raise ValueError(
                f"manifest must declare exactly one source registry, found {len(sources)}"
            )
        names = [r.name for r in self.registries]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate registry names in {names}")
        # Parse renames eagerly so a bad rename fails at load time.
        self.rename_map()
        return self

    @property
    def src_registry(self) -> RegistryContext:
        return next(r for r in self.registries if r.src)

    @property
    def dst_registries(self) -> list[RegistryContext]:
        return [r for r in self.registries if not r.src]

    def _split_path(self, path: str) -> tuple[RegistryContext, str]:
        """Split ``<registry>/<image>`` using the longest matching registry."""
        best: RegistryContext | None = None
        for registry in self.registries:
            if path.startswith(registry.name + "/"):
                if best is None or len(registry.name) > len(best.name):
                    best = registry
        if best is None:
            raise ValueError(f"rename path {path!r} does not match any registry")
        return best, path[len(best.name) + 1:]

    def rename_map(self) -> dict[tuple[str, str], str]:
        """Return ``{(src_image_name, dst_registry_name): dst_image_name}``.

        Each rename list must name the source registry exactly once and
        every other registry at most once.
        """
        result: dict[tuple[str, str], str] = {}
        for aliases in self.renames:
            if len(aliases) < 2:
                raise ValueError(f"rename {aliases} needs at least two paths")
            parts = [self._split_path(path) for path in aliases]
            registries = [registry.name for registry, _ in parts]
            if len(set(registries)) != len(registries):
                raise ValueError(f"rename {aliases} names a registry more than once")
            src_names = [name for registry, name in parts if registry.src]
            if len(src_names) != 1:
                raise ValueError(
                    f"rename {aliases} must reference the source registry exactly once"
                )
            for registry, name in parts:
                if not registry.src:
                    result[(src_names[0], registry.name)] = name
        return result


class ManifestSnapshot(BaseModel):
    """Every manifest in the repository at one revision."""

    model_config = ConfigDict(frozen=True)

    manifests: tuple[Manifest, ...] = ()
    revision: str = ""
