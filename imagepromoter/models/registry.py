"""Registry models — declared registries and the live inventory snapshot."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RegistryContext(BaseModel):
    """A registry declared in a promoter manifest.

    ``name`` is the registry base path (e.g. ``gcr.io/foo-staging``).
    Exactly one registry per manifest is the promotion source.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    src: bool = False
    service_account: str = Field(default="", alias="service-account")

    def path_of(self, image_name: str) -> str:
        """Return the full path of *image_name* inside this registry."""
        return f"{self.name}/{image_name}"


class RegistryInventory(BaseModel):
    """Read-only snapshot of live registry state.

    Supplied by the inventory-fetch collaborator.  ``sizes`` maps a digest
    to its reported byte size; ``children`` maps a manifest-list (fat
    manifest) digest to the digests it references.
    """

    model_config = ConfigDict(frozen=True)

    sizes: dict[str, int] = {}
    children: dict[str, list[str]] = {}

    def size_of(self, digest: str) -> int:
        """Return the recorded size of *digest*, 0 when absent."""
        return self.sizes.get(digest, 0)

    def children_of(self, digest: str) -> list[str]:
        """Return the child digests of a fat manifest (empty if not one)."""
        return list(self.children.get(digest, []))
