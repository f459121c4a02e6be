"""Shared test fixtures for imagepromoter."""

from __future__ import annotations

import contextlib
from collections.abc import Callable
from pathlib import Path
from typing import Any, Iterator

import pytest

from imagepromoter.audit.transaction_log import TransactionLog
from imagepromoter.models.edges import ImageTag, PromotionEdge
from imagepromoter.models.manifest import Image, Manifest, ManifestSnapshot
from imagepromoter.models.registry import RegistryContext

BASE_SHA = "a" * 40
PULL_SHA = "b" * 40


def digest(fill: str) -> str:
    """Build a well-formed digest from a single hex character."""
    return "sha256:" + fill * 64


@pytest.fixture
def src_registry() -> RegistryContext:
    return RegistryContext(name="gcr.io/foo-staging", src=True)


@pytest.fixture
def dst_registry() -> RegistryContext:
    return RegistryContext(
        name="us.gcr.io/foo-prod",
        service_account="promoter@foo-prod.iam.gserviceaccount.com",
    )


@pytest.fixture
def make_edge(
    src_registry: RegistryContext, dst_registry: RegistryContext
) -> Callable[..., PromotionEdge]:
    """Factory fixture: build a PromotionEdge with sensible defaults."""

    def _factory(
        image_name: str = "bar",
        tag: str = "1.0",
        fill: str = "1",
        **overrides: Any,
    ) -> PromotionEdge:
        defaults: dict[str, Any] = {
            "src_registry": src_registry,
            "src_image_tag": ImageTag(image_name=image_name, tag=tag),
            "digest": digest(fill),
            "dst_registry": dst_registry,
            "dst_image_tag": ImageTag(image_name=image_name, tag=tag),
        }
        defaults.update(overrides)
        return PromotionEdge(**defaults)

    return _factory


@pytest.fixture
def make_manifest(
    src_registry: RegistryContext, dst_registry: RegistryContext
) -> Callable[..., Manifest]:
    """Factory fixture: build a two-registry Manifest from ``{name: dmap}``."""

    def _factory(
        images: dict[str, dict[str, list[str]]],
        renames: list[list[str]] | None = None,
    ) -> Manifest:
        return Manifest(
            registries=[src_registry, dst_registry],
            images=[Image(name=name, dmap=dmap) for name, dmap in images.items()],
            renames=renames or [],
        )

    return _factory


@pytest.fixture
def transaction_log(tmp_path: Path) -> TransactionLog:
    """Provide a fresh TransactionLog backed by a temp SQLite database."""
    return TransactionLog(tmp_path / "transactions.db")


class InMemoryRevisionReader:
    """RevisionReader over pre-built snapshots; records every call."""

    def __init__(
        self,
        snapshots: dict[str, ManifestSnapshot],
        current: str,
        *,
        fail_materialize: bool = False,
    ) -> None:
        self.snapshots = snapshots
        self.current = current
        self.fail_materialize = fail_materialize
        self.calls: list[tuple[str, str]] = []
        self.held = False

    @contextlib.contextmanager
    def exclusive(self) -> Iterator[None]:
        self.held = True
        try:
            yield
        finally:
            self.held = False

    def materialize(self, revision: str) -> ManifestSnapshot:
        assert self.held, "materialize outside exclusive()"
        self.calls.append(("materialize", revision))
        self.current = revision
        if self.fail_materialize:
            raise RuntimeError("broken manifest")
        return self.snapshots[revision]

    def restore(self, revision: str) -> None:
        assert self.held, "restore outside exclusive()"
        self.calls.append(("restore", revision))
        self.current = revision


@pytest.fixture
def make_reader() -> Callable[..., InMemoryRevisionReader]:
    def _factory(snapshots: dict[str, ManifestSnapshot], **kwargs: Any) -> InMemoryRevisionReader:
        return InMemoryRevisionReader(snapshots, current=PULL_SHA, **kwargs)

    return _factory
