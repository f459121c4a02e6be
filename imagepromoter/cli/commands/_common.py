"""Helpers shared by the CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from imagepromoter.core.edge_builder import EdgeConflictError, to_promotion_edges
from imagepromoter.manifests.loader import load_manifests_from_dir
from imagepromoter.models.edges import EdgeSet
from imagepromoter.models.manifest import ManifestError
from imagepromoter.models.registry import RegistryInventory

console = Console()


def load_inventory(path: Path | None) -> RegistryInventory | None:
    """Read a ``{"sizes": {...}, "children": {...}}`` JSON snapshot."""
    if path is None:
        return None
    try:
        return RegistryInventory.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        console.print(f"[bold red]Could not read inventory {path}:[/bold red] {exc}")
        raise typer.Exit(code=1)


def load_edges(manifest_dir: Path, inventory: RegistryInventory | None) -> EdgeSet:
    """Parse the manifests under *manifest_dir* into an edge set or exit 1."""
    try:
        return to_promotion_edges(load_manifests_from_dir(manifest_dir), inventory)
    except (ManifestError, EdgeConflictError) as exc:
        console.print(f"[bold red]Could not build promotion edges:[/bold red] {exc}")
        raise typer.Exit(code=1)
