"""``imagepromoter edges`` — show the promotion edges a manifest set yields."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from imagepromoter.cli.commands._common import console, load_edges, load_inventory
from imagepromoter.cli.render import edge_table
from imagepromoter.core.hasher import edge_set_fingerprint


def edges_cmd(
    manifest_dir: Path = typer.Option(
        ..., "--manifests", "-m", help="Directory holding promoter manifests."
    ),
    inventory_file: Optional[Path] = typer.Option(
        None, "--inventory", "-i", help="JSON inventory for fat-manifest expansion."
    ),
) -> None:
    """Print the promotion edge set and its fingerprint."""
    edges = load_edges(manifest_dir, load_inventory(inventory_file))
    console.print(edge_table(edges))
    console.print(f"[bold]{len(edges)} edges[/bold]  fingerprint {edge_set_fingerprint(edges)}")
