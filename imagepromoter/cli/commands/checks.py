"""``imagepromoter check-size``, ``check-removal`` and ``precheck``.

Each command gates a change to the manifest repository and exits with
code 1 when any violation is found.  ``precheck`` runs both checks and
reports every failure before exiting.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from imagepromoter.cli.commands._common import console, load_edges, load_inventory
from imagepromoter.cli.render import print_report
from imagepromoter.config import PromoterConfig, RevisionConfigError
from imagepromoter.core.edge_builder import EdgeConflictError
from imagepromoter.core.prechecks import PreCheckError, run_prechecks
from imagepromoter.core.removal_check import ImageRemovalCheck
from imagepromoter.core.revisions import RevisionCheckoutError, RevisionRestoreError
from imagepromoter.core.size_check import ImageSizeCheck
from imagepromoter.models.edges import EdgeSet
from imagepromoter.models.manifest import ManifestError
from imagepromoter.models.registry import RegistryInventory


def _size_check(
    max_size: Optional[int], edges: EdgeSet, inventory: RegistryInventory | None
) -> ImageSizeCheck:
    ceiling = PromoterConfig().max_image_size_mib if max_size is None else max_size
    sizes = inventory.sizes if inventory is not None else {}
    try:
        return ImageSizeCheck(ceiling, edges, sizes)
    except ValueError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=1)


def _removal_check(
    repo_path: Optional[Path],
    manifest_subdir: Optional[Path],
    inventory: RegistryInventory | None,
) -> ImageRemovalCheck:
    config = PromoterConfig()
    repo_path = repo_path or config.repo_path
    manifest_subdir = manifest_subdir or config.manifest_dir
    candidate = load_edges(repo_path / manifest_subdir, inventory)
    try:
        return ImageRemovalCheck.from_env(
            repo_path, candidate, inventory=inventory, manifest_subdir=manifest_subdir
        )
    except RevisionConfigError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)


def _baseline_exit(exc: Exception) -> typer.Exit:
    if isinstance(exc, RevisionRestoreError):
        console.print(f"[bold red]Working tree not restored:[/bold red] {exc}")
        return typer.Exit(code=2)
    console.print(f"[bold red]Could not read baseline manifests:[/bold red] {exc}")
    return typer.Exit(code=1)


def check_size_cmd(
    manifest_dir: Path = typer.Option(
        ..., "--manifests", "-m", help="Directory holding promoter manifests."
    ),
    inventory_file: Path = typer.Option(
        ..., "--inventory", "-i", help="JSON inventory snapshot with digest sizes."
    ),
    max_size: Optional[int] = typer.Option(
        None, "--max-size", help="Maximum image size in MiB (default from config)."
    ),
) -> None:
    """Check that every image to be promoted is within the size ceiling."""
    inventory = load_inventory(inventory_file)
    edges = load_edges(manifest_dir, inventory)
    report = _size_check(max_size, edges, inventory).run()
    print_report(console, report)
    if not report.passed:
        raise typer.Exit(code=1)


def check_removal_cmd(
    repo_path: Optional[Path] = typer.Option(
        None, "--repo", "-r", help="Root of the cloned manifest repository (default from config)."
    ),
    manifest_subdir: Optional[Path] = typer.Option(
        None, "--manifests", "-m", help="Manifest directory inside the repository."
    ),
    inventory_file: Optional[Path] = typer.Option(
        None, "--inventory", "-i", help="JSON inventory for fat-manifest expansion."
    ),
) -> None:
    """Check that the pull request does not remove promoted images.

    Reads PULL_BASE_SHA and PULL_PULL_SHA from the environment.
    """
    inventory = load_inventory(inventory_file)
    check = _removal_check(repo_path, manifest_subdir, inventory)
    try:
        report = check.run()
    except (RevisionCheckoutError, RevisionRestoreError, ManifestError, EdgeConflictError) as exc:
        raise _baseline_exit(exc)

    print_report(console, report)
    if not report.passed:
        raise typer.Exit(code=1)


def precheck_cmd(
    repo_path: Optional[Path] = typer.Option(
        None, "--repo", "-r", help="Root of the cloned manifest repository (default from config)."
    ),
    manifest_subdir: Optional[Path] = typer.Option(
        None, "--manifests", "-m", help="Manifest directory inside the repository."
    ),
    inventory_file: Path = typer.Option(
        ..., "--inventory", "-i", help="JSON inventory snapshot with digest sizes."
    ),
    max_size: Optional[int] = typer.Option(
        None, "--max-size", help="Maximum image size in MiB (default from config)."
    ),
) -> None:
    """Run the removal and size checks together, reporting every failure.

    Reads PULL_BASE_SHA and PULL_PULL_SHA from the environment.
    """
    inventory = load_inventory(inventory_file)
    removal = _removal_check(repo_path, manifest_subdir, inventory)
    size = _size_check(max_size, removal.candidate_edges, inventory)
    try:
        reports = run_prechecks([removal, size])
    except PreCheckError as exc:
        for report in exc.reports:
            print_report(console, report)
        raise typer.Exit(code=1)
    except (RevisionCheckoutError, RevisionRestoreError, ManifestError, EdgeConflictError) as exc:
        raise _baseline_exit(exc)

    for report in reports:
        print_report(console, report)
