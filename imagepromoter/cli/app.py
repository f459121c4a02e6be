"""Main Typer application — registers all CLI commands.

Entry point: ``imagepromoter`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.logging import RichHandler

from imagepromoter.cli.commands.audit import audit_cmd
from imagepromoter.cli.commands.checks import (
    check_removal_cmd,
    check_size_cmd,
    precheck_cmd,
)
from imagepromoter.cli.commands.edges import edges_cmd
from imagepromoter.config import PromoterConfig

app = typer.Typer(
    name="imagepromoter",
    help="Container image promoter: manifest pre-checks and registry auditing.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default from IMAGEPROMOTER_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging before any command runs."""
    level = (log_level or PromoterConfig().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, markup=False)],
        force=True,
    )


app.command(name="edges", help="Show the promotion edges of a manifest set.")(edges_cmd)
app.command(name="check-size", help="Fail if a promoted image is too large or invalid.")(
    check_size_cmd
)
app.command(name="check-removal", help="Fail if a pull request removes promoted images.")(
    check_removal_cmd
)
app.command(name="precheck", help="Run every pre-check and report all failures.")(
    precheck_cmd
)
app.command(name="audit", help="Verify registry notifications against the manifests.")(
    audit_cmd
)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
