"""Rich terminal rendering for edge sets, check reports and transactions."""

from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from imagepromoter.models.edges import PromotionEdge, sorted_edges
from imagepromoter.models.reports import CheckReport
from imagepromoter.models.transactions import Verdict, VerificationTransaction

_VERDICT_STYLES: dict[Verdict, str] = {
    Verdict.VERIFIED: "green",
    Verdict.REJECTED: "bold red",
}


def edge_table(edges: Iterable[PromotionEdge]) -> Table:
    table = Table(title="Promotion Edges")
    table.add_column("Destination", style="cyan")
    table.add_column("Tag")
    table.add_column("Digest", style="dim")
    table.add_column("Parent", style="dim")
    for edge in sorted_edges(edges):
        table.add_row(
            edge.dst_path,
            edge.dst_image_tag.tag or "-",
            edge.digest,
            edge.parent_digest or "-",
        )
    return table


def print_report(console: Console, report: CheckReport) -> None:
    """Print a pass banner or the report's failure text in a red panel."""
    if report.passed:
        console.print(f"[bold green]{report.check_name} passed.[/bold green]")
        return
    # The rendered text is the CI contract; keep it out of Rich markup.
    console.print(
        Panel(
            Text(report.render().rstrip("\n")),
            title=f"[bold]{report.check_name} failed[/bold]",
            border_style="red",
        )
    )


def print_transaction(console: Console, transaction: VerificationTransaction) -> None:
    console.print(
        transaction.log_line(),
        style=_VERDICT_STYLES[transaction.verdict],
        markup=False,
        highlight=False,
        soft_wrap=True,
    )
