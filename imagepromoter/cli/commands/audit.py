"""``imagepromoter audit`` — verify a batch of registry notifications.

Events are read as JSON lines, one GCR Pub/Sub payload per line
(``{"action": "INSERT", "digest": "<fqin>", "tag": "<pqin>"}``).  Each
event is classified against the manifest's edge set and its transaction
line is printed and appended to the transaction log.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from imagepromoter.audit.transaction_log import TransactionLog
from imagepromoter.audit.verifier import AuditVerifier
from imagepromoter.cli.commands._common import console, load_edges, load_inventory
from imagepromoter.cli.render import print_transaction
from imagepromoter.config import PromoterConfig
from imagepromoter.models.transactions import MalformedEventError, RegistryEvent


def _read_events(path: Path) -> list[RegistryEvent]:
    events: list[RegistryEvent] = []
    for lineno, raw in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
        if not raw.strip():
            continue
        try:
            events.append(RegistryEvent.from_payload(json.loads(raw)))
        except (json.JSONDecodeError, MalformedEventError) as exc:
            # Malformed payloads are dropped at the ingestion boundary.
            console.print(f"[yellow]Skipping malformed event on line {lineno}:[/yellow] {exc}")
    return events


def audit_cmd(
    manifest_dir: Path = typer.Option(
        ..., "--manifests", "-m", help="Directory holding promoter manifests."
    ),
    events_file: Path = typer.Option(
        ..., "--events", "-e", help="JSON-lines file of registry notifications."
    ),
    inventory_file: Optional[Path] = typer.Option(
        None, "--inventory", "-i", help="JSON inventory for fat-manifest expansion."
    ),
    log_db: Optional[Path] = typer.Option(
        None, "--log", "-l", help="Transaction log database (default from config)."
    ),
) -> None:
    """Verify registry mutations against the promoter manifests."""
    config = PromoterConfig()
    edges = load_edges(manifest_dir, load_inventory(inventory_file))
    log = TransactionLog(log_db or config.transaction_log_path)
    verifier = AuditVerifier(edges, log)

    try:
        events = _read_events(events_file)
    except OSError as exc:
        console.print(f"[bold red]Could not read events:[/bold red] {exc}")
        raise typer.Exit(code=1)

    try:
        for transaction in verifier.verify_many(events, max_workers=config.audit_workers):
            print_transaction(console, transaction)
    finally:
        verifier.shutdown()

    if verifier.rejected:
        raise typer.Exit(code=1)
