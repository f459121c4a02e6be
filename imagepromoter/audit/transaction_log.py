"""Append-only, hash-chained transaction log backed by SQLite.

Every verification transaction emitted by the Audit Verifier becomes one
row.  Rows are never updated or deleted; each row links to the previous
one via SHA-256 so tampering is detectable.  Every appended line is also
written to this module's logger, which is what external log-matching
assertions read.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from imagepromoter.core.hasher import compute_entry_hash
from imagepromoter.models.transactions import VerificationTransaction

logger = logging.getLogger(__name__)

_CREATE_LOG = """
CREATE TABLE IF NOT EXISTS transaction_log (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id            TEXT NOT NULL UNIQUE,
    transaction_id      TEXT NOT NULL,
    verdict             TEXT NOT NULL,
    line                TEXT NOT NULL,
    timestamp_utc       TEXT NOT NULL,
    previous_entry_hash TEXT NOT NULL DEFAULT '',
    entry_hash          TEXT NOT NULL UNIQUE
);
"""


class LogIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class TransactionLogEntry(BaseModel):
    """One sealed row of the transaction log."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    transaction_id: str
    verdict: str
    line: str
    timestamp_utc: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    previous_entry_hash: str = ""
    entry_hash: str = ""


class TransactionLog:
    """Append-only transaction log.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()
        with self._connect() as conn:
            conn.execute(_CREATE_LOG)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    # ------------------------------------------------------------------
    # Append-only write
    # ------------------------------------------------------------------

    def append(self, transaction: VerificationTransaction) -> TransactionLogEntry:
        """Seal and persist one transaction line.  The only write method."""
        line = transaction.log_line()
        with self._write_lock:
            entry = TransactionLogEntry(
                transaction_id=transaction.transaction_id,
                verdict=transaction.verdict.value,
                line=line,
                previous_entry_hash=self._latest_hash(),
            )
            sealed = entry.model_copy(
                update={"entry_hash": compute_entry_hash(entry.model_dump(mode="json"))}
            )
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO transaction_log
                        (entry_id, transaction_id, verdict, line, timestamp_utc,
                         previous_entry_hash, entry_hash)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        sealed.entry_id,
                        sealed.transaction_id,
                        sealed.verdict,
                        sealed.line,
                        sealed.timestamp_utc,
                        sealed.previous_entry_hash,
                        sealed.entry_hash,
                    ),
                )
                conn.commit()
        logger.info(line)
        return sealed

    def _latest_hash(self) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM transaction_log ORDER BY id DESC LIMIT 1"
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def entries(self) -> list[TransactionLogEntry]:
        """Return every entry in append order."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT entry_id, transaction_id, verdict, line, timestamp_utc, "
                "previous_entry_hash, entry_hash FROM transaction_log ORDER BY id ASC"
            ).fetchall()
        return [
            TransactionLogEntry(
                entry_id=row[0],
                transaction_id=row[1],
                verdict=row[2],
                line=row[3],
                timestamp_utc=row[4],
                previous_entry_hash=row[5],
                entry_hash=row[6],
            )
            for row in rows
        ]

    def lines(self) -> list[str]:
        return [entry.line for entry in self.entries()]

    def verify_chain(self) -> bool:
        """Walk the chain and recompute every hash.

        Returns True if the chain is valid, raises ``LogIntegrityError``
        otherwise.
        """
        prev_hash = ""
        for entry in self.entries():
            if entry.previous_entry_hash != prev_hash:
                raise LogIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )
            expected = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected:
                raise LogIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected!r}, got {entry.entry_hash!r}"
                )
            prev_hash = entry.entry_hash
        return True
