"""Audit Verifier — classify observed registry mutations against the manifest.

Each incoming event walks a small state machine::

    received -> evaluated -> verified | rejected

An event is VERIFIED when the edge set holds an edge with the same
destination path, tag and digest (the tag is empty for untagged fat
manifest children).  Anything else is REJECTED.

The edge set is read-only between ``refresh()`` calls, so evaluations can
run in parallel.  Delivery is at-least-once: a repeated
``(path, tag, digest)`` gets the verdict it got the first time and is
logged again but not counted again.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from imagepromoter.audit.transaction_log import TransactionLog
from imagepromoter.models.edges import EdgeSet, PromotionEdge, sorted_edges
from imagepromoter.models.transactions import (
    VALID_EVENT_TRANSITIONS,
    EventState,
    RegistryEvent,
    Verdict,
    VerificationTransaction,
)

logger = logging.getLogger(__name__)

EventKey = tuple[str, str, str]


class VerifierClosedError(RuntimeError):
    """Raised when an event arrives after ``shutdown()``."""


class InvalidEventTransitionError(RuntimeError):
    """Raised when an event is moved along a transition the machine forbids."""


def _index_edges(edges: EdgeSet) -> dict[EventKey, PromotionEdge]:
    index: dict[EventKey, PromotionEdge] = {}
    # Sorted so an edge without a parent digest wins over a child edge
    # sharing the same key.
    for edge in sorted_edges(edges):
        index.setdefault((edge.dst_path, edge.dst_image_tag.tag, edge.digest), edge)
    return index


class AuditVerifier:
    """Verifies registry mutations against one promotion-edge set.

    Parameters
    ----------
    edges:
        Edge set derived from the current manifest.
    log:
        Append-only log receiving one line per processed event.

    The de-duplication memory holds one entry per distinct
    ``(path, tag, digest)`` seen and is only cleared by ``refresh()``.
    Long-lived verifiers should call ``refresh()`` whenever the manifest
    changes, or be replaced, to bound it.
    """

    def __init__(self, edges: EdgeSet, log: TransactionLog) -> None:
        self._log = log
        self._lock = threading.Lock()
        self._closed = False
        self._index = _index_edges(edges)
        self._states: dict[EventKey, EventState] = {}
        self._evaluated: dict[EventKey, VerificationTransaction] = {}

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def _advance(self, key: EventKey, target: EventState) -> None:
        current = self._states.get(key)
        if current is None:
            allowed = {EventState.RECEIVED}
        else:
            allowed = VALID_EVENT_TRANSITIONS[current]
        if target not in allowed:
            raise InvalidEventTransitionError(
                f"Cannot move event {key} from "
                f"{current.value if current else 'new'} to {target.value}"
            )
        self._states[key] = target

    def get_state(self, event: RegistryEvent) -> EventState | None:
        with self._lock:
            return self._states.get(event.key)

    def refresh(self, edges: EdgeSet) -> None:
        """Swap in the edge set of a changed manifest.

        Earlier verdicts were made against the old expectation, so the
        de-duplication memory is cleared.
        """
        index = _index_edges(edges)
        with self._lock:
            self._index = index
            self._states.clear()
            self._evaluated.clear()
        logger.info("Audit verifier refreshed with %d edges", len(edges))

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, event: RegistryEvent) -> VerificationTransaction:
        """Classify *event*, log it and return its transaction."""
        key = event.key
        with self._lock:
            if self._closed:
                raise VerifierClosedError("audit verifier is shut down")
            existing = self._evaluated.get(key)
            if existing is None:
                self._advance(key, EventState.RECEIVED)
                edge = self._index.get(key)
                self._advance(key, EventState.EVALUATED)
                if edge is not None:
                    transaction = VerificationTransaction(
                        event=event,
                        verdict=Verdict.VERIFIED,
                        parent_digest=edge.parent_digest,
                    )
                    self._advance(key, EventState.VERIFIED)
                else:
                    transaction = VerificationTransaction(
                        event=event, verdict=Verdict.REJECTED
                    )
                    self._advance(key, EventState.REJECTED)
                self._evaluated[key] = transaction
            else:
                logger.debug("Duplicate delivery of %s", event.fqin)
                transaction = existing

        self._log.append(transaction)
        return transaction

    def verify_many(
        self, events: Iterable[RegistryEvent], max_workers: int = 4
    ) -> list[VerificationTransaction]:
        """Verify events in parallel; results keep the input order."""
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.verify, events))

    def shutdown(self) -> None:
        """Stop accepting events.  Already evaluated transactions are kept."""
        with self._lock:
            self._closed = True
        logger.info(
            "Audit verifier shut down after %d transactions", len(self._evaluated)
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def transactions(self) -> list[VerificationTransaction]:
        """Unique transactions, in order of first evaluation."""
        with self._lock:
            return list(self._evaluated.values())

    @property
    def rejected(self) -> list[VerificationTransaction]:
        return [t for t in self.transactions if t.verdict == Verdict.REJECTED]
