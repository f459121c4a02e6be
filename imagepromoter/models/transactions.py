"""Audit models — observed registry mutations and their verdicts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from imagepromoter.models.edges import DIGEST_PATTERN


class MalformedEventError(ValueError):
    """Raised when a registry notification cannot be parsed."""


class Action(str, Enum):
    """Registry mutation kinds accepted by the verifier."""

    INSERT = "INSERT"


class Verdict(str, Enum):
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class EventState(str, Enum):
    """Lifecycle of one event inside the verifier."""

    RECEIVED = "received"
    EVALUATED = "evaluated"
    VERIFIED = "verified"
    REJECTED = "rejected"


# Valid per-event transitions; terminal states have no outgoing edges.
VALID_EVENT_TRANSITIONS: dict[EventState, set[EventState]] = {
    EventState.RECEIVED: {EventState.EVALUATED},
    EventState.EVALUATED: {EventState.VERIFIED, EventState.REJECTED},
    EventState.VERIFIED: set(),
    EventState.REJECTED: set(),
}


class RegistryEvent(BaseModel):
    """A parsed registry push/tag notification.

    ``fqin`` is ``<path>@<digest>``; ``pqin`` is ``<path>:<tag>`` or empty
    for untagged pushes.
    """

    model_config = ConfigDict(frozen=True)

    action: Action
    fqin: str
    pqin: str = ""
    path: str
    digest: str
    tag: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> RegistryEvent:
        """Parse a GCR Pub/Sub payload ``{"action", "digest", "tag"}``.

        Raises
        ------
        MalformedEventError
            If the action is unsupported or the names cannot be split.
        """
        if not isinstance(payload, dict):
            raise MalformedEventError(f"payload {payload!r} is not an object")
        raw_action = payload.get("action", "")
        try:
            action = Action(raw_action)
        except (TypeError, ValueError):
            raise MalformedEventError(f"unsupported action {raw_action!r}") from None

        fqin = payload.get("digest") or ""
        pqin = payload.get("tag") or ""
        if not isinstance(fqin, str) or not isinstance(pqin, str):
            raise MalformedEventError(f"FQIN {fqin!r} and PQIN {pqin!r} must be strings")
        if "@" not in fqin:
            raise MalformedEventError(f"FQIN {fqin!r} has no digest")
        path, digest = fqin.rsplit("@", 1)
        if not path or not DIGEST_PATTERN.match(digest):
            raise MalformedEventError(f"FQIN {fqin!r} is not <path>@<digest>")

        tag = ""
        if pqin:
            tag_path, sep, tag = pqin.rpartition(":")
            if not sep or tag_path != path or not tag or "/" in tag:
                raise MalformedEventError(
                    f"PQIN {pqin!r} does not match FQIN path {path!r}"
                )
        return cls(action=action, fqin=fqin, pqin=pqin, path=path, digest=digest, tag=tag)

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity used for matching and de-duplication."""
        return (self.path, self.tag, self.digest)

    def describe(self) -> str:
        """Render the event in the transaction-log field layout."""
        return (
            f'{{Action: "{self.action.value}", FQIN: "{self.fqin}", '
            f'PQIN: "{self.pqin}", Path: "{self.path}", '
            f'Digest: "{self.digest}", Tag: "{self.tag}"}}'
        )


class VerificationTransaction(BaseModel):
    """One classified observation.  Never mutated after emission."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event: RegistryEvent
    verdict: Verdict
    parent_digest: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def reason(self) -> str:
        if self.verdict == Verdict.REJECTED:
            return "could not validate"
        if self.parent_digest:
            return f"agrees with manifest (parent digest {self.parent_digest})"
        return "agrees with manifest"

    def log_line(self) -> str:
        """The exact-match line written to the transaction log."""
        return f"TRANSACTION {self.verdict.value}: {self.event.describe()}: {self.reason}"
