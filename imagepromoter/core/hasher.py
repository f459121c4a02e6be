"""Canonical hashing helpers for edge-set fingerprints and log sealing."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable

from imagepromoter.models.edges import PromotionEdge, sorted_edges


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def edge_set_fingerprint(edges: Iterable[PromotionEdge]) -> str:
    """Content hash of an edge set, independent of enumeration order.

    Two invocations over identical manifests and inventory must produce
    the same fingerprint.
    """
    payload = [edge.model_dump(mode="json") for edge in sorted_edges(edges)]
    return f"sha256:{sha256_hex(canonical_json_bytes(payload))}"


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """SHA-256 of a log entry, excluding the ``entry_hash`` field itself."""
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return sha256_hex(canonical_json_bytes(d))
