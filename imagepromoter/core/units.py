"""Exact MiB <-> byte conversion.

Both directions are 20-bit shifts, never float division, so size
boundaries are exact powers of two.
"""

from __future__ import annotations

_MIB_SHIFT = 20


def mb_to_bytes(value: int) -> int:
    """Convert MiB to bytes."""
    return value << _MIB_SHIFT


def bytes_to_mb(value: int) -> int:
    """Convert bytes to MiB (floor, arithmetic shift)."""
    return value >> _MIB_SHIFT
