"""Tests for the MiB <-> byte conversions."""

from __future__ import annotations

from imagepromoter.core.units import bytes_to_mb, mb_to_bytes


class TestUnits:
    def test_one_mib(self):
        assert mb_to_bytes(1) == 1_048_576

    def test_round_trip(self):
        for value in (0, 1, 2, 7, 512, 2048, 1 << 30):
            assert bytes_to_mb(mb_to_bytes(value)) == value

    def test_bytes_to_mb_floors(self):
        assert bytes_to_mb(1_048_575) == 0
        assert bytes_to_mb(1_048_577) == 1
        assert bytes_to_mb(500) == 0

    def test_negative_sizes_shift_arithmetically(self):
        assert bytes_to_mb(-5) == -1
