"""Tests for mk_common.id_generator and mk_common.datetime_utils."""

from datetime import UTC, datetime, timedelta

import pytest

from src.mk_common.datetime_utils import clearing_cutoff, utc_now
from src.mk_common.id_generator import SnowflakeIdGenerator, generate_id


class TestSnowflakeIdGenerator:
    def test_returns_zero_padded_str(self) -> None:
        result = SnowflakeIdGenerator(machine_id=1).next_id()
        assert isinstance(result, str)
        assert len(result) == 20

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_string_order_matches_creation_order(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = [gen.next_id() for _ in range(200)]
        assert ids == sorted(ids)

    def test_clock_going_backwards_keeps_ids_increasing(self, monkeypatch) -> None:
        gen = SnowflakeIdGenerator()
        ticks = iter([1_800_000_000_000, 1_799_999_999_000, 1_799_999_999_000])
        monkeypatch.setattr(gen, "_clock_ms", lambda: next(ticks))
        first, second = gen.next_int(), gen.next_int()
        assert second > first

    def test_machine_id_bounds(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)

    def test_module_helper(self) -> None:
        assert generate_id() < generate_id()


class TestUtcNow:
    def test_returns_aware_datetime(self) -> None:
        now = utc_now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)


class TestClearingCutoff:
    def test_subtracts_window(self) -> None:
        now = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
        assert clearing_cutoff(now, 2) == datetime(2026, 3, 8, 12, 0, tzinfo=UTC)

    def test_zero_window_is_now(self) -> None:
        now = datetime(2026, 3, 10, tzinfo=UTC)
        assert clearing_cutoff(now, 0) == now

    def test_negative_window_raises(self) -> None:
        with pytest.raises(ValueError):
            clearing_cutoff(utc_now(), -1)
