"""Tests for domain time helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from slabstock.core.entities.time import parse_iso_timestamp, require_utc_timestamp, utc_now


def test_utc_now_is_aware():
    now = utc_now()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


class TestRequireUtcTimestamp:
    def test_accepts_utc(self):
        require_utc_timestamp("ts", datetime(2026, 1, 1, tzinfo=UTC))

    def test_rejects_naive(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            require_utc_timestamp("ts", datetime(2026, 1, 1))

    def test_rejects_offset(self):
        with pytest.raises(ValueError, match="offset 0"):
            require_utc_timestamp("ts", datetime(2026, 1, 1, tzinfo=timezone(timedelta(hours=2))))


class TestParseIsoTimestamp:
    def test_trailing_z(self):
        assert parse_iso_timestamp("2026-11-01T18:00:00Z") == datetime(2026, 11, 1, 18, tzinfo=UTC)

    def test_offset_converted_to_utc(self):
        parsed = parse_iso_timestamp("2026-11-01T15:00:00-03:00")
        assert parsed == datetime(2026, 11, 1, 18, tzinfo=UTC)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_rejected(self):
        with pytest.raises(ValueError):
            parse_iso_timestamp("2026-11-01T18:00:00")

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_iso_timestamp("next tuesday")
