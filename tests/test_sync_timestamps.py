"""Tests for ISO-8601 timestamp parsing and ordering."""

import logging
from datetime import datetime, timezone

from csv_issue_sync.sync.timestamps import is_newer, parse_timestamp, utc_now_iso


class TestParseTimestamp:
    def test_zulu(self):
        assert parse_timestamp("2025-01-01T00:00:00Z") == datetime(
            2025, 1, 1, tzinfo=timezone.utc
        )

    def test_offset_is_converted(self):
        assert parse_timestamp("2025-01-01T02:00:00+02:00") == datetime(
            2025, 1, 1, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self):
        assert parse_timestamp("2025-01-01T00:00:00").tzinfo == timezone.utc

    def test_fractional_seconds(self):
        parsed = parse_timestamp("2025-01-01T00:00:00.500Z")
        assert parsed.microsecond == 500000

    def test_blank(self):
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None

    def test_garbage_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_timestamp("last tuesday") is None
        assert "last tuesday" in caplog.text


class TestIsNewer:
    def test_strictly_newer(self):
        assert is_newer("2025-01-02T00:00:00Z", "2025-01-01T00:00:00Z")
        assert not is_newer("2025-01-01T00:00:00Z", "2025-01-02T00:00:00Z")

    def test_equal_is_not_newer(self):
        assert not is_newer("2025-01-01T00:00:00Z", "2025-01-01T00:00:00+00:00")

    def test_precision_differences(self):
        assert is_newer("2025-01-01T00:00:00.001Z", "2025-01-01T00:00:00Z")

    def test_invalid_candidate_never_newer(self):
        assert not is_newer("nope", "2025-01-01T00:00:00Z")
        assert not is_newer("", "")

    def test_valid_beats_invalid_reference(self):
        assert is_newer("2025-01-01T00:00:00Z", "")


def test_utc_now_iso_is_parseable():
    assert parse_timestamp(utc_now_iso()) is not None
