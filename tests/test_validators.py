"""Tests for CSV cell validators."""

import pytest

from csv_issue_sync.validators import (
    format_validation_error,
    parse_labels,
    validate_key,
    validate_state,
)


class TestValidateKey:
    @pytest.mark.parametrize("key", ["", "1", "42", "007"])
    def test_valid(self, key):
        assert validate_key(key) == (True, "")

    @pytest.mark.parametrize("key", ["0", "-3", "1.5", "abc", "١٢"])
    def test_invalid(self, key):
        ok, msg = validate_key(key)
        assert not ok
        assert msg.startswith("Issue id must be a positive integer")


class TestValidateState:
    @pytest.mark.parametrize("state", ["", "open", "closed", "Open", "CLOSED"])
    def test_valid(self, state):
        assert validate_state(state)[0]

    def test_invalid(self):
        ok, msg = validate_state("done")
        assert not ok
        assert "open, closed" in msg


class TestParseLabels:
    def test_blank(self):
        assert parse_labels("") == ()
        assert parse_labels("   ") == ()

    def test_trims_and_dedupes(self):
        assert parse_labels(" bug ,ui,, bug,docs ") == ("bug", "ui", "docs")


def test_format_validation_error():
    assert format_validation_error("State", "is bad") == "State is bad"
