"""Tests for status classification."""

import pytest

from fanoutviz.status import Outcome, classify


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("success", Outcome.SUCCESS),
        ("Success", Outcome.SUCCESS),
        ("TIMEOUT", Outcome.FAILED),
        ("error", Outcome.FAILED),
        ("fallback", Outcome.FALLBACK),
        ("", Outcome.UNKNOWN),
        (None, Outcome.UNKNOWN),
        ("garbage", Outcome.UNKNOWN),
    ],
)
def test_classify_table(raw, expected):
    assert classify(raw) is expected


def test_classify_upstream_uppercase_statuses():
    assert classify("ERROR") is Outcome.FAILED
    assert classify("FALLBACK") is Outcome.FALLBACK
    assert classify("Timeout") is Outcome.FAILED


def test_classify_never_raises_on_non_string_input():
    assert classify(42) is Outcome.UNKNOWN
    assert classify({"status": "success"}) is Outcome.UNKNOWN


def test_classify_does_not_trim_whitespace():
    assert classify(" success ") is Outcome.UNKNOWN
    assert classify("error\n") is Outcome.UNKNOWN
