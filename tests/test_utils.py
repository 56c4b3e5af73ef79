"""
Tests for walltaker.utils
"""

import re
from datetime import timezone

import pytest

from walltaker.utils import (
    dedupe_preserving_order,
    extract_cursor_digits,
    get_current_timestamp,
    sanitize_blacklist,
    utc_now,
)


class TestSanitizeBlacklist:

    def test_lowercases_and_strips_punctuation(self):
        assert sanitize_blacklist("Gore, Scat!") == "gore scat"

    def test_keeps_allowed_characters(self):
        assert sanitize_blacklist("rating:E  (tag_one) 3d") == "rating:e  (tag_one) 3d"

    def test_none_and_empty(self):
        assert sanitize_blacklist(None) == ""
        assert sanitize_blacklist("") == ""

    def test_strips_operators_and_unicode(self):
        assert sanitize_blacklist("-dog ~cat* ñandu\t\n") == "dog cat andu"

    @pytest.mark.parametrize("raw", [
        "Dog CAT", "a-b-c", "score:>50", "(x)", "ÀÉÎ", "tag_one  tag_two", "!!!",
    ])
    def test_idempotent_and_within_alphabet(self, raw):
        once = sanitize_blacklist(raw)
        assert sanitize_blacklist(once) == once
        assert re.fullmatch(r'[a-z_()\d: ]*', once)


class TestExtractCursorDigits:

    def test_digits_are_extracted(self):
        assert extract_cursor_digits("b_1234") == "1234"
        assert extract_cursor_digits("12a34") == "1234"

    def test_no_digits(self):
        assert extract_cursor_digits("abc") is None
        assert extract_cursor_digits("") is None
        assert extract_cursor_digits(None) is None


def test_dedupe_preserving_order():
    assert dedupe_preserving_order(["cat", "dog", "cat", "fox", "dog"]) == ["cat", "dog", "fox"]


def test_timestamps():
    assert re.fullmatch(r'\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z', get_current_timestamp())
    assert utc_now().tzinfo == timezone.utc
