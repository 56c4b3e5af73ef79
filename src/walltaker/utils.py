#!/usr/bin/env python3
"""
Utility functions for Walltaker.

This module provides small string helpers shared by the search engine,
including blacklist sanitization, cursor digit extraction and timestamp
generation.
"""

import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional


_BLACKLIST_DISALLOWED = re.compile(r'[^a-z_()\d: ]')
_NON_DIGITS = re.compile(r'\D')


def sanitize_blacklist(blacklist: Optional[str]) -> str:
    """
    Normalize a free-text blacklist into a safe, space-delimited token string.

    Lower-cases the input and strips every character outside of
    ``a-z``, digits, underscore, parentheses, colon and space.

    Args:
        blacklist: Raw blacklist text as entered by the link owner

    Returns:
        str: The cleaned blacklist, empty when nothing survives

    Examples:
        >>> sanitize_blacklist("Gore, Scat!")
        'gore scat'
        >>> sanitize_blacklist("rating:E  (tag_one)")
        'rating:e  (tag_one)'
        >>> sanitize_blacklist(None)
        ''
    """
    if not blacklist:
        return ''

    return _BLACKLIST_DISALLOWED.sub('', blacklist.lower())


def extract_cursor_digits(cursor: Optional[str]) -> Optional[str]:
    """
    Extract the numeric part of an opaque pagination cursor.

    Args:
        cursor: Cursor value such as ``"b_1234"``

    Returns:
        The digit characters of the cursor, or None when there are none

    Examples:
        >>> extract_cursor_digits("b_1234")
        '1234'
        >>> extract_cursor_digits("abc") is None
        True
    """
    if not cursor:
        return None

    digits = _NON_DIGITS.sub('', str(cursor))
    return digits or None


def dedupe_preserving_order(items: Iterable[str]) -> List[str]:
    """Return items without repeats, keeping the first occurrence of each."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def get_current_timestamp() -> str:
    """
    Get the current UTC timestamp in ISO 8601 format.

    Returns:
        str: Current UTC timestamp formatted as ``YYYY-MM-DDTHH:MM:SSZ``
    """
    utc_now = datetime.now(timezone.utc)
    return utc_now.strftime('%Y-%m-%dT%H:%M:%SZ')


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)
