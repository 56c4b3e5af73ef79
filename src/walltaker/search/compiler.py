"""
Tag query compilation.

Turns a raw tag string plus a link's filtering rules into the final tag
string sent upstream, and derives the cache signature and cache lifetime
for that query.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote_plus

from walltaker.models import Link
from walltaker.utils import dedupe_preserving_order, sanitize_blacklist


logger = logging.getLogger(__name__)

CACHE_KEY_VERSION = "v1"
RANDOM_ORDER_PATTERN = re.compile(r'order:random', re.IGNORECASE)
DEFAULT_TTL = 45 * 60.0
RANDOM_ORDER_TTL = 60.0

FLASH_EXCLUSION = "-flash"
MOTION_EXCLUSION = "-animated"


def encode_tags(compiled_tags: str) -> str:
    """Percent-encode a compiled tag string for use as a query parameter."""
    return quote_plus(compiled_tags)


def build_cache_key(compiled_tags: str, after: Optional[str], before: Optional[str],
                    limit: int, allow_motion: bool) -> str:
    """
    Derive the cache signature of a search.

    Absent cursors render as empty segments, so ``after=None`` and
    ``after=""`` share a key.

    Examples:
        >>> build_cache_key("cat -flash", None, "b_12", 15, False)
        'v1/tagresults/cat+-flash//b_12/15/false'
    """
    return "/".join([
        CACHE_KEY_VERSION,
        "tagresults",
        encode_tags(compiled_tags),
        after or "",
        before or "",
        str(limit),
        "true" if allow_motion else "false",
    ])


def select_ttl(compiled_tags: str, default_ttl: float = DEFAULT_TTL,
               random_order_ttl: float = RANDOM_ORDER_TTL) -> float:
    """Randomly ordered results only live briefly, everything else for the default TTL."""
    if RANDOM_ORDER_PATTERN.search(compiled_tags):
        return random_order_ttl
    return default_ttl


@dataclass(frozen=True)
class Query:
    """One fetch cycle's worth of search parameters."""
    raw_tags: str
    compiled_tags: str
    after: Optional[str] = None
    before: Optional[str] = None
    limit: int = 15
    allow_motion: bool = True

    @property
    def encoded_tags(self) -> str:
        return encode_tags(self.compiled_tags)

    @property
    def cache_key(self) -> str:
        return build_cache_key(self.compiled_tags, self.after, self.before,
                               self.limit, self.allow_motion)

    @property
    def is_random_order(self) -> bool:
        return bool(RANDOM_ORDER_PATTERN.search(self.compiled_tags))

    @property
    def ttl(self) -> float:
        return select_ttl(self.compiled_tags)


class QueryCompiler:
    """
    Builds the tag string sent to the search API for a link.

    With no link the raw tags pass through untouched and motion content is
    allowed. With a link, blacklisted tags are removed from the query,
    duplicates dropped, and a suffix appended that enforces the link's
    rules:

        ``-flash [theme] [-blacklisted ...] [score:>N] [-animated] [~kink ...]``
    """

    def compile(self, raw_tags: str, link: Optional[Link] = None) -> str:
        """
        Compile a raw tag string against a link's rules.

        Args:
            raw_tags: Tags typed by the person searching
            link: Link whose rules apply, None for a global search

        Returns:
            The compiled, unencoded tag string
        """
        raw_tags = raw_tags or ""
        if link is None:
            return raw_tags

        blacklist = sanitize_blacklist(link.blacklist)
        query_tags = self.dedupe_tags(raw_tags, blacklist)

        parts = query_tags + self.suffix_tokens(link, blacklist, " ".join(query_tags))
        return " ".join(parts)

    def dedupe_tags(self, raw_tags: str, sanitized_blacklist: str) -> List[str]:
        """Drop blacklisted and repeated tags, keeping first-occurrence order."""
        blacklist_tags = set(sanitized_blacklist.split())
        return dedupe_preserving_order(
            tag for tag in raw_tags.split() if tag not in blacklist_tags
        )

    def suffix_tokens(self, link: Link, sanitized_blacklist: str, query: str) -> List[str]:
        """
        Build the rule-enforcing suffix for a link.

        Kink tags are skipped when any kink name already occurs in the query.
        The occurrence test is a plain substring check on the whole query
        string, so a kink named ``cat`` is also considered present when the
        query contains ``catgirl``.
        """
        tokens = [FLASH_EXCLUSION]

        if link.theme:
            tokens.append(link.theme)

        tokens.extend(f"-{tag}" for tag in sanitized_blacklist.split())

        if link.min_score:
            tokens.append(f"score:>{link.min_score}")

        if not link.can_show_videos:
            tokens.append(MOTION_EXCLUSION)

        if link.is_kink_aligned:
            kinks = [kink for kink in link.kinks if kink]
            if not any(kink in query for kink in kinks):
                tokens.extend(f"~{kink}" for kink in kinks)

        return tokens

    def search_base(self, link: Link) -> str:
        """The suffix every search on this link is implicitly extended with."""
        return " ".join(self.suffix_tokens(link, sanitize_blacklist(link.blacklist), ""))

    def build_query(self, raw_tags: str, after: Optional[str] = None,
                    before: Optional[str] = None, link: Optional[Link] = None,
                    limit: int = 15) -> Query:
        """Compile tags and bundle them with paging parameters."""
        compiled = self.compile(raw_tags, link)
        allow_motion = True if link is None else link.can_show_videos
        logger.debug(f"Compiled '{raw_tags}' to '{compiled}'")
        return Query(
            raw_tags=raw_tags or "",
            compiled_tags=compiled,
            after=after,
            before=before,
            limit=limit,
            allow_motion=allow_motion,
        )
