#!/usr/bin/env python3
"""
Link, history and post data containers.

This module provides the data structures shared by the search engine and the
reaction machine: the Link being controlled, its capability flags, the
immutable history of content it displayed, and normalized upstream posts.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

from walltaker.core.exceptions import ErrorCode, ValidationError
from walltaker.utils import utc_now


logger = logging.getLogger(__name__)

ONLINE_PING_WINDOW = timedelta(minutes=1)
LIVE_CLIENT_WINDOW = timedelta(days=7)
MIN_SCORE_RANGE = (0, 300)


class Capability(str, Enum):
    """Permissions a link owner can grant to their link."""
    CAN_SHOW_VIDEOS = "can_show_videos"
    IS_KINK_ALIGNED = "is_kink_aligned"


class ReactionType(str, Enum):
    """Reactions a link owner can give to the content currently displayed."""
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CLIMAXED = "climaxed"


@dataclass
class Link:
    """
    A controllable content-display slot and its filtering rules.

    Content fields (``post_url``, ``post_thumbnail_url``,
    ``post_description``) describe what the link currently shows.
    ``response_type`` is None until the owner reacts to that content.
    """

    id: int
    user_id: int
    username: str = ""
    set_by_id: Optional[int] = None
    set_by_username: Optional[str] = None

    # Current content
    post_url: Optional[str] = None
    post_thumbnail_url: Optional[str] = None
    post_description: Optional[str] = None

    # Reaction state
    response_type: Optional[ReactionType] = None
    response_text: Optional[str] = None

    # Filtering rules
    blacklist: str = ""
    theme: Optional[str] = None
    min_score: int = 0
    capabilities: Set[Capability] = field(default_factory=set)
    kinks: List[str] = field(default_factory=list)
    terms: str = ""
    friends_only: bool = False

    # Liveness
    last_ping: Optional[datetime] = None
    last_ping_user_agent: Optional[str] = None
    live_client_started_at: Optional[datetime] = None

    # Expiry
    expires: Optional[datetime] = None
    never_expires: bool = False

    updated_at: Optional[datetime] = None

    def has_capability(self, capability: Capability) -> bool:
        """Check whether the owner granted a capability."""
        return capability in self.capabilities

    @property
    def can_show_videos(self) -> bool:
        return self.has_capability(Capability.CAN_SHOW_VIDEOS)

    @property
    def is_kink_aligned(self) -> bool:
        return self.has_capability(Capability.IS_KINK_ALIGNED)

    def validation_errors(self) -> List[str]:
        """
        Check the link invariants.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.expires is None and not self.never_expires:
            errors.append("expires can't be blank unless the link never expires.")

        if self.theme:
            if any(ch.isspace() for ch in self.theme):
                errors.append("theme must be only 1 tag.")
            if ':' in self.theme:
                errors.append(
                    "theme must not contain filter or sort tags. (like score:>30) "
                    "Use the Minimum Score setting instead."
                )

        low, high = MIN_SCORE_RANGE
        if self.min_score is not None and not low <= self.min_score <= high:
            errors.append(f"min_score must be between {low} and {high}.")

        return errors

    def validate(self) -> None:
        """
        Raise if the link breaks one of its invariants.

        Raises:
            ValidationError: Carrying every violated rule in its message
        """
        errors = self.validation_errors()
        if errors:
            raise ValidationError(
                "; ".join(errors),
                error_code=ErrorCode.VALIDATION_CONSTRAINT_VIOLATION,
                field_name="link",
                field_value=self.id
            )

    def is_online(self, now: Optional[datetime] = None) -> bool:
        """
        A link is online when a client pinged it within the last minute, or
        a persistent client was started on it within the last week.
        """
        now = now or utc_now()
        pinged = self.last_ping is not None and self.last_ping > now - ONLINE_PING_WINDOW
        live_client = (
            self.live_client_started_at is not None
            and self.live_client_started_at > now - LIVE_CLIENT_WINDOW
        )
        return pinged or live_client

    def set_post(self, post_url: Optional[str], thumbnail_url: Optional[str] = None,
                 description: Optional[str] = None, set_by_id: Optional[int] = None,
                 set_by_username: Optional[str] = None) -> None:
        """Display new content; clears any reaction to the previous content."""
        self.post_url = post_url
        self.post_thumbnail_url = thumbnail_url
        self.post_description = description
        self.set_by_id = set_by_id
        self.set_by_username = set_by_username
        self.response_type = None
        self.response_text = None

    def snapshot(self) -> 'Link':
        """Deep copy used to diff a link before and after an update."""
        return copy.deepcopy(self)


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of content a link displayed in the past."""
    id: int
    link_id: int
    post_url: Optional[str]
    post_thumbnail_url: Optional[str]
    created_at: datetime


def record_presence(link: Link, user_agent: Optional[str] = None,
                    headers: Optional[Mapping[str, str]] = None,
                    now: Optional[datetime] = None) -> Link:
    """
    Stamp a client contact on the link.

    The stored user agent is the request's user agent followed by the
    ``joihow``, ``User_Agent`` and ``Wallpaper-Engine-Client`` headers when
    a client sends them.

    Args:
        link: Link being polled
        user_agent: The request's User-Agent
        headers: Request headers
        now: Contact time, defaults to the current UTC time

    Returns:
        The same link, mutated
    """
    headers = headers or {}
    link.last_ping = now or utc_now()

    if user_agent:
        link.last_ping_user_agent = user_agent

    if link.last_ping_user_agent:
        if headers.get('joihow'):
            link.last_ping_user_agent += ' ' + headers['joihow']
        if headers.get('User_Agent'):
            link.last_ping_user_agent += ' ' + headers['User_Agent']
        if headers.get('Wallpaper-Engine-Client'):
            link.last_ping_user_agent += ' Wallpaper-Engine-Client/' + headers['Wallpaper-Engine-Client']

    return link


@dataclass
class Post:
    """
    Normalized post returned by the imageboard search API.

    Search results are cached and returned as the raw dictionaries; this
    class gives callers typed access to the fields the engine relies on.
    """

    id: int
    file_ext: str = ""
    file_url: Optional[str] = None
    preview_url: Optional[str] = None
    description: str = ""
    score: int = 0
    tags: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> 'Post':
        """
        Create a Post from a ``posts.json`` entry.

        Raises:
            ValueError: If the post has no id
        """
        if raw.get('id') is None:
            raise ValueError("Post ID is required but missing from raw data")

        file_info = raw.get('file') if isinstance(raw.get('file'), dict) else {}
        preview = raw.get('preview') if isinstance(raw.get('preview'), dict) else {}

        score = raw.get('score', 0)
        if isinstance(score, dict):
            score = score.get('total', 0)
        try:
            score_val = int(score or 0)
        except (ValueError, TypeError):
            score_val = 0

        tags_val: List[str] = []
        raw_tags = raw.get('tags')
        if isinstance(raw_tags, dict):
            for group in raw_tags.values():
                if isinstance(group, list):
                    tags_val.extend(str(t) for t in group)
        elif isinstance(raw_tags, str):
            tags_val = raw_tags.split()

        return cls(
            id=int(raw['id']),
            file_ext=str(file_info.get('ext') or '').lower(),
            file_url=file_info.get('url'),
            preview_url=preview.get('url'),
            description=str(raw.get('description') or ''),
            score=score_val,
            tags=tags_val,
            raw=raw,
        )
