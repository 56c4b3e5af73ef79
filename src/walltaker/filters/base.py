"""
Abstract Filter Base Classes

Defines the interface for post filters applied to search results after
they are fetched. Filters return FilterResult objects describing why a post
passed or failed.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from walltaker.models import Post


PostLike = Any  # raw posts.json dict or Post


@dataclass
class FilterResult:
    """
    Result of applying a filter to a post.

    Attributes:
        passed: Whether the post passed the filter
        reason: Human-readable reason for pass/fail
        metadata: Additional filter-specific metadata
    """
    passed: bool
    reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


class Filter(ABC):
    """
    Abstract base class for search result filters.

    Filters are stateless and thread-safe; they never mutate the post they
    are given.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the filter."""

    @abstractmethod
    def apply(self, post: PostLike) -> FilterResult:
        """
        Apply the filter to a post.

        Args:
            post: Raw post dictionary or Post

        Returns:
            FilterResult indicating whether the post passed the filter
        """

    def filter(self, posts: Sequence[PostLike]) -> List[PostLike]:
        """Return the posts that pass, in their original order."""
        return [post for post in posts if self.apply(post).passed]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(config={self.config})"


def file_extension(post: PostLike) -> str:
    """Lower-cased file extension of a raw post or Post, empty if unknown."""
    if isinstance(post, Post):
        return post.file_ext

    if isinstance(post, dict):
        file_info = post.get('file')
        if isinstance(file_info, dict):
            return str(file_info.get('ext') or '').lower()

    return ''
