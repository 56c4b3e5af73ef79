#!/usr/bin/env python3
"""
Imageboard search API client.

Fetches ``posts.json`` for a compiled tag string, translating opaque
pagination cursors into the API's ``page=b<id>`` / ``page=a<id>`` syntax.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from walltaker.core.config.models import SearchConfig
from walltaker.core.events import EventEmitter, UpstreamFailureEvent
from walltaker.core.exceptions import ErrorCode, ErrorContext, upstream_error
from walltaker.search.compiler import encode_tags
from walltaker.utils import extract_cursor_digits


logger = logging.getLogger(__name__)


class SearchClient:
    """
    HTTP client for the upstream search API.

    A non-success status or a transport failure raises
    ``UpstreamUnavailableError`` so callers can tell "upstream down" apart
    from "no results". A successful response without a usable ``posts``
    list yields an empty result instead.
    """

    def __init__(self, config: Optional[SearchConfig] = None,
                 session: Optional[requests.Session] = None,
                 emitter: Optional[EventEmitter] = None):
        """
        Initialize the client.

        Args:
            config: Search API configuration
            session: Optional pre-configured requests session
            emitter: Event emitter receiving failure events
        """
        self.config = config or SearchConfig()
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.config.user_agent})
        self.emitter = emitter

    def build_url(self, compiled_tags: str, after: Optional[str] = None,
                  before: Optional[str] = None, limit: int = 15) -> str:
        """
        Build the request URL for a search.

        ``after`` asks for posts older than the cursor (``page=b``), ``before``
        for posts newer than it (``page=a``). Cursors without any digits are
        ignored.
        """
        url = f"{self.config.base_url}/posts.json?tags={encode_tags(compiled_tags)}"

        after_id = extract_cursor_digits(after)
        if after_id:
            url = f"{url}&page=b{after_id}"

        before_id = extract_cursor_digits(before)
        if before_id:
            url = f"{url}&page=a{before_id}"

        return f"{url}&limit={limit}"

    def fetch(self, compiled_tags: str, after: Optional[str] = None,
              before: Optional[str] = None, limit: int = 15,
              context: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Fetch posts for a compiled tag string.

        Args:
            compiled_tags: Output of QueryCompiler.compile
            after: Cursor for older posts
            before: Cursor for newer posts
            limit: Maximum number of posts
            context: Tracking context (link id, owner id, action) for failure events

        Returns:
            The ``posts`` list, empty when the body is not shaped as expected

        Raises:
            UpstreamUnavailableError: On transport failure or non-200 status
        """
        url = self.build_url(compiled_tags, after, before, limit)
        context = context or {}

        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
        except requests.Timeout as e:
            self._track_failure(url, None, str(e), context)
            raise upstream_error(f"Search API timed out: {e}", url=url,
                                 error_code=ErrorCode.NETWORK_TIMEOUT, cause=e)
        except requests.RequestException as e:
            self._track_failure(url, None, str(e), context)
            raise upstream_error(f"Search API unreachable: {e}", url=url, cause=e)

        if response.status_code != 200:
            self._track_failure(url, response.status_code, response.reason or "", context)
            raise upstream_error(
                f"Search API returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
                context=ErrorContext(operation="fetch", link_id=context.get('link_id'))
            )

        try:
            body = response.json()
        except ValueError:
            logger.warning(f"Search API returned a non-JSON body for {url}")
            return []

        posts = body.get('posts') if isinstance(body, dict) else None
        if not isinstance(posts, list):
            logger.debug(f"No posts list in response for {url}")
            return []

        return posts

    def _track_failure(self, url: str, status_code: Optional[int], message: str,
                       context: Dict[str, Any]) -> None:
        logger.error(f"Search API request failed ({status_code or 'no response'}): {url}")
        if self.emitter:
            self.emitter.emit(UpstreamFailureEvent(
                url=url,
                status_code=status_code,
                error_message=message,
                action=context.get('action', ''),
                link_id=context.get('link_id'),
                link_owner_id=context.get('link_owner_id'),
            ))

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
