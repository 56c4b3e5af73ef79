"""
Tag search orchestration.

Compiles a query for a link, answers it from cache when possible, and
otherwise fetches from the search API on a worker thread bounded by a
timeout, filters the result and caches it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional

from walltaker.core.cache.manager import CacheManager
from walltaker.core.config.models import AppConfig
from walltaker.core.events import EventEmitter, SearchCompletedEvent, UpstreamFailureEvent
from walltaker.core.exceptions import UpstreamUnavailableError
from walltaker.filters.media_type import filter_posts
from walltaker.models import Link
from walltaker.search.client import SearchClient
from walltaker.search.compiler import Query, QueryCompiler, select_ttl


logger = logging.getLogger(__name__)

Results = List[Dict[str, Any]]


class TagSearchService:
    """
    Answers tag searches on behalf of links.

    ``get_results`` returns a list of raw posts, an empty list when the
    search matched nothing, or None when the search API is unavailable.
    Results are filtered once, before caching. Callers always get their own
    copy of the list, so changing it never touches the cached entry.
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 cache: Optional[CacheManager] = None,
                 client: Optional[SearchClient] = None,
                 compiler: Optional[QueryCompiler] = None,
                 emitter: Optional[EventEmitter] = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        """
        Initialize the service.

        Args:
            config: Application configuration
            cache: Result cache; built from config when omitted, None-able via config
            client: Search API client
            compiler: Query compiler
            emitter: Event emitter for tracking
            executor: Pool running upstream fetches
        """
        self.config = config or AppConfig()
        self.emitter = emitter or EventEmitter()
        self.compiler = compiler or QueryCompiler()
        self.client = client or SearchClient(self.config.search, emitter=self.emitter)

        if cache is not None:
            self.cache = cache
        elif self.config.cache.enabled:
            self.cache = CacheManager(self.config.cache)
        else:
            self.cache = None

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.search.max_workers,
            thread_name_prefix="search-"
        )

    def get_results(self, raw_tags: str, after: Optional[str] = None,
                    before: Optional[str] = None, link: Optional[Link] = None,
                    limit: Optional[int] = None) -> Optional[Results]:
        """
        Search for posts, applying the link's rules.

        Args:
            raw_tags: Tags typed by the person searching
            after: Cursor for older posts
            before: Cursor for newer posts
            link: Link whose rules apply, None for a global search
            limit: Maximum number of posts, defaults to the configured limit

        Returns:
            Posts, an empty list, or None when upstream is unavailable
        """
        if limit is None:
            limit = self.config.search.default_limit
        query = self.compiler.build_query(raw_tags, after, before, link, limit)
        key = query.cache_key

        cached = self._cache_read(key)
        if cached is not None:
            self._track_search(query, link, cache_hit=True, fetched=len(cached), returned=len(cached))
            return list(cached)

        posts = self._fetch(query, link)
        if posts is None:
            return None

        if not posts:
            self._track_search(query, link, cache_hit=False, fetched=0, returned=0)
            return []

        results = filter_posts(posts, query.allow_motion)
        self._cache_write(key, results, select_ttl(
            query.compiled_tags,
            self.config.cache.default_ttl,
            self.config.cache.random_order_ttl
        ))

        self._track_search(query, link, cache_hit=False, fetched=len(posts), returned=len(results))
        return list(results)

    def get_post(self, post_id: Any, link: Optional[Link] = None) -> Optional[Dict[str, Any]]:
        """Look up a single post by id, within the link's rules."""
        results = self.get_results(f"id:{post_id}", None, None, link, 1)
        return results[0] if results else None

    def get_possible_post_count(self, link: Link) -> Optional[int]:
        """How many posts a blank search on this link yields, up to the count limit."""
        results = self.get_results('', None, None, link, self.config.search.count_limit)
        return len(results) if results is not None else None

    def get_search_base(self, link: Link) -> str:
        """Tags implicitly added to every search on this link."""
        return self.compiler.search_base(link)

    def _fetch(self, query: Query, link: Optional[Link]) -> Optional[Results]:
        context = {
            'action': 'get_results',
            'link_id': link.id if link else None,
            'link_owner_id': link.user_id if link else None,
        }
        future = self._executor.submit(
            self.client.fetch,
            query.compiled_tags,
            query.after,
            query.before,
            query.limit,
            context,
        )

        try:
            return future.result(timeout=self.config.search.fetch_timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.error(
                f"Search for '{query.compiled_tags}' exceeded {self.config.search.fetch_timeout}s"
            )
            self.emitter.emit(UpstreamFailureEvent(
                url=self.client.build_url(query.compiled_tags, query.after, query.before, query.limit),
                error_message="fetch timed out",
                **context
            ))
            return None
        except UpstreamUnavailableError as e:
            logger.warning(f"Search API unavailable: {e.message}")
            return None

    def _cache_read(self, key: str) -> Optional[Results]:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

    def _cache_write(self, key: str, results: Results, ttl: float) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, results, ttl)
        except Exception as e:
            logger.warning(f"Cache write skipped for {key}: {e}")

    def _track_search(self, query: Query, link: Optional[Link], cache_hit: bool,
                      fetched: int, returned: int) -> None:
        self.emitter.emit(SearchCompletedEvent(
            compiled_tags=query.compiled_tags,
            cache_key=query.cache_key,
            cache_hit=cache_hit,
            result_count=returned,
            filtered_count=fetched - returned,
            link_id=link.id if link else None,
        ))

    def close(self) -> None:
        """Release the worker pool and HTTP session."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        self.client.close()

    def __enter__(self) -> 'TagSearchService':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
