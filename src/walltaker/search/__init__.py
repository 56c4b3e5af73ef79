"""
Tag search engine: query compilation, upstream client and orchestration.
"""

from walltaker.search.compiler import (
    Query,
    QueryCompiler,
    build_cache_key,
    encode_tags,
    select_ttl,
)
from walltaker.search.client import SearchClient
from walltaker.search.service import TagSearchService

__all__ = [
    'Query',
    'QueryCompiler',
    'build_cache_key',
    'encode_tags',
    'select_ttl',
    'SearchClient',
    'TagSearchService',
]
