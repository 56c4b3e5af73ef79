"""
Search result filters.

Filters run once, on freshly fetched results, before they are cached.
"""

from walltaker.filters.base import Filter, FilterResult, file_extension
from walltaker.filters.media_type import StillImageFilter, STILL_IMAGE_EXTENSIONS, filter_posts

__all__ = [
    'Filter',
    'FilterResult',
    'file_extension',
    'StillImageFilter',
    'STILL_IMAGE_EXTENSIONS',
    'filter_posts',
]
