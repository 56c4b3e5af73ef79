"""
Core Walltaker Package

Contains core infrastructure components: configuration, caching, events
and error handling.
"""

from walltaker.core.exceptions import (
    WalltakerError,
    NetworkError,
    UpstreamUnavailableError,
    ConfigurationError,
    CacheError,
    ValidationError,
    ReactionError,
    HistoryStoreError,
    BroadcastAssemblyError,
    ErrorCode,
    ErrorContext,
)

__version__ = "0.2.0"

__all__ = [
    'WalltakerError',
    'NetworkError',
    'UpstreamUnavailableError',
    'ConfigurationError',
    'CacheError',
    'ValidationError',
    'ReactionError',
    'HistoryStoreError',
    'BroadcastAssemblyError',
    'ErrorCode',
    'ErrorContext',
]
