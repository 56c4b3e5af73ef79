"""
Core Exception Hierarchy for Walltaker

Provides error classification with error codes and detailed context
information, so that recoverable failures (upstream, cache) can be told
apart from programmer errors and persistence failures.
"""

import sys
import traceback
import time
import uuid
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass, field


class ErrorCode(Enum):
    """Standard error codes for different error categories."""

    # Network related errors (1000-1999)
    NETWORK_CONNECTION_FAILED = 1001
    NETWORK_TIMEOUT = 1002
    NETWORK_INVALID_RESPONSE = 1006
    UPSTREAM_UNAVAILABLE = 1101

    # Configuration errors (3000-3999)
    CONFIG_INVALID_FORMAT = 3001
    CONFIG_INVALID_VALUE = 3003
    CONFIG_FILE_NOT_FOUND = 3004

    # Cache errors (4000-4999)
    CACHE_READ_FAILED = 4001
    CACHE_WRITE_FAILED = 4002

    # Validation errors (5000-5999)
    VALIDATION_INVALID_INPUT = 5001
    VALIDATION_MISSING_FIELD = 5002
    VALIDATION_RANGE_ERROR = 5004
    VALIDATION_FORMAT_ERROR = 5005
    VALIDATION_CONSTRAINT_VIOLATION = 5006

    # Link errors (6000-6999)
    REACTION_FAILED = 6001
    BROADCAST_ASSEMBLY_FAILED = 6002
    HISTORY_STORE_FAILED = 6003

    # Generic/unknown errors (9000-9999)
    UNKNOWN_ERROR = 9000
    INTERNAL_ERROR = 9001


@dataclass
class ErrorContext:
    """Contextual information about an error occurrence."""

    operation: str = ""
    url: Optional[str] = None
    link_id: Optional[int] = None
    user_id: Optional[int] = None
    correlation_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    system_info: Dict[str, Any] = field(default_factory=dict)
    user_context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            'operation': self.operation,
            'url': self.url,
            'link_id': self.link_id,
            'user_id': self.user_id,
            'correlation_id': self.correlation_id,
            'timestamp': self.timestamp,
            'system_info': self.system_info,
            'user_context': self.user_context
        }


class WalltakerError(Exception):
    """
    Base exception for all Walltaker errors.

    Carries an error code, a context object and the original cause so that
    callers can log a structured record of what went wrong.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        """
        Initialize Walltaker error.

        Args:
            message: Human-readable error description
            error_code: Standardized error code
            context: Contextual information about the error
            cause: Original exception that caused this error
            recoverable: Whether the error can potentially be recovered
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self.recoverable = recoverable
        self.stack_trace = traceback.format_exc()

        if not self.context.correlation_id:
            self.context.correlation_id = str(uuid.uuid4())[:8]

        if not self.context.system_info:
            self.context.system_info = {
                'platform': sys.platform,
                'python_version': sys.version,
            }

    def get_user_message(self) -> str:
        """Get user-friendly error message."""
        lines = [f"Error: {self.message}"]

        if self.error_code != ErrorCode.UNKNOWN_ERROR:
            lines.append(f"Error Code: {self.error_code.value}")

        if self.context.correlation_id:
            lines.append(f"Correlation ID: {self.context.correlation_id}")

        return "\n".join(lines)

    def get_debug_info(self) -> Dict[str, Any]:
        """Get comprehensive debug information."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code.value,
            'recoverable': self.recoverable,
            'context': self.context.to_dict(),
            'cause': {
                'type': type(self.cause).__name__ if self.cause else None,
                'message': str(self.cause) if self.cause else None
            },
            'stack_trace': self.stack_trace
        }


class NetworkError(WalltakerError):
    """Exception for network-related errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NETWORK_CONNECTION_FAILED,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext()
        if url:
            context.url = url
        context.user_context['status_code'] = status_code

        kwargs['context'] = context
        kwargs['error_code'] = error_code

        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code


class UpstreamUnavailableError(NetworkError):
    """The search API answered with a non-success status or could not be reached."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('error_code', ErrorCode.UPSTREAM_UNAVAILABLE)
        super().__init__(message, **kwargs)


class ConfigurationError(WalltakerError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_INVALID_FORMAT,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext()
        if config_key:
            context.user_context['config_key'] = config_key
            context.user_context['config_value'] = config_value

        kwargs['context'] = context
        kwargs['error_code'] = error_code
        kwargs.setdefault('recoverable', False)

        super().__init__(message, **kwargs)


class CacheError(WalltakerError):
    """Exception for cache backend failures. Always recoverable."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CACHE_READ_FAILED,
        key: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext()
        if key:
            context.user_context['cache_key'] = key

        kwargs['context'] = context
        kwargs['error_code'] = error_code

        super().__init__(message, **kwargs)


class ValidationError(WalltakerError):
    """Exception for input validation errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_INVALID_INPUT,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext()
        if field_name:
            context.user_context['field_name'] = field_name
            context.user_context['field_value'] = field_value

        kwargs['context'] = context
        kwargs['error_code'] = error_code
        kwargs.setdefault('recoverable', False)

        super().__init__(message, **kwargs)
        self.field_name = field_name


class ReactionError(WalltakerError):
    """A reaction could not be applied; neither history nor link were changed."""

    def __init__(self, message: str, link_id: Optional[int] = None, **kwargs):
        context = kwargs.get('context') or ErrorContext(operation='on_link_react')
        if link_id is not None:
            context.link_id = link_id

        kwargs['context'] = context
        kwargs.setdefault('error_code', ErrorCode.REACTION_FAILED)

        super().__init__(message, **kwargs)


class HistoryStoreError(WalltakerError):
    """Exception raised by the history store when SQLite operations fail."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('error_code', ErrorCode.HISTORY_STORE_FAILED)
        super().__init__(message, **kwargs)


class BroadcastAssemblyError(WalltakerError):
    """Building a link broadcast payload failed."""

    def __init__(self, message: str, link_id: Optional[int] = None, **kwargs):
        context = kwargs.get('context') or ErrorContext(operation='build_payload')
        if link_id is not None:
            context.link_id = link_id

        kwargs['context'] = context
        kwargs.setdefault('error_code', ErrorCode.BROADCAST_ASSEMBLY_FAILED)

        super().__init__(message, **kwargs)


def upstream_error(message: str, url: Optional[str] = None,
                   status_code: Optional[int] = None, **kwargs) -> UpstreamUnavailableError:
    """Create an upstream error carrying the failing URL and status."""
    return UpstreamUnavailableError(message, url=url, status_code=status_code, **kwargs)


def config_error(message: str, key: Optional[str] = None, **kwargs) -> ConfigurationError:
    """Create a configuration error with key context."""
    return ConfigurationError(message, config_key=key, **kwargs)


def validation_error(message: str, field: Optional[str] = None, **kwargs) -> ValidationError:
    """Create a validation error with field context."""
    return ValidationError(message, field_name=field, **kwargs)
