"""
Tests for the Walltaker exception hierarchy.
"""

import pytest

from walltaker.core.exceptions import (
    BroadcastAssemblyError,
    CacheError,
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    HistoryStoreError,
    NetworkError,
    ReactionError,
    UpstreamUnavailableError,
    ValidationError,
    WalltakerError,
    config_error,
    upstream_error,
    validation_error,
)


class TestWalltakerError:

    def test_defaults(self):
        error = WalltakerError("something broke")
        assert error.message == "something broke"
        assert error.error_code == ErrorCode.UNKNOWN_ERROR
        assert error.recoverable is True
        assert len(error.context.correlation_id) == 8
        assert 'platform' in error.context.system_info

    def test_user_message(self):
        error = WalltakerError("bad", error_code=ErrorCode.INTERNAL_ERROR,
                               context=ErrorContext(correlation_id="abc"))
        assert error.get_user_message() == "Error: bad\nError Code: 9001\nCorrelation ID: abc"

    def test_debug_info_includes_cause(self):
        cause = KeyError("missing")
        info = WalltakerError("wrapped", cause=cause).get_debug_info()
        assert info['error_type'] == "WalltakerError"
        assert info['cause']['type'] == "KeyError"


class TestSubclasses:

    def test_upstream_error(self):
        error = upstream_error("HTTP 500", url="https://search.example", status_code=500)
        assert isinstance(error, UpstreamUnavailableError)
        assert isinstance(error, NetworkError)
        assert error.error_code == ErrorCode.UPSTREAM_UNAVAILABLE
        assert error.context.url == "https://search.example"
        assert error.context.user_context['status_code'] == 500

    def test_configuration_error_not_recoverable(self):
        error = config_error("bad value", key="search.base_url")
        assert isinstance(error, ConfigurationError)
        assert error.recoverable is False
        assert error.context.user_context['config_key'] == "search.base_url"

    def test_validation_error(self):
        error = validation_error("too high", field="min_score", error_code=ErrorCode.VALIDATION_RANGE_ERROR)
        assert isinstance(error, ValidationError)
        assert error.field_name == "min_score"
        assert error.error_code == ErrorCode.VALIDATION_RANGE_ERROR

    def test_cache_error_records_key(self):
        error = CacheError("read failed", key="v1/tagresults/cat////15/true")
        assert error.context.user_context['cache_key'] == "v1/tagresults/cat////15/true"

    @pytest.mark.parametrize("error_class, code", [
        (ReactionError, ErrorCode.REACTION_FAILED),
        (BroadcastAssemblyError, ErrorCode.BROADCAST_ASSEMBLY_FAILED),
    ])
    def test_link_errors_record_link_id(self, error_class, code):
        error = error_class("failed", link_id=12)
        assert error.error_code == code
        assert error.context.link_id == 12

    def test_history_store_error(self):
        assert HistoryStoreError("locked").error_code == ErrorCode.HISTORY_STORE_FAILED
