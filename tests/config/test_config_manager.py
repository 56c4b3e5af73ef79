"""
Tests for Configuration Models and Manager

Tests Pydantic validation, file loading, environment overrides and CLI
argument precedence.
"""

import json

import pytest
import yaml
from pydantic import ValidationError

from walltaker.core.config import AppConfig, CacheSettings, ConfigManager, SearchConfig
from walltaker.core.exceptions import ConfigurationError, ErrorCode


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep developer config files and WALLTAKER_* variables out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.delenv('XDG_CONFIG_HOME', raising=False)
    for name in ('WALLTAKER_USER_AGENT', 'WALLTAKER_CACHE_TTL', 'WALLTAKER_VERBOSE',
                 'WALLTAKER_REQUEST_TIMEOUT', 'WALLTAKER_CACHE_ENABLED'):
        monkeypatch.delenv(name, raising=False)


class TestConfigModels:

    def test_defaults(self):
        config = AppConfig()
        assert config.search.base_url == "https://e621.net"
        assert config.search.default_limit == 15
        assert config.search.count_limit == 150
        assert config.cache.default_ttl == 2700
        assert config.cache.random_order_ttl == 60
        assert config.verbose is False

    def test_base_url_trailing_slash_removed(self):
        assert SearchConfig(base_url="https://search.example///").base_url == "https://search.example"

    def test_base_url_scheme_required(self):
        with pytest.raises(ValidationError):
            SearchConfig(base_url="ftp://search.example")

    def test_fetch_timeout_must_cover_request_timeout(self):
        with pytest.raises(ValidationError):
            SearchConfig(request_timeout=20, fetch_timeout=10)

    def test_random_ttl_cannot_exceed_default(self):
        with pytest.raises(ValidationError):
            CacheSettings(default_ttl=30, random_order_ttl=60)

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            AppConfig(unknown_section={})

    def test_assignment_validated(self):
        config = AppConfig()
        with pytest.raises(ValidationError):
            config.verbose = "definitely"


class TestConfigManager:

    def test_defaults_without_sources(self):
        config = ConfigManager().load_config()
        assert config == AppConfig()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.dump({'search': {'default_limit': 30}, 'cache': {'enabled': False}}))

        config = ConfigManager(path).load_config()
        assert config.search.default_limit == 30
        assert config.cache.enabled is False

    def test_json_file(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({'verbose': True}))
        assert ConfigManager(path).load_config().verbose is True

    def test_default_search_path(self, tmp_path):
        (tmp_path / "walltaker.yaml").write_text("search:\n  max_workers: 2\n")
        assert ConfigManager().load_config().search.max_workers == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager(tmp_path / "nope.yaml").load_config()
        assert exc_info.value.error_code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("search:\n  default_limit: 0\n")

        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager(path).load_config()
        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc_info.value.recoverable is False

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("cache:\n  default_ttl: 100\n  random_order_ttl: 10\n")
        monkeypatch.setenv('WALLTAKER_CACHE_TTL', '200')
        monkeypatch.setenv('WALLTAKER_USER_AGENT', 'tests/1.0')

        config = ConfigManager(path).load_config()
        assert config.cache.default_ttl == 200
        assert config.cache.random_order_ttl == 10
        assert config.search.user_agent == 'tests/1.0'

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv('WALLTAKER_REQUEST_TIMEOUT', 'soon')
        with pytest.raises(ConfigurationError):
            ConfigManager().load_config()

    def test_boolean_environment_value(self, monkeypatch):
        monkeypatch.setenv('WALLTAKER_CACHE_ENABLED', 'off')
        assert ConfigManager().load_config().cache.enabled is False

    def test_cli_args_take_precedence(self, monkeypatch):
        monkeypatch.setenv('WALLTAKER_VERBOSE', 'false')
        config = ConfigManager().load_config({
            'verbose': True,
            'no_cache': True,
            'base_url': 'https://other.example/',
            'timeout': 4,
            'unrelated': 'ignored',
        })

        assert config.verbose is True
        assert config.cache.enabled is False
        assert config.search.base_url == 'https://other.example'
        assert config.search.request_timeout == 4

    def test_none_cli_values_ignored(self):
        config = ConfigManager().load_config({'verbose': None, 'no_cache': None})
        assert config.cache.enabled is True

    def test_dump_round_trips_through_yaml(self):
        manager = ConfigManager()
        config = manager.load_config({'verbose': True})
        data = yaml.safe_load(manager.dump())
        assert data['verbose'] is True
        assert data['search']['base_url'] == config.search.base_url
