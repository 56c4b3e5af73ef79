"""
Tests for the walltaker CLI commands.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from conftest import make_post
from walltaker.cli.main import app, build_link
from walltaker.models import Capability
from walltaker.reactions import HistoryStore


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.delenv('XDG_CONFIG_HOME', raising=False)


@pytest.fixture
def search_service():
    with patch('walltaker.cli.main.TagSearchService') as service_cls:
        service = MagicMock()
        service_cls.return_value.__enter__.return_value = service
        yield service_cls, service


class TestBuildLink:

    def test_global_search_has_no_link(self):
        assert build_link(True, "dog", "winter", 10, False, None) is None

    def test_options_become_link_rules(self):
        link = build_link(False, "dog", "winter", 10, True, ["foo"])
        assert link.blacklist == "dog"
        assert link.theme == "winter"
        assert link.min_score == 10
        assert link.capabilities == {Capability.CAN_SHOW_VIDEOS, Capability.IS_KINK_ALIGNED}
        assert link.kinks == ["foo"]


class TestCompileCommand:

    def test_compile_with_link_rules(self):
        result = runner.invoke(app, ["compile", "cat", "--blacklist", "Dog", "--theme", "winter",
                                     "--min-score", "50", "--kink", "foo"])
        assert result.exit_code == 0
        assert "cat -flash winter -dog score:>50 -animated ~foo" in result.output
        assert "TTL:" in result.output
        assert "2700s" in result.output

    def test_compile_random_order(self):
        result = runner.invoke(app, ["compile", "order:random", "--global"])
        assert result.exit_code == 0
        assert "v1/tagresults/order%3Arandom///15/true" in result.output
        assert "60s" in result.output

    def test_uses_configured_ttls_and_limit(self, tmp_path):
        path = tmp_path / "walltaker.yaml"
        path.write_text(
            "search:\n  default_limit: 30\n"
            "cache:\n  default_ttl: 600\n  random_order_ttl: 20\n"
        )

        result = runner.invoke(app, ["compile", "cat", "--global", "--config", str(path)])
        assert result.exit_code == 0
        assert "v1/tagresults/cat///30/true" in result.output
        assert "600s" in result.output

        result = runner.invoke(app, ["compile", "order:random", "--global", "--config", str(path)])
        assert "20s" in result.output

    def test_invalid_theme(self):
        result = runner.invoke(app, ["compile", "cat", "--theme", "a:b"])
        assert result.exit_code == 2
        assert "theme must not contain filter or sort tags" in result.output


class TestSearchCommand:

    def test_lists_posts(self, search_service):
        service_cls, service = search_service
        service.get_results.return_value = [make_post(11, 'png'), make_post(12, 'jpg')]

        result = runner.invoke(app, ["search", "cat", "--min-score", "5", "--limit", "2"])

        assert result.exit_code == 0
        assert "2 posts" in result.output
        assert "11" in result.output and "12" in result.output

        tags, after, before, link, limit = service.get_results.call_args[0]
        assert tags == "cat"
        assert link.min_score == 5
        assert limit == 2

    def test_no_cache_flag_reaches_config(self, search_service):
        service_cls, service = search_service
        service.get_results.return_value = []

        result = runner.invoke(app, ["search", "cat", "--no-cache"])

        assert result.exit_code == 0
        assert "No posts found" in result.output
        config = service_cls.call_args[0][0]
        assert config.cache.enabled is False

    def test_upstream_unavailable(self, search_service):
        _, service = search_service
        service.get_results.return_value = None

        result = runner.invoke(app, ["search", "cat", "--global"])

        assert result.exit_code == 1
        assert "unavailable" in result.output
        assert service.get_results.call_args[0][3] is None


class TestHistoryCommand:

    def test_lists_entries(self, tmp_path):
        db_path = tmp_path / "history.db"
        store = HistoryStore(db_path)
        store.append(42, "https://static.example/A.png", None, datetime(2024, 1, 1, tzinfo=timezone.utc))
        store.append(42, "https://static.example/B.png", None, datetime(2024, 1, 2, tzinfo=timezone.utc))
        store.close()

        result = runner.invoke(app, ["history", "42", "--history-db", str(db_path)])

        assert result.exit_code == 0
        assert "2 entries" in result.output
        assert result.output.index("A.png") < result.output.index("B.png")

    def test_database_from_environment(self, tmp_path, monkeypatch):
        db_path = tmp_path / "env.db"
        store = HistoryStore(db_path)
        store.append(7, "https://static.example/C.png")
        store.close()
        monkeypatch.setenv("WALLTAKER_HISTORY_DB", str(db_path))

        result = runner.invoke(app, ["history", "7"])
        assert result.exit_code == 0
        assert "C.png" in result.output

    def test_empty_history(self):
        result = runner.invoke(app, ["history", "9"])
        assert result.exit_code == 0
        assert "No history for link 9" in result.output


class TestConfigCommand:

    def test_shows_effective_config(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "base_url: https://e621.net" in result.output
        assert "random_order_ttl: 60.0" in result.output

    def test_invalid_config_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("search:\n  base_url: ftp://nope\n")

        result = runner.invoke(app, ["config", "--config", str(path)])
        assert result.exit_code == 2
        assert "Configuration error" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "0.2.0" in result.output
