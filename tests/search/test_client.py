"""
Tests for the search API client.
"""

from unittest.mock import patch

import pytest
import requests

from conftest import make_post, make_response
from walltaker.core.config.models import SearchConfig
from walltaker.core.events import UpstreamFailureEvent
from walltaker.core.exceptions import ErrorCode, UpstreamUnavailableError
from walltaker.search.client import SearchClient


class TestSearchClient:

    def setup_method(self):
        self.config = SearchConfig(base_url="https://search.example/", request_timeout=3)
        self.session = requests.Session()

    def make_client(self, emitter=None):
        return SearchClient(self.config, session=self.session, emitter=emitter)

    def test_user_agent_header(self):
        client = self.make_client()
        assert client.session.headers['User-Agent'] == "walltaker.joi.how (by ailurus on e621)"

    def test_build_url(self):
        client = self.make_client()
        assert client.build_url("cat -flash", None, None, 15) == \
            "https://search.example/posts.json?tags=cat+-flash&limit=15"

    def test_build_url_cursors(self):
        client = self.make_client()
        assert client.build_url("cat", "b_1234", None, 5).endswith("tags=cat&page=b1234&limit=5")
        assert client.build_url("cat", None, "a_99", 5).endswith("tags=cat&page=a99&limit=5")

    def test_cursor_without_digits_is_ignored(self):
        client = self.make_client()
        assert "page=" not in client.build_url("cat", "latest", "none", 5)

    def test_fetch_returns_posts(self):
        posts = [make_post(1, 'png'), make_post(2, 'webm')]
        with patch.object(self.session, 'get', return_value=make_response(200, {'posts': posts})) as get:
            assert self.make_client().fetch("cat", limit=2) == posts

        get.assert_called_once_with(
            "https://search.example/posts.json?tags=cat&limit=2", timeout=3
        )

    def test_empty_object_body_is_empty_result(self):
        with patch.object(self.session, 'get', return_value=make_response(200, {})):
            assert self.make_client().fetch("cat") == []

    def test_non_list_posts_is_empty_result(self):
        with patch.object(self.session, 'get', return_value=make_response(200, {'posts': "nope"})):
            assert self.make_client().fetch("cat") == []

    def test_non_json_body_is_empty_result(self):
        with patch.object(self.session, 'get', return_value=make_response(200, json_error=True)):
            assert self.make_client().fetch("cat") == []

    def test_server_error_raises_and_tracks(self, emitter):
        client = self.make_client(emitter)
        context = {'action': 'get_results', 'link_id': 42, 'link_owner_id': 420}

        with patch.object(self.session, 'get', return_value=make_response(500)):
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                client.fetch("cat", context=context)

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == ErrorCode.UPSTREAM_UNAVAILABLE

        events = emitter.get_event_history(UpstreamFailureEvent)
        assert len(events) == 1
        assert events[0].status_code == 500
        assert events[0].link_id == 42
        assert events[0].link_owner_id == 420
        assert events[0].action == 'get_results'
        assert events[0].event_name == "error:UpstreamFailureEvent"

    def test_timeout_raises(self, emitter):
        client = self.make_client(emitter)
        with patch.object(self.session, 'get', side_effect=requests.Timeout("slow")):
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                client.fetch("cat")

        assert exc_info.value.error_code == ErrorCode.NETWORK_TIMEOUT
        assert emitter.get_event_history(UpstreamFailureEvent)[0].status_code is None

    def test_connection_error_raises(self):
        with patch.object(self.session, 'get', side_effect=requests.ConnectionError("refused")):
            with pytest.raises(UpstreamUnavailableError):
                self.make_client().fetch("cat")
