"""
Shared Test Configuration and Fixtures

Provides sample links, raw search API posts, a controllable clock and
configuration objects used across the test suite.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List
from unittest.mock import Mock

import pytest
import requests

from walltaker.core.config.models import AppConfig, CacheSettings, SearchConfig
from walltaker.core.events.emitter import EventEmitter
from walltaker.models import Capability, Link


class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_post(post_id: int, ext: str, score: int = 10) -> Dict[str, Any]:
    """Build a raw posts.json entry."""
    return {
        'id': post_id,
        'file': {'ext': ext, 'url': f"https://static.example/{post_id}.{ext}"},
        'preview': {'url': f"https://static.example/preview/{post_id}.jpg"},
        'description': f"post {post_id}",
        'score': {'up': score, 'down': 0, 'total': score},
        'tags': {'general': ['cat', 'winter'], 'species': ['feline']},
    }


def make_response(status_code: int = 200, body: Any = None, json_error: bool = False) -> Mock:
    """Build a mocked requests.Response."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.reason = "OK" if status_code == 200 else "Internal Server Error"
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def emitter():
    return EventEmitter()


@pytest.fixture
def plain_link():
    """A link with no rules beyond the defaults."""
    return Link(id=7, user_id=70, username="owner", never_expires=True)


@pytest.fixture
def rules_link():
    """A link exercising every query rule."""
    return Link(
        id=42,
        user_id=420,
        username="owner",
        set_by_id=99,
        set_by_username="setter",
        blacklist="Dog",
        theme="winter",
        min_score=50,
        capabilities={Capability.IS_KINK_ALIGNED},
        kinks=["foo"],
        never_expires=True,
    )


@pytest.fixture
def video_link():
    return Link(
        id=8,
        user_id=80,
        capabilities={Capability.CAN_SHOW_VIDEOS},
        never_expires=True,
    )


@pytest.fixture
def mixed_posts() -> List[Dict[str, Any]]:
    return [make_post(1, 'png'), make_post(2, 'webm'), make_post(3, 'webp'), make_post(4, 'mp4')]


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        search=SearchConfig(base_url="https://search.example", request_timeout=2, fetch_timeout=5),
        cache=CacheSettings(),
        history={'db_path': tmp_path / "history.db"},
    )


@pytest.fixture
def fixed_now():
    return datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
