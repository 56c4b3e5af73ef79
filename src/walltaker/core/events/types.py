"""
Event Types for Walltaker

Defines the events emitted by the search engine and the reaction machine.
Events carry their tracking context explicitly, so observers never need to
look up the request that produced them.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class BaseEvent:
    """
    Base class for all events.

    Provides common fields for event identification and timing. The
    ``level`` field mirrors the tracking levels (regular, error, visit).
    """
    timestamp: float = field(default_factory=time.time)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    level: str = "regular"

    @property
    def datetime(self) -> datetime:
        """Get event timestamp as datetime object."""
        return datetime.fromtimestamp(self.timestamp)

    @property
    def event_type(self) -> str:
        """Get the event type name."""
        return self.__class__.__name__

    @property
    def event_name(self) -> str:
        """Tracking name in ``level:id`` form."""
        return f"{self.level}:{self.event_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            'event_type': self.event_type,
            'event_name': self.event_name,
            'timestamp': self.timestamp,
            'event_id': self.event_id,
            'datetime': self.datetime.isoformat(),
            **{k: v for k, v in self.__dict__.items()
               if k not in ['timestamp', 'event_id']}
        }


@dataclass
class UpstreamFailureEvent(BaseEvent):
    """
    Emitted when the search API cannot serve a request.

    ``status_code`` is None when the request never got a response
    (connection error, timeout).
    """
    level: str = "error"
    url: str = ""
    status_code: Optional[int] = None
    error_message: str = ""
    action: str = ""
    link_id: Optional[int] = None
    link_owner_id: Optional[int] = None


@dataclass
class SearchCompletedEvent(BaseEvent):
    """Emitted after a search is answered, from cache or upstream."""
    compiled_tags: str = ""
    cache_key: str = ""
    cache_hit: bool = False
    result_count: int = 0
    filtered_count: int = 0
    link_id: Optional[int] = None


@dataclass
class LinkReactedEvent(BaseEvent):
    """Emitted when a link owner reacts to the current content."""
    link_id: int = 0
    reaction: str = ""
    user_id: Optional[int] = None
    set_by_id: Optional[int] = None
    post_url: Optional[str] = None
    reverted_to: Optional[str] = None
    removed_history_entries: int = 0


@dataclass
class LinkBroadcastEvent(BaseEvent):
    """Emitted when a link update is pushed to subscribers."""
    link_id: int = 0
    channel: str = ""
    success: bool = True
    changed_fields: List[str] = field(default_factory=list)
