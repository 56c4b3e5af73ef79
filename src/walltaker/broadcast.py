"""
Link update broadcasting.

After a link is saved, subscribers listening on the link's channel get the
new state, but only when a field they display actually changed.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Protocol, Set

from walltaker.core.events import EventEmitter, LinkBroadcastEvent
from walltaker.core.exceptions import BroadcastAssemblyError
from walltaker.models import Link


logger = logging.getLogger(__name__)

BROADCAST_FIELDS = frozenset({
    'blacklist',
    'terms',
    'theme',
    'response_text',
    'last_ping_user_agent',
    'live_client_started_at',
    'expires',
    'never_expires',
    'friends_only',
    'post_url',
})

FAILURE_PAYLOAD = {'success': False, 'why': "Fetching link failed."}


class BroadcastTransport(Protocol):
    """Pushes a payload to everyone subscribed to a channel."""

    def broadcast(self, channel: str, payload: Dict[str, Any]) -> None:
        ...


def channel_for(link: Link) -> str:
    return f"Link::{link.id}"


def changed_fields(before: Link, after: Link, fields: Iterable[str] = BROADCAST_FIELDS) -> Set[str]:
    """Names of the given fields whose values differ between two link states."""
    return {name for name in fields if getattr(before, name, None) != getattr(after, name, None)}


def should_broadcast(changed: Iterable[str]) -> bool:
    """Whether a change set touches any field subscribers care about."""
    return not BROADCAST_FIELDS.isdisjoint(changed)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _assemble(link: Link) -> Dict[str, Any]:
    try:
        return {
            'success': True,
            'id': link.id,
            'expires': _serialize(link.expires),
            'terms': link.terms,
            'blacklist': link.blacklist,
            'post_url': link.post_url,
            'post_thumbnail_url': link.post_thumbnail_url,
            'post_description': link.post_description,
            'response_type': link.response_type.value if link.response_type else None,
            'response_text': link.response_text,
            'set_by': link.set_by_username if link.set_by_id is not None else None,
            'updated_at': _serialize(link.updated_at),
        }
    except Exception as e:
        raise BroadcastAssemblyError(
            f"Could not assemble payload for link {getattr(link, 'id', None)}: {e}",
            link_id=getattr(link, 'id', None),
            cause=e
        )


def build_payload(link: Link) -> Dict[str, Any]:
    """
    Build the message pushed to a link's subscribers.

    Never raises: a link that cannot be serialized yields the failure
    payload instead.
    """
    try:
        return _assemble(link)
    except BroadcastAssemblyError as e:
        logger.error(e.message)
        return dict(FAILURE_PAYLOAD)


class LinkBroadcaster:
    """Publishes link updates to the link's channel."""

    def __init__(self, transport: BroadcastTransport, emitter: Optional[EventEmitter] = None):
        self.transport = transport
        self.emitter = emitter or EventEmitter()

    def publish_update(self, before: Link, after: Link) -> Optional[Dict[str, Any]]:
        """
        Broadcast the new link state if a subscriber-visible field changed.

        Args:
            before: Link state before the save
            after: Link state after the save

        Returns:
            The payload that was sent, or None when nothing relevant changed
        """
        changed = changed_fields(before, after)
        if not should_broadcast(changed):
            logger.debug(f"Link {after.id} update has no broadcast fields, skipping")
            return None

        channel = channel_for(after)
        payload = build_payload(after)
        self.transport.broadcast(channel, payload)

        logger.debug(f"Broadcast {sorted(changed)} to {channel}")
        self.emitter.emit(LinkBroadcastEvent(
            link_id=after.id,
            channel=channel,
            success=payload['success'],
            changed_fields=sorted(changed),
        ))
        return payload
