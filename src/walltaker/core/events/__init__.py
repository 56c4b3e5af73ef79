"""
Event System for Walltaker

Observer pattern implementation used for tracking: upstream failures,
completed searches, reactions and broadcasts are emitted as events with
their context attached, and observers (logging, analytics) subscribe to them.
"""

from walltaker.core.events.types import (
    BaseEvent,
    UpstreamFailureEvent,
    SearchCompletedEvent,
    LinkReactedEvent,
    LinkBroadcastEvent,
)

from walltaker.core.events.emitter import EventEmitter, LoggingObserver

__all__ = [
    'BaseEvent',
    'UpstreamFailureEvent',
    'SearchCompletedEvent',
    'LinkReactedEvent',
    'LinkBroadcastEvent',
    'EventEmitter',
    'LoggingObserver',
]
