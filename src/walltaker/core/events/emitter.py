"""
Event Emitter for Walltaker

Provides thread-safe synchronous event delivery with observer management,
bounded history and observer error isolation. Used for tracking upstream
failures, searches, reactions and broadcasts.
"""

import logging
import threading
from collections import defaultdict, deque
from typing import Any, Callable, Dict, List, Optional, Set, Union

from walltaker.core.events.types import BaseEvent


logger = logging.getLogger(__name__)

Observer = Callable[[BaseEvent], Any]


class EventEmitter:
    """
    Thread-safe event emitter.

    Observers subscribe to an event class (or its name) or to ``'*'`` for
    every event. Delivery is synchronous on the emitting thread; an observer
    that raises is logged and skipped, it never breaks the emitter or the
    operation that emitted the event.
    """

    def __init__(self, max_history: int = 1000, enable_history: bool = True):
        """
        Initialize the event emitter.

        Args:
            max_history: Maximum number of events to keep in history
            enable_history: Whether to store event history
        """
        self.max_history = max_history
        self.enable_history = enable_history

        self._lock = threading.RLock()
        self._observers: Dict[str, Set[Observer]] = defaultdict(set)
        self._wildcard_observers: Set[Observer] = set()
        self._event_history: deque = deque(maxlen=max_history if enable_history else 0)

        self._stats = {
            'events_emitted': 0,
            'observers_notified': 0,
            'observer_errors': 0,
        }

    @staticmethod
    def _type_name(event_type: Union[str, type]) -> str:
        if isinstance(event_type, type):
            return event_type.__name__
        return str(event_type)

    def subscribe(self, event_type: Union[str, type], observer: Observer) -> None:
        """
        Subscribe an observer to events of a specific type.

        Args:
            event_type: Event class or name, ``'*'`` for all events
            observer: Callable receiving the event
        """
        name = self._type_name(event_type)
        with self._lock:
            if name in ('*', 'all'):
                self._wildcard_observers.add(observer)
            else:
                self._observers[name].add(observer)
        logger.debug(f"Subscribed observer to {name} events")

    def unsubscribe(self, event_type: Union[str, type], observer: Observer) -> bool:
        """
        Unsubscribe an observer from events.

        Returns:
            True if the observer was subscribed
        """
        name = self._type_name(event_type)
        with self._lock:
            bucket = self._wildcard_observers if name in ('*', 'all') else self._observers.get(name, set())
            if observer in bucket:
                bucket.discard(observer)
                return True
            return False

    def emit(self, event: BaseEvent) -> None:
        """
        Emit an event to all subscribed observers.

        Args:
            event: Event instance to emit
        """
        with self._lock:
            self._stats['events_emitted'] += 1
            if self.enable_history:
                self._event_history.append(event)
            observers = list(self._observers.get(event.event_type, ())) + list(self._wildcard_observers)

        for observer in observers:
            self._safe_notify(observer, event)

    def _safe_notify(self, observer: Observer, event: BaseEvent) -> None:
        try:
            observer(event)
            self._stats['observers_notified'] += 1
        except Exception as e:
            self._stats['observer_errors'] += 1
            logger.warning(f"Observer error for {event.event_type}: {e}")

    def get_event_history(self, event_type: Optional[Union[str, type]] = None,
                          limit: Optional[int] = None) -> List[BaseEvent]:
        """
        Get event history, optionally filtered by type.

        Args:
            event_type: Filter by specific event type
            limit: Maximum number of events to return (most recent)
        """
        with self._lock:
            events = list(self._event_history)

        if event_type:
            name = self._type_name(event_type)
            events = [e for e in events if e.event_type == name]

        if limit:
            events = events[-limit:]

        return events

    def get_statistics(self) -> Dict[str, Any]:
        """Get event system statistics."""
        with self._lock:
            return {
                **self._stats,
                'total_observers': sum(len(obs) for obs in self._observers.values()),
                'wildcard_observers': len(self._wildcard_observers),
                'history_size': len(self._event_history),
            }

    def clear_history(self) -> None:
        """Clear event history."""
        with self._lock:
            self._event_history.clear()

    def clear_observers(self) -> None:
        """Remove all observers."""
        with self._lock:
            self._observers.clear()
            self._wildcard_observers.clear()


class LoggingObserver:
    """Writes every event to a logger as a structured tracking record."""

    def __init__(self, logger_name: str = "walltaker.tracking"):
        self.logger = logging.getLogger(logger_name)

    def __call__(self, event: BaseEvent) -> None:
        log_level = logging.ERROR if event.level == "error" else logging.INFO
        self.logger.log(log_level, f"{event.event_name} {event.to_dict()}")
