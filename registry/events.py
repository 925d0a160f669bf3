"""
NFT Collection Registry - Audit Event Trail

This module records an append-only trail of committed state transitions and
forwards each record to registered observers.
"""

import logging
import time
from typing import Any, Callable, Iterable, List, Optional

from .schema import CollectionEvent, EventType


EventCallback = Callable[[CollectionEvent], None]


class EventEmitter:
    """Append-only audit trail with observer callbacks."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Initialize event emitter.

        Args:
            clock: Zero-argument callable supplying event timestamps (defaults to time.time)
        """
        self.clock = clock or time.time
        self._events: List[CollectionEvent] = []
        self._event_callbacks: List[EventCallback] = []
        self.logger = logging.getLogger(__name__)

    def __len__(self) -> int:
        return len(self._events)

    def add_event_callback(self, callback: EventCallback) -> None:
        """Add callback invoked for every emitted event."""
        self._event_callbacks.append(callback)

    def remove_event_callback(self, callback: EventCallback) -> None:
        if callback in self._event_callbacks:
            self._event_callbacks.remove(callback)

    def emit(self, event_type: EventType, **args: Any) -> CollectionEvent:
        """Append an event to the trail and notify observers."""
        event = CollectionEvent(
            sequence=len(self._events),
            event_type=event_type,
            timestamp=self.clock(),
            args=args
        )
        self._events.append(event)
        self.logger.debug(f"Event #{event.sequence} {event_type.value} {args}")

        for callback in list(self._event_callbacks):
            try:
                callback(event)
            except Exception as e:
                # Observers never affect the committed operation
                self.logger.warning(f"Event callback failed for {event_type.value}: {e}")

        return event

    def get_events(
        self,
        event_type: Optional[EventType] = None,
        token_id: Optional[int] = None,
        since_sequence: int = 0
    ) -> List[CollectionEvent]:
        """List recorded events with optional filtering."""
        events = self._events[since_sequence:]

        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]

        if token_id is not None:
            events = [e for e in events if e.args.get('token_id') == token_id]

        return list(events)

    def last(self) -> Optional[CollectionEvent]:
        return self._events[-1] if self._events else None

    def load(self, events: Iterable[CollectionEvent]) -> None:
        """Replace the trail with previously persisted events."""
        self._events = list(events)
