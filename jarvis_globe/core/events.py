"""
Process-wide event bus.

The controller publishes display-facing changes (sector, status, voice
indicator, panel position) and the app publishes lifecycle and camera
events; the command logger and the app subscribe.

Usage:
    bus = EventBus()
    unsubscribe = bus.subscribe(Events.SECTOR_CHANGED, on_sector)
    bus.emit(Events.SECTOR_CHANGED, sector=Sector.ASIA, previous=None)
    unsubscribe()
"""

import time
import logging
import threading
from collections import defaultdict, deque
from itertools import count
from typing import Callable, Dict, List, NamedTuple, Tuple

logger = logging.getLogger(__name__)


class EventRecord(NamedTuple):
    """One emitted event, as kept in the bus history."""
    name: str
    timestamp_ms: float
    keys: Tuple[str, ...]
    delivered: int


class _Subscription:
    __slots__ = ("callback", "priority", "order", "once")

    def __init__(self, callback: Callable, priority: int, order: int, once: bool):
        self.callback = callback
        self.priority = priority
        self.order = order
        self.once = once

    def sort_key(self):
        # Higher priority first, then registration order
        return (-self.priority, self.order)


def _callback_name(callback: Callable) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Synchronous publish/subscribe bus, one per process.

    Handlers run on the emitting thread. A handler that raises is logged
    and the remaining handlers still run.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._subscriptions: Dict[str, List[_Subscription]] = defaultdict(list)
        self._lock = threading.Lock()
        self._history = deque(maxlen=100)
        self._order = count()
        self._enabled = True
        self._initialized = True

    def subscribe(self, event_name: str, callback: Callable,
                  priority: int = 0, once: bool = False) -> Callable[[], None]:
        """Register ``callback(**payload)`` for an event.

        Returns a function that removes this subscription.
        """
        subscription = _Subscription(callback, priority, next(self._order), once)
        with self._lock:
            subscribers = self._subscriptions[event_name]
            subscribers.append(subscription)
            subscribers.sort(key=_Subscription.sort_key)
        logger.debug("Subscribed %s to '%s'", _callback_name(callback), event_name)
        return lambda: self._remove(event_name, subscription)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove every subscription of ``callback`` to an event."""
        with self._lock:
            subscribers = self._subscriptions.get(event_name, [])
            subscribers[:] = [s for s in subscribers if s.callback != callback]

    def _remove(self, event_name: str, subscription: _Subscription):
        with self._lock:
            subscribers = self._subscriptions.get(event_name, [])
            if subscription in subscribers:
                subscribers.remove(subscription)

    def emit(self, event_name: str, **payload) -> int:
        """Deliver an event. Returns the number of handlers that ran cleanly."""
        if not self._enabled:
            return 0

        with self._lock:
            subscribers = list(self._subscriptions.get(event_name, ()))
            if any(s.once for s in subscribers):
                self._subscriptions[event_name] = [
                    s for s in self._subscriptions[event_name] if not s.once
                ]

        delivered = 0
        for subscription in subscribers:
            try:
                subscription.callback(**payload)
                delivered += 1
            except Exception as e:
                logger.error("Handler %s failed on '%s': %s",
                             _callback_name(subscription.callback), event_name, e)

        record = EventRecord(event_name, time.monotonic() * 1000.0, tuple(payload), delivered)
        with self._lock:
            self._history.append(record)
        return delivered

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    def clear(self, event_name: str = None):
        """Drop subscriptions for one event, or for all events."""
        with self._lock:
            if event_name is None:
                self._subscriptions.clear()
            else:
                self._subscriptions.pop(event_name, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(s) for s in self._subscriptions.values())

    def get_history(self, last_n: int = 10) -> List[EventRecord]:
        with self._lock:
            return list(self._history)[-last_n:]

    def reset(self):
        """Drop all subscriptions and history (for testing)."""
        with self._lock:
            self._subscriptions.clear()
            self._history.clear()
        self._enabled = True


class Events:
    """Event names and their payload keywords."""

    # Frame loop
    HANDS_UPDATED = "hands_updated"              # hand_count
    PANEL_MOVED = "panel_moved"                  # panel
    SECTOR_CHANGED = "sector_changed"            # sector, previous
    STATUS_CHANGED = "status_changed"            # status

    # Voice channel
    UTTERANCE_RECEIVED = "utterance_received"    # text
    VOICE_COMMAND = "voice_command"              # target
    VOICE_STATE_CHANGED = "voice_state_changed"  # listening

    # System
    CAMERA_ERROR = "camera_error"                # reason
    SYSTEM_STARTED = "system_started"
    SYSTEM_SHUTDOWN = "system_shutdown"
