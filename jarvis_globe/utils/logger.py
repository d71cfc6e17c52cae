"""
Logging setup and the control-event log.
"""

import os
import logging
import logging.handlers
import time
import threading
from collections import deque

from jarvis_globe.core.events import EventBus, Events


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure application logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(getattr(logging, level.upper(), logging.INFO))
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class CommandLogger:
    """Logs voice commands and sector changes and keeps a short history."""

    def __init__(self, event_bus: EventBus = None, max_history: int = 200):
        self.logger = logging.getLogger("control_events")
        self._history = deque(maxlen=max_history)
        self._commands = 0
        self._lock = threading.Lock()
        self._bus = event_bus or EventBus()

    def attach(self):
        """Subscribe to the control events on the bus."""
        self._bus.subscribe(Events.VOICE_COMMAND, self._on_voice_command)
        self._bus.subscribe(Events.SECTOR_CHANGED, self._on_sector_changed)
        self._bus.subscribe(Events.VOICE_STATE_CHANGED, self._on_voice_state)
        return self

    def detach(self):
        self._bus.unsubscribe(Events.VOICE_COMMAND, self._on_voice_command)
        self._bus.unsubscribe(Events.SECTOR_CHANGED, self._on_sector_changed)
        self._bus.unsubscribe(Events.VOICE_STATE_CHANGED, self._on_voice_state)

    def _record(self, kind: str, **data):
        # Called from the speech thread and the frame loop
        with self._lock:
            self._history.append({"timestamp": time.time(), "kind": kind, **data})
            if kind == "voice_command":
                self._commands += 1

    def _on_voice_command(self, target=None, **_):
        if target is None:
            return
        self._record("voice_command", command=target.command.value,
                     rotation=tuple(target.rotation))
        self.logger.info("Voice: %-10s | Target: (%.2f, %.2f)",
                         target.command.value, target.rotation.x, target.rotation.y)

    def _on_sector_changed(self, sector=None, previous=None, **_):
        self._record("sector", sector=sector.value if sector else None,
                     previous=previous.value if previous else None)
        self.logger.info("Sector: %-10s | Previous: %s",
                         sector.value if sector else "none",
                         previous.value if previous else "none")

    def _on_voice_state(self, listening=False, **_):
        self._record("voice_state", listening=listening)

    def get_history(self, last_n=None):
        """Get recent control events."""
        with self._lock:
            history = list(self._history)
        if last_n:
            return history[-last_n:]
        return history

    @property
    def total_commands(self):
        """Voice commands recorded, including ones dropped from the history."""
        with self._lock:
            return self._commands
