"""
Keyword matching for recognized utterances.

Utterances are matched against an ordered table; the first entry whose
keyword appears anywhere in the lower-cased text wins. Chinese synonyms
sit next to the English ones because the default recognizer language is
zh-CN.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from jarvis_globe.core.types import Vec2, VoiceCommand, VoiceTarget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeywordEntry:
    """One row of the command table."""
    command: VoiceCommand
    keywords: Tuple[str, ...]
    rotation: Vec2

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


DEFAULT_KEYWORD_TABLE: Tuple[KeywordEntry, ...] = (
    KeywordEntry(VoiceCommand.AFRICA, ("africa", "非洲"), Vec2(0.0, 0.5)),
    KeywordEntry(VoiceCommand.ASIA, ("asia", "china", "亚洲", "中国"), Vec2(0.2, 2.0)),
    KeywordEntry(VoiceCommand.AMERICAS, ("america", "usa", "美洲", "美国"), Vec2(0.0, 4.8)),
    KeywordEntry(VoiceCommand.EUROPE, ("europe", "欧洲"), Vec2(0.3, 5.8)),
    KeywordEntry(VoiceCommand.RESET, ("reset", "stop", "重置"), Vec2(0.0, 0.0)),
)


def _parse_table(rows: list) -> Tuple[KeywordEntry, ...]:
    entries = []
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Ignoring voice command row that is not a mapping: %r", row)
            continue
        command = VoiceCommand.from_string(str(row.get("command", "")))
        if command is None:
            logger.warning("Ignoring unknown voice command in config: %r", row.get("command"))
            continue
        keywords = tuple(str(k).strip().lower() for k in row.get("keywords") or [] if str(k).strip())
        try:
            rx, ry = row.get("rotation", (0.0, 0.0))
            rotation = Vec2(float(rx), float(ry))
        except (TypeError, ValueError):
            logger.warning("Ignoring %s: rotation must be two numbers, got %r",
                           command.value, row.get("rotation"))
            continue
        entries.append(KeywordEntry(command, keywords, rotation))
    return tuple(entries)


@dataclass
class VoiceCommandConfig:
    """Voice command table configuration."""
    table: Tuple[KeywordEntry, ...] = field(default_factory=lambda: DEFAULT_KEYWORD_TABLE)

    @classmethod
    def from_dict(cls, config: dict) -> "VoiceCommandConfig":
        """Create config from dictionary. A missing table keeps the defaults."""
        rows = config.get("commands")
        if not rows:
            return cls()
        if not isinstance(rows, list):
            logger.warning("Voice command table must be a list, using defaults")
            return cls()
        return cls(table=_parse_table(rows))


@dataclass(frozen=True)
class UtteranceResult:
    """Outcome of interpreting one utterance."""
    text: str
    status: str
    target: Optional[VoiceTarget] = None

    @property
    def matched(self) -> bool:
        return self.target is not None


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class VoiceCommandInterpreter:
    """Turns utterances into VoiceTargets and remembers the latest one."""

    def __init__(self, config: Optional[VoiceCommandConfig] = None,
                 clock: Callable[[], float] = _monotonic_ms):
        self.config = config or VoiceCommandConfig()
        self._clock = clock
        self._last_target: Optional[VoiceTarget] = None
        self._last_utterance_ms: Optional[float] = None

    @property
    def last_target(self) -> Optional[VoiceTarget]:
        return self._last_target

    @property
    def last_utterance_ms(self) -> Optional[float]:
        """Arrival time of the latest utterance, matched or not."""
        return self._last_utterance_ms

    def match(self, text: str) -> Optional[KeywordEntry]:
        """Return the first table entry matching the normalized text."""
        normalized = text.strip().lower()
        if not normalized:
            return None
        for entry in self.config.table:
            if entry.matches(normalized):
                return entry
        return None

    def interpret(self, text: str) -> Optional[UtteranceResult]:
        """Interpret one utterance.

        Returns:
            UtteranceResult (target is None when nothing matched), or None
            for an empty utterance
        """
        normalized = (text or "").strip().lower()
        if not normalized:
            return None

        now = self._clock()
        self._last_utterance_ms = now
        status = f'CMD: "{normalized}"'

        entry = self.match(normalized)
        if entry is None:
            logger.debug("Unmatched utterance: %r", normalized)
            return UtteranceResult(text=normalized, status=status)

        target = VoiceTarget(command=entry.command, rotation=entry.rotation, received_at_ms=now)
        self._last_target = target
        logger.info("Voice command: %s -> rotation (%.2f, %.2f)",
                    entry.command.value, entry.rotation.x, entry.rotation.y)
        return UtteranceResult(text=normalized, status=status, target=target)

    def reset(self):
        """Forget the latest target."""
        self._last_target = None
        self._last_utterance_ms = None
