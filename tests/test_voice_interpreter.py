"""
Tests for Voice Command Interpreter
====================================
"""

import pytest

from jarvis_globe.core.types import Vec2, VoiceCommand
from jarvis_globe.fusion.voice_interpreter import (
    DEFAULT_KEYWORD_TABLE,
    VoiceCommandConfig,
    VoiceCommandInterpreter,
)


class TestKeywordMatching:
    """Keyword table lookups."""

    @pytest.fixture
    def interpreter(self, clock):
        return VoiceCommandInterpreter(clock=clock)

    @pytest.mark.parametrize("text,command,rotation", [
        ("show me africa", VoiceCommand.AFRICA, (0.0, 0.5)),
        ("Go to Asia", VoiceCommand.ASIA, (0.2, 2.0)),
        ("china please", VoiceCommand.ASIA, (0.2, 2.0)),
        ("north america", VoiceCommand.AMERICAS, (0.0, 4.8)),
        ("  USA  ", VoiceCommand.AMERICAS, (0.0, 4.8)),
        ("europe", VoiceCommand.EUROPE, (0.3, 5.8)),
        ("reset", VoiceCommand.RESET, (0.0, 0.0)),
        ("stop", VoiceCommand.RESET, (0.0, 0.0)),
        ("去非洲", VoiceCommand.AFRICA, (0.0, 0.5)),
        ("中国", VoiceCommand.ASIA, (0.2, 2.0)),
        ("美国", VoiceCommand.AMERICAS, (0.0, 4.8)),
        ("欧洲", VoiceCommand.EUROPE, (0.3, 5.8)),
        ("重置", VoiceCommand.RESET, (0.0, 0.0)),
    ])
    def test_known_commands(self, interpreter, text, command, rotation):
        result = interpreter.interpret(text)
        assert result.matched
        assert result.target.command is command
        assert result.target.rotation == Vec2(*rotation)

    def test_first_entry_wins(self, interpreter):
        """'europe and asia' hits ASIA first because ASIA precedes EUROPE."""
        result = interpreter.interpret("europe and asia")
        assert result.target.command is VoiceCommand.ASIA

    def test_africa_before_reset(self, interpreter):
        result = interpreter.interpret("stop at africa")
        assert result.target.command is VoiceCommand.AFRICA

    def test_unmatched_utterance(self, interpreter):
        result = interpreter.interpret("hello jarvis")
        assert not result.matched
        assert result.status == 'CMD: "hello jarvis"'
        assert interpreter.last_target is None

    def test_empty_utterance_ignored(self, interpreter):
        assert interpreter.interpret("   ") is None
        assert interpreter.interpret("") is None
        assert interpreter.last_utterance_ms is None


class TestVoiceTargets:
    """Timestamps and replacement semantics."""

    def test_received_at_uses_clock(self, clock):
        clock.now = 1234.0
        interpreter = VoiceCommandInterpreter(clock=clock)
        result = interpreter.interpret("asia")
        assert result.target.received_at_ms == 1234.0

    def test_next_match_replaces_target(self, clock):
        interpreter = VoiceCommandInterpreter(clock=clock)
        interpreter.interpret("asia")
        clock.advance(500)
        interpreter.interpret("europe")
        assert interpreter.last_target.command is VoiceCommand.EUROPE
        assert interpreter.last_target.received_at_ms == 500.0

    def test_unmatched_keeps_previous_target(self, clock):
        interpreter = VoiceCommandInterpreter(clock=clock)
        interpreter.interpret("asia")
        clock.advance(100)
        interpreter.interpret("what's the weather")
        assert interpreter.last_target.command is VoiceCommand.ASIA
        assert interpreter.last_target.received_at_ms == 0.0
        assert interpreter.last_utterance_ms == 100.0

    def test_status_is_normalized(self, clock):
        interpreter = VoiceCommandInterpreter(clock=clock)
        assert interpreter.interpret("  Go To ASIA ").status == 'CMD: "go to asia"'


class TestVoiceCommandConfig:

    def test_default_table(self):
        assert VoiceCommandConfig().table == DEFAULT_KEYWORD_TABLE
        assert VoiceCommandConfig.from_dict({}).table == DEFAULT_KEYWORD_TABLE

    def test_custom_table(self, clock):
        config = VoiceCommandConfig.from_dict({
            "commands": [
                {"command": "europe", "keywords": ["Paris"], "rotation": [0.1, 6.0]},
                {"command": "bogus", "keywords": ["x"], "rotation": [0, 0]},
            ]
        })
        assert len(config.table) == 1
        interpreter = VoiceCommandInterpreter(config, clock=clock)
        result = interpreter.interpret("fly to paris")
        assert result.target.command is VoiceCommand.EUROPE
        assert result.target.rotation == Vec2(0.1, 6.0)
        assert not interpreter.interpret("asia").matched
