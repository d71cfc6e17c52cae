"""
Tests for Orientation Controller
=================================

End-to-end fusion behaviour on synthetic hands and utterances.
"""

import threading

import pytest

from conftest import make_hand
from jarvis_globe.core.controller import (
    STATUS_INIT,
    ControllerConfig,
    OrientationController,
)
from jarvis_globe.core.events import Events
from jarvis_globe.core.types import ControlSource, PanelPosition, Sector, VoiceCommand
from jarvis_globe.fusion.arbiter import ArbiterConfig

VIEWPORT = (1280, 720)


def centered_hand():
    """Orientation hand asking for rotation (0, 0) with scale 1.6."""
    return make_hand(wrist=(0.8, 0.9), middle_mcp=(0.5, 0.5),
                     thumb_tip=(0.5, 0.4), index_tip=(0.5, 0.6))


def pinching_pointer(x=0.25, y=0.4):
    return make_hand(wrist=(0.3, 0.9), thumb_tip=(x, y), index_tip=(x, y + 0.01))


@pytest.fixture
def controller(clock, bus):
    return OrientationController(event_bus=bus, clock=clock, viewport=VIEWPORT)


class TestLifecycle:

    def test_initial_state(self, controller):
        assert controller.is_active
        assert controller.status == STATUS_INIT
        assert controller.sector is None
        assert controller.state.rotation == (0.0, 0.0)
        assert controller.state.scale == 1.0
        assert controller.panel == PanelPosition(1280 - 320, 100)

    def test_teardown_makes_callbacks_noops(self, controller):
        controller.teardown()
        assert not controller.is_active
        assert controller.on_frame([centered_hand()], VIEWPORT) is None
        assert controller.on_utterance("asia") is None
        controller.on_voice_state(True)
        assert not controller.voice_listening
        assert controller.voice_target is None

    def test_teardown_runs_hooks_once(self, controller):
        calls = []
        controller.add_teardown_hook(lambda: calls.append("speech"))
        controller.add_teardown_hook(lambda: calls.append("loop"))
        controller.teardown()
        controller.teardown()
        assert calls == ["speech", "loop"]

    def test_failing_hook_does_not_raise(self, controller):
        def broken():
            raise RuntimeError("boom")
        calls = []
        controller.add_teardown_hook(broken)
        controller.add_teardown_hook(lambda: calls.append(True))
        controller.teardown()
        assert calls == [True]


class TestVoiceGestureScenario:
    """'go to asia' at t=0, competing gesture at t=1000 and t=3100."""

    def test_voice_then_gesture(self, controller, clock):
        result = controller.on_utterance("go to asia")
        assert result.target.command is VoiceCommand.ASIA
        assert controller.status == 'CMD: "go to asia"'

        clock.now = 1000.0
        frame = controller.on_frame([centered_hand()], VIEWPORT)
        assert frame.source is ControlSource.VOICE
        assert frame.suppressed
        # Slow sweep toward (0.2, 2.0)
        assert frame.state.rotation_y == pytest.approx(2.0 * 0.05)
        assert frame.state.rotation_x == pytest.approx(0.2 * 0.05)
        # Scale still follows the hand
        assert frame.state.scale == pytest.approx(1.0 + (1.6 - 1.0) * 0.1)

        for _ in range(30):
            clock.advance(16)
            controller.on_frame([centered_hand()], VIEWPORT)
        before = controller.state.rotation_y
        assert before > 0.5

        clock.now = 3100.0
        frame = controller.on_frame([centered_hand()], VIEWPORT)
        assert frame.source is ControlSource.GESTURE
        assert not frame.suppressed
        assert frame.state.rotation_y == pytest.approx(before * 0.9)

        for _ in range(20):
            clock.advance(16)
            previous = controller.state.rotation_y
            controller.on_frame([centered_hand()], VIEWPORT)
            assert 0.0 < controller.state.rotation_y < previous

    def test_window_boundary_is_exclusive(self, controller, clock):
        controller.on_utterance("europe")
        clock.now = 2999.0
        assert controller.on_frame([centered_hand()], VIEWPORT).source is ControlSource.VOICE
        clock.now = 3000.0
        assert controller.on_frame([centered_hand()], VIEWPORT).source is ControlSource.GESTURE

    def test_unmatched_utterance_does_not_suppress(self, controller, clock):
        result = controller.on_utterance("open the pod bay doors")
        assert not result.matched
        clock.now = 100.0
        assert controller.on_frame([centered_hand()], VIEWPORT).source is ControlSource.GESTURE

    def test_voice_override_flag(self, controller, clock):
        assert not controller.voice_override_active()
        controller.on_utterance("africa")
        assert controller.voice_override_active()
        clock.now = 3000.0
        assert not controller.voice_override_active()


class TestNoInput:

    def test_empty_frames_keep_approaching_last_target(self, controller, clock):
        controller.on_utterance("europe")
        controller.on_frame([], VIEWPORT)
        clock.now = 10000.0  # Window long over
        previous = controller.state.rotation_y
        for _ in range(100):
            clock.advance(16)
            frame = controller.on_frame([], VIEWPORT)
            assert frame.source is ControlSource.HOLD
            assert previous < frame.state.rotation_y < 5.8
            previous = frame.state.rotation_y
        assert controller.state.rotation_y == pytest.approx(5.8, abs=1e-3)

    def test_none_samples_are_empty(self, controller):
        frame = controller.on_frame(None, VIEWPORT)
        assert frame.hand_count == 0
        assert frame.source is ControlSource.HOLD


class TestPanelAndStatus:

    def test_pointer_moves_panel_even_during_voice(self, controller, clock):
        controller.on_utterance("asia")
        clock.now = 500.0
        controller.on_frame([pinching_pointer(0.25, 0.4)], VIEWPORT)
        assert controller.panel.x == pytest.approx(0.75 * 1280)
        assert controller.panel.y == pytest.approx(0.41 * 720)

    def test_open_pointer_hand_keeps_panel(self, controller):
        open_hand = make_hand(wrist=(0.3, 0.9), thumb_tip=(0.1, 0.1), index_tip=(0.4, 0.4))
        controller.on_frame([open_hand], VIEWPORT)
        assert controller.panel == PanelPosition(960, 100)

    def test_hand_count_status(self, controller):
        controller.on_frame([centered_hand(), pinching_pointer()], VIEWPORT)
        assert controller.status == "TARGETS: 2"

    def test_voice_status_not_overwritten_by_hands(self, controller, clock):
        controller.on_utterance("hello")
        clock.now = 1000.0
        controller.on_frame([centered_hand()], VIEWPORT)
        assert controller.status == 'CMD: "hello"'
        clock.now = 3500.0
        controller.on_frame([centered_hand()], VIEWPORT)
        assert controller.status == "TARGETS: 1"


class TestEvents:

    def test_sector_changed_emitted_once(self, controller, bus, clock):
        sectors = []
        bus.subscribe(Events.SECTOR_CHANGED, lambda sector, previous: sectors.append(sector))
        controller.on_utterance("europe")
        for _ in range(2):
            clock.advance(16)
            controller.on_frame([], VIEWPORT)
        # Headings 0.29 and 0.57 reflect to ~5.99 and ~5.72
        assert sectors == [Sector.EUROPE]

    def test_voice_command_and_status_events(self, controller, bus):
        received = []
        bus.subscribe(Events.VOICE_COMMAND, lambda target: received.append(target.command))
        bus.subscribe(Events.STATUS_CHANGED, lambda status: received.append(status))
        controller.on_utterance("reset")
        assert received == ['CMD: "reset"', VoiceCommand.RESET]

    def test_voice_state_event(self, controller, bus):
        states = []
        bus.subscribe(Events.VOICE_STATE_CHANGED, lambda listening: states.append(listening))
        controller.on_voice_state(True)
        controller.on_voice_state(True)
        controller.on_voice_state(False)
        assert states == [True, False]

    def test_handler_may_read_controller(self, controller, bus):
        """Events are dispatched outside the controller lock."""
        seen = []
        bus.subscribe(Events.STATUS_CHANGED, lambda status: seen.append(controller.build_view()["status"]))
        controller.on_utterance("asia")
        assert seen == ['CMD: "asia"']


class TestConcurrency:

    def test_utterances_from_another_thread(self, clock, bus):
        controller = OrientationController(
            ControllerConfig(arbiter=ArbiterConfig(suppression_window_ms=3000)),
            event_bus=bus, clock=clock, viewport=VIEWPORT,
        )
        done = threading.Event()

        def speak():
            for word in ("asia", "europe", "africa") * 50:
                controller.on_utterance(word)
            done.set()

        thread = threading.Thread(target=speak)
        thread.start()
        while not done.is_set():
            controller.on_frame([centered_hand()], VIEWPORT)
        thread.join()

        assert controller.voice_target.command is VoiceCommand.AFRICA
        frame = controller.on_frame([centered_hand()], VIEWPORT)
        assert frame.source is ControlSource.VOICE

    def test_build_view_snapshot(self, controller):
        view = controller.build_view()
        assert set(view) == {"state", "sector", "panel", "status", "voice_listening", "voice_override"}
        view["state"].rotation_y = 99.0
        assert controller.state.rotation_y == 0.0
