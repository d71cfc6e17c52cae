"""
Orientation controller: the input fusion core.

Combines the five fusion stages into one object with an explicit lifecycle:

    controller = OrientationController(config)
    controller.on_frame(samples, viewport)   # frame loop, ~60 Hz
    controller.on_utterance(text)            # speech thread, any time
    controller.teardown()

Frame processing:
    HandSamples -> GestureInterpreter -> InputArbiter (+ latest VoiceTarget)
    -> OrientationSmoother -> SectorClassifier

on_frame, on_utterance and teardown are serialized by one lock, so a voice
write never lands halfway through a frame tick. Events are emitted after the
lock is released so handlers may read the controller freely.
"""

import time
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from jarvis_globe.core.events import EventBus, Events
from jarvis_globe.core.types import (
    ControlSignal,
    ControlSource,
    HandSample,
    OrientationState,
    PanelPosition,
    Sector,
)
from jarvis_globe.fusion.arbiter import ArbiterConfig, InputArbiter
from jarvis_globe.fusion.gesture_interpreter import GestureInterpreter, GestureInterpreterConfig
from jarvis_globe.fusion.sector_classifier import SectorClassifier, SectorClassifierConfig
from jarvis_globe.fusion.smoother import OrientationSmoother, SmootherConfig
from jarvis_globe.fusion.voice_interpreter import (
    UtteranceResult,
    VoiceCommandConfig,
    VoiceCommandInterpreter,
)
from jarvis_globe.utils.config import read_float, read_section

logger = logging.getLogger(__name__)

STATUS_INIT = "INIT VISION..."
STATUS_ONLINE = "VISION ONLINE"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class ControllerConfig:
    """Configuration for the whole fusion core."""
    gesture: GestureInterpreterConfig = field(default_factory=GestureInterpreterConfig)
    voice: VoiceCommandConfig = field(default_factory=VoiceCommandConfig)
    arbiter: ArbiterConfig = field(default_factory=ArbiterConfig)
    smoother: SmootherConfig = field(default_factory=SmootherConfig)
    sectors: SectorClassifierConfig = field(default_factory=SectorClassifierConfig)
    panel_margin_right: float = 320.0   # Initial panel x = width - margin
    panel_initial_y: float = 100.0

    @classmethod
    def from_dict(cls, config: dict) -> "ControllerConfig":
        """Create config from the ``fusion`` section."""
        panel = read_section(config, "panel")
        return cls(
            gesture=GestureInterpreterConfig.from_dict(read_section(config, "gesture")),
            voice=VoiceCommandConfig.from_dict(read_section(config, "voice")),
            arbiter=ArbiterConfig.from_dict(read_section(config, "arbiter")),
            smoother=SmootherConfig.from_dict(read_section(config, "smoother")),
            sectors=SectorClassifierConfig.from_dict(read_section(config, "sector")),
            panel_margin_right=read_float(panel, "margin_right", 320.0),
            panel_initial_y=read_float(panel, "initial_y", 100.0),
        )


class FrameResult:
    """Result of a single controller tick."""

    __slots__ = (
        "frame_id", "timestamp_ms", "hand_count", "signals", "source",
        "suppressed", "state", "sector", "panel",
    )

    def __init__(self):
        self.frame_id = 0
        self.timestamp_ms = 0.0
        self.hand_count = 0
        self.signals: List[ControlSignal] = []
        self.source = ControlSource.HOLD
        self.suppressed = False
        self.state: Optional[OrientationState] = None
        self.sector: Optional[Sector] = None
        self.panel: Optional[PanelPosition] = None


class OrientationController:
    """Fuses gesture and voice input into one globe pose."""

    def __init__(
        self,
        config: Optional[ControllerConfig] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], float] = _monotonic_ms,
        viewport: Tuple[int, int] = (1280, 720),
    ):
        self.config = config or ControllerConfig()
        self._bus = event_bus or EventBus()
        self._clock = clock
        self._lock = threading.Lock()

        self._gestures = GestureInterpreter(self.config.gesture)
        self._voice = VoiceCommandInterpreter(self.config.voice, clock=clock)
        self._arbiter = InputArbiter(self.config.arbiter)
        self._smoother = OrientationSmoother(self.config.smoother)
        self._sectors = SectorClassifier(self.config.sectors)

        width, _ = viewport
        self._panel = PanelPosition(
            x=width - self.config.panel_margin_right,
            y=self.config.panel_initial_y,
        )
        self._status = STATUS_INIT
        self._voice_listening = False
        self._frame_count = 0
        self._active = True
        self._teardown_hooks: List[Callable[[], None]] = []

        logger.info("OrientationController created (suppression window %.0f ms)",
                    self.config.arbiter.suppression_window_ms)

    # =========================================================================
    # Read side (renderer / HUD)
    # =========================================================================

    @property
    def state(self) -> OrientationState:
        return self._smoother.state

    @property
    def panel(self) -> PanelPosition:
        return self._panel

    @property
    def sector(self) -> Optional[Sector]:
        return self._sectors.current

    @property
    def status(self) -> str:
        return self._status

    @property
    def voice_listening(self) -> bool:
        return self._voice_listening

    @property
    def voice_target(self):
        return self._voice.last_target

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def is_active(self) -> bool:
        return self._active

    def voice_override_active(self) -> bool:
        """True while the latest voice command suppresses gesture rotation."""
        return self._arbiter.is_voice_active(self._voice.last_target, self._clock())

    def build_view(self) -> dict:
        """Snapshot of everything the HUD draws, in the format Hud.render() expects."""
        with self._lock:
            return {
                "state": self._smoother.state.copy(),
                "sector": self._sectors.current,
                "panel": PanelPosition(self._panel.x, self._panel.y),
                "status": self._status,
                "voice_listening": self._voice_listening,
                "voice_override": self._arbiter.is_voice_active(
                    self._voice.last_target, self._clock()
                ),
            }

    # =========================================================================
    # Write side
    # =========================================================================

    def on_frame(self, samples: Optional[Sequence[HandSample]],
                 viewport: Tuple[int, int]) -> Optional[FrameResult]:
        """Process one rendered frame.

        Args:
            samples: Hands detected this frame (0-2), in detection order
            viewport: Current (width, height) of the screen in pixels

        Returns:
            FrameResult, or None once the controller has been torn down
        """
        pending = []
        with self._lock:
            if not self._active:
                return None

            now = self._clock()
            samples = list(samples or [])
            signals = self._gestures.interpret_frame(samples, viewport)
            decision = self._arbiter.decide(signals, self._voice.last_target, now)
            state = self._smoother.step(decision.rotation, decision.scale, decision.source)

            previous_sector = self._sectors.current
            sector = self._sectors.classify(state.rotation_y)
            if sector is not previous_sector:
                logger.info("Sector: %s -> %s",
                            previous_sector.value if previous_sector else None, sector.value)
                pending.append((Events.SECTOR_CHANGED, {"sector": sector, "previous": previous_sector}))

            if decision.pointer is not None:
                self._panel = PanelPosition(decision.pointer.x, decision.pointer.y)
                pending.append((Events.PANEL_MOVED, {"panel": self._panel}))

            if samples and not self._recent_utterance(now):
                status_event = self._set_status_locked(f"TARGETS: {len(samples)}")
                if status_event:
                    pending.append(status_event)

            self._frame_count += 1
            result = FrameResult()
            result.frame_id = self._frame_count
            result.timestamp_ms = now
            result.hand_count = len(samples)
            result.signals = signals
            result.source = decision.source
            result.suppressed = decision.suppressed
            result.state = state.copy()
            result.sector = sector
            result.panel = self._panel

            logger.debug("Frame %d: hands=%d source=%s target=(%.2f, %.2f) scale=%.2f",
                         self._frame_count, len(samples), decision.source.value,
                         decision.rotation.x, decision.rotation.y, decision.scale)

        if samples:
            pending.insert(0, (Events.HANDS_UPDATED, {"hand_count": len(samples)}))
        self._dispatch(pending)
        return result

    def on_utterance(self, text: str) -> Optional[UtteranceResult]:
        """Handle one recognized utterance from the speech stream.

        Safe to call from any thread. Returns None after teardown or for an
        empty utterance.
        """
        pending = []
        with self._lock:
            if not self._active:
                logger.debug("Utterance after teardown ignored: %r", text)
                return None

            result = self._voice.interpret(text)
            if result is None:
                return None

            pending.append((Events.UTTERANCE_RECEIVED, {"text": result.text}))
            status_event = self._set_status_locked(result.status)
            if status_event:
                pending.append(status_event)
            if result.matched:
                pending.append((Events.VOICE_COMMAND, {"target": result.target}))

        self._dispatch(pending)
        return result

    def on_voice_state(self, listening: bool):
        """Speech stream started or stopped listening."""
        with self._lock:
            if not self._active or listening == self._voice_listening:
                return
            self._voice_listening = listening
        logger.info("Voice channel %s", "ON" if listening else "OFF")
        self._bus.emit(Events.VOICE_STATE_CHANGED, listening=listening)

    def set_status(self, text: str):
        """Set the display status string (e.g. from the bootstrap)."""
        with self._lock:
            if not self._active:
                return
            event = self._set_status_locked(text)
        if event:
            self._dispatch([event])

    def add_teardown_hook(self, hook: Callable[[], None]):
        """Register a callable run once on teardown (e.g. stopping the speech stream)."""
        self._teardown_hooks.append(hook)

    def teardown(self):
        """Stop accepting input. Idempotent; later callbacks are no-ops."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            self._voice_listening = False
            hooks = list(self._teardown_hooks)
            self._teardown_hooks.clear()

        for hook in hooks:
            try:
                hook()
            except Exception as e:
                logger.error("Teardown hook failed: %s", e)
        logger.info("OrientationController torn down after %d frames", self._frame_count)

    # =========================================================================
    # Internals
    # =========================================================================

    def _recent_utterance(self, now: float) -> bool:
        last = self._voice.last_utterance_ms
        if last is None:
            return False
        return (now - last) < self.config.arbiter.suppression_window_ms

    def _set_status_locked(self, text: str):
        if text == self._status:
            return None
        self._status = text
        return (Events.STATUS_CHANGED, {"status": text})

    def _dispatch(self, pending):
        for event_name, payload in pending:
            self._bus.emit(event_name, **payload)
