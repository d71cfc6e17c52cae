"""
Continuous speech recognition stream.

Wraps SpeechRecognition in a self-restarting background thread:

    - calibrates for ambient noise, then listens phrase by phrase
    - each transcript is handed to ``on_utterance`` (any thread-safe sink)
    - listening on/off transitions are reported to ``on_state``
    - any failure (recognizer request error, audio device error) ends the
      session; the stream waits ``restart_delay_sec`` and starts a new one,
      indefinitely, until stop()

No microphone or no PyAudio means the stream is unavailable and start()
returns False; the rest of the system keeps running without voice.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import speech_recognition as sr

logger = logging.getLogger(__name__)


@dataclass
class SpeechStreamConfig:
    """Speech stream configuration."""
    enabled: bool = True
    language: str = "zh-CN"
    device_index: Optional[int] = None
    restart_delay_sec: float = 1.0
    ambient_duration_sec: float = 0.5
    listen_timeout_sec: float = 1.0        # Wake up regularly to check for stop()
    phrase_time_limit_sec: float = 5.0
    single_utterance: bool = False         # End the session after each phrase

    @classmethod
    def from_dict(cls, config: dict) -> "SpeechStreamConfig":
        """Create config from dictionary."""
        return cls(
            enabled=config.get("enabled", True),
            language=config.get("language", "zh-CN"),
            device_index=config.get("device_index"),
            restart_delay_sec=float(config.get("restart_delay_sec", 1.0)),
            ambient_duration_sec=float(config.get("ambient_duration_sec", 0.5)),
            listen_timeout_sec=float(config.get("listen_timeout_sec", 1.0)),
            phrase_time_limit_sec=float(config.get("phrase_time_limit_sec", 5.0)),
            single_utterance=config.get("single_utterance", False),
        )


class SpeechStream:
    """Self-restarting speech-to-text stream.

    Example:
        >>> stream = SpeechStream(SpeechStreamConfig(), on_utterance=controller.on_utterance,
        ...                       on_state=controller.on_voice_state)
        >>> stream.start()
        >>> ...
        >>> stream.stop()
    """

    def __init__(
        self,
        config: Optional[SpeechStreamConfig] = None,
        on_utterance: Optional[Callable[[str], None]] = None,
        on_state: Optional[Callable[[bool], None]] = None,
        recognizer=None,
        microphone=None,
    ):
        self.config = config or SpeechStreamConfig()
        self._on_utterance = on_utterance
        self._on_state = on_state
        self._recognizer = recognizer or sr.Recognizer()
        self._microphone = microphone

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._listening = False
        self._restarts = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def available(self) -> bool:
        """True when a microphone could be opened."""
        if not self.config.enabled:
            return False
        if self._microphone is None:
            self._microphone = self._open_microphone()
        return self._microphone is not None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def restarts(self) -> int:
        return self._restarts

    def start(self) -> bool:
        """Start the background stream. Returns False if voice is unavailable."""
        if self.is_running:
            logger.debug("Speech stream already running")
            return True
        if not self.available:
            logger.warning("Voice channel disabled: no microphone available")
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="speech-stream", daemon=True)
        self._thread.start()
        logger.info("Speech stream started (language=%s)", self.config.language)
        return True

    def stop(self, timeout: float = 2.0):
        """Request termination. No callbacks are delivered after this returns."""
        self._stop_event.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Speech stream did not stop within %.1fs", timeout)
        self._set_listening(False, notify=False)
        logger.info("Speech stream stopped")

    # =========================================================================
    # Worker
    # =========================================================================

    def _open_microphone(self):
        try:
            return sr.Microphone(device_index=self.config.device_index)
        except (OSError, AttributeError) as e:
            # AttributeError: PyAudio is not installed
            logger.warning("Microphone error: %s", e)
            return None

    def _run(self):
        """Supervisor loop: one listening session, then backoff and restart."""
        while not self._stop_event.is_set():
            try:
                self._listen_session()
            except Exception as e:
                logger.warning("Speech stream terminated: %s", e)
            self._set_listening(False)

            if self._stop_event.wait(self.config.restart_delay_sec):
                break
            self._restarts += 1
            logger.info("Restarting speech stream (restart #%d)", self._restarts)

    def _listen_session(self):
        """Listen until stop(), an error, or the end of a single-utterance session."""
        with self._microphone as source:
            self._recognizer.adjust_for_ambient_noise(
                source, duration=self.config.ambient_duration_sec
            )
            self._set_listening(True)

            while not self._stop_event.is_set():
                try:
                    audio = self._recognizer.listen(
                        source,
                        timeout=self.config.listen_timeout_sec,
                        phrase_time_limit=self.config.phrase_time_limit_sec,
                    )
                except sr.WaitTimeoutError:
                    continue

                text = self._transcribe(audio)
                if text:
                    self._deliver(text)
                if self.config.single_utterance:
                    return

    def _transcribe(self, audio) -> Optional[str]:
        """Speech to text. Unintelligible audio yields None; service errors propagate."""
        try:
            text = self._recognizer.recognize_google(audio, language=self.config.language)
        except sr.UnknownValueError:
            logger.debug("Could not understand audio")
            return None
        if not isinstance(text, str):
            return None
        return text.strip() or None

    def _deliver(self, text: str):
        if self._stop_event.is_set() or self._on_utterance is None:
            return
        logger.debug("Voice input: %s", text)
        try:
            self._on_utterance(text)
        except Exception as e:
            logger.error("Utterance handler failed: %s", e)

    def _set_listening(self, listening: bool, notify: bool = True):
        if listening == self._listening:
            return
        self._listening = listening
        if notify and self._on_state is not None and not self._stop_event.is_set():
            try:
                self._on_state(listening)
            except Exception as e:
                logger.error("Voice state handler failed: %s", e)
