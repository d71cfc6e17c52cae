#!/usr/bin/env python3
"""
Jarvis Globe - gesture and voice controlled holographic globe.

    camera thread  -> CameraManager.latest()
    frame loop     -> HandDetector.detect() -> OrientationController.on_frame()
                      -> Hud.render() -> cv2.imshow
    speech thread  -> SpeechStream -> OrientationController.on_utterance()

Usage:
    python main.py                    # Camera + voice
    python main.py --no-voice         # Gesture only
    python main.py --language en-US   # English recognizer
    python main.py --camera 1         # Another camera
    python main.py --config my.yaml   # Another config file

Keys: q / ESC quit.
"""

import sys
import signal
import argparse
import logging

import cv2

from jarvis_globe import __version__
from jarvis_globe.capture import CameraConfig, CameraManager, blank_frame
from jarvis_globe.core.controller import ControllerConfig, OrientationController, STATUS_ONLINE
from jarvis_globe.core.events import EventBus, Events
from jarvis_globe.detection import HandDetector, HandDetectorConfig, draw_samples
from jarvis_globe.utils.config import Config
from jarvis_globe.utils.logger import CommandLogger, setup_logging
from jarvis_globe.visualization.hud import Hud
from jarvis_globe.voice.speech_stream import SpeechStream, SpeechStreamConfig

logger = logging.getLogger(__name__)

QUIT_KEYS = (ord("q"), 27)


class JarvisGlobeApp:
    """Wires camera, detector, speech, controller and HUD together."""

    def __init__(self, config: Config):
        self._running = False
        self._bus = EventBus()

        self._camera = CameraManager(CameraConfig.from_dict(config.camera), event_bus=self._bus)
        self._detector = HandDetector(HandDetectorConfig.from_dict(config.mediapipe))
        self._hud = Hud(config.visualization)
        self._controller = OrientationController(
            ControllerConfig.from_dict(config.fusion),
            event_bus=self._bus,
            viewport=self._camera.resolution,
        )
        self._speech = SpeechStream(
            SpeechStreamConfig.from_dict(config.speech),
            on_utterance=self._controller.on_utterance,
            on_state=self._controller.on_voice_state,
        )
        self._command_log = CommandLogger(self._bus).attach()

        # Teardown stops voice delivery before the loop exits
        self._controller.add_teardown_hook(self._speech.stop)
        self._controller.add_teardown_hook(self.request_stop)
        self._bus.subscribe(Events.CAMERA_ERROR, self._on_camera_error)

    def request_stop(self):
        self._running = False

    def _on_camera_error(self, reason: str = "unknown"):
        logger.error("Camera error: %s", reason)
        self.request_stop()

    def _show(self, image) -> bool:
        """Display a frame; False when the user asked to quit."""
        cv2.imshow(self._hud.window_name, image)
        return (cv2.waitKey(1) & 0xFF) not in QUIT_KEYS

    def run(self) -> int:
        """Boot, run the frame loop until quit, shut down. Returns an exit code."""
        if not self._camera.open():
            return 1

        width, height = self._camera.resolution
        self._show(self._hud.render(blank_frame(width, height), {}, loading=True))

        if not self._detector.start():
            logger.error("Hand detector unavailable")
            self._shutdown()
            return 1

        self._camera.start()
        self._controller.set_status(STATUS_ONLINE)
        if not self._speech.start():
            logger.warning("Running without voice control")

        self._running = True
        self._bus.emit(Events.SYSTEM_STARTED)
        try:
            self._frame_loop()
        finally:
            self._shutdown()
        return 0

    def _frame_loop(self):
        last_id = 0
        while self._running:
            captured = self._camera.latest(after_id=last_id)
            if captured is None:
                if (cv2.waitKey(1) & 0xFF) in QUIT_KEYS:
                    break
                continue
            last_id = captured.frame_id

            image = captured.image
            samples = self._detector.detect(image, captured.timestamp_ms)
            height, width = image.shape[:2]
            if self._controller.on_frame(samples, (width, height)) is None:
                break

            draw_samples(image, samples)
            if not self._show(self._hud.render(image, self._controller.build_view())):
                break

    def _shutdown(self):
        logger.info("Shutting down...")
        self._controller.teardown()
        self._camera.stop()
        self._detector.stop()
        cv2.destroyAllWindows()
        self._bus.emit(Events.SYSTEM_SHUTDOWN)
        stats = self._detector.stats
        logger.info("Stopped after %d frames (%d with detection, %d hands), %d voice commands",
                    self._controller.frame_count, stats["frames"], stats["hands"],
                    self._command_log.total_commands)

    def handle_signal(self, signum, frame):
        logger.info("Signal %d received", signum)
        self.request_stop()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="jarvis-globe",
        description="Gesture and voice controlled globe HUD",
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--no-voice", action="store_true", help="Disable the voice channel")
    parser.add_argument("--language", default=None,
                        help="Speech recognizer language, e.g. zh-CN or en-US")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper)
    return parser.parse_args(argv)


def overrides_from_args(args) -> dict:
    """Translate CLI flags into a config overlay."""
    overrides = {}
    if args.camera is not None:
        overrides.setdefault("camera", {})["device_id"] = args.camera
    if args.no_voice:
        overrides.setdefault("speech", {})["enabled"] = False
    if args.language:
        overrides.setdefault("speech", {})["language"] = args.language
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level
    return overrides


def configure(args) -> Config:
    """Load the config, set up logging from it, then report config problems."""
    config = Config().load(args.config, validate=False).override(overrides_from_args(args))

    log_cfg = config.logging
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )
    logger.info("Jarvis Globe %s (config: %s)", __version__, config.source or "defaults")
    config.validate()
    return config


def main(argv=None) -> int:
    config = configure(parse_args(argv))

    app = JarvisGlobeApp(config)
    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)
    return app.run()


if __name__ == "__main__":
    sys.exit(main())
