"""
Camera frame source for the HUD loop.

A background thread keeps only the newest frame; the frame loop polls with
the id of the frame it last processed and gets ``None`` until a newer one
arrives. Frames stay in raw camera orientation so landmark x-coordinates
match the role split; mirroring for display is the HUD's job.
"""

import time
import logging
import threading
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Tuple

import cv2
import numpy as np

from jarvis_globe.core.events import EventBus, Events

logger = logging.getLogger(__name__)

_BACKENDS = {
    "auto": cv2.CAP_ANY,
    "v4l2": cv2.CAP_V4L2,
    "gstreamer": cv2.CAP_GSTREAMER,
}


@dataclass
class CameraConfig:
    """Camera settings."""
    device_id: int = 0
    width: int = 1280
    height: int = 720
    fps: int = 60
    backend: str = "auto"
    buffer_size: int = 1
    flip_horizontal: bool = False
    warmup_frames: int = 5
    max_read_failures: int = 30      # Consecutive failed grabs before CAMERA_ERROR

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from the ``camera`` section."""
        return cls(
            device_id=int(config.get("device_id", 0)),
            width=int(config.get("width", 1280)),
            height=int(config.get("height", 720)),
            fps=int(config.get("fps", 60)),
            backend=config.get("backend", "auto"),
            buffer_size=int(config.get("buffer_size", 1)),
            flip_horizontal=config.get("flip_horizontal", False),
            warmup_frames=int(config.get("warmup_frames", 5)),
            max_read_failures=int(config.get("max_read_failures", 30)),
        )


class CapturedFrame(NamedTuple):
    frame_id: int
    image: np.ndarray
    timestamp_ms: int


def blank_frame(width: int, height: int) -> np.ndarray:
    """Black BGR frame, used while no camera frame is available."""
    return np.zeros((height, width, 3), dtype=np.uint8)


class CameraManager:
    """Threaded camera capture holding the latest frame."""

    def __init__(
        self,
        config: Optional[CameraConfig] = None,
        event_bus: Optional[EventBus] = None,
        capture_factory: Callable = cv2.VideoCapture,
    ):
        self.config = config or CameraConfig()
        self._bus = event_bus or EventBus()
        self._capture_factory = capture_factory
        self._width = self.config.width
        self._height = self.config.height

        self._cap = None
        self._latest: Optional[CapturedFrame] = None
        self._next_id = 1
        self._failures = 0
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self._width, self._height)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def open(self) -> bool:
        """Open the device and apply the requested mode."""
        cfg = self.config
        backend = _BACKENDS.get(cfg.backend)
        if backend is None:
            logger.warning("Unknown camera backend %r, using auto", cfg.backend)
            backend = cv2.CAP_ANY

        self._cap = self._capture_factory(cfg.device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d (backend=%s)", cfg.device_id, cfg.backend)
            self._cap = None
            self._bus.emit(Events.CAMERA_ERROR, reason=f"cannot open device {cfg.device_id}")
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.height)
        self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

        # The driver may settle on another mode
        self._width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or cfg.width
        self._height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or cfg.height
        logger.info("Camera %d opened: %dx%d", cfg.device_id, self._width, self._height)

        for _ in range(cfg.warmup_frames):
            self._cap.read()
        return True

    def start(self):
        """Start the capture thread. open() must have succeeded."""
        if self._thread is not None and self._thread.is_alive():
            return
        if self._cap is None:
            raise RuntimeError("Camera is not open")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._capture_loop, name="camera", daemon=True)
        self._thread.start()

    def grab(self) -> bool:
        """Read one frame from the device into the latest slot."""
        ok, image = self._cap.read()
        if not ok or image is None:
            self._failures += 1
            if self._failures == self.config.max_read_failures:
                logger.error("Camera returned no frame %d times in a row", self._failures)
                self._bus.emit(Events.CAMERA_ERROR, reason="no frames")
            return False

        self._failures = 0
        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)
        with self._lock:
            self._latest = CapturedFrame(self._next_id, image, int(time.monotonic() * 1000))
            self._next_id += 1
        return True

    def latest(self, after_id: int = 0) -> Optional[CapturedFrame]:
        """Newest frame with an id greater than ``after_id``, else None."""
        with self._lock:
            frame = self._latest
        if frame is None or frame.frame_id <= after_id:
            return None
        return frame

    def _capture_loop(self):
        while not self._stop_event.is_set():
            if not self.grab():
                self._stop_event.wait(0.005)

    def stop(self):
        """Stop the capture thread and release the device."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera released")
