"""
Hand landmark detection with the MediaPipe Tasks HandLandmarker.

The landmarker runs in VIDEO mode (tracking between frames, up to two hands)
on raw camera frames and its result is converted to HandSamples in detection
order. The model file is fetched once into ``models/`` when missing.
"""

import logging
import time
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np
import mediapipe as mp
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision

from jarvis_globe.core.types import HandSample, Landmark, LandmarkIndex

logger = logging.getLogger(__name__)

MODEL_URL = ("https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
             "hand_landmarker/float16/1/hand_landmarker.task")
DEFAULT_MODEL_PATH = Path(__file__).resolve().parents[2] / "models" / "hand_landmarker.task"


def _finger_chains():
    # Wrist -> thumb, palm knuckles, then each finger base -> tip
    chains = [(0, 1, 2, 3, 4), (0, 5, 9, 13, 17, 0)]
    chains += [(base, base + 1, base + 2, base + 3) for base in (5, 9, 13, 17)]
    return chains


HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = tuple(
    (a, b) for chain in _finger_chains() for a, b in zip(chain, chain[1:])
)
FINGERTIPS = frozenset({
    LandmarkIndex.THUMB_TIP, LandmarkIndex.INDEX_TIP, LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP, LandmarkIndex.PINKY_TIP,
})


@dataclass
class HandDetectorConfig:
    """HandLandmarker settings (the ``mediapipe`` config section)."""
    model_path: str = ""
    max_num_hands: int = 2
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, config: dict) -> "HandDetectorConfig":
        """Create config from dictionary."""
        return cls(
            model_path=config.get("model_path") or "",
            max_num_hands=int(config.get("max_num_hands", 2)),
            min_detection_confidence=float(config.get("min_detection_confidence", 0.5)),
            min_presence_confidence=float(config.get("min_presence_confidence", 0.5)),
            min_tracking_confidence=float(config.get("min_tracking_confidence", 0.5)),
        )


def ensure_model(path: Path, url: str = MODEL_URL) -> bool:
    """Make sure the model file exists, downloading it if needed."""
    if path.exists():
        return True
    logger.info("Hand landmarker model not found, downloading to %s", path)
    partial = path.with_suffix(path.suffix + ".part")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        urllib.request.urlretrieve(url, partial)
        partial.replace(path)
    except OSError as e:
        logger.error("Model download failed: %s", e)
        if partial.exists():
            partial.unlink()
        return False
    return True


def samples_from_result(result) -> List[HandSample]:
    """Convert a HandLandmarkerResult into HandSamples, in detection order.

    Hands without exactly 21 landmarks are dropped with a warning.
    """
    samples = []
    handedness = result.handedness or []
    for i, points in enumerate(result.hand_landmarks or []):
        label, score = "unknown", 0.0
        if i < len(handedness) and handedness[i]:
            label = handedness[i][0].category_name
            score = handedness[i][0].score
        try:
            samples.append(HandSample(
                landmarks=[Landmark(p.x, p.y, p.z) for p in points],
                handedness=label,
                confidence=score,
            ))
        except ValueError as e:
            logger.warning("Dropping hand %d: %s", i, e)
    return samples


class HandDetector:
    """Camera frame -> HandSamples.

    Example:
        >>> with HandDetector(HandDetectorConfig()) as detector:
        ...     samples = detector.detect(frame, timestamp_ms)
    """

    def __init__(self, config: Optional[HandDetectorConfig] = None):
        self.config = config or HandDetectorConfig()
        self._landmarker = None
        self._last_timestamp_ms = -1
        self._frames = 0
        self._hands_seen = 0

    @property
    def is_ready(self) -> bool:
        return self._landmarker is not None

    @property
    def stats(self) -> dict:
        return {"frames": self._frames, "hands": self._hands_seen}

    def start(self) -> bool:
        """Create the landmarker. Returns False when the model is unavailable."""
        if self._landmarker is not None:
            return True
        cfg = self.config
        model_path = Path(cfg.model_path) if cfg.model_path else DEFAULT_MODEL_PATH
        if not ensure_model(model_path):
            return False

        options = vision.HandLandmarkerOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=cfg.max_num_hands,
            min_hand_detection_confidence=cfg.min_detection_confidence,
            min_hand_presence_confidence=cfg.min_presence_confidence,
            min_tracking_confidence=cfg.min_tracking_confidence,
        )
        try:
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            logger.error("HandLandmarker could not be created: %s", e)
            return False
        logger.info("HandLandmarker ready (%s, up to %d hands)", model_path.name, cfg.max_num_hands)
        return True

    def stop(self):
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker closed after %d frames", self._frames)

    def detect(self, bgr_frame: np.ndarray, timestamp_ms: Optional[int] = None) -> List[HandSample]:
        """Detect hands in a BGR frame. Empty list before start()."""
        if self._landmarker is None:
            return []
        if timestamp_ms is None:
            timestamp_ms = int(time.monotonic() * 1000)
        # VIDEO mode rejects timestamps that do not increase
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        rgb = cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGB)
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        samples = samples_from_result(self._landmarker.detect_for_video(image, timestamp_ms))

        self._frames += 1
        self._hands_seen += len(samples)
        return samples

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


def draw_samples(image: np.ndarray, samples: List[HandSample],
                 bone_color=(255, 255, 0), joint_color=(255, 255, 255)) -> np.ndarray:
    """Draw hand skeletons in place on a raw-orientation BGR image."""
    height, width = image.shape[:2]
    for sample in samples:
        pixels = [lm.to_pixel(width, height) for lm in sample.landmarks]
        for a, b in HAND_CONNECTIONS:
            cv2.line(image, pixels[a], pixels[b], bone_color, 2)
        for i, point in enumerate(pixels):
            cv2.circle(image, point, 4 if i in FINGERTIPS else 2, joint_color, -1)
    return image
