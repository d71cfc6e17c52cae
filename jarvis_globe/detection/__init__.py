"""Hand landmark detection (MediaPipe Tasks)."""
from .hand_detector import HandDetector, HandDetectorConfig, draw_samples, samples_from_result

__all__ = ["HandDetector", "HandDetectorConfig", "draw_samples", "samples_from_result"]
