"""Camera capture."""
from .camera_manager import CameraConfig, CameraManager, CapturedFrame, blank_frame

__all__ = ["CameraConfig", "CameraManager", "CapturedFrame", "blank_frame"]
