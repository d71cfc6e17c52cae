"""
Jarvis Globe
============

Gesture and voice control for a holographic globe HUD.

Modules:
    - core: domain types, event bus, orientation controller
    - fusion: gesture/voice interpretation, arbitration, smoothing, sectors
    - capture: camera frame acquisition
    - detection: MediaPipe hand landmark detection
    - voice: continuous speech recognition stream
    - visualization: OpenCV HUD overlay
    - utils: configuration and logging
"""

__version__ = "1.0.0"
