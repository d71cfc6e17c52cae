"""Domain types, event bus and the orientation controller."""
from .controller import OrientationController, ControllerConfig, FrameResult
from .events import EventBus, Events

__all__ = ["OrientationController", "ControllerConfig", "FrameResult", "EventBus", "Events"]
