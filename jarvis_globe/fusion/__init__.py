"""Input fusion stages."""
from .gesture_interpreter import GestureInterpreter, GestureInterpreterConfig
from .voice_interpreter import VoiceCommandInterpreter, VoiceCommandConfig
from .arbiter import InputArbiter, ArbiterConfig
from .smoother import OrientationSmoother, SmootherConfig
from .sector_classifier import SectorClassifier, SectorClassifierConfig

__all__ = [
    "GestureInterpreter",
    "GestureInterpreterConfig",
    "VoiceCommandInterpreter",
    "VoiceCommandConfig",
    "InputArbiter",
    "ArbiterConfig",
    "OrientationSmoother",
    "SmootherConfig",
    "SectorClassifier",
    "SectorClassifierConfig",
]
