"""Speech recognition stream."""
from .speech_stream import SpeechStream, SpeechStreamConfig

__all__ = ["SpeechStream", "SpeechStreamConfig"]
