"""Configuration and logging utilities.

``logger`` depends on the event bus, so it is imported from its module
directly: ``from jarvis_globe.utils.logger import setup_logging``.
"""
from .config import Config, read_float, read_section

__all__ = ["Config", "read_float", "read_section"]
