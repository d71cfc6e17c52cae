"""HUD rendering."""
from .hud import Hud

__all__ = ["Hud"]
