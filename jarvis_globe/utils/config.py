"""
Application configuration.

One YAML file (``config/config.yaml``) holds every tunable. Components keep
their own dataclass defaults, so a missing file or section still yields a
working globe; problems found while loading are logged, never raised.

    config = Config().load()
    config.override({"speech": {"language": "en-US"}})
    window = config.get("fusion.arbiter.suppression_window_ms", 3000)
"""

import os
import logging
from typing import Any, Callable, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CONFIG_PATH = os.path.join(_BASE_DIR, "config", "config.yaml")
CONFIG_ENV_VAR = "JARVIS_GLOBE_CONFIG"

SECTIONS = ("camera", "mediapipe", "fusion", "speech", "visualization")

_NUMBER = (int, float)


def _unit_interval(value) -> bool:
    return 0.0 < value <= 1.0


def _positive(value) -> bool:
    return value > 0


# (dotted path, accepted types, optional range check)
_RULES: Tuple[Tuple[str, tuple, Optional[Callable[[Any], bool]]], ...] = (
    ("camera.device_id", (int,), None),
    ("camera.width", (int,), _positive),
    ("camera.height", (int,), _positive),
    ("camera.fps", (int,), _positive),
    ("mediapipe.max_num_hands", (int,), _positive),
    ("mediapipe.min_detection_confidence", _NUMBER, _unit_interval),
    ("mediapipe.min_tracking_confidence", _NUMBER, _unit_interval),
    ("fusion.arbiter.suppression_window_ms", _NUMBER, _positive),
    ("fusion.smoother.voice_alpha", _NUMBER, _unit_interval),
    ("fusion.smoother.gesture_alpha", _NUMBER, _unit_interval),
    ("fusion.smoother.scale_beta", _NUMBER, _unit_interval),
    ("fusion.smoother.min_scale", _NUMBER, _positive),
    ("fusion.smoother.max_scale", _NUMBER, _positive),
    ("fusion.gesture.role_split_x", _NUMBER, _unit_interval),
    ("fusion.gesture.yaw_gain", _NUMBER, None),
    ("fusion.gesture.pitch_gain", _NUMBER, None),
    ("fusion.gesture.scale_gain", _NUMBER, _positive),
    ("fusion.gesture.min_scale", _NUMBER, _positive),
    ("fusion.gesture.max_scale", _NUMBER, _positive),
    ("fusion.gesture.pinch_threshold", _NUMBER, _positive),
    ("fusion.arbiter.initial_scale", _NUMBER, _positive),
    ("fusion.voice.commands", (list,), None),
    ("fusion.sector.sectors", (list,), None),
    ("speech.enabled", (bool,), None),
    ("speech.language", (str,), None),
    ("speech.restart_delay_sec", _NUMBER, _positive),
    ("visualization.window_name", (str,), None),
)

_MISSING = object()

# Subsections of ``fusion`` that must be mappings when present
_FUSION_SUBSECTIONS = ("gesture", "voice", "arbiter", "smoother", "sector", "panel")


def read_section(config, key: str) -> dict:
    """Sub-mapping of a config section; ``{}`` when absent, empty or not a mapping."""
    value = config.get(key) if isinstance(config, dict) else None
    return value if isinstance(value, dict) else {}


def read_float(config, key: str, default: float) -> float:
    """Numeric field of a config section, falling back to ``default``.

    A value that is not a number (including bools) is logged and replaced by
    the default, so a bad entry never reaches the frame loop.
    """
    value = config.get(key, default) if isinstance(config, dict) else default
    if value is None:
        return default
    if not isinstance(value, bool):
        try:
            return float(value)
        except (TypeError, ValueError):
            pass
    logger.warning("Config value %s=%r is not a number, using %s", key, value, default)
    return default


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton holding the loaded configuration tree."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._source = None
            cls._instance._load_problems = []
        return cls._instance

    def load(self, config_path: Optional[str] = None, validate: bool = True) -> "Config":
        """Load a YAML file.

        The path is, in order: the argument, ``$JARVIS_GLOBE_CONFIG``, or
        ``config/config.yaml`` next to the package. With ``validate=False``
        nothing is logged until validate() is called, so the caller can set
        up logging from the loaded file first.
        """
        path = config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
        self._load_problems = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            self._load_problems.append(f"file not found: {path}, using defaults")
            data = {}
        except yaml.YAMLError as e:
            self._load_problems.append(f"{path} is not valid YAML, using defaults: {e}")
            data = {}

        if not isinstance(data, dict):
            if data is not None:
                self._load_problems.append(f"{path} must hold a mapping, using defaults")
            data = {}

        self._data = data
        self._source = path
        if validate:
            self.validate()
        return self

    def load_dict(self, data: dict) -> "Config":
        """Use an in-memory tree instead of a file."""
        self._data = dict(data or {})
        self._source = None
        self._load_problems = []
        self.validate()
        return self

    def override(self, overrides: dict) -> "Config":
        """Deep-merge overrides (e.g. from CLI flags) into the loaded tree."""
        if overrides:
            self._data = _deep_merge(self._data, overrides)
            logger.debug("Config overrides applied: %s", overrides)
        return self

    def validate(self) -> List[str]:
        """Check section presence, types and ranges. Returns the problems found.

        Problems met while reading the file are reported here too.
        """
        problems = list(self._load_problems)
        for section in SECTIONS:
            value = self._data.get(section, _MISSING)
            if value is _MISSING:
                problems.append(f"missing section '{section}'")
            elif not isinstance(value, dict):
                problems.append(f"section '{section}' must be a mapping, got {type(value).__name__}")

        for name in _FUSION_SUBSECTIONS:
            value = self.get(f"fusion.{name}", _MISSING)
            if value is not _MISSING and not isinstance(value, dict):
                problems.append(f"fusion.{name} must be a mapping, got {value!r}")

        for path, types, check in _RULES:
            value = self.get(path, _MISSING)
            if value is _MISSING:
                continue
            # bool is an int subclass but never a valid number here
            if not isinstance(value, types) or (isinstance(value, bool) and bool not in types):
                names = "/".join(t.__name__ for t in types)
                problems.append(f"{path}: expected {names}, got {value!r}")
            elif check is not None and not check(value):
                problems.append(f"{path}: {value!r} is out of range")

        for name in ("gesture", "smoother"):
            low = self.get(f"fusion.{name}.min_scale")
            high = self.get(f"fusion.{name}.max_scale")
            numbers = all(isinstance(v, _NUMBER) and not isinstance(v, bool) for v in (low, high))
            if numbers and low >= high:
                problems.append(f"fusion.{name}: min_scale {low!r} must be below max_scale {high!r}")

        for problem in problems:
            logger.warning("Config: %s", problem)
        return problems

    def get(self, key_path: str, default=None):
        """Nested lookup with dot notation, e.g. ``camera.width``."""
        node = self._data
        for key in key_path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def get_section(self, section: str) -> dict:
        value = self._data.get(section)
        return value if isinstance(value, dict) else {}

    @property
    def source(self) -> Optional[str]:
        """Path of the loaded file, None for defaults or load_dict()."""
        return self._source

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def mediapipe(self) -> dict:
        return self.get_section("mediapipe")

    @property
    def fusion(self) -> dict:
        return self.get_section("fusion")

    @property
    def speech(self) -> dict:
        return self.get_section("speech")

    @property
    def visualization(self) -> dict:
        return self.get_section("visualization")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @classmethod
    def reset(cls):
        """Forget the singleton (for testing)."""
        cls._instance = None
