"""
Heading -> named sector lookup.

The globe heading is wrapped into [0, 2π) and reflected (2π - heading) to
follow the renderer's winding direction, then looked up in an ordered table
of half-open ranges. A miss keeps the previous sector.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from jarvis_globe.core.types import TAU, Sector, wrap_angle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SectorRange:
    sector: Sector
    lower: float
    upper: float

    def contains(self, angle: float) -> bool:
        return self.lower <= angle < self.upper


DEFAULT_SECTOR_TABLE: Tuple[SectorRange, ...] = (
    SectorRange(Sector.AFRICA, 0.0, 1.2),
    SectorRange(Sector.ASIA, 1.2, 2.5),
    SectorRange(Sector.PACIFIC, 2.5, 4.0),
    SectorRange(Sector.AMERICAS, 4.0, 5.5),
    SectorRange(Sector.EUROPE, 5.5, TAU),
)


@dataclass
class SectorClassifierConfig:
    """Sector table configuration."""
    table: Tuple[SectorRange, ...] = field(default_factory=lambda: DEFAULT_SECTOR_TABLE)

    @classmethod
    def from_dict(cls, config: dict) -> "SectorClassifierConfig":
        """Create config from dictionary.

        An upper bound of ``tau`` (or any value past 2π) is read as 2π. A table
        that cannot be read or does not cover [0, 2π) is logged and replaced
        by the defaults.
        """
        rows = config.get("sectors")
        if not rows:
            return cls()
        try:
            table = tuple(_parse_row(row) for row in rows)
            validate_table(table)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error("Invalid sector table in config, using defaults: %s", e)
            return cls()
        return cls(table=table)


def _parse_row(row: dict) -> SectorRange:
    upper = row.get("upper", TAU)
    upper = TAU if upper == "tau" else min(float(upper), TAU)
    return SectorRange(Sector.from_string(row["name"]), float(row["lower"]), upper)


def validate_table(table: Tuple[SectorRange, ...]):
    """Raise ValueError unless the ranges partition [0, 2π) in order."""
    if not table:
        raise ValueError("Sector table is empty")
    expected = 0.0
    for entry in table:
        if entry.lower != expected:
            raise ValueError(
                f"Sector {entry.sector.value} starts at {entry.lower}, expected {expected}"
            )
        if entry.upper <= entry.lower:
            raise ValueError(f"Sector {entry.sector.value} has an empty range")
        expected = entry.upper
    if expected != TAU:
        raise ValueError(f"Sector table ends at {expected}, expected 2π")


class SectorClassifier:
    """Classifies the globe heading into a named sector."""

    def __init__(self, config: Optional[SectorClassifierConfig] = None):
        self.config = config or SectorClassifierConfig()
        validate_table(self.config.table)
        self._current: Optional[Sector] = None

    @property
    def current(self) -> Optional[Sector]:
        """Last classified sector, None before the first hit."""
        return self._current

    @staticmethod
    def reflect(rotation_y: float) -> float:
        """Wrap into [0, 2π) and mirror to the renderer's winding."""
        return TAU - wrap_angle(rotation_y)

    def lookup(self, angle: float) -> Optional[Sector]:
        """First sector whose range contains angle, or None."""
        for entry in self.config.table:
            if entry.contains(angle):
                return entry.sector
        return None

    def classify(self, rotation_y: float) -> Optional[Sector]:
        """Classify a raw rotation.y, keeping the previous sector on a miss."""
        sector = self.lookup(self.reflect(rotation_y))
        if sector is not None:
            self._current = sector
        return self._current

    def reset(self):
        self._current = None
