"""
Tests for Sector Classifier
============================
"""

import math

import numpy as np
import pytest

from jarvis_globe.core.types import TAU, Sector
from jarvis_globe.fusion.sector_classifier import (
    DEFAULT_SECTOR_TABLE,
    SectorClassifier,
    SectorClassifierConfig,
    SectorRange,
    validate_table,
)


class TestSectorLookup:
    """Lookups on the reflected angle."""

    @pytest.fixture
    def classifier(self):
        return SectorClassifier()

    @pytest.mark.parametrize("angle,sector", [
        (0.0, Sector.AFRICA),
        (1.19, Sector.AFRICA),
        (1.2, Sector.ASIA),
        (2.49, Sector.ASIA),
        (2.5, Sector.PACIFIC),
        (4.0, Sector.AMERICAS),
        (5.5, Sector.EUROPE),
        (6.2831, Sector.EUROPE),
    ])
    def test_boundaries_are_half_open(self, classifier, angle, sector):
        assert classifier.lookup(angle) is sector

    def test_full_circle_is_not_in_table(self, classifier):
        assert classifier.lookup(TAU) is None

    def test_partition_has_no_gaps_or_overlaps(self, classifier):
        """Every angle in [0, 2π) hits exactly one range."""
        for angle in np.linspace(0.0, TAU, 5000, endpoint=False):
            hits = [r for r in DEFAULT_SECTOR_TABLE if r.contains(angle)]
            assert len(hits) == 1


class TestClassify:
    """Classification of raw rotation.y."""

    @pytest.fixture
    def classifier(self):
        return SectorClassifier()

    def test_reflect(self):
        assert SectorClassifier.reflect(0.5) == pytest.approx(TAU - 0.5)
        assert SectorClassifier.reflect(-0.5) == pytest.approx(0.5)
        assert SectorClassifier.reflect(TAU + 1.0) == pytest.approx(TAU - 1.0)

    @pytest.mark.parametrize("rotation_y,sector", [
        (0.5, Sector.EUROPE),       # reflected 5.78
        (2.0, Sector.AMERICAS),     # reflected 4.28
        (4.8, Sector.ASIA),         # reflected 1.48
        (5.8, Sector.AFRICA),       # reflected 0.48
    ])
    def test_voice_rotations(self, classifier, rotation_y, sector):
        assert classifier.classify(rotation_y) is sector

    def test_known_headings(self, classifier):
        assert classifier.classify(TAU - 0.6) is Sector.AFRICA
        assert classifier.classify(TAU - 1.8) is Sector.ASIA
        assert classifier.classify(TAU - 3.0) is Sector.PACIFIC
        assert classifier.classify(TAU - 4.5) is Sector.AMERICAS
        assert classifier.classify(TAU - 6.0) is Sector.EUROPE

    def test_negative_rotation(self, classifier):
        """rotation.y = -0.6 wraps to 2π - 0.6, reflected 0.6 -> AFRICA."""
        assert classifier.classify(-0.6) is Sector.AFRICA

    def test_zero_heading_keeps_previous(self, classifier):
        """Heading 0 reflects to exactly 2π: no match, previous retained."""
        assert classifier.classify(0.0) is None
        classifier.classify(TAU - 1.8)
        assert classifier.classify(0.0) is Sector.ASIA
        assert classifier.classify(4 * math.pi) is Sector.ASIA
        assert classifier.current is Sector.ASIA

    def test_reset(self, classifier):
        classifier.classify(TAU - 1.8)
        classifier.reset()
        assert classifier.current is None


class TestSectorTable:

    def test_default_table_valid(self):
        validate_table(DEFAULT_SECTOR_TABLE)

    def test_gap_rejected(self):
        table = (
            SectorRange(Sector.AFRICA, 0.0, 1.0),
            SectorRange(Sector.ASIA, 1.1, TAU),
        )
        with pytest.raises(ValueError):
            SectorClassifier(SectorClassifierConfig(table=table))

    def test_short_table_rejected(self):
        with pytest.raises(ValueError):
            validate_table((SectorRange(Sector.AFRICA, 0.0, 6.28),))

    def test_empty_table_rejected(self):
        with pytest.raises(ValueError):
            validate_table(())

    def test_from_dict_reads_tau(self):
        config = SectorClassifierConfig.from_dict({
            "sectors": [
                {"name": "africa", "lower": 0.0, "upper": 3.0},
                {"name": "europe", "lower": 3.0, "upper": "tau"},
            ]
        })
        classifier = SectorClassifier(config)
        assert classifier.lookup(6.2831) is Sector.EUROPE
        assert classifier.lookup(1.0) is Sector.AFRICA

    def test_from_dict_caps_upper_at_tau(self):
        config = SectorClassifierConfig.from_dict({
            "sectors": [{"name": "PACIFIC", "lower": 0.0, "upper": 7.0}]
        })
        assert config.table[0].upper == TAU
