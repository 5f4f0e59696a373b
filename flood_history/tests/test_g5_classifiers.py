#!/usr/bin/env python3
"""
G5 - Flood classifiers & configuration
Tests the per-image flood rules and configuration validation
"""

import numpy as np
import pytest

from conftest import make_probability_image
from flood_history.classifiers import NdwiFloodClassifier, ProbabilityFloodClassifier
from flood_history.config import FloodHistoryConfig, ProcessingMode
from flood_history.errors import DomainMismatchError
from flood_history.grid import GridDomain, RasterGrid

PROBABILITY_TEST_CASES = [
    # (water, flooded_veg, expected_flooded, description)
    (0.2, 0.2, False, "both_below"),
    (0.5, 0.1, False, "water_at_threshold"),
    (0.51, 0.1, True, "water_above"),
    (0.1, 0.5, False, "veg_at_threshold"),
    (0.1, 0.7, True, "veg_above"),
    (0.9, 0.9, True, "both_above"),
]


class TestProbabilityFloodClassifier:
    """Test water OR flooded-vegetation probability rule"""

    @pytest.mark.parametrize("water,flooded_veg,expected,description", PROBABILITY_TEST_CASES,
                             ids=[case[3] for case in PROBABILITY_TEST_CASES])
    def test_strict_threshold_or_rule(self, standard_config, single_pixel_domain,
                                      water, flooded_veg, expected, description):
        """Test 20: Strictly greater-than on either band"""
        classifier = ProbabilityFloodClassifier(standard_config)
        flood = classifier.classify(make_probability_image(single_pixel_domain, water, flooded_veg))

        assert flood.values.dtype == np.bool_
        assert bool(flood.values[0, 0]) is expected

    def test_configured_thresholds(self, single_pixel_domain):
        config = FloodHistoryConfig(water_threshold=0.8, flooded_veg_threshold=0.8,
                                    enable_detailed_logging=False)
        flood = ProbabilityFloodClassifier(config).classify(
            make_probability_image(single_pixel_domain, 0.7, 0.7))
        assert not flood.values[0, 0]

    def test_validity_from_bands(self, standard_config, small_domain):
        water = np.full(small_domain.shape, 0.9, dtype=np.float32)
        veg = np.full(small_domain.shape, 0.0, dtype=np.float32)
        water[0, 0] = np.nan
        veg[0, 0] = np.nan
        water[1, 1] = np.nan  # veg still valid here

        flood = ProbabilityFloodClassifier(standard_config).classify({
            'water': RasterGrid.from_array(small_domain, water),
            'flooded_vegetation': RasterGrid.from_array(small_domain, veg),
        })

        assert not flood.valid[0, 0]
        assert not flood.values[0, 0]
        assert flood.valid[1, 1]
        assert not flood.values[1, 1]
        assert flood.values[2, 2]

    def test_missing_band(self, standard_config, small_domain):
        with pytest.raises(ValueError, match="flooded_vegetation"):
            ProbabilityFloodClassifier(standard_config).classify({
                'water': RasterGrid.full(small_domain, 0.9),
            })

    def test_band_domain_mismatch(self, standard_config, small_domain):
        with pytest.raises(DomainMismatchError):
            ProbabilityFloodClassifier(standard_config).classify({
                'water': RasterGrid.full(small_domain, 0.9),
                'flooded_vegetation': RasterGrid.full(GridDomain(nj=2, ni=2), 0.9),
            })


class TestNdwiFloodClassifier:
    """Test the single-index NDWI rule"""

    def test_ndwi_threshold(self, standard_config):
        domain = GridDomain(nj=1, ni=4)
        green = np.array([[0.3, 0.2, 0.1, 0.0]])
        nir = np.array([[0.1, 0.2, 0.3, 0.0]])

        flood = NdwiFloodClassifier(standard_config).classify({
            'green': RasterGrid(domain, green),
            'nir': RasterGrid(domain, nir),
        })

        # NDWI: +0.5, 0.0 (not > 0), -0.5, undefined
        assert list(flood.values[0]) == [True, False, False, False]
        assert list(flood.valid[0]) == [True, True, True, False]

    def test_configured_ndwi_threshold(self):
        domain = GridDomain(nj=1, ni=1)
        config = FloodHistoryConfig(ndwi_threshold=0.6, enable_detailed_logging=False)
        flood = NdwiFloodClassifier(config).classify({
            'green': RasterGrid(domain, np.array([[0.3]])),
            'nir': RasterGrid(domain, np.array([[0.1]])),
        })
        assert not flood.values[0, 0]


class TestConfiguration:
    """Test configuration validation and environment overrides"""

    @pytest.mark.parametrize("kwargs", [
        {'water_threshold': 1.5},
        {'flooded_veg_threshold': -0.1},
        {'ndwi_threshold': 2.0},
        {'slope_threshold_degrees': 0.0},
        {'tile_rows': 0},
        {'max_workers': 0},
    ], ids=["water", "flooded_veg", "ndwi", "slope", "tile_rows", "max_workers"])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            FloodHistoryConfig(**kwargs)

    def test_processing_mode_from_string(self):
        assert FloodHistoryConfig(processing_mode="tiled").processing_mode == ProcessingMode.TILED

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FLOOD_HISTORY_WATER_THRESHOLD", "0.65")
        monkeypatch.setenv("FLOOD_HISTORY_EXCLUDE_PERMANENT_WATER", "false")
        monkeypatch.setenv("FLOOD_HISTORY_TILE_ROWS", "64")
        monkeypatch.setenv("FLOOD_HISTORY_PROCESSING_MODE", "TILED")

        config = FloodHistoryConfig.from_env()

        assert config.water_threshold == pytest.approx(0.65)
        assert config.exclude_permanent_water is False
        assert config.tile_rows == 64
        assert config.processing_mode == ProcessingMode.TILED
        assert config.flooded_veg_threshold == 0.5

    def test_to_dict(self):
        data = FloodHistoryConfig().to_dict()
        assert data['processing_mode'] == "sequential"
        assert data['duration_display_max_days'] == 60
