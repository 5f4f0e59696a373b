#!/usr/bin/env python3
"""
Pytest fixtures and helpers for flood history tests
"""

import os
import time
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Sequence, Tuple

import numpy as np
import psutil
import pytest

from flood_history.config import FloodHistoryConfig, ProcessingMode
from flood_history.grid import GridDomain, RasterGrid
from flood_history.observations import Observation, TemporalObservationSet
from flood_history.window import WindowBounds

# Day zero for synthetic windows
EPOCH = date(2023, 1, 1)


def day(n: int) -> date:
    """Calendar date n days after EPOCH"""
    return EPOCH + timedelta(days=n)


@pytest.fixture
def standard_config():
    """Standard test configuration"""
    return FloodHistoryConfig(
        processing_mode=ProcessingMode.SEQUENTIAL,
        enable_detailed_logging=False,  # Reduce test noise
    )


@pytest.fixture
def tiled_config():
    """Tiled configuration with small tiles so every test grid splits"""
    return FloodHistoryConfig(
        processing_mode=ProcessingMode.TILED,
        tile_rows=2,
        max_workers=3,
        enable_detailed_logging=False,
    )


@pytest.fixture
def single_pixel_domain():
    return GridDomain(nj=1, ni=1)


@pytest.fixture
def small_domain():
    """5×4 unit grid"""
    return GridDomain(nj=5, ni=4)


@pytest.fixture
def hundred_day_window():
    return WindowBounds(day(0), day(100))


def make_flood_grid(domain: GridDomain, flooded: Any = False, valid: Any = True) -> RasterGrid:
    """
    Boolean flood raster from a scalar, a full array, or a set of (row, col) cells
    """
    if isinstance(flooded, (set, list, tuple)):
        values = np.zeros(domain.shape, dtype=bool)
        for row, col in flooded:
            values[row, col] = True
    else:
        values = np.broadcast_to(np.asarray(flooded, dtype=bool), domain.shape)

    valid_arr = np.broadcast_to(np.asarray(valid, dtype=bool), domain.shape)
    return RasterGrid(domain=domain, values=values, valid=valid_arr)


def make_observation_set(domain: GridDomain,
                         entries: Iterable[Tuple[int, Any]]) -> TemporalObservationSet:
    """Observation set from (day offset, flooded) pairs; see make_flood_grid"""
    return TemporalObservationSet(
        domain,
        [Observation(timestamp=day(n), flood_mask=make_flood_grid(domain, flooded))
         for n, flooded in entries],
    )


def make_random_stack(domain: GridDomain, days: Sequence[int], flood_prob: float,
                      seed: int = 42) -> TemporalObservationSet:
    """Random flood stack; tests set the seed for determinism"""
    rng = np.random.default_rng(seed)
    return TemporalObservationSet(
        domain,
        [Observation(timestamp=day(n),
                     flood_mask=RasterGrid(domain, rng.random(domain.shape) < flood_prob))
         for n in days],
    )


def make_probability_image(domain: GridDomain, water: float, flooded_veg: float) -> Dict[str, RasterGrid]:
    """Constant Dynamic World style probability image"""
    return {
        'water': RasterGrid.full(domain, water, dtype=np.float32),
        'flooded_vegetation': RasterGrid.full(domain, flooded_veg, dtype=np.float32),
    }


def clock_and_peak_mem(fn, *args, **kwargs) -> Tuple[Any, float, float]:
    """
    Measure function execution time and memory growth

    Returns:
        (result, elapsed_seconds, peak_memory_mb)
    """
    process = psutil.Process(os.getpid())
    initial_memory = process.memory_info().rss / 1024 / 1024  # MB

    start_time = time.perf_counter()
    result = fn(*args, **kwargs)
    elapsed = time.perf_counter() - start_time

    final_memory = process.memory_info().rss / 1024 / 1024  # MB
    peak_memory = final_memory - initial_memory

    return result, elapsed, peak_memory


# Parametrized test data
RECURRENCE_TEST_CASES = [
    # (total_days, flood_count, expected_interval, description)
    (100, 1, 100.0, "single_flood"),
    (100, 2, 50.0, "two_floods"),
    (100, 3, 100.0 / 3, "three_floods_fractional"),
    (365, 5, 73.0, "year_five_floods"),
    (0, 1, 0.0, "zero_length_window"),
]
