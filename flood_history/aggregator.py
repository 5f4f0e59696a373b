#!/usr/bin/env python3
"""
Flood History Aggregation Engine
Folds a masked, time-ordered stack of boolean flood rasters into three per-pixel
metrics: recurrence interval, days since last flood, and flood duration
"""

import concurrent.futures
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .config import FloodHistoryConfig, ProcessingMode
from .grid import GridDomain, RasterGrid
from .observations import TemporalObservationSet
from .window import WindowBounds

# Setup logging
logger = logging.getLogger(__name__)


@dataclass
class FoldState:
    """Running per-pixel accumulators for one block of rows"""
    flood_count: np.ndarray      # int64, flooded observations
    latest_ordinal: np.ndarray   # int64, date ordinal of latest flooded observation
    seen_flooded: np.ndarray     # bool, latest_ordinal is meaningful
    observed: np.ndarray         # bool, valid in at least one observation


@dataclass(frozen=True)
class FloodHistoryResult:
    """Derived flood history rasters for one window"""
    recurrence_interval_days: RasterGrid
    days_since_last_flood: RasterGrid
    flood_duration_days: RasterGrid
    flood_count: RasterGrid
    window: WindowBounds
    observation_count: int
    processing_mode: str = ProcessingMode.SEQUENTIAL.value
    processing_time_s: float = 0.0
    duration_display_max_days: int = 60
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def domain(self) -> GridDomain:
        return self.flood_count.domain

    def display_ranges(self) -> Dict[str, Tuple[float, float]]:
        """Suggested (min, max) rendering ranges per metric"""
        total_days = float(self.window.total_days)
        return {
            'recurrence_interval_days': (0.0, total_days),
            'days_since_last_flood': (0.0, total_days),
            'flood_duration_days': (0.0, float(self.duration_display_max_days)),
        }

    def metrics(self) -> Dict[str, RasterGrid]:
        return {
            'recurrence_interval_days': self.recurrence_interval_days,
            'days_since_last_flood': self.days_since_last_flood,
            'flood_duration_days': self.flood_duration_days,
        }


class FloodAggregator:
    """
    Temporal aggregation engine

    Every pixel is reduced independently, so the grid can be folded whole or in
    row tiles on a thread pool with identical results.
    """

    def __init__(self, config: FloodHistoryConfig = None):
        self.config = config or FloodHistoryConfig()

        # Performance tracking
        self.processing_stats = {
            'last_aggregation_time': 0.0,
            'last_observation_count': 0,
            'last_tile_count': 0,
        }

    def aggregate(self, observations: TemporalObservationSet, window: WindowBounds,
                  inclusion: Optional[RasterGrid] = None) -> FloodHistoryResult:
        """
        Run the three reductions over the observations inside `window`

        If `inclusion` is given it is applied to every observation first;
        otherwise the observations are assumed to be masked already.
        """
        overall_start = time.time()
        domain = observations.domain

        if inclusion is not None:
            observations = observations.apply_inclusion(inclusion)
        observations = observations.within(window)

        if observations.is_empty:
            logger.warning(f"⚠️  No observations in window {window} - all outputs will be no data")

        if self.config.enable_detailed_logging:
            logger.info(f"Aggregating {len(observations)} observations over {domain.nj}×{domain.ni} grid, "
                        f"window {window}")

        tiles = self._row_tiles(domain)
        if len(tiles) > 1:
            state = self._fold_tiled(observations, tiles)
        else:
            state = self._fold(observations, slice(0, domain.nj))

        result = self._build_result(domain, window, state, len(observations), len(tiles), overall_start)

        self.processing_stats['last_aggregation_time'] = result.processing_time_s
        self.processing_stats['last_observation_count'] = len(observations)
        self.processing_stats['last_tile_count'] = len(tiles)

        logger.info(f"✅ Aggregation complete in {result.processing_time_s:.2f}s:")
        logger.info(f"  Observations: {len(observations)}")
        logger.info(f"  Observed pixels: {result.stats['observed_pixels']:,}")
        logger.info(f"  Ever-flooded pixels: {result.stats['ever_flooded_pixels']:,}")

        return result

    def _row_tiles(self, domain: GridDomain) -> List[slice]:
        if self.config.processing_mode != ProcessingMode.TILED:
            return [slice(0, domain.nj)]

        step = self.config.tile_rows
        return [slice(r, min(r + step, domain.nj)) for r in range(0, domain.nj, step)]

    def _fold(self, observations: TemporalObservationSet, rows: slice) -> FoldState:
        """Single streaming pass over the observations for a block of rows"""
        ni = observations.domain.ni
        nrows = rows.stop - rows.start

        state = FoldState(
            flood_count=np.zeros((nrows, ni), dtype=np.int64),
            latest_ordinal=np.zeros((nrows, ni), dtype=np.int64),
            seen_flooded=np.zeros((nrows, ni), dtype=bool),
            observed=np.zeros((nrows, ni), dtype=bool),
        )

        for obs in observations:
            valid = obs.flood_mask.valid[rows]
            flooded = obs.flood_mask.values[rows] & valid
            ordinal = obs.timestamp.toordinal()

            state.flood_count += flooded

            # Most recent is decided by date, never by position in the sequence
            newer = flooded & (~state.seen_flooded | (ordinal >= state.latest_ordinal))
            state.latest_ordinal[newer] = ordinal
            state.seen_flooded |= flooded

            state.observed |= valid

        return state

    def _fold_tiled(self, observations: TemporalObservationSet, tiles: List[slice]) -> FoldState:
        """Fold row tiles in parallel and stitch them back together"""
        start_time = time.time()
        results: Dict[int, FoldState] = {}

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            future_to_tile = {
                executor.submit(self._fold, observations, tile): index
                for index, tile in enumerate(tiles)
            }
            for future in concurrent.futures.as_completed(future_to_tile):
                index = future_to_tile[future]
                results[index] = future.result()
                logger.debug(f"Tile {index + 1}/{len(tiles)} folded")

        ordered = [results[i] for i in range(len(tiles))]
        state = FoldState(
            flood_count=np.concatenate([s.flood_count for s in ordered]),
            latest_ordinal=np.concatenate([s.latest_ordinal for s in ordered]),
            seen_flooded=np.concatenate([s.seen_flooded for s in ordered]),
            observed=np.concatenate([s.observed for s in ordered]),
        )

        if self.config.enable_detailed_logging:
            logger.info(f"Tiled fold: {len(tiles)} tiles on {self.config.max_workers} workers "
                        f"in {time.time() - start_time:.3f}s")
        return state

    def _build_result(self, domain: GridDomain, window: WindowBounds, state: FoldState,
                      observation_count: int, tile_count: int, start_time: float) -> FloodHistoryResult:
        """Convert accumulators into output rasters with explicit validity"""
        total_days = float(window.total_days)
        count = state.flood_count
        flooded = count > 0

        # Never-flooded pixels have an undefined interval, not 0 or infinity
        recurrence = np.zeros(domain.shape, dtype=np.float64)
        np.divide(total_days, count, out=recurrence, where=flooded)

        days_since = np.zeros(domain.shape, dtype=np.float64)
        days_since[state.seen_flooded] = (
            window.end.toordinal() - state.latest_ordinal[state.seen_flooded]
        )

        # One flooded observation counts as one flooded day, summed over the
        # whole window rather than the latest contiguous event
        duration = count.astype(np.float64)

        stats = {
            'observed_pixels': int(state.observed.sum()),
            'ever_flooded_pixels': int((flooded & state.observed).sum()),
            'max_flood_count': int(count.max()),
            'tiles': tile_count,
        }

        return FloodHistoryResult(
            recurrence_interval_days=RasterGrid(domain, recurrence, flooded),
            days_since_last_flood=RasterGrid(domain, days_since, state.seen_flooded),
            flood_duration_days=RasterGrid(domain, duration, flooded),
            flood_count=RasterGrid(domain, count, state.observed),
            window=window,
            observation_count=observation_count,
            processing_mode=self.config.processing_mode.value,
            processing_time_s=time.time() - start_time,
            duration_display_max_days=self.config.duration_display_max_days,
            stats=stats,
        )

    def get_processing_stats(self) -> Dict[str, Any]:
        return {
            **self.processing_stats,
            'configuration': self.config.to_dict(),
        }
