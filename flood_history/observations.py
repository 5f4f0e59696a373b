#!/usr/bin/env python3
"""
Temporal Observation Set
Timestamped boolean flood rasters over one grid domain, kept in chronological order
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Iterator, List, Tuple

import numpy as np
import pandas as pd

from .errors import DomainMismatchError
from .grid import GridDomain, RasterGrid
from .window import WindowBounds, to_date

# Setup logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Observation:
    """One classified image: acquisition date and its "is flooded now" raster"""

    timestamp: date
    flood_mask: RasterGrid

    def __post_init__(self):
        object.__setattr__(self, 'timestamp', to_date(self.timestamp))
        if self.flood_mask.values.dtype != np.bool_:
            raise TypeError(f"Flood mask must be boolean, got {self.flood_mask.values.dtype}")

    @property
    def domain(self) -> GridDomain:
        return self.flood_mask.domain

    @property
    def flooded(self) -> np.ndarray:
        """Cells that are both valid and classified as flooded"""
        return self.flood_mask.values & self.flood_mask.valid


class TemporalObservationSet:
    """
    Chronologically ordered observations sharing one GridDomain

    The domain is carried explicitly so an empty set still describes the grid
    its (all no-data) outputs live on.
    """

    def __init__(self, domain: GridDomain, observations: Iterable[Observation] = ()):
        self.domain = domain

        ordered: List[Observation] = []
        for obs in observations:
            if obs.domain != domain:
                raise DomainMismatchError(domain, obs.domain, f"observation {obs.timestamp}")
            ordered.append(obs)

        # Stable sort keeps same-day observations in the caller's order
        ordered.sort(key=lambda o: o.timestamp)
        self._observations: Tuple[Observation, ...] = tuple(ordered)

    def __len__(self) -> int:
        return len(self._observations)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self._observations)

    def __getitem__(self, index: int) -> Observation:
        return self._observations[index]

    def __repr__(self) -> str:
        return f"TemporalObservationSet(shape={self.domain.shape}, observations={len(self)})"

    @property
    def is_empty(self) -> bool:
        return len(self._observations) == 0

    @property
    def timestamps(self) -> List[date]:
        return [obs.timestamp for obs in self._observations]

    def add(self, observation: Observation) -> 'TemporalObservationSet':
        """New set with one more observation"""
        return TemporalObservationSet(self.domain, self._observations + (observation,))

    def within(self, window: WindowBounds) -> 'TemporalObservationSet':
        """New set holding only observations inside the window (inclusive)"""
        kept = [obs for obs in self._observations if window.contains(obs.timestamp)]

        dropped = len(self._observations) - len(kept)
        if dropped:
            logger.warning(f"⚠️  Dropped {dropped} observation(s) outside window {window}")

        return TemporalObservationSet(self.domain, kept)

    def apply_inclusion(self, inclusion: RasterGrid) -> 'TemporalObservationSet':
        """
        Restrict every observation to the static inclusion mask

        Excluded pixels become no-data (not merely "not flooded") so they stay
        invalid in every output.
        """
        if inclusion.domain != self.domain:
            raise DomainMismatchError(self.domain, inclusion.domain, "inclusion mask")

        eligible = inclusion.values.astype(bool) & inclusion.valid

        masked = []
        for obs in self._observations:
            mask = obs.flood_mask
            masked.append(Observation(
                timestamp=obs.timestamp,
                flood_mask=RasterGrid(
                    domain=self.domain,
                    values=mask.values & eligible,
                    valid=mask.valid & eligible,
                ),
            ))

        return TemporalObservationSet(self.domain, masked)

    def summary(self) -> pd.DataFrame:
        """Per-observation flooded and valid pixel counts"""
        rows = [
            {
                'timestamp': pd.Timestamp(obs.timestamp),
                'flooded_pixels': int(obs.flooded.sum()),
                'valid_pixels': obs.flood_mask.valid_count,
            }
            for obs in self._observations
        ]
        return pd.DataFrame(rows, columns=['timestamp', 'flooded_pixels', 'valid_pixels'])
