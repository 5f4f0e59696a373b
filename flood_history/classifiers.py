#!/usr/bin/env python3
"""
Flood Classifiers
Per-image "is this pixel flooded now" rules. The aggregation engine only ever
sees their boolean output; these are the reference rules it is usually fed with.
"""

import logging
from abc import ABC, abstractmethod
from typing import Mapping, Tuple

import numpy as np

from .config import FloodHistoryConfig
from .errors import DomainMismatchError
from .grid import RasterGrid

# Setup logging
logger = logging.getLogger(__name__)

Image = Mapping[str, RasterGrid]


class FloodClassifier(ABC):
    """Pixel-wise rule evaluated independently for each image"""

    required_bands: Tuple[str, ...] = ()

    def __init__(self, config: FloodHistoryConfig = None):
        self.config = config or FloodHistoryConfig()

    @abstractmethod
    def classify(self, image: Image) -> RasterGrid:
        """Return a boolean RasterGrid, True where the pixel is flooded"""

    def _bands(self, image: Image) -> Tuple[RasterGrid, ...]:
        missing = [name for name in self.required_bands if name not in image]
        if missing:
            raise ValueError(f"{type(self).__name__} missing bands: {missing}")

        bands = tuple(image[name] for name in self.required_bands)
        first = bands[0]
        for name, band in zip(self.required_bands[1:], bands[1:]):
            if band.domain != first.domain:
                raise DomainMismatchError(first.domain, band.domain, f"band '{name}'")
        return bands


class ProbabilityFloodClassifier(FloodClassifier):
    """
    Land-cover probability rule (Dynamic World style)

    flooded = water > water_threshold OR flooded_vegetation > flooded_veg_threshold
    Both comparisons are strictly greater-than.
    """

    required_bands = ('water', 'flooded_vegetation')

    def classify(self, image: Image) -> RasterGrid:
        water, flooded_veg = self._bands(image)

        water_hit = water.valid & (water.values > self.config.water_threshold)
        veg_hit = flooded_veg.valid & (flooded_veg.values > self.config.flooded_veg_threshold)

        flood = RasterGrid(
            domain=water.domain,
            values=water_hit | veg_hit,
            valid=water.valid | flooded_veg.valid,
        )

        if self.config.enable_detailed_logging:
            logger.debug(f"Probability rule: {int(water_hit.sum()):,} water, "
                         f"{int(veg_hit.sum()):,} flooded vegetation pixels")
        return flood


class NdwiFloodClassifier(FloodClassifier):
    """
    Single-index rule: NDWI = (green - nir) / (green + nir) > ndwi_threshold

    Pixels with a vanishing denominator or an invalid band are no-data.
    """

    required_bands = ('green', 'nir')

    def classify(self, image: Image) -> RasterGrid:
        green, nir = self._bands(image)

        g = green.values.astype(np.float64)
        n = nir.values.astype(np.float64)
        denominator = g + n
        valid = green.valid & nir.valid & (np.abs(denominator) > 1e-6)

        ndwi = np.zeros(green.shape, dtype=np.float64)
        np.divide(g - n, denominator, out=ndwi, where=valid)

        flooded = valid & (ndwi > self.config.ndwi_threshold)

        if self.config.enable_detailed_logging:
            logger.debug(f"NDWI rule: {int(flooded.sum()):,}/{int(valid.sum()):,} valid pixels flooded")

        return RasterGrid(domain=green.domain, values=flooded, valid=valid)
