#!/usr/bin/env python3
"""
Static Exclusion Masks
Builds the time-invariant inclusion mask (terrain slope, permanent water, AOI
footprint) applied identically to every observation before aggregation
"""

import logging
import time
from typing import Optional, Sequence, Union

import numpy as np
from rasterio import features
from shapely.geometry import shape as to_shape
from shapely.geometry.base import BaseGeometry
from shapely.validation import explain_validity, make_valid

from .config import FloodHistoryConfig
from .errors import DomainMismatchError
from .grid import GridDomain, RasterGrid

# Setup logging
logger = logging.getLogger(__name__)


class StaticMaskCombiner:
    """
    Intersects eligibility masks into a single inclusion mask

    Each input is True where a pixel stays eligible. A pixel is eligible only
    if every mask includes it; a no-data cell in any mask excludes it. With no
    masks every pixel is eligible.
    """

    def __init__(self, domain: GridDomain):
        self.domain = domain

    def combine(self, masks: Sequence[RasterGrid]) -> RasterGrid:
        eligible = np.ones(self.domain.shape, dtype=bool)

        for i, mask in enumerate(masks):
            if mask.domain != self.domain:
                raise DomainMismatchError(self.domain, mask.domain, f"static mask #{i}")
            eligible &= mask.values.astype(bool) & mask.valid

        logger.info(f"Inclusion mask from {len(masks)} layer(s): "
                    f"{int(eligible.sum()):,}/{self.domain.size:,} pixels eligible")

        return RasterGrid(domain=self.domain, values=eligible)


def slope_mask(slope_degrees: RasterGrid, threshold_degrees: float) -> RasterGrid:
    """Eligible where terrain slope is strictly below the threshold"""
    eligible = slope_degrees.valid & (np.nan_to_num(slope_degrees.values, nan=np.inf) < threshold_degrees)
    return RasterGrid(domain=slope_degrees.domain, values=eligible)


def permanent_water_mask(occurrence: RasterGrid, permanent_occurrence: float = 100.0) -> RasterGrid:
    """
    Eligible where the pixel is NOT permanent open water

    Cells without occurrence data were never mapped as water and stay eligible.
    """
    permanent = occurrence.valid & (occurrence.values == permanent_occurrence)
    return RasterGrid(domain=occurrence.domain, values=~permanent)


def aoi_mask(domain: GridDomain, geometry: Union[BaseGeometry, dict]) -> RasterGrid:
    """
    Eligible where the pixel centre falls inside the area-of-interest polygon

    An invalid polygon (e.g. a self-intersecting hand-drawn outline) is repaired
    before rasterizing; an empty one is rejected like in GridDomain.from_aoi.
    """
    geom = geometry if isinstance(geometry, BaseGeometry) else to_shape(geometry)

    if geom.is_empty:
        raise ValueError("AOI geometry is empty")

    if not geom.is_valid:
        logger.warning(f"AOI geometry is invalid ({explain_validity(geom)}) - repairing")
        geom = make_valid(geom)

    start_time = time.time()
    rasterized = features.rasterize(
        [(geom, 1)],
        out_shape=domain.shape,
        transform=domain.transform,
        fill=0,
        dtype=np.uint8,
    )
    logger.debug(f"Rasterized AOI to {int(rasterized.sum()):,} pixels in {time.time() - start_time:.3f}s")

    return RasterGrid(domain=domain, values=rasterized == 1)


def build_inclusion_mask(domain: GridDomain, config: FloodHistoryConfig,
                         slope: Optional[RasterGrid] = None,
                         occurrence: Optional[RasterGrid] = None,
                         aoi: Optional[Union[BaseGeometry, dict]] = None) -> RasterGrid:
    """
    Assemble whichever static layers are available into one inclusion mask

    Absent layers are simply left out of the intersection.
    """
    masks = []

    if slope is not None:
        masks.append(slope_mask(slope, config.slope_threshold_degrees))

    if occurrence is not None and config.exclude_permanent_water:
        masks.append(permanent_water_mask(occurrence, config.permanent_water_occurrence))

    if aoi is not None:
        masks.append(aoi_mask(domain, aoi))

    return StaticMaskCombiner(domain).combine(masks)
