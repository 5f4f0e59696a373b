#!/usr/bin/env python3
"""
Raster Stack I/O
Reads classified flood rasters and static layers from GeoTIFF, writes the derived
metric rasters back out. Grids are never resampled: a file on any other grid
(shape, bounds or CRS) is an error.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd
import rasterio
from rasterio.crs import CRS

from .aggregator import FloodHistoryResult
from .errors import DomainMismatchError
from .grid import GridDomain, RasterGrid
from .observations import Observation, TemporalObservationSet
from .window import DateLike

# Setup logging
logger = logging.getLogger(__name__)

EXPORT_NODATA = -9999.0
DATE_TOKEN = re.compile(r'(?<!\d)(\d{8})(?!\d)')

PathLike = Union[str, Path]


def same_grid(expected: GridDomain, got: GridDomain) -> bool:
    """Shape, CRS and bounds agree; bounds to within a millionth of a pixel"""
    if expected.shape != got.shape:
        return False

    if CRS.from_user_input(expected.crs) != CRS.from_user_input(got.crs):
        return False

    tolerance = 1e-6 * min(expected.lon_res, expected.lat_res)
    return bool(np.allclose(expected.bounds, got.bounds, rtol=0.0, atol=tolerance))


def read_raster_grid(path: PathLike, domain: Optional[GridDomain] = None, band: int = 1) -> RasterGrid:
    """
    Read one band as a RasterGrid, honouring the file's nodata value

    Without a domain, the file's own bounds, CRS and shape define it. With one,
    the file must sit on exactly that grid.
    """
    with rasterio.open(path) as src:
        b = src.bounds
        file_domain = GridDomain(
            nj=src.height, ni=src.width,
            west=b.left, south=b.bottom, east=b.right, north=b.top,
            crs=src.crs.to_string() if src.crs else "EPSG:4326",
        )

        if domain is None:
            domain = file_domain
        elif not same_grid(domain, file_domain):
            raise DomainMismatchError(domain, file_domain, str(path))

        arr = src.read(band)
        nodata = src.nodata

    return RasterGrid.from_array(domain, arr, nodata=nodata)


def date_from_filename(path: PathLike) -> pd.Timestamp:
    """First YYYYMMDD token in the file name"""
    match = DATE_TOKEN.search(Path(path).name)
    if match is None:
        raise ValueError(f"No YYYYMMDD date in file name: {path}")
    return pd.to_datetime(match.group(1), format='%Y%m%d')


def load_observation_set(paths: Sequence[PathLike], domain: Optional[GridDomain] = None,
                         dates: Optional[Iterable[DateLike]] = None) -> TemporalObservationSet:
    """
    Load classified flood rasters (non-zero = flooded) into an observation set

    Dates come from `dates` when given, otherwise from each file name.
    """
    paths = [Path(p) for p in paths]
    dates = list(dates) if dates is not None else [date_from_filename(p) for p in paths]
    if len(dates) != len(paths):
        raise ValueError(f"Got {len(dates)} dates for {len(paths)} rasters")

    observations = []
    for path, timestamp in zip(paths, dates):
        grid = read_raster_grid(path, domain=domain)
        domain = grid.domain  # first file fixes the domain for the rest

        flooded = np.asarray(grid.values != 0, dtype=bool)
        observations.append(Observation(
            timestamp=timestamp,
            flood_mask=RasterGrid(domain=domain, values=flooded & grid.valid, valid=grid.valid),
        ))

    if domain is None:
        raise ValueError("Cannot infer a grid domain from an empty list of rasters")

    logger.info(f"Loaded {len(observations)} flood rasters on {domain.nj}×{domain.ni} grid")
    return TemporalObservationSet(domain, observations)


def write_result_rasters(result: FloodHistoryResult, out_dir: PathLike,
                         prefix: str = "flood_history") -> Dict[str, Path]:
    """Write the three metric rasters as float32 GeoTIFFs; no-data cells get EXPORT_NODATA"""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    domain = result.domain

    profile = {
        'driver': 'GTiff',
        'height': domain.nj,
        'width': domain.ni,
        'count': 1,
        'dtype': 'float32',
        'crs': domain.crs,
        'transform': domain.transform,
        'nodata': EXPORT_NODATA,
    }

    written = {}
    for name, grid in result.metrics().items():
        path = out_dir / f"{prefix}_{name}.tif"
        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(grid.filled(EXPORT_NODATA).astype(np.float32), 1)
        written[name] = path
        logger.info(f"✓ Wrote {name} ({grid.valid_count:,} valid pixels) to {path}")

    return written
