#!/usr/bin/env python3
"""
Grid Domain and Raster Model
Fixed 2-D pixel domain shared by every raster in a run, and the value + validity
raster type that flows through masking and aggregation
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

import numpy as np
from rasterio.transform import from_bounds
from shapely.geometry import shape as to_shape
from shapely.geometry.base import BaseGeometry

from .errors import DomainMismatchError

# Setup logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridDomain:
    """
    Definition of the pixel grid covering the area of interest

    Grid orientation:
    - Rows increase NORTH → SOUTH (row 0 touches `north`)
    - Columns increase WEST → EAST (col 0 touches `west`)

    Without explicit bounds the domain is a unit pixel grid.
    """

    nj: int  # rows
    ni: int  # columns
    west: float = 0.0
    south: float = 0.0
    east: Optional[float] = None
    north: Optional[float] = None
    crs: str = "EPSG:4326"

    def __post_init__(self):
        if int(self.nj) < 1 or int(self.ni) < 1:
            raise ValueError(f"Grid dimensions must be positive, got {self.nj}×{self.ni}")

        object.__setattr__(self, 'nj', int(self.nj))
        object.__setattr__(self, 'ni', int(self.ni))
        if self.east is None:
            object.__setattr__(self, 'east', float(self.west) + self.ni)
        if self.north is None:
            object.__setattr__(self, 'north', float(self.south) + self.nj)

        if not (self.east > self.west and self.north > self.south):
            raise ValueError(
                f"Degenerate grid bounds: west={self.west}, east={self.east}, "
                f"south={self.south}, north={self.north}"
            )

    @classmethod
    def from_aoi(cls, geometry: Union[BaseGeometry, dict], resolution: float,
                 crs: str = "EPSG:4326") -> 'GridDomain':
        """
        Establish the run's domain from an area-of-interest geometry

        The grid starts at the AOI's north-west corner and is extended east and
        south to whole pixels of `resolution` map units.
        """
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")

        geom = geometry if isinstance(geometry, BaseGeometry) else to_shape(geometry)
        if geom.is_empty:
            raise ValueError("AOI geometry is empty")

        minx, miny, maxx, maxy = geom.bounds
        ni = max(1, math.ceil((maxx - minx) / resolution))
        nj = max(1, math.ceil((maxy - miny) / resolution))

        domain = cls(
            nj=nj, ni=ni,
            west=minx, south=maxy - nj * resolution,
            east=minx + ni * resolution, north=maxy,
            crs=crs,
        )
        logger.debug(f"Grid domain from AOI: {ni}×{nj} pixels at {resolution} units")
        return domain

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.nj, self.ni)

    @property
    def size(self) -> int:
        return self.nj * self.ni

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    @property
    def lon_res(self) -> float:
        return (self.east - self.west) / self.ni

    @property
    def lat_res(self) -> float:
        return (self.north - self.south) / self.nj

    @property
    def transform(self):
        """Rasterio affine transform for the grid"""
        return from_bounds(self.west, self.south, self.east, self.north, self.ni, self.nj)

    def grid_to_lonlat(self, row: int, col: int) -> Tuple[float, float]:
        """
        Convert grid indices to pixel-centre coordinates
        Returns (x, y) - longitude/latitude for geographic grids
        """
        if not (0 <= row < self.nj and 0 <= col < self.ni):
            raise ValueError(f"Grid indices out of bounds: ({row}, {col})")

        lon = self.west + (col + 0.5) * self.lon_res
        lat = self.north - (row + 0.5) * self.lat_res
        return lon, lat

    def lonlat_to_grid(self, lon: float, lat: float) -> Tuple[int, int]:
        """
        Convert coordinates to grid indices
        Returns (row, col) - may be out of bounds
        """
        col = int(math.floor((lon - self.west) / self.lon_res))
        row = int(math.floor((self.north - lat) / self.lat_res))
        return row, col


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """
    Per-pixel values over a GridDomain plus a validity layer

    Cells with valid=False carry no meaningful value ("no data") and are
    excluded from every reduction. Both arrays are private read-only copies.
    """

    domain: GridDomain
    values: np.ndarray
    valid: Optional[np.ndarray] = None

    def __post_init__(self):
        values = np.array(self.values, copy=True)
        if values.shape != self.domain.shape:
            raise DomainMismatchError(self.domain.shape, values.shape, "values")

        if self.valid is None:
            valid = np.ones(self.domain.shape, dtype=bool)
        else:
            valid = np.array(self.valid, dtype=bool, copy=True)
            if valid.shape != self.domain.shape:
                raise DomainMismatchError(self.domain.shape, valid.shape, "validity")

        values.setflags(write=False)
        valid.setflags(write=False)
        object.__setattr__(self, 'values', values)
        object.__setattr__(self, 'valid', valid)

    @classmethod
    def full(cls, domain: GridDomain, value: Any, dtype=None, valid: bool = True) -> 'RasterGrid':
        """Constant raster, entirely valid or entirely no-data"""
        return cls(
            domain=domain,
            values=np.full(domain.shape, value, dtype=dtype),
            valid=np.full(domain.shape, bool(valid)),
        )

    @classmethod
    def from_array(cls, domain: GridDomain, array: np.ndarray,
                   nodata: Optional[float] = None) -> 'RasterGrid':
        """
        Wrap a plain array, deriving validity from a nodata value and from
        non-finite floats
        """
        array = np.asarray(array)
        valid = np.ones(array.shape, dtype=bool)

        # NaN nodata is covered by the finite check
        if nodata is not None and not (isinstance(nodata, float) and math.isnan(nodata)):
            valid &= array != nodata

        if np.issubdtype(array.dtype, np.floating):
            valid &= np.isfinite(array)

        return cls(domain=domain, values=array, valid=valid)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.domain.shape

    @property
    def dtype(self):
        return self.values.dtype

    @property
    def valid_count(self) -> int:
        return int(self.valid.sum())

    def require_same_domain(self, other: 'RasterGrid', what: str = "raster") -> None:
        """Raise DomainMismatchError unless `other` lives on this grid"""
        if other.domain != self.domain:
            raise DomainMismatchError(self.domain, other.domain, what)

    def filled(self, fill_value: Any) -> np.ndarray:
        """Plain array copy with no-data cells replaced, for export only"""
        out = np.array(self.values, copy=True)
        if np.issubdtype(out.dtype, np.integer) and isinstance(fill_value, float):
            out = out.astype(np.float64)
        out[~self.valid] = fill_value
        return out

    def __repr__(self) -> str:
        return (f"RasterGrid(shape={self.shape}, dtype={self.values.dtype}, "
                f"valid={self.valid_count}/{self.domain.size})")
