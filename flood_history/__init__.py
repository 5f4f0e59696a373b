#!/usr/bin/env python3
"""
Flood History Package
Per-pixel flood recurrence, recency and duration from a stack of classified rasters
"""

__version__ = "1.0.0"

from .aggregator import FloodAggregator, FloodHistoryResult
from .classifiers import FloodClassifier, NdwiFloodClassifier, ProbabilityFloodClassifier
from .config import FloodHistoryConfig, ProcessingMode
from .errors import DomainMismatchError, FloodHistoryError, InvalidWindowError
from .grid import GridDomain, RasterGrid
from .masks import StaticMaskCombiner, aoi_mask, build_inclusion_mask, permanent_water_mask, slope_mask
from .observations import Observation, TemporalObservationSet
from .pipeline import ClassifiedImage, FloodHistoryPipeline
from .stack_io import load_observation_set, read_raster_grid, write_result_rasters
from .window import WindowBounds, days_between

__all__ = [
    'FloodAggregator', 'FloodHistoryResult',
    'FloodClassifier', 'NdwiFloodClassifier', 'ProbabilityFloodClassifier',
    'FloodHistoryConfig', 'ProcessingMode',
    'DomainMismatchError', 'FloodHistoryError', 'InvalidWindowError',
    'GridDomain', 'RasterGrid',
    'StaticMaskCombiner', 'aoi_mask', 'build_inclusion_mask', 'permanent_water_mask', 'slope_mask',
    'Observation', 'TemporalObservationSet',
    'ClassifiedImage', 'FloodHistoryPipeline',
    'load_observation_set', 'read_raster_grid', 'write_result_rasters',
    'WindowBounds', 'days_between',
]
