#!/usr/bin/env python3
"""
Flood History Configuration
Classifier thresholds, static mask settings and aggregation execution options
"""

import logging
import os
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Dict

# Setup logging
logger = logging.getLogger(__name__)


class ProcessingMode(Enum):
    """Execution strategies for the pixel-wise reductions"""
    SEQUENTIAL = "sequential"
    TILED = "tiled"


@dataclass
class FloodHistoryConfig:
    """Configuration for flood classification, masking and aggregation"""

    # Dynamic World probability rule (strictly greater-than)
    water_threshold: float = 0.5
    flooded_veg_threshold: float = 0.5

    # Single-index rule: NDWI (B3, B8) strictly greater-than
    ndwi_threshold: float = 0.0

    # Static exclusion masks
    slope_threshold_degrees: float = 10.0
    exclude_permanent_water: bool = True
    permanent_water_occurrence: float = 100.0  # JRC occurrence percent

    # Suggested display range for flood duration (fixed convention)
    duration_display_max_days: int = 60

    # Execution
    processing_mode: ProcessingMode = ProcessingMode.SEQUENTIAL
    tile_rows: int = 256
    max_workers: int = 4
    enable_detailed_logging: bool = True

    def __post_init__(self):
        if isinstance(self.processing_mode, str):
            self.processing_mode = ProcessingMode(self.processing_mode)

        for name in ('water_threshold', 'flooded_veg_threshold'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")

        if not -1.0 <= self.ndwi_threshold <= 1.0:
            raise ValueError(f"ndwi_threshold must be in [-1, 1], got {self.ndwi_threshold}")

        if self.slope_threshold_degrees <= 0:
            raise ValueError(f"slope_threshold_degrees must be positive, got {self.slope_threshold_degrees}")

        if self.tile_rows < 1:
            raise ValueError(f"tile_rows must be >= 1, got {self.tile_rows}")

        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    @classmethod
    def from_env(cls, prefix: str = "FLOOD_HISTORY_") -> 'FloodHistoryConfig':
        """
        Build a configuration from environment variables

        Each field can be overridden with PREFIX + upper-cased field name,
        e.g. FLOOD_HISTORY_WATER_THRESHOLD=0.6
        """
        overrides: Dict[str, Any] = {}
        defaults = cls()

        for f in fields(cls):
            raw = os.getenv(prefix + f.name.upper())
            if raw is None:
                continue

            current = getattr(defaults, f.name)
            if isinstance(current, bool):
                overrides[f.name] = raw.strip().lower() in ('1', 'true', 'yes', 'on')
            elif isinstance(current, ProcessingMode):
                overrides[f.name] = ProcessingMode(raw.strip().lower())
            elif isinstance(current, int):
                overrides[f.name] = int(raw)
            else:
                overrides[f.name] = float(raw)

        if overrides:
            logger.info(f"Configuration overrides from environment: {sorted(overrides)}")

        return cls(**overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary view for logging and processing stats"""
        data = asdict(self)
        data['processing_mode'] = self.processing_mode.value
        return data
