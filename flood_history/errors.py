#!/usr/bin/env python3
"""
Flood History Errors
Fatal input errors raised by the aggregation engine. Per-pixel "no data" is
never an exception; it lives in the validity layer of each RasterGrid.
"""


class FloodHistoryError(ValueError):
    """Base class for fatal flood history input errors"""


class DomainMismatchError(FloodHistoryError):
    """Rasters (observations, masks, outputs) do not share one grid domain"""

    def __init__(self, expected, got, what: str = "raster"):
        self.expected = expected
        self.got = got
        super().__init__(f"{what} grid domain mismatch: expected {expected}, got {got}")


class InvalidWindowError(FloodHistoryError):
    """Observation window ends before it starts"""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(f"Invalid observation window: end {end} is before start {start}")
