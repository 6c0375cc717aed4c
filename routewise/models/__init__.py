"""Data models for route planning."""

from .request import OptimizeRouteRequest, RecognizeAddressRequest
from .route import (
    Bounds,
    Coordinates,
    DrivablePath,
    GeocodedPoint,
    OptimizationResult,
    RecognizedAddress,
)

__all__ = [
    "OptimizeRouteRequest",
    "RecognizeAddressRequest",
    "Bounds",
    "Coordinates",
    "DrivablePath",
    "GeocodedPoint",
    "OptimizationResult",
    "RecognizedAddress",
]
