"""Utility functions for route planning."""

from .gpx import create_gpx_from_path, decode_polyline, save_gpx_file
from .geo import haversine_distance, parse_lat_lng, path_length_km

__all__ = [
    "create_gpx_from_path",
    "decode_polyline",
    "save_gpx_file",
    "haversine_distance",
    "parse_lat_lng",
    "path_length_km",
]
