"""Adapters for the external services the pipeline talks to."""

from .directions import DirectionsClient, GoogleDirectionsClient
from .export import export_route_gpx, generate_google_maps_url
from .geocoding import Geocoder, GeocodeResult, GoogleGeocoder
from .llm import create_llm_client
from .optimizer import (
    LLMRouteOptimizer,
    NearestNeighborOptimizer,
    RouteOptimizationClient,
    RouteOptimizer,
)
from .recognition import AddressRecognizer, file_to_data_uri

__all__ = [
    "DirectionsClient",
    "GoogleDirectionsClient",
    "export_route_gpx",
    "generate_google_maps_url",
    "Geocoder",
    "GeocodeResult",
    "GoogleGeocoder",
    "create_llm_client",
    "LLMRouteOptimizer",
    "NearestNeighborOptimizer",
    "RouteOptimizationClient",
    "RouteOptimizer",
    "AddressRecognizer",
    "file_to_data_uri",
]
