"""Driving directions using the Google Maps Directions API."""

import logging
from typing import Protocol

import httpx

from routewise.config import TRAVEL_MODE, settings
from routewise.errors import DirectionsUnavailable
from routewise.models import Bounds, Coordinates, DrivablePath
from routewise.utils.gpx import decode_polyline

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

logger = logging.getLogger(__name__)


class DirectionsClient(Protocol):
    async def route(
        self,
        origin: str,
        destination: str,
        waypoints: list[str],
    ) -> DrivablePath: ...


class GoogleDirectionsClient:
    """
    Driving route through stops given by address.
    
    Stops are passed by name, not coordinate, so the provider resolves them
    itself. Intermediate stops keep their given order; the provider is never
    asked to reorder them.
    """
    
    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or settings.google_maps_api_key
        self.timeout = timeout or settings.http_timeout
        self._transport = transport
    
    async def route(
        self,
        origin: str,
        destination: str,
        waypoints: list[str],
    ) -> DrivablePath:
        params = {
            "origin": origin,
            "destination": destination,
            "mode": TRAVEL_MODE,
            "key": self.api_key,
        }
        if waypoints:
            # No "optimize:true" prefix: the order is already decided
            params["waypoints"] = "|".join(waypoints)
        
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.get(
                    DIRECTIONS_URL,
                    params=params,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Directions request failed: %s", e)
                raise DirectionsUnavailable(status="REQUEST_FAILED") from e
        
        status = data.get("status", "UNKNOWN_ERROR")
        routes = data.get("routes") or []
        if status != "OK" or not routes:
            logger.error("Directions request failed due to %s", status)
            raise DirectionsUnavailable(status=status)
        
        route = routes[0]
        encoded = route.get("overview_polyline", {}).get("points", "")
        points = decode_polyline(encoded) if encoded else []
        
        try:
            raw_bounds = route["bounds"]
            bounds = Bounds(
                northeast=Coordinates(
                    latitude=raw_bounds["northeast"]["lat"],
                    longitude=raw_bounds["northeast"]["lng"],
                ),
                southwest=Coordinates(
                    latitude=raw_bounds["southwest"]["lat"],
                    longitude=raw_bounds["southwest"]["lng"],
                ),
            )
        except (KeyError, ValueError):
            if not points:
                logger.error("Directions response has neither bounds nor geometry")
                raise DirectionsUnavailable(status="INVALID_RESPONSE")
            bounds = Bounds.around(points)
        
        legs = route.get("legs", [])
        return DrivablePath(
            waypoints=[origin, *waypoints, destination],
            points=points,
            encoded_polyline=encoded,
            bounds=bounds,
            distance_m=sum(leg.get("distance", {}).get("value", 0) for leg in legs),
            duration_s=sum(leg.get("duration", {}).get("value", 0) for leg in legs),
        )
