"""Geocoding tools using the Google Maps Geocoding API."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from routewise.config import settings
from routewise.models import Bounds, GeocodedPoint

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

logger = logging.getLogger(__name__)


@dataclass
class GeocodeResult:
    """Outcome of one lookup: either a point, or the status explaining why not."""
    address: str
    point: GeocodedPoint | None = None
    status: str = "OK"
    
    @property
    def ok(self) -> bool:
        return self.point is not None


class Geocoder(Protocol):
    async def geocode(
        self,
        address: str,
        bounds: Bounds | None = None,
        region: str | None = None,
    ) -> GeocodeResult: ...
    
    async def reverse_country(self, latitude: float, longitude: float) -> str | None: ...


class GoogleGeocoder:
    """
    Forward and reverse geocoding against Google Maps.
    
    Lookups never raise for a provider miss. A failed lookup comes back as a
    GeocodeResult without a point so callers can drop that address and carry on.
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
    
    async def _get(self, params: dict) -> dict:
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(
                GEOCODE_URL,
                params={**params, "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
    
    async def geocode(
        self,
        address: str,
        bounds: Bounds | None = None,
        region: str | None = None,
    ) -> GeocodeResult:
        """
        Convert an address to GPS coordinates.
        
        Args:
            address: Free-text address, sent as-is
            bounds: Optional viewport that results are biased towards
            region: Optional ISO country code that results are biased towards
        """
        params = {"address": address}
        if bounds is not None:
            params["bounds"] = (
                f"{bounds.southwest.latitude},{bounds.southwest.longitude}|"
                f"{bounds.northeast.latitude},{bounds.northeast.longitude}"
            )
        if region:
            params["region"] = region.lower()
        
        try:
            data = await self._get(params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geocoding request failed for %s: %s", address, e)
            return GeocodeResult(address=address, status="REQUEST_FAILED")
        
        status = data.get("status", "UNKNOWN_ERROR")
        results = data.get("results") or []
        if status != "OK" or not results:
            logger.warning("Geocoding failed for %s: %s", address, status)
            return GeocodeResult(address=address, status=status)
        
        best = results[0]
        location = best.get("geometry", {}).get("location", {})
        try:
            point = GeocodedPoint(
                address=address,
                latitude=location["lat"],
                longitude=location["lng"],
                formatted_address=best.get("formatted_address"),
            )
        except (KeyError, ValueError) as e:
            logger.warning("Geocoding returned no usable location for %s: %s", address, e)
            return GeocodeResult(address=address, status="INVALID_RESPONSE")
        
        return GeocodeResult(address=address, point=point)
    
    async def reverse_country(self, latitude: float, longitude: float) -> str | None:
        """Short country code (e.g. 'GB') for a coordinate, or None."""
        try:
            data = await self._get({"latlng": f"{latitude},{longitude}", "result_type": "country"})
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Reverse geocoding failed: %s", e)
            return None
        
        if data.get("status") != "OK":
            logger.warning("Reverse geocoding failed: %s", data.get("status"))
            return None
        
        for result in data.get("results", [])[:1]:
            for component in result.get("address_components", []):
                if "country" in component.get("types", []):
                    return component.get("short_name")
        return None
