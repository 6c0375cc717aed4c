"""Concurrent, best-effort geocoding of an address sequence."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from routewise.errors import GeocodingFailed
from routewise.models import Bounds, GeocodedPoint
from routewise.tools.geocoding import Geocoder, GeocodeResult

logger = logging.getLogger(__name__)


@dataclass
class GeocodeBatch:
    """Points for one address sequence, in that sequence's order."""
    generation: int
    addresses: tuple[str, ...]
    points: list[GeocodedPoint] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    
    @property
    def partial(self) -> bool:
        return bool(self.points) and bool(self.failures)
    
    def by_address(self) -> dict[str, GeocodedPoint]:
        return {point.address: point for point in self.points}


class GeocodingResolver:
    """
    Geocodes every address of a sequence at once.
    
    Each call to resolve() starts a new generation. A batch that finishes
    after a newer one was started is discarded rather than published, so a
    slow, outdated batch can never overwrite a newer one.
    """
    
    def __init__(self, geocoder: Geocoder):
        self.geocoder = geocoder
        self.current: GeocodeBatch | None = None
        self._generation = 0
        self._requested: tuple | None = None
        self._published: tuple | None = None
    
    @property
    def generation(self) -> int:
        return self._generation
    
    @property
    def points(self) -> list[GeocodedPoint]:
        return list(self.current.points) if self.current else []
    
    async def resolve(
        self,
        addresses: Sequence[str],
        bounds: Bounds | None = None,
        region: str | None = None,
    ) -> GeocodeBatch | None:
        """
        Geocode a sequence and publish the result as `current`.
        
        Returns:
            The published batch, or None if a newer call superseded this one
        
        Raises:
            GeocodingFailed: the sequence is non-empty and no address resolved
        """
        key = tuple(addresses)
        request = (key, bounds, region)
        
        # Same sequence and bias as the last published batch: nothing to redo
        if (
            self.current is not None
            and self.current.points
            and self._published == request
            and self._requested == request
        ):
            return self.current
        
        self._generation += 1
        generation = self._generation
        self._requested = request
        
        results = await asyncio.gather(
            *(self._lookup(address, bounds, region) for address in key)
        )
        
        if generation != self._generation:
            logger.debug(
                "Discarding geocode batch %d, superseded by batch %d",
                generation, self._generation,
            )
            return None
        
        batch = GeocodeBatch(
            generation=generation,
            addresses=key,
            points=[r.point for r in results if r.ok],
            failures=[r.address for r in results if not r.ok],
        )
        self.current = batch
        self._published = request
        
        if key and not batch.points:
            raise GeocodingFailed(failures=batch.failures)
        
        if batch.partial:
            logger.warning(
                "Geocoded %d of %d addresses; skipping %s",
                len(batch.points), len(key), batch.failures,
            )
        return batch
    
    async def _lookup(
        self,
        address: str,
        bounds: Bounds | None,
        region: str | None,
    ) -> GeocodeResult:
        try:
            return await self.geocoder.geocode(address, bounds=bounds, region=region)
        except Exception as e:
            # One bad lookup must not sink the rest of the batch
            logger.warning("Geocoding failed for %s: %s", address, e)
            return GeocodeResult(address=address, status="ERROR")
