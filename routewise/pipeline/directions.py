"""Drivable path through reconciled waypoints."""

import logging

from routewise.errors import DirectionsUnavailable
from routewise.models import DrivablePath, GeocodedPoint
from routewise.tools.directions import DirectionsClient

logger = logging.getLogger(__name__)


class DirectionsResolver:
    """
    Holds the current path and recomputes it for new waypoints.
    
    The previous path is cleared as soon as a new request starts, and a
    response arriving after a newer request is discarded.
    """
    
    def __init__(self, client: DirectionsClient):
        self.client = client
        self.path: DrivablePath | None = None
        self._generation = 0
    
    def clear(self) -> None:
        """Forget the current path and make any in-flight request stale."""
        self._generation += 1
        self.path = None
    
    async def resolve(self, waypoints: list[GeocodedPoint]) -> DrivablePath | None:
        """
        Request a driving path visiting the waypoints in order.
        
        Returns:
            The new path, or None if there are fewer than 2 waypoints or the
            request was superseded while in flight
        
        Raises:
            DirectionsUnavailable: the provider had no route for the current request
        """
        self.clear()
        if len(waypoints) < 2:
            return None
        generation = self._generation
        
        stops = [waypoint.address for waypoint in waypoints]
        try:
            path = await self.client.route(
                origin=stops[0],
                destination=stops[-1],
                waypoints=stops[1:-1],
            )
        except Exception as e:
            if generation != self._generation:
                logger.debug("Ignoring failure of superseded directions request: %s", e)
                return None
            if isinstance(e, DirectionsUnavailable):
                raise
            logger.exception("Directions request failed")
            raise DirectionsUnavailable() from e
        
        if generation != self._generation:
            logger.debug("Discarding superseded directions result")
            return None
        
        self.path = path
        return path
