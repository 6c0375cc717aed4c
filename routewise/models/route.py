"""Models for geocoded stops, optimizer output and drivable paths."""

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    """GPS coordinates."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    
    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)
    
    @classmethod
    def from_tuple(cls, coords: tuple[float, float]) -> "Coordinates":
        return cls(latitude=coords[0], longitude=coords[1])


class Bounds(BaseModel):
    """Bounding region used to frame the map."""
    
    northeast: Coordinates
    southwest: Coordinates
    
    @property
    def center(self) -> tuple[float, float]:
        return (
            (self.northeast.latitude + self.southwest.latitude) / 2,
            (self.northeast.longitude + self.southwest.longitude) / 2,
        )
    
    @classmethod
    def around(cls, points: list[tuple[float, float]]) -> "Bounds":
        """Smallest box containing every (lat, lng) in points."""
        lats = [p[0] for p in points]
        lngs = [p[1] for p in points]
        return cls(
            northeast=Coordinates(latitude=max(lats), longitude=max(lngs)),
            southwest=Coordinates(latitude=min(lats), longitude=min(lngs)),
        )


class GeocodedPoint(BaseModel):
    """An address resolved to a coordinate. Keyed by the exact address string."""
    
    address: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    formatted_address: str | None = Field(
        default=None,
        description="Provider's canonical form of the address, informational only"
    )
    
    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class OptimizationResult(BaseModel):
    """Ordered stops plus the optimizer's explanation.
    
    The ordered strings come straight from the optimizer and are not
    guaranteed to be byte-identical to what was sent.
    """
    
    optimized_route: list[str] = Field(..., alias="optimizedRoute")
    reasoning: str
    
    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "optimizedRoute": ["10 Downing St, London", "221B Baker St, London"],
                "reasoning": "Start in Westminster, then head north to Marylebone.",
            }
        },
    }


class RecognizedAddress(BaseModel):
    """Address read off a photo. An empty string means none was found."""
    
    address: str


class DrivablePath(BaseModel):
    """A driving route through the waypoints, in the given order."""
    
    waypoints: list[str] = Field(
        ...,
        description="Stops in visiting order, origin first and destination last"
    )
    points: list[tuple[float, float]] = Field(
        default_factory=list,
        description="Decoded overview polyline as (lat, lng) pairs"
    )
    encoded_polyline: str = ""
    bounds: Bounds
    distance_m: int = Field(default=0, ge=0)
    duration_s: int = Field(default=0, ge=0)
    
    @property
    def distance_km(self) -> float:
        return round(self.distance_m / 1000, 2)
    
    @property
    def duration_hours(self) -> float:
        return round(self.duration_s / 3600, 2)
