"""GPX file generation utilities."""

from datetime import datetime, timezone
from pathlib import Path

import gpxpy
import gpxpy.gpx

from routewise.models import DrivablePath, GeocodedPoint


def create_gpx_from_path(
    path: DrivablePath,
    stops: list[GeocodedPoint],
    name: str = "Optimized Route",
    description: str | None = None,
) -> str:
    """
    Create a GPX document from a drivable path.
    
    Args:
        path: The drivable path returned by the directions service
        stops: Reconciled stops in visiting order, written as waypoints
        name: Name of the track
        description: Optional track description (e.g. the optimizer's reasoning)
    
    Returns:
        GPX XML string
    """
    gpx = gpxpy.gpx.GPX()
    gpx.name = name
    gpx.description = f"{path.distance_km} km, ~{path.duration_hours} h driving"
    gpx.creator = "RouteWise"
    gpx.time = datetime.now(timezone.utc)
    
    for number, stop in enumerate(stops, start=1):
        waypoint = gpxpy.gpx.GPXWaypoint(
            latitude=stop.latitude,
            longitude=stop.longitude,
        )
        waypoint.name = f"{number}. {stop.address}"
        waypoint.type = "Stop"
        gpx.waypoints.append(waypoint)
    
    track = gpxpy.gpx.GPXTrack()
    track.name = name
    track.description = description
    track.type = "driving"
    gpx.tracks.append(track)
    
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)
    
    # Fall back to straight lines between the stops if the path has no geometry
    coords = path.points or [stop.as_tuple() for stop in stops]
    for lat, lon in coords:
        segment.points.append(gpxpy.gpx.GPXTrackPoint(latitude=lat, longitude=lon))
    
    return gpx.to_xml()


def save_gpx_file(gpx_content: str, filepath: Path) -> None:
    """Save GPX content to a file."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(gpx_content)


def decode_polyline(encoded: str, precision: int = 5) -> list[tuple[float, float]]:
    """
    Decode a Google-style encoded polyline string.
    
    Args:
        encoded: The encoded polyline string
        precision: Coordinate precision (5 for Google, 6 for OSRM)
    
    Returns:
        List of (lat, lon) tuples
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0
    
    while index < len(encoded):
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                b = ord(encoded[index]) - 63
                index += 1
                result |= (b & 0x1f) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        
        lat += deltas[0]
        lon += deltas[1]
        coordinates.append((lat / 10**precision, lon / 10**precision))
    
    return coordinates
