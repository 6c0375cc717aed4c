"""Route export: shareable map link and GPX file."""

from datetime import datetime
from pathlib import Path
from urllib.parse import urlencode

from routewise.config import TRAVEL_MODE, settings
from routewise.models import DrivablePath, GeocodedPoint
from routewise.utils.gpx import create_gpx_from_path, save_gpx_file

GOOGLE_MAPS_DIR_URL = "https://www.google.com/maps/dir/"


def generate_google_maps_url(stops: list[str]) -> str | None:
    """
    Build a Google Maps link that opens turn-by-turn directions for the stops.
    
    Stops are used in the given order: first is the origin, last the
    destination. Returns None for fewer than 2 stops.
    """
    if len(stops) < 2:
        return None
    
    params = {
        "api": "1",
        "origin": stops[0],
        "destination": stops[-1],
        "travelmode": TRAVEL_MODE,
    }
    if len(stops) > 2:
        params["waypoints"] = "|".join(stops[1:-1])
    
    return f"{GOOGLE_MAPS_DIR_URL}?{urlencode(params)}"


def export_route_gpx(
    path: DrivablePath,
    stops: list[GeocodedPoint],
    route_name: str = "optimized_route",
    description: str | None = None,
    output_dir: Path | None = None,
) -> Path:
    """
    Save a drivable path as a GPX file for GPS devices and navigation apps.
    
    Returns the path of the written file.
    """
    gpx_content = create_gpx_from_path(path, stops, name=route_name, description=description)
    
    output_dir = output_dir or settings.output_dir
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in route_name)
    filepath = Path(output_dir) / f"{safe_name}_{timestamp}.gpx"
    
    save_gpx_file(gpx_content, filepath)
    return filepath
