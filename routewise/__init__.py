"""RouteWise: turn a list of addresses into an ordered, drivable route."""

__version__ = "0.1.0"
