"""Match the optimizer's address strings back to geocoded points."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from routewise.models import GeocodedPoint

logger = logging.getLogger(__name__)


@dataclass
class Reconciliation:
    waypoints: list[GeocodedPoint] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    repeated: list[str] = field(default_factory=list)
    
    @property
    def sufficient(self) -> bool:
        """Directions need an origin and a destination."""
        return len(self.waypoints) >= 2


def reconcile_order(
    ordered_addresses: Sequence[str],
    points: Iterable[GeocodedPoint],
) -> Reconciliation:
    """
    Turn the optimizer's ordered strings into ordered geocoded points.
    
    Matching is exact string equality only. An entry with no exact match is
    dropped, never fuzzy-matched to a look-alike: routing through the wrong
    place is worse than leaving a stop out. A string repeated by the
    optimizer is kept at its first position only.
    """
    by_address: dict[str, GeocodedPoint] = {}
    for point in points:
        by_address.setdefault(point.address, point)
    
    result = Reconciliation()
    seen: set[str] = set()
    for address in ordered_addresses:
        point = by_address.get(address)
        if point is None:
            result.unmatched.append(address)
        elif address in seen:
            result.repeated.append(address)
        else:
            seen.add(address)
            result.waypoints.append(point)
    
    if result.unmatched:
        logger.warning(
            "Dropped %d optimizer entr%s with no exact geocoded match: %s",
            len(result.unmatched),
            "y" if len(result.unmatched) == 1 else "ies",
            result.unmatched,
        )
    if result.repeated:
        logger.warning("Optimizer repeated %s; kept first occurrence", result.repeated)
    
    return result
