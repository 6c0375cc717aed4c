"""Session state shared by the pipeline components and the view layer."""

from dataclasses import dataclass, field
from enum import Enum

from routewise.config import FALLBACK_CENTER
from routewise.models import Bounds, DrivablePath, GeocodedPoint, OptimizationResult

from .address_store import AddressStore


class PipelineStatus(str, Enum):
    """Optimization state machine: IDLE -> OPTIMIZING -> SUCCESS | FAILED -> IDLE."""
    IDLE = "idle"
    OPTIMIZING = "optimizing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SessionState:
    """
    Everything the view layer renders.
    
    `error` belongs to the optimization step, `map_error` to geocoding and
    directions. A map failure never hides the optimizer's reasoning.
    """
    store: AddressStore = field(default_factory=AddressStore)
    
    status: PipelineStatus = PipelineStatus.IDLE
    # Outcome of the most recent optimization attempt, SUCCESS or FAILED
    outcome: PipelineStatus | None = None
    
    optimization: OptimizationResult | None = None
    # The address list exactly as it was when `optimization` was requested
    optimized_snapshot: tuple[str, ...] = ()
    
    points: list[GeocodedPoint] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    waypoints: list[GeocodedPoint] = field(default_factory=list)
    path: DrivablePath | None = None
    
    error: str | None = None
    map_error: str | None = None
    notice: str | None = None
    
    user_location: tuple[float, float] | None = None
    country: str | None = None
    
    def __post_init__(self):
        self.store.on_change = self.invalidate
    
    def invalidate(self) -> None:
        """Drop everything derived from an older address list."""
        self.optimization = None
        self.optimized_snapshot = ()
        self.waypoints = []
        self.path = None
        self.error = None
        self.map_error = None
        self.outcome = None
    
    @property
    def addresses(self) -> tuple[str, ...]:
        return self.store.snapshot()
    
    @property
    def is_busy(self) -> bool:
        return self.status is PipelineStatus.OPTIMIZING
    
    @property
    def can_optimize(self) -> bool:
        return not self.is_busy and len(self.store) >= 2
    
    @property
    def reasoning(self) -> str | None:
        return self.optimization.reasoning if self.optimization else None
    
    @property
    def effective_addresses(self) -> tuple[str, ...]:
        """Addresses in display order: the optimizer's order once there is one."""
        if self.optimization and self.optimization.optimized_route:
            return tuple(self.optimization.optimized_route)
        return self.addresses
    
    @property
    def origin_location(self) -> str | None:
        if self.user_location is None:
            return None
        lat, lng = self.user_location
        return f"{lat},{lng}"
    
    @property
    def map_bounds(self) -> Bounds | None:
        """Region to frame: the route if there is one, else all known points."""
        if self.path is not None:
            return self.path.bounds
        if self.points:
            return Bounds.around([p.as_tuple() for p in self.points])
        return None
    
    @property
    def map_center(self) -> tuple[float, float]:
        bounds = self.map_bounds
        if bounds is not None:
            return bounds.center
        return self.user_location or FALLBACK_CENTER
    
    def format_summary(self) -> str:
        """Format a human-readable summary of the address list and route."""
        lines = []
        
        if self.error:
            lines.append(f"❌ {self.error}")
            lines.append("")
        
        if self.optimization is None:
            lines.append(f"## 📍 Addresses ({len(self.store)})")
            lines.append("")
            for number, address in enumerate(self.addresses, start=1):
                lines.append(f"{number}. {address}")
        else:
            lines.append("## 🚗 Optimized Route")
            lines.append("")
            routed = {w.address for w in self.waypoints}
            for number, address in enumerate(self.optimization.optimized_route, start=1):
                marker = " _(not routed)_" if routed and address not in routed else ""
                lines.append(f"{number}. {address}{marker}")
            lines.append("")
            lines.append("### 🧠 Optimization Insights")
            lines.append(self.optimization.reasoning)
        
        if self.path is not None:
            lines.append("")
            lines.append(
                f"**Driving distance:** {self.path.distance_km:.1f} km, "
                f"~{self.path.duration_hours:.1f} h"
            )
        
        if self.unresolved:
            lines.append("")
            lines.append("⚠️ Could not locate: " + "; ".join(self.unresolved))
        
        if self.map_error:
            lines.append("")
            lines.append(f"⚠️ {self.map_error}")
        
        return "\n".join(lines)
