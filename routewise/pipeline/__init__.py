"""Address-to-route pipeline."""

from .address_store import AddressStore
from .controller import PipelineController, create_controller
from .directions import DirectionsResolver
from .geocoding import GeocodeBatch, GeocodingResolver
from .reconciler import Reconciliation, reconcile_order
from .state import PipelineStatus, SessionState

__all__ = [
    "AddressStore",
    "PipelineController",
    "create_controller",
    "DirectionsResolver",
    "GeocodeBatch",
    "GeocodingResolver",
    "Reconciliation",
    "reconcile_order",
    "PipelineStatus",
    "SessionState",
]
