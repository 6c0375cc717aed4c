"""Orchestrates the address-to-route pipeline for one user session.

Pipeline steps:
1. Addresses are added or removed (typed, read from a photo)
2. Geocode the displayed addresses, all at once, best effort
3. On "optimize", ask the optimizer for a visiting order
4. Reconcile the returned strings against the geocoded points
5. Request a driving path through the reconciled waypoints

Steps 2, 4 and 5 run as a background map refresh. Their failures land in
`state.map_error` and never mark the optimization itself as failed.
"""

import asyncio
import logging

from routewise.config import Settings, settings as default_settings
from routewise.errors import (
    DirectionsUnavailable,
    GeocodingFailed,
    UpstreamError,
    ValidationError,
)
from routewise.tools.directions import DirectionsClient, GoogleDirectionsClient
from routewise.tools.geocoding import Geocoder, GoogleGeocoder
from routewise.tools.llm import create_llm_client
from routewise.tools.optimizer import (
    LLMRouteOptimizer,
    NearestNeighborOptimizer,
    RouteOptimizationClient,
    RouteOptimizer,
)
from routewise.tools.recognition import AddressRecognizer

from .directions import DirectionsResolver
from .geocoding import GeocodingResolver
from .reconciler import reconcile_order
from .state import PipelineStatus, SessionState

logger = logging.getLogger(__name__)

DUPLICATE_NOTICE = "This address is already in the list."
EMPTY_ADDRESS = "Please enter an address."
NEED_TWO_ADDRESSES = "Please add at least two addresses to optimize the route."
ALREADY_OPTIMIZING = "An optimization is already in progress."
NO_ADDRESS_IN_PHOTO = (
    "Could not find an address in the photo. "
    "Please try a clearer image or enter it manually."
)


class PipelineController:
    """
    Owns the session state and runs every pipeline step against it.
    
    All methods run on one event loop. Mutations are synchronous; anything
    touching the network is awaited, and the map refresh runs as a task that
    the caller can await with wait_for_map().
    """
    
    def __init__(
        self,
        geocoder: Geocoder,
        optimizer: RouteOptimizer,
        directions_client: DirectionsClient,
        recognizer: AddressRecognizer | None = None,
        state: SessionState | None = None,
    ):
        self.state = state or SessionState()
        self.geocoder = geocoder
        self.recognizer = recognizer
        self.geocoding = GeocodingResolver(geocoder)
        self.optimization = RouteOptimizationClient(optimizer)
        self.directions = DirectionsResolver(directions_client)
        self._map_tasks: set[asyncio.Task] = set()
    
    # Address list
    
    def add_address(self, text: str) -> bool:
        """
        Add a typed address, trimmed of surrounding whitespace.
        
        Returns False and sets `state.notice` if it is already listed.
        Raises ValidationError for blank input.
        """
        address = text.strip()
        if not address:
            raise ValidationError(EMPTY_ADDRESS)
        
        if not self.state.store.add(address):
            self.state.notice = DUPLICATE_NOTICE
            return False
        
        self.state.notice = None
        return True
    
    def remove_address(self, index: int) -> str:
        """Remove the address at a zero-based position (IndexOutOfRange if invalid)."""
        address = self.state.store.remove(index)
        self.state.notice = None
        return address
    
    async def add_from_photo(self, photo_data_uri: str) -> str | None:
        """
        Recognize an address in a photo and add it.
        
        Returns the address added, or None if the photo had none or it was a
        duplicate (see `state.notice`).
        """
        if self.recognizer is None:
            raise ValidationError("Photo recognition is not configured.")
        
        address = await self.recognizer.recognize(photo_data_uri)
        if not address:
            self.state.notice = NO_ADDRESS_IN_PHOTO
            return None
        
        return address if self.add_address(address) else None
    
    async def set_user_location(self, latitude: float, longitude: float) -> str | None:
        """
        Record where the user is.
        
        The location becomes the optimizer's origin hint, and its country
        biases later geocoding. Returns the country code, if one was found.
        """
        self.state.user_location = (latitude, longitude)
        self.state.country = await self.geocoder.reverse_country(latitude, longitude)
        return self.state.country
    
    # Optimization
    
    async def optimize(self) -> bool:
        """
        Run one optimization for the current address list.
        
        Returns True on success. Failures are stored in `state.error`; the
        state machine always ends back in IDLE. Calling this while an
        optimization is in flight raises ValidationError.
        """
        state = self.state
        if state.is_busy:
            raise ValidationError(ALREADY_OPTIMIZING)
        
        snapshot = state.store.snapshot()
        if len(snapshot) < 2:
            state.error = NEED_TWO_ADDRESSES
            state.outcome = PipelineStatus.FAILED
            return False
        
        version = state.store.version
        self._enter_optimizing()
        try:
            result = await self.optimization.optimize(snapshot, state.origin_location)
        except (ValidationError, UpstreamError) as e:
            logger.info("Optimization failed: %s", e)
            state.error = str(e)
            self._finish(PipelineStatus.FAILED)
            return False
        
        if state.store.version != version:
            # list changed while the optimizer ran
            logger.info("Discarding optimization for an outdated address list")
            self._finish(None)
            return False
        
        state.optimization = result
        state.optimized_snapshot = snapshot
        self._finish(PipelineStatus.SUCCESS)
        self.request_map_refresh()
        return True
    
    def _enter_optimizing(self) -> None:
        state = self.state
        state.status = PipelineStatus.OPTIMIZING
        state.outcome = None
        state.optimization = None
        state.optimized_snapshot = ()
        state.waypoints = []
        state.path = None
        state.error = None
        state.map_error = None
        self.directions.clear()
    
    def _finish(self, outcome: PipelineStatus | None) -> None:
        self.state.outcome = outcome
        self.state.status = PipelineStatus.IDLE
    
    # Map layer
    
    def request_map_refresh(self) -> asyncio.Task:
        """Schedule geocoding, reconciliation and directions for the current state."""
        task = asyncio.get_running_loop().create_task(self._refresh_map())
        self._map_tasks.add(task)
        task.add_done_callback(self._map_tasks.discard)
        return task
    
    async def wait_for_map(self) -> None:
        """Wait until every scheduled map refresh has finished."""
        while self._map_tasks:
            await asyncio.gather(*list(self._map_tasks))
    
    def _is_current(self, version: int, result) -> bool:
        return self.state.store.version == version and self.state.optimization is result
    
    async def _refresh_map(self) -> None:
        state = self.state
        version = state.store.version
        result = state.optimization
        known = set(state.optimized_snapshot)
        
        try:
            batch = await self.geocoding.resolve(
                state.effective_addresses,
                bounds=state.map_bounds,
                region=state.country,
            )
        except GeocodingFailed as e:
            if self._is_current(version, result):
                state.points = []
                state.unresolved = e.failures
                state.waypoints = []
                state.path = None
                state.map_error = str(e)
                self.directions.clear()
            return
        
        if batch is None or not self._is_current(version, result):
            logger.debug("Map refresh superseded; dropping its results")
            return
        
        state.points = batch.points
        state.unresolved = batch.failures
        state.map_error = None
        
        if result is None or len(result.optimized_route) < 2:
            state.waypoints = []
            state.path = None
            self.directions.clear()
            return
        
        # Only addresses the user actually entered may become waypoints
        candidates = [point for point in batch.points if point.address in known]
        reconciliation = reconcile_order(result.optimized_route, candidates)
        state.waypoints = reconciliation.waypoints
        
        if not reconciliation.sufficient:
            logger.info(
                "Only %d waypoint(s) matched the optimized route; not requesting directions",
                len(reconciliation.waypoints),
            )
            state.path = None
            self.directions.clear()
            return
        
        try:
            path = await self.directions.resolve(reconciliation.waypoints)
        except DirectionsUnavailable as e:
            if self._is_current(version, result):
                state.path = None
                state.map_error = str(e)
            return
        
        if path is not None and self._is_current(version, result):
            state.path = path


def create_controller(settings: Settings | None = None) -> PipelineController:
    """Build a controller wired to Google Maps and the configured optimizer."""
    settings = settings or default_settings
    
    geocoder = GoogleGeocoder(api_key=settings.google_maps_api_key, timeout=settings.http_timeout)
    directions_client = GoogleDirectionsClient(
        api_key=settings.google_maps_api_key,
        timeout=settings.http_timeout,
    )
    
    llm = None
    if settings.use_ollama or settings.llm_api_key:
        llm = create_llm_client(settings)
    
    if settings.route_optimizer == "nearest":
        optimizer = NearestNeighborOptimizer(geocoder)
    else:
        optimizer = LLMRouteOptimizer(llm or create_llm_client(settings), settings.model_id)
    
    # Photo recognition needs a model even when the optimizer does not
    recognizer = AddressRecognizer(llm, settings.model_id) if llm else None
    
    return PipelineController(
        geocoder=geocoder,
        optimizer=optimizer,
        directions_client=directions_client,
        recognizer=recognizer,
    )
