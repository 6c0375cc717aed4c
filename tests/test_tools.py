"""Tests for the external-service adapters and helpers."""

import json
from types import SimpleNamespace

import gpxpy
import httpx
import pytest
from openai import AsyncOpenAI

from routewise.errors import DirectionsUnavailable, UpstreamError, ValidationError
from routewise.models import Bounds, Coordinates, DrivablePath, GeocodedPoint, OptimizationResult
from routewise.tools import (
    AddressRecognizer,
    GeocodeResult,
    GoogleDirectionsClient,
    GoogleGeocoder,
    LLMRouteOptimizer,
    NearestNeighborOptimizer,
    RouteOptimizationClient,
    export_route_gpx,
    file_to_data_uri,
    generate_google_maps_url,
)
from routewise.tools.optimizer import parse_optimization
from routewise.utils import decode_polyline, haversine_distance, parse_lat_lng, path_length_km
from routewise.utils.gpx import create_gpx_from_path


BAKER = "221B Baker St, London"
DOWNING = "10 Downing St, London"


def mock_transport(handler):
    return httpx.MockTransport(handler)


class FakeChat:
    """Stands in for AsyncOpenAI: client.chat.completions.create(...)."""
    
    def __init__(self, content: str):
        self.content = content
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
    
    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class StaticGeocoder:
    def __init__(self, known: dict[str, tuple[float, float]]):
        self.known = known
    
    async def geocode(self, address, bounds=None, region=None):
        if address not in self.known:
            return GeocodeResult(address=address, status="ZERO_RESULTS")
        lat, lng = self.known[address]
        return GeocodeResult(
            address=address,
            point=GeocodedPoint(address=address, latitude=lat, longitude=lng),
        )
    
    async def reverse_country(self, latitude, longitude):
        return None


def sample_path() -> DrivablePath:
    return DrivablePath(
        waypoints=[DOWNING, BAKER],
        points=[(51.5034, -0.1276), (51.5100, -0.1400), (51.5238, -0.1586)],
        bounds=Bounds(
            northeast=Coordinates(latitude=51.5238, longitude=-0.1276),
            southwest=Coordinates(latitude=51.5034, longitude=-0.1586),
        ),
        distance_m=4200,
        duration_s=900,
    )


class TestGeoUtils:
    """Test geospatial utility functions."""
    
    def test_haversine_distance_same_point(self):
        """Distance from a point to itself should be 0."""
        dist = haversine_distance(51.5034, -0.1276, 51.5034, -0.1276)
        assert dist == 0
    
    def test_haversine_distance_known_route(self):
        """London to Paris is roughly 340 km in a straight line."""
        dist = haversine_distance(51.5074, -0.1278, 48.8566, 2.3522)
        assert 330 < dist < 355
    
    def test_parse_lat_lng(self):
        assert parse_lat_lng("51.5,-0.12") == (51.5, -0.12)
        assert parse_lat_lng(" 51.5 , -0.12 ") == (51.5, -0.12)
    
    @pytest.mark.parametrize("text", [None, "", "London", "51.5", "1,2,3", "95,10", "10,200"])
    def test_parse_lat_lng_rejects(self, text):
        assert parse_lat_lng(text) is None
    
    def test_path_length(self):
        assert path_length_km([]) == 0
        assert path_length_km([(0, 0)]) == 0
        one_leg = haversine_distance(0, 0, 0, 1)
        assert path_length_km([(0, 0), (0, 1), (0, 2)]) == pytest.approx(2 * one_leg)


class TestPolyline:
    def test_decode_google_example(self):
        points = decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")
        assert points == [
            pytest.approx((38.5, -120.2)),
            pytest.approx((40.7, -120.95)),
            pytest.approx((43.252, -126.453)),
        ]
    
    def test_decode_empty(self):
        assert decode_polyline("") == []


class TestGpx:
    def test_gpx_has_track_and_stops(self):
        stops = [
            GeocodedPoint(address=DOWNING, latitude=51.5034, longitude=-0.1276),
            GeocodedPoint(address=BAKER, latitude=51.5238, longitude=-0.1586),
        ]
        xml = create_gpx_from_path(sample_path(), stops, name="Errands")
        gpx = gpxpy.parse(xml)
        
        assert [w.name for w in gpx.waypoints] == [f"1. {DOWNING}", f"2. {BAKER}"]
        assert len(gpx.tracks) == 1
        assert len(gpx.tracks[0].segments[0].points) == 3
    
    def test_export_writes_file(self, tmp_path):
        stops = [GeocodedPoint(address=DOWNING, latitude=51.5034, longitude=-0.1276)]
        filepath = export_route_gpx(sample_path(), stops, route_name="my route!", output_dir=tmp_path)
        
        assert filepath.parent == tmp_path
        assert filepath.name.startswith("my_route__")
        assert filepath.suffix == ".gpx"
        assert "<trkpt" in filepath.read_text(encoding="utf-8")


class TestGoogleMapsUrl:
    def test_needs_two_stops(self):
        assert generate_google_maps_url([DOWNING]) is None
    
    def test_stops_in_order(self):
        url = generate_google_maps_url([DOWNING, "Tower of London", BAKER])
        params = httpx.URL(url).params
        
        assert params["origin"] == DOWNING
        assert params["destination"] == BAKER
        assert params["waypoints"] == "Tower of London"
        assert params["travelmode"] == "driving"


@pytest.mark.asyncio
class TestGoogleGeocoder:
    """Geocoding adapter against a mocked Google endpoint."""
    
    async def test_geocode_success(self):
        seen = {}
        
        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{
                    "formatted_address": "10 Downing St, London SW1A 2AA, UK",
                    "geometry": {"location": {"lat": 51.5034, "lng": -0.1276}},
                }],
            })
        
        geocoder = GoogleGeocoder(api_key="key", transport=mock_transport(handler))
        result = await geocoder.geocode(DOWNING, region="GB")
        
        assert result.ok
        assert result.point.address == DOWNING
        assert result.point.as_tuple() == (51.5034, -0.1276)
        assert result.point.formatted_address.startswith("10 Downing St")
        assert seen["address"] == DOWNING
        assert seen["region"] == "gb"
        assert seen["key"] == "key"
    
    async def test_geocode_passes_viewport(self):
        seen = {}
        
        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
        
        bounds = Bounds(
            northeast=Coordinates(latitude=52.0, longitude=0.5),
            southwest=Coordinates(latitude=51.0, longitude=-0.5),
        )
        geocoder = GoogleGeocoder(api_key="key", transport=mock_transport(handler))
        await geocoder.geocode(BAKER, bounds=bounds)
        
        assert seen["bounds"] == "51.0,-0.5|52.0,0.5"
    
    async def test_geocode_not_found(self):
        def handler(request):
            return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
        
        geocoder = GoogleGeocoder(api_key="key", transport=mock_transport(handler))
        result = await geocoder.geocode("nowhere at all")
        
        assert not result.ok
        assert result.status == "ZERO_RESULTS"
    
    async def test_geocode_http_error_is_a_miss(self):
        def handler(request):
            return httpx.Response(503, text="unavailable")
        
        geocoder = GoogleGeocoder(api_key="key", transport=mock_transport(handler))
        result = await geocoder.geocode(BAKER)
        
        assert not result.ok
        assert result.status == "REQUEST_FAILED"
    
    async def test_reverse_country(self):
        def handler(request):
            assert request.url.params["latlng"] == "51.5,-0.12"
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{
                    "address_components": [
                        {"long_name": "United Kingdom", "short_name": "GB", "types": ["country", "political"]},
                    ],
                }],
            })
        
        geocoder = GoogleGeocoder(api_key="key", transport=mock_transport(handler))
        assert await geocoder.reverse_country(51.5, -0.12) == "GB"
    
    async def test_reverse_country_failure(self):
        def handler(request):
            return httpx.Response(200, json={"status": "REQUEST_DENIED", "results": []})
        
        geocoder = GoogleGeocoder(api_key="key", transport=mock_transport(handler))
        assert await geocoder.reverse_country(51.5, -0.12) is None


@pytest.mark.asyncio
class TestGoogleDirectionsClient:
    
    async def test_route_keeps_given_order(self):
        seen = {}
        
        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json={
                "status": "OK",
                "routes": [{
                    "overview_polyline": {"points": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"},
                    "bounds": {
                        "northeast": {"lat": 43.252, "lng": -120.2},
                        "southwest": {"lat": 38.5, "lng": -126.453},
                    },
                    "legs": [
                        {"distance": {"value": 1000}, "duration": {"value": 60}},
                        {"distance": {"value": 2500}, "duration": {"value": 240}},
                    ],
                }],
            })
        
        client = GoogleDirectionsClient(api_key="key", transport=mock_transport(handler))
        path = await client.route("A", "C", ["B"])
        
        assert seen["origin"] == "A"
        assert seen["destination"] == "C"
        assert seen["waypoints"] == "B"
        assert "optimize" not in seen["waypoints"]
        assert seen["mode"] == "driving"
        
        assert path.waypoints == ["A", "B", "C"]
        assert len(path.points) == 3
        assert path.bounds.northeast.latitude == 43.252
        assert path.distance_m == 3500
        assert path.duration_s == 300
    
    async def test_route_without_intermediate_stops(self):
        seen = {}
        
        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json={
                "status": "OK",
                "routes": [{"overview_polyline": {"points": "_p~iF~ps|U_ulLnnqC"}, "legs": []}],
            })
        
        client = GoogleDirectionsClient(api_key="key", transport=mock_transport(handler))
        path = await client.route("A", "B", [])
        
        assert "waypoints" not in seen
        # Bounds fall back to the decoded geometry
        assert path.bounds.southwest.latitude == pytest.approx(38.5)
    
    async def test_status_not_ok(self):
        def handler(request):
            return httpx.Response(200, json={"status": "NOT_FOUND", "routes": []})
        
        client = GoogleDirectionsClient(api_key="key", transport=mock_transport(handler))
        with pytest.raises(DirectionsUnavailable) as excinfo:
            await client.route("A", "B", [])
        assert excinfo.value.status == "NOT_FOUND"
    
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)
        
        client = GoogleDirectionsClient(api_key="key", transport=mock_transport(handler))
        with pytest.raises(DirectionsUnavailable):
            await client.route("A", "B", [])


class TestParseOptimization:
    def test_accepts_fenced_json(self):
        text = "```json\n" + json.dumps({"optimizedRoute": [DOWNING, BAKER], "reasoning": "X"}) + "\n```"
        result = parse_optimization(text)
        assert result.optimized_route == [DOWNING, BAKER]
        assert result.reasoning == "X"
    
    @pytest.mark.parametrize("text", [
        "",
        "no json here",
        '{"optimizedRoute": ["a", "b"]}',
        '{"reasoning": "X"}',
        '{"optimizedRoute": "a, b", "reasoning": "X"}',
    ])
    def test_rejects_malformed(self, text):
        with pytest.raises(UpstreamError):
            parse_optimization(text)


@pytest.mark.asyncio
class TestLLMRouteOptimizer:
    
    async def test_prompt_and_result(self):
        chat = FakeChat(json.dumps({"optimizedRoute": [DOWNING, BAKER], "reasoning": "X"}))
        optimizer = LLMRouteOptimizer(chat, "test-model")
        
        result = await optimizer.optimize([BAKER, DOWNING], origin_location="51.5,-0.12")
        
        assert result == OptimizationResult(optimized_route=[DOWNING, BAKER], reasoning="X")
        request = chat.requests[0]
        prompt = request["messages"][0]["content"]
        assert request["model"] == "test-model"
        assert f"- {BAKER}" in prompt and f"- {DOWNING}" in prompt
        assert "51.5,-0.12" in prompt
    
    async def test_service_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "down"}})
        
        client = AsyncOpenAI(
            api_key="test",
            base_url="http://llm.test/v1",
            max_retries=0,
            http_client=httpx.AsyncClient(transport=mock_transport(handler)),
        )
        optimizer = LLMRouteOptimizer(client, "test-model")
        
        with pytest.raises(UpstreamError):
            await optimizer.optimize([BAKER, DOWNING])


class RecordingOptimizer:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = []
    
    async def optimize(self, addresses, origin_location=None):
        self.calls.append((addresses, origin_location))
        if self.error:
            raise self.error
        return self.result


@pytest.mark.asyncio
class TestRouteOptimizationClient:
    
    @pytest.mark.parametrize("addresses", [[], [BAKER]])
    async def test_fewer_than_two_rejected_before_dispatch(self, addresses):
        optimizer = RecordingOptimizer()
        with pytest.raises(ValidationError):
            await RouteOptimizationClient(optimizer).optimize(addresses)
        assert optimizer.calls == []
    
    async def test_passes_origin(self):
        expected = OptimizationResult(optimized_route=[DOWNING, BAKER], reasoning="X")
        optimizer = RecordingOptimizer(result=expected)
        
        result = await RouteOptimizationClient(optimizer).optimize((BAKER, DOWNING), "51.5,-0.12")
        
        assert result is expected
        assert optimizer.calls == [([BAKER, DOWNING], "51.5,-0.12")]
    
    async def test_unexpected_error_becomes_upstream(self):
        optimizer = RecordingOptimizer(error=RuntimeError("socket closed"))
        with pytest.raises(UpstreamError, match="Failed to optimize route"):
            await RouteOptimizationClient(optimizer).optimize([BAKER, DOWNING])
    
    async def test_dict_result_is_schema_validated(self):
        optimizer = RecordingOptimizer(result={"optimizedRoute": [BAKER]})
        with pytest.raises(UpstreamError):
            await RouteOptimizationClient(optimizer).optimize([BAKER, DOWNING])
    
    async def test_empty_route_rejected(self):
        optimizer = RecordingOptimizer(result=OptimizationResult(optimized_route=[], reasoning="X"))
        with pytest.raises(UpstreamError):
            await RouteOptimizationClient(optimizer).optimize([BAKER, DOWNING])
    
    async def test_drifted_strings_are_returned_untouched(self):
        drifted = OptimizationResult(optimized_route=["10 downing street, London", BAKER], reasoning="X")
        optimizer = RecordingOptimizer(result=drifted)
        
        result = await RouteOptimizationClient(optimizer).optimize([BAKER, DOWNING])
        
        assert result.optimized_route == ["10 downing street, London", BAKER]
    
    async def test_repeated_entries_kept_once(self):
        repeated = OptimizationResult(optimized_route=[DOWNING, BAKER, DOWNING], reasoning="X")
        optimizer = RecordingOptimizer(result=repeated)
        
        result = await RouteOptimizationClient(optimizer).optimize([BAKER, DOWNING])
        
        assert result.optimized_route == [DOWNING, BAKER]
        assert result.reasoning == "X"
    
    async def test_longer_route_than_input_rejected(self):
        padded = OptimizationResult(
            optimized_route=[DOWNING, BAKER, DOWNING, "Somewhere else"],
            reasoning="X",
        )
        optimizer = RecordingOptimizer(result=padded)
        
        with pytest.raises(UpstreamError, match="Failed to optimize route"):
            await RouteOptimizationClient(optimizer).optimize([BAKER, DOWNING])


@pytest.mark.asyncio
class TestNearestNeighborOptimizer:
    
    async def test_greedy_order_from_first_address(self):
        geocoder = StaticGeocoder({"A": (0, 0), "B": (0, 3), "C": (0, 1), "D": (0, 2)})
        result = await NearestNeighborOptimizer(geocoder).optimize(["A", "B", "C", "D"])
        
        assert result.optimized_route == ["A", "C", "D", "B"]
        assert "km" in result.reasoning
    
    async def test_starts_near_origin(self):
        geocoder = StaticGeocoder({"A": (0, 0), "B": (0, 3), "C": (0, 1)})
        result = await NearestNeighborOptimizer(geocoder).optimize(["A", "B", "C"], "0,3.2")
        
        assert result.optimized_route == ["B", "C", "A"]
    
    async def test_unlocated_addresses_go_last(self):
        geocoder = StaticGeocoder({"A": (0, 0), "C": (0, 1)})
        result = await NearestNeighborOptimizer(geocoder).optimize(["Nowhere", "A", "C"])
        
        assert result.optimized_route == ["A", "C", "Nowhere"]
        assert "could not be located" in result.reasoning


@pytest.mark.asyncio
class TestAddressRecognizer:
    
    async def test_recognizes_address(self):
        chat = FakeChat('{"address": " 221B Baker St, London "}')
        recognizer = AddressRecognizer(chat, "vision-model")
        
        address = await recognizer.recognize("data:image/png;base64,aGVsbG8=")
        
        assert address == BAKER
        content = chat.requests[0]["messages"][0]["content"]
        assert content[1]["image_url"]["url"] == "data:image/png;base64,aGVsbG8="
    
    async def test_no_address_is_empty_string(self):
        recognizer = AddressRecognizer(FakeChat('{"address": ""}'), "vision-model")
        assert await recognizer.recognize("data:image/png;base64,aGVsbG8=") == ""
    
    async def test_oversized_photo_rejected_before_dispatch(self):
        chat = FakeChat('{"address": "x"}')
        recognizer = AddressRecognizer(chat, "vision-model", max_bytes=4)
        
        with pytest.raises(ValidationError, match="smaller than 4MB"):
            await recognizer.recognize("data:image/png;base64,aGVsbG8=")
        assert chat.requests == []
    
    async def test_not_a_data_uri(self):
        recognizer = AddressRecognizer(FakeChat('{"address": "x"}'), "vision-model")
        with pytest.raises(ValidationError):
            await recognizer.recognize("https://example.com/photo.png")
    
    async def test_malformed_reply(self):
        recognizer = AddressRecognizer(FakeChat("I see a house"), "vision-model")
        with pytest.raises(UpstreamError):
            await recognizer.recognize("data:image/png;base64,aGVsbG8=")


class TestFileToDataUri:
    def test_reads_image(self, tmp_path):
        photo = tmp_path / "door.png"
        photo.write_bytes(b"hello")
        assert file_to_data_uri(photo) == "data:image/png;base64,aGVsbG8="
    
    def test_rejects_large_file(self, tmp_path):
        photo = tmp_path / "door.jpg"
        photo.write_bytes(b"x" * 10)
        with pytest.raises(ValidationError):
            file_to_data_uri(photo, max_bytes=5)
    
    def test_rejects_non_image(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hi")
        with pytest.raises(ValidationError):
            file_to_data_uri(notes)
    
    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError):
            file_to_data_uri(tmp_path / "nope.png")
