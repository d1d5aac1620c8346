import aiohttp
import pytest

from commutesafe.utils.osm_services import GeocodingService, RoutingService

class FakeResponse:
    def __init__(self, payload=None, status=200):
        self.payload = payload
        self.status = status

    async def json(self):
        return self.payload

    async def text(self):
        return str(self.payload)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

class FakeSession:
    def __init__(self, payload=None, status=200, error=None):
        self.response = FakeResponse(payload, status)
        self.error = error
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        if self.error:
            raise self.error
        return self.response

OSRM_PAYLOAD = {
    "code": "Ok",
    "routes": [{
        "distance": 5234.5,
        "duration": 900,
        "geometry": {"type": "LineString", "coordinates": [[121.05, 14.65], [121.0449, 14.7198]]},
        "legs": [{
            "steps": [
                {"distance": 1200, "maneuver": {"instruction": "Head north"}, "name": "Commonwealth Avenue"},
                {"distance": 800, "maneuver": {"type": "turn"}, "name": "Regalado Highway"},
                {"distance": 50, "maneuver": {"type": "arrive"}, "name": ""},
            ]
        }]
    }]
}

async def test_driving_route_is_parsed():
    session = FakeSession(OSRM_PAYLOAD)
    service = RoutingService("https://osrm.test/", session=session)

    summary = await service.get_driving_route((14.65, 121.05), (14.7198, 121.0449))

    call = session.calls[0]
    assert call["url"] == "https://osrm.test/route/v1/driving/121.05,14.65;121.0449,14.7198"
    assert call["params"] == {"overview": "full", "geometries": "geojson", "steps": "true"}
    assert call["headers"]["User-Agent"] == "OLFU-QC-CommuteApp/1.0"

    assert summary.distance_km == 5.2
    assert summary.duration_minutes == 15
    assert [step.instruction for step in summary.steps] == [
        "Head north", "Regalado Highway", "Continue straight"
    ]
    assert summary.geometry["type"] == "LineString"

@pytest.mark.parametrize("session", [
    FakeSession({"code": "NoRoute", "routes": []}),
    FakeSession({"message": "Too many requests"}, status=429),
    FakeSession(error=aiohttp.ClientConnectionError("connection refused")),
])
async def test_no_route_on_failure(session):
    service = RoutingService("https://osrm.test", session=session)
    assert await service.get_driving_route((14.65, 121.05), (14.7198, 121.0449)) is None

async def test_short_queries_are_not_sent():
    session = FakeSession([])
    service = GeocodingService("https://nominatim.test", session=session)

    assert await service.search("  sm ") == []
    assert session.calls == []

async def test_search_is_bounded_to_the_country():
    session = FakeSession([{
        "place_id": 1234,
        "display_name": "SM City Fairview, Quirino Highway, Greater Lagro, Quezon City, Philippines",
        "lat": "14.7340",
        "lon": "121.0577"
    }])
    service = GeocodingService("https://nominatim.test", session=session)

    places = await service.search("SM Fairview")

    params = session.calls[0]["params"]
    assert session.calls[0]["url"] == "https://nominatim.test/search"
    assert params["countrycodes"] == "ph"
    assert params["viewbox"] == "116.0,21.5,127.0,4.5"
    assert params["bounded"] == 1
    assert params["limit"] == 10

    assert len(places) == 1
    assert places[0].name == "SM City Fairview"
    assert places[0].address == "Quirino Highway, Greater Lagro"
    assert (places[0].latitude, places[0].longitude) == (14.734, 121.0577)

async def test_search_without_results():
    service = GeocodingService("https://nominatim.test", session=FakeSession([]))
    assert await service.search("nowhere at all") == []

async def test_reverse_outside_bounds_is_rejected():
    session = FakeSession({})
    service = GeocodingService("https://nominatim.test", session=session)

    assert await service.reverse(35.68, 139.69) is None
    assert session.calls == []

async def test_reverse_geocode():
    session = FakeSession({
        "place_id": 99,
        "display_name": "Our Lady of Fatima University, Regalado Highway, Lagro, Quezon City"
    })
    service = GeocodingService("https://nominatim.test", session=session)

    place = await service.reverse(14.7198, 121.0449)

    assert place.name == "Our Lady of Fatima University"
    assert place.address == "Regalado Highway, Lagro"
    assert session.calls[0]["params"]["format"] == "json"

async def test_reverse_geocode_without_address():
    service = GeocodingService("https://nominatim.test", session=FakeSession({"error": "Unable to geocode"}))

    place = await service.reverse(14.7198, 121.0449)

    assert place.name == "Selected Location"
    assert place.address == "14.7198°N, 121.0449°E"
