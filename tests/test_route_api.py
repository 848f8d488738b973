"""
tests/test_route_api.py

ルート検索・天気・地名検索・嗜好APIのテスト
"""
import httpx

from saferoute.main import app
from saferoute.models import Coordinate, RoutePreference
from saferoute.routers import route as route_router
from saferoute.services.mapbox_client import MapboxClient
from saferoute.services.recommendation_engine import recommend
from saferoute.services.route_characterizer import RawPath
from saferoute.services.weather_client import WeatherClient
from tests.conftest import METROTECH, WASHINGTON_SQUARE


ORIGIN = f"{WASHINGTON_SQUARE[0]},{WASHINGTON_SQUARE[1]}"
DESTINATION = f"{METROTECH[0]},{METROTECH[1]}"


class TestRouteAPIValidation:
    """入力エラーのテスト"""

    async def test_missing_origin(self, async_client, mock_mapbox_client):
        """出発地未指定はエンベロープでエラー、プロバイダは呼ばない"""
        response = await async_client.get("/api/routes", params={"destination": DESTINATION})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "MISSING_LOCATION"
        assert data["error"]["message"] == "Please set both origin and destination"
        mock_mapbox_client.get_routes.assert_not_called()

    async def test_missing_destination(self, async_client, mock_mapbox_client):
        response = await async_client.get("/api/routes", params={"origin": ORIGIN})

        data = response.json()
        assert data["error"]["code"] == "MISSING_LOCATION"
        mock_mapbox_client.get_routes.assert_not_called()

    async def test_invalid_origin_format(self, async_client):
        response = await async_client.get(
            "/api/routes",
            params={"origin": "invalid", "destination": DESTINATION},
        )

        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "INVALID_COORDINATES"

    async def test_out_of_range_coordinates(self, async_client):
        response = await async_client.get(
            "/api/routes",
            params={"origin": "200,40.7", "destination": DESTINATION},
        )

        assert response.json()["error"]["code"] == "INVALID_COORDINATES"

    async def test_invalid_mode(self, async_client):
        response = await async_client.get(
            "/api/routes",
            params={"origin": ORIGIN, "destination": DESTINATION, "mode": "driving"},
        )
        assert response.status_code == 422

    async def test_invalid_preference(self, async_client):
        response = await async_client.get(
            "/api/routes",
            params={"origin": ORIGIN, "destination": DESTINATION, "preference": "scenic"},
        )
        assert response.status_code == 422


class TestRouteAPISuccess:
    """正常系のテスト"""

    async def test_route_plan(self, async_client, mock_mapbox_client, mock_weather_client):
        response = await async_client.get(
            "/api/routes",
            params={
                "origin": ORIGIN,
                "destination": DESTINATION,
                "mode": "cycling",
                "originName": "Washington Square Park",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        plan = body["data"]

        assert [r["type"] for r in plan["routes"]] == ["fastest", "safest", "comfortable"]
        assert [r["id"] for r in plan["routes"]] == ["route-0", "route-1", "route-2"]
        assert plan["selectedRouteId"] == "route-1"
        assert plan["isFallback"] is False
        assert plan["recommendation"]["routeId"] in {"route-0", "route-1", "route-2"}
        assert plan["recommendation"]["reason"]
        assert "timeOfDay" in plan["timeContext"]
        assert plan["weather"]["isMock"] is True
        assert plan["weatherMessage"].startswith("☀️")
        assert isinstance(plan["weatherTags"], list)

        safest = plan["routes"][1]
        assert safest["nightFriendly"] is True
        assert safest["distanceText"] == "2.3 km"
        assert safest["durationText"] == "27 min"
        assert safest["safety"]["sidewalkCoverage"] == "continuous"

        origin, destination, mode = mock_mapbox_client.get_routes.await_args.args
        assert origin.name == "Washington Square Park"
        assert destination.name == "Destination"
        assert mode.value == "cycling"
        mock_weather_client.get_snapshot.assert_awaited_once_with(WASHINGTON_SQUARE[1], WASHINGTON_SQUARE[0])

    async def test_provider_failure_uses_fallback(self, async_client, mock_mapbox_client):
        mock_mapbox_client.get_routes.side_effect = httpx.ConnectError("offline")

        response = await async_client.get(
            "/api/routes",
            params={"origin": ORIGIN, "destination": DESTINATION},
        )

        body = response.json()
        assert body["success"] is True
        assert body["data"]["isFallback"] is True
        assert [r["id"] for r in body["data"]["routes"]] == [
            "fallback-fastest", "fallback-safest", "fallback-comfortable",
        ]
        assert body["data"]["selectedRouteId"] == "fallback-safest"

    async def test_no_route_uses_fallback(self, async_client, mock_mapbox_client):
        mock_mapbox_client.get_routes.side_effect = ValueError("Directions request failed: NoRoute")

        response = await async_client.get(
            "/api/routes",
            params={"origin": ORIGIN, "destination": DESTINATION},
        )

        assert response.json()["data"]["isFallback"] is True

    async def test_simplify(self, async_client, mock_mapbox_client):
        """simplify=true でジオメトリが最大100点に削減される"""
        coordinates = [
            [WASHINGTON_SQUARE[0] + i * 0.00001, WASHINGTON_SQUARE[1] - i * 0.0001 + (i % 2) * 0.00005]
            for i in range(400)
        ]
        mock_mapbox_client.get_routes.return_value = [
            RawPath(distance=4000, duration=2860, coordinates=coordinates, steps=[]),
        ]

        response = await async_client.get(
            "/api/routes",
            params={"origin": ORIGIN, "destination": DESTINATION, "simplify": "true"},
        )

        routes = response.json()["data"]["routes"]
        assert len(routes) == 3
        for route in routes:
            points = route["geometry"]["coordinates"]
            assert 2 <= len(points) <= 100
            assert points[0] == coordinates[0]
            assert points[-1] == coordinates[-1]

    async def test_saved_preference_is_used(self, async_client, preference_store, monkeypatch):
        """preference 省略時は保存済みの嗜好を読む"""
        used = []

        def capture(routes, preference, *args):
            used.append(preference)
            return recommend(routes, preference, *args)

        monkeypatch.setattr(route_router, "recommend", capture)
        preference_store.save(RoutePreference.FAST)

        await async_client.get("/api/routes", params={"origin": ORIGIN, "destination": DESTINATION})
        await async_client.get(
            "/api/routes",
            params={"origin": ORIGIN, "destination": DESTINATION, "preference": "comfy"},
        )

        assert used == [RoutePreference.FAST, RoutePreference.COMFY]


class TestWeatherAPI:
    """天気APIのテスト"""

    async def test_weather_report(self, async_client, mock_weather_client):
        response = await async_client.get("/api/weather", params={"lat": 40.6944, "lon": -73.9857})

        assert response.status_code == 200
        report = response.json()["data"]
        assert report["weather"]["temp"] == 72
        assert report["weather"]["isMock"] is True
        assert report["alerts"] == []
        assert report["message"] == "☀️ 72°F Clear · Great walking weather"
        assert "isDark" in report["timeContext"]
        mock_weather_client.get_snapshot.assert_awaited_once_with(40.6944, -73.9857)

    async def test_latitude_out_of_range(self, async_client):
        response = await async_client.get("/api/weather", params={"lat": 100, "lon": -73.9857})
        assert response.status_code == 422


class TestLocationsAPI:
    """地名検索APIのテスト"""

    async def test_search(self, async_client, mock_mapbox_client):
        response = await async_client.get(
            "/api/locations/search",
            params={"q": "MetroTech", "proximity": DESTINATION},
        )

        results = response.json()["data"]
        assert [r["name"] for r in results] == ["6 MetroTech Center", "Empire State Building"]
        mock_mapbox_client.search.assert_awaited_once_with(
            "MetroTech", Coordinate(lat=METROTECH[1], lng=METROTECH[0])
        )

    async def test_short_query(self, async_client, mock_mapbox_client):
        response = await async_client.get("/api/locations/search", params={"q": "M"})

        assert response.json()["data"] == []
        mock_mapbox_client.search.assert_not_called()

    async def test_search_failure_is_empty(self, async_client, mock_mapbox_client):
        mock_mapbox_client.search.side_effect = httpx.ConnectError("offline")

        response = await async_client.get("/api/locations/search", params={"q": "MetroTech"})

        body = response.json()
        assert body["success"] is True
        assert body["data"] == []

    async def test_invalid_proximity(self, async_client):
        response = await async_client.get(
            "/api/locations/search",
            params={"q": "MetroTech", "proximity": "nowhere"},
        )
        assert response.json()["error"]["code"] == "INVALID_COORDINATES"

    async def test_reverse(self, async_client):
        response = await async_client.get("/api/locations/reverse", params={"coordinates": ORIGIN})

        location = response.json()["data"]
        assert location["name"] == "Washington Square Park"

    async def test_reverse_not_found(self, async_client, mock_mapbox_client):
        mock_mapbox_client.reverse_geocode.return_value = None

        response = await async_client.get("/api/locations/reverse", params={"coordinates": ORIGIN})

        body = response.json()
        assert body["success"] is True
        assert body["data"] is None


class TestPreferenceAPI:
    """嗜好APIのテスト"""

    async def test_default_preference(self, async_client):
        response = await async_client.get("/api/preference")
        assert response.json()["data"] == {"preference": "safe"}

    async def test_put_preference(self, async_client, preference_store):
        response = await async_client.put("/api/preference", params={"value": "comfy"})

        assert response.json()["data"] == {"preference": "comfy"}
        assert preference_store.load() == RoutePreference.COMFY

        response = await async_client.get("/api/preference")
        assert response.json()["data"]["preference"] == "comfy"

    async def test_put_invalid_preference(self, async_client):
        response = await async_client.put("/api/preference", params={"value": "scenic"})
        assert response.status_code == 422


class TestRouteAPIMalformedProviders:
    """形式不正なプロバイダ応答でもルート計画を返す"""

    async def test_broken_weather_payload_uses_mock(self, async_client):
        def handler(request):
            return httpx.Response(200, json={"current": {"weather": []}, "hourly": None})

        weather_client = WeatherClient("test-key", transport=httpx.MockTransport(handler))
        app.state.weather_client = weather_client
        try:
            response = await async_client.get(
                "/api/routes",
                params={"origin": ORIGIN, "destination": DESTINATION},
            )
        finally:
            await weather_client.close()

        body = response.json()
        assert body["success"] is True
        assert body["data"]["weather"]["isMock"] is True
        assert body["data"]["isFallback"] is False
        assert len(body["data"]["routes"]) == 3

    async def test_broken_directions_payload_uses_fallback(self, async_client):
        def handler(request):
            return httpx.Response(200, json={"code": "Ok", "routes": [
                {"distance": 2000, "duration": 1430, "legs": [{"steps": ["broken"]}]},
            ]})

        mapbox_client = MapboxClient("test-token", transport=httpx.MockTransport(handler))
        app.state.mapbox_client = mapbox_client
        try:
            response = await async_client.get(
                "/api/routes",
                params={"origin": ORIGIN, "destination": DESTINATION},
            )
        finally:
            await mapbox_client.close()

        body = response.json()
        assert body["success"] is True
        assert body["data"]["isFallback"] is True
        assert [r["id"] for r in body["data"]["routes"]] == [
            "fallback-fastest", "fallback-safest", "fallback-comfortable",
        ]

    async def test_broken_search_payload_is_empty(self, async_client):
        def handler(request):
            return httpx.Response(200, json={"features": [{"text": "Nowhere"}]})

        mapbox_client = MapboxClient("test-token", transport=httpx.MockTransport(handler))
        app.state.mapbox_client = mapbox_client
        try:
            response = await async_client.get("/api/locations/search", params={"q": "Nowhere"})
        finally:
            await mapbox_client.close()

        body = response.json()
        assert body["success"] is True
        assert body["data"] == []
