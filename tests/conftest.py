"""
tests/conftest.py

pytest共通フィクスチャ

参照:
- pytest fixtures: https://docs.pytest.org/en/stable/fixture.html
- httpx TestClient: https://www.python-httpx.org/advanced/testing/
- FastAPI Testing: https://fastapi.tiangolo.com/tutorial/testing/
"""
import pytest
from unittest.mock import AsyncMock
from datetime import datetime

from httpx import AsyncClient, ASGITransport

from saferoute.main import app
from saferoute.models import (
    Coordinate,
    Location,
    TimeContext,
    TimeOfDay,
    WeatherCondition,
    WeatherSnapshot,
)
from saferoute.services.mapbox_client import MapboxClient
from saferoute.services.weather_client import WeatherClient
from saferoute.services.preference_store import PreferenceStore
from saferoute.services.route_characterizer import RawPath, RawStep
from saferoute.services.weather_context import mock_weather_snapshot


# =============================================================================
# テスト用定数
# =============================================================================

# ニューヨーク市内の座標 (経度, 緯度)
WASHINGTON_SQUARE = (-73.9973, 40.7308)
METROTECH = (-73.9857, 40.6944)
EMPIRE_STATE = (-73.9857, 40.7484)

# 固定時刻（平日・週末）
WEEKDAY_NOON = datetime(2024, 6, 12, 12, 30)      # 水曜
WEEKDAY_RUSH = datetime(2024, 6, 12, 8, 15)       # 水曜
WEEKDAY_LATE_NIGHT = datetime(2024, 6, 12, 2, 30)  # 水曜
SATURDAY_AFTERNOON = datetime(2024, 6, 15, 15, 0)  # 土曜


def make_location(name: str, lnglat: tuple[float, float]) -> Location:
    """テスト用の Location を作成"""
    return Location(
        name=name,
        address=f"{name}, New York, NY",
        coordinates=Coordinate(lat=lnglat[1], lng=lnglat[0]),
    )


def make_raw_path(
    distance: float = 2000,
    duration: float = 1430,
    maneuvers: tuple[str, ...] = ("depart", "turn", "turn", "end of road", "arrive"),
) -> RawPath:
    """指定した操作種別のステップを持つ生の経路を作成"""
    start, end = WASHINGTON_SQUARE, METROTECH
    steps = [
        RawStep(
            instruction=f"Step {i}: {maneuver}",
            distance=distance / len(maneuvers),
            duration=duration / len(maneuvers),
            maneuver_type=maneuver,
            location=start,
            modifier="left" if maneuver == "turn" else None,
        )
        for i, maneuver in enumerate(maneuvers)
    ]
    return RawPath(
        distance=distance,
        duration=duration,
        coordinates=[list(start), [-73.99, 40.71], list(end)],
        steps=steps,
    )


def make_time_context(
    time_of_day: TimeOfDay = TimeOfDay.AFTERNOON,
    is_dark: bool = False,
    is_rush_hour: bool = False,
    is_weekend: bool = False,
    hour: int = 15,
) -> TimeContext:
    """テスト用の TimeContext を作成"""
    return TimeContext(
        hour=hour,
        minute=0,
        time_of_day=time_of_day,
        is_dark=is_dark,
        is_rush_hour=is_rush_hour,
        is_weekend=is_weekend,
        display_time=f"{hour}:00",
    )


def make_weather(
    condition: WeatherCondition = WeatherCondition.CLEAR,
    temp: float = 70,
    wind_speed: float = 5,
    **kwargs,
) -> WeatherSnapshot:
    """テスト用の WeatherSnapshot を作成（予報なし）"""
    return WeatherSnapshot(
        temp=temp,
        feels_like=kwargs.pop("feels_like", temp),
        condition=condition,
        description=kwargs.pop("description", condition.value),
        icon=kwargs.pop("icon", "01d"),
        humidity=50,
        wind_speed=wind_speed,
        **kwargs,
    )


# =============================================================================
# 地点フィクスチャ
# =============================================================================

@pytest.fixture
def origin():
    return make_location("Washington Square Park", WASHINGTON_SQUARE)


@pytest.fixture
def destination():
    return make_location("6 MetroTech Center", METROTECH)


# =============================================================================
# モッククライアント
# =============================================================================

@pytest.fixture
def mock_mapbox_client():
    """MapboxClientのモック"""
    client = AsyncMock(spec=MapboxClient)

    client.get_routes.return_value = [
        make_raw_path(distance=2000, duration=1430),
        make_raw_path(distance=2300, duration=1640, maneuvers=("depart", "turn", "turn", "arrive")),
        make_raw_path(distance=2400, duration=1710, maneuvers=("depart", "turn", "arrive")),
    ]
    client.search.return_value = [
        make_location("6 MetroTech Center", METROTECH),
        make_location("Empire State Building", EMPIRE_STATE),
    ]
    client.reverse_geocode.return_value = make_location("Washington Square Park", WASHINGTON_SQUARE)
    client.close.return_value = None

    return client


@pytest.fixture
def mock_weather_client():
    """WeatherClientのモック（モック天気を返す）"""
    client = AsyncMock(spec=WeatherClient)
    client.get_snapshot.return_value = mock_weather_snapshot()
    client.close.return_value = None
    return client


@pytest.fixture
def preference_store(tmp_path):
    """一時ディレクトリの PreferenceStore"""
    return PreferenceStore(tmp_path / "preference.json")


# =============================================================================
# FastAPIテストクライアント
# =============================================================================

@pytest.fixture
async def async_client(mock_mapbox_client, mock_weather_client, preference_store):
    """
    非同期HTTPテストクライアント

    app.stateに必要なオブジェクトを注入してテスト実行。
    """
    app.state.mapbox_client = mock_mapbox_client
    app.state.weather_client = mock_weather_client
    app.state.preference_store = preference_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
