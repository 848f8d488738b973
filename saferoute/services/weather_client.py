"""
saferoute/services/weather_client.py

OpenWeatherMap APIクライアント

One Call API 3.0 で現在の天気と1時間ごとの予報を取得し、
WeatherSnapshot に正規化する。One Call が失敗した場合は
無料の Current Weather API 2.5 にフォールバックする（予報なし）。

天気は参考情報であり、ルート検索を止めてはならない。
get_snapshot() はAPIキー未設定・取得失敗時にモックスナップショットを返す。

公式ドキュメント:
- One Call API 3.0: https://openweathermap.org/api/one-call-3
- Current Weather API: https://openweathermap.org/current
- httpx AsyncClient: https://www.python-httpx.org/async/
"""
from datetime import datetime
from typing import Optional
import httpx

from saferoute.models.weather import HourlyForecast, WeatherSnapshot
from saferoute.services.weather_context import (
    kelvin_to_fahrenheit,
    map_condition,
    mock_weather_snapshot,
    ms_to_mph,
)


# =============================================================================
# 定数定義
# =============================================================================

OPENWEATHER_API_BASE = "https://api.openweathermap.org"

ONE_CALL_PATH = "/data/3.0/onecall"
CURRENT_WEATHER_PATH = "/data/2.5/weather"

# 予報の最大件数
MAX_HOURLY_POINTS = 12

DEFAULT_VISIBILITY_M = 10000


# =============================================================================
# OpenWeatherMapクライアント
# =============================================================================

class WeatherClient:
    """
    OpenWeatherMap APIクライアント

    Attributes:
        _api_key (str): APIキー（空文字の場合はモックデータのみ）
        _client (httpx.AsyncClient): HTTPクライアント

    使用例:
        async with WeatherClient(api_key) as client:
            snapshot = await client.get_snapshot(lat=40.6944, lng=-73.9857)
    """

    def __init__(self, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        初期化

        Args:
            api_key: OpenWeatherMap APIキー
            transport: テスト用のトランスポート（httpx.MockTransport など）
        """
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=OPENWEATHER_API_BASE,
            timeout=httpx.Timeout(connect=5.0, read=10.0, write=5.0, pool=10.0),
            headers={
                "User-Agent": "SafeRoute/1.0",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self):
        """async with 文のエントリポイント"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """async with 文の終了処理"""
        await self.close()

    async def close(self):
        """クライアントをクローズ"""
        await self._client.aclose()

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    # =========================================================================
    # 公開API
    # =========================================================================

    async def get_snapshot(self, lat: float, lng: float) -> WeatherSnapshot:
        """
        天気スナップショットを取得（失敗しない）

        APIキー未設定、または取得に失敗した場合はモックスナップショットを返す。
        """
        if not self.has_api_key:
            print("WeatherClient: No OpenWeatherMap API key set. Using mock weather data.")
            return mock_weather_snapshot()

        try:
            return await self.get_current(lat, lng)
        except (httpx.HTTPError, ValueError) as e:
            print(f"WeatherClient: Weather fetch failed ({e}). Using mock weather data.")
            return mock_weather_snapshot()

    async def get_current(self, lat: float, lng: float) -> WeatherSnapshot:
        """
        現在の天気と予報を取得

        One Call API 3.0 を試し、非200応答なら Current Weather API 2.5 を使う。

        Raises:
            httpx.HTTPError: 通信エラー・2.5 APIのエラー応答
            ValueError: レスポンス形式不正
        """
        params = {"lat": lat, "lon": lng, "appid": self._api_key}

        response = await self._client.get(
            ONE_CALL_PATH,
            params={**params, "exclude": "minutely,daily"},
        )
        if response.is_success:
            return self._parse(self._parse_one_call, response)

        print(f"WeatherClient: One Call API returned {response.status_code}, trying current weather API")
        response = await self._client.get(CURRENT_WEATHER_PATH, params=params)
        response.raise_for_status()
        return self._parse(self._parse_current_weather, response)

    # =========================================================================
    # レスポンス解析
    # =========================================================================

    @staticmethod
    def _parse(parser, response: httpx.Response) -> WeatherSnapshot:
        """
        レスポンスを解析し、形式不正はすべて ValueError として送出する

        （欠けたキー・空の配列・null・範囲外の値）
        """
        try:
            return parser(response.json())
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed weather response: {e!r}") from e

    @staticmethod
    def _precipitation(data: dict) -> float:
        """rain.1h または snow.1h（mm）"""
        return (data.get("rain") or {}).get("1h") or (data.get("snow") or {}).get("1h") or 0

    def _parse_one_call(self, data: dict) -> WeatherSnapshot:
        """
        One Call API 3.0 のレスポンスを解析

        参照: https://openweathermap.org/api/one-call-3#fields_json
        """
        current = data["current"]
        weather = current["weather"][0]

        hourly = [
            HourlyForecast(
                time=datetime.fromtimestamp(hour["dt"]),
                temp=kelvin_to_fahrenheit(hour["temp"]),
                condition=map_condition(hour["weather"][0]["id"]),
                description=hour["weather"][0].get("description", ""),
                icon=hour["weather"][0].get("icon", ""),
                precip_probability=round((hour.get("pop") or 0) * 100),
                precipitation=self._precipitation(hour),
            )
            for hour in data.get("hourly", [])[:MAX_HOURLY_POINTS]
        ]

        timezone = data.get("timezone") or ""
        location_name = timezone.split("/")[-1].replace("_", " ") or "Unknown"

        return WeatherSnapshot(
            temp=kelvin_to_fahrenheit(current["temp"]),
            feels_like=kelvin_to_fahrenheit(current["feels_like"]),
            condition=map_condition(weather["id"]),
            description=weather.get("description", ""),
            icon=weather.get("icon", ""),
            precipitation=self._precipitation(current),
            humidity=current.get("humidity", 0),
            wind_speed=ms_to_mph(current.get("wind_speed", 0)),
            uv_index=current.get("uvi") or 0,
            visibility=current.get("visibility") or DEFAULT_VISIBILITY_M,
            hourly=hourly,
            location_name=location_name,
            sunrise=current.get("sunrise"),
            sunset=current.get("sunset"),
        )

    def _parse_current_weather(self, data: dict) -> WeatherSnapshot:
        """
        Current Weather API 2.5 のレスポンスを解析（予報・UV指数なし）

        参照: https://openweathermap.org/current#fields_json
        """
        main = data["main"]
        weather = data["weather"][0]
        sys = data.get("sys") or {}

        return WeatherSnapshot(
            temp=kelvin_to_fahrenheit(main["temp"]),
            feels_like=kelvin_to_fahrenheit(main["feels_like"]),
            condition=map_condition(weather["id"]),
            description=weather.get("description", ""),
            icon=weather.get("icon", ""),
            precipitation=self._precipitation(data),
            humidity=main.get("humidity", 0),
            wind_speed=ms_to_mph((data.get("wind") or {}).get("speed", 0)),
            uv_index=0,
            visibility=data.get("visibility") or DEFAULT_VISIBILITY_M,
            hourly=[],
            location_name=data.get("name", ""),
            sunrise=sys.get("sunrise"),
            sunset=sys.get("sunset"),
        )
