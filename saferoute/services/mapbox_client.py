"""
saferoute/services/mapbox_client.py

Mapbox API クライアント

Directions API で代替ルートを含む候補経路を取得し、
Geocoding API で地名検索・逆ジオコーディングを行う。

公式ドキュメント:
- Mapbox Directions API: https://docs.mapbox.com/api/navigation/directions/
- Mapbox Geocoding API (v5): https://docs.mapbox.com/api/search/geocoding-v5/
- httpx AsyncClient: https://www.python-httpx.org/async/
"""
from typing import Optional
from urllib.parse import quote
import httpx

from saferoute.models.common import Coordinate, Location
from saferoute.models.route import TransportMode
from saferoute.services.route_characterizer import RawPath, RawStep, haversine_distance


# =============================================================================
# 定数定義
# =============================================================================

MAPBOX_API_BASE = "https://api.mapbox.com"

# Directions API パス
# 参照: https://docs.mapbox.com/api/navigation/directions/#retrieve-directions
DIRECTIONS_PATH = "/directions/v5/mapbox"

# Geocoding API パス
# 参照: https://docs.mapbox.com/api/search/geocoding-v5/#forward-geocoding
GEOCODING_PATH = "/geocoding/v5/mapbox.places"

# 地名検索の設定
SEARCH_LIMIT = 8
SEARCH_TYPES = "address,poi,place"

# 近接ヒントがない場合の既定値（ニューヨーク）
DEFAULT_PROXIMITY = Coordinate(lat=40.7484, lng=-73.9857)

CURRENT_LOCATION_NAME = "Current Location"


# =============================================================================
# Mapboxクライアント
# =============================================================================

class MapboxClient:
    """
    Mapbox APIクライアント

    以下を提供:
    1. 候補経路の取得（Directions API, alternatives=true）
    2. 地名検索（近接地点からの距離順）
    3. 逆ジオコーディング

    Attributes:
        _client (httpx.AsyncClient): HTTPクライアント
        _access_token (str): Mapbox アクセストークン

    使用例:
        async with MapboxClient(access_token) as client:
            paths = await client.get_routes(origin, destination, TransportMode.WALKING)
    """

    def __init__(self, access_token: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        初期化

        Args:
            access_token: Mapbox アクセストークン
            transport: テスト用のトランスポート（httpx.MockTransport など）

        参照: https://docs.mapbox.com/api/overview/#access-tokens-and-token-scopes
        """
        self._access_token = access_token
        self._client = httpx.AsyncClient(
            base_url=MAPBOX_API_BASE,
            timeout=httpx.Timeout(connect=5.0, read=15.0, write=5.0, pool=10.0),
            limits=httpx.Limits(
                max_connections=50,
                max_keepalive_connections=10,
            ),
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

    # =========================================================================
    # Directions API
    # =========================================================================

    async def get_routes(
        self,
        origin: Location,
        destination: Location,
        mode: TransportMode = TransportMode.WALKING,
        alternatives: bool = True,
    ) -> list[RawPath]:
        """
        候補経路を取得

        API仕様:
        - alternatives=true: 最大3本の候補
        - geometries=geojson / overview=full: 全ルートのジオメトリ
        - steps=true: ターンバイターンのステップ

        参照: https://docs.mapbox.com/api/navigation/directions/#optional-parameters

        Args:
            origin: 出発地
            destination: 目的地
            mode: 移動モード
            alternatives: 代替ルートを要求するか

        Returns:
            list[RawPath]: 候補経路（プロバイダの順序のまま）

        Raises:
            httpx.HTTPError: API呼び出しエラー
            ValueError: ルートが見つからない
        """
        o, d = origin.coordinates, destination.coordinates
        coords_str = f"{o.lng},{o.lat};{d.lng},{d.lat}"
        url = f"{DIRECTIONS_PATH}/{mode.value}/{coords_str}"

        params = {
            "access_token": self._access_token,
            "alternatives": "true" if alternatives else "false",
            "geometries": "geojson",
            "overview": "full",
            "steps": "true",
        }

        response = await self._client.get(url, params=params)
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Malformed Directions response")

        # 参照: https://docs.mapbox.com/api/navigation/directions/#directions-response-object
        code = data.get("code")
        if code != "Ok":
            raise ValueError(f"Directions request failed: {code}")

        routes = data.get("routes") or []
        if not routes:
            raise ValueError("No routes found")

        try:
            return [self._parse_route(route) for route in routes]
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed Directions response: {e!r}") from e

    def _parse_route(self, route: dict) -> RawPath:
        """
        Directions レスポンスのルート1件を RawPath に変換

        ステップは legs[0].steps から抽出する（経由地なしのため脚は1つ）。
        steps が null の場合はステップなしとして扱う。
        """
        legs = route.get("legs") or [{}]
        steps = []
        for step in legs[0].get("steps") or []:
            maneuver = step.get("maneuver") or {}
            location = maneuver.get("location") or [0.0, 0.0]
            if len(location) < 2:
                raise ValueError(f"Invalid maneuver location: {location}")
            steps.append(RawStep(
                instruction=maneuver.get("instruction", ""),
                distance=step.get("distance", 0),
                duration=step.get("duration", 0),
                maneuver_type=maneuver.get("type", ""),
                modifier=maneuver.get("modifier"),
                location=(location[0], location[1]),
            ))

        return RawPath(
            distance=route.get("distance", 0),
            duration=route.get("duration", 0),
            coordinates=(route.get("geometry") or {}).get("coordinates", []),
            steps=steps,
        )

    # =========================================================================
    # Geocoding API
    # =========================================================================

    async def search(
        self,
        text: str,
        proximity: Optional[Coordinate] = None,
    ) -> list[Location]:
        """
        地名検索

        結果は近接地点からのHaversine距離で近い順に並べ替える。

        Args:
            text: 検索文字列
            proximity: 近接ヒント（省略時はニューヨーク）

        Returns:
            list[Location]: 検索結果（該当なしは空リスト）

        Raises:
            httpx.HTTPError: API呼び出しエラー
            ValueError: レスポンス形式不正
        """
        if not text.strip():
            return []

        near = proximity or DEFAULT_PROXIMITY
        url = f"{GEOCODING_PATH}/{quote(text.strip(), safe='')}.json"
        params = {
            "access_token": self._access_token,
            "limit": SEARCH_LIMIT,
            "types": SEARCH_TYPES,
            "proximity": f"{near.lng},{near.lat}",
        }

        response = await self._client.get(url, params=params)
        response.raise_for_status()

        results = []
        try:
            for feature in response.json().get("features") or []:
                lng, lat = feature["center"][0], feature["center"][1]
                location = Location(
                    name=feature.get("text", ""),
                    address=feature.get("place_name", ""),
                    coordinates=Coordinate(lat=lat, lng=lng),
                )
                distance = haversine_distance(near.lng, near.lat, lng, lat)
                results.append((location, distance))
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed Geocoding response: {e!r}") from e

        results.sort(key=lambda x: x[1])
        return [location for location, _ in results]

    async def reverse_geocode(self, coordinate: Coordinate) -> Optional[Location]:
        """
        逆ジオコーディング

        Returns:
            Location（該当なしは None）

        Raises:
            httpx.HTTPError: API呼び出しエラー
            ValueError: レスポンス形式不正
        """
        url = f"{GEOCODING_PATH}/{coordinate.lng},{coordinate.lat}.json"
        params = {"access_token": self._access_token, "limit": 1}

        response = await self._client.get(url, params=params)
        response.raise_for_status()

        try:
            features = response.json().get("features") or []
            if not features:
                return None

            feature = features[0]
            return Location(
                name=feature.get("text", ""),
                address=feature.get("place_name", ""),
                coordinates=coordinate,
            )
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed Geocoding response: {e!r}") from e

    async def current_location(self, coordinate: Optional[Coordinate]) -> Optional[Location]:
        """
        端末の現在地を Location に変換

        位置情報の許可が得られなかった場合（coordinate が None）は None。
        逆ジオコーディングに失敗した場合は座標文字列を住所とする。
        """
        if coordinate is None:
            return None

        try:
            place = await self.reverse_geocode(coordinate)
            if place is not None:
                return Location(
                    name=CURRENT_LOCATION_NAME,
                    address=place.address,
                    coordinates=coordinate,
                )
        except (httpx.HTTPError, ValueError) as e:
            print(f"MapboxClient: Reverse geocoding failed: {e}")

        return Location(
            name=CURRENT_LOCATION_NAME,
            address=f"{coordinate.lat:.4f}, {coordinate.lng:.4f}",
            coordinates=coordinate,
        )
