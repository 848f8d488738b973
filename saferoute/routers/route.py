"""
saferoute/routers/route.py

ルート検索APIエンドポイント

GET /api/routes - 候補ルート・推薦・天気コンテキストを返す

公式ドキュメント:
- FastAPI Query Parameters: https://fastapi.tiangolo.com/tutorial/query-params/
- FastAPI Dependencies: https://fastapi.tiangolo.com/tutorial/dependencies/
- Shapely simplify: https://shapely.readthedocs.io/en/stable/reference/shapely.simplify.html
"""
import asyncio
from typing import Annotated, Optional
from fastapi import APIRouter, Query, Depends
import httpx

from saferoute.models import (
    ApiResponse,
    Coordinate,
    Location,
    GeoJSONLineString,
    RouteData,
    RoutePlanData,
    RoutePreference,
    TransportMode,
    create_success_response,
    create_error_response,
)
from saferoute.services.mapbox_client import MapboxClient
from saferoute.services.weather_client import WeatherClient
from saferoute.services.preference_store import PreferenceStore
from saferoute.services.route_characterizer import RawPath, characterize_routes
from saferoute.services.recommendation_engine import recommend
from saferoute.services.route_session import MISSING_LOCATION_MESSAGE, default_selection
from saferoute.services.weather_context import (
    calculate_time_context,
    generate_alerts,
    get_route_weather_tags,
    get_weather_message,
)


# =============================================================================
# ルーター定義
# =============================================================================

router = APIRouter(prefix="/api", tags=["route"])


# =============================================================================
# 依存性注入
# =============================================================================

def get_mapbox_client():
    """
    MapboxClientの依存性注入

    実際のインスタンスはapp.stateに格納されている。

    参照: https://fastapi.tiangolo.com/tutorial/dependencies/
    """
    from saferoute.main import app
    return app.state.mapbox_client


def get_weather_client():
    """WeatherClientの依存性注入"""
    from saferoute.main import app
    return app.state.weather_client


def get_preference_store():
    """PreferenceStoreの依存性注入"""
    from saferoute.main import app
    return app.state.preference_store


# =============================================================================
# バリデーション
# =============================================================================

def parse_coordinates(coord_str: str) -> Coordinate:
    """
    座標文字列をパース

    Args:
        coord_str: "経度,緯度" 形式の文字列

    Returns:
        Coordinate

    Raises:
        ValueError: パース失敗・範囲外
    """
    parts = coord_str.split(",")
    if len(parts) != 2:
        raise ValueError(f"Coordinates must be 'lng,lat': {coord_str}")
    try:
        lng = float(parts[0])
        lat = float(parts[1])
    except ValueError:
        raise ValueError(f"Invalid coordinates: {coord_str}")
    # 範囲外は pydantic の ValidationError（ValueError のサブクラス）
    return Coordinate(lat=lat, lng=lng)


def to_location(coordinate: Coordinate, name: Optional[str], default_name: str) -> Location:
    """クエリの座標と名前から Location を作る"""
    return Location(
        name=name or default_name,
        address=f"{coordinate.lat:.4f}, {coordinate.lng:.4f}",
        coordinates=coordinate,
    )


# =============================================================================
# エンドポイント
# =============================================================================

@router.get(
    "/routes",
    response_model=ApiResponse[RoutePlanData],
    summary="ルート検索",
    description="""
出発地から目的地への徒歩ルート候補（fastest / safest / comfortable、最大で scenic も）を返し、
天気・時間帯・嗜好に基づく推薦ルートと推薦理由を付与する。

## フォールバック

- ルーティングプロバイダが失敗した場合は直線フォールバックのルートセットを返す（`isFallback=true`）
- 天気が取得できない場合はモックの晴天データを使う（`weather.isMock=true`）

## 嗜好パラメータ

- `preference=safe`: 安全重視
- `preference=fast`: 速さ重視
- `preference=comfy`: 快適さ重視
- 省略時は保存済みの嗜好（未保存なら safe）
    """,
    responses={
        200: {"description": "成功（入力エラーも success=false のエンベロープで返す）"},
        422: {"description": "パラメータエラー"},
    },
)
async def search_routes(
    origin: Annotated[Optional[str], Query(
        description="出発地座標 '経度,緯度'",
        examples=["-73.9969,40.7306"],
    )] = None,
    destination: Annotated[Optional[str], Query(
        description="目的地座標 '経度,緯度'",
        examples=["-73.9857,40.6944"],
    )] = None,
    mode: Annotated[TransportMode, Query(
        description="移動モード",
    )] = TransportMode.WALKING,
    preference: Annotated[Optional[RoutePreference], Query(
        description="ユーザー嗜好（省略時は保存済みの値）",
    )] = None,
    originName: Annotated[Optional[str], Query(
        description="出発地の表示名",
    )] = None,
    destinationName: Annotated[Optional[str], Query(
        description="目的地の表示名",
    )] = None,
    simplify: Annotated[bool, Query(
        description="ジオメトリを Douglas-Peucker で簡略化するか（最大100点）",
    )] = False,
    # --- 依存性注入 ---
    mapbox_client: MapboxClient = Depends(get_mapbox_client),
    weather_client: WeatherClient = Depends(get_weather_client),
    preference_store: PreferenceStore = Depends(get_preference_store),
) -> ApiResponse[RoutePlanData]:
    """
    ルート検索API

    処理フロー:
    1. 出発地・目的地の確認とパース
    2. 候補経路と天気を並行取得
    3. 特性付け（失敗時は直線フォールバック）
    4. 時間帯コンテキスト・アラート・推薦
    5. レスポンス整形
    """
    if not origin or not destination:
        return create_error_response("MISSING_LOCATION", MISSING_LOCATION_MESSAGE)

    try:
        # === 1. 座標パース ===
        origin_location = to_location(parse_coordinates(origin), originName, "Origin")
        destination_location = to_location(
            parse_coordinates(destination), destinationName, "Destination"
        )
    except ValueError as e:
        return create_error_response("INVALID_COORDINATES", str(e))

    try:
        preference = preference or preference_store.load()

        # === 2. 候補経路と天気を並行取得 ===
        raw_paths, weather = await asyncio.gather(
            _fetch_raw_paths(mapbox_client, origin_location, destination_location, mode),
            weather_client.get_snapshot(
                origin_location.coordinates.lat, origin_location.coordinates.lng
            ),
        )

        # === 3. 特性付け ===
        routes, is_fallback = characterize_routes(raw_paths, origin_location, destination_location)

        # === 4. コンテキストと推薦 ===
        time_context = calculate_time_context(sunrise=weather.sunrise, sunset=weather.sunset)
        alerts = generate_alerts(weather)
        recommendation = recommend(routes, preference, weather, time_context, alerts)

        # === 5. レスポンス整形 ===
        if simplify:
            routes = [_simplify_route(route) for route in routes]

        plan = RoutePlanData(
            routes=routes,
            recommendation=recommendation,
            selected_route_id=default_selection(tuple(routes)),
            weather=weather,
            alerts=alerts,
            time_context=time_context,
            weather_tags=get_route_weather_tags(weather),
            weather_message=get_weather_message(weather),
            is_fallback=is_fallback,
        )
        return create_success_response(plan)

    except Exception as e:
        print(f"Route search error: {e}")
        return create_error_response("INTERNAL_ERROR", f"Internal error: {e}")


# =============================================================================
# ヘルパー関数
# =============================================================================

async def _fetch_raw_paths(
    mapbox_client: MapboxClient,
    origin: Location,
    destination: Location,
    mode: TransportMode,
) -> Optional[list[RawPath]]:
    """候補経路を取得（失敗時は None、呼び出し側でフォールバック）"""
    try:
        return await mapbox_client.get_routes(origin, destination, mode)
    except (httpx.HTTPError, ValueError) as e:
        print(f"Directions API failed: {e}")
        return None


def _simplify_route(route: RouteData) -> RouteData:
    """ルートのジオメトリを簡略化したコピーを返す"""
    coordinates = _simplify_coordinates(route.geometry.coordinates)
    return route.model_copy(update={
        "geometry": GeoJSONLineString(coordinates=[list(c) for c in coordinates]),
    })


def _simplify_coordinates(
    coordinates: list[list[float]],
    tolerance: float = 0.0001,
    max_count: int = 100,
) -> list[tuple[float, float]]:
    """
    Douglas-Peuckerアルゴリズムでルート座標を簡略化

    shapely.LineString.simplify() を使用して、ルートの形状を保ちながら
    座標点数を削減する。

    Args:
        coordinates: 座標リスト [[経度, 緯度], ...]
        tolerance: 簡略化の許容誤差（度数）
                   0.0001度 ≈ 約11m（緯度による）
        max_count: 最大座標数

    Returns:
        簡略化された座標リスト [(経度, 緯度), ...]
    """
    from shapely.geometry import LineString

    if len(coordinates) < 3:
        return [(c[0], c[1]) for c in coordinates]

    line = LineString(coordinates)
    simplified = line.simplify(tolerance, preserve_topology=True)
    result = list(simplified.coords)

    # まだ多すぎる場合は、toleranceを上げて再度簡略化
    current_tolerance = tolerance
    while len(result) > max_count and current_tolerance < 0.01:
        current_tolerance *= 2
        simplified = line.simplify(current_tolerance, preserve_topology=True)
        result = list(simplified.coords)

    # それでも多い場合は均等サンプリング
    if len(result) > max_count:
        step = (len(result) - 1) / (max_count - 1)
        sampled = [result[int(i * step)] for i in range(max_count - 1)]
        sampled.append(result[-1])
        result = sampled

    return result
