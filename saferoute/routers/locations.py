"""
saferoute/routers/locations.py

地名検索APIエンドポイント

GET /api/locations/search  - 地名検索（近接地点から近い順）
GET /api/locations/reverse - 逆ジオコーディング

該当なし・プロバイダ障害はいずれも空リストとして返す。

公式ドキュメント:
- Mapbox Geocoding API (v5): https://docs.mapbox.com/api/search/geocoding-v5/
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Query, Depends
import httpx

from saferoute.models import (
    ApiResponse,
    Location,
    create_success_response,
    create_error_response,
)
from saferoute.routers.route import parse_coordinates
from saferoute.services.mapbox_client import MapboxClient
from saferoute.services.route_session import SEARCH_MIN_LENGTH


# =============================================================================
# ルーター定義
# =============================================================================

router = APIRouter(prefix="/api/locations", tags=["locations"])


def get_mapbox_client():
    """MapboxClientの依存性注入"""
    from saferoute.main import app
    return app.state.mapbox_client


# =============================================================================
# エンドポイント
# =============================================================================

@router.get(
    "/search",
    response_model=ApiResponse[list[Location]],
    summary="地名検索",
    description="""
住所・施設・地名を検索する。

- `q` が2文字未満の場合はプロバイダを呼ばずに空リスト
- `proximity` を省略した場合はニューヨーク中心で近い順
    """,
)
async def search_locations(
    q: Annotated[str, Query(description="検索文字列", examples=["MetroTech"])],
    proximity: Annotated[Optional[str], Query(
        description="近接ヒント '経度,緯度'",
        examples=["-73.9857,40.6944"],
    )] = None,
    mapbox_client: MapboxClient = Depends(get_mapbox_client),
) -> ApiResponse[list[Location]]:
    """地名検索API"""
    if len(q.strip()) < SEARCH_MIN_LENGTH:
        return create_success_response([])

    try:
        near = parse_coordinates(proximity) if proximity else None
    except ValueError as e:
        return create_error_response("INVALID_COORDINATES", str(e))

    try:
        results = await mapbox_client.search(q, near)
    except (httpx.HTTPError, ValueError) as e:
        print(f"Geocoding search failed: {e}")
        results = []

    return create_success_response(results)


@router.get(
    "/reverse",
    response_model=ApiResponse[Optional[Location]],
    summary="逆ジオコーディング",
    description="""
座標から地点を取得する。該当なしの場合は `data=null`。
    """,
)
async def reverse_geocode(
    coordinates: Annotated[str, Query(
        description="座標 '経度,緯度'",
        examples=["-73.9857,40.6944"],
    )],
    mapbox_client: MapboxClient = Depends(get_mapbox_client),
) -> ApiResponse[Optional[Location]]:
    """逆ジオコーディングAPI"""
    try:
        coordinate = parse_coordinates(coordinates)
    except ValueError as e:
        return create_error_response("INVALID_COORDINATES", str(e))

    try:
        location = await mapbox_client.reverse_geocode(coordinate)
    except (httpx.HTTPError, ValueError) as e:
        print(f"Reverse geocoding failed: {e}")
        location = None

    return create_success_response(location)
