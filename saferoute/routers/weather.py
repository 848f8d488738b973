"""
saferoute/routers/weather.py

天気APIエンドポイント

GET /api/weather - 天気スナップショット・アラート・時間帯コンテキスト

天気は参考情報のため、取得に失敗してもエラーにせずモックデータを返す。

公式ドキュメント:
- FastAPI Query Parameters: https://fastapi.tiangolo.com/tutorial/query-params/
"""
from typing import Annotated
from fastapi import APIRouter, Query, Depends

from saferoute.models import (
    ApiResponse,
    WeatherReport,
    create_success_response,
    create_error_response,
)
from saferoute.services.weather_client import WeatherClient
from saferoute.services.weather_context import (
    calculate_time_context,
    generate_alerts,
    get_route_weather_tags,
    get_weather_message,
)


# =============================================================================
# ルーター定義
# =============================================================================

router = APIRouter(prefix="/api", tags=["weather"])


def get_weather_client():
    """WeatherClientの依存性注入"""
    from saferoute.main import app
    return app.state.weather_client


# =============================================================================
# エンドポイント
# =============================================================================

@router.get(
    "/weather",
    response_model=ApiResponse[WeatherReport],
    summary="天気コンテキスト取得",
    description="""
指定地点の天気と、ルート選択に関するアラート・タグ・メッセージを返す。

- アラートは固定の評価順で並び、先頭がトップアラート
- APIキー未設定・取得失敗時はモックの晴天データ（`isMock=true`）
    """,
)
async def get_weather(
    lat: Annotated[float, Query(ge=-90, le=90, description="緯度", examples=[40.6944])],
    lon: Annotated[float, Query(ge=-180, le=180, description="経度", examples=[-73.9857])],
    weather_client: WeatherClient = Depends(get_weather_client),
) -> ApiResponse[WeatherReport]:
    """天気API"""
    try:
        weather = await weather_client.get_snapshot(lat, lon)
        report = WeatherReport(
            weather=weather,
            alerts=generate_alerts(weather),
            time_context=calculate_time_context(sunrise=weather.sunrise, sunset=weather.sunset),
            tags=get_route_weather_tags(weather),
            message=get_weather_message(weather),
        )
        return create_success_response(report)

    except Exception as e:
        print(f"Weather error: {e}")
        return create_error_response("INTERNAL_ERROR", f"Internal error: {e}")
