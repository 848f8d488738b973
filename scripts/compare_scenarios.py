"""
scripts/compare_scenarios.py

ワシントンスクエア → メトロテック の候補ルートを取得し、
天気・時間帯のシナリオごとに推薦ルートと推薦理由を比較するスクリプト

実行方法:
    python scripts/compare_scenarios.py

MAPBOX_ACCESS_TOKEN 未設定・取得失敗時は直線フォールバックのルートで比較する。
"""
import asyncio
from datetime import datetime
from pathlib import Path

# プロジェクトルートを取得
PROJECT_ROOT = Path(__file__).parent.parent

# .envを読み込む
from dotenv import load_dotenv
load_dotenv(PROJECT_ROOT / ".env")


# シナリオ定義: (名前, 天気の上書き, 時刻)
SCENARIOS = [
    ("平日の昼・快晴", {}, datetime(2024, 6, 12, 12, 30)),
    ("平日の朝ラッシュ", {}, datetime(2024, 6, 12, 8, 15)),
    ("雨", {"condition": "rain", "description": "moderate rain"}, datetime(2024, 6, 12, 15, 0)),
    ("猛暑", {"temp": 92, "feels_like": 97}, datetime(2024, 6, 12, 14, 0)),
    ("厳寒・強風", {"temp": 25, "feels_like": 15, "wind_speed": 22}, datetime(2024, 1, 10, 10, 0)),
    ("深夜", {}, datetime(2024, 6, 12, 2, 30)),
    ("土曜の午後", {}, datetime(2024, 6, 15, 15, 0)),
]


async def compare_scenarios():
    """シナリオ別の推薦を比較"""
    import os
    import httpx
    from saferoute.models import Coordinate, Location, RoutePreference, WeatherSnapshot
    from saferoute.services.formatting import format_distance, format_duration
    from saferoute.services.mapbox_client import MapboxClient
    from saferoute.services.recommendation_engine import recommend
    from saferoute.services.route_characterizer import characterize_routes
    from saferoute.services.weather_context import (
        calculate_time_context,
        generate_alerts,
        mock_weather_snapshot,
    )

    print("=" * 70)
    print("ワシントンスクエア → メトロテック 推薦シナリオ比較")
    print("=" * 70)

    origin = Location(
        name="Washington Square Park",
        address="Washington Square, New York, NY",
        coordinates=Coordinate(lat=40.7308, lng=-73.9973),
    )
    destination = Location(
        name="6 MetroTech Center",
        address="6 MetroTech Center, Brooklyn, NY",
        coordinates=Coordinate(lat=40.6944, lng=-73.9857),
    )

    # 候補経路取得
    print("\n候補経路取得中...")
    raw_paths = None
    token = os.getenv("MAPBOX_ACCESS_TOKEN", "")
    if token:
        async with MapboxClient(token) as client:
            try:
                raw_paths = await client.get_routes(origin, destination)
            except (httpx.HTTPError, ValueError) as e:
                print(f"  -> Directions API failed: {e}")
    else:
        print("  -> MAPBOX_ACCESS_TOKEN not set")

    routes, is_fallback = characterize_routes(raw_paths, origin, destination)
    print(f"  -> ルート数: {len(routes)}{'（直線フォールバック）' if is_fallback else ''}")
    for route in routes:
        print(
            f"     {route.id:22s} {route.title:18s} "
            f"{format_distance(route.distance):>8s} {format_duration(route.duration):>8s}"
        )

    # シナリオ別の推薦
    for preference in RoutePreference:
        print("\n" + "=" * 70)
        print(f"嗜好: {preference.value}")
        print("=" * 70)

        for name, overrides, now in SCENARIOS:
            weather = WeatherSnapshot.model_validate({**mock_weather_snapshot(now).model_dump(), **overrides})
            time_context = calculate_time_context(now, weather.sunrise, weather.sunset)
            alerts = generate_alerts(weather, now=now)

            result = recommend(routes, preference, weather, time_context, alerts)
            alert_titles = ", ".join(a.title for a in alerts) or "-"
            print(f"  {name:12s} -> {result.route_type.value:12s} {result.reason}")
            print(f"  {'':12s}    score={result.score:.1f} alerts={alert_titles}")


def main():
    asyncio.run(compare_scenarios())


if __name__ == "__main__":
    main()
