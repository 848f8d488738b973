"""
saferoute/services/weather_context.py

天気・時間帯コンテキストの構築

プロバイダの天気データを正規化し、時間帯区分・暗さ・ラッシュアワーを判定して、
天気アラートを固定の評価順で生成する。

アラートの評価順は固定で、alerts[0] を「トップアラート」として扱う。
順序を変えるとトップアラートの選択が変わるため、並びは変更しないこと。

参照:
- OpenWeatherMap 天気コード: https://openweathermap.org/weather-conditions
"""
from datetime import datetime, timedelta
from typing import Optional

from saferoute.models.weather import (
    AlertSeverity,
    HourlyForecast,
    TimeContext,
    TimeOfDay,
    WeatherAlert,
    WeatherCondition,
    WeatherSnapshot,
)


# =============================================================================
# 定数定義
# =============================================================================

# 降水とみなす天気
PRECIPITATION_CONDITIONS = (
    WeatherCondition.RAIN,
    WeatherCondition.DRIZZLE,
    WeatherCondition.SNOW,
)

# 季節推定（日の出・日の入りが不明な場合）: 5月-9月を夏とする
SUMMER_MONTHS = range(5, 10)
SUMMER_SUN_HOURS = (5.5, 20.0)
WINTER_SUN_HOURS = (6.5, 17.5)

# ラッシュアワー（平日のみ）: [開始, 終了)
RUSH_HOUR_WINDOWS = ((7, 9), (17, 19))

# アラート閾値（°F / mph / メートル）
HEAT_TEMP_F = 90
HEAT_FEELS_LIKE_F = 95
COLD_TEMP_F = 32
COLD_FEELS_LIKE_F = 25
HIGH_WIND_MPH = 20
LOW_VISIBILITY_M = 1000


# =============================================================================
# 単位変換・天気コード変換
# =============================================================================

def map_condition(weather_id: int) -> WeatherCondition:
    """
    OpenWeatherMap の天気コードを WeatherCondition に変換

    参照: https://openweathermap.org/weather-conditions
    """
    if 200 <= weather_id < 300:
        return WeatherCondition.THUNDERSTORM
    if 300 <= weather_id < 400:
        return WeatherCondition.DRIZZLE
    if 500 <= weather_id < 600:
        return WeatherCondition.RAIN
    if 600 <= weather_id < 700:
        return WeatherCondition.SNOW
    if 700 <= weather_id < 800:
        return WeatherCondition.FOG
    if weather_id == 800:
        return WeatherCondition.CLEAR
    return WeatherCondition.CLOUDS


def kelvin_to_fahrenheit(kelvin: float) -> int:
    """ケルビン -> 華氏（表示用に四捨五入）"""
    return round((kelvin - 273.15) * 9 / 5 + 32)


def ms_to_mph(ms: float) -> int:
    """m/s -> mph（表示用に四捨五入）"""
    return round(ms * 2.237)


# =============================================================================
# 時間帯コンテキスト
# =============================================================================

def get_time_of_day(hour: int) -> TimeOfDay:
    """時刻（0-23）から時間帯区分を取得"""
    if 5 <= hour < 7:
        return TimeOfDay.EARLY_MORNING
    if 7 <= hour < 12:
        return TimeOfDay.MORNING
    if 12 <= hour < 14:
        return TimeOfDay.MIDDAY
    if 14 <= hour < 17:
        return TimeOfDay.AFTERNOON
    if 17 <= hour < 21:
        return TimeOfDay.EVENING
    if hour >= 21 or hour < 1:
        return TimeOfDay.NIGHT
    return TimeOfDay.LATE_NIGHT


def _format_clock(moment: datetime) -> str:
    """"4:53 PM" 形式の時刻文字列"""
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {suffix}"


def is_dark_by_season(now: datetime) -> bool:
    """日の出・日の入りが不明な場合の季節推定による暗さ判定"""
    sunrise_hour, sunset_hour = (
        SUMMER_SUN_HOURS if now.month in SUMMER_MONTHS else WINTER_SUN_HOURS
    )
    current = now.hour + now.minute / 60
    return current < sunrise_hour or current > sunset_hour


def calculate_time_context(
    now: Optional[datetime] = None,
    sunrise: Optional[int] = None,
    sunset: Optional[int] = None,
) -> TimeContext:
    """
    時間帯コンテキストを計算

    Args:
        now: 現在時刻（省略時は datetime.now()）
        sunrise: 日の出のエポック秒
        sunset: 日の入りのエポック秒

    Returns:
        TimeContext
    """
    now = now or datetime.now()
    is_weekend = now.weekday() >= 5
    is_rush_hour = not is_weekend and any(
        start <= now.hour < end for start, end in RUSH_HOUR_WINDOWS
    )

    sunrise_time = None
    sunset_time = None
    if sunrise and sunset:
        sunrise_at = datetime.fromtimestamp(sunrise, tz=now.tzinfo)
        sunset_at = datetime.fromtimestamp(sunset, tz=now.tzinfo)
        is_dark = now < sunrise_at or now > sunset_at
        sunrise_time = _format_clock(sunrise_at)
        sunset_time = _format_clock(sunset_at)
    else:
        is_dark = is_dark_by_season(now)

    return TimeContext(
        hour=now.hour,
        minute=now.minute,
        time_of_day=get_time_of_day(now.hour),
        is_dark=is_dark,
        is_rush_hour=is_rush_hour,
        is_weekend=is_weekend,
        display_time=_format_clock(now),
        sunrise_time=sunrise_time,
        sunset_time=sunset_time,
    )


# =============================================================================
# アラート生成
# =============================================================================

def generate_alerts(weather: WeatherSnapshot, now: Optional[datetime] = None) -> list[WeatherAlert]:
    """
    天気アラートを固定の評価順で生成

    各ルールは独立に追加される（排他ではない）。先頭がトップアラート。

    評価順:
        1. 降雨予報（直近2予報点で降水確率>50% または rain/drizzle）
        2. 雷雨
        3. 暑さ注意
        4. 寒さ注意
        5. 強風
        6. 視界不良
        7. 降雨中
        8. 降雪中
    """
    now = now or datetime.now()
    alerts: list[WeatherAlert] = []
    hourly = weather.hourly

    rain_soon = next(
        (h for h in hourly[:2]
         if h.precip_probability > 50
         or h.condition in (WeatherCondition.RAIN, WeatherCondition.DRIZZLE)),
        None,
    )
    if rain_soon is not None and weather.condition != WeatherCondition.RAIN:
        minutes = max(0, round((rain_soon.time - now).total_seconds() / 60))
        alerts.append(WeatherAlert(
            severity=AlertSeverity.YELLOW,
            title="Rain Expected",
            message=f"Rain likely in ~{minutes} min, covered route recommended",
            icon="🌧️",
        ))

    if (weather.condition == WeatherCondition.THUNDERSTORM
            or any(h.condition == WeatherCondition.THUNDERSTORM for h in hourly[:3])):
        alerts.append(WeatherAlert(
            severity=AlertSeverity.RED,
            title="Thunderstorm Warning",
            message="Consider postponing or taking transit",
            icon="⛈️",
        ))

    if weather.temp > HEAT_TEMP_F or weather.feels_like > HEAT_FEELS_LIKE_F:
        alerts.append(WeatherAlert(
            severity=AlertSeverity.ORANGE,
            title="Heat Advisory",
            message="Stay hydrated, take breaks in shade",
            icon="🥵",
        ))

    if weather.temp < COLD_TEMP_F or weather.feels_like < COLD_FEELS_LIKE_F:
        alerts.append(WeatherAlert(
            severity=AlertSeverity.ORANGE,
            title="Cold Weather",
            message="Bundle up, prefer shorter or wind-protected routes",
            icon="🥶",
        ))

    if weather.wind_speed > HIGH_WIND_MPH:
        alerts.append(WeatherAlert(
            severity=AlertSeverity.YELLOW,
            title="Windy Conditions",
            message="Wind-protected routes recommended",
            icon="💨",
        ))

    if weather.visibility < LOW_VISIBILITY_M:
        alerts.append(WeatherAlert(
            severity=AlertSeverity.YELLOW,
            title="Low Visibility",
            message="Fog or mist, prefer well-lit main streets",
            icon="🌫️",
        ))

    if weather.condition in (WeatherCondition.RAIN, WeatherCondition.DRIZZLE):
        alerts.append(WeatherAlert(
            severity=AlertSeverity.YELLOW,
            title="Currently Raining",
            message="Covered walkways prioritized",
            icon="☔",
        ))

    if weather.condition == WeatherCondition.SNOW:
        alerts.append(WeatherAlert(
            severity=AlertSeverity.ORANGE,
            title="Snow",
            message="Watch for slippery surfaces, avoid steep slopes",
            icon="❄️",
        ))

    return alerts


# =============================================================================
# 表示用ヘルパー
# =============================================================================

def get_route_weather_tags(weather: Optional[WeatherSnapshot]) -> list[str]:
    """
    ルート選択に関する天気タグ（注意喚起のみ）

    好天は注意事項ではないため、ここではタグにせず get_weather_message() で伝える。
    """
    if weather is None:
        return []

    tags = []
    if weather.condition in PRECIPITATION_CONDITIONS:
        tags.append("☂️ Covered routes preferred")
    if weather.temp > 85 or weather.uv_index > 6:
        tags.append("🌳 Shaded routes preferred")
    if weather.wind_speed > 15:
        tags.append("🏠 Wind-protected")
    if weather.condition == WeatherCondition.FOG or weather.visibility < 2000:
        tags.append("🌫️ Low visibility")
    return tags


def get_weather_icon(condition: WeatherCondition, icon_code: str = "") -> str:
    """天気状態の絵文字"""
    if condition == WeatherCondition.CLEAR:
        return "🌙" if "n" in icon_code else "☀️"
    icons = {
        WeatherCondition.CLOUDS: "☁️",
        WeatherCondition.RAIN: "🌧️",
        WeatherCondition.DRIZZLE: "🌦️",
        WeatherCondition.SNOW: "❄️",
        WeatherCondition.THUNDERSTORM: "⛈️",
        WeatherCondition.FOG: "🌫️",
        WeatherCondition.MIST: "🌫️",
    }
    return icons.get(condition, "🌤️")


def get_weather_message(weather: Optional[WeatherSnapshot]) -> str:
    """1行の天気メッセージ（優先順位の高い状況から判定）"""
    if weather is None:
        return ""

    icon = get_weather_icon(weather.condition, weather.icon)
    temp = f"{weather.temp:.0f}°F"

    next_hour = weather.hourly[1] if len(weather.hourly) > 1 else None
    if next_hour and next_hour.precip_probability > 60 and weather.precipitation == 0:
        return f"{icon} {temp} · Rain expected in ~1 hour"
    if weather.condition in (WeatherCondition.RAIN, WeatherCondition.DRIZZLE):
        return f"{icon} {temp} {weather.description} · Covered routes prioritized"
    if weather.condition == WeatherCondition.SNOW:
        return f"{icon} {temp} Snow · Watch for slippery surfaces"
    if weather.temp > HEAT_TEMP_F:
        return f"{icon} {temp} · Heat advisory, stay hydrated"
    if weather.temp < COLD_TEMP_F:
        return f"{icon} {temp} · Cold, prefer shorter routes"
    if weather.wind_speed > HIGH_WIND_MPH:
        return f"{icon} {temp} · Windy, {weather.wind_speed:.0f} mph"
    if weather.condition == WeatherCondition.CLEAR:
        return f"{icon} {temp} Clear · Great walking weather"
    return f"{icon} {temp} {weather.description}"


# =============================================================================
# モック天気
# =============================================================================

def mock_weather_snapshot(now: Optional[datetime] = None) -> WeatherSnapshot:
    """
    APIキー未設定・取得失敗時に使う晴天のモックスナップショット

    固定値: 72°F（体感70°F）、晴れ、湿度45%、風速8mph、UV5、視程10000m、
    12時間分の予報（気温 72-i °F、晴れ、降水確率10%）。
    """
    now = now or datetime.now()
    hourly = [
        HourlyForecast(
            time=now + timedelta(hours=i),
            temp=72 - i,
            condition=WeatherCondition.CLEAR,
            description="clear sky",
            icon="01d" if i < 6 else "01n",
            precip_probability=10,
            precipitation=0,
        )
        for i in range(12)
    ]
    return WeatherSnapshot(
        temp=72,
        feels_like=70,
        condition=WeatherCondition.CLEAR,
        description="clear sky",
        icon="01d",
        precipitation=0,
        humidity=45,
        wind_speed=8,
        uv_index=5,
        visibility=10000,
        hourly=hourly,
        last_updated=now,
        location_name="New York",
        is_mock=True,
    )
