"""
saferoute/models/weather.py

天気・時間帯コンテキストのモデル定義

WeatherSnapshot と TimeContext はいずれも再計算のたびに丸ごと置き換え、
部分的に更新しない。気温は華氏（°F）、風速は mph、視程はメートル。

参照:
- OpenWeatherMap One Call API 3.0: https://openweathermap.org/api/one-call-3
"""
from datetime import datetime
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field


# =============================================================================
# 列挙型（Enum）
# =============================================================================

class WeatherCondition(str, Enum):
    """
    簡略化した天気状態

    プロバイダの天気コードは map_condition() でこの列挙に変換する。
    MIST はデータモデル上の値として残しているが、コード変換では FOG に集約される。
    """
    CLEAR = "clear"
    CLOUDS = "clouds"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    THUNDERSTORM = "thunderstorm"
    DRIZZLE = "drizzle"
    MIST = "mist"


class TimeOfDay(str, Enum):
    """24時間を7つに区切った時間帯"""
    EARLY_MORNING = "early-morning"
    MORNING = "morning"
    MIDDAY = "midday"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"
    LATE_NIGHT = "late-night"


class AlertSeverity(str, Enum):
    """アラートの深刻度"""
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"


# =============================================================================
# 天気モデル
# =============================================================================

class HourlyForecast(BaseModel):
    """1時間ごとの予報"""
    time: datetime
    temp: float = Field(..., description="気温（°F）")
    condition: WeatherCondition
    description: str = ""
    icon: str = ""
    precip_probability: int = Field(0, ge=0, le=100, alias="precipProbability")
    precipitation: float = Field(0, ge=0, description="降水量（mm）")

    model_config = {"frozen": True, "populate_by_name": True}


class WeatherSnapshot(BaseModel):
    """
    現在の天気と最大12時間分の予報

    Attributes:
        temp (float): 気温（°F）
        feels_like (float): 体感温度（°F）
        condition (WeatherCondition): 天気状態
        humidity (float): 湿度（%）
        wind_speed (float): 風速（mph）
        uv_index (float): UV指数
        visibility (float): 視程（メートル）
        hourly (list[HourlyForecast]): 予報（最大12件、時刻順）
        sunrise / sunset (Optional[int]): 日の出・日の入りのエポック秒
        is_mock (bool): モックデータかどうか
    """
    temp: float
    feels_like: float = Field(..., alias="feelsLike")
    condition: WeatherCondition
    description: str = ""
    icon: str = ""
    precipitation: float = Field(0, ge=0)
    humidity: float = Field(0, ge=0, le=100)
    wind_speed: float = Field(0, ge=0, alias="windSpeed")
    uv_index: float = Field(0, ge=0, alias="uvIndex")
    visibility: float = Field(10000, ge=0)
    hourly: list[HourlyForecast] = Field(default_factory=list, max_length=12)
    last_updated: datetime = Field(default_factory=datetime.now, alias="lastUpdated")
    location_name: str = Field("", alias="locationName")
    sunrise: Optional[int] = None
    sunset: Optional[int] = None
    is_mock: bool = Field(False, alias="isMock")

    model_config = {"frozen": True, "populate_by_name": True}


class WeatherAlert(BaseModel):
    """天気アラート"""
    severity: AlertSeverity
    title: str
    message: str
    icon: str

    model_config = {"frozen": True}


# =============================================================================
# 時間帯コンテキスト
# =============================================================================

class TimeContext(BaseModel):
    """
    時間帯コンテキスト

    Attributes:
        hour / minute (int): 現在時刻
        time_of_day (TimeOfDay): 時間帯区分
        is_dark (bool): 暗いかどうか（日の出・日の入り、なければ季節推定）
        is_rush_hour (bool): 平日 7-9時 / 17-19時
        is_weekend (bool): 土日
        display_time (str): 表示用時刻（例: "4:53 PM"）
    """
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)
    time_of_day: TimeOfDay = Field(..., alias="timeOfDay")
    is_dark: bool = Field(..., alias="isDark")
    is_rush_hour: bool = Field(..., alias="isRushHour")
    is_weekend: bool = Field(..., alias="isWeekend")
    display_time: str = Field("", alias="displayTime")
    sunrise_time: Optional[str] = Field(default=None, alias="sunriseTime")
    sunset_time: Optional[str] = Field(default=None, alias="sunsetTime")

    model_config = {"frozen": True, "populate_by_name": True}


class WeatherReport(BaseModel):
    """GET /api/weather のレスポンスデータ"""
    weather: WeatherSnapshot
    alerts: list[WeatherAlert] = Field(default_factory=list)
    time_context: TimeContext = Field(..., alias="timeContext")
    tags: list[str] = Field(default_factory=list)
    message: str = ""

    model_config = {"populate_by_name": True}
