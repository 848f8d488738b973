"""
saferoute/models/recommendation.py

推薦結果とルート検索レスポンスのモデル定義

Recommendation のスコアは同一実行内の並び替えにのみ使用し、
永続化も実行間比較もしない。
"""
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field

from .route import RouteData, RouteType
from .weather import WeatherSnapshot, WeatherAlert, TimeContext


class ReasonTag(str, Enum):
    """
    スコアに寄与したルールを示すタグ

    推薦理由の文言は、このタグが実際に付与されている場合にのみ選ばれる。
    """
    MATCHES_PREFERENCE = "matches-preference"
    WEATHER_SHELTER = "weather-shelter"
    SHADE = "shade"
    REST_STOPS = "rest-stops"
    COLD_DIRECT = "cold-direct"
    WIND_PROTECTED = "wind-protected"
    WELL_LIT = "well-lit"
    PARTLY_LIT = "partly-lit"
    NIGHT_FRIENDLY = "night-friendly"
    LATE_NIGHT_SAFETY = "late-night-safety"
    RUSH_HOUR_SIDEWALKS = "rush-hour-sidewalks"
    WEEKEND_STROLL = "weekend-stroll"
    CONTINUOUS_SIDEWALKS = "continuous-sidewalks"
    FEW_CROSSINGS = "few-crossings"


class ScoredRoute(BaseModel):
    """
    スコア付きルート

    Attributes:
        route (RouteData): 対象ルート
        score (float): 合計スコア
        reasons (list[ReasonTag]): 加点に寄与したルールのタグ（評価順）
        breakdown (dict[str, float]): ルール名 -> 加減点
    """
    route: RouteData
    score: float
    reasons: list[ReasonTag] = Field(default_factory=list)
    breakdown: dict[str, float] = Field(default_factory=dict)

    model_config = {"frozen": True}


class Recommendation(BaseModel):
    """
    推薦結果

    Attributes:
        route_id (str): 選ばれたルートのID
        route_type (RouteType): 選ばれたルートの種別
        reasons (list[ReasonTag]): 選ばれたルートの理由タグ
        reason (str): 表示用の推薦理由
        score (float): 合計スコア（並び替え専用）
        ranking (list[str]): スコア順のルートID
    """
    route_id: str = Field(..., alias="routeId")
    route_type: RouteType = Field(..., alias="routeType")
    reasons: list[ReasonTag] = Field(default_factory=list)
    reason: str
    score: float
    ranking: list[str] = Field(default_factory=list)

    model_config = {"frozen": True, "populate_by_name": True}


class RoutePlanData(BaseModel):
    """
    GET /api/routes のレスポンスデータ

    Attributes:
        routes: 候補ルート（少なくとも fastest / safest / comfortable を含む）
        recommendation: 推薦結果
        selected_route_id: 初期選択ルートのID
        weather / alerts / time_context: 推薦に使用したコンテキスト
        weather_tags: ルート選択に関する天気タグ
        weather_message: 1行の天気メッセージ
        is_fallback: 直線フォールバックで生成したルートかどうか
    """
    routes: list[RouteData]
    recommendation: Optional[Recommendation] = None
    selected_route_id: Optional[str] = Field(default=None, alias="selectedRouteId")
    weather: Optional[WeatherSnapshot] = None
    alerts: list[WeatherAlert] = Field(default_factory=list)
    time_context: TimeContext = Field(..., alias="timeContext")
    weather_tags: list[str] = Field(default_factory=list, alias="weatherTags")
    weather_message: str = Field("", alias="weatherMessage")
    is_fallback: bool = Field(False, alias="isFallback")

    model_config = {"populate_by_name": True}
