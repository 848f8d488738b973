"""
saferoute/services/recommendation_engine.py

推薦エンジン

候補ルートを天気・時間帯コンテキストとユーザー嗜好に照らして加点方式で採点し、
最良のルートと推薦理由を返す。入力が同じなら結果も同じ（純粋関数）。

採点（加算方式。各ルールの寄与を個別に確認できるように乗算は使わない）:
    1. 嗜好一致                         +30
    2. 天気（スナップショットがある場合のみ）
       - 降雨・降雪中: +10×休憩スポット数, 歩道連続 +20, fastest -15
       - 暑い（>85°F）: +0.4×日陰率, 休憩スポット2以上 +20
       - 寒い（<40°F）: fastest +25, scenic -10
       - 強風（>15mph）: comfortable +15, scenic -10
    3. 時間帯
       - 暗い: 明るい +45 / まだら +10 / 暗い -20, 夜間適性 +30
       - 深夜: safest +35, scenic -25
       - ラッシュアワー: 歩道連続 +20, 横断>4 -10
       - 昼（天気あり・>75°F）: +0.3×日陰率
       - 週末（暗くない・降水なし・寒くない）: scenic / comfortable +15
    4. 常時: 歩道連続 +15, 横断≤3 +10
    5. 所要時間が平均の1.3倍超: -10

同点の場合は入力順を保つ（安定ソート）。
推薦理由は REASON_RULES を上から評価し、最初に一致したものを使う。
各ルールは文脈条件と、そのルートに実際に付与された理由タグの両方を要求する。
"""
from dataclasses import dataclass
from typing import Callable, Optional, Union

from saferoute.models.recommendation import (
    ReasonTag,
    Recommendation,
    ScoredRoute,
)
from saferoute.models.route import (
    LightingLevel,
    RouteData,
    RoutePreference,
    RouteType,
    SidewalkCoverage,
)
from saferoute.models.weather import (
    TimeContext,
    TimeOfDay,
    WeatherAlert,
    WeatherCondition,
    WeatherSnapshot,
)
from saferoute.services.weather_context import (
    PRECIPITATION_CONDITIONS,
    calculate_time_context,
    generate_alerts,
)


# =============================================================================
# 定数定義
# =============================================================================

PREFERENCE_ROUTE_TYPE = {
    RoutePreference.SAFE: RouteType.SAFEST,
    RoutePreference.FAST: RouteType.FASTEST,
    RoutePreference.COMFY: RouteType.COMFORTABLE,
}

HOT_TEMP_F = 85
COLD_TEMP_F = 40
WINDY_MPH = 15
MIDDAY_WARM_TEMP_F = 75
IDEAL_TEMP_RANGE_F = (60, 80)

LONG_ROUTE_RATIO = 1.3
MAX_EASY_CROSSINGS = 3
MAX_RUSH_HOUR_CROSSINGS = 4

# 天気・視界への対応を示すタグ（アラート理由に使用）
WEATHER_AWARE_TAGS = (
    ReasonTag.WEATHER_SHELTER,
    ReasonTag.SHADE,
    ReasonTag.REST_STOPS,
    ReasonTag.COLD_DIRECT,
    ReasonTag.WIND_PROTECTED,
    ReasonTag.WELL_LIT,
)


# =============================================================================
# 採点コンテキスト
# =============================================================================

@dataclass(frozen=True)
class ScoringContext:
    """
    1回の推薦で共有する採点コンテキスト

    Attributes:
        preference: ユーザー嗜好
        weather: 天気スナップショット（なければ None）
        time: 時間帯コンテキスト
        alerts: 天気アラート（評価順）
        mean_duration: 候補ルートの平均所要時間（秒）
    """
    preference: RoutePreference
    weather: Optional[WeatherSnapshot]
    time: TimeContext
    alerts: tuple[WeatherAlert, ...]
    mean_duration: float

    @property
    def is_precipitating(self) -> bool:
        return self.weather is not None and self.weather.condition in PRECIPITATION_CONDITIONS

    @property
    def is_raining(self) -> bool:
        return self.weather is not None and self.weather.condition in (
            WeatherCondition.RAIN, WeatherCondition.DRIZZLE
        )

    @property
    def is_snowing(self) -> bool:
        return self.weather is not None and self.weather.condition == WeatherCondition.SNOW

    @property
    def is_hot(self) -> bool:
        return self.weather is not None and self.weather.temp > HOT_TEMP_F

    @property
    def is_cold(self) -> bool:
        return self.weather is not None and self.weather.temp < COLD_TEMP_F

    @property
    def is_windy(self) -> bool:
        return self.weather is not None and self.weather.wind_speed > WINDY_MPH

    @property
    def is_ideal_weather(self) -> bool:
        low, high = IDEAL_TEMP_RANGE_F
        return (self.weather is not None
                and self.weather.condition == WeatherCondition.CLEAR
                and low <= self.weather.temp <= high)


class _ScoreSheet:
    """ルール単位の加減点と理由タグを記録する"""

    def __init__(self):
        self.total = 0.0
        self.reasons: list[ReasonTag] = []
        self.breakdown: dict[str, float] = {}

    def add(self, rule: str, points: float, reason: Optional[ReasonTag] = None):
        self.total += points
        self.breakdown[rule] = self.breakdown.get(rule, 0) + points
        if reason is not None and points > 0 and reason not in self.reasons:
            self.reasons.append(reason)


# =============================================================================
# 採点
# =============================================================================

def score_route(route: RouteData, ctx: ScoringContext) -> ScoredRoute:
    """
    ルート1本を採点

    Args:
        route: 対象ルート
        ctx: 採点コンテキスト

    Returns:
        ScoredRoute（合計スコア・理由タグ・ルール別内訳）
    """
    sheet = _ScoreSheet()
    safety, comfort = route.safety, route.comfort
    continuous = safety.sidewalk_coverage == SidewalkCoverage.CONTINUOUS

    # 1. 嗜好一致
    if route.type == PREFERENCE_ROUTE_TYPE[ctx.preference]:
        sheet.add("preference", 30, ReasonTag.MATCHES_PREFERENCE)

    # 2. 天気
    if ctx.weather is not None:
        if ctx.is_precipitating:
            sheet.add("precipitation.rest_spots", 10 * comfort.rest_spot_count, ReasonTag.WEATHER_SHELTER)
            if continuous:
                sheet.add("precipitation.sidewalks", 20, ReasonTag.WEATHER_SHELTER)
            if route.type == RouteType.FASTEST:
                sheet.add("precipitation.exposed", -15)

        if ctx.is_hot:
            sheet.add("heat.shade", 0.4 * comfort.shade_percent, ReasonTag.SHADE)
            if comfort.rest_spot_count >= 2:
                sheet.add("heat.rest_spots", 20, ReasonTag.REST_STOPS)

        if ctx.is_cold:
            if route.type == RouteType.FASTEST:
                sheet.add("cold.direct", 25, ReasonTag.COLD_DIRECT)
            elif route.type == RouteType.SCENIC:
                sheet.add("cold.scenic", -10)

        if ctx.is_windy:
            if route.type == RouteType.COMFORTABLE:
                sheet.add("wind.protected", 15, ReasonTag.WIND_PROTECTED)
            elif route.type == RouteType.SCENIC:
                sheet.add("wind.scenic", -10)

    # 3. 時間帯
    time = ctx.time
    if time.is_dark:
        if safety.lighting_level == LightingLevel.WELL_LIT:
            sheet.add("dark.lighting", 45, ReasonTag.WELL_LIT)
        elif safety.lighting_level == LightingLevel.MIXED:
            sheet.add("dark.lighting", 10, ReasonTag.PARTLY_LIT)
        else:
            sheet.add("dark.lighting", -20)
        if route.night_friendly:
            sheet.add("dark.night_friendly", 30, ReasonTag.NIGHT_FRIENDLY)

    if time.time_of_day == TimeOfDay.LATE_NIGHT:
        if route.type == RouteType.SAFEST:
            sheet.add("late_night.safest", 35, ReasonTag.LATE_NIGHT_SAFETY)
        elif route.type == RouteType.SCENIC:
            sheet.add("late_night.scenic", -25)

    if time.is_rush_hour:
        if continuous:
            sheet.add("rush_hour.sidewalks", 20, ReasonTag.RUSH_HOUR_SIDEWALKS)
        if safety.crossing_count > MAX_RUSH_HOUR_CROSSINGS:
            sheet.add("rush_hour.crossings", -10)

    if (time.time_of_day == TimeOfDay.MIDDAY
            and ctx.weather is not None
            and ctx.weather.temp > MIDDAY_WARM_TEMP_F):
        sheet.add("midday.shade", 0.3 * comfort.shade_percent, ReasonTag.SHADE)

    if (time.is_weekend
            and not time.is_dark
            and not ctx.is_precipitating
            and not ctx.is_cold
            and route.type in (RouteType.SCENIC, RouteType.COMFORTABLE)):
        sheet.add("weekend.stroll", 15, ReasonTag.WEEKEND_STROLL)

    # 4. 常時
    if continuous:
        sheet.add("sidewalks", 15, ReasonTag.CONTINUOUS_SIDEWALKS)
    if safety.crossing_count <= MAX_EASY_CROSSINGS:
        sheet.add("crossings", 10, ReasonTag.FEW_CROSSINGS)

    # 5. 長いルート
    if route.duration > ctx.mean_duration * LONG_ROUTE_RATIO:
        sheet.add("length", -10)

    return ScoredRoute(
        route=route,
        score=sheet.total,
        reasons=sheet.reasons,
        breakdown=sheet.breakdown,
    )


def build_context(
    routes: list[RouteData],
    preference: RoutePreference,
    weather: Optional[WeatherSnapshot],
    time_context: TimeContext,
    alerts: Optional[list[WeatherAlert]] = None,
) -> ScoringContext:
    """
    採点コンテキストを作成

    alerts が省略された場合は天気スナップショットから生成する。
    """
    if alerts is None:
        alerts = generate_alerts(weather) if weather is not None else []
    mean_duration = sum(r.duration for r in routes) / len(routes) if routes else 0.0
    return ScoringContext(
        preference=preference,
        weather=weather,
        time=time_context,
        alerts=tuple(alerts),
        mean_duration=mean_duration,
    )


def rank_routes(routes: list[RouteData], ctx: ScoringContext) -> list[ScoredRoute]:
    """スコアの降順に並べる（同点は入力順）"""
    scored = [score_route(route, ctx) for route in routes]
    return sorted(scored, key=lambda s: s.score, reverse=True)


# =============================================================================
# 推薦理由
# =============================================================================

@dataclass(frozen=True)
class ReasonRule:
    """
    推薦理由ルール

    Attributes:
        name: ルール名
        applies: (コンテキスト, 最良ルート) -> 一致するか
        message: 理由文（文字列、またはコンテキストから作る関数）
    """
    name: str
    applies: Callable[[ScoringContext, ScoredRoute], bool]
    message: Union[str, Callable[[ScoringContext], str]] = ""

    def render(self, ctx: ScoringContext) -> str:
        return self.message(ctx) if callable(self.message) else self.message


REASON_RULES: list[ReasonRule] = [
    ReasonRule(
        "rain",
        lambda ctx, best: ctx.is_raining and ReasonTag.WEATHER_SHELTER in best.reasons,
        "☔ Best in the rain",
    ),
    ReasonRule(
        "snow",
        lambda ctx, best: ctx.is_snowing and ReasonTag.WEATHER_SHELTER in best.reasons,
        "❄️ Best in the snow",
    ),
    ReasonRule(
        "heat",
        lambda ctx, best: ctx.is_hot and ReasonTag.SHADE in best.reasons,
        "☀️ Best for hot weather",
    ),
    ReasonRule(
        "cold",
        lambda ctx, best: ctx.is_cold and ReasonTag.COLD_DIRECT in best.reasons,
        "🥶 Shortest time out in the cold",
    ),
    ReasonRule(
        "wind",
        lambda ctx, best: ctx.is_windy and ReasonTag.WIND_PROTECTED in best.reasons,
        "💨 Sheltered from the wind",
    ),
    ReasonRule(
        "darkness",
        lambda ctx, best: ctx.time.is_dark and ReasonTag.WELL_LIT in best.reasons,
        "🌙 Best for evening walk",
    ),
    ReasonRule(
        "late_night",
        lambda ctx, best: (ctx.time.time_of_day == TimeOfDay.LATE_NIGHT
                           and ReasonTag.LATE_NIGHT_SAFETY in best.reasons),
        "🛡️ Safest choice late at night",
    ),
    ReasonRule(
        "rush_hour",
        lambda ctx, best: ctx.time.is_rush_hour and ReasonTag.RUSH_HOUR_SIDEWALKS in best.reasons,
        "🚶 Steady sidewalks for rush hour",
    ),
    ReasonRule(
        "weekend",
        lambda ctx, best: ctx.time.is_weekend and ReasonTag.WEEKEND_STROLL in best.reasons,
        "🌳 Great for a weekend stroll",
    ),
    ReasonRule(
        "alert",
        lambda ctx, best: bool(ctx.alerts) and any(tag in best.reasons for tag in WEATHER_AWARE_TAGS),
        lambda ctx: f"{ctx.alerts[0].icon} Suited to current conditions: {ctx.alerts[0].title}",
    ),
    ReasonRule(
        "preference",
        lambda ctx, best: ReasonTag.MATCHES_PREFERENCE in best.reasons,
        "★ Recommended for you",
    ),
    ReasonRule(
        "ideal_weather",
        lambda ctx, best: ctx.is_ideal_weather,
        "☀️ Great walking weather",
    ),
    ReasonRule(
        "best_overall",
        lambda ctx, best: True,
        "★ Best overall",
    ),
]


def choose_reason(best: ScoredRoute, ctx: ScoringContext) -> str:
    """REASON_RULES を上から評価し、最初に一致した理由文を返す"""
    for rule in REASON_RULES:
        if rule.applies(ctx, best):
            return rule.render(ctx)
    return ""


# =============================================================================
# 公開API
# =============================================================================

def recommend(
    routes: list[RouteData],
    preference: RoutePreference = RoutePreference.SAFE,
    weather: Optional[WeatherSnapshot] = None,
    time_context: Optional[TimeContext] = None,
    alerts: Optional[list[WeatherAlert]] = None,
) -> Optional[Recommendation]:
    """
    最良のルートを推薦する

    Args:
        routes: 候補ルート
        preference: ユーザー嗜好
        weather: 天気スナップショット（なければ天気ルールを適用しない）
        time_context: 時間帯コンテキスト（省略時は現在時刻から季節推定で計算）
        alerts: 天気アラート（省略時は weather から生成）

    Returns:
        Recommendation（routes が空の場合のみ None）
    """
    if not routes:
        return None

    if time_context is None:
        time_context = calculate_time_context(
            sunrise=weather.sunrise if weather else None,
            sunset=weather.sunset if weather else None,
        )

    ctx = build_context(routes, preference, weather, time_context, alerts)
    ranked = rank_routes(routes, ctx)
    best = ranked[0]

    return Recommendation(
        route_id=best.route.id,
        route_type=best.route.type,
        reasons=best.reasons,
        reason=choose_reason(best, ctx),
        score=best.score,
        ranking=[s.route.id for s in ranked],
    )
