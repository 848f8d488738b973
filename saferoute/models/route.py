"""
saferoute/models/route.py

ルート関連のモデル定義

候補ルート（RouteData）と、その安全性・快適性プロファイル、
ステップ単位の快適性情報を定義する。RouteData はプロバイダへの
問い合わせごとに新しく生成され、変更されずに丸ごと置き換えられる。

公式ドキュメント:
- Pydantic Field: https://docs.pydantic.dev/latest/concepts/fields/
- Pydantic Aliases: https://docs.pydantic.dev/latest/concepts/alias/
- Enum: https://docs.python.org/3/library/enum.html
"""
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field

from .common import GeoJSONLineString


# =============================================================================
# 列挙型（Enum）
# =============================================================================

class TransportMode(str, Enum):
    """
    移動モード（Mapbox Directions のプロファイル名と一致）

    参照: https://docs.mapbox.com/api/navigation/directions/#routing-profiles
    """
    WALKING = "walking"
    CYCLING = "cycling"
    DRIVING_TRAFFIC = "driving-traffic"


class RouteType(str, Enum):
    """
    ルート種別（4つのルートペルソナ）

    候補リストの並び順に対して ROUTE_TYPE_ORDER で巡回的に割り当てる。
    """
    FASTEST = "fastest"
    SAFEST = "safest"
    COMFORTABLE = "comfortable"
    SCENIC = "scenic"


# 巡回割り当て順: type = ROUTE_TYPE_ORDER[index % 4]
ROUTE_TYPE_ORDER = [
    RouteType.FASTEST,
    RouteType.SAFEST,
    RouteType.COMFORTABLE,
    RouteType.SCENIC,
]


class RoutePreference(str, Enum):
    """
    ユーザーのルート嗜好

    永続化される唯一のユーザー設定。未設定時は SAFE。
    """
    SAFE = "safe"
    FAST = "fast"
    COMFY = "comfy"


class LightingLevel(str, Enum):
    """照明レベル"""
    WELL_LIT = "well-lit"
    MIXED = "mixed"
    DARK = "dark"


class Terrain(str, Enum):
    """ステップの地形"""
    FLAT = "flat"
    SLIGHT_INCLINE = "slight-incline"
    STEEP = "steep"


class SidewalkCoverage(str, Enum):
    """歩道の連続性"""
    CONTINUOUS = "continuous"
    PARTIAL = "partial"
    NONE = "none"


class HillLevel(str, Enum):
    """ルート全体の起伏"""
    FLAT = "flat"
    SOME_HILLS = "some-hills"
    STEEP = "steep"


class RestSpotKind(str, Enum):
    """休憩スポット種別"""
    BENCH = "bench"
    CAFE = "cafe"
    PARK = "park"


class CrossingKind(str, Enum):
    """横断地点の種別"""
    SIGNAL = "signal"
    CROSSWALK = "crosswalk"
    BUSY_ROAD = "busy-road"


# =============================================================================
# ステップモデル
# =============================================================================

class Maneuver(BaseModel):
    """
    ステップの操作（Mapbox maneuver オブジェクト相当）

    Attributes:
        type (str): 操作種別（"depart", "turn", "end of road", "arrive" など）
        modifier (Optional[str]): 方向修飾（"left", "slight right" など）
        location (list[float]): [経度, 緯度]
    """
    type: str = Field(..., description="操作種別", examples=["turn", "end of road"])
    modifier: Optional[str] = Field(default=None, description="方向修飾", examples=["left"])
    location: list[float] = Field(
        ...,
        min_length=2,
        max_length=2,
        description="[経度, 緯度]",
    )

    model_config = {"frozen": True}


class StepComfort(BaseModel):
    """
    ステップ単位の快適性情報

    現状はステップ番号から巡回的に割り当てる仮の値であり、
    実際の地形・照明データの計測結果ではない。
    """
    lighting: LightingLevel
    terrain: Terrain
    shade: bool
    crossing: Optional[CrossingKind] = None
    rest_spot: Optional[RestSpotKind] = Field(default=None, alias="restSpot")

    model_config = {"frozen": True, "populate_by_name": True}


class RouteStep(BaseModel):
    """
    ルートの1ステップ（ターンバイターン指示1件）
    """
    instruction: str = Field(..., description="案内テキスト", examples=["Turn left onto Jay Street"])
    distance: float = Field(..., ge=0, description="距離（メートル）")
    duration: float = Field(..., ge=0, description="所要時間（秒）")
    maneuver: Maneuver
    comfort: Optional[StepComfort] = None

    model_config = {"frozen": True}


# =============================================================================
# 安全性・快適性プロファイル
# =============================================================================

class SafetyProfile(BaseModel):
    """
    安全性プロファイル

    各指標は列挙値（スコアリング用）と表示用フレーズの組で持つ。

    Attributes:
        lighting (str): 照明の説明
        lighting_level (LightingLevel): 照明レベル
        crossings (str): 横断の説明
        crossing_count (int): 横断回数
        sidewalks (str): 歩道の説明
        sidewalk_coverage (SidewalkCoverage): 歩道の連続性
        busy_roads (int): 交通量の多い道路の数
    """
    lighting: str = Field(..., examples=["Well lit throughout"])
    lighting_level: LightingLevel = Field(..., alias="lightingLevel")
    crossings: str = Field(..., examples=["3 signalized crosswalks"])
    crossing_count: int = Field(..., ge=0, alias="crossingCount")
    sidewalks: str = Field(..., examples=["Continuous sidewalks"])
    sidewalk_coverage: SidewalkCoverage = Field(..., alias="sidewalkCoverage")
    busy_roads: int = Field(..., ge=0, alias="busyRoads")

    model_config = {"frozen": True, "populate_by_name": True}


class ComfortProfile(BaseModel):
    """
    快適性プロファイル

    Attributes:
        hills (str): 起伏の説明
        hill_level (HillLevel): 起伏レベル
        shade (str): 日陰の説明
        shade_percent (int): 日陰率（0-100）
        rest_spots (str): 休憩スポットの説明
        rest_spot_count (int): 休憩スポット数
        rest_spot_types (frozenset[RestSpotKind]): 休憩スポット種別（順序なし）
    """
    hills: str = Field(..., examples=["Gentle, mostly flat terrain"])
    hill_level: HillLevel = Field(..., alias="hillLevel")
    shade: str = Field(..., examples=["Mostly shaded (75%)"])
    shade_percent: int = Field(..., ge=0, le=100, alias="shadePercent")
    rest_spots: str = Field(..., alias="restSpots", examples=["Benches, cafés, and parks nearby"])
    rest_spot_count: int = Field(..., ge=0, alias="restSpotCount")
    rest_spot_types: frozenset[RestSpotKind] = Field(..., alias="restSpotTypes")

    model_config = {"frozen": True, "populate_by_name": True}


# =============================================================================
# ルートデータモデル
# =============================================================================

class RouteData(BaseModel):
    """
    特性付けされた候補ルート

    ルートセット内で type は一意。距離・所要時間は退化していない
    ルートでは正の値をとり、ステップの合計はそれ以下となる。

    使用例:
        RouteData(
            id="route-1",
            type=RouteType.SAFEST,
            title="Safest Route",
            distance=2100.0,
            duration=1500.0,
            distance_text="2.1 km",
            duration_text="25 min",
            geometry=GeoJSONLineString(coordinates=[...]),
            steps=[...],
            tags=["High safety", "Well lit", "Night friendly"],
            night_friendly=True,
            safety=SafetyProfile(...),
            comfort=ComfortProfile(...),
        )
    """
    id: str = Field(..., description="ルートID", examples=["route-0", "fallback-safest"])
    type: RouteType = Field(..., description="ルート種別")
    title: str = Field(..., examples=["Safest Route"])
    distance: float = Field(..., ge=0, description="総距離（メートル）")
    duration: float = Field(..., ge=0, description="総所要時間（秒）")
    distance_text: str = Field("", alias="distanceText", examples=["1.2 km"])
    duration_text: str = Field("", alias="durationText", examples=["15 min"])
    geometry: GeoJSONLineString
    steps: list[RouteStep] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    night_friendly: bool = Field(..., alias="nightFriendly")
    safety: SafetyProfile
    comfort: ComfortProfile

    model_config = {"frozen": True, "populate_by_name": True}
