"""
saferoute/services/route_characterizer.py

ルート特性付けサービス

ルーティングプロバイダが返した生の経路に、ルート種別・安全性プロファイル・
快適性プロファイル・タグ・夜間適性を付与して RouteData を生成する。

設計:
- ルート種別は候補の並び順から巡回的に割り当てる（fastest, safest, comfortable, scenic）
- 経路から実際に算出するのは横断回数（"turn" / "end of road" の操作数）のみ
- それ以外のプロファイル値は種別ごとの固定テンプレート（標準フィンガープリント）
- 候補が3本未満の場合は先頭の経路から不足種別を合成する
- プロバイダが完全に失敗した場合も直線経路から3本のルートを生成する

参照:
- Mapbox Directions API: https://docs.mapbox.com/api/navigation/directions/
- Haversine: https://en.wikipedia.org/wiki/Haversine_formula
- 方位角計算: https://en.wikipedia.org/wiki/Bearing_(navigation)
"""
import math
from dataclasses import dataclass, field
from typing import Callable, Optional

from saferoute.models.common import GeoJSONLineString, Location
from saferoute.models.route import (
    ROUTE_TYPE_ORDER,
    ComfortProfile,
    CrossingKind,
    HillLevel,
    LightingLevel,
    Maneuver,
    RestSpotKind,
    RouteData,
    RouteStep,
    RouteType,
    SafetyProfile,
    SidewalkCoverage,
    StepComfort,
    Terrain,
)
from saferoute.services.formatting import format_distance, format_duration


# =============================================================================
# 定数定義
# =============================================================================

# 徒歩速度（m/s）: 時速約5km
WALK_SPEED = 1.4

# 横断としてカウントする操作種別
CROSSING_MANEUVERS = ("turn", "end of road")

# 必ず揃える最低限のルート種別
REQUIRED_ROUTE_TYPES = ROUTE_TYPE_ORDER[:3]

# 合成ルートの距離・所要時間倍率
SYNTHESIS_MULTIPLIERS = {
    RouteType.FASTEST: 1.0,
    RouteType.SAFEST: 1.10,
    RouteType.COMFORTABLE: 1.15,
}

# ステップ快適性の巡回テーブル（step_index % 3）
STEP_LIGHTING_CYCLE = [LightingLevel.WELL_LIT, LightingLevel.MIXED, LightingLevel.DARK]
STEP_TERRAIN_CYCLE = [Terrain.FLAT, Terrain.SLIGHT_INCLINE, Terrain.FLAT]


# =============================================================================
# データクラス
# =============================================================================

@dataclass
class RawStep:
    """
    プロバイダが返した生のステップ

    Attributes:
        instruction: 案内テキスト
        distance: 距離（メートル）
        duration: 所要時間（秒）
        maneuver_type: 操作種別（"turn", "end of road" など）
        location: (経度, 緯度)
        modifier: 方向修飾
    """
    instruction: str
    distance: float
    duration: float
    maneuver_type: str
    location: tuple[float, float]
    modifier: Optional[str] = None


@dataclass
class RawPath:
    """
    プロバイダが返した生の経路

    Attributes:
        distance: 総距離（メートル）
        duration: 所要時間（秒）
        coordinates: ジオメトリ [[経度, 緯度], ...]
        steps: ステップリスト
    """
    distance: float
    duration: float
    coordinates: list[list[float]]
    steps: list[RawStep] = field(default_factory=list)


@dataclass(frozen=True)
class RouteFingerprint:
    """
    ルート種別ごとの標準フィンガープリント

    実際の地図解析の代わりに使う固定テンプレート。
    横断回数と交通量の多い道路数だけは経路の横断数から導出する。
    """
    type: RouteType
    title: str
    tags: tuple[str, ...]
    night_friendly: bool
    lighting: str
    lighting_level: LightingLevel
    crossings_template: str
    crossing_rule: Callable[[int], int]
    busy_road_rule: Callable[[int], int]
    sidewalks: str
    sidewalk_coverage: SidewalkCoverage
    hills: str
    hill_level: HillLevel
    shade: str
    shade_percent: int
    rest_spots: str
    rest_spot_count: int
    rest_spot_types: frozenset[RestSpotKind]

    def safety_profile(self, turn_count: int) -> SafetyProfile:
        """横断数から安全性プロファイルを作成"""
        crossing_count = self.crossing_rule(turn_count)
        return SafetyProfile(
            lighting=self.lighting,
            lighting_level=self.lighting_level,
            crossings=self.crossings_template.format(count=crossing_count),
            crossing_count=crossing_count,
            sidewalks=self.sidewalks,
            sidewalk_coverage=self.sidewalk_coverage,
            busy_roads=self.busy_road_rule(turn_count),
        )

    def comfort_profile(self) -> ComfortProfile:
        """快適性プロファイルを作成（入力に依存しない）"""
        return ComfortProfile(
            hills=self.hills,
            hill_level=self.hill_level,
            shade=self.shade,
            shade_percent=self.shade_percent,
            rest_spots=self.rest_spots,
            rest_spot_count=self.rest_spot_count,
            rest_spot_types=self.rest_spot_types,
        )


FINGERPRINTS: dict[RouteType, RouteFingerprint] = {
    RouteType.FASTEST: RouteFingerprint(
        type=RouteType.FASTEST,
        title="Fastest Route",
        tags=("Fastest", "Direct route"),
        night_friendly=False,
        lighting="Mixed lighting, some darker blocks",
        lighting_level=LightingLevel.MIXED,
        crossings_template="{count} major intersections",
        crossing_rule=lambda turns: turns,
        busy_road_rule=lambda turns: math.ceil(turns / 2),
        sidewalks="Standard sidewalk coverage",
        sidewalk_coverage=SidewalkCoverage.PARTIAL,
        hills="Direct route, may include hills",
        hill_level=HillLevel.SOME_HILLS,
        shade="Limited shade (~30%)",
        shade_percent=30,
        rest_spots="Few rest areas",
        rest_spot_count=1,
        rest_spot_types=frozenset({RestSpotKind.CAFE}),
    ),
    RouteType.SAFEST: RouteFingerprint(
        type=RouteType.SAFEST,
        title="Safest Route",
        tags=("High safety", "Well lit", "Night friendly"),
        night_friendly=True,
        lighting="Well lit throughout",
        lighting_level=LightingLevel.WELL_LIT,
        crossings_template="{count} signalized crosswalks",
        crossing_rule=lambda turns: max(1, turns - 1),
        busy_road_rule=lambda turns: max(0, math.ceil(turns / 3)),
        sidewalks="Continuous sidewalks",
        sidewalk_coverage=SidewalkCoverage.CONTINUOUS,
        hills="Moderate terrain",
        hill_level=HillLevel.FLAT,
        shade="About 60% shaded",
        shade_percent=60,
        rest_spots="Multiple benches available",
        rest_spot_count=3,
        rest_spot_types=frozenset({RestSpotKind.BENCH, RestSpotKind.CAFE}),
    ),
    RouteType.COMFORTABLE: RouteFingerprint(
        type=RouteType.COMFORTABLE,
        title="Most Comfortable",
        tags=("High comfort", "Shaded", "Rest stops"),
        night_friendly=True,
        lighting="Well lit with good visibility",
        lighting_level=LightingLevel.WELL_LIT,
        crossings_template="{count} controlled crossings",
        crossing_rule=lambda turns: turns,
        busy_road_rule=lambda turns: 1,
        sidewalks="Wide sidewalks throughout",
        sidewalk_coverage=SidewalkCoverage.CONTINUOUS,
        hills="Gentle, mostly flat terrain",
        hill_level=HillLevel.FLAT,
        shade="Mostly shaded (75%)",
        shade_percent=75,
        rest_spots="Benches, cafés, and parks nearby",
        rest_spot_count=5,
        rest_spot_types=frozenset({RestSpotKind.BENCH, RestSpotKind.CAFE, RestSpotKind.PARK}),
    ),
    RouteType.SCENIC: RouteFingerprint(
        type=RouteType.SCENIC,
        title="Scenic Route",
        tags=("Scenic views", "Parks", "Quieter streets"),
        night_friendly=False,
        lighting="Mixed lighting along parks",
        lighting_level=LightingLevel.MIXED,
        crossings_template="{count} crossings",
        crossing_rule=lambda turns: turns + 1,
        busy_road_rule=lambda turns: 0,
        sidewalks="Park paths and sidewalks",
        sidewalk_coverage=SidewalkCoverage.CONTINUOUS,
        hills="Some gentle hills through parks",
        hill_level=HillLevel.SOME_HILLS,
        shade="Tree-lined paths (80%)",
        shade_percent=80,
        rest_spots="Parks with benches throughout",
        rest_spot_count=6,
        rest_spot_types=frozenset({RestSpotKind.BENCH, RestSpotKind.PARK, RestSpotKind.CAFE}),
    ),
}


# =============================================================================
# 地理計算ユーティリティ
# =============================================================================

def haversine_distance(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """
    2点間のHaversine距離（メートル）

    参照: https://pypi.org/project/haversine/
    """
    R = 6_371_000
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c


def calculate_bearing(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """
    2点間の方位角（度数法、0-360）

    北を0度として時計回りに角度を返す。
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lon = math.radians(lon2 - lon1)

    x = math.sin(delta_lon) * math.cos(lat2_rad)
    y = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(delta_lon))

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def compass_direction(bearing: float) -> str:
    """方位角を8方位の英語名に変換"""
    directions = ["north", "northeast", "east", "southeast",
                  "south", "southwest", "west", "northwest"]
    return directions[int((bearing % 360 + 22.5) // 45) % 8]


# =============================================================================
# 特性付け
# =============================================================================

def assign_route_type(index: int) -> RouteType:
    """候補の並び順からルート種別を割り当てる"""
    return ROUTE_TYPE_ORDER[index % len(ROUTE_TYPE_ORDER)]


def get_fingerprint(route_type: RouteType) -> RouteFingerprint:
    """ルート種別の標準フィンガープリントを取得（純粋な参照）"""
    return FINGERPRINTS[route_type]


def count_crossings(raw: RawPath) -> int:
    """生の経路から横断回数（"turn" / "end of road" の操作数）を数える"""
    return sum(1 for step in raw.steps if step.maneuver_type in CROSSING_MANEUVERS)


def annotate_steps(raw_steps: list[RawStep]) -> list[RouteStep]:
    """
    ステップに快適性情報を付与

    照明・地形はステップ番号の巡回割り当てによる仮の値であり、
    実際の計測結果ではない。
    """
    steps = []
    for index, raw_step in enumerate(raw_steps):
        comfort = StepComfort(
            lighting=STEP_LIGHTING_CYCLE[index % 3],
            terrain=STEP_TERRAIN_CYCLE[index % 3],
            shade=index % 2 == 0,
            crossing=CrossingKind.SIGNAL if raw_step.maneuver_type == "turn" else None,
            rest_spot=RestSpotKind.CAFE if index % 4 == 0 else None,
        )
        steps.append(RouteStep(
            instruction=raw_step.instruction,
            distance=max(0.0, raw_step.distance),
            duration=max(0.0, raw_step.duration),
            maneuver=Maneuver(
                type=raw_step.maneuver_type,
                modifier=raw_step.modifier,
                location=list(raw_step.location),
            ),
            comfort=comfort,
        ))
    return steps


def _apply_fingerprint(
    route_id: str,
    route_type: RouteType,
    turn_count: int,
    distance: float,
    duration: float,
    geometry: GeoJSONLineString,
    steps: list[RouteStep],
) -> RouteData:
    fingerprint = get_fingerprint(route_type)
    return RouteData(
        id=route_id,
        type=route_type,
        title=fingerprint.title,
        distance=distance,
        duration=duration,
        distance_text=format_distance(distance),
        duration_text=format_duration(duration),
        geometry=geometry,
        steps=steps,
        tags=list(fingerprint.tags),
        night_friendly=fingerprint.night_friendly,
        safety=fingerprint.safety_profile(turn_count),
        comfort=fingerprint.comfort_profile(),
    )


def characterize_route(raw: RawPath, index: int, id_format: str = "route-{index}") -> RouteData:
    """
    生の経路1本を特性付けする

    Args:
        raw: 生の経路
        index: 候補リスト内の位置（ルート種別の割り当てに使用）
        id_format: ルートIDの書式（{index} と {type} を使用可能）

    Returns:
        RouteData
    """
    route_type = assign_route_type(index)
    return _apply_fingerprint(
        route_id=id_format.format(index=index, type=route_type.value),
        route_type=route_type,
        turn_count=count_crossings(raw),
        distance=raw.distance,
        duration=raw.duration,
        geometry=GeoJSONLineString(coordinates=raw.coordinates),
        steps=annotate_steps(raw.steps),
    )


def build_route_set(raw_paths: list[RawPath], id_format: str = "route-{index}") -> list[RouteData]:
    """
    候補経路のリストからルートセットを作成

    先頭4本までを特性付けし（種別の一意性を保つため）、
    3本未満の場合は先頭の経路から不足する種別を合成する。

    Raises:
        ValueError: raw_paths が空の場合
    """
    if not raw_paths:
        raise ValueError("No raw paths to characterize")

    candidates = raw_paths[:len(ROUTE_TYPE_ORDER)]
    routes = [
        characterize_route(raw, index, id_format)
        for index, raw in enumerate(candidates)
    ]

    base = routes[0]
    base_turns = count_crossings(candidates[0])
    while len(routes) < len(REQUIRED_ROUTE_TYPES):
        index = len(routes)
        route_type = assign_route_type(index)
        multiplier = SYNTHESIS_MULTIPLIERS[route_type]
        routes.append(_apply_fingerprint(
            route_id=id_format.format(index=index, type=route_type.value),
            route_type=route_type,
            turn_count=base_turns,
            distance=base.distance * multiplier,
            duration=base.duration * multiplier,
            geometry=base.geometry,
            steps=base.steps,
        ))

    return routes


# =============================================================================
# フォールバック
# =============================================================================

def build_straight_line_path(origin: Location, destination: Location) -> RawPath:
    """
    出発地から目的地への直線経路を作成

    距離は大円距離、所要時間は 距離 / 1.4 m/s。
    """
    o, d = origin.coordinates, destination.coordinates
    distance = haversine_distance(o.lng, o.lat, d.lng, d.lat)
    duration = distance / WALK_SPEED
    heading = compass_direction(calculate_bearing(o.lng, o.lat, d.lng, d.lat))

    return RawPath(
        distance=distance,
        duration=duration,
        coordinates=[o.as_lnglat(), d.as_lnglat()],
        steps=[
            RawStep(
                instruction=f"Head {heading} toward {destination.name}",
                distance=distance,
                duration=duration,
                maneuver_type="depart",
                location=(o.lng, o.lat),
            ),
            RawStep(
                instruction=f"Arrive at {destination.name}",
                distance=0,
                duration=0,
                maneuver_type="arrive",
                location=(d.lng, d.lat),
            ),
        ],
    )


def build_fallback_routes(origin: Location, destination: Location) -> list[RouteData]:
    """直線経路から fastest / safest / comfortable の3本を作成"""
    path = build_straight_line_path(origin, destination)
    return build_route_set([path], id_format="fallback-{type}")


def characterize_routes(
    raw_paths: Optional[list[RawPath]],
    origin: Location,
    destination: Location,
) -> tuple[list[RouteData], bool]:
    """
    候補経路を特性付けする（例外を送出しない）

    プロバイダの失敗時（None）・候補ゼロ・不正な経路データの場合は
    直線フォールバックを返す。

    Returns:
        (ルートセット, フォールバックかどうか)
    """
    if raw_paths:
        try:
            return build_route_set(raw_paths), False
        except (ValueError, TypeError, KeyError) as e:
            print(f"RouteCharacterizer: Invalid raw paths ({e})")

    print("RouteCharacterizer: Using straight-line fallback routes")
    return build_fallback_routes(origin, destination), True
