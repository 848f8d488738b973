"""
saferoute/models/__init__.py

モデルパッケージ

使用例:
    from saferoute.models import ApiResponse, RouteData, WeatherSnapshot
"""
from .common import (
    ApiResponse,
    ErrorDetail,
    Coordinate,
    Location,
    GeoJSONLineString,
    create_success_response,
    create_error_response,
)
from .route import (
    TransportMode,
    RouteType,
    ROUTE_TYPE_ORDER,
    RoutePreference,
    LightingLevel,
    Terrain,
    SidewalkCoverage,
    HillLevel,
    RestSpotKind,
    CrossingKind,
    Maneuver,
    StepComfort,
    RouteStep,
    SafetyProfile,
    ComfortProfile,
    RouteData,
)
from .weather import (
    WeatherCondition,
    TimeOfDay,
    AlertSeverity,
    HourlyForecast,
    WeatherSnapshot,
    WeatherAlert,
    TimeContext,
    WeatherReport,
)
from .recommendation import (
    ReasonTag,
    ScoredRoute,
    Recommendation,
    RoutePlanData,
)

__all__ = [
    # common
    "ApiResponse",
    "ErrorDetail",
    "Coordinate",
    "Location",
    "GeoJSONLineString",
    "create_success_response",
    "create_error_response",
    # route
    "TransportMode",
    "RouteType",
    "ROUTE_TYPE_ORDER",
    "RoutePreference",
    "LightingLevel",
    "Terrain",
    "SidewalkCoverage",
    "HillLevel",
    "RestSpotKind",
    "CrossingKind",
    "Maneuver",
    "StepComfort",
    "RouteStep",
    "SafetyProfile",
    "ComfortProfile",
    "RouteData",
    # weather
    "WeatherCondition",
    "TimeOfDay",
    "AlertSeverity",
    "HourlyForecast",
    "WeatherSnapshot",
    "WeatherAlert",
    "TimeContext",
    "WeatherReport",
    # recommendation
    "ReasonTag",
    "ScoredRoute",
    "Recommendation",
    "RoutePlanData",
]
