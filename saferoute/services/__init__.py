"""
saferoute/services/__init__.py

サービスパッケージ
"""
from .mapbox_client import MapboxClient
from .weather_client import WeatherClient
from .preference_store import PreferenceStore
from .recommendation_engine import recommend, rank_routes, score_route
from .route_characterizer import characterize_routes, build_fallback_routes
from .route_session import (
    RouteSelectionState,
    RouteSnapshot,
    RoutePlanner,
    DebouncedLocationSearch,
    TimeContextTicker,
)

__all__ = [
    "MapboxClient",
    "WeatherClient",
    "PreferenceStore",
    "recommend",
    "rank_routes",
    "score_route",
    "characterize_routes",
    "build_fallback_routes",
    "RouteSelectionState",
    "RouteSnapshot",
    "RoutePlanner",
    "DebouncedLocationSearch",
    "TimeContextTicker",
]
