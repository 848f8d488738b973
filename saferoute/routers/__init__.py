"""
saferoute/routers/__init__.py

ルーターパッケージ
"""
from .route import router as route_router
from .weather import router as weather_router
from .locations import router as locations_router
from .preference import router as preference_router

__all__ = ["route_router", "weather_router", "locations_router", "preference_router"]
