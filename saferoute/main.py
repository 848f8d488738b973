"""
saferoute/main.py

SafeRoute 徒歩ルート選択アシスタント API - メインアプリケーション

起動コマンド:
  uvicorn saferoute.main:app --reload --host 0.0.0.0 --port 8000

環境変数:
  MAPBOX_ACCESS_TOKEN: Mapbox APIトークン（ルーティング・ジオコーディング）
  OPENWEATHER_API_KEY: OpenWeatherMap APIキー（未設定ならモック天気）
  PREFERENCE_PATH: 嗜好ファイルパス (デフォルト: .saferoute/preference.json)
"""
import os
from contextlib import asynccontextmanager

# .envファイルを読み込む（os.getenvより前に実行）
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from saferoute.models import ROUTE_TYPE_ORDER
from saferoute.services.mapbox_client import MapboxClient
from saferoute.services.weather_client import WeatherClient
from saferoute.services.preference_store import PreferenceStore
from saferoute.services.route_characterizer import FINGERPRINTS, SYNTHESIS_MULTIPLIERS
from saferoute.routers.route import router as route_router
from saferoute.routers.weather import router as weather_router
from saferoute.routers.locations import router as locations_router
from saferoute.routers.preference import router as preference_router


# =============================================================================
# 設定
# =============================================================================

class Settings:
    """アプリケーション設定"""
    MAPBOX_ACCESS_TOKEN: str = os.getenv("MAPBOX_ACCESS_TOKEN", "")
    OPENWEATHER_API_KEY: str = os.getenv("OPENWEATHER_API_KEY", "")
    PREFERENCE_PATH: str = os.getenv("PREFERENCE_PATH", ".saferoute/preference.json")

    # CORS設定
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",      # Vite開発サーバー
        "http://localhost:3000",      # その他
        "https://your-frontend.com",  # 本番環境
    ]


settings = Settings()


# =============================================================================
# Lifespan（起動・終了処理）
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    アプリケーションライフサイクル管理

    参照: https://fastapi.tiangolo.com/advanced/events/

    Startup:
    1. MapboxClient初期化
    2. WeatherClient初期化
    3. PreferenceStore初期化

    Shutdown:
    1. クライアントのクローズ
    """
    # === Startup ===
    print("="*60)
    print("Starting SafeRoute API...")
    print("="*60)

    # 1. MapboxClient初期化
    print("Initializing MapboxClient...")
    if not settings.MAPBOX_ACCESS_TOKEN:
        print("  -> MAPBOX_ACCESS_TOKEN not set, routes will use straight-line fallback")
    mapbox_client = MapboxClient(settings.MAPBOX_ACCESS_TOKEN)
    app.state.mapbox_client = mapbox_client

    # 2. WeatherClient初期化
    print("Initializing WeatherClient...")
    weather_client = WeatherClient(settings.OPENWEATHER_API_KEY)
    if not weather_client.has_api_key:
        print("  -> OPENWEATHER_API_KEY not set, using mock weather data")
    app.state.weather_client = weather_client

    # 3. PreferenceStore初期化
    print(f"Loading preference from {settings.PREFERENCE_PATH}...")
    preference_store = PreferenceStore(settings.PREFERENCE_PATH)
    print(f"  -> Preference: {preference_store.load().value}")
    app.state.preference_store = preference_store

    print("="*60)
    print("API Ready!")
    print("="*60)

    yield  # アプリケーション実行中

    # === Shutdown ===
    print("Shutting down...")

    await mapbox_client.close()
    await weather_client.close()

    print("Shutdown complete.")


# =============================================================================
# FastAPIアプリケーション
# =============================================================================

app = FastAPI(
    title="SafeRoute 徒歩ルート選択アシスタント API",
    description="""
歩行者向けに、安全性・快適性・天気・時間帯を考慮したルートを推薦するAPI

## 機能
- 候補ルートの特性付け（fastest / safest / comfortable / scenic）
- 天気・時間帯に応じたルート推薦と推薦理由
- 天気アラート（固定の評価順）
- 地名検索・逆ジオコーディング
- ユーザー嗜好の保存

## 嗜好パラメータ
- `safe`: 安全重視
- `fast`: 速さ重視
- `comfy`: 快適さ重視
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS設定
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "PUT"],
    allow_headers=["*"],
)

# ルーター登録
app.include_router(route_router)
app.include_router(weather_router)
app.include_router(locations_router)
app.include_router(preference_router)


# =============================================================================
# ヘルスチェック・デバッグエンドポイント
# =============================================================================

@app.get("/health", tags=["system"])
async def health_check():
    """ヘルスチェック"""
    return {"status": "healthy"}


@app.get("/debug/config", tags=["debug"])
async def get_config():
    """設定確認（デバッグ用）"""
    token = settings.MAPBOX_ACCESS_TOKEN
    return {
        "mapbox_token_set": bool(token),
        "mapbox_token_prefix": token[:20] + "..." if len(token) > 20 else "(empty)",
        "openweather_key_set": bool(settings.OPENWEATHER_API_KEY),
        "preference_path": settings.PREFERENCE_PATH,
    }


@app.get("/debug/fingerprints", tags=["debug"])
async def get_fingerprints(turns: int = Query(4, ge=0, le=50)):
    """
    ルート種別ごとの標準フィンガープリントを表示

    設計確認用:
    - turns: 経路の横断（"turn" / "end of road"）数を仮定して横断数・交通量の多い道路数を算出
    - synthesis_multiplier: 候補不足時に合成するルートの距離・所要時間倍率
    """
    fingerprints = {}
    for route_type in ROUTE_TYPE_ORDER:
        fingerprint = FINGERPRINTS[route_type]
        fingerprints[route_type.value] = {
            "title": fingerprint.title,
            "tags": list(fingerprint.tags),
            "night_friendly": fingerprint.night_friendly,
            "safety": fingerprint.safety_profile(turns).model_dump(mode="json", by_alias=True),
            "comfort": fingerprint.comfort_profile().model_dump(mode="json", by_alias=True),
            "synthesis_multiplier": SYNTHESIS_MULTIPLIERS.get(route_type),
        }

    return {
        "turns": turns,
        "fingerprints": fingerprints,
    }


# =============================================================================
# メイン（直接実行時）
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "saferoute.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
