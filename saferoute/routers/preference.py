"""
saferoute/routers/preference.py

ユーザー嗜好APIエンドポイント

GET /api/preference - 保存済みの嗜好（未保存なら safe）
PUT /api/preference - 嗜好を保存
"""
from typing import Annotated
from fastapi import APIRouter, Query, Depends
from pydantic import BaseModel

from saferoute.models import (
    ApiResponse,
    RoutePreference,
    create_success_response,
)
from saferoute.services.preference_store import PreferenceStore


# =============================================================================
# ルーター定義
# =============================================================================

router = APIRouter(prefix="/api", tags=["preference"])


class PreferenceData(BaseModel):
    """嗜好レスポンス"""
    preference: RoutePreference


def get_preference_store():
    """PreferenceStoreの依存性注入"""
    from saferoute.main import app
    return app.state.preference_store


# =============================================================================
# エンドポイント
# =============================================================================

@router.get(
    "/preference",
    response_model=ApiResponse[PreferenceData],
    summary="嗜好取得",
)
async def get_preference(
    store: PreferenceStore = Depends(get_preference_store),
) -> ApiResponse[PreferenceData]:
    return create_success_response(PreferenceData(preference=store.load()))


@router.put(
    "/preference",
    response_model=ApiResponse[PreferenceData],
    summary="嗜好保存",
    description="ユーザーが明示的に変更した時のみ呼ぶ。",
)
async def put_preference(
    value: Annotated[RoutePreference, Query(description="safe / fast / comfy")],
    store: PreferenceStore = Depends(get_preference_store),
) -> ApiResponse[PreferenceData]:
    return create_success_response(PreferenceData(preference=store.save(value)))
