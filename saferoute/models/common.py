"""
saferoute/models/common.py

共通モデル定義

API全体で使用するレスポンスエンベロープと座標・地点モデルを定義する。
座標と地点は一度作成したら変更しない値オブジェクト（frozen）として扱う。

公式ドキュメント:
- Pydantic V2: https://docs.pydantic.dev/latest/
- Pydantic frozen models: https://docs.pydantic.dev/latest/concepts/models/#faux-immutability
- Generic Types: https://docs.pydantic.dev/latest/concepts/models/#generic-models
"""
from typing import TypeVar, Generic, Optional, Literal
from pydantic import BaseModel, Field


T = TypeVar('T')


# =============================================================================
# エラーモデル
# =============================================================================

class ErrorDetail(BaseModel):
    """
    エラー詳細モデル

    エラーコード一覧:
        - MISSING_LOCATION: 出発地または目的地が未指定
        - INVALID_COORDINATES: 座標形式が不正
        - INTERNAL_ERROR: 内部エラー

    ルーティング・天気プロバイダの障害はフォールバックで吸収するため、
    エラーコードとしては存在しない。
    """
    code: str = Field(
        ...,
        description="エラーコード",
        examples=["MISSING_LOCATION", "INVALID_COORDINATES"]
    )
    message: str = Field(
        ...,
        description="ユーザー向けエラーメッセージ",
        examples=["Please set both origin and destination"]
    )


# =============================================================================
# 統一APIレスポンスモデル
# =============================================================================

class ApiResponse(BaseModel, Generic[T]):
    """
    統一APIレスポンスモデル（ジェネリック型）

    成功時はdataにデータを、失敗時はerrorにエラー詳細を格納。

    使用例:
        ApiResponse(success=True, data=RoutePlanData(...))
        ApiResponse(success=False, error=ErrorDetail(code="MISSING_LOCATION", message="..."))
    """
    success: bool = Field(..., description="リクエスト成功フラグ")
    data: Optional[T] = Field(default=None, description="成功時のレスポンスデータ")
    error: Optional[ErrorDetail] = Field(default=None, description="失敗時のエラー詳細")


# =============================================================================
# 座標・地点モデル
# =============================================================================

class Coordinate(BaseModel):
    """
    WGS84座標（不変）

    Attributes:
        lat (float): 緯度
        lng (float): 経度
    """
    lat: float = Field(..., ge=-90, le=90, description="緯度", examples=[40.6944])
    lng: float = Field(..., ge=-180, le=180, description="経度", examples=[-73.9857])

    model_config = {"frozen": True}

    def as_lnglat(self) -> list[float]:
        """GeoJSON順の [経度, 緯度] を返す"""
        return [self.lng, self.lat]


class Location(BaseModel):
    """
    名前付き地点（不変）

    ジオコーディングまたは端末の現在地から作成され、
    出発地・目的地として設定された後は変更されない。
    """
    name: str = Field(..., description="表示名", examples=["6 MetroTech Center"])
    address: str = Field(
        ...,
        description="住所",
        examples=["6 MetroTech Center, Brooklyn, NY 11201"]
    )
    coordinates: Coordinate = Field(..., description="座標")

    model_config = {"frozen": True}


class GeoJSONLineString(BaseModel):
    """
    GeoJSON LineString型

    GeoJSON仕様: https://datatracker.ietf.org/doc/html/rfc7946#section-3.1.4
    """
    type: Literal["LineString"] = "LineString"
    coordinates: list[list[float]] = Field(
        ...,
        min_length=2,
        description="座標配列 [[経度, 緯度], ...]",
        examples=[[[-73.9969, 40.7306], [-73.9857, 40.6944]]]
    )

    model_config = {"frozen": True}


# =============================================================================
# ヘルパー関数
# =============================================================================

def create_success_response(data: T) -> ApiResponse[T]:
    """成功レスポンスを作成する"""
    return ApiResponse(success=True, data=data)


def create_error_response(code: str, message: str) -> ApiResponse:
    """
    エラーレスポンスを作成する

    Args:
        code: エラーコード
        message: エラーメッセージ

    Returns:
        ApiResponse: エラーレスポンス
    """
    return ApiResponse(
        success=False,
        error=ErrorDetail(code=code, message=message)
    )
