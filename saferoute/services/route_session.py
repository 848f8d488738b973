"""
saferoute/services/route_session.py

ルート選択セッションの調整役

1セッション（画面1つ分）が所有する状態と非同期処理をまとめる。

- RouteSelectionState: 候補ルートと選択中ルート。スナップショットを丸ごと置き換える
- RoutePlanner: 出発地・目的地・移動モードを保持し、最新のフェッチ結果だけを反映する
- DebouncedLocationSearch: 300ms の入力待ちを挟む地名検索（最新クエリの結果のみ採用）
- TimeContextTicker: 60秒ごとに TimeContext を再計算するタイマー（1セッション1つ）

ルートの生成・採点は行わない。呼び出し側が characterize_routes / recommend の結果を渡す。

公式ドキュメント:
- asyncio Tasks: https://docs.python.org/3/library/asyncio-task.html
- Task cancellation: https://docs.python.org/3/library/asyncio-task.html#task-cancellation
"""
import asyncio
from contextlib import suppress
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

import httpx

from saferoute.models.common import Coordinate, Location
from saferoute.models.recommendation import Recommendation
from saferoute.models.route import RouteData, RoutePreference, RouteType, TransportMode
from saferoute.models.weather import TimeContext, WeatherSnapshot
from saferoute.services.mapbox_client import MapboxClient
from saferoute.services.recommendation_engine import recommend
from saferoute.services.route_characterizer import characterize_routes
from saferoute.services.weather_context import calculate_time_context


# =============================================================================
# 定数定義
# =============================================================================

MISSING_LOCATION_MESSAGE = "Please set both origin and destination"

SEARCH_QUIET_PERIOD = 0.3
SEARCH_MIN_LENGTH = 2

TIME_CONTEXT_INTERVAL = 60.0


# =============================================================================
# ルート選択状態
# =============================================================================

@dataclass(frozen=True)
class RouteSnapshot:
    """
    候補ルートと選択の不変スナップショット

    読み手は常に完全に置き換わったスナップショットを見る。
    """
    routes: tuple[RouteData, ...] = ()
    selected_route_id: Optional[str] = None
    recommendation: Optional[Recommendation] = None
    is_fallback: bool = False

    @property
    def selected_route(self) -> Optional[RouteData]:
        return next((r for r in self.routes if r.id == self.selected_route_id), None)


def default_selection(routes: tuple[RouteData, ...]) -> Optional[str]:
    """フェッチ直後の初期選択（safest、なければ先頭）"""
    if not routes:
        return None
    safest = next((r for r in routes if r.type == RouteType.SAFEST), None)
    return (safest or routes[0]).id


class RouteSelectionState:
    """
    候補ルートと選択中ルートの唯一の所有者

    変更は replace_routes / select_route / clear_all のみ。
    フェッチは begin_fetch() でトークンを発行し、commit() は
    最後に発行されたトークンの結果だけを反映する。
    """

    def __init__(self):
        self._snapshot = RouteSnapshot()
        self._latest_token = 0

    @property
    def snapshot(self) -> RouteSnapshot:
        return self._snapshot

    def replace_routes(
        self,
        routes: list[RouteData],
        recommendation: Optional[Recommendation] = None,
        is_fallback: bool = False,
    ) -> RouteSnapshot:
        """候補ルートを丸ごと置き換え、初期選択を設定する"""
        routes = tuple(routes)
        self._snapshot = RouteSnapshot(
            routes=routes,
            selected_route_id=default_selection(routes),
            recommendation=recommendation,
            is_fallback=is_fallback,
        )
        return self._snapshot

    def select_route(self, route_id: str) -> RouteSnapshot:
        """
        選択中ルートを変更

        Raises:
            KeyError: 候補に存在しないID
        """
        if not any(r.id == route_id for r in self._snapshot.routes):
            raise KeyError(route_id)
        self._snapshot = replace(self._snapshot, selected_route_id=route_id)
        return self._snapshot

    def clear_all(self) -> RouteSnapshot:
        """候補と選択をすべて破棄（進行中のフェッチ結果も無効にする）"""
        self._latest_token += 1
        self._snapshot = RouteSnapshot()
        return self._snapshot

    def begin_fetch(self) -> int:
        """フェッチトークンを発行する（以前のトークンは古くなる）"""
        self._latest_token += 1
        return self._latest_token

    def is_current(self, token: int) -> bool:
        return token == self._latest_token

    def commit(
        self,
        token: int,
        routes: list[RouteData],
        recommendation: Optional[Recommendation] = None,
        is_fallback: bool = False,
    ) -> bool:
        """
        フェッチ結果を反映

        Returns:
            反映したかどうか（古いトークンの場合は破棄して False）
        """
        if not self.is_current(token):
            print(f"RouteSelectionState: Discarding stale fetch #{token} (latest #{self._latest_token})")
            return False
        self.replace_routes(routes, recommendation, is_fallback)
        return True


# =============================================================================
# ルートプランナー
# =============================================================================

class RoutePlanner:
    """
    出発地・目的地・移動モードからルート候補を取得するセッション

    Attributes:
        origin / destination: 設定済みの地点
        mode: 移動モード
        preference: ユーザー嗜好
        weather / time_context: 推薦に使うコンテキスト（呼び出し側が更新）
        error: 直近の入力エラー（なければ None）
        state: ルート選択状態
    """

    def __init__(
        self,
        mapbox_client: MapboxClient,
        state: Optional[RouteSelectionState] = None,
        preference: RoutePreference = RoutePreference.SAFE,
    ):
        self._mapbox = mapbox_client
        self.state = state or RouteSelectionState()
        self.origin: Optional[Location] = None
        self.destination: Optional[Location] = None
        self.mode = TransportMode.WALKING
        self.preference = preference
        self.weather: Optional[WeatherSnapshot] = None
        self.time_context: Optional[TimeContext] = None
        self.error: Optional[str] = None

    def swap_locations(self):
        """出発地と目的地を入れ替える"""
        self.origin, self.destination = self.destination, self.origin

    async def fetch_routes(self) -> Optional[RouteSnapshot]:
        """
        ルート候補を取得して状態に反映する

        - 出発地・目的地が未設定なら error を設定して何もしない
        - プロバイダの失敗は直線フォールバックで吸収する（エラーにしない）
        - 取得中に新しいフェッチが始まった場合、この結果は破棄する

        Returns:
            反映後のスナップショット（入力エラー・破棄時は None）
        """
        if self.origin is None or self.destination is None:
            self.error = MISSING_LOCATION_MESSAGE
            return None

        self.error = None
        origin, destination = self.origin, self.destination
        token = self.state.begin_fetch()

        try:
            raw_paths = await self._mapbox.get_routes(origin, destination, self.mode)
        except (httpx.HTTPError, ValueError) as e:
            print(f"RoutePlanner: Routing provider failed ({e})")
            raw_paths = None

        routes, is_fallback = characterize_routes(raw_paths, origin, destination)
        recommendation = recommend(
            routes,
            preference=self.preference,
            weather=self.weather,
            time_context=self.time_context,
        )

        if not self.state.commit(token, routes, recommendation, is_fallback):
            return None
        return self.state.snapshot


# =============================================================================
# 地名検索（デバウンス）
# =============================================================================

class DebouncedLocationSearch:
    """
    入力ごとに呼ばれる地名検索

    最後の入力から quiet_period 秒待ってから検索する。
    新しい入力は待機中・検索中のタスクをキャンセルし、結果は
    最後に発行されたクエリのものだけを results に反映する。

    使用例:
        search = DebouncedLocationSearch(mapbox_client)
        search.update("Brook")
        search.update("Brooklyn")  # "Brook" はキャンセル
    """

    def __init__(
        self,
        mapbox_client: MapboxClient,
        quiet_period: float = SEARCH_QUIET_PERIOD,
        proximity: Optional[Coordinate] = None,
    ):
        self._mapbox = mapbox_client
        self._quiet_period = quiet_period
        self.proximity = proximity
        self.results: list[Location] = []
        self._pending: Optional[asyncio.Task] = None
        self._latest_query = 0

    @property
    def pending(self) -> Optional[asyncio.Task]:
        return self._pending

    def update(self, text: str) -> Optional[asyncio.Task]:
        """
        入力テキストの変更を通知

        Returns:
            検索タスク（2文字未満の場合は None で結果をクリア）
        """
        self._cancel_pending()
        self._latest_query += 1

        if len(text.strip()) < SEARCH_MIN_LENGTH:
            self.results = []
            return None

        self._pending = asyncio.create_task(self._run(text.strip(), self._latest_query))
        return self._pending

    async def _run(self, text: str, query_id: int):
        await asyncio.sleep(self._quiet_period)

        try:
            found = await self._mapbox.search(text, self.proximity)
        except (httpx.HTTPError, ValueError) as e:
            print(f"DebouncedLocationSearch: Search failed ({e})")
            found = []

        if query_id != self._latest_query:
            print(f"DebouncedLocationSearch: Discarding results for superseded query '{text}'")
            return
        self.results = found

    def _cancel_pending(self):
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def close(self):
        """待機中の検索を破棄する"""
        task = self._pending
        self._cancel_pending()
        if task is not None:
            with suppress(asyncio.CancelledError):
                await task


# =============================================================================
# 時間帯コンテキストの定期更新
# =============================================================================

class TimeContextTicker:
    """
    TimeContext を一定間隔で再計算するタイマー

    1セッションにつき1つのタスクのみ動かす。start() は何度呼んでも
    タスクを増やさず、stop() はタスクの終了まで待つ。

    使用例:
        async with TimeContextTicker(on_tick=planner_update) as ticker:
            ...
    """

    def __init__(
        self,
        on_tick: Optional[Callable[[TimeContext], None]] = None,
        interval: float = TIME_CONTEXT_INTERVAL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._on_tick = on_tick
        self._interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self.sunrise: Optional[int] = None
        self.sunset: Optional[int] = None
        self.current: Optional[TimeContext] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def use_weather(self, weather: Optional[WeatherSnapshot]):
        """天気スナップショットの日の出・日の入りを以後の計算に使う"""
        self.sunrise = weather.sunrise if weather else None
        self.sunset = weather.sunset if weather else None

    def tick(self) -> TimeContext:
        """現在時刻で再計算してコールバックに渡す"""
        self.current = calculate_time_context(self._clock(), self.sunrise, self.sunset)
        if self._on_tick is not None:
            self._on_tick(self.current)
        return self.current

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def _run(self):
        while True:
            self.tick()
            await asyncio.sleep(self._interval)

    async def stop(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
