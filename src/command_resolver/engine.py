"""索引管理器。

持有当前发布的目录快照，协调后台刷新，并提供 query / do 入口。

并发约定：
- 一把读写锁保护 {bridge, 快照, 错误}；
- 刷新由单个后台线程通过消息队列驱动，网络拉取在锁外进行，只有发布时持有写锁；
- 查询只在读取状态指针时短暂持有读锁，从不等待进行中的刷新。
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Literal

from readerwriterlock import rwlock

from command_resolver.assembler import ActionAssembler, ScoreBufferPool
from command_resolver.bridge import BridgeAccess, ConnectionProvider
from command_resolver.catalog import CatalogSnapshot, build_snapshot
from command_resolver.config import EngineConfig
from command_resolver.errors import (
    ExecutionFailed,
    InvalidAction,
    NoSourceConfigured,
    SourceFetchFailed,
)
from command_resolver.matching import MatchScorer
from command_resolver.models import LINK_ACTION, Action, SpecialAction, link_action
from command_resolver.query import parse_query
from command_resolver.ranking import rank_actions
from command_resolver.serialization import actions_to_json

logger = logging.getLogger(__name__)

Phase = Literal["uninitialized", "refreshing", "ready", "failed"]

WORKER_JOIN_TIMEOUT = 5.0


@dataclass(frozen=True)
class IndexState:
    """已发布的索引状态，snapshot 与 error 至多一个有值。"""

    snapshot: CatalogSnapshot | None = None
    error: SourceFetchFailed | None = None

    @property
    def phase(self) -> Phase:
        if self.error is not None:
            return "failed"
        if self.snapshot is not None:
            return "ready"
        return "uninitialized"


@dataclass
class _RefreshRequest:
    reason: str
    future: Future = field(default_factory=Future)


@dataclass
class _SetInterval:
    interval: float | None


_STOP = object()


class IndexManager:
    """命令解析引擎入口。"""

    def __init__(
        self,
        connection_provider: ConnectionProvider | None = None,
        bridge: BridgeAccess | None = None,
        config: EngineConfig | None = None,
    ):
        """初始化。

        Args:
            connection_provider: 链接 bridge 时调用的连接提供者
            bridge: 可选的已连接 bridge，提供时立即触发一次刷新
            config: 引擎配置，默认使用 EngineConfig()
        """
        self.config = config or EngineConfig()
        self._connection_provider = connection_provider

        self._lock = rwlock.RWLockFair()
        self._bridge: BridgeAccess | None = None
        self._state = IndexState()

        # 一旦链接成功就不再清除；之后 do 只需要读锁
        self._linked = threading.Event()
        self._refreshing = threading.Event()

        self.pool = ScoreBufferPool()
        self._assembler = ActionAssembler(
            MatchScorer(
                filler_words=self.config.filler_words,
                typo_ratio=self.config.typo_ratio,
            ),
            self.pool,
        )

        self._messages: queue.Queue[Any] = queue.Queue()
        self._interval = self.config.refresh_interval
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()
        self._closed = False

        if bridge is not None:
            self.set_source(bridge)

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------

    @property
    def state(self) -> IndexState:
        with self._lock.gen_rlock():
            return self._state

    @property
    def phase(self) -> Phase:
        state = self.state
        if self._refreshing.is_set():
            return "refreshing"
        return state.phase

    @property
    def linked(self) -> bool:
        return self._linked.is_set()

    # ------------------------------------------------------------------
    # 查询与执行
    # ------------------------------------------------------------------

    def query(self, text: str) -> list[Action]:
        """解析输入文本并返回排序后的候选动作。

        - 尚无目录：返回唯一的“链接 bridge”特殊动作
        - 最近一次刷新失败：抛出保存的错误
        - 目录可用：执行 切分 -> 匹配 -> 组装 -> 排序

        Raises:
            SourceFetchFailed: 最近一次刷新失败
        """
        with self._lock.gen_rlock():
            state = self._state

        if state.error is not None:
            # 每次抛出新的异常对象，已发布的错误被多个线程共享
            raise SourceFetchFailed(state.error.sources) from state.error

        if state.snapshot is None:
            logger.debug("query_without_catalog text=%r", text)
            return [link_action()]

        queries = parse_query(text)
        actions = self._assembler.assemble(state.snapshot, queries)
        ranked = rank_actions(actions, limit=self.config.max_results)

        logger.debug(
            "query text=%r queries=%s candidates=%s results=%s",
            text,
            len(queries),
            len(actions),
            len(ranked),
        )
        return ranked

    def query_json(self, text: str) -> str:
        """查询并序列化为 JSON，debug_scores 开启时附带评分向量。"""
        return actions_to_json(self.query(text), with_debug=self.config.debug_scores)

    def do(self, action: Action) -> Any:
        """执行动作。

        链接动作会调用 ConnectionProvider，成功后在后台刷新目录；
        其他动作交给 bridge 执行。

        Raises:
            InvalidAction: 动作不合法，或尚未链接 bridge
            NoSourceConfigured: 链接时没有 ConnectionProvider
            ExecutionFailed: bridge 执行失败
        """
        logger.info("do action=%s kind=%s", action, action.kind)

        # 首次链接之前需要写锁，避免并发重复链接
        if self._linked.is_set():
            lock = self._lock.gen_rlock()
        else:
            lock = self._lock.gen_wlock()

        with lock:
            if action.special is not None:
                return self._do_special(action.special)

            bridge = self._bridge
            if bridge is None:
                raise InvalidAction(f"no bridge linked, cannot perform {action}")
            if action.kind == "invalid":
                raise InvalidAction(f"unsupported action: {action}")

            try:
                return bridge.execute(action)
            except Exception as exc:
                logger.error("do_failed action=%s error=%r", action, exc)
                raise ExecutionFailed(action, exc) from exc

    def _do_special(self, special: SpecialAction) -> None:
        if special.id != LINK_ACTION.id:
            raise InvalidAction(f"unknown special action: {special.id}")
        self._link_locked()

    # ------------------------------------------------------------------
    # 链接
    # ------------------------------------------------------------------

    def link(self) -> None:
        """链接 bridge；已链接时什么也不做。"""
        with self._lock.gen_wlock():
            self._link_locked()

    def _link_locked(self) -> None:
        # 调用方需持有锁；未链接时一定是写锁
        if self._bridge is not None:
            return

        if self._connection_provider is None:
            raise NoSourceConfigured("no connection provider configured")

        logger.info("link_started")
        bridge = self._connection_provider.connect()
        self._bridge = bridge
        self._linked.set()
        logger.info("link_done")

        self.schedule_refresh("link")

    def set_source(self, bridge: BridgeAccess) -> Future:
        """切换到新的 bridge 并在后台刷新。

        刷新完成前，查询继续看到上一次发布的状态。
        """
        if bridge is None:
            raise ValueError("bridge must not be None")

        with self._lock.gen_wlock():
            self._bridge = bridge
            self._linked.set()

        logger.info("source_set")
        return self.schedule_refresh("source")

    # ------------------------------------------------------------------
    # 刷新
    # ------------------------------------------------------------------

    def schedule_refresh(self, reason: str = "manual") -> Future:
        """请求后台刷新，返回在发布后完成的 Future。"""
        request = _RefreshRequest(reason=reason)
        self._ensure_worker()
        self._messages.put(request)
        return request.future

    def refresh_now(self, timeout: float | None = None) -> CatalogSnapshot:
        """立即刷新并等待发布。

        Raises:
            NoSourceConfigured: 尚未链接 bridge
            SourceFetchFailed: 拉取失败（失败状态已发布）
        """
        return self.schedule_refresh("manual").result(timeout=timeout)

    def set_periodic_refresh(self, interval: float | None) -> None:
        """设置周期刷新间隔（秒），None 或 0 表示关闭。"""
        normalized = interval if interval and interval > 0 else None
        self._interval = normalized
        self._ensure_worker()
        self._messages.put(_SetInterval(normalized))
        logger.info("periodic_refresh interval=%s", normalized)

    def _publish(self, state: IndexState) -> None:
        with self._lock.gen_wlock():
            self._state = state

    def _refresh(self, reason: str) -> CatalogSnapshot:
        with self._lock.gen_rlock():
            bridge = self._bridge

        if bridge is None:
            raise NoSourceConfigured("no bridge linked")

        logger.info("refresh_started reason=%s", reason)
        started = time.monotonic()
        try:
            snapshot = build_snapshot(bridge, timeout=self.config.fetch_timeout)
        except SourceFetchFailed as exc:
            self._publish(IndexState(error=exc))
            logger.error(
                "refresh_failed reason=%s sources=%s",
                reason,
                ",".join(exc.sources),
            )
            raise

        self._publish(IndexState(snapshot=snapshot))
        logger.info(
            "refresh_done reason=%s groups=%s lights=%s scenes=%s elapsed=%.3f",
            reason,
            len(snapshot.groups),
            len(snapshot.lights),
            len(snapshot.scenes),
            time.monotonic() - started,
        )
        return snapshot

    def _process(self, request: _RefreshRequest) -> None:
        error: BaseException | None = None
        snapshot: CatalogSnapshot | None = None

        self._refreshing.set()
        try:
            snapshot = self._refresh(request.reason)
        except (NoSourceConfigured, SourceFetchFailed) as exc:
            error = exc
        except Exception as exc:
            logger.exception("refresh_crashed reason=%s", request.reason)
            error = exc
        finally:
            self._refreshing.clear()

        # 先清除刷新标志再通知等待方，保证其看到的 phase 已是最终状态
        if error is not None:
            request.future.set_exception(error)
        else:
            request.future.set_result(snapshot)

    def _run(self) -> None:
        interval = self._interval
        deadline = time.monotonic() + interval if interval else None

        while True:
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                message = self._messages.get(timeout=timeout)
            except queue.Empty:
                message = _RefreshRequest(reason="periodic")

            if message is _STOP:
                break

            if isinstance(message, _SetInterval):
                interval = message.interval
                deadline = time.monotonic() + interval if interval else None
                continue

            if message.reason == "periodic" and not self._linked.is_set():
                logger.debug("periodic_refresh_skipped reason=not_linked")
            else:
                self._process(message)

            if interval:
                deadline = time.monotonic() + interval

    def _ensure_worker(self) -> None:
        with self._worker_lock:
            if self._closed:
                raise RuntimeError("index manager is closed")
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._run,
                    name="index-refresh",
                    daemon=True,
                )
                self._worker.start()

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def close(self) -> None:
        """停止后台刷新线程，未处理的刷新请求以异常结束。"""
        with self._worker_lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker

        if worker is not None:
            self._messages.put(_STOP)
            worker.join(WORKER_JOIN_TIMEOUT)
            if worker.is_alive():
                # 刷新仍在进行，_STOP 留在队列中，线程处理完已排队的请求后退出
                logger.warning("close_worker_busy timeout=%s", WORKER_JOIN_TIMEOUT)
                return

        while True:
            try:
                message = self._messages.get_nowait()
            except queue.Empty:
                break
            if isinstance(message, _RefreshRequest):
                message.future.set_exception(RuntimeError("index manager is closed"))

    def __enter__(self) -> "IndexManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
