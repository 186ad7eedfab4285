"""候选动作组装。

对每个目录实体：先用名称片段过滤候选查询，再对该实体适用的每种变更打分，
两个维度都匹配的组合成为一个 Action。
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator

from command_resolver.catalog import CatalogSnapshot
from command_resolver.matching import MatchScore, MatchScorer
from command_resolver.models import (
    ANY_COLOR,
    TURN_OFF,
    TURN_ON,
    Action,
    Change,
    ColorChange,
    Group,
    Light,
    Query,
    SceneChange,
    ScoreSample,
)

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 8


class ScoreBuffer:
    """当前实体下仍然存活的查询及其名称分数。"""

    def __init__(self) -> None:
        self.queries: list[Query] = []
        self.name_scores: list[float] = []

    def reset(self, queries: Iterable[Query] = ()) -> None:
        """清空上一次的内容并载入新的查询，复用已有列表。"""
        self.queries.clear()
        self.queries.extend(queries)
        self.name_scores.clear()
        self.name_scores.extend([0.0] * len(self.queries))

    def score(self, scoring: Callable[[Query], float]) -> bool:
        """对名称打分，就地丢弃不匹配的查询。

        Returns:
            是否仍有存活的查询
        """
        kept = 0
        for query in self.queries:
            value = scoring(query)
            if value < 0:
                continue
            self.queries[kept] = query
            self.name_scores[kept] = value
            kept += 1

        del self.queries[kept:]
        del self.name_scores[kept:]
        return kept > 0

    def finalize(
        self,
        scoring: Callable[[Query], MatchScore],
    ) -> tuple[list[ScoreSample], str | None]:
        """对变更打分，不修改缓冲。

        Returns:
            (samples, color)：第一个颜色附注，以及颜色与之一致的存活切分的分数样本
        """
        samples: list[ScoreSample] = []
        color: str | None = None
        for query, name_score in zip(self.queries, self.name_scores):
            result = scoring(query)
            if not result.matched:
                continue
            if result.color:
                # 只保留与第一个颜色一致的切分
                if color is None:
                    color = result.color
                elif result.color != color:
                    continue
            samples.append(ScoreSample(name_score, result.score))
        return samples, color


class ScoreBufferPool:
    """ScoreBuffer 的空闲列表。

    获取时清空，归还后调用方不得再使用该缓冲。
    """

    def __init__(self, max_size: int = DEFAULT_POOL_SIZE):
        self.max_size = max_size
        self._free: list[ScoreBuffer] = []
        self._lock = threading.Lock()

    def acquire(self) -> ScoreBuffer:
        with self._lock:
            buffer = self._free.pop() if self._free else ScoreBuffer()
        buffer.reset()
        return buffer

    def release(self, buffer: ScoreBuffer) -> None:
        buffer.reset()
        with self._lock:
            if len(self._free) < self.max_size:
                self._free.append(buffer)

    @contextmanager
    def borrow(self) -> Iterator[ScoreBuffer]:
        buffer = self.acquire()
        try:
            yield buffer
        finally:
            self.release(buffer)

    def __len__(self) -> int:
        with self._lock:
            return len(self._free)


class ActionAssembler:
    """将目录实体与候选查询组合为候选动作。"""

    def __init__(
        self,
        scorer: MatchScorer | None = None,
        pool: ScoreBufferPool | None = None,
    ):
        self.scorer = scorer or MatchScorer()
        self.pool = pool or ScoreBufferPool()

    def assemble(self, snapshot: CatalogSnapshot, queries: list[Query]) -> list[Action]:
        """生成所有匹配的候选动作。

        顺序：按目录顺序遍历灯组（开、关、颜色、所属场景），然后遍历灯（开、关、颜色）。

        Args:
            snapshot: 目录快照
            queries: 候选查询

        Returns:
            未排序的候选动作列表
        """
        actions: list[Action] = []
        if not queries:
            return actions

        with self.pool.borrow() as buffer:
            for group in snapshot.groups:
                buffer.reset(queries)
                if not buffer.score(lambda q: self.scorer.entity_name(q.name, group.name)):
                    continue

                self._add_change(actions, buffer, group, TURN_ON)
                self._add_change(actions, buffer, group, TURN_OFF)
                self._add_color(actions, buffer, group)

                for scene in snapshot.scenes_for(group):
                    self._add_change(actions, buffer, group, SceneChange(scene))

            for light in snapshot.lights:
                buffer.reset(queries)
                if not buffer.score(lambda q: self.scorer.entity_name(q.name, light.name)):
                    continue

                self._add_change(actions, buffer, light, TURN_ON)
                self._add_change(actions, buffer, light, TURN_OFF)
                self._add_color(actions, buffer, light)

        logger.debug("assembled queries=%s actions=%s", len(queries), len(actions))
        return actions

    def _add_change(
        self,
        actions: list[Action],
        buffer: ScoreBuffer,
        target: Group | Light,
        change: Change,
    ) -> None:
        samples, _ = buffer.finalize(lambda q: self.scorer.change(q.change, change))
        if samples:
            actions.append(Action(target=target, change=change, samples=samples))

    def _add_color(
        self,
        actions: list[Action],
        buffer: ScoreBuffer,
        target: Group | Light,
    ) -> None:
        samples, color = buffer.finalize(lambda q: self.scorer.change(q.change, ANY_COLOR))
        if samples and color:
            actions.append(Action(target=target, change=ColorChange(color), samples=samples))
