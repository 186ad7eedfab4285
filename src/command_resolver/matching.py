"""实体名称与变更的匹配评分。

两个维度都返回 [0, 1] 的分数（0 为精确匹配），不匹配时返回 NO_MATCH。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from command_resolver.colors import parse_color
from command_resolver.models import Change, ColorChange, OnOff, SceneChange
from command_resolver.text import (
    DEFAULT_FILLER_WORDS,
    DEFAULT_TYPO_RATIO,
    NO_MATCH,
    score_with_filler,
    strip_filler,
)


@dataclass(frozen=True)
class MatchScore:
    """单个维度的匹配结果。

    color 仅在颜色匹配成功时携带规范化的颜色值。
    """

    score: float
    color: str | None = None

    @property
    def matched(self) -> bool:
        return self.score >= 0


NO_MATCH_SCORE = MatchScore(NO_MATCH)


class MatchScorer:
    """可配置的匹配评分器。"""

    def __init__(
        self,
        filler_words: Iterable[str] = DEFAULT_FILLER_WORDS,
        typo_ratio: float = DEFAULT_TYPO_RATIO,
    ):
        """初始化。

        Args:
            filler_words: 片段开头需要忽略的连接词
            typo_ratio: 非子序列时允许的最大归一化编辑距离
        """
        self.filler_words = tuple(word.casefold() for word in filler_words)
        self.typo_ratio = typo_ratio

    def entity_name(self, fragment: str, entity_name: str) -> float:
        """名称片段与实体名的匹配分数。空实体名视为精确匹配。"""
        if not entity_name:
            return 0.0
        return score_with_filler(fragment, entity_name, self.filler_words, self.typo_ratio)

    def change(self, fragment: str, change: Change) -> MatchScore:
        """变更片段与目标变更的匹配分数。"""
        if isinstance(change, OnOff):
            return self._text_score(fragment, change.value)
        if isinstance(change, SceneChange):
            return self._text_score(fragment, change.scene.name)
        if isinstance(change, ColorChange):
            color = parse_color(strip_filler(fragment, self.filler_words))
            if color is None:
                return NO_MATCH_SCORE
            return MatchScore(0.0, color=color)

        return MatchScore(0.0)

    def _text_score(self, fragment: str, target: str) -> MatchScore:
        score = score_with_filler(fragment, target, self.filler_words, self.typo_ratio)
        if score < 0:
            return NO_MATCH_SCORE
        return MatchScore(score)


_DEFAULT_SCORER = MatchScorer()


def entity_name_score(fragment: str, entity_name: str) -> float:
    """使用默认参数计算名称匹配分数。"""
    return _DEFAULT_SCORER.entity_name(fragment, entity_name)


def change_score(fragment: str, change: Change) -> MatchScore:
    """使用默认参数计算变更匹配分数。"""
    return _DEFAULT_SCORER.change(fragment, change)
