"""文本处理与模糊匹配工具。

使用 rapidfuzz 计算编辑距离，分数越小越接近，0 表示精确匹配。
"""

from __future__ import annotations

import re
from typing import Iterable

from rapidfuzz.distance import Levenshtein

NO_MATCH = -1.0

DEFAULT_TYPO_RATIO = 0.25
MIN_TYPO_LENGTH = 4
DEFAULT_FILLER_WORDS = ("turn", "switch", "set", "to", "the")

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(value: str) -> str:
    """去除首尾空白、折叠大小写并合并连续空白。"""
    if not isinstance(value, str):
        return ""
    return _WHITESPACE_RE.sub(" ", value.strip()).casefold()


def tokenize(value: str) -> list[str]:
    """按空白切分为 token。"""
    normalized = normalize_text(value)
    if not normalized:
        return []
    return normalized.split(" ")


def is_subsequence(fragment: str, target: str) -> bool:
    """检查 fragment 的字符是否按顺序出现在 target 中。"""
    remaining = iter(target)
    return all(ch in remaining for ch in fragment)


def strip_filler(fragment: str, filler_words: Iterable[str] = DEFAULT_FILLER_WORDS) -> str:
    """去掉片段开头的连接词，如 "turn off" -> "off"。"""
    fillers = {word.casefold() for word in filler_words}
    tokens = fragment.split()
    start = 0
    while start < len(tokens) and tokens[start].casefold() in fillers:
        start += 1
    return " ".join(tokens[start:])


def score_text(
    fragment: str,
    target: str,
    typo_ratio: float = DEFAULT_TYPO_RATIO,
) -> float:
    """计算片段与目标文本的匹配分数。

    - fragment 是 target 的子序列时，返回编辑距离 / len(target)
    - 否则 fragment 足够长且归一化编辑距离不超过 typo_ratio 时，
      返回该归一化距离（容忍拼写错误）
    - 其余情况返回 NO_MATCH

    Args:
        fragment: 查询片段
        target: 目标文本（实体名、场景名或关键字）
        typo_ratio: 允许的拼写错误比例

    Returns:
        [0, 1] 范围内的分数，或 NO_MATCH
    """
    target = target.casefold()
    fragment = fragment.casefold()

    if not target:
        return 0.0

    if is_subsequence(fragment, target):
        return Levenshtein.distance(fragment, target) / len(target)

    if len(fragment) >= MIN_TYPO_LENGTH:
        distance = Levenshtein.normalized_distance(fragment, target)
        if distance <= typo_ratio:
            return distance

    return NO_MATCH


def score_with_filler(
    fragment: str,
    target: str,
    filler_words: Iterable[str] = DEFAULT_FILLER_WORDS,
    typo_ratio: float = DEFAULT_TYPO_RATIO,
) -> float:
    """同时对原始片段和去掉连接词的片段打分，取较好的结果。

    原始片段与目标完全相同时总是 0。只有去掉连接词后才匹配时，
    分数不低于原始片段与目标的归一化编辑距离，因此 "the den" 对
    "The Den" 的分数优于对 "Den" 的分数。

    Args:
        fragment: 查询片段
        target: 目标文本
        filler_words: 片段开头可忽略的连接词
        typo_ratio: 允许的拼写错误比例

    Returns:
        [0, 1] 范围内的分数，或 NO_MATCH
    """
    raw = score_text(fragment, target, typo_ratio)
    stripped = strip_filler(fragment, filler_words)
    if stripped == " ".join(fragment.split()):
        return raw

    relaxed = score_text(stripped, target, typo_ratio)
    if relaxed >= 0:
        relaxed = max(
            relaxed,
            Levenshtein.normalized_distance(fragment.casefold(), target.casefold()),
        )

    scores = [score for score in (raw, relaxed) if score >= 0]
    return min(scores) if scores else NO_MATCH
