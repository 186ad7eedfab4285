"""候选动作的最终评分与排序。

所有维度都遵循“越小越好”，排序就是一次稳定的升序字典序排序。
"""

from __future__ import annotations

from command_resolver.models import (
    Action,
    ActionKind,
    OnOff,
    SceneChange,
    ScoreSample,
    ScoreVector,
)

KIND_PRIORITY: dict[ActionKind, int] = {
    "group_onoff": 0,
    "group_color": 1,
    "group_scene": 2,
    "light_onoff": 3,
    "light_color": 4,
    "special": 5,
}
INVALID_KIND_PRIORITY = 6

CHANGE_INDEX_ON = 1
CHANGE_INDEX_OFF = 2


def match_quality(samples: list[ScoreSample]) -> float:
    """计算匹配质量。

    每个样本的接近度为 1 - score，按维度分别取所有切分中的最大接近度，
    求和后取负：两个维度都精确匹配时为 -2，越接近 0 越差。
    """
    if not samples:
        return 0.0
    best_name = max(1.0 - sample.name for sample in samples)
    best_change = max(1.0 - sample.change for sample in samples)
    return -(best_name + best_change)


def kind_priority(action: Action) -> int:
    """灯组级动作优先于单灯动作。"""
    return KIND_PRIORITY.get(action.kind, INVALID_KIND_PRIORITY)


def entity_index(action: Action) -> float:
    if action.target is None:
        return 0.0
    return -float(action.target.id)


def change_index(action: Action) -> float:
    change = action.change
    if isinstance(change, SceneChange):
        try:
            return float(int(change.scene.id))
        except ValueError:
            return 0.0
    if isinstance(change, OnOff):
        return CHANGE_INDEX_ON if change.value == "on" else CHANGE_INDEX_OFF
    return 0.0


def finalize_score(action: Action) -> ScoreVector:
    """计算并写回动作的 ScoreVector。"""
    action.score = ScoreVector(
        match_quality=match_quality(action.samples),
        kind_priority=kind_priority(action),
        entity_index=entity_index(action),
        change_index=change_index(action),
    )
    return action.score


def rank_actions(actions: list[Action], limit: int | None = None) -> list[Action]:
    """对候选动作评分并排序。

    使用稳定排序，分数完全相同的动作保持生成顺序。

    Args:
        actions: 候选动作
        limit: 返回数量上限，None 表示不截断

    Returns:
        排序后的动作列表
    """
    for action in actions:
        finalize_score(action)

    ranked = sorted(actions, key=lambda action: action.score)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
