"""结果序列化与目录加载。

将排序后的动作转换为调用方（前端）使用的字典 / JSON，
并从 YAML 文件加载目录。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from command_resolver.catalog import CatalogSnapshot
from command_resolver.models import (
    Action,
    ColorChange,
    Group,
    Light,
    OnOff,
    Scene,
    SceneChange,
)


def action_to_dict(action: Action, with_debug: bool = False) -> dict[str, Any]:
    """将单个动作转换为字典。

    Args:
        action: 候选动作
        with_debug: 是否附带排序向量与原始分数样本

    Returns:
        可直接 JSON 序列化的字典
    """
    if action.special is not None:
        data: dict[str, Any] = {
            "kind": action.kind,
            "special": {
                "id": action.special.id,
                "data": {"message": action.special.message},
            },
        }
    else:
        data = {"kind": action.kind}
        if isinstance(action.target, Group):
            data["group"] = {"id": action.target.id, "name": action.target.name}
        elif isinstance(action.target, Light):
            data["light"] = {"id": action.target.id, "name": action.target.name}

        change = action.change
        if isinstance(change, SceneChange):
            data["scene"] = {"id": change.scene.id, "name": change.scene.name}
        elif isinstance(change, OnOff):
            data["onoff"] = change.value
        elif isinstance(change, ColorChange) and change.color:
            data["color"] = change.color

        data["description"] = str(action)

    if with_debug:
        data["debug"] = {
            "scores": list(action.score) if action.score is not None else None,
            "matchScores": [[s.name, s.change] for s in action.samples],
        }
    return data


def actions_to_payload(
    actions: Iterable[Action],
    with_debug: bool = False,
) -> list[dict[str, Any]]:
    return [action_to_dict(action, with_debug=with_debug) for action in actions]


def actions_to_json(actions: Iterable[Action], with_debug: bool = False) -> str:
    """将动作列表序列化为 JSON 数组文本。"""
    return json.dumps(actions_to_payload(actions, with_debug), ensure_ascii=False)


def _require(item: Mapping[str, Any], key: str, section: str) -> Any:
    if key not in item:
        raise ValueError(f"catalog {section} entry missing '{key}': {dict(item)!r}")
    return item[key]


def catalog_from_mapping(data: Mapping[str, Any] | None) -> CatalogSnapshot:
    """从字典构建目录快照。

    期望结构::

        groups: [{id: 1, name: Kitchen}]
        lights: [{id: 10, name: Lamp}]
        scenes: [{id: "5", name: Reading, group: "1"}]

    Raises:
        ValueError: 结构不合法
    """
    data = data or {}
    if not isinstance(data, Mapping):
        raise ValueError("catalog must be a mapping")

    groups = [
        Group(
            id=int(_require(item, "id", "group")),
            name=str(item.get("name") or ""),
        )
        for item in data.get("groups") or []
    ]
    lights = [
        Light(
            id=int(_require(item, "id", "light")),
            name=str(item.get("name") or ""),
        )
        for item in data.get("lights") or []
    ]
    scenes = [
        Scene(
            id=str(_require(item, "id", "scene")),
            name=str(item.get("name") or ""),
            group_id=str(item.get("group_id", item.get("group", ""))),
        )
        for item in data.get("scenes") or []
    ]
    return CatalogSnapshot(groups=tuple(groups), lights=tuple(lights), scenes=tuple(scenes))


def load_catalog(path: str | Path) -> CatalogSnapshot:
    """从 YAML 文件加载目录快照。"""
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    return catalog_from_mapping(data)
