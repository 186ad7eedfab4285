"""核心数据模型定义。

包含目录实体、变更、查询、候选动作、评分向量以及特殊动作。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, NamedTuple, Union

from command_resolver.colors import color_to_xy


@dataclass(frozen=True)
class Group:
    """房间 / 灯组。"""

    id: int
    name: str


@dataclass(frozen=True)
class Light:
    """单个灯。"""

    id: int
    name: str


@dataclass(frozen=True)
class Scene:
    """场景，只属于一个灯组。"""

    id: str
    name: str
    group_id: str


Entity = Union[Group, Light, Scene]


def entity_kind(entity: Entity) -> Literal["group", "light", "scene"]:
    """返回实体类别。"""
    if isinstance(entity, Group):
        return "group"
    if isinstance(entity, Light):
        return "light"
    return "scene"


@dataclass(frozen=True)
class OnOff:
    """开关变更。"""

    value: Literal["on", "off"]


@dataclass(frozen=True)
class SceneChange:
    """激活场景。"""

    scene: Scene


@dataclass(frozen=True)
class ColorChange:
    """设置颜色，color 为规范化后的 #rrggbb。"""

    color: str = ""


@dataclass(frozen=True)
class Unconstrained:
    """不限定变更。"""


Change = Union[OnOff, SceneChange, ColorChange, Unconstrained]

TURN_ON = OnOff("on")
TURN_OFF = OnOff("off")
ANY_COLOR = ColorChange()
UNCONSTRAINED = Unconstrained()


@dataclass(frozen=True)
class Query:
    """一次切分得到的候选查询。"""

    name: str
    change: str
    split: int = 0
    name_first: bool = True


class ScoreSample(NamedTuple):
    """某个切分下的 (名称分数, 变更分数)。"""

    name: float
    change: float


class ScoreVector(NamedTuple):
    """最终排序向量，数值越小越靠前。"""

    match_quality: float
    kind_priority: float
    entity_index: float
    change_index: float


@dataclass(frozen=True)
class SpecialAction:
    """非目录动作，目前只有链接 bridge。"""

    id: str
    message: str


LINK_ACTION = SpecialAction(id="link", message="Link Hue Bridge")

ActionKind = Literal[
    "group_onoff",
    "group_color",
    "group_scene",
    "light_onoff",
    "light_color",
    "special",
    "invalid",
]


@dataclass
class Action:
    """候选动作。

    samples 是原始分数缓冲：每个存活的切分贡献一条 ScoreSample，
    score 在排序阶段才计算。
    """

    target: Group | Light | None = None
    change: Change = UNCONSTRAINED
    special: SpecialAction | None = None
    samples: list[ScoreSample] = field(default_factory=list)
    score: ScoreVector | None = None

    @property
    def kind(self) -> ActionKind:
        if self.special is not None:
            return "special"
        if isinstance(self.target, Group):
            if isinstance(self.change, OnOff):
                return "group_onoff"
            if isinstance(self.change, ColorChange) and self.change.color:
                return "group_color"
            if isinstance(self.change, SceneChange):
                return "group_scene"
        if isinstance(self.target, Light):
            if isinstance(self.change, OnOff):
                return "light_onoff"
            if isinstance(self.change, ColorChange) and self.change.color:
                return "light_color"
        return "invalid"

    def state_update(self) -> dict[str, object]:
        """将变更转换为 bridge 状态负载。"""
        change = self.change
        if isinstance(change, SceneChange):
            return {"scene": change.scene.id}
        if isinstance(change, OnOff):
            return {"on": change.value == "on"}
        if isinstance(change, ColorChange) and change.color:
            xy = color_to_xy(change.color)
            if xy is None:
                return {"on": True}
            return {"on": True, "xy": [xy[0], xy[1]]}
        return {}

    def __str__(self) -> str:
        if self.special is not None:
            return self.special.message

        if isinstance(self.target, Group):
            name = f"Room {self.target.name!r}"
        elif isinstance(self.target, Light):
            name = f"Light {self.target.name!r}"
        else:
            name = "<invalid>"

        change = self.change
        if isinstance(change, OnOff):
            description = f"turn {change.value}"
        elif isinstance(change, ColorChange) and change.color:
            description = f"turn {change.color}"
        elif isinstance(change, SceneChange):
            description = f"activate {change.scene.name!r}"
        else:
            description = ""

        return f"{name}: {description}"


def link_action() -> Action:
    """构造“需要链接 bridge”的特殊动作。"""
    return Action(special=LINK_ACTION)
