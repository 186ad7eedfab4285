"""外部协作方接口。

BridgeAccess 负责读取目录与执行动作，ConnectionProvider 负责建立 bridge 连接。
具体网络协议不在本包范围内；这里提供内存实现，便于测试和离线 demo。
"""

from __future__ import annotations

import threading
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Protocol

from command_resolver.catalog import CatalogSnapshot
from command_resolver.models import Action, Group, Light, Scene

DEFAULT_GATE_TIMEOUT = 5.0


class BridgeAccess(Protocol):
    """bridge 访问协议。"""

    def fetch_groups(self) -> list[Group]:
        """拉取全部灯组。"""
        ...

    def fetch_lights(self) -> list[Light]:
        """拉取全部灯。"""
        ...

    def fetch_scenes(self) -> list[Scene]:
        """拉取全部场景。"""
        ...

    def execute(self, action: Action) -> Any:
        """将已解析的动作应用到真实设备。"""
        ...


class ConnectionProvider(Protocol):
    """bridge 连接协议。"""

    def connect(self) -> BridgeAccess:
        """建立连接，失败时抛出异常。"""
        ...


class InMemoryBridge(BridgeAccess):
    """基于内存目录的 bridge（用于测试和离线 demo）。"""

    def __init__(
        self,
        groups: Iterable[Group] = (),
        lights: Iterable[Light] = (),
        scenes: Iterable[Scene] = (),
        failures: dict[str, BaseException] | None = None,
        gate: threading.Event | None = None,
        gate_timeout: float = DEFAULT_GATE_TIMEOUT,
    ):
        """初始化。

        Args:
            groups: 灯组
            lights: 灯
            scenes: 场景
            failures: 预设失败，key 为 "groups"/"lights"/"scenes"/"execute"
            gate: 可选事件，拉取会阻塞直到事件被设置，用于模拟慢速请求
            gate_timeout: 等待 gate 的上限（秒）
        """
        self._lock = threading.Lock()
        self._groups = list(groups)
        self._lights = list(lights)
        self._scenes = list(scenes)
        self.failures: dict[str, BaseException] = dict(failures or {})
        self.gate = gate
        self.gate_timeout = gate_timeout
        self.fetch_calls: Counter[str] = Counter()
        self.executed: list[tuple[Action, dict[str, object]]] = []

    @classmethod
    def from_snapshot(cls, snapshot: CatalogSnapshot, **kwargs: Any) -> "InMemoryBridge":
        return cls(snapshot.groups, snapshot.lights, snapshot.scenes, **kwargs)

    @classmethod
    def from_yaml(cls, path: str | Path, **kwargs: Any) -> "InMemoryBridge":
        """从 YAML 目录文件构造。"""
        from command_resolver.serialization import load_catalog

        return cls.from_snapshot(load_catalog(path), **kwargs)

    def set_catalog(
        self,
        groups: Iterable[Group] = (),
        lights: Iterable[Light] = (),
        scenes: Iterable[Scene] = (),
    ) -> None:
        """整体替换目录。"""
        with self._lock:
            self._groups = list(groups)
            self._lights = list(lights)
            self._scenes = list(scenes)

    def fetch_groups(self) -> list[Group]:
        return self._fetch("groups")

    def fetch_lights(self) -> list[Light]:
        return self._fetch("lights")

    def fetch_scenes(self) -> list[Scene]:
        return self._fetch("scenes")

    def execute(self, action: Action) -> dict[str, object]:
        error = self.failures.get("execute")
        if error is not None:
            raise error

        update = action.state_update()
        with self._lock:
            self.executed.append((action, update))
        return update

    def _fetch(self, name: str) -> list:
        with self._lock:
            self.fetch_calls[name] += 1
            items = {
                "groups": self._groups,
                "lights": self._lights,
                "scenes": self._scenes,
            }[name]
            items = list(items)

        if self.gate is not None:
            self.gate.wait(self.gate_timeout)

        error = self.failures.get(name)
        if error is not None:
            raise error
        return items


class StaticConnectionProvider(ConnectionProvider):
    """返回固定 bridge 的连接提供者。"""

    def __init__(
        self,
        bridge: BridgeAccess | None = None,
        error: BaseException | None = None,
        gate: threading.Event | None = None,
        gate_timeout: float = DEFAULT_GATE_TIMEOUT,
    ):
        self.bridge = bridge
        self.error = error
        self.gate = gate
        self.gate_timeout = gate_timeout
        self.calls = 0
        self._lock = threading.Lock()

    def connect(self) -> BridgeAccess:
        with self._lock:
            self.calls += 1

        if self.gate is not None:
            self.gate.wait(self.gate_timeout)

        if self.error is not None:
            raise self.error
        if self.bridge is None:
            raise ConnectionError("no bridge available")
        return self.bridge
