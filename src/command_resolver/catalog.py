"""目录快照。

快照一旦构建即只读；刷新总是生成新的快照而不是修改旧的。
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FetchTimeout
from dataclasses import dataclass
from typing import TYPE_CHECKING

from command_resolver.errors import SourceFetchFailed
from command_resolver.models import Group, Light, Scene

if TYPE_CHECKING:
    from command_resolver.bridge import BridgeAccess

logger = logging.getLogger(__name__)

_FETCHES = (
    ("groups", "fetch_groups"),
    ("lights", "fetch_lights"),
    ("scenes", "fetch_scenes"),
)


@dataclass(frozen=True)
class CatalogSnapshot:
    """某一时刻的灯组、灯和场景。"""

    groups: tuple[Group, ...] = ()
    lights: tuple[Light, ...] = ()
    scenes: tuple[Scene, ...] = ()

    def scenes_for(self, group: Group) -> list[Scene]:
        """返回属于该灯组的场景，保持目录顺序。"""
        group_id = str(group.id)
        return [scene for scene in self.scenes if scene.group_id == group_id]

    def find_group(self, group_id: int) -> Group | None:
        return next((g for g in self.groups if g.id == group_id), None)

    def find_light(self, light_id: int) -> Light | None:
        return next((light for light in self.lights if light.id == light_id), None)

    def find_scene(self, scene_id: str) -> Scene | None:
        return next((s for s in self.scenes if s.id == scene_id), None)


def build_snapshot(
    bridge: "BridgeAccess",
    timeout: float | None = None,
) -> CatalogSnapshot:
    """并发拉取灯组、灯和场景并构建快照。

    三个拉取全部成功才返回快照；任意一个失败（包括超时）都会拒绝整次构建。

    Args:
        bridge: bridge 访问接口
        timeout: 单个拉取的等待上限（秒），None 表示不限

    Returns:
        新的 CatalogSnapshot

    Raises:
        SourceFetchFailed: 任一拉取失败
    """
    results: dict[str, list] = {}
    failures: dict[str, BaseException] = {}
    timed_out = False

    executor = ThreadPoolExecutor(max_workers=len(_FETCHES), thread_name_prefix="catalog-fetch")
    try:
        futures: dict[str, Future] = {
            name: executor.submit(getattr(bridge, method)) for name, method in _FETCHES
        }
        for name, future in futures.items():
            try:
                results[name] = list(future.result(timeout=timeout))
            except FetchTimeout as exc:
                timed_out = True
                failures[name] = exc
            except Exception as exc:
                failures[name] = exc
    finally:
        # 超时的拉取不再等待，其余情况等待全部拉取结束
        executor.shutdown(wait=not timed_out, cancel_futures=True)

    if failures:
        logger.warning(
            "catalog_fetch_failed sources=%s errors=%s",
            ",".join(failures),
            "; ".join(f"{name}={exc!r}" for name, exc in failures.items()),
        )
        raise SourceFetchFailed(failures) from next(iter(failures.values()))

    snapshot = CatalogSnapshot(
        groups=tuple(results["groups"]),
        lights=tuple(results["lights"]),
        scenes=tuple(results["scenes"]),
    )
    logger.debug(
        "catalog_built groups=%s lights=%s scenes=%s",
        len(snapshot.groups),
        len(snapshot.lights),
        len(snapshot.scenes),
    )
    return snapshot
