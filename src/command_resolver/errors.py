"""命令解析引擎的异常定义。"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from command_resolver.models import Action


class CommandResolverError(Exception):
    """所有引擎异常的基类。"""


class NoSourceConfigured(CommandResolverError):
    """尚未连接 bridge，或没有可用的 ConnectionProvider。"""


class SourceFetchFailed(CommandResolverError):
    """刷新时一个或多个目录拉取失败，整次刷新被拒绝。"""

    def __init__(self, sources: Iterable[str], message: str = ""):
        self.sources = tuple(sources)
        detail = message or "catalog fetch failed"
        super().__init__(f"{detail}: {', '.join(self.sources)}")


class InvalidAction(CommandResolverError):
    """动作既不是合法的实体/变更组合，也不是已知的特殊动作。"""


class ExecutionFailed(CommandResolverError):
    """bridge 执行动作失败。"""

    def __init__(self, action: "Action", cause: BaseException):
        self.action = action
        self.cause = cause
        super().__init__(f"{action}: {cause}")
