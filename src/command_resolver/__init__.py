"""Natural-language command resolver for Hue lighting."""

from command_resolver.bridge import (
    BridgeAccess,
    ConnectionProvider,
    InMemoryBridge,
    StaticConnectionProvider,
)
from command_resolver.catalog import CatalogSnapshot, build_snapshot
from command_resolver.config import EngineConfig
from command_resolver.engine import IndexManager, IndexState
from command_resolver.errors import (
    CommandResolverError,
    ExecutionFailed,
    InvalidAction,
    NoSourceConfigured,
    SourceFetchFailed,
)
from command_resolver.models import (
    LINK_ACTION,
    Action,
    ColorChange,
    Group,
    Light,
    OnOff,
    Query,
    Scene,
    SceneChange,
    ScoreSample,
    ScoreVector,
    SpecialAction,
)
from command_resolver.query import parse_query
from command_resolver.ranking import rank_actions
from command_resolver.serialization import actions_to_json, load_catalog

__all__ = [
    "LINK_ACTION",
    "Action",
    "BridgeAccess",
    "CatalogSnapshot",
    "ColorChange",
    "CommandResolverError",
    "ConnectionProvider",
    "EngineConfig",
    "ExecutionFailed",
    "Group",
    "InMemoryBridge",
    "IndexManager",
    "IndexState",
    "InvalidAction",
    "Light",
    "NoSourceConfigured",
    "OnOff",
    "Query",
    "Scene",
    "SceneChange",
    "ScoreSample",
    "ScoreVector",
    "SourceFetchFailed",
    "SpecialAction",
    "StaticConnectionProvider",
    "actions_to_json",
    "build_snapshot",
    "load_catalog",
    "parse_query",
    "rank_actions",
]
