"""引擎配置。

默认值可通过环境变量覆盖。
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from command_resolver.text import DEFAULT_FILLER_WORDS, DEFAULT_TYPO_RATIO

DEFAULT_REFRESH_INTERVAL = 60.0

_REFRESH_INTERVAL_ENV = "HUE_REFRESH_INTERVAL"
_FETCH_TIMEOUT_ENV = "HUE_FETCH_TIMEOUT"
_MAX_RESULTS_ENV = "HUE_MAX_RESULTS"
_DEBUG_SCORES_ENV = "HUE_DEBUG_SCORES"
_TYPO_RATIO_ENV = "HUE_TYPO_RATIO"
_FILLER_WORDS_ENV = "HUE_FILLER_WORDS"


@dataclass
class EngineConfig:
    refresh_interval: float | None = DEFAULT_REFRESH_INTERVAL
    fetch_timeout: float | None = None
    max_results: int | None = None
    debug_scores: bool = False
    typo_ratio: float = DEFAULT_TYPO_RATIO
    filler_words: tuple[str, ...] = field(default_factory=lambda: DEFAULT_FILLER_WORDS)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineConfig":
        """从环境变量读取配置，未设置的字段使用默认值。"""
        env = os.environ if environ is None else environ
        config = cls()

        interval = _read_float(env, _REFRESH_INTERVAL_ENV)
        if interval is not None:
            config.refresh_interval = interval if interval > 0 else None

        timeout = _read_float(env, _FETCH_TIMEOUT_ENV)
        if timeout is not None:
            config.fetch_timeout = timeout if timeout > 0 else None

        max_results = _read_int(env, _MAX_RESULTS_ENV)
        if max_results is not None:
            config.max_results = max_results if max_results > 0 else None

        typo_ratio = _read_float(env, _TYPO_RATIO_ENV)
        if typo_ratio is not None:
            config.typo_ratio = typo_ratio

        config.debug_scores = env.get(_DEBUG_SCORES_ENV, "").strip() == "1"

        fillers = env.get(_FILLER_WORDS_ENV)
        if fillers is not None:
            config.filler_words = tuple(
                word.strip().casefold() for word in fillers.split(",") if word.strip()
            )

        return config


def _read_float(env: Mapping[str, str], name: str) -> float | None:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _read_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
