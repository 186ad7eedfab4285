"""颜色解析与色彩空间转换。

使用 tinycss2 解析 CSS 颜色表达式（十六进制、颜色名、rgb()/hsl() 函数），
使用 numpy 将 sRGB 转换为 bridge 使用的 CIE xy 坐标。
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from tinycss2.color3 import RGBA, parse_color as _parse_css_color

# sRGB (D65) -> CIE XYZ
_SRGB_TO_XYZ: NDArray[np.float64] = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)


def _parse_rgba(text: str) -> RGBA | None:
    if not text or not text.strip():
        return None
    parsed = _parse_css_color(text.strip())
    # currentColor 以字符串形式返回，无法确定具体颜色
    if not isinstance(parsed, RGBA):
        return None
    return parsed


def to_hex(rgba: RGBA) -> str:
    """将 RGBA 转换为 #rrggbb。"""
    channels = (rgba.red, rgba.green, rgba.blue)
    return "#" + "".join(
        f"{int(round(min(max(c, 0.0), 1.0) * 255)):02x}" for c in channels
    )


def parse_color(text: str) -> str | None:
    """解析颜色表达式。

    只接受完全不透明的颜色，`transparent`、`rgba(..., 0.5)` 等返回 None。

    Args:
        text: 颜色表达式，如 "#ff0000"、"red"、"rgb(255, 0, 0)"

    Returns:
        规范化的 #rrggbb，无法解析时返回 None
    """
    rgba = _parse_rgba(text)
    if rgba is None or rgba.alpha != 1:
        return None
    return to_hex(rgba)


def color_to_xy(color: str) -> tuple[float, float] | None:
    """计算颜色的 CIE 1931 xy 色度坐标。

    Args:
        color: 任意可解析的颜色表达式

    Returns:
        (x, y)，保留 4 位小数；无法解析或为纯黑时返回 None
    """
    rgba = _parse_rgba(color)
    if rgba is None:
        return None

    rgb = np.array([rgba.red, rgba.green, rgba.blue], dtype=np.float64)
    rgb = np.clip(rgb, 0.0, 1.0)
    linear = np.where(rgb <= 0.04045, rgb / 12.92, ((rgb + 0.055) / 1.055) ** 2.4)
    xyz = _SRGB_TO_XYZ @ linear

    total = float(xyz.sum())
    if total <= 0.0:
        return None

    return round(float(xyz[0]) / total, 4), round(float(xyz[1]) / total, 4)
