"""颜色工具函数。"""

from __future__ import annotations

import re
from typing import Sequence, Tuple

from image_watermark.core.exceptions import ConfigValidationError

HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

RGB = Tuple[int, int, int]


def parse_hex_color(value: str) -> RGB:
    """将 HEX 字符串解析为 RGB 三元组。"""

    if not value:
        raise ConfigValidationError("颜色值不能为空")

    match = HEX_COLOR_RE.match(value.strip())
    if not match:
        raise ConfigValidationError(f"无法解析颜色值: {value}")

    hex_value = match.group(1)
    if len(hex_value) == 3:
        hex_value = "".join(ch * 2 for ch in hex_value)

    r = int(hex_value[0:2], 16)
    g = int(hex_value[2:4], 16)
    b = int(hex_value[4:6], 16)
    return r, g, b


def format_hex_color(color: Sequence[int]) -> str:
    """RGB 三元组转回 HEX 字符串，用于展示。"""

    r, g, b = color
    return f"#{r:02X}{g:02X}{b:02X}"
