"""Font discovery and loading with system-font fallback."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from PIL import ImageFont

from image_watermark.core.exceptions import WatermarkError
from image_watermark.core.models import FontHandle

LOGGER = logging.getLogger(__name__)

BUILTIN_FONT_SOURCE = "<pillow-default>"

DEFAULT_SYSTEM_FONT_PATHS: tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Arial.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "/Windows/Fonts/arial.ttf",
    "/Windows/Fonts/Arial.ttf",
    "/usr/share/fonts/TTF/arial.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
)

PathLike = Union[str, Path]


class FontLoadError(WatermarkError):
    """No usable font could be loaded."""


def load_font(
    font_path: Optional[PathLike],
    fallback_paths: Sequence[PathLike] = DEFAULT_SYSTEM_FONT_PATHS,
    *,
    allow_builtin: bool = True,
) -> FontHandle:
    """Load ``font_path``, falling back to system fonts and finally Pillow's bundled font.

    Every candidate is parsed once so that a broken file is skipped here rather
    than failing later inside a render call.
    """

    if font_path:
        try:
            return _load_from_path(Path(font_path))
        except FontLoadError as exc:
            LOGGER.warning("指定字体不可用，尝试系统字体: %s", exc)

    for candidate in available_system_fonts(fallback_paths):
        try:
            handle = _load_from_path(candidate)
        except FontLoadError as exc:
            LOGGER.debug("跳过系统字体 %s: %s", candidate, exc)
            continue
        LOGGER.info("使用系统字体: %s", candidate)
        return handle

    if allow_builtin:
        LOGGER.info("未找到可用的字体文件，使用 Pillow 内置字体")
        return load_builtin_font()

    raise FontLoadError(f"没有找到可用的字体。已尝试: {font_path or '-'} 以及系统字体")


def load_builtin_font() -> FontHandle:
    """Return Pillow's embedded TrueType default font as a handle."""

    try:
        font = ImageFont.load_default(size=12)
    except (OSError, TypeError) as exc:
        raise FontLoadError("当前 Pillow 不支持内置 TrueType 字体") from exc

    data = getattr(font, "font_bytes", None)
    if not data:
        raise FontLoadError("当前 Pillow 不支持内置 TrueType 字体")
    return FontHandle(source=BUILTIN_FONT_SOURCE, data=data)


def available_system_fonts(paths: Iterable[PathLike]) -> list[Path]:
    """Return the fallback font paths that exist on this machine."""

    return [Path(path) for path in paths if Path(path).is_file()]


def _load_from_path(path: Path) -> FontHandle:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise FontLoadError(f"无法读取字体文件 {path}: {exc}") from exc

    _parse(data, str(path))
    return FontHandle(source=str(path), data=data)


def _parse(data: bytes, source: str) -> None:
    try:
        ImageFont.truetype(BytesIO(data), size=12)
    except (OSError, ValueError) as exc:
        raise FontLoadError(f"无法解析字体文件 {source}: {exc}") from exc
