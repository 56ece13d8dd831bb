"""应用配置：默认值、YAML 配置文件与环境变量覆盖。

优先级从低到高：内置默认值 < 配置文件 < ``WATERMARK_*`` 环境变量 < 命令行参数。
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import yaml

from image_watermark.core.config import DEFAULT_COLOR, DEFAULT_WORKERS, WatermarkConfig, validate_config
from image_watermark.core.exceptions import ConfigValidationError
from image_watermark.processing.fonts import DEFAULT_SYSTEM_FONT_PATHS, load_font
from image_watermark.utils.logging import LOG_LEVELS

LOGGER = logging.getLogger(__name__)

APP_NAME = "image-watermark"
ENV_PREFIX = "WATERMARK_"

# 命令行参数名到 AppSettings 字段的映射
OVERRIDE_FIELDS = {
    "font_size": "font_size",
    "opacity": "opacity",
    "text_spacing": "text_spacing",
    "line_spacing": "line_spacing",
    "quality": "quality",
    "color": "watermark_color",
}


@dataclass(slots=True)
class AppSettings:
    """应用级默认配置。"""

    font_path: str = "./DejaVuSans.ttf"
    font_size: float = 40.0
    opacity: int = 40
    text_spacing: float = 30.0
    line_spacing: float = 30.0
    quality: int = 95
    log_level: str = "info"
    watermark_color: Tuple[int, int, int] = DEFAULT_COLOR
    system_font_paths: list[str] = field(default_factory=lambda: list(DEFAULT_SYSTEM_FONT_PATHS))
    default_workers: int = DEFAULT_WORKERS
    source: Optional[Path] = None

    def to_mapping(self) -> dict[str, Any]:
        """转换为可写入 YAML 的字典。"""

        data = asdict(self)
        data.pop("source")
        r, g, b = self.watermark_color
        data["watermark_color"] = {"r": r, "g": g, "b": b}
        return data


_SCALAR_TYPES = {
    "font_path": str,
    "font_size": float,
    "opacity": int,
    "text_spacing": float,
    "line_spacing": float,
    "quality": int,
    "log_level": str,
    "default_workers": int,
}


def default_config_path() -> Path:
    return Path.home() / ".config" / APP_NAME / "config.yaml"


def search_paths() -> tuple[Path, ...]:
    """未显式指定配置文件时依次查找的位置。"""

    return (
        Path(f"{APP_NAME}.yaml"),
        default_config_path(),
        Path("/etc") / APP_NAME / "config.yaml",
    )


def find_config_file() -> Optional[Path]:
    for candidate in search_paths():
        if candidate.is_file():
            return candidate
    return None


def load_settings(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppSettings:
    """读取配置文件与环境变量，返回合并后的设置。

    显式指定的文件不存在时报错；自动查找时找不到文件则使用默认值。
    """

    settings = AppSettings()

    if config_file is not None:
        if not config_file.is_file():
            raise ConfigValidationError(f"配置文件不存在: {config_file}")
        path: Optional[Path] = config_file
    else:
        path = find_config_file()

    if path is not None:
        LOGGER.debug("读取配置文件: %s", path)
        settings = _apply_mapping(settings, _read_yaml(path), origin=str(path))
        settings.source = path

    env = os.environ if environ is None else environ
    env_values = {
        name: env[ENV_PREFIX + name.upper()] for name in _SCALAR_TYPES if ENV_PREFIX + name.upper() in env
    }
    if env_values:
        settings = _apply_mapping(settings, env_values, origin="环境变量")

    return settings


def build_watermark_config(
    settings: AppSettings,
    company_name: str,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    font_path: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> WatermarkConfig:
    """合并命令行覆盖项、加载字体并返回校验过的 WatermarkConfig。"""

    values = {OVERRIDE_FIELDS[key]: value for key, value in (overrides or {}).items() if value is not None}
    merged = _apply_mapping(settings, values, origin="命令行参数") if values else settings

    font = load_font(font_path or merged.font_path, merged.system_font_paths)

    config = WatermarkConfig(
        company_name=company_name,
        font=font,
        timestamp=timestamp or datetime.now(),
        font_size=merged.font_size,
        opacity=merged.opacity,
        text_spacing=merged.text_spacing,
        line_spacing=merged.line_spacing,
        output_quality=merged.quality,
        color=merged.watermark_color,
    )
    validate_config(config)
    return config


def generate_example_config(path: Path) -> Path:
    """写出一份带示例值的配置文件。"""

    example = replace(AppSettings(), font_size=45.0, opacity=60, text_spacing=35.0, line_spacing=35.0, quality=90)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(example.to_mapping(), handle, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return path


def _read_yaml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigValidationError(f"无法读取配置文件: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"配置文件格式错误: {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"配置文件顶层必须是映射: {path}")
    return data


def _apply_mapping(settings: AppSettings, data: Mapping[str, Any], origin: str) -> AppSettings:
    """返回应用了 data 的新设置；任一字段非法则整体失败。"""

    known = {item.name for item in fields(AppSettings)} - {"source"}
    changes: dict[str, Any] = {}

    for key, value in data.items():
        if key not in known:
            LOGGER.warning("忽略未知配置项 %s（来自 %s）", key, origin)
            continue
        if key == "watermark_color":
            changes[key] = _coerce_color(value, origin)
        elif key == "system_font_paths":
            if isinstance(value, str) or not isinstance(value, (list, tuple)):
                raise ConfigValidationError(f"system_font_paths 必须是列表（来自 {origin}）")
            changes[key] = [str(item) for item in value]
        else:
            changes[key] = _coerce_scalar(key, value, origin)

    return replace(settings, **changes)


def _coerce_scalar(key: str, value: Any, origin: str) -> Any:
    target = _SCALAR_TYPES[key]
    if key == "log_level":
        level = str(value).strip().lower()
        if level not in LOG_LEVELS:
            raise ConfigValidationError(
                f"未知的日志级别: {value!r}（来自 {origin}，可选 {', '.join(LOG_LEVELS)}）"
            )
        return level
    if target is str:
        return str(value)
    if isinstance(value, bool):
        raise ConfigValidationError(f"{key} 的值无效: {value!r}（来自 {origin}）")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigValidationError(f"{key} 的值无效: {value!r}（来自 {origin}）") from exc

    if target is int:
        if not number.is_integer():
            raise ConfigValidationError(f"{key} 必须为整数: {value!r}（来自 {origin}）")
        return int(number)
    return number


def _coerce_color(value: Any, origin: str) -> Tuple[int, int, int]:
    if isinstance(value, Mapping):
        channels = [value.get(name, 0) for name in ("r", "g", "b")]
    elif isinstance(value, (list, tuple)) and len(value) == 3:
        channels = list(value)
    else:
        raise ConfigValidationError(f"watermark_color 必须包含 r/g/b（来自 {origin}）")

    try:
        r, g, b = (int(channel) for channel in channels)
    except (TypeError, ValueError) as exc:
        raise ConfigValidationError(f"watermark_color 的值无效: {value!r}（来自 {origin}）") from exc
    return r, g, b
