"""水印与批处理的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple

from image_watermark.core.exceptions import ConfigValidationError
from image_watermark.core.models import FontHandle

FONT_SIZE_RANGE = (10.0, 200.0)
SPACING_RANGE = (5.0, 200.0)
QUALITY_RANGE = (1, 100)
BYTE_RANGE = (0, 255)

DEFAULT_COLOR: Tuple[int, int, int] = (150, 150, 150)
DEFAULT_WORKERS = 4
DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True, slots=True)
class WatermarkConfig:
    """单次运行的水印参数，创建后不可修改。"""

    company_name: str
    font: FontHandle
    timestamp: datetime = field(default_factory=datetime.now)
    font_size: float = 40.0
    opacity: int = 40
    text_spacing: float = 30.0
    line_spacing: float = 30.0
    output_quality: int = 95
    color: Tuple[int, int, int] = DEFAULT_COLOR

    @property
    def watermark_text(self) -> str:
        return f"{self.company_name} - {self.timestamp.strftime(DATE_FORMAT)}"

    @property
    def fill(self) -> Tuple[int, int, int, int]:
        """RGBA 填充色，alpha 即透明度。"""

        r, g, b = self.color
        return r, g, b, self.opacity


@dataclass(frozen=True, slots=True)
class BatchOptions:
    """批处理行为配置。"""

    workers: int = DEFAULT_WORKERS
    recursive: bool = False


def validate_config(config: WatermarkConfig) -> None:
    """校验水印配置，不合法时抛出 ConfigValidationError。"""

    if config is None:
        raise ConfigValidationError("配置不能为空")

    if not isinstance(config.company_name, str) or not config.company_name.strip():
        raise ConfigValidationError("公司名称不能为空")

    _check_range("font_size", config.font_size, FONT_SIZE_RANGE)
    _check_range("text_spacing", config.text_spacing, SPACING_RANGE)
    _check_range("line_spacing", config.line_spacing, SPACING_RANGE)
    _check_int_range("output_quality", config.output_quality, QUALITY_RANGE)
    _check_int_range("opacity", config.opacity, BYTE_RANGE)

    if len(config.color) != 3:
        raise ConfigValidationError(f"颜色必须为 RGB 三元组: {config.color!r}")
    for channel in config.color:
        _check_int_range("color", channel, BYTE_RANGE)

    if not isinstance(config.font, FontHandle):
        raise ConfigValidationError("字体不能为空")


def validate_batch_options(options: BatchOptions) -> None:
    if options.workers < 1:
        raise ConfigValidationError(f"workers 必须大于等于 1，当前值: {options.workers}")


def _check_range(name: str, value: float, bounds: Tuple[float, float]) -> None:
    low, high = bounds
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError(f"{name} 必须为数字，当前值: {value!r}")
    if not low <= value <= high:
        raise ConfigValidationError(f"{name} 必须在 {low:g} 到 {high:g} 之间，当前值: {value:g}")


def _check_int_range(name: str, value: int, bounds: Tuple[int, int]) -> None:
    low, high = bounds
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValidationError(f"{name} 必须为整数，当前值: {value!r}")
    if not low <= value <= high:
        raise ConfigValidationError(f"{name} 必须在 {low} 到 {high} 之间，当前值: {value}")
