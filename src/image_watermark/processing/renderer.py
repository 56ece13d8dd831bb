"""Repeating diagonal text watermark renderer.

The watermark is drawn in straight rows on a square canvas whose side equals
the image diagonal. Each row is shifted left by a growing offset, and cropping
the centered original region back out yields the diagonal banding effect
without any rotation transform.

All layout arithmetic is done in points (1/72 inch) with the image measured
at ``REFERENCE_DPI``; conversion to pixels happens only when drawing.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterator, Optional

from PIL import Image, ImageDraw, ImageFont

from image_watermark.core.config import WatermarkConfig, validate_config
from image_watermark.core.exceptions import WatermarkError
from image_watermark.core.output_manager import ensure_parent_dir, save_image
from image_watermark.processing.image_loader import load_image

LOGGER = logging.getLogger(__name__)

REFERENCE_DPI = 96.0
POINTS_PER_INCH = 72.0
PIXELS_PER_POINT = REFERENCE_DPI / POINTS_PER_INCH

ROW_STAGGER = 1.5
ROW_SPAN = 2.0


class RenderError(WatermarkError):
    """水印渲染失败。"""


@dataclass(frozen=True, slots=True)
class CanvasLayout:
    """Geometry shared by canvas allocation, image placement and crop."""

    width_px: int
    height_px: int
    width: float
    height: float
    diagonal: float
    canvas_px: int

    @classmethod
    def for_size(cls, width_px: int, height_px: int) -> "CanvasLayout":
        width = width_px / PIXELS_PER_POINT
        height = height_px / PIXELS_PER_POINT
        diagonal = math.sqrt(width * width + height * height)
        # Same truncation is used for allocation and for the crop centre.
        canvas_px = max(int(diagonal * PIXELS_PER_POINT), width_px, height_px)
        return cls(width_px, height_px, width, height, diagonal, canvas_px)

    @property
    def crop_box(self) -> tuple[int, int, int, int]:
        centre = self.canvas_px // 2
        left = centre - self.width_px // 2
        top = centre - self.height_px // 2
        return left, top, left + self.width_px, top + self.height_px


def render_watermark(image: Image.Image, config: WatermarkConfig) -> Image.Image:
    """Return a new image of the same size with the tiled watermark burned in."""

    layout = CanvasLayout.for_size(*image.size)
    font = _build_font(config)
    text = config.watermark_text

    try:
        text_width = font.getlength(text) / PIXELS_PER_POINT
        ascent, descent = font.getmetrics()
    except (OSError, ValueError) as exc:
        raise RenderError(f"无法测量水印文字: {exc}") from exc

    try:
        canvas = Image.new("RGBA", (layout.canvas_px, layout.canvas_px), (255, 255, 255, 255))
        canvas.paste(image.convert("RGBA"), layout.crop_box[:2])

        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        for x, y in iter_tile_positions(config, layout, text_width, ascent, descent):
            draw.text((x, y), text, fill=config.fill, font=font, anchor="ls")

        flattened = Image.alpha_composite(canvas, overlay)
        cropped = flattened.crop(layout.crop_box)
    except (OSError, ValueError) as exc:
        raise RenderError(f"水印画布合成失败: {exc}") from exc

    return cropped if image.mode == "RGBA" else cropped.convert("RGB")


def iter_tile_positions(
    config: WatermarkConfig,
    layout: CanvasLayout,
    text_width: float,
    ascent: int = 0,
    descent: int = 0,
) -> Iterator[tuple[float, float]]:
    """Yield pixel baseline positions of every text tile that can touch the canvas.

    Rows are laid out bottom-up from ``-2 * diagonal`` to ``2 * diagonal``; row
    ``n`` (counting from 1) starts ``n * 1.5 * text_width`` left of the origin
    and repeats until it passes the canvas width.
    """

    row_stride = config.font_size + config.line_spacing
    column_stride = text_width + config.text_spacing
    if row_stride <= 0 or column_stride <= 0:
        raise RenderError(f"水印步长必须为正数: row={row_stride:g}, column={column_stride:g}")

    diagonal = layout.diagonal
    canvas_px = layout.canvas_px
    row_count = math.ceil((2 * ROW_SPAN * diagonal) / row_stride)

    for row_index in range(row_count):
        offset = -ROW_SPAN * diagonal + row_index * row_stride
        if offset >= ROW_SPAN * diagonal:
            break

        y = canvas_px - offset * PIXELS_PER_POINT
        if y + descent < 0 or y - ascent > canvas_px:
            continue

        line = row_index + 1
        start = -(line * ROW_STAGGER * text_width)
        # Skip columns that end before the left edge.
        first = max(0, math.floor((-text_width - start) / column_stride) - 1)
        column = first
        while True:
            x_offset = start + column * column_stride
            if x_offset >= diagonal:
                break
            yield x_offset * PIXELS_PER_POINT, y
            column += 1


def _build_font(config: WatermarkConfig) -> ImageFont.FreeTypeFont:
    """Create a private font face at the configured size for one render call."""

    size = max(1, int(round(config.font_size * PIXELS_PER_POINT)))
    try:
        return ImageFont.truetype(BytesIO(config.font.data), size=size, layout_engine=ImageFont.Layout.BASIC)
    except (OSError, ValueError, AttributeError) as exc:
        raise RenderError(f"无法从字体 {getattr(config.font, 'source', '?')} 创建字形: {exc}") from exc


class WatermarkRenderer:
    """Stateless renderer bound to one validated config."""

    def __init__(self, config: WatermarkConfig, logger: Optional[logging.Logger] = None) -> None:
        validate_config(config)
        self.config = config
        self.logger = logger or LOGGER

    def render(self, image: Image.Image) -> Image.Image:
        return render_watermark(image, self.config)

    def process_file(self, input_path: Path, output_path: Path) -> Path:
        """Single-file mode: decode, render, encode. Errors propagate to the caller."""

        self.logger.info("处理图片: %s -> %s", input_path, output_path)
        image = load_image(input_path)
        try:
            watermarked = self.render(image)
        finally:
            image.close()

        try:
            ensure_parent_dir(output_path)
            save_image(watermarked, output_path, quality=self.config.output_quality)
        finally:
            watermarked.close()

        self.logger.info("图片处理完成: %s", output_path)
        return output_path
