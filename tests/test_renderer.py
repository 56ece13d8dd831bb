"""水印渲染器测试。"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from conftest import write_image
from image_watermark.core.models import FontHandle
from image_watermark.core.output_manager import EncodeError
from image_watermark.processing.image_loader import DecodeError
from image_watermark.processing.renderer import (
    CanvasLayout,
    RenderError,
    WatermarkRenderer,
    iter_tile_positions,
    render_watermark,
)


@pytest.mark.parametrize("size", [(64, 48), (1, 1), (301, 77), (40, 400), (257, 256)])
def test_render_keeps_pixel_dimensions(make_config, size: tuple[int, int]) -> None:
    image = Image.new("RGB", size, "white")

    result = render_watermark(image, make_config())

    assert result.size == size
    assert result.mode == "RGB"


def test_render_keeps_alpha_channel(make_config) -> None:
    image = Image.new("RGBA", (80, 60), (255, 0, 0, 128))

    result = render_watermark(image, make_config())

    assert result.mode == "RGBA"
    assert result.size == (80, 60)


def test_render_is_deterministic(make_config) -> None:
    image = Image.new("RGB", (200, 120), "white")
    config = make_config()

    first = render_watermark(image, config)
    second = render_watermark(image, config)

    assert first.tobytes() == second.tobytes()


def test_render_draws_text_over_whole_image(make_config) -> None:
    image = Image.new("RGB", (300, 200), "white")

    result = render_watermark(image, make_config(opacity=255))
    pixels = np.asarray(result.convert("L"))

    assert (pixels < 128).any()
    # 对角线画布裁剪后，上下左右四个区域都应覆盖到水印。
    half_h, half_w = pixels.shape[0] // 2, pixels.shape[1] // 2
    for quadrant in (
        pixels[:half_h, :half_w],
        pixels[:half_h, half_w:],
        pixels[half_h:, :half_w],
        pixels[half_h:, half_w:],
    ):
        assert (quadrant < 250).any()


def test_zero_opacity_leaves_image_untouched(make_config) -> None:
    image = Image.new("RGB", (120, 90), (12, 34, 56))

    result = render_watermark(image, make_config(opacity=0))

    assert result.tobytes() == image.tobytes()


def test_different_dates_change_output(make_config) -> None:
    image = Image.new("RGB", (160, 120), "white")

    first = render_watermark(image, make_config(opacity=255))
    second = render_watermark(image, make_config(opacity=255, timestamp=datetime(2031, 1, 1)))

    assert first.tobytes() != second.tobytes()


def test_malformed_font_raises_render_error(make_config) -> None:
    config = make_config(font=FontHandle(source="broken.ttf", data=b"not a font"))

    with pytest.raises(RenderError):
        render_watermark(Image.new("RGB", (32, 32), "white"), config)


def test_canvas_layout_crop_stays_inside_canvas() -> None:
    for width, height in [(1, 1), (3, 1000), (1000, 3), (640, 480), (641, 481)]:
        layout = CanvasLayout.for_size(width, height)
        left, top, right, bottom = layout.crop_box

        assert layout.canvas_px >= max(width, height)
        assert left >= 0 and top >= 0
        assert right <= layout.canvas_px and bottom <= layout.canvas_px
        assert (right - left, bottom - top) == (width, height)


def test_tile_positions_are_staggered_per_row(make_config) -> None:
    config = make_config(font_size=20.0, line_spacing=10.0, text_spacing=10.0)
    layout = CanvasLayout.for_size(300, 200)

    positions = list(iter_tile_positions(config, layout, text_width=50.0))
    rows: dict[float, list[float]] = {}
    for x, y in positions:
        rows.setdefault(y, []).append(x)

    assert len(rows) > 1
    starts = {min(xs) for xs in rows.values()}
    assert len(starts) > 1
    for xs in rows.values():
        assert max(xs) < layout.diagonal * 96 / 72


def test_non_positive_stride_is_rejected(make_config) -> None:
    config = make_config(text_spacing=10.0)
    layout = CanvasLayout.for_size(100, 100)

    with pytest.raises(RenderError):
        list(iter_tile_positions(config, layout, text_width=-20.0))


def test_process_file_writes_jpeg_and_png(tmp_path: Path, make_config) -> None:
    renderer = WatermarkRenderer(make_config(output_quality=80))
    source = write_image(tmp_path / "in.png", size=(90, 70))

    for name in ("nested/out.jpg", "out.png"):
        target = renderer.process_file(source, tmp_path / name)
        with Image.open(target) as written:
            assert written.size == (90, 70)


def test_process_file_propagates_decode_error(tmp_path: Path, make_config) -> None:
    corrupt = tmp_path / "broken.jpg"
    corrupt.write_bytes(b"\xff\xd8 definitely not a jpeg")

    with pytest.raises(DecodeError):
        WatermarkRenderer(make_config()).process_file(corrupt, tmp_path / "out.jpg")


def test_process_file_rejects_unknown_output_format(tmp_path: Path, make_config) -> None:
    source = write_image(tmp_path / "in.png")

    with pytest.raises(EncodeError):
        WatermarkRenderer(make_config()).process_file(source, tmp_path / "out.gif")


def test_transparent_png_becomes_white_jpeg(tmp_path: Path, make_config) -> None:
    source = write_image(tmp_path / "logo.png", size=(60, 60), color=(0, 0, 0, 0), mode="RGBA")
    target = tmp_path / "logo.jpg"

    WatermarkRenderer(make_config(opacity=0)).process_file(source, target)

    with Image.open(target) as written:
        assert written.mode == "RGB"
        assert min(written.getpixel((5, 5))) >= 250
