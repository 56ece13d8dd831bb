"""测试公共夹具。"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from image_watermark.core.config import WatermarkConfig
from image_watermark.core.models import FontHandle
from image_watermark.processing.fonts import load_builtin_font

FIXED_TIMESTAMP = datetime(2024, 5, 17, 9, 30)


@pytest.fixture(scope="session")
def font_handle() -> FontHandle:
    return load_builtin_font()


@pytest.fixture
def make_config(font_handle: FontHandle) -> Callable[..., WatermarkConfig]:
    def factory(**overrides) -> WatermarkConfig:
        params = dict(
            company_name="ACME Corp",
            font=font_handle,
            timestamp=FIXED_TIMESTAMP,
            font_size=20.0,
            opacity=160,
            text_spacing=10.0,
            line_spacing=10.0,
            color=(0, 0, 0),
        )
        params.update(overrides)
        return WatermarkConfig(**params)

    return factory


def write_image(path: Path, size: tuple[int, int] = (64, 48), color: str = "white", mode: str = "RGB") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path)
    return path
