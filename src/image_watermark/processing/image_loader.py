"""图片加载与基础预处理实现。"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from image_watermark.core.exceptions import WatermarkError
from image_watermark.core.scanner import is_supported_image

LOGGER = logging.getLogger(__name__)


class DecodeError(WatermarkError):
    """图片解码失败。"""


def load_image(path: Path) -> Image.Image:
    """加载单张图片并执行 EXIF 旋转与模式归一化。

    带透明通道的图片保留为 RGBA，其余统一为 RGB。
    返回值为新的 Image 对象，调用者负责关闭。
    """

    if not is_supported_image(path):
        raise DecodeError(f"不支持的输入格式: {path.suffix}（支持 .jpg, .jpeg, .png）")

    try:
        with Image.open(path) as img:
            img.load()

            # EXIF Orientation 校正
            img = ImageOps.exif_transpose(img)

            if img.mode not in {"RGB", "RGBA"}:
                img = _normalize_mode(img)

            return img.copy()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", path, exc)
        raise DecodeError(f"无法加载图像: {path}") from exc


def _normalize_mode(img: Image.Image) -> Image.Image:
    """将其他模式转换为 RGB 或 RGBA。"""

    if img.mode == "LA" or (img.mode == "P" and "transparency" in img.info):
        return img.convert("RGBA")

    # CMYK、L、P 等直接转换
    return img.convert("RGB")
