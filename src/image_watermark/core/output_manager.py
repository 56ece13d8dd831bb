"""输出路径映射与图像写入模块。"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from image_watermark.core.exceptions import DirectoryError, WatermarkError

LOGGER = logging.getLogger(__name__)

SUPPORTED_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
}


class EncodeError(WatermarkError):
    """输出编码或写入失败。"""


class OutputManager:
    """负责输出根目录与输入路径到输出路径的映射。"""

    def __init__(self, input_dir: Path, output_dir: Path) -> None:
        self.input_dir = input_dir
        self.output_dir = output_dir

    def prepare_root(self) -> None:
        """创建输出根目录，失败即整个批处理失败。"""

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryError(f"无法创建输出目录: {self.output_dir}") from exc

    def destination_for(self, source: Path) -> Path:
        """将输入文件的相对路径重新挂到输出目录下。"""

        try:
            relative = source.relative_to(self.input_dir)
        except ValueError:
            relative = Path(source.name)
        return self.output_dir / relative


def ensure_parent_dir(destination: Path) -> None:
    """创建目标文件所在目录，已存在时不报错（多个线程可能同时创建）。"""

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise EncodeError(f"无法创建输出子目录: {destination.parent}") from exc


def save_image(image: Image.Image, destination: Path, quality: int = 95) -> None:
    """按扩展名将 PIL Image 编码并保存到磁盘。"""

    suffix = destination.suffix.lower()
    image_format = SUPPORTED_FORMATS.get(suffix)
    if not image_format:
        raise EncodeError(f"不支持的输出格式: {suffix}（支持 .jpg, .jpeg, .png）")

    save_params: dict[str, object] = {}
    image_to_save = image
    if image_format == "JPEG":
        save_params.update(quality=quality)
        if image.mode == "RGBA":
            # JPEG 无透明通道，按白底合成
            image_to_save = Image.new("RGB", image.size, (255, 255, 255))
            image_to_save.paste(image, mask=image.getchannel("A"))
        elif image.mode != "RGB":
            image_to_save = image.convert("RGB")
    else:
        if image.mode not in {"RGB", "RGBA"}:
            image_to_save = image.convert("RGB")

    try:
        image_to_save.save(destination, format=image_format, **save_params)
    except (OSError, ValueError) as exc:
        raise EncodeError(f"写入文件失败: {destination}") from exc
    LOGGER.debug("已写入 %s（%s）", destination, image_format)
