"""并发处理的工作单元。"""

from __future__ import annotations

from typing import Optional

from PIL import Image

from image_watermark.core.models import BatchJob, FileOutcome
from image_watermark.core.output_manager import EncodeError, save_image
from image_watermark.processing.image_loader import DecodeError, load_image
from image_watermark.processing.renderer import RenderError, WatermarkRenderer


def run_job(job: BatchJob, renderer: WatermarkRenderer) -> FileOutcome:
    """在工作线程中完成单个文件：解码、渲染、编码、写入。"""

    try:
        image = load_image(job.input_path)
    except DecodeError as exc:
        return FileOutcome(source_path=job.input_path, status="error-decode", error=exc)

    watermarked: Optional[Image.Image] = None
    try:
        try:
            watermarked = renderer.render(image)
        except RenderError as exc:
            return FileOutcome(source_path=job.input_path, status="error-render", error=exc)

        try:
            save_image(watermarked, job.output_path, quality=renderer.config.output_quality)
        except EncodeError as exc:
            return FileOutcome(source_path=job.input_path, status="error-encode", error=exc)
    finally:
        image.close()
        if watermarked is not None:
            watermarked.close()

    return FileOutcome(source_path=job.input_path, status="processed", output_path=job.output_path)
