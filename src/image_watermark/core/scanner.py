"""文件扫描与筛选逻辑。"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from image_watermark.core.exceptions import DirectoryError

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}


def _iter_candidate_files(path: Path, recursive: bool) -> Iterator[Path]:
    """遍历路径下的所有文件，非递归模式只看根目录。"""

    iterator = path.rglob("*") if recursive else path.glob("*")
    for candidate in iterator:
        if candidate.is_file():
            yield candidate


def is_supported_image(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def find_image_files(input_dir: Path, recursive: bool = False) -> list[Path]:
    """扫描输入目录，返回按路径排序的图片列表。"""

    if not input_dir.is_dir():
        raise DirectoryError(f"输入目录不存在或不是文件夹: {input_dir}")

    try:
        collected = [candidate for candidate in _iter_candidate_files(input_dir, recursive) if is_supported_image(candidate)]
    except OSError as exc:
        raise DirectoryError(f"无法遍历输入目录: {input_dir}") from exc

    collected.sort(key=lambda x: (str(x).lower(), str(x)))
    return collected
