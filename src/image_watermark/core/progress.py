"""批处理进度通知。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """每完成一个文件发出一次。"""

    total: int
    completed: int
    failed: int = 0
    current: Optional[Path] = None

    @property
    def finished(self) -> bool:
        return self.completed >= self.total


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]
