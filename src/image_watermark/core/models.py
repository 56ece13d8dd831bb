"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True, slots=True)
class FontHandle:
    """已加载的字体数据。

    只保存原始字节，渲染时按需要的字号重新构建字体对象，
    因此同一个句柄可以在多个工作线程之间只读共享。
    """

    source: str
    data: bytes = field(repr=False)


@dataclass(frozen=True, slots=True)
class BatchJob:
    """单个文件的处理任务。"""

    input_path: Path
    output_path: Path


@dataclass(slots=True)
class FileOutcome:
    """记录单个文件的处理结果（用于汇总/报告）。"""

    source_path: Path
    status: str
    output_path: Optional[Path] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "processed"

    @property
    def message(self) -> str:
        return str(self.error) if self.error is not None else ""


@dataclass(frozen=True, slots=True)
class BatchError:
    """批处理中单个文件的失败记录。"""

    file_path: Path
    error: Exception


@dataclass(frozen=True, slots=True)
class BatchResult:
    """批处理的最终汇总，所有工作线程结束后才会生成。"""

    total_count: int
    success_count: int
    error_count: int
    errors: tuple[BatchError, ...] = ()
    outcomes: tuple[FileOutcome, ...] = ()

    @classmethod
    def from_outcomes(cls, outcomes: list[FileOutcome]) -> "BatchResult":
        """根据全部结果记录构建汇总。"""

        errors = tuple(
            BatchError(file_path=outcome.source_path, error=outcome.error)
            for outcome in outcomes
            if not outcome.succeeded and outcome.error is not None
        )
        success_count = sum(1 for outcome in outcomes if outcome.succeeded)
        return cls(
            total_count=len(outcomes),
            success_count=success_count,
            error_count=len(outcomes) - success_count,
            errors=errors,
            outcomes=tuple(outcomes),
        )
