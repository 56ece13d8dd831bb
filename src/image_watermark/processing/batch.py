"""批处理协调器：扫描目录、线程池分发任务、汇总结果。"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from image_watermark.core.config import BatchOptions, WatermarkConfig, validate_batch_options
from image_watermark.core.exceptions import DirectoryError
from image_watermark.core.models import BatchJob, BatchResult, FileOutcome
from image_watermark.core.output_manager import EncodeError, OutputManager, ensure_parent_dir
from image_watermark.core.progress import ProgressCallback, ProgressUpdate
from image_watermark.core.scanner import find_image_files
from image_watermark.processing.renderer import WatermarkRenderer
from image_watermark.processing.worker import run_job

LOGGER = logging.getLogger(__name__)


class BatchProcessor:
    """将目录下的图片分发给固定数量的工作线程处理。"""

    def __init__(
        self,
        config: WatermarkConfig,
        options: Optional[BatchOptions] = None,
        logger: Optional[logging.Logger] = None,
        progress_callback: ProgressCallback = None,
    ) -> None:
        self.options = options or BatchOptions()
        validate_batch_options(self.options)
        self.logger = logger or LOGGER
        self.renderer = WatermarkRenderer(config, logger=self.logger)
        self.progress_callback = progress_callback

    @property
    def config(self) -> WatermarkConfig:
        return self.renderer.config

    def process_directory(self, input_dir: Path, output_dir: Path) -> BatchResult:
        """处理整个目录；只有目录级错误会抛出 DirectoryError。"""

        image_files = find_image_files(input_dir, recursive=self.options.recursive)
        if not image_files:
            raise DirectoryError(f"目录中没有找到图片文件: {input_dir}")

        self.logger.info(
            "开始批处理：input=%s output=%s files=%d workers=%d recursive=%s",
            input_dir,
            output_dir,
            len(image_files),
            self.options.workers,
            self.options.recursive,
        )

        output_manager = OutputManager(input_dir, output_dir)
        output_manager.prepare_root()

        outcomes: list[FileOutcome] = []
        jobs: list[BatchJob] = []
        for source in image_files:
            destination = output_manager.destination_for(source)
            try:
                ensure_parent_dir(destination)
            except EncodeError as exc:
                self.logger.warning("跳过文件，无法创建输出子目录：%s (%s)", source, exc)
                outcomes.append(FileOutcome(source_path=source, status="error-output-dir", error=exc))
                continue
            jobs.append(BatchJob(input_path=source, output_path=destination))

        total = len(image_files)
        outcomes.extend(self._run_jobs(jobs, total, already_done=len(outcomes)))

        result = BatchResult.from_outcomes(outcomes)
        for error in result.errors:
            self.logger.error("处理失败：%s -> %s", error.file_path, error.error)
        self.logger.info(
            "批处理完成：success=%d errors=%d total=%d",
            result.success_count,
            result.error_count,
            result.total_count,
        )
        return result

    def _run_jobs(self, jobs: list[BatchJob], total: int, already_done: int) -> list[FileOutcome]:
        """执行全部任务，所有工作线程结束后才返回。"""

        collected: list[FileOutcome] = []
        failed = already_done

        if self.options.workers <= 1:
            for job in jobs:
                outcome = self._execute(job)
                collected.append(outcome)
                failed += 0 if outcome.succeeded else 1
                self._record(outcome, total, already_done + len(collected), failed)
            return collected

        # with 语句退出即等待所有工作线程结束
        with ThreadPoolExecutor(max_workers=self.options.workers, thread_name_prefix="watermark") as executor:
            futures = [executor.submit(self._execute, job) for job in jobs]
            for future in as_completed(futures):
                outcome = future.result()
                collected.append(outcome)
                failed += 0 if outcome.succeeded else 1
                self._record(outcome, total, already_done + len(collected), failed)

        return collected

    def _execute(self, job: BatchJob) -> FileOutcome:
        try:
            return run_job(job, self.renderer)
        except Exception as exc:  # noqa: BLE001
            self.logger.exception("任务执行异常：%s", job.input_path)
            return FileOutcome(source_path=job.input_path, status="error-worker", error=exc)

    def _record(self, outcome: FileOutcome, total: int, completed: int, failed: int) -> None:
        if outcome.succeeded:
            self.logger.debug("处理成功：%s", outcome.source_path)

        if self.progress_callback:
            self.progress_callback(
                ProgressUpdate(total=total, completed=completed, failed=failed, current=outcome.source_path)
            )
