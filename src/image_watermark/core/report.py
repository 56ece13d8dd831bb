"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path

from image_watermark.core.models import BatchResult

HEADER = ["source_path", "output_path", "status", "message"]


def write_csv_report(result: BatchResult, report_path: Path) -> Path:
    """将每个文件的处理结果写入 CSV 报告，按源路径排序。"""

    report_path.parent.mkdir(parents=True, exist_ok=True)
    outcomes = sorted(result.outcomes, key=lambda record: str(record.source_path))
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in outcomes:
            writer.writerow(
                [
                    str(record.source_path),
                    str(record.output_path) if record.output_path else "",
                    record.status,
                    record.message,
                ]
            )
    return report_path
