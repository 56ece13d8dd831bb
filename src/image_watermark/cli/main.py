"""命令行入口。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from image_watermark.core.config import BatchOptions
from image_watermark.core.exceptions import WatermarkError
from image_watermark.core.progress import ProgressUpdate
from image_watermark.core.report import write_csv_report
from image_watermark.core.settings import (
    AppSettings,
    build_watermark_config,
    default_config_path,
    generate_example_config,
    load_settings,
)
from image_watermark.processing.batch import BatchProcessor
from image_watermark.processing.renderer import WatermarkRenderer
from image_watermark.utils.colors import format_hex_color, parse_hex_color
from image_watermark.utils.logging import parse_log_level, setup_logging

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="为图片批量添加斜向重复的文字水印（公司名 + 日期）。")
config_app = typer.Typer(help="配置文件管理。")
app.add_typer(config_app, name="config")


@dataclass(slots=True)
class CliState:
    """在子命令之间传递的运行时状态。"""

    settings: AppSettings


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", help="配置文件路径（默认查找 ./image-watermark.yaml 与 ~/.config/image-watermark/config.yaml）"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="日志级别 debug/info/warning/error"),
    verbose: bool = typer.Option(False, "--verbose", help="输出带时间戳的详细日志"),
) -> None:
    """加载配置并初始化日志。"""

    setup_logging(parse_log_level(log_level or "info"), verbose=verbose)
    try:
        settings = load_settings(config)
    except WatermarkError as exc:
        LOGGER.error("加载配置失败：%s", exc)
        raise typer.Exit(code=1) from exc

    if log_level is None:
        setup_logging(parse_log_level(settings.log_level), verbose=verbose)
    ctx.obj = CliState(settings=settings)


def _collect_overrides(
    size: Optional[float],
    opacity: Optional[int],
    text_spacing: Optional[float],
    line_spacing: Optional[float],
    quality: Optional[int],
    color: Optional[str],
) -> dict[str, Any]:
    return {
        "font_size": size,
        "opacity": opacity,
        "text_spacing": text_spacing,
        "line_spacing": line_spacing,
        "quality": quality,
        "color": parse_hex_color(color) if color else None,
    }


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("添加水印", total=update.total)
        progress.update(task_id, completed=update.completed)

    return callback


@app.command("process")
def process_cli(  # noqa: PLR0913
    ctx: typer.Context,
    input_path: Path = typer.Argument(..., help="输入图片（.jpg/.jpeg/.png）"),
    output_path: Path = typer.Argument(..., help="输出图片路径，格式由扩展名决定"),
    company: str = typer.Option(..., "--company", "-c", help="水印中的公司名称"),
    font: Optional[Path] = typer.Option(None, "--font", "-f", help="TTF 字体文件"),
    size: Optional[float] = typer.Option(None, "--size", "-s", help="字号 (10-200)"),
    opacity: Optional[int] = typer.Option(None, "--opacity", "-o", help="水印透明度 (0-255)"),
    text_spacing: Optional[float] = typer.Option(None, "--text-spacing", "-x", help="同一行水印之间的水平间距"),
    line_spacing: Optional[float] = typer.Option(None, "--line-spacing", "-y", help="水印行之间的垂直间距"),
    quality: Optional[int] = typer.Option(None, "--quality", "-q", help="JPEG 输出质量 (1-100)"),
    color: Optional[str] = typer.Option(None, "--color", help="水印颜色 (HEX)"),
) -> None:
    """处理单张图片。"""

    state: CliState = ctx.obj
    try:
        overrides = _collect_overrides(size, opacity, text_spacing, line_spacing, quality, color)
        config = build_watermark_config(
            state.settings, company, overrides, font_path=str(font) if font else None
        )
        WatermarkRenderer(config, logger=LOGGER).process_file(input_path, output_path)
    except WatermarkError as exc:
        LOGGER.error("处理失败：%s", exc)
        raise typer.Exit(code=1) from exc

    typer.echo(f"处理完成：{output_path}")


@app.command("batch")
def batch_cli(  # noqa: PLR0913
    ctx: typer.Context,
    input_dir: Path = typer.Argument(..., help="输入目录"),
    output_dir: Path = typer.Argument(..., help="输出目录，保留原有子目录结构"),
    company: str = typer.Option(..., "--company", "-c", help="水印中的公司名称"),
    font: Optional[Path] = typer.Option(None, "--font", "-f", help="TTF 字体文件"),
    size: Optional[float] = typer.Option(None, "--size", "-s", help="字号 (10-200)"),
    opacity: Optional[int] = typer.Option(None, "--opacity", "-o", help="水印透明度 (0-255)"),
    text_spacing: Optional[float] = typer.Option(None, "--text-spacing", "-x", help="同一行水印之间的水平间距"),
    line_spacing: Optional[float] = typer.Option(None, "--line-spacing", "-y", help="水印行之间的垂直间距"),
    quality: Optional[int] = typer.Option(None, "--quality", "-q", help="JPEG 输出质量 (1-100)"),
    color: Optional[str] = typer.Option(None, "--color", help="水印颜色 (HEX)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="并发线程数量"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="递归处理子目录"),
    report: Optional[Path] = typer.Option(None, "--report", help="将逐个文件的结果写入 CSV 报告"),
) -> None:
    """批量处理目录中的图片。"""

    state: CliState = ctx.obj
    options = BatchOptions(
        workers=workers if workers is not None else state.settings.default_workers,
        recursive=recursive,
    )

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
    )

    try:
        overrides = _collect_overrides(size, opacity, text_spacing, line_spacing, quality, color)
        config = build_watermark_config(
            state.settings, company, overrides, font_path=str(font) if font else None
        )
        processor = BatchProcessor(
            config,
            options,
            logger=LOGGER,
            progress_callback=_build_progress_callback(progress),
        )
        with progress:
            result = processor.process_directory(input_dir, output_dir)
    except WatermarkError as exc:
        LOGGER.error("批处理失败：%s", exc)
        raise typer.Exit(code=1) from exc

    if report is not None:
        try:
            write_csv_report(result, report)
        except OSError as exc:
            LOGGER.error("写入报告失败：%s", exc)
        else:
            typer.echo(f"报告文件：{report}")

    if result.error_count:
        for error in result.errors:
            typer.echo(f"失败：{error.file_path}：{error.error}", err=True)
        typer.echo(f"处理完成：成功 {result.success_count} 张，失败 {result.error_count} 张，共 {result.total_count} 张。")
    else:
        typer.echo(f"全部 {result.success_count} 张图片处理成功。")


@config_app.command("generate")
def generate_config_cli(
    filename: Optional[Path] = typer.Argument(None, help="输出文件，默认 ~/.config/image-watermark/config.yaml"),
) -> None:
    """生成示例配置文件。"""

    target = filename or default_config_path()
    try:
        generate_example_config(target)
    except OSError as exc:
        LOGGER.error("生成配置文件失败：%s", exc)
        raise typer.Exit(code=1) from exc

    typer.echo(f"配置文件已生成：{target}")


@config_app.command("show")
def show_config_cli(ctx: typer.Context) -> None:
    """显示当前生效的配置。"""

    settings = ctx.obj.settings
    typer.echo("当前配置：")
    typer.echo(f"  配置文件:     {settings.source or '（未找到，使用默认值）'}")
    typer.echo(f"  字体路径:     {settings.font_path}")
    typer.echo(f"  字号:         {settings.font_size:.1f}")
    typer.echo(f"  透明度:       {settings.opacity}")
    typer.echo(f"  水平间距:     {settings.text_spacing:.1f}")
    typer.echo(f"  行间距:       {settings.line_spacing:.1f}")
    typer.echo(f"  JPEG 质量:    {settings.quality}")
    typer.echo(f"  日志级别:     {settings.log_level}")
    typer.echo(f"  默认线程数:   {settings.default_workers}")
    typer.echo(f"  水印颜色:     {format_hex_color(settings.watermark_color)}")
    typer.echo("系统字体路径：")
    for path in settings.system_font_paths:
        typer.echo(f"  - {path}")


if __name__ == "__main__":
    app()
