"""命令行入口。"""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from metaclean.core.config import (
    DEFAULT_JPEG_QUALITY,
    DEFAULT_PDF_DEVICE,
    DEFAULT_PDF_PRESET,
    DEFAULT_TIMEOUT_SECONDS,
    ENV_JPEG_QUALITY,
    ENV_PDF_DEVICE,
    ENV_PDF_PRESET,
    ENV_PNG_QUALITY,
    ENV_TIMEOUT,
    JobConfig,
    ToolConfig,
    parse_quality_range,
)
from metaclean.core.exceptions import InvalidConfigurationError, ToolUnavailableError
from metaclean.core.models import FinalizeMode
from metaclean.core.progress import ProgressUpdate
from metaclean.core.report import build_outcome_table, format_delta, format_size, summarize
from metaclean.processing.pipeline import process_batch
from metaclean.utils.logging import setup_logging

app = typer.Typer(help="清除 PDF、PNG、JPEG 文件的元数据并压缩体积。")


def _parse_png_quality(value: str) -> Tuple[int, int]:
    try:
        return parse_quality_range(value)
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _version_callback(value: bool) -> None:
    if not value:
        return
    try:
        typer.echo(f"metaclean {package_version('metaclean')}")
    except PackageNotFoundError:
        typer.echo("metaclean (未安装)")
    raise typer.Exit()


def _build_progress_callback(progress: Progress, verbose: bool):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理文件", total=update.total)
        progress.update(task_id, completed=update.completed)
        outcome = update.outcome
        if outcome is not None and outcome.final_size is not None:
            progress.log(
                f"{outcome.source_path.name}: {format_size(outcome.original_size)} → "
                f"{format_size(outcome.final_size)} | Δ {format_delta(outcome.original_size, outcome.final_size)}"
                f" ({outcome.strategy})"
            )
        elif verbose and update.message:
            progress.log(update.message)

    return callback


@app.command("run")
def run_cli(  # noqa: PLR0913
    targets: List[Path] = typer.Argument(..., help="待处理的文件或目录，可指定多个"),
    replace: bool = typer.Option(False, "--replace", help="替换原文件而非生成副本（慎用）"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="显示清除前后的元数据与调试日志"),
    optimize: bool = typer.Option(True, "--optimize/--no-optimize", help="是否在清除后压缩体积"),
    png_quality: str = typer.Option("65-80", "--png-quality", envvar=ENV_PNG_QUALITY, help="PNG 质量范围 min-max"),
    jpeg_quality: int = typer.Option(
        DEFAULT_JPEG_QUALITY, "--jpeg-quality", envvar=ENV_JPEG_QUALITY, help="JPEG 最高质量 0-100"
    ),
    pdf_settings: str = typer.Option(
        DEFAULT_PDF_PRESET, "--pdf-settings", envvar=ENV_PDF_PRESET, help="Ghostscript PDFSETTINGS 预设"
    ),
    gs_device: str = typer.Option(DEFAULT_PDF_DEVICE, "--gs-device", envvar=ENV_PDF_DEVICE, help="Ghostscript 输出设备"),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT_SECONDS, "--timeout", envvar=ENV_TIMEOUT, help="单次外部命令的超时秒数"
    ),
    max_workers: int = typer.Option(1, "--workers", "-w", help="并发处理的文件数量"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="显示版本信息"
    ),
) -> None:
    """清除元数据并优化文件，默认在原目录生成 *_cleaned_opt 副本。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    logger = logging.getLogger(__name__)

    try:
        tools = ToolConfig(
            png_quality=_parse_png_quality(png_quality),
            jpeg_max_quality=jpeg_quality,
            pdf_preset=pdf_settings,
            pdf_device=gs_device,
            timeout_seconds=timeout,
        )
        job = JobConfig(
            targets=[p.expanduser() for p in targets],
            mode=FinalizeMode.REPLACE if replace else FinalizeMode.COPY,
            verbose=verbose,
            tools=tools,
            optimize=optimize,
            max_workers=max_workers,
        )
    except InvalidConfigurationError as exc:
        typer.echo(f"配置错误：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    logger.debug("CLI 参数解析完成")

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
    )

    try:
        with progress:
            result = process_batch(job, progress_callback=_build_progress_callback(progress, verbose))
    except ToolUnavailableError as exc:
        typer.echo(f"{exc}。请先安装后重试。", err=True)
        raise typer.Exit(code=1) from exc

    Console().print(build_outcome_table(result))
    typer.echo(summarize(result))
    raise typer.Exit(code=result.exit_code)


if __name__ == "__main__":
    app()
