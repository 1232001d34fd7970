"""按格式分派的体积优化策略：PDF / PNG / JPEG。

每种格式是一个独立的策略函数，只共享暂存文件的约定。任何失败（退出码非零、
超时、输出缺失、为空或无法解析）都回退为原样复制清除阶段的文件，
从不把损坏的优化结果向后传递。
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from PIL import Image, UnidentifiedImageError

from metaclean.core.config import ToolConfig
from metaclean.core.exceptions import OptimizeFailed
from metaclean.core.models import FileFormat, Stage, StagedArtifact
from metaclean.core.tools import GHOSTSCRIPT, JPEGOPTIM, PNGQUANT, ToolRunner

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OptimizationResult:
    """优化阶段的产出。``applied`` 为 False 表示使用了回退。"""

    artifact: StagedArtifact
    applied: bool
    note: Optional[str] = None


Strategy = Callable[[Path, Path, ToolRunner, ToolConfig], None]


def optimize(
    cleaned: StagedArtifact,
    file_format: FileFormat,
    destination: Path,
    runner: ToolRunner,
    config: ToolConfig,
) -> OptimizationResult:
    """对清除后的文件执行格式相关优化，失败时回退。"""

    strategy = _STRATEGIES[file_format]
    try:
        strategy(cleaned.path, destination, runner, config)
        size = _non_empty_size(destination)
    except OptimizeFailed as exc:
        LOGGER.warning("%s 优化失败，改用清除后的文件: %s", file_format.value.upper(), exc)
        return OptimizationResult(
            artifact=_copy_forward(cleaned, destination),
            applied=False,
            note=str(exc),
        )

    return OptimizationResult(
        artifact=StagedArtifact(path=destination, stage=Stage.OPTIMIZED, size=size),
        applied=True,
    )


def _optimize_pdf(source: Path, destination: Path, runner: ToolRunner, config: ToolConfig) -> None:
    result = runner.run(
        [
            GHOSTSCRIPT,
            f"-sDEVICE={config.pdf_device}",
            "-dCompatibilityLevel=1.4",
            f"-dPDFSETTINGS={config.pdf_preset}",
            "-dFastWebView=true",
            "-dAutoRotatePages=/None",
            "-dNOPAUSE",
            "-dQUIET",
            "-dBATCH",
            f"-sOutputFile={destination}",
            source,
        ]
    )
    if not result.ok:
        raise OptimizeFailed(result.describe())
    _non_empty_size(destination)

    # 用同一工具以无显示模式重新解析，确认输出可读。
    validation = runner.run([GHOSTSCRIPT, "-dNODISPLAY", "-dQUIET", "-dBATCH", destination])
    if not validation.ok:
        raise OptimizeFailed(f"优化后的 PDF 无法解析: {validation.describe()}")


def _optimize_png(source: Path, destination: Path, runner: ToolRunner, config: ToolConfig) -> None:
    result = runner.run(
        [
            PNGQUANT,
            f"--quality={config.png_quality_arg}",
            "--speed",
            "1",
            "--output",
            destination,
            "--force",
            source,
        ]
    )
    if not result.ok:
        raise OptimizeFailed(result.describe())
    _verify_image(destination, "PNG")


def _optimize_jpeg(source: Path, destination: Path, runner: ToolRunner, config: ToolConfig) -> None:
    result = runner.run(
        [JPEGOPTIM, f"--max={config.jpeg_max_quality}", "--strip-all", "--stdout", source],
        stdout_path=destination,
    )
    if not result.ok:
        raise OptimizeFailed(result.describe())
    _verify_image(destination, "JPEG")


_STRATEGIES: Dict[FileFormat, Strategy] = {
    FileFormat.PDF: _optimize_pdf,
    FileFormat.PNG: _optimize_png,
    FileFormat.JPEG: _optimize_jpeg,
}


def _verify_image(path: Path, expected_format: str) -> None:
    """用 Pillow 解码优化结果，确认格式正确且数据完整。"""

    _non_empty_size(path)
    try:
        with Image.open(path) as img:
            actual_format = img.format
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise OptimizeFailed(f"优化结果无法解码: {exc}") from exc
    if actual_format != expected_format:
        raise OptimizeFailed(f"优化结果格式不符: 期望 {expected_format}，实际 {actual_format}")


def _non_empty_size(path: Path) -> int:
    try:
        size = path.stat().st_size
    except FileNotFoundError as exc:
        raise OptimizeFailed("优化结果未生成") from exc
    if size == 0:
        raise OptimizeFailed("优化结果为空")
    return size


def _copy_forward(cleaned: StagedArtifact, destination: Path) -> StagedArtifact:
    destination.unlink(missing_ok=True)
    shutil.copyfile(cleaned.path, destination)
    return StagedArtifact(path=destination, stage=Stage.OPTIMIZED, size=destination.stat().st_size)
