"""处理任务的配置模型。"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

from metaclean.core.exceptions import InvalidConfigurationError
from metaclean.core.models import FinalizeMode

DEFAULT_PNG_QUALITY: Tuple[int, int] = (65, 80)
DEFAULT_JPEG_QUALITY = 80
DEFAULT_PDF_PRESET = "/ebook"
DEFAULT_PDF_DEVICE = "pdfwrite"
DEFAULT_TIMEOUT_SECONDS = 300.0

ENV_PNG_QUALITY = "PNG_QUALITY"
ENV_JPEG_QUALITY = "JPEG_QUALITY"
ENV_PDF_PRESET = "PDF_SETTINGS"
ENV_PDF_DEVICE = "GS_DEVICE"
ENV_TIMEOUT = "METACLEAN_TIMEOUT"


@dataclass(frozen=True, slots=True)
class ToolConfig:
    """外部优化工具的参数。"""

    png_quality: Tuple[int, int] = DEFAULT_PNG_QUALITY
    jpeg_max_quality: int = DEFAULT_JPEG_QUALITY
    pdf_preset: str = DEFAULT_PDF_PRESET
    pdf_device: str = DEFAULT_PDF_DEVICE
    timeout_seconds: Optional[float] = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        low, high = self.png_quality
        _check_quality(low, ENV_PNG_QUALITY)
        _check_quality(high, ENV_PNG_QUALITY)
        if low > high:
            raise InvalidConfigurationError(f"PNG 质量范围下限大于上限: {low}-{high}")
        _check_quality(self.jpeg_max_quality, ENV_JPEG_QUALITY)
        if not self.pdf_preset.startswith("/"):
            raise InvalidConfigurationError(f"PDF 预设必须以 / 开头: {self.pdf_preset}")
        if not self.pdf_device.strip():
            raise InvalidConfigurationError("Ghostscript 设备名不能为空")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise InvalidConfigurationError(f"超时时间必须大于 0: {self.timeout_seconds}")

    @property
    def png_quality_arg(self) -> str:
        low, high = self.png_quality
        return f"{low}-{high}"


@dataclass(frozen=True, slots=True)
class JobConfig:
    """单次批处理任务的配置集合。"""

    targets: Sequence[Path]
    mode: FinalizeMode = FinalizeMode.COPY
    verbose: bool = False
    tools: ToolConfig = field(default_factory=ToolConfig)
    optimize: bool = True
    max_workers: int = 1

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise InvalidConfigurationError(f"并发数量必须至少为 1: {self.max_workers}")


def parse_quality_range(value: str) -> Tuple[int, int]:
    """解析形如 ``65-80`` 的质量范围。"""

    parts = value.strip().split("-")
    if len(parts) != 2:
        raise InvalidConfigurationError(f"质量范围必须形如 65-80: {value!r}")
    try:
        low = int(parts[0])
        high = int(parts[1])
    except ValueError as exc:
        raise InvalidConfigurationError(f"质量范围必须为整数: {value!r}") from exc
    return low, high


def load_tool_config(environ: Optional[Mapping[str, str]] = None) -> ToolConfig:
    """从环境变量读取工具配置，未设置的项使用默认值。"""

    env = os.environ if environ is None else environ

    png_quality = DEFAULT_PNG_QUALITY
    if env.get(ENV_PNG_QUALITY):
        png_quality = parse_quality_range(env[ENV_PNG_QUALITY])

    jpeg_quality = DEFAULT_JPEG_QUALITY
    if env.get(ENV_JPEG_QUALITY):
        jpeg_quality = _parse_int(env[ENV_JPEG_QUALITY], ENV_JPEG_QUALITY)

    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS
    if env.get(ENV_TIMEOUT):
        try:
            timeout = float(env[ENV_TIMEOUT])
        except ValueError as exc:
            raise InvalidConfigurationError(f"{ENV_TIMEOUT} 必须为数字: {env[ENV_TIMEOUT]!r}") from exc

    return ToolConfig(
        png_quality=png_quality,
        jpeg_max_quality=jpeg_quality,
        pdf_preset=env.get(ENV_PDF_PRESET) or DEFAULT_PDF_PRESET,
        pdf_device=env.get(ENV_PDF_DEVICE) or DEFAULT_PDF_DEVICE,
        timeout_seconds=timeout,
    )


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value.strip())
    except ValueError as exc:
        raise InvalidConfigurationError(f"{name} 必须为整数: {value!r}") from exc


def _check_quality(value: int, name: str) -> None:
    if not 0 <= value <= 100:
        raise InvalidConfigurationError(f"{name} 质量取值必须在 0-100 之间: {value}")
