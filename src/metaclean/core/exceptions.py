"""项目内使用的自定义异常定义。"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from metaclean.core.models import RejectionReason


class MetaCleanError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(MetaCleanError):
    """配置不合法时抛出。"""


class StagingError(MetaCleanError):
    """临时暂存区使用不当或创建失败。"""


class ToolUnavailableError(MetaCleanError):
    """缺少必需的外部命令，整个批次无法开始。"""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(f"缺少外部依赖: {', '.join(self.missing)}")


class PathRejected(MetaCleanError):
    """路径校验未通过。"""

    def __init__(self, reason: RejectionReason, path: str | Path, detail: str | None = None) -> None:
        self.reason = reason
        self.path = str(path)
        message = f"{reason.value}: {self.path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CleanFailed(MetaCleanError):
    """元数据清除失败，单个文件的处理终止。"""


class OptimizeFailed(MetaCleanError):
    """优化失败，仅在优化器内部使用并触发回退。"""


class FinalizeError(MetaCleanError):
    """写入最终结果失败。"""


class DestinationExists(FinalizeError):
    """目标文件已存在，拒绝覆盖。"""


class UnsafeDestination(FinalizeError):
    """目标路径不在源文件所在目录内。"""
