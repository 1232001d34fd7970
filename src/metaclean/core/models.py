"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class FileFormat(str, Enum):
    """支持的文件格式（封闭集合）。"""

    PDF = "pdf"
    PNG = "png"
    JPEG = "jpeg"


EXTENSION_FORMATS = {
    "pdf": FileFormat.PDF,
    "png": FileFormat.PNG,
    "jpg": FileFormat.JPEG,
    "jpeg": FileFormat.JPEG,
}


class Stage(str, Enum):
    """暂存文件所处阶段。"""

    CLEANED = "cleaned"
    OPTIMIZED = "optimized"


class FinalizeMode(str, Enum):
    """结果落盘方式：旁路副本或原地替换。"""

    COPY = "copy"
    REPLACE = "replace"


class TargetKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    INVALID = "invalid"


class OutcomeStatus(str, Enum):
    """单个文件的处理状态，按严重程度排序。"""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    OutcomeStatus.SUCCESS: 0,
    OutcomeStatus.SKIPPED: 1,
    OutcomeStatus.FAILED: 2,
}


class RejectionReason(str, Enum):
    """路径校验的拒绝原因。"""

    NOT_FOUND = "NotFound"
    SYMLINK_UNSUPPORTED = "SymlinkUnsupported"
    NOT_REGULAR_FILE = "NotRegularFile"
    UNRESOLVABLE_PATH = "UnresolvablePath"
    NO_EXTENSION = "NoExtension"
    UNSUPPORTED_TYPE = "UnsupportedType"


# 这两类拒绝只说明“不是本工具处理的文件”，计为跳过而非失败。
SKIPPABLE_REJECTIONS = frozenset({RejectionReason.NO_EXTENSION, RejectionReason.UNSUPPORTED_TYPE})


@dataclass(frozen=True, slots=True)
class Target:
    """用户输入的目标路径。"""

    raw: str
    kind: TargetKind
    resolved: Optional[Path] = None


@dataclass(frozen=True, slots=True)
class EligibleFile:
    """通过校验、可以进入流水线的文件。"""

    source_path: Path
    canonical_path: Path
    parent_dir: Path
    base_name: str
    extension: str
    file_format: FileFormat


@dataclass(frozen=True, slots=True)
class StagedArtifact:
    """暂存区中的中间文件。"""

    path: Path
    stage: Stage
    size: int


@dataclass(frozen=True, slots=True)
class ProcessingOutcome:
    """记录单个文件的处理结果（用于报告/日志）。"""

    source_path: Path
    status: OutcomeStatus
    original_size: Optional[int] = None
    final_size: Optional[int] = None
    output_path: Optional[Path] = None
    strategy: Optional[str] = None
    message: Optional[str] = None
    warnings: tuple[str, ...] = ()


@dataclass(slots=True)
class BatchResult:
    """批处理阶段性的产出。"""

    succeeded: list[ProcessingOutcome] = field(default_factory=list)
    skipped: list[ProcessingOutcome] = field(default_factory=list)
    failed: list[ProcessingOutcome] = field(default_factory=list)

    def record(self, outcome: ProcessingOutcome) -> None:
        """按状态归档一条结果。"""

        if outcome.status is OutcomeStatus.SUCCESS:
            self.succeeded.append(outcome)
        elif outcome.status is OutcomeStatus.SKIPPED:
            self.skipped.append(outcome)
        else:
            self.failed.append(outcome)

    def all_outcomes(self) -> list[ProcessingOutcome]:
        """返回所有结果记录，方便生成报告。"""

        return [*self.succeeded, *self.skipped, *self.failed]

    @property
    def counts(self) -> dict[OutcomeStatus, int]:
        return {
            OutcomeStatus.SUCCESS: len(self.succeeded),
            OutcomeStatus.SKIPPED: len(self.skipped),
            OutcomeStatus.FAILED: len(self.failed),
        }

    @property
    def worst_status(self) -> OutcomeStatus:
        statuses = [outcome.status for outcome in self.all_outcomes()]
        if not statuses:
            return OutcomeStatus.SUCCESS
        return max(statuses, key=lambda status: status.severity)

    @property
    def exit_code(self) -> int:
        # 跳过的文件不影响退出码。
        return 1 if self.failed else 0
