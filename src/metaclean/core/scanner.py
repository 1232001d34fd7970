"""输入目标的分类与目录遍历。"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from metaclean.core.models import (
    EXTENSION_FORMATS,
    OutcomeStatus,
    ProcessingOutcome,
    RejectionReason,
    Target,
    TargetKind,
)
from metaclean.core.path_resolver import has_processed_marker

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanResult:
    """扫描阶段的产出：待处理路径与已在扫描时定论的结果。"""

    candidates: list[Path] = field(default_factory=list)
    outcomes: list[ProcessingOutcome] = field(default_factory=list)


def classify_target(raw: str | os.PathLike[str]) -> Target:
    """判断目标是文件、目录还是无效路径，不跟随符号链接。"""

    path = Path(raw)
    if os.path.isdir(path) and not os.path.islink(path):
        return Target(raw=str(raw), kind=TargetKind.DIRECTORY, resolved=path.resolve())
    if os.path.lexists(path):
        return Target(raw=str(raw), kind=TargetKind.FILE)
    return Target(raw=str(raw), kind=TargetKind.INVALID)


def collect_candidates(targets: Sequence[str | os.PathLike[str]]) -> ScanResult:
    """展开所有目标，返回需要进入流水线的文件与被跳过的文件。

    文件目标直接交给流水线校验（符号链接、非普通文件等在那里拒绝）；
    目录目标递归遍历，不跟随链接，按路径排序，其中的链接与特殊文件计为跳过。
    """

    scan = ScanResult()
    seen: set[str] = set()

    for raw in targets:
        target = classify_target(raw)
        if target.kind is TargetKind.DIRECTORY and target.resolved is not None:
            LOGGER.info("扫描目录: %s", target.resolved)
            for candidate in _walk_files(target.resolved):
                _accept(candidate, scan, seen, from_directory=True)
        else:
            # 无效目标也交给路径校验，以便得到统一的拒绝原因。
            _accept(Path(target.raw), scan, seen, from_directory=False)

    return scan


def _accept(path: Path, scan: ScanResult, seen: set[str], *, from_directory: bool) -> None:
    key = _dedup_key(path)
    if key in seen:
        LOGGER.debug("重复路径，已忽略: %s", path)
        return
    seen.add(key)

    if has_processed_marker(path):
        LOGGER.warning("忽略已处理的文件: %s", path)
        scan.outcomes.append(
            ProcessingOutcome(source_path=path, status=OutcomeStatus.SKIPPED, message="已处理过的文件")
        )
        return

    if from_directory:
        reason = _entry_rejection(path)
        if reason is not None:
            LOGGER.info("跳过不支持的文件: %s", path)
            scan.outcomes.append(
                ProcessingOutcome(source_path=path, status=OutcomeStatus.SKIPPED, message=f"{reason.value}: {path}")
            )
            return

    scan.candidates.append(path)


def _dedup_key(path: Path) -> str:
    """规范化父目录，末级条目保持原样（链接本身不被跟随）。"""

    absolute = Path(os.path.abspath(path))
    return os.path.join(os.path.realpath(absolute.parent), absolute.name)


def _entry_rejection(path: Path) -> RejectionReason | None:
    """目录遍历时只接受普通文件，与 `find -type f` 一致。"""

    try:
        mode = os.lstat(path).st_mode
    except FileNotFoundError:
        return RejectionReason.NOT_FOUND
    if stat.S_ISLNK(mode):
        return RejectionReason.SYMLINK_UNSUPPORTED
    if not stat.S_ISREG(mode):
        return RejectionReason.NOT_REGULAR_FILE

    name = path.name
    if "." not in name or name.endswith("."):
        return RejectionReason.NO_EXTENSION
    extension = name.rpartition(".")[2].lower()
    if extension not in EXTENSION_FORMATS:
        return RejectionReason.UNSUPPORTED_TYPE
    return None


def _walk_files(root: Path) -> list[Path]:
    """递归列出目录下的文件条目（含指向文件的链接），不进入链接目录。"""

    collected: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames.sort()
        for name in filenames:
            collected.append(Path(dirpath) / name)
    collected.sort(key=lambda x: str(x).lower())
    return collected
