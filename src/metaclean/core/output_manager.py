"""结果落盘：旁路副本或原地替换。"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from metaclean.core.exceptions import DestinationExists, FinalizeError, UnsafeDestination
from metaclean.core.models import EligibleFile, FinalizeMode, StagedArtifact
from metaclean.core.path_resolver import build_output_name, is_within_directory
from metaclean.core.tools import SHRED, ToolRunner

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FinalizeResult:
    """封装落盘结果。"""

    destination: Path
    final_size: int
    warnings: list[str] = field(default_factory=list)


class OutputManager:
    """负责确定输出路径、冲突检查以及替换模式下的安全擦除。

    替换模式拆成独立步骤：擦除原文件、写回原路径、改名为约定文件名。
    任何会动到磁盘的步骤之前都先完成目标路径检查。
    """

    def __init__(self, mode: FinalizeMode, runner: ToolRunner, optimized: bool = True) -> None:
        self.mode = mode
        self.runner = runner
        self.optimized = optimized

    def decide_destination(self, eligible: EligibleFile) -> Path:
        """根据命名约定确定输出路径，并确认其位于源文件所在目录。"""

        name = build_output_name(eligible.base_name, eligible.extension, optimized=self.optimized)
        destination = eligible.parent_dir / name
        self.ensure_safe_destination(destination, eligible)
        return destination

    @staticmethod
    def ensure_safe_destination(destination: Path, eligible: EligibleFile) -> None:
        if not is_within_directory(destination, eligible.parent_dir):
            raise UnsafeDestination(
                f"拒绝写入源目录之外: 期望 {eligible.parent_dir}，实际 {destination.parent}"
            )

    def finalize(self, artifact: StagedArtifact, eligible: EligibleFile) -> FinalizeResult:
        """把选中的暂存文件提交到最终位置。"""

        destination = self.decide_destination(eligible)
        if os.path.lexists(destination):
            raise DestinationExists(f"目标已存在: {destination}")

        if self.mode is FinalizeMode.COPY:
            return self.commit_copy(artifact, destination, eligible)
        return self.commit_replace(artifact, destination, eligible)

    def commit_copy(self, artifact: StagedArtifact, destination: Path, eligible: EligibleFile) -> FinalizeResult:
        """以独占方式新建结果文件，已存在时不覆盖。"""

        self.ensure_safe_destination(destination, eligible)
        _write_exclusive(artifact.path, destination)
        _discard(artifact.path)
        return FinalizeResult(destination=destination, final_size=destination.stat().st_size)

    def commit_replace(
        self, artifact: StagedArtifact, destination: Path, eligible: EligibleFile
    ) -> FinalizeResult:
        """擦除原文件，写入新内容，再改名为约定文件名。"""

        self.ensure_safe_destination(destination, eligible)
        original = eligible.canonical_path
        if original.is_symlink() or not original.is_file():
            raise UnsafeDestination(f"原文件已被替换为非普通文件: {original}")

        warnings: list[str] = []
        warning = self.secure_erase(original)
        if warning:
            warnings.append(warning)

        self.move_into_place(artifact.path, original)
        self.rename_for_traceability(original, destination)
        return FinalizeResult(
            destination=destination,
            final_size=destination.stat().st_size,
            warnings=warnings,
        )

    def secure_erase(self, path: Path) -> Optional[str]:
        """尽力覆写并删除原文件，不可用或失败时只返回警告。"""

        if not self.runner.is_available(SHRED):
            message = "shred 不可用，原文件未经安全擦除"
            LOGGER.warning("%s: %s", message, path)
            return message

        result = self.runner.run([SHRED, "-f", "-z", "-n", "1", "-u", path])
        if not result.ok:
            message = f"安全擦除失败: {result.describe()}"
            LOGGER.warning("%s: %s", message, path)
            return message
        LOGGER.debug("原文件已安全擦除: %s", path)
        return None

    @staticmethod
    def move_into_place(staged: Path, target: Path) -> None:
        """把暂存文件内容写到原路径。

        原文件仍存在时就地覆写并截断，使旧内容被新内容覆盖；否则独占新建。
        """

        if target.exists():
            try:
                with staged.open("rb") as src, target.open("r+b") as dst:
                    shutil.copyfileobj(src, dst)
                    dst.truncate()
                    dst.flush()
                    os.fsync(dst.fileno())
            except OSError as exc:
                raise FinalizeError(f"写回原文件失败: {target}: {exc}") from exc
        else:
            _write_exclusive(staged, target)
        _discard(staged)

    @staticmethod
    def rename_for_traceability(original: Path, destination: Path) -> None:
        if os.path.lexists(destination):
            raise DestinationExists(f"目标已存在: {destination}")
        try:
            os.rename(original, destination)
        except OSError as exc:
            raise FinalizeError(f"改名失败 {original.name} -> {destination.name}: {exc}") from exc


def _write_exclusive(source: Path, destination: Path) -> None:
    with source.open("rb") as src:
        try:
            dst = destination.open("xb")
        except FileExistsError as exc:
            raise DestinationExists(f"目标已存在: {destination}") from exc
        try:
            with dst:
                shutil.copyfileobj(src, dst)
        except OSError as exc:
            destination.unlink(missing_ok=True)
            raise FinalizeError(f"写入文件失败: {destination}: {exc}") from exc


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
