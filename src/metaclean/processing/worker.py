"""单个文件的处理单元：校验、清除、优化、择优、落盘。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from metaclean.core.config import ToolConfig
from metaclean.core.exceptions import CleanFailed, DestinationExists, FinalizeError, PathRejected
from metaclean.core.models import (
    SKIPPABLE_REJECTIONS,
    EligibleFile,
    FinalizeMode,
    OutcomeStatus,
    ProcessingOutcome,
    Stage,
)
from metaclean.core.output_manager import OutputManager
from metaclean.core.path_resolver import resolve_eligible_file
from metaclean.core.staging import StagingArea
from metaclean.core.tools import ToolRunner
from metaclean.processing.arbiter import STRATEGY_CLEANED, ArbiterDecision, choose_artifact
from metaclean.processing.metadata import read_identifying_tags, strip_metadata
from metaclean.processing.optimizers import optimize

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProcessingTask:
    """描述单个文件处理任务。"""

    source_path: Path
    index: int
    mode: FinalizeMode
    tools: ToolConfig
    optimize: bool = True
    verbose: bool = False


def run_task(task: ProcessingTask, staging: StagingArea, runner: ToolRunner) -> ProcessingOutcome:
    """执行完整的处理流程；任何单文件错误都转换为结果记录，不向外抛出。"""

    try:
        eligible = resolve_eligible_file(task.source_path)
    except PathRejected as exc:
        if exc.reason in SKIPPABLE_REJECTIONS:
            LOGGER.warning("跳过: %s", exc)
            return _outcome(task, OutcomeStatus.SKIPPED, message=str(exc))
        LOGGER.error("路径校验失败: %s", exc)
        return _outcome(task, OutcomeStatus.FAILED, message=str(exc))

    output_manager = OutputManager(task.mode, runner, optimized=task.optimize)
    try:
        original_size = eligible.canonical_path.stat().st_size
        # 提前检查目标路径，避免做完全部工作才发现冲突。
        destination = output_manager.decide_destination(eligible)
        if destination.exists() or destination.is_symlink():
            raise DestinationExists(f"目标已存在: {destination}")
    except FinalizeError as exc:
        LOGGER.error("无法写入结果 %s: %s", eligible.canonical_path, exc)
        return _outcome(task, OutcomeStatus.FAILED, message=str(exc))
    except OSError as exc:
        LOGGER.error("无法读取文件 %s: %s", eligible.canonical_path, exc)
        return _outcome(task, OutcomeStatus.FAILED, message=str(exc))

    LOGGER.info("处理文件: %s", eligible.canonical_path)
    if task.verbose:
        _log_tags("发现元数据", eligible.canonical_path, runner)

    partition = staging.partition(f"{task.index:05d}")
    warnings: list[str] = []
    try:
        decision = _clean_and_optimize(task, eligible, staging, partition, runner, warnings)
        finalized = output_manager.finalize(decision.chosen, eligible)
    except CleanFailed as exc:
        LOGGER.error("元数据清除失败 %s: %s", eligible.canonical_path, exc)
        return _outcome(task, OutcomeStatus.FAILED, original_size=original_size, message=str(exc))
    except FinalizeError as exc:
        LOGGER.error("无法写入结果 %s: %s", eligible.canonical_path, exc)
        return _outcome(task, OutcomeStatus.FAILED, original_size=original_size, message=str(exc))
    except OSError as exc:
        LOGGER.error("处理文件时发生 I/O 错误 %s: %s", eligible.canonical_path, exc)
        return _outcome(task, OutcomeStatus.FAILED, original_size=original_size, message=str(exc))
    finally:
        staging.release(partition)

    warnings.extend(finalized.warnings)
    if task.verbose:
        _log_tags("清除后残留", finalized.destination, runner)

    LOGGER.info(
        "完成: %s -> %s (%d -> %d 字节, %s)",
        eligible.canonical_path.name,
        finalized.destination.name,
        original_size,
        finalized.final_size,
        decision.strategy,
    )
    return ProcessingOutcome(
        source_path=task.source_path,
        status=OutcomeStatus.SUCCESS,
        original_size=original_size,
        final_size=finalized.final_size,
        output_path=finalized.destination,
        strategy=decision.strategy,
        message="; ".join(warnings) or None,
        warnings=tuple(warnings),
    )


def _clean_and_optimize(
    task: ProcessingTask,
    eligible: EligibleFile,
    staging: StagingArea,
    partition: Path,
    runner: ToolRunner,
    warnings: list[str],
) -> ArbiterDecision:
    cleaned_path = staging.staged_path(partition, eligible.base_name, Stage.CLEANED, eligible.extension)
    cleaned = strip_metadata(eligible, cleaned_path, runner)

    if not task.optimize:
        return ArbiterDecision(chosen=cleaned, strategy=STRATEGY_CLEANED, saved_bytes=0)

    optimized_path = staging.staged_path(partition, eligible.base_name, Stage.OPTIMIZED, eligible.extension)
    result = optimize(cleaned, eligible.file_format, optimized_path, runner, task.tools)
    if result.note:
        warnings.append(f"优化失败，已回退: {result.note}")

    decision = choose_artifact(cleaned, result.artifact)
    if result.applied and decision.strategy == STRATEGY_CLEANED:
        LOGGER.warning("优化结果未变小，使用清除后的文件: %s", eligible.canonical_path.name)
    return decision


def _log_tags(label: str, path: Path, runner: ToolRunner) -> None:
    tags = read_identifying_tags(path, runner)
    if not tags:
        LOGGER.info("%s: %s (无)", label, path.name)
        return
    LOGGER.info("%s: %s\n  %s", label, path.name, "\n  ".join(tags))


def _outcome(
    task: ProcessingTask,
    status: OutcomeStatus,
    *,
    original_size: Optional[int] = None,
    message: Optional[str] = None,
) -> ProcessingOutcome:
    return ProcessingOutcome(
        source_path=task.source_path,
        status=status,
        original_size=original_size,
        message=message,
    )
