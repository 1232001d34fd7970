"""处理流水线：依赖检查、扫描、逐个执行并汇总结果。"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional, Sequence

from metaclean.core.config import JobConfig, ToolConfig, load_tool_config
from metaclean.core.models import BatchResult, FinalizeMode, OutcomeStatus, ProcessingOutcome
from metaclean.core.progress import ProgressUpdate
from metaclean.core.scanner import collect_candidates
from metaclean.core.staging import StagingArea
from metaclean.core.tools import ToolRunner, required_tools
from metaclean.processing.worker import ProcessingTask, run_task

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


def run(
    targets: Sequence[str | os.PathLike[str]],
    mode: FinalizeMode = FinalizeMode.COPY,
    verbose: bool = False,
    *,
    tools: Optional[ToolConfig] = None,
    optimize: bool = True,
    max_workers: int = 1,
    progress_callback: ProgressCallback = None,
    runner: Optional[ToolRunner] = None,
) -> BatchResult:
    """对外入口：未提供工具配置时从环境变量读取。"""

    config = JobConfig(
        targets=[Path(target) for target in targets],
        mode=mode,
        verbose=verbose,
        tools=tools if tools is not None else load_tool_config(),
        optimize=optimize,
        max_workers=max_workers,
    )
    return process_batch(config, progress_callback=progress_callback, runner=runner)


def process_batch(
    config: JobConfig,
    progress_callback: ProgressCallback = None,
    runner: Optional[ToolRunner] = None,
) -> BatchResult:
    """批量处理入口。

    缺少必需的外部命令时在触碰任何文件之前抛出 ``ToolUnavailableError``。
    """

    if runner is None:
        runner = ToolRunner(timeout=config.tools.timeout_seconds)
    runner.require(required_tools(config.optimize))

    LOGGER.info("开始扫描输入路径")
    scan = collect_candidates(config.targets)
    total = len(scan.candidates) + len(scan.outcomes)
    LOGGER.info("发现 %d 个候选文件，%d 个在扫描阶段被跳过", len(scan.candidates), len(scan.outcomes))

    result = BatchResult()
    completed = 0

    for outcome in scan.outcomes:
        result.record(outcome)
        completed += 1
        _emit_progress(progress_callback, completed, total, f"跳过 {outcome.source_path.name}", outcome)

    if not scan.candidates:
        _emit_progress(progress_callback, completed, total, "没有需要处理的文件", status="finished")
        return result

    tasks = [
        ProcessingTask(
            source_path=path,
            index=index,
            mode=config.mode,
            tools=config.tools,
            optimize=config.optimize,
            verbose=config.verbose,
        )
        for index, path in enumerate(scan.candidates)
    ]

    _emit_progress(progress_callback, completed, total, "开始执行处理任务")

    # 暂存区在所有工作线程结束后才清理。
    with StagingArea() as staging:
        if config.max_workers <= 1:
            for task in tasks:
                outcome = _run_guarded(task, staging, runner)
                result.record(outcome)
                completed += 1
                _emit_progress(progress_callback, completed, total, f"完成 {task.source_path.name}", outcome)
        else:
            with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
                future_map = {executor.submit(_run_guarded, task, staging, runner): task for task in tasks}
                for future in as_completed(future_map):
                    task = future_map[future]
                    outcome = future.result()
                    result.record(outcome)
                    completed += 1
                    _emit_progress(progress_callback, completed, total, f"完成 {task.source_path.name}", outcome)

    if result.failed:
        LOGGER.error("处理结束，%d 个文件失败", len(result.failed))
    else:
        LOGGER.info("处理结束，全部成功")
    _emit_progress(progress_callback, total, total, "处理完成", status="finished")
    return result


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
    outcome: Optional[ProcessingOutcome] = None,
    *,
    status: str = "running",
) -> None:
    if not callback:
        return
    callback(ProgressUpdate(total=total, completed=completed, message=message, status=status, outcome=outcome))


def _run_guarded(task: ProcessingTask, staging: StagingArea, runner: ToolRunner) -> ProcessingOutcome:
    """执行单个任务；未预期的异常只记为该文件失败，不中断整个批次。"""

    try:
        return run_task(task, staging, runner)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("任务执行异常：%s", exc)
        return ProcessingOutcome(
            source_path=task.source_path,
            status=OutcomeStatus.FAILED,
            message=str(exc),
        )
