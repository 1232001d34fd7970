"""结果汇总与表格输出。"""

from __future__ import annotations

from typing import Optional

from rich.table import Table

from metaclean.core.models import BatchResult, OutcomeStatus

_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")

_STATUS_STYLES = {
    OutcomeStatus.SUCCESS: "green",
    OutcomeStatus.SKIPPED: "yellow",
    OutcomeStatus.FAILED: "bold red",
}


def format_size(size: Optional[int]) -> str:
    """把字节数格式化为 1024 进制的可读字符串。"""

    if size is None:
        return "-"
    value = float(size)
    for unit in _UNITS:
        if abs(value) < 1024 or unit == _UNITS[-1]:
            if unit == "B":
                return f"{int(value)}{unit}"
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{size}B"


def format_delta(original: Optional[int], final: Optional[int]) -> str:
    if original is None or final is None:
        return "-"
    diff = final - original
    sign = "-" if diff < 0 else "+"
    text = f"{sign}{format_size(abs(diff))}"
    if original > 0:
        text += f" ({diff / original:+.1%})"
    return text


def build_outcome_table(result: BatchResult) -> Table:
    """生成逐文件结果表。"""

    table = Table(title="处理结果", show_lines=False)
    table.add_column("状态")
    table.add_column("原始大小", justify="right")
    table.add_column("最终大小", justify="right")
    table.add_column("变化", justify="right")
    table.add_column("策略")
    table.add_column("文件")
    table.add_column("说明", overflow="fold")

    for record in result.all_outcomes():
        style = _STATUS_STYLES[record.status]
        table.add_row(
            f"[{style}]{record.status.value}[/{style}]",
            format_size(record.original_size),
            format_size(record.final_size),
            format_delta(record.original_size, record.final_size),
            record.strategy or "-",
            str(record.output_path or record.source_path),
            record.message or "",
        )
    return table


def summarize(result: BatchResult) -> str:
    counts = result.counts
    return (
        f"处理完成：成功 {counts[OutcomeStatus.SUCCESS]} 个，"
        f"跳过 {counts[OutcomeStatus.SKIPPED]} 个，"
        f"失败 {counts[OutcomeStatus.FAILED]} 个。"
    )
