"""结果表格与汇总文本。"""

from __future__ import annotations

from pathlib import Path

import pytest

from metaclean.core.models import BatchResult, OutcomeStatus, ProcessingOutcome
from metaclean.core.report import build_outcome_table, format_delta, format_size, summarize


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (None, "-"),
        (0, "0B"),
        (1023, "1023B"),
        (1024, "1.0KiB"),
        (1536, "1.5KiB"),
        (5 * 1024 * 1024, "5.0MiB"),
    ],
)
def test_format_size(size, expected) -> None:
    assert format_size(size) == expected


def test_format_delta_reports_sign_and_percentage() -> None:
    assert format_delta(1000, 750) == "-250B (-25.0%)"
    assert format_delta(1000, 1000) == "+0B (+0.0%)"
    assert format_delta(0, 10) == "+10B"
    assert format_delta(None, 10) == "-"


def _sample_result() -> BatchResult:
    result = BatchResult()
    result.record(
        ProcessingOutcome(
            source_path=Path("a.pdf"),
            status=OutcomeStatus.SUCCESS,
            original_size=2048,
            final_size=1024,
            output_path=Path("a_cleaned_opt.pdf"),
            strategy="optimized",
        )
    )
    result.record(ProcessingOutcome(source_path=Path("b.docx"), status=OutcomeStatus.SKIPPED, message="UnsupportedType"))
    result.record(ProcessingOutcome(source_path=Path("c.pdf"), status=OutcomeStatus.FAILED, message="NotFound"))
    return result


def test_summary_counts_each_status() -> None:
    assert summarize(_sample_result()) == "处理完成：成功 1 个，跳过 1 个，失败 1 个。"


def test_table_lists_every_outcome() -> None:
    table = build_outcome_table(_sample_result())

    assert table.row_count == 3
    files = list(table.columns[5].cells)
    assert files == ["a_cleaned_opt.pdf", "b.docx", "c.pdf"]
    strategies = list(table.columns[4].cells)
    assert strategies == ["optimized", "-", "-"]
