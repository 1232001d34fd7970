"""路径校验、命名约定与处理标记。"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from fake_tools import make_pdf
from metaclean.core.exceptions import PathRejected
from metaclean.core.models import FileFormat, RejectionReason
from metaclean.core.path_resolver import (
    build_output_name,
    has_processed_marker,
    is_within_directory,
    resolve_eligible_file,
    sanitize_base_name,
)


def _reason(path: Path | str) -> RejectionReason:
    with pytest.raises(PathRejected) as excinfo:
        resolve_eligible_file(path)
    return excinfo.value.reason


def test_resolves_regular_pdf(tmp_path: Path) -> None:
    source = make_pdf(tmp_path / "report.pdf")

    eligible = resolve_eligible_file(source)

    assert eligible.canonical_path == source.resolve()
    assert eligible.parent_dir == tmp_path.resolve()
    assert eligible.base_name == "report"
    assert eligible.extension == "pdf"
    assert eligible.file_format is FileFormat.PDF


@pytest.mark.parametrize(
    ("name", "expected"),
    [("photo.JPG", FileFormat.JPEG), ("photo.jpeg", FileFormat.JPEG), ("icon.PnG", FileFormat.PNG)],
)
def test_extension_match_is_case_insensitive(tmp_path: Path, name: str, expected: FileFormat) -> None:
    path = tmp_path / name
    path.write_bytes(b"data")

    eligible = resolve_eligible_file(path)

    assert eligible.file_format is expected
    # 输出文件名保留原始扩展名大小写
    assert eligible.extension == name.rpartition(".")[2]


def test_missing_path_is_not_found(tmp_path: Path) -> None:
    assert _reason(tmp_path / "absent.pdf") is RejectionReason.NOT_FOUND


def test_symlink_to_valid_pdf_is_rejected(tmp_path: Path) -> None:
    target = make_pdf(tmp_path / "real.pdf")
    link = tmp_path / "link.pdf"
    link.symlink_to(target)

    assert _reason(link) is RejectionReason.SYMLINK_UNSUPPORTED


def test_dangling_symlink_is_rejected_as_symlink(tmp_path: Path) -> None:
    link = tmp_path / "dangling.pdf"
    link.symlink_to(tmp_path / "nowhere.pdf")

    assert _reason(link) is RejectionReason.SYMLINK_UNSUPPORTED


def test_symlink_pointing_outside_source_directory_is_rejected(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    inside = tmp_path / "inside"
    outside.mkdir()
    inside.mkdir()
    make_pdf(outside / "secret.pdf")
    (inside / "innocent.pdf").symlink_to(outside / "secret.pdf")

    assert _reason(inside / "innocent.pdf") is RejectionReason.SYMLINK_UNSUPPORTED


def test_directory_is_not_regular_file(tmp_path: Path) -> None:
    directory = tmp_path / "folder.pdf"
    directory.mkdir()

    assert _reason(directory) is RejectionReason.NOT_REGULAR_FILE


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="平台不支持命名管道")
def test_fifo_is_not_regular_file(tmp_path: Path) -> None:
    fifo = tmp_path / "pipe.pdf"
    os.mkfifo(fifo)

    assert _reason(fifo) is RejectionReason.NOT_REGULAR_FILE


@pytest.mark.parametrize("name", ["README", "trailing."])
def test_file_without_extension(tmp_path: Path, name: str) -> None:
    path = tmp_path / name
    path.write_text("hello")

    assert _reason(path) is RejectionReason.NO_EXTENSION


def test_unsupported_extension(tmp_path: Path) -> None:
    path = tmp_path / "notes.docx"
    path.write_text("hello")

    assert _reason(path) is RejectionReason.UNSUPPORTED_TYPE


def test_parent_references_resolve_to_canonical_directory(tmp_path: Path) -> None:
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    make_pdf(tmp_path / "a" / "doc.pdf")

    eligible = resolve_eligible_file(f"{nested}/../doc.pdf")

    assert eligible.canonical_path == (tmp_path / "a" / "doc.pdf").resolve()
    assert eligible.parent_dir == (tmp_path / "a").resolve()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("report", "report"),
        ("..", "_"),
        ("...secret", "_.secret"),
        ("a/../b", "a___b"),
        ("", "_"),
    ],
)
def test_sanitize_base_name(raw: str, expected: str) -> None:
    assert sanitize_base_name(raw) == expected
    assert "/" not in sanitize_base_name(raw)
    assert ".." not in sanitize_base_name(raw)


def test_build_output_name_reflects_operations() -> None:
    assert build_output_name("report", "pdf") == "report_cleaned_opt.pdf"
    assert build_output_name("report", "PDF", optimized=False) == "report_cleaned.PDF"


@pytest.mark.parametrize(
    ("name", "marked"),
    [
        ("report_cleaned_opt.pdf", True),
        ("photo_cleaned.png", True),
        ("CLEANED-copy.jpg", True),
        ("report.pdf", False),
        ("clean.pdf", False),
    ],
)
def test_processed_marker_detection(name: str, marked: bool) -> None:
    assert has_processed_marker(Path("/data") / name) is marked


def test_is_within_directory(tmp_path: Path) -> None:
    assert is_within_directory(tmp_path / "x.pdf", tmp_path)
    assert not is_within_directory(tmp_path / "sub" / "x.pdf", tmp_path)
    assert not is_within_directory(tmp_path / ".." / "x.pdf", tmp_path)
