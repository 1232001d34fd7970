"""目标分类与目录遍历。"""

from __future__ import annotations

import os
from pathlib import Path

from fake_tools import make_pdf
from metaclean.core.models import OutcomeStatus, TargetKind
from metaclean.core.scanner import classify_target, collect_candidates


def test_classify_target_kinds(tmp_path: Path) -> None:
    pdf = make_pdf(tmp_path / "a.pdf")
    link_dir = tmp_path / "link_dir"
    link_dir.symlink_to(tmp_path, target_is_directory=True)

    assert classify_target(tmp_path).kind is TargetKind.DIRECTORY
    assert classify_target(pdf).kind is TargetKind.FILE
    assert classify_target(link_dir).kind is TargetKind.FILE
    assert classify_target(tmp_path / "missing").kind is TargetKind.INVALID


def test_directory_walk_is_sorted_and_filters_extensions(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    make_pdf(tmp_path / "b.pdf")
    make_pdf(tmp_path / "sub" / "a.pdf")
    (tmp_path / "README").write_text("x")
    (tmp_path / "notes.txt").write_text("x")
    make_pdf(tmp_path / "old_cleaned_opt.pdf")

    scan = collect_candidates([tmp_path])

    assert [p.name for p in scan.candidates] == ["b.pdf", "a.pdf"]
    messages = {o.source_path.name: o.message for o in scan.outcomes}
    assert messages["README"].startswith("NoExtension")
    assert messages["notes.txt"].startswith("UnsupportedType")
    assert messages["old_cleaned_opt.pdf"] == "已处理过的文件"
    assert all(o.status is OutcomeStatus.SKIPPED for o in scan.outcomes)


def test_directory_walk_does_not_follow_linked_directories(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    make_pdf(outside / "private.pdf")
    root = tmp_path / "root"
    root.mkdir()
    (root / "escape").symlink_to(outside, target_is_directory=True)

    scan = collect_candidates([root])

    assert scan.candidates == []
    assert scan.outcomes == []


def test_links_and_special_files_inside_directory_are_skipped(tmp_path: Path) -> None:
    real = make_pdf(tmp_path / "real.pdf")
    root = tmp_path / "root"
    root.mkdir()
    (root / "alias.pdf").symlink_to(real)
    os.mkfifo(root / "pipe.pdf")
    make_pdf(root / "doc.pdf")

    scan = collect_candidates([root])

    assert [p.name for p in scan.candidates] == ["doc.pdf"]
    messages = {o.source_path.name: o.message for o in scan.outcomes}
    assert messages["alias.pdf"].startswith("SymlinkUnsupported")
    assert messages["pipe.pdf"].startswith("NotRegularFile")
    assert all(o.status is OutcomeStatus.SKIPPED for o in scan.outcomes)


def test_repeated_targets_are_deduplicated(tmp_path: Path) -> None:
    pdf = make_pdf(tmp_path / "a.pdf")

    scan = collect_candidates([pdf, pdf, str(pdf)])

    assert scan.candidates == [pdf]


def test_same_file_through_linked_parent_is_deduplicated(tmp_path: Path) -> None:
    real_dir = tmp_path / "real"
    real_dir.mkdir()
    pdf = make_pdf(real_dir / "doc.pdf")
    alias_dir = tmp_path / "alias"
    alias_dir.symlink_to(real_dir, target_is_directory=True)

    scan = collect_candidates([pdf, alias_dir / "doc.pdf"])

    assert scan.candidates == [pdf]
