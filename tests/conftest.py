"""共享的测试夹具。"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from fake_tools import FakeToolRunner


@pytest.fixture
def fake_runner() -> FakeToolRunner:
    return FakeToolRunner()


@pytest.fixture
def staging_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """把系统临时目录指向测试目录，便于断言暂存区被清理。"""

    root = tmp_path / "tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root
