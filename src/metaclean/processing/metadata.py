"""借助 exiftool 清除元数据。"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from metaclean.core.exceptions import CleanFailed
from metaclean.core.models import EligibleFile, Stage, StagedArtifact
from metaclean.core.tools import EXIFTOOL, ToolRunner

LOGGER = logging.getLogger(__name__)

IDENTIFYING_TAGS_RE = re.compile(
    r"(Author|Title|Creator|Create Date|Modify Date|Subject|Keywords|Producer|Comment)"
)


def strip_metadata(eligible: EligibleFile, destination: Path, runner: ToolRunner) -> StagedArtifact:
    """清除全部元数据并写入新的暂存文件，源文件保持不变。

    退出码非零、输出缺失或为空都视为失败：截断的文件比没有进展更糟。
    """

    if destination.exists():
        raise CleanFailed(f"暂存文件已存在: {destination.name}")

    result = runner.run(
        [EXIFTOOL, "-all=", "-P", "-o", destination, eligible.canonical_path],
    )
    if not result.ok:
        raise CleanFailed(f"元数据清除失败: {result.describe()}")

    size = _file_size(destination)
    if size == 0:
        raise CleanFailed("清除后的文件为空或未生成")

    LOGGER.debug("元数据已清除: %s (%d 字节)", eligible.canonical_path.name, size)
    return StagedArtifact(path=destination, stage=Stage.CLEANED, size=size)


def read_identifying_tags(path: Path, runner: ToolRunner) -> list[str]:
    """读取可识别身份的常见元数据字段，供 verbose 模式展示。"""

    result = runner.run([EXIFTOOL, "-G1", path], capture_stdout=True)
    if not result.ok:
        LOGGER.debug("读取元数据失败 %s: %s", path, result.describe())
        return []
    return [
        line.strip()
        for line in result.stdout.splitlines()
        if IDENTIFYING_TAGS_RE.search(line)
    ]


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return 0
