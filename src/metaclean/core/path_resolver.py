"""单个输入路径的规范化与校验。

校验按固定顺序执行，且只做 stat/readlink 级别的访问，不写磁盘。
符号链接必须先于其他任何跟随链接的 stat 检查，避免检查与使用之间的竞争。
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

from metaclean.core.exceptions import PathRejected
from metaclean.core.models import EXTENSION_FORMATS, EligibleFile, RejectionReason

PROCESSED_MARKER = "cleaned"
SUFFIX_CLEANED = "cleaned"
SUFFIX_CLEANED_OPTIMIZED = "cleaned_opt"


def resolve_eligible_file(raw: str | os.PathLike[str]) -> EligibleFile:
    """校验并规范化路径，返回可处理的文件描述，失败时抛出 ``PathRejected``。"""

    path = Path(raw)

    if not os.path.lexists(path):
        raise PathRejected(RejectionReason.NOT_FOUND, path)

    try:
        link_stat = path.lstat()
    except OSError as exc:
        raise PathRejected(RejectionReason.NOT_FOUND, path, str(exc)) from exc

    if stat.S_ISLNK(link_stat.st_mode):
        raise PathRejected(RejectionReason.SYMLINK_UNSUPPORTED, path)
    if not stat.S_ISREG(link_stat.st_mode):
        raise PathRejected(RejectionReason.NOT_REGULAR_FILE, path)

    try:
        canonical = path.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise PathRejected(RejectionReason.UNRESOLVABLE_PATH, path, str(exc)) from exc

    name = canonical.name
    if "." not in name:
        raise PathRejected(RejectionReason.NO_EXTENSION, path)
    stem, _, extension = name.rpartition(".")
    if not extension:
        raise PathRejected(RejectionReason.NO_EXTENSION, path)

    file_format = EXTENSION_FORMATS.get(extension.lower())
    if file_format is None:
        raise PathRejected(RejectionReason.UNSUPPORTED_TYPE, path, f"扩展名: {extension}")

    try:
        parent_dir = canonical.parent.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise PathRejected(RejectionReason.UNRESOLVABLE_PATH, path, str(exc)) from exc

    return EligibleFile(
        source_path=path,
        canonical_path=canonical,
        parent_dir=parent_dir,
        base_name=sanitize_base_name(stem),
        extension=extension,
        file_format=file_format,
    )


def sanitize_base_name(base: str) -> str:
    """去掉路径分隔符与上级目录引用，防止借文件名穿越目录。"""

    cleaned = base.replace("/", "_").replace("\\", "_").replace("..", "_")
    return cleaned or "_"


def has_processed_marker(path: str | os.PathLike[str]) -> bool:
    """文件名中包含处理标记时视为本工具的产出。"""

    return PROCESSED_MARKER in Path(path).name.lower()


def output_suffix(optimized: bool) -> str:
    return SUFFIX_CLEANED_OPTIMIZED if optimized else SUFFIX_CLEANED


def build_output_name(base_name: str, extension: str, optimized: bool = True) -> str:
    """按命名约定生成结果文件名：``<base>_<suffix>.<ext>``。"""

    return f"{sanitize_base_name(base_name)}_{output_suffix(optimized)}.{extension}"


def is_within_directory(candidate: Path, directory: Path) -> bool:
    """判断 ``candidate`` 的规范化父目录是否恰好为 ``directory``。"""

    try:
        return candidate.parent.resolve() == directory.resolve()
    except (OSError, RuntimeError):
        return False
