"""进程级临时暂存区，保证在任何退出路径上被清理。"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from metaclean.core.exceptions import StagingError
from metaclean.core.models import Stage
from metaclean.core.path_resolver import sanitize_base_name

LOGGER = logging.getLogger(__name__)

STAGING_PREFIX = "metaclean."


class StagingArea:
    """批处理期间所有中间文件的唯一存放位置。

    只有批处理入口负责创建与销毁；其他组件只通过 ``partition`` 与
    ``staged_path`` 获取路径。
    """

    def __init__(self, parent: Optional[Path] = None) -> None:
        self._parent = parent
        self._root: Optional[Path] = None
        self._closed = False

    def __enter__(self) -> "StagingArea":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.cleanup()

    @property
    def root(self) -> Path:
        if self._root is None:
            raise StagingError("暂存区尚未创建")
        return self._root

    def acquire(self) -> Path:
        """创建仅属主可访问的临时目录。"""

        if self._root is not None or self._closed:
            raise StagingError("暂存区只能创建一次")
        try:
            root = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=self._parent))
            os.chmod(root, 0o700)
        except OSError as exc:
            raise StagingError(f"无法创建暂存区: {exc}") from exc
        self._root = root
        LOGGER.debug("暂存区已创建: %s", root)
        return root

    def cleanup(self) -> None:
        """递归删除暂存区，可重复调用。"""

        root, self._root = self._root, None
        self._closed = True
        if root is None:
            return
        _remove_tree(root)
        LOGGER.debug("暂存区已清理: %s", root)

    def partition(self, key: str) -> Path:
        """为单个文件分配独立的子目录，避免并发时文件名冲突。"""

        directory = self.root / sanitize_base_name(key)
        directory.mkdir(mode=0o700)
        return directory

    def release(self, partition: Path) -> None:
        """单个文件处理结束后删除其子目录。"""

        if partition.parent != self.root:
            raise StagingError(f"不属于暂存区的目录: {partition}")
        _remove_tree(partition)

    def staged_path(self, partition: Path, base_name: str, stage: Stage, extension: str) -> Path:
        """生成中间文件路径：``<base>_<stage>.<ext>``。"""

        if partition.parent != self.root:
            raise StagingError(f"不属于暂存区的目录: {partition}")
        name = f"{sanitize_base_name(base_name)}_{stage.value}.{extension.lower()}"
        return partition / name


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        LOGGER.warning("清理暂存文件失败 %s: %s", path, exc)
