"""外部命令的查找与调用。

所有外部工具都经由 ``ToolRunner`` 执行，便于统一超时处理并在测试中替换。
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from metaclean.core.exceptions import ToolUnavailableError

LOGGER = logging.getLogger(__name__)

EXIFTOOL = "exiftool"
GHOSTSCRIPT = "gs"
PNGQUANT = "pngquant"
JPEGOPTIM = "jpegoptim"
SHRED = "shred"

CLEAN_TOOLS = (EXIFTOOL,)
OPTIMIZE_TOOLS = (GHOSTSCRIPT, PNGQUANT, JPEGOPTIM)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """一次外部命令调用的结果。"""

    args: tuple[str, ...]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def describe(self) -> str:
        if self.timed_out:
            return f"{self.args[0]} 超时"
        detail = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else ""
        if detail:
            return f"{self.args[0]} 退出码 {self.returncode}: {detail}"
        return f"{self.args[0]} 退出码 {self.returncode}"


class ToolRunner:
    """以阻塞子进程方式调用外部工具，每次调用都带超时。"""

    def __init__(self, timeout: Optional[float] = 300.0) -> None:
        self.timeout = timeout

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def is_available(self, name: str) -> bool:
        return self.which(name) is not None

    def require(self, names: Iterable[str]) -> None:
        """检查必需命令，缺失时抛出 ``ToolUnavailableError``。"""

        missing = [name for name in names if not self.is_available(name)]
        if missing:
            raise ToolUnavailableError(missing)

    def run(
        self,
        args: Sequence[str | Path],
        *,
        stdout_path: Optional[Path] = None,
        capture_stdout: bool = False,
    ) -> ToolResult:
        """执行命令；``stdout_path`` 非空时把标准输出写入该文件。"""

        argv = tuple(str(arg) for arg in args)
        LOGGER.debug("执行命令: %s", " ".join(argv))
        try:
            if stdout_path is not None:
                with stdout_path.open("wb") as handle:
                    completed = subprocess.run(
                        argv,
                        stdout=handle,
                        stderr=subprocess.PIPE,
                        timeout=self.timeout,
                        check=False,
                    )
                return ToolResult(
                    args=argv,
                    returncode=completed.returncode,
                    stderr=_decode(completed.stderr),
                )

            completed = subprocess.run(
                argv,
                stdout=subprocess.PIPE if capture_stdout else subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            LOGGER.warning("命令超时（%s 秒）: %s", self.timeout, argv[0])
            return ToolResult(args=argv, returncode=None, timed_out=True)
        except FileNotFoundError as exc:
            # 批处理开始后命令消失，按调用失败处理（与 shell 的 127 一致）。
            return ToolResult(args=argv, returncode=127, stderr=str(exc))

        return ToolResult(
            args=argv,
            returncode=completed.returncode,
            stdout=_decode(completed.stdout) if capture_stdout else "",
            stderr=_decode(completed.stderr),
        )


def required_tools(optimize: bool) -> tuple[str, ...]:
    """返回本次批处理开始前必须存在的命令。"""

    if optimize:
        return CLEAN_TOOLS + OPTIMIZE_TOOLS
    return CLEAN_TOOLS


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
