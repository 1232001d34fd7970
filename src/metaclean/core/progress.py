"""进度更新的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from metaclean.core.models import ProcessingOutcome


@dataclass(slots=True)
class ProgressUpdate:
    """批处理过程中的进度信息。

    ``outcome`` 在单个文件结束时携带原始大小、最终大小与所选策略。
    """

    total: int
    completed: int
    message: Optional[str] = None
    status: str = "running"
    outcome: Optional[ProcessingOutcome] = None
