"""在清除结果与优化结果之间挑选体积更小者。"""

from __future__ import annotations

from dataclasses import dataclass

from metaclean.core.models import StagedArtifact

STRATEGY_OPTIMIZED = "optimized"
STRATEGY_CLEANED = "cleaned"


@dataclass(frozen=True, slots=True)
class ArbiterDecision:
    chosen: StagedArtifact
    strategy: str
    saved_bytes: int


def choose_artifact(cleaned: StagedArtifact, optimized: StagedArtifact) -> ArbiterDecision:
    """仅当优化结果严格更小时才采用，持平或变大都保留清除结果。"""

    if optimized.size < cleaned.size:
        return ArbiterDecision(
            chosen=optimized,
            strategy=STRATEGY_OPTIMIZED,
            saved_bytes=cleaned.size - optimized.size,
        )
    return ArbiterDecision(chosen=cleaned, strategy=STRATEGY_CLEANED, saved_bytes=0)
