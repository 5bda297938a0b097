from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ImpactEstimate:
    """Estimated gain of the current selection over the baseline."""
    percent: float = 0.0
    fps: int = 0
    contributing_ids: List[str] = field(default_factory=list)
    already_applied_ids: List[str] = field(default_factory=list)
