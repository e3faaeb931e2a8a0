"""Pure scoring algorithms exposed to agents as tool handlers."""

from messageai.orchestrator.scoring.budget_allocator import (
    PlatformAllocation,
    allocate_budget,
    score_platform,
)
from messageai.orchestrator.scoring.lead_qualification import (
    QualificationResult,
    classify,
    score_lead,
)

__all__ = [
    "PlatformAllocation",
    "allocate_budget",
    "score_platform",
    "QualificationResult",
    "classify",
    "score_lead",
]
