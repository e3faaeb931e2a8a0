"""Score-proportional budget allocation across ad platforms.

Each candidate platform gets a 0-100 suitability score from ICP signal
matches plus a cost-efficiency adjustment against the cost-per-lead
benchmark table. Budget is split in proportion to score. While any
share falls below its minimum viable spend, the platform with the largest
shortfall is dropped and the rest reallocated. At most one pass per
platform.

Pure: no I/O, no randomness. Amounts are rounded to cents and the rounding
remainder goes to the highest-scoring platform so the allocation sums to
the total exactly.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from messageai.errors import InsufficientBudgetError

BASE_SCORE = 50

# Average cost per lead in USD
COST_PER_LEAD: dict[str, float] = {
    "facebook": 25.0,
    "instagram": 30.0,
    "linkedin": 75.0,
    "tiktok": 20.0,
    "x": 40.0,
}

# Minimum viable spend per platform in USD for a campaign to exit the
# learning phase. Platforms without an entry use DEFAULT_MINIMUM_SPEND.
MINIMUM_SPEND: dict[str, float] = {
    "facebook": 100.0,
    "instagram": 100.0,
    "linkedin": 300.0,
    "tiktok": 200.0,
    "x": 100.0,
}
DEFAULT_MINIMUM_SPEND = 100.0

EFFICIENT_CPL_RATIO = 0.8
EXPENSIVE_CPL_RATIO = 1.5

RATIONALES: dict[str, str] = {
    "linkedin": (
        "LinkedIn is optimal for B2B targeting with professional demographics "
        "and firmographic data"
    ),
    "facebook": (
        "Facebook offers broad demographic reach and detailed interest-based "
        "targeting"
    ),
    "instagram": (
        "Instagram reaches visually engaged audiences with Meta's demographic "
        "targeting"
    ),
    "tiktok": "TikTok excels for younger demographics with high engagement rates",
    "x": "X (Twitter) is effective for thought leadership and industry conversations",
}
DEFAULT_RATIONALE = "Platform aligns with ICP characteristics"

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class PlatformAllocation:
    """Budget share for one surviving platform."""

    platform: str
    budget: float
    percentage: float
    score: int
    rationale: str
    estimated_cpl: float | None = None
    estimated_leads: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "budget": self.budget,
            "percentage": self.percentage,
            "score": self.score,
            "rationale": self.rationale,
        }
        if self.estimated_cpl is not None:
            data["estimated_cpl"] = self.estimated_cpl
            data["estimated_leads"] = self.estimated_leads
        return data


def _average_cpl() -> float:
    return sum(COST_PER_LEAD.values()) / len(COST_PER_LEAD)


def score_platform(platform: str, icp: dict[str, Any]) -> int:
    """Compute a 0-100 suitability score for one platform.

    Args:
        platform: Lowercase platform key.
        icp: ICP dict with optional ``demographics`` / ``firmographics``.

    Returns:
        Clamped integer score.
    """
    score = BASE_SCORE
    demographics = icp.get("demographics") or {}
    firmographics = icp.get("firmographics") or {}

    if platform == "linkedin" and firmographics:
        score += 30
    if platform in ("facebook", "instagram") and demographics:
        score += 25
    if platform == "tiktok":
        age_range = str(demographics.get("ageRange") or demographics.get("age_range") or "")
        if "18-" in age_range or "25-" in age_range:
            score += 30
    if platform == "x":
        score += 20

    cpl = COST_PER_LEAD.get(platform)
    if cpl is not None:
        average = _average_cpl()
        if cpl <= average * EFFICIENT_CPL_RATIO:
            score += 10
        elif cpl >= average * EXPENSIVE_CPL_RATIO:
            score -= 10

    return max(0, min(100, score))


def _normalize(platforms: list[str]) -> list[str]:
    """Lowercase and de-duplicate while keeping order."""
    seen: list[str] = []
    for platform in platforms:
        key = platform.strip().lower()
        if key == "twitter":
            key = "x"
        if key and key not in seen:
            seen.append(key)
    return seen


def allocate_budget(
    total_budget: float, platforms: list[str], icp: dict[str, Any] | None = None
) -> dict[str, PlatformAllocation]:
    """Allocate a total budget across platforms by suitability score.

    Args:
        total_budget: Budget in USD, must be positive.
        platforms: Candidate platform names.
        icp: Ideal customer profile dict.

    Returns:
        Allocation per surviving platform, keyed by platform, in input order.

    Raises:
        ValueError: Non-positive budget or no platforms.
        InsufficientBudgetError: No platform clears its minimum spend.
    """
    if total_budget <= 0:
        raise ValueError("Total budget must be positive")
    candidates = _normalize(platforms)
    if not candidates:
        raise ValueError("At least one platform is required")

    icp = icp or {}
    scores = {p: score_platform(p, icp) for p in candidates}
    minimums = {p: MINIMUM_SPEND.get(p, DEFAULT_MINIMUM_SPEND) for p in candidates}

    surviving = list(candidates)
    shares = _proportional_shares(total_budget, surviving, scores)
    while surviving:
        shortfalls = {
            p: minimums[p] - shares[p] for p in surviving if shares[p] < minimums[p]
        }
        if not shortfalls:
            return _round_allocation(total_budget, surviving, scores, shares)
        # Largest shortfall first, then lowest score, then latest in input
        worst = max(
            shortfalls,
            key=lambda p: (shortfalls[p], -scores[p], surviving.index(p)),
        )
        surviving.remove(worst)
        if surviving:
            shares = _proportional_shares(total_budget, surviving, scores)

    raise InsufficientBudgetError(min(minimums.values()))


def _proportional_shares(
    total_budget: float, platforms: list[str], scores: dict[str, int]
) -> dict[str, float]:
    total_score = sum(scores[p] for p in platforms)
    if total_score <= 0:
        # Every score clamped to zero: fall back to an even split
        return {p: total_budget / len(platforms) for p in platforms}
    return {p: total_budget * scores[p] / total_score for p in platforms}


def _round_allocation(
    total_budget: float,
    platforms: list[str],
    scores: dict[str, int],
    shares: dict[str, float],
) -> dict[str, PlatformAllocation]:
    total = Decimal(str(total_budget)).quantize(_CENT, rounding=ROUND_HALF_UP)
    amounts = {
        p: Decimal(str(shares[p])).quantize(_CENT, rounding=ROUND_HALF_UP)
        for p in platforms
    }
    remainder = total - sum(amounts.values())
    if remainder:
        top = max(platforms, key=lambda p: (scores[p], -platforms.index(p)))
        amounts[top] += remainder

    allocation: dict[str, PlatformAllocation] = {}
    for platform in platforms:
        budget = float(amounts[platform])
        cpl = COST_PER_LEAD.get(platform)
        allocation[platform] = PlatformAllocation(
            platform=platform,
            budget=budget,
            percentage=round(budget / float(total) * 100, 2),
            score=scores[platform],
            rationale=RATIONALES.get(platform, DEFAULT_RATIONALE),
            estimated_cpl=cpl,
            estimated_leads=math.floor(budget / cpl) if cpl else None,
        )
    return allocation
