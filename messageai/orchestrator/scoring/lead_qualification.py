"""Keyword heuristics that turn discovery answers into a lead score.

Five independently scored signals with fixed weights:

    budget 30, timeline 25, decision_makers 20, challenge 15,
    previous_solutions 10

The total (0-100) classifies the lead as hot (>=80), warm (>=60) or cold.
A missing or blank answer contributes nothing.
"""

from dataclasses import dataclass, field
from typing import Any

SIGNALS = ("budget", "timeline", "decision_makers", "challenge", "previous_solutions")

HOT_THRESHOLD = 80
WARM_THRESHOLD = 60


@dataclass(frozen=True)
class QualificationResult:
    """Score, classification and per-signal breakdown."""

    score: int
    classification: str
    breakdown: dict[str, int] = field(default_factory=dict)
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "classification": self.classification,
            "breakdown": dict(self.breakdown),
            "reasoning": self.reasoning,
        }


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def _score_budget(answer: str) -> tuple[int, str]:
    text = answer.lower()
    if _contains_any(text, ("$10k", "10,000", "high", "unlimited")):
        return 30, "Strong budget fit"
    if _contains_any(text, ("$5k", "5,000", "medium")):
        return 20, "Moderate budget fit"
    if _contains_any(text, ("$1k", "1,000", "low", "small")):
        return 10, "Limited budget"
    return 15, "Budget mentioned"


def _score_timeline(answer: str) -> tuple[int, str]:
    text = answer.lower()
    if _contains_any(text, ("asap", "urgent", "immediate", "now")):
        return 25, "Urgent timeline"
    if _contains_any(text, ("1 month", "2 month", "3 month", "soon")):
        return 20, "Near-term timeline (1-3 months)"
    if _contains_any(text, ("6 month", "year", "long")):
        return 10, "Long-term timeline (6+ months)"
    return 15, "Timeline mentioned"


def _score_decision_makers(answer: str) -> tuple[int, str]:
    text = answer.lower()
    if _contains_any(text, ("i am", "me", "sole", "owner", "ceo")):
        return 20, "Primary decision maker"
    if _contains_any(text, ("team", "committee", "manager")):
        return 15, "Part of decision team"
    return 10, "Influencer role"


def _score_challenge(answer: str) -> tuple[int, str]:
    length = len(answer)
    if length > 100:
        return 15, "Clear, detailed challenge"
    if length > 50:
        return 10, "Challenge identified"
    return 5, "Vague challenge description"


def _score_previous_solutions(answer: str) -> tuple[int, str]:
    text = answer.lower()
    if _contains_any(text, ("tried", "using", "currently")):
        return 10, "Has context from previous solutions"
    if _contains_any(text, ("nothing", "none")):
        return 5, "No previous solutions (greenfield)"
    return 7, "Some experience with solutions"


_SCORERS = {
    "budget": _score_budget,
    "timeline": _score_timeline,
    "decision_makers": _score_decision_makers,
    "challenge": _score_challenge,
    "previous_solutions": _score_previous_solutions,
}


def classify(score: int) -> str:
    """Map a total score to hot, warm or cold."""
    if score >= HOT_THRESHOLD:
        return "hot"
    if score >= WARM_THRESHOLD:
        return "warm"
    return "cold"


def score_lead(responses: dict[str, str | None]) -> QualificationResult:
    """Score discovery answers.

    Args:
        responses: Answers keyed by signal name; missing keys are unanswered.

    Returns:
        QualificationResult with the total, classification and reasoning.
    """
    breakdown: dict[str, int] = {}
    reasons: list[str] = []
    for signal in SIGNALS:
        answer = responses.get(signal)
        if not answer or not answer.strip():
            continue
        points, reason = _SCORERS[signal](answer)
        breakdown[signal] = points
        reasons.append(reason)

    score = sum(breakdown.values())
    return QualificationResult(
        score=score,
        classification=classify(score),
        breakdown=breakdown,
        reasoning="; ".join(reasons),
    )
