"""Tests for score-proportional budget allocation."""

import pytest

from messageai.errors import InsufficientBudgetError
from messageai.orchestrator.scoring import allocate_budget, score_platform

B2B_ICP = {
    "demographics": {"age_range": "30-45"},
    "firmographics": {"company_size": "10-50"},
}
YOUNG_ICP = {"demographics": {"ageRange": "18-24"}}


class TestScorePlatform:
    def test_linkedin_rewards_firmographics_but_pays_for_cpl(self):
        # 50 base + 30 firmographics - 10 expensive CPL
        assert score_platform("linkedin", B2B_ICP) == 70

    def test_facebook_rewards_demographics_and_cheap_cpl(self):
        assert score_platform("facebook", B2B_ICP) == 85

    def test_tiktok_rewards_young_audience(self):
        assert score_platform("tiktok", YOUNG_ICP) == 90
        assert score_platform("tiktok", B2B_ICP) == 60

    def test_unknown_platform_gets_base_score(self):
        assert score_platform("pinterest", {}) == 50


class TestAllocateBudget:
    def test_split_sums_to_total_exactly(self):
        allocation = allocate_budget(1000.0, ["facebook", "instagram", "x"], B2B_ICP)
        total = sum(entry.budget for entry in allocation.values())
        assert total == pytest.approx(1000.0, abs=1e-9)
        assert list(allocation) == ["facebook", "instagram", "x"]

    def test_single_platform_takes_everything(self):
        allocation = allocate_budget(500.0, ["facebook"], B2B_ICP)
        entry = allocation["facebook"]
        assert entry.budget == 500.0
        assert entry.percentage == 100.0
        assert entry.estimated_cpl == 25.0
        assert entry.estimated_leads == 20

    def test_platform_below_minimum_is_dropped(self):
        # linkedin's share of 500 is under its 300 minimum
        allocation = allocate_budget(500.0, ["linkedin", "facebook"], B2B_ICP)
        assert list(allocation) == ["facebook"]
        assert allocation["facebook"].budget == 500.0

    def test_drops_one_platform_per_pass(self):
        # Split 250 gives linkedin 134.62 and tiktok 115.38, both short.
        # Dropping linkedin alone leaves tiktok clear of its 200 minimum.
        allocation = allocate_budget(250.0, ["linkedin", "tiktok"], B2B_ICP)
        assert list(allocation) == ["tiktok"]
        assert allocation["tiktok"].budget == 250.0
        assert allocation["tiktok"].percentage == 100.0

    def test_only_short_platform_is_dropped(self):
        # Only linkedin (124.44 of 300) falls short; facebook and x share the rest.
        allocation = allocate_budget(400.0, ["linkedin", "facebook", "x"], B2B_ICP)
        assert list(allocation) == ["facebook", "x"]
        assert sum(entry.budget for entry in allocation.values()) == pytest.approx(400.0)

    def test_twitter_is_normalized_to_x(self):
        allocation = allocate_budget(400.0, ["Twitter", "x"], {})
        assert list(allocation) == ["x"]

    def test_insufficient_budget(self):
        with pytest.raises(InsufficientBudgetError) as exc_info:
            allocate_budget(50.0, ["linkedin", "tiktok"], B2B_ICP)
        assert exc_info.value.minimum == 200.0

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            allocate_budget(0, ["facebook"])
        with pytest.raises(ValueError):
            allocate_budget(100.0, ["  "])

    def test_to_dict_includes_estimates(self):
        data = allocate_budget(500.0, ["facebook"], B2B_ICP)["facebook"].to_dict()
        assert set(data) == {
            "budget",
            "percentage",
            "score",
            "rationale",
            "estimated_cpl",
            "estimated_leads",
        }
