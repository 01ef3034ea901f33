"""
汇总计算测试
"""

from datetime import date, datetime

import pytest

from services.collab_service.aggregates import (
    has_budget,
    summarize_budget,
    summarize_expenses,
    tally_votes,
)
from shared.errors import ValidationError
from shared.models.group import BudgetSplit, DestinationVote, ProfileSummary
from shared.models.travel import Expense

pytestmark = pytest.mark.unit

NOW = datetime(2024, 5, 1, 10, 0)


def vote(index, user_id, name, **extra):
    return DestinationVote(
        id=f"v{index}",
        group_id="g1",
        user_id=user_id,
        destination_name=name,
        created_at=NOW,
        profile=ProfileSummary(user_id=user_id, display_name=user_id.upper()),
        **extra,
    )


def split(user_id, amount, paid=0.0):
    return BudgetSplit(id=f"s-{user_id}", group_id="g1", user_id=user_id, amount=amount, paid_amount=paid)


class TestTallyVotes:

    def test_percentages_sum_to_one_hundred(self):
        votes = [
            vote(1, "u1", "Manali", cost=15000),
            vote(2, "u2", "Goa"),
            vote(3, "u3", "Manali"),
        ]

        tallies = tally_votes(votes, current_user_id="u2")

        assert [t.destination_name for t in tallies] == ["Manali", "Goa"]
        assert [t.count for t in tallies] == [2, 1]
        assert [t.percentage for t in tallies] == [66.7, 33.3]
        assert sum(t.percentage for t in tallies) == pytest.approx(100.0)
        assert tallies[0].cost == 15000
        assert [t.user_voted for t in tallies] == [False, True]
        assert [p.user_id for p in tallies[0].voters] == ["u1", "u3"]

    def test_names_are_case_sensitive(self):
        tallies = tally_votes([vote(1, "u1", "Goa"), vote(2, "u2", "goa")])
        assert len(tallies) == 2

    def test_ties_keep_first_seen_order(self):
        votes = [vote(1, "u1", "Jaipur"), vote(2, "u1", "Goa"), vote(3, "u2", "Goa"), vote(4, "u2", "Jaipur")]
        assert [t.destination_name for t in tally_votes(votes)] == ["Jaipur", "Goa"]

    def test_no_votes(self):
        assert tally_votes([]) == []

    def test_same_input_same_output(self):
        votes = [vote(1, "u1", "Manali"), vote(2, "u2", "Goa")]
        assert tally_votes(votes, "u1") == tally_votes(list(votes), "u1")


class TestSummarizeBudget:

    def test_three_way_split_with_partial_payments(self):
        splits = [split("u1", 30000, 30000), split("u2", 30000, 15000), split("u3", 30000)]

        summary = summarize_budget(splits, 90000)

        assert summary.total_paid == 45000
        assert summary.total_remaining == 45000
        assert summary.overall_progress == 50.0
        assert [line.percentage for line in summary.splits] == [100.0, 50.0, 0.0]
        assert summary.splits[1].remaining == 15000

    def test_overpayment_is_not_clamped(self):
        summary = summarize_budget([split("u1", 1000, 1500)], 1000)
        assert summary.splits[0].percentage == 150.0
        assert summary.total_remaining == -500

    @pytest.mark.parametrize("budget", [None, 0, 0.0])
    def test_no_budget(self, budget):
        summary = summarize_budget([], budget)

        assert summary.total_budget is None
        assert summary.total_remaining is None
        assert summary.overall_progress is None
        assert summary.total_paid == 0

    def test_is_idempotent(self):
        splits = [split("u1", 45000, 1000), split("u2", 45000)]
        assert summarize_budget(splits, 90000) == summarize_budget(splits, 90000)


def test_has_budget():
    assert has_budget(1.0)
    assert not has_budget(0)
    assert not has_budget(None)
    assert not has_budget(-5)


class TestSummarizeExpenses:

    def expense(self, index, amount, day, category="food"):
        return Expense(id=str(index), category=category, amount=amount, description=category, spent_on=day)

    def test_daily_average_uses_distinct_days(self):
        expenses = [
            self.expense(1, 1000, date(2024, 5, 1)),
            self.expense(2, 1000, date(2024, 5, 1), category="transport"),
        ]

        summary = summarize_expenses(expenses, 21000, 7)

        assert summary.daily_budget == 3000
        assert summary.daily_average == 2000
        assert summary.remaining == 19000
        assert summary.percentage_spent == 9.5
        assert summary.over_daily_budget is False
        assert summary.category_totals == {"food": 1000, "transport": 1000}

    def test_empty_expenses(self):
        summary = summarize_expenses([], 7000, 7)
        assert summary.total_spent == 0
        assert summary.daily_average == 0
        assert summary.expense_count == 0

    def test_over_daily_budget(self):
        summary = summarize_expenses([self.expense(1, 5000, date(2024, 5, 1))], 7000, 7)
        assert summary.over_daily_budget is True

    @pytest.mark.parametrize("budget, days", [(0, 7), (1000, 0)])
    def test_rejects_invalid_inputs(self, budget, days):
        with pytest.raises(ValidationError):
            summarize_expenses([], budget, days)
