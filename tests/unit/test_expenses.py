"""
本地费用记录与交通估价测试
"""

import random
from datetime import date
from itertools import count

import pytest

from services.collab_service.expenses import ExpenseTracker
from services.collab_service.pricing import TRANSPORT_PRICE_BANDS, estimate_transport_price
from shared.errors import NotFound, ValidationError
from shared.models.travel import ExpenseCreate

pytestmark = pytest.mark.unit

TODAY = date(2024, 5, 1)


@pytest.fixture
def tracker():
    ids = count(1)
    return ExpenseTracker(21000, 7, today=lambda: TODAY, id_factory=lambda: f"e{next(ids)}")


def test_add_defaults_description_and_date(tracker):
    expense = tracker.add(ExpenseCreate(category="food", amount=1000))

    assert expense.id == "e1"
    assert expense.description == "food"
    assert expense.spent_on == TODAY


def test_summary_after_two_expenses_same_day(tracker):
    tracker.add(ExpenseCreate(category="food", amount=1000))
    tracker.add(ExpenseCreate(category="transport", amount=1000, description="Auto"))

    summary = tracker.summary()

    assert summary.daily_budget == 3000
    assert summary.daily_average == 2000
    assert summary.remaining == 19000
    assert summary.expense_count == 2


@pytest.mark.parametrize("amount", [0, -10])
def test_invalid_amount_is_rejected(tracker, amount):
    with pytest.raises(ValidationError, match="Please enter a valid amount"):
        tracker.add(ExpenseCreate(amount=amount))
    assert tracker.expenses == []


def test_remove(tracker):
    expense = tracker.add(ExpenseCreate(amount=500))
    tracker.remove(expense.id)
    assert tracker.expenses == []

    with pytest.raises(NotFound):
        tracker.remove(expense.id)


@pytest.mark.parametrize("budget, days", [(0, 7), (1000, 0)])
def test_tracker_requires_budget_and_duration(budget, days):
    with pytest.raises(ValidationError):
        ExpenseTracker(budget, days)


@pytest.mark.parametrize("mode", sorted(TRANSPORT_PRICE_BANDS))
def test_one_way_estimate_is_whole_number_in_band(mode):
    low, high = TRANSPORT_PRICE_BANDS[mode]
    rng = random.Random(42)
    for _ in range(50):
        price = estimate_transport_price(mode, rng=rng)
        assert low <= price < high
        assert price == int(price)


def test_round_trip_multiplies_one_way_price():
    one_way = estimate_transport_price("train", rng=random.Random(3))
    round_trip = estimate_transport_price("train", round_trip=True, rng=random.Random(3))
    assert round_trip == round(one_way * 1.8, 2)


def test_unknown_mode_is_free():
    assert estimate_transport_price("boat") == 0.0
