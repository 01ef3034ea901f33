"""
目的地分析测试
"""

import pytest

from services.recommendation_service.insights import (
    activity_type,
    cheapest_travel,
    compare,
    cost_breakdown,
    packing_list,
    summarize,
    timeline,
)
from shared.models.travel import Destination

pytestmark = pytest.mark.unit


def test_cost_breakdown_shares():
    breakdown = cost_breakdown(15000)

    assert [(item.name, item.value) for item in breakdown.items] == [
        ("Accommodation", 6000),
        ("Food & Dining", 4500),
        ("Transport", 3000),
        ("Activities", 1500),
    ]


def test_cost_breakdown_values_are_whole_numbers():
    breakdown = cost_breakdown(12347)
    assert [item.value for item in breakdown.items] == [4939, 3704, 2469, 1235]
    assert breakdown.total_cost == 12347


def test_cheapest_travel_prefers_first_on_tie():
    destination = Destination.model_validate({
        "name": "Goa", "cost": 15000,
        "travelOptions": [
            {"mode": "Train", "cost": 1200},
            {"mode": "Bus", "cost": 900},
            {"mode": "Cab", "cost": 900},
        ],
    })
    assert cheapest_travel(destination).mode == "Bus"
    assert cheapest_travel(Destination(name="Nowhere", cost=0)) is None


def test_compare_averages_known_prices():
    destination = Destination.model_validate({
        "name": "Goa", "cost": 15000, "rating": 4.5,
        "hotels": [
            {"name": "A", "pricePerNight": 3000},
            {"name": "B", "pricePerNight": 2001},
            {"name": "C"},
        ],
        "activities": [{"name": "Snorkelling"}],
    })

    row = compare([destination])[0]

    assert row.name == "Goa"
    assert row.avg_hotel_price == 2501
    assert row.avg_activity_cost is None
    assert row.cheapest_travel is None


def test_summarize():
    destinations = [
        Destination(name="Goa", cost=15000, rating=4.5),
        Destination(name="Manali", cost=22000, rating=4.8),
        Destination(name="Jaipur", cost=12000, rating=4.6),
    ]

    summary = summarize(destinations, budget=20000)

    assert summary.count == 3
    assert summary.average_cost == pytest.approx(16333.33)
    assert summary.within_budget == 2
    assert summary.cheapest == "Jaipur"
    assert summary.highest_rated == "Manali"


def test_summarize_empty():
    summary = summarize([], budget=20000)
    assert summary.count == 0
    assert summary.average_cost is None
    assert summary.cheapest is None


def test_packing_list_for_tropical_beach():
    destination = Destination.model_validate({
        "name": "Goa", "cost": 15000, "category": "Beach & Nightlife",
        "weather": {"climate": "Tropical", "avgTemp": "30°C"},
    })

    result = packing_list(destination)
    ids = [item.id for item in result.items]

    assert result.categories == [
        "Documents", "Clothing", "Health & Hygiene", "Electronics", "Activity Gear", "Miscellaneous",
    ]
    assert {"swimwear", "sunhat", "beachtowel", "snorkel"} <= set(ids)
    assert "jacket" not in ids and "backpack" not in ids
    assert len(ids) == 33
    assert result.essential_count == 24


def test_packing_list_for_cold_adventure():
    destination = Destination.model_validate({
        "name": "Manali", "cost": 16000, "category": "Adventure",
        "weather": {"climate": "Cold, snow in winter"},
    })

    result = packing_list(destination)
    items = {item.id: item for item in result.items}

    assert items["thermals"].essential is True
    assert items["gloves"].essential is False
    assert items["backpack"].category == "Activity Gear"
    assert "swimwear" not in items and "beachtowel" not in items


def test_packing_list_without_weather_uses_mild_clothing():
    result = packing_list(Destination(name="Jaipur", cost=12000, category="Heritage"))

    clothing = [item.name for item in result.items if item.category == "Clothing"]
    assert clothing[:3] == ["Jeans/Pants", "Casual Shirts", "Light Jacket"]
    assert "Activity Gear" not in result.categories
    assert result.text.startswith("Documents:\n- Passport\n- Visa (if required)")
    assert "\n\nMiscellaneous:\n- Cash & Credit Cards" in result.text


def test_activity_type_keywords():
    assert activity_type("Lunch at a beach shack") == "food"
    assert activity_type("Arrival in Goa") == "travel"
    assert activity_type("Explore Fort Aguada") == "sightseeing"
    assert activity_type("Sunset cruise") == "activity"
    # 餐饮关键词优先
    assert activity_type("Food tour of Panjim") == "food"


def test_timeline_slots_follow_itinerary():
    destination = Destination.model_validate({
        "name": "Goa", "cost": 15000,
        "itinerary": [
            {"day": 1, "activities": ["Arrival & check-in", "Visit Baga Beach", "Dinner at Thalassa"]},
            {"day": 2, "activities": ["Scuba diving"]},
        ],
    })

    result = timeline(destination)

    assert result.is_template is False
    first_day = result.days[0].activities
    assert [(a.time, a.type) for a in first_day] == [
        ("09:00", "travel"), ("11:00", "sightseeing"), ("13:00", "food"),
    ]
    assert all(a.duration == "2h" for a in first_day)
    assert [a.title for a in result.days[1].activities] == ["Scuba diving"]


def test_timeline_late_slots_stay_within_the_day():
    activities = [f"Stop {n}" for n in range(10)]
    destination = Destination.model_validate({
        "name": "Goa", "cost": 15000, "itinerary": [{"day": 1, "activities": activities}],
    })

    times = [a.time for a in timeline(destination).days[0].activities]

    assert times[:3] == ["09:00", "11:00", "13:00"]
    assert times[-3:] == ["23:00", "23:00", "23:00"]


def test_timeline_without_itinerary_uses_template():
    result = timeline(Destination(name="Coorg", cost=14000))

    assert result.is_template is True
    assert [d.day for d in result.days] == [1, 2]
    assert result.days[0].activities[0].title == "Arrival & Check-in"
    assert result.days[1].activities[1].time == "09:30"
