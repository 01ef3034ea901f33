"""
目的地分析：费用拆分、横向对比、结果概览，以及打包清单和行程时间线
"""

from typing import Iterable, List, Optional, Tuple

from shared.models.travel import (
    CostBreakdown,
    CostShare,
    Destination,
    DestinationComparison,
    PackingItem,
    PackingList,
    ResultsSummary,
    TimelineActivity,
    TimelineActivityType,
    TimelineDay,
    TravelOption,
    TripTimeline,
)

COST_SHARES = [
    ("Accommodation", 0.40),
    ("Food & Dining", 0.30),
    ("Transport", 0.20),
    ("Activities", 0.10),
]


def _round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def cost_breakdown(total_cost: float) -> CostBreakdown:
    """住宿40%、餐饮30%、交通20%、活动10%，各项四舍五入到整数"""
    items = [CostShare(name=name, value=_round_half_up(total_cost * share)) for name, share in COST_SHARES]
    return CostBreakdown(total_cost=total_cost, items=items)


def _average(values: List[float]) -> Optional[int]:
    if not values:
        return None
    return _round_half_up(sum(values) / len(values))


def cheapest_travel(destination: Destination) -> Optional[TravelOption]:
    """价格相同时取先出现的选项"""
    cheapest = None
    for option in destination.travel_options:
        if cheapest is None or option.cost < cheapest.cost:
            cheapest = option
    return cheapest


def compare(destinations: List[Destination]) -> List[DestinationComparison]:
    """缺少价格的酒店或活动不参与平均"""
    rows = []
    for destination in destinations:
        hotel_prices = [h.price_per_night for h in destination.hotels if h.price_per_night is not None]
        activity_costs = [a.cost for a in destination.activities if a.cost is not None]
        rows.append(DestinationComparison(
            name=destination.name,
            cost=destination.cost,
            rating=destination.rating,
            avg_hotel_price=_average(hotel_prices),
            avg_activity_cost=_average(activity_costs),
            cheapest_travel=cheapest_travel(destination),
        ))
    return rows


def summarize(destinations: List[Destination], budget: float) -> ResultsSummary:
    if not destinations:
        return ResultsSummary(count=0, budget=budget)

    average_cost = round(sum(d.cost for d in destinations) / len(destinations), 2)
    cheapest = min(destinations, key=lambda d: d.cost)
    highest_rated = max(destinations, key=lambda d: d.rating)
    return ResultsSummary(
        count=len(destinations),
        average_cost=average_cost,
        budget=budget,
        within_budget=sum(1 for d in destinations if d.cost <= budget),
        cheapest=cheapest.name,
        highest_rated=highest_rated.name,
    )


# ==================== 打包清单 ====================
# (id, 名称, 是否必带)
PackingEntries = Iterable[Tuple[str, str, bool]]

DOCUMENTS = [
    ("passport", "Passport", True),
    ("visa", "Visa (if required)", True),
    ("tickets", "Flight/Train Tickets", True),
    ("insurance", "Travel Insurance", True),
    ("hotel", "Hotel Confirmations", False),
    ("id", "Photo ID", True),
]

COLD_CLOTHING = [
    ("jacket", "Winter Jacket", True),
    ("sweater", "Sweaters/Hoodies", True),
    ("thermals", "Thermal Underwear", True),
    ("gloves", "Gloves", False),
    ("scarf", "Scarf", False),
]

WARM_CLOTHING = [
    ("shorts", "Shorts", True),
    ("tshirts", "Light T-shirts", True),
    ("swimwear", "Swimwear", True),
    ("sunhat", "Sun Hat", True),
    ("sandals", "Sandals/Flip-flops", False),
]

MILD_CLOTHING = [
    ("jeans", "Jeans/Pants", True),
    ("shirts", "Casual Shirts", True),
    ("jacket-light", "Light Jacket", True),
]

BASIC_CLOTHING = [
    ("underwear", "Underwear", True),
    ("socks", "Socks", True),
    ("shoes", "Comfortable Walking Shoes", True),
    ("sleepwear", "Sleepwear", True),
]

HEALTH = [
    ("toothbrush", "Toothbrush & Toothpaste", True),
    ("medications", "Prescription Medications", True),
    ("firstaid", "First Aid Kit", True),
    ("sunscreen", "Sunscreen", True),
    ("sanitizer", "Hand Sanitizer", True),
    ("toiletries", "Toiletries", True),
]

ELECTRONICS = [
    ("phone", "Phone & Charger", True),
    ("adapter", "Universal Power Adapter", True),
    ("powerbank", "Power Bank", False),
    ("camera", "Camera", False),
    ("headphones", "Headphones", False),
]

OUTDOOR_GEAR = [
    ("backpack", "Hiking Backpack", True),
    ("waterbottle", "Reusable Water Bottle", True),
    ("flashlight", "Flashlight/Headlamp", False),
]

BEACH_GEAR = [
    ("snorkel", "Snorkeling Gear", False),
    ("beachtowel", "Beach Towel", True),
    ("sunglasses", "Sunglasses", True),
]

MISCELLANEOUS = [
    ("money", "Cash & Credit Cards", True),
    ("guidebook", "Travel Guidebook/Maps", False),
    ("notebook", "Notebook & Pen", False),
    ("bags", "Reusable Shopping Bags", False),
]


def _has_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def _packing_items(category: str, entries: PackingEntries) -> List[PackingItem]:
    return [PackingItem(id=item_id, name=name, category=category, essential=essential)
            for item_id, name, essential in entries]


def packing_list(destination: Destination) -> PackingList:
    """
    按气候和目的地类型生成打包清单

    气候含 cold/winter/snow 带保暖衣物，含 hot/tropical/beach 带夏装，其余带春秋装；
    adventure/nature 类目的地加户外装备，beach 类或热带气候加海滩用品
    """
    climate = (destination.weather.climate or "").lower() if destination.weather else ""
    category = destination.category.lower()

    if _has_any(climate, ("cold", "winter", "snow")):
        clothing = COLD_CLOTHING
    elif _has_any(climate, ("hot", "tropical", "beach")):
        clothing = WARM_CLOTHING
    else:
        clothing = MILD_CLOTHING

    items = _packing_items("Documents", DOCUMENTS)
    items += _packing_items("Clothing", [*clothing, *BASIC_CLOTHING])
    items += _packing_items("Health & Hygiene", HEALTH)
    items += _packing_items("Electronics", ELECTRONICS)
    if _has_any(category, ("adventure", "nature")):
        items += _packing_items("Activity Gear", OUTDOOR_GEAR)
    if "beach" in category or "tropical" in climate:
        items += _packing_items("Activity Gear", BEACH_GEAR)
    items += _packing_items("Miscellaneous", MISCELLANEOUS)

    categories = list(dict.fromkeys(item.category for item in items))
    sections = []
    for name in categories:
        lines = [f"- {item.name}" for item in items if item.category == name]
        sections.append(f"{name}:\n" + "\n".join(lines))

    return PackingList(
        destination=destination.name,
        items=items,
        categories=categories,
        essential_count=sum(1 for item in items if item.essential),
        text="\n\n".join(sections),
    )


# ==================== 行程时间线 ====================
TIMELINE_START_HOUR = 9
TIMELINE_SLOT_HOURS = 2
LAST_SLOT_HOUR = 23

Slot = Tuple[str, str, str, TimelineActivityType]

TEMPLATE_DAYS: List[List[Slot]] = [
    [
        ("09:00", "Arrival & Check-in", "2h", TimelineActivityType.TRAVEL),
        ("11:00", "Breakfast & Refresh", "1h", TimelineActivityType.FOOD),
        ("13:00", "Local Sightseeing", "3h", TimelineActivityType.SIGHTSEEING),
        ("16:00", "Lunch", "1h", TimelineActivityType.FOOD),
        ("18:00", "Explore Local Market", "2h", TimelineActivityType.ACTIVITY),
        ("20:00", "Dinner", "1.5h", TimelineActivityType.FOOD),
    ],
    [
        ("08:00", "Breakfast", "1h", TimelineActivityType.FOOD),
        ("09:30", "Main Attraction Visit", "4h", TimelineActivityType.SIGHTSEEING),
        ("13:30", "Lunch Break", "1.5h", TimelineActivityType.FOOD),
        ("15:00", "Adventure Activity", "3h", TimelineActivityType.ACTIVITY),
        ("18:00", "Sunset Point", "1h", TimelineActivityType.SIGHTSEEING),
        ("19:30", "Dinner", "1.5h", TimelineActivityType.FOOD),
    ],
]


def activity_type(title: str) -> TimelineActivityType:
    """按关键词推断活动类型，餐饮优先于交通，交通优先于观光"""
    text = title.lower()
    if _has_any(text, ("breakfast", "lunch", "dinner", "food")):
        return TimelineActivityType.FOOD
    if _has_any(text, ("travel", "arrival", "check-in")):
        return TimelineActivityType.TRAVEL
    if _has_any(text, ("visit", "explore", "tour")):
        return TimelineActivityType.SIGHTSEEING
    return TimelineActivityType.ACTIVITY


def timeline(destination: Destination) -> TripTimeline:
    """
    把每日行程建议排成时间线：09:00 开始，每项 2 小时

    超出当天的时段都落在 23:00；没有行程建议时返回两天的通用模板
    """
    if not destination.itinerary:
        days = [
            TimelineDay(day=index, activities=[
                TimelineActivity(time=time, title=title, duration=duration, type=kind)
                for time, title, duration, kind in slots
            ])
            for index, slots in enumerate(TEMPLATE_DAYS, start=1)
        ]
        return TripTimeline(destination=destination.name, days=days, is_template=True)

    days = []
    for plan in destination.itinerary:
        activities = []
        for index, title in enumerate(plan.activities):
            hour = min(TIMELINE_START_HOUR + index * TIMELINE_SLOT_HOURS, LAST_SLOT_HOUR)
            activities.append(TimelineActivity(
                time=f"{hour:02d}:00",
                title=title,
                duration=f"{TIMELINE_SLOT_HOURS}h",
                type=activity_type(title),
            ))
        days.append(TimelineDay(day=plan.day, activities=activities))
    return TripTimeline(destination=destination.name, days=days)
