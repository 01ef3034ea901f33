"""
行程安排与交通预订仓库
"""

import random
from datetime import date, time, timedelta
from typing import Dict, List, Optional

from shared.database.models import ItineraryItemORM, TransportBookingORM, TripGroupORM
from shared.database.policy import AccessPolicy
from shared.database.row_store import RowStore
from shared.errors import ValidationError
from shared.models.group import (
    ItineraryDay,
    ItineraryItem,
    ItineraryItemCreate,
    TransportBooking,
    TransportBookingCreate,
    TransportSummary,
)

from ..pricing import estimate_transport_price
from ..profile_joiner import ProfileJoiner
from .base import ResourceRepository


class ItineraryRepository(ResourceRepository):
    """行程活动；不校验开始/结束时间的先后"""

    model = ItineraryItemORM
    view = ItineraryItem
    order_by = "day_date"

    async def add(self, group_id: str, user_id: Optional[str], data: ItineraryItemCreate) -> ItineraryItem:
        title = data.title.strip()
        if not title:
            raise ValidationError("Title is required", field="title")
        return await self.insert(group_id, user_id, {**data.model_dump(), "title": title})

    async def list_days(self, group_id: str, user_id: Optional[str]) -> List[ItineraryDay]:
        """按日期分组；同一天内按开始时间升序，没有时间的排在最后"""
        items = await self.list_by_group(group_id, user_id)
        items.sort(key=lambda item: (item.day_date, item.start_time is None, item.start_time or time.min))

        days: Dict[date, List[ItineraryItem]] = {}
        for item in items:
            days.setdefault(item.day_date, []).append(item)
        return [ItineraryDay(day_date=day, items=day_items) for day, day_items in days.items()]

    async def trip_days(self, group_id: str, user_id: Optional[str]) -> List[date]:
        """小组设置了起止日期时返回每一天"""
        await self.policy.require_member(group_id, user_id)
        group = await self.store.get(TripGroupORM, group_id)
        start, end = group.get("start_date"), group.get("end_date")
        if not start or not end or end < start:
            return []
        return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


class TransportRepository(ResourceRepository):
    """交通预订；未填价格时按交通方式估价，往返乘 1.8"""

    model = TransportBookingORM
    view = TransportBooking
    order_by = "departure_date"

    def __init__(self, store: RowStore, policy: AccessPolicy, profiles: ProfileJoiner,
                 rng: Optional[random.Random] = None):
        super().__init__(store, policy, profiles)
        self.rng = rng or random.Random()

    async def add(self, group_id: str, user_id: Optional[str], data: TransportBookingCreate) -> TransportBooking:
        values = data.model_dump()
        if values.get("estimated_price") is None:
            values["estimated_price"] = estimate_transport_price(
                values["transport_type"], round_trip=data.return_date is not None, rng=self.rng
            )
        return await self.insert(group_id, user_id, values)

    async def summary(self, group_id: str, user_id: Optional[str]) -> TransportSummary:
        bookings = await self.list_by_group(group_id, user_id)
        total = sum(booking.estimated_price or 0 for booking in bookings)
        return TransportSummary(bookings=bookings, total_estimated_cost=total)
