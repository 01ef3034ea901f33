"""
交通费用估算
未填写价格时按交通方式的固定价格区间生成估价
"""

import math
import random
from typing import Dict, Optional, Tuple

from shared.models.group import TransportMode

# 单程价格区间（INR）
TRANSPORT_PRICE_BANDS: Dict[str, Tuple[int, int]] = {
    TransportMode.FLIGHT.value: (3000, 15000),
    TransportMode.TRAIN.value: (500, 3000),
    TransportMode.BUS.value: (200, 1500),
    TransportMode.CAB.value: (1000, 5000),
}

ROUND_TRIP_MULTIPLIER = 1.8


def estimate_transport_price(mode: str, round_trip: bool = False,
                             rng: Optional[random.Random] = None) -> float:
    """在区间内取整数单程价，往返乘 1.8"""
    band = TRANSPORT_PRICE_BANDS.get(mode)
    if band is None:
        return 0.0
    low, high = band
    rng = rng or random.Random()
    base = math.floor(rng.random() * (high - low) + low)
    return round(base * ROUND_TRIP_MULTIPLIER, 2) if round_trip else float(base)
