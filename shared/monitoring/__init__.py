from .metrics import (
    PROVIDER_CALLS,
    REALTIME_SUBSCRIPTIONS,
    RECOMMENDATION_FALLBACKS,
    ROW_STORE_OPERATIONS,
    setup_metrics,
)

__all__ = [
    "PROVIDER_CALLS",
    "REALTIME_SUBSCRIPTIONS",
    "RECOMMENDATION_FALLBACKS",
    "ROW_STORE_OPERATIONS",
    "setup_metrics",
]
