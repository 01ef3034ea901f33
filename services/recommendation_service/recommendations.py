"""
目的地推荐
调用推荐接口，失败时退回本地示例数据，并支持按类别筛选和排序
"""

from typing import List, Optional

from shared.errors import ProviderFailure
from shared.models.travel import Destination, RecommendationResult, RecommendationSort, TripPreferences
from shared.monitoring.metrics import RECOMMENDATION_FALLBACKS
from shared.utils.logger import get_logger

from .providers import RecommendationProvider
from .sample_data import sample_destinations

logger = get_logger(__name__)

FALLBACK_MESSAGE = "Failed to fetch recommendations. Showing sample data."


def filter_and_sort(destinations: List[Destination], category: Optional[str] = None,
                    sort_by: RecommendationSort = RecommendationSort.RATING) -> List[Destination]:
    """类别按不区分大小写的子串匹配；排序稳定"""
    results = list(destinations)
    if category and category.lower() != "all":
        needle = category.lower()
        results = [d for d in results if needle in d.category.lower()]

    sort_by = RecommendationSort(sort_by)
    if sort_by == RecommendationSort.COST_LOW:
        results.sort(key=lambda d: d.cost)
    elif sort_by == RecommendationSort.COST_HIGH:
        results.sort(key=lambda d: d.cost, reverse=True)
    else:
        results.sort(key=lambda d: d.rating, reverse=True)
    return results


class RecommendationService:
    """推荐结果永远不为空：接口失败时返回示例数据"""

    def __init__(self, provider: RecommendationProvider):
        self.provider = provider

    async def recommend(self, prefs: TripPreferences, category: Optional[str] = None,
                        sort_by: RecommendationSort = RecommendationSort.RATING) -> RecommendationResult:
        try:
            destinations = await self.provider.recommend(prefs)
            is_fallback = False
            message = None
        except ProviderFailure as e:
            RECOMMENDATION_FALLBACKS.inc()
            logger.warning(f"推荐接口失败，使用示例数据: {e.message}")
            destinations = sample_destinations(prefs)
            is_fallback = True
            message = FALLBACK_MESSAGE

        return RecommendationResult(
            destinations=filter_and_sort(destinations, category, sort_by),
            is_fallback=is_fallback,
            message=message,
        )
