"""
推荐服务
提供旅行偏好会话、目的地推荐（失败时返回示例数据）、目的地分析，
以及汇率、天气、签证、机票价格辅助查询
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from shared.cache.redis_client import RedisClient, close_all_redis_connections, get_redis_client
from shared.config.settings import get_settings
from shared.models.travel import (
    CostBreakdown,
    CurrencyConversion,
    CurrencyRequest,
    Destination,
    DestinationComparison,
    FlightPriceInfo,
    FlightPriceRequest,
    InsightsRequest,
    PackingList,
    PreferenceSession,
    RecommendationResult,
    RecommendationSort,
    ResultsSummary,
    TripPreferences,
    TripTimeline,
    VisaInfo,
    VisaRequest,
    WeatherForecast,
    WeatherRequest,
)
from shared.monitoring.metrics import setup_metrics
from shared.utils.exception_handlers import register_exception_handlers
from shared.utils.logger import get_logger

from . import insights
from .preferences import PreferenceStore
from .providers import (
    AIGatewayClient,
    CurrencyProvider,
    FlightPriceProvider,
    RecommendationProvider,
    VisaProvider,
    WeatherProvider,
)
from .recommendations import RecommendationService

logger = get_logger(__name__)
settings = get_settings()


class RecommendationContainer:
    """持有外部接口客户端和偏好存储"""

    def __init__(self, cache: RedisClient, gateway: Optional[AIGatewayClient] = None,
                 currency: Optional[CurrencyProvider] = None):
        self.cache = cache
        self.gateway = gateway or AIGatewayClient()
        self.currency = currency or CurrencyProvider()
        self.preferences = PreferenceStore(cache)
        self.recommendations = RecommendationService(RecommendationProvider(self.gateway))
        self.weather = WeatherProvider(self.gateway)
        self.visa = VisaProvider(self.gateway)
        self.flight_prices = FlightPriceProvider(self.gateway)

    async def close(self):
        await self.gateway.close()
        await self.currency.close()


def get_container(request: Request) -> RecommendationContainer:
    """FastAPI 依赖：从 app.state 取组件"""
    return request.app.state.container


router = APIRouter(prefix="/api/v1")


# ==================== 偏好与推荐 ====================
@router.post("/preferences", response_model=PreferenceSession, status_code=201)
async def save_preferences(prefs: TripPreferences, container: RecommendationContainer = Depends(get_container)):
    """保存偏好表单，返回一次性检索ID"""
    return await container.preferences.save(prefs)


@router.get("/recommendations/{search_id}", response_model=RecommendationResult)
async def recommendations_for_session(
    search_id: str,
    category: Optional[str] = Query(None),
    sort_by: RecommendationSort = Query(RecommendationSort.RATING),
    container: RecommendationContainer = Depends(get_container),
):
    """凭检索ID读取偏好（读取后失效）并生成推荐"""
    prefs = await container.preferences.take(search_id)
    return await container.recommendations.recommend(prefs, category, sort_by)


@router.post("/recommendations", response_model=RecommendationResult)
async def recommend(
    prefs: TripPreferences,
    category: Optional[str] = Query(None),
    sort_by: RecommendationSort = Query(RecommendationSort.RATING),
    container: RecommendationContainer = Depends(get_container),
):
    return await container.recommendations.recommend(prefs, category, sort_by)


# ==================== 目的地分析 ====================
@router.get("/insights/cost-breakdown", response_model=CostBreakdown)
async def get_cost_breakdown(total_cost: float = Query(..., ge=0)):
    return insights.cost_breakdown(total_cost)


@router.post("/insights/compare", response_model=List[DestinationComparison])
async def compare_destinations(request: InsightsRequest):
    return insights.compare(request.destinations)


@router.post("/insights/summary", response_model=ResultsSummary)
async def summarize_results(request: InsightsRequest):
    return insights.summarize(request.destinations, request.budget)


@router.post("/insights/packing-list", response_model=PackingList)
async def generate_packing_list(destination: Destination):
    """按目的地气候和类型生成打包清单"""
    return insights.packing_list(destination)


@router.post("/insights/timeline", response_model=TripTimeline)
async def generate_timeline(destination: Destination):
    return insights.timeline(destination)


# ==================== 辅助查询 ====================
@router.post("/currency/convert", response_model=CurrencyConversion)
async def convert_currency(request: CurrencyRequest, container: RecommendationContainer = Depends(get_container)):
    """未指定目标货币时换算为默认货币"""
    to_currency = request.to_currency or settings.DEFAULT_CURRENCY
    return await container.currency.convert(request.amount, request.from_currency, to_currency)


@router.post("/weather/forecast", response_model=WeatherForecast)
async def weather_forecast(request: WeatherRequest, container: RecommendationContainer = Depends(get_container)):
    return await container.weather.forecast(request.city, request.days)


@router.post("/visa/check", response_model=VisaInfo)
async def check_visa(request: VisaRequest, container: RecommendationContainer = Depends(get_container)):
    return await container.visa.check(request.nationality, request.destination)


@router.post("/flights/prices", response_model=FlightPriceInfo)
async def flight_prices(request: FlightPriceRequest, container: RecommendationContainer = Depends(get_container)):
    return await container.flight_prices.estimate(request)


# ==================== 健康检查 ====================
@router.get("/health")
async def health_check(request: Request):
    """健康检查"""
    container: RecommendationContainer = request.app.state.container
    cache_ok = await container.cache.ping()
    return {
        "status": "healthy" if cache_ok else "degraded",
        "service": "recommendation-service",
        "cache": "connected" if cache_ok else "unavailable",
        "ai_gateway": "configured" if container.gateway.api_key else "not_configured",
    }


# ==================== 应用 ====================
def create_app(container: Optional[RecommendationContainer] = None) -> FastAPI:
    """创建推荐服务应用；测试时可注入组件"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        logger.info("启动推荐服务...")
        app.state.container = container or RecommendationContainer(get_redis_client())
        if not app.state.container.gateway.api_key:
            logger.warning("未配置AI网关密钥，推荐将使用示例数据")
        logger.info("推荐服务启动完成")

        yield

        logger.info("关闭推荐服务...")
        await app.state.container.close()
        if container is None:
            await close_all_redis_connections()

    app = FastAPI(
        title="Budget Trip Planner Recommendation Service",
        description="推荐服务，提供目的地推荐和出行辅助查询",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    # 添加CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_metrics(app, "recommendation-service", settings.APP_VERSION)
    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.recommendation_service.main:app",
        host=settings.HOST,
        port=settings.RECOMMENDATION_SERVICE_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
