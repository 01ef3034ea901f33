"""
外部接口客户端
AI网关（OpenAI兼容的对话补全接口，强制工具调用）与汇率接口。
每个接口独立失败，失败统一转换为 ProviderFailure。
"""

import json
from typing import Any, Dict, List, Optional, Type

import httpx
from pydantic import BaseModel as PydanticBaseModel, ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from shared.config.settings import get_settings
from shared.errors import ProviderFailure
from shared.models.travel import (
    CurrencyConversion,
    Destination,
    FlightPriceInfo,
    FlightPriceRequest,
    TripPreferences,
    VisaInfo,
    WeatherForecast,
)
from shared.monitoring.metrics import PROVIDER_CALLS
from shared.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


MAX_DESTINATIONS = 5

# 网关返回的状态码对应的提示
STATUS_MESSAGES = {
    429: "Rate limit exceeded. Please try again later.",
    402: "AI service requires payment. Please contact support.",
}


class BaseAPIClient:
    """基础API客户端"""

    provider = "api"

    def __init__(self, base_url: str = "", headers: Optional[Dict[str, str]] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.headers = headers or {}
        self.timeout = timeout or settings.PROVIDER_TIMEOUT_SECONDS
        self.transport = transport
        self.session: Optional[httpx.AsyncClient] = None

    async def initialize(self):
        """初始化客户端"""
        self.session = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def close(self):
        """关闭客户端"""
        if self.session:
            await self.session.aclose()
            self.session = None

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.PROVIDER_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _send(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                    data: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """发送请求；只对连接层错误重试"""
        if not self.session:
            await self.initialize()
        return await self.session.request(method=method, url=path, params=params, json=data)

    async def make_request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                           data: Optional[Dict[str, Any]] = None) -> Any:
        """发起HTTP请求并解析JSON；非2xx或非JSON都视为失败"""
        try:
            response = await self._send(method, path, params=params, data=data)
        except httpx.TransportError as e:
            logger.error(f"{self.provider} 请求失败: {e}")
            raise ProviderFailure(self.provider, "Service is unreachable, please try again") from e

        if not response.is_success:
            logger.error(f"{self.provider} HTTP错误 {response.status_code}: {response.text[:500]}")
            message = STATUS_MESSAGES.get(response.status_code, f"Service returned HTTP {response.status_code}")
            raise ProviderFailure(self.provider, message)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{self.provider} 返回的不是JSON: {e}")
            raise ProviderFailure(self.provider, "Service returned an invalid response") from e


class AIGatewayClient(BaseAPIClient):
    """对话补全网关客户端，只使用强制工具调用的结构化输出"""

    provider = "ai-gateway"

    def __init__(self, url: Optional[str] = None, api_key: Optional[str] = None,
                 model: Optional[str] = None, **kwargs):
        self.api_key = api_key if api_key is not None else settings.AI_GATEWAY_API_KEY
        self.model = model or settings.AI_MODEL
        self.url = url or settings.AI_GATEWAY_URL
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        super().__init__(headers=headers, **kwargs)

    async def call_tool(self, system_prompt: str, user_prompt: str, tool_name: str,
                        description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """调用网关并返回工具参数（已解析的JSON对象）"""
        if not self.api_key:
            raise ProviderFailure(self.provider, "AI gateway is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "tools": [{
                "type": "function",
                "function": {"name": tool_name, "description": description, "parameters": parameters},
            }],
            "tool_choice": {"type": "function", "function": {"name": tool_name}},
        }
        data = await self.make_request("POST", self.url, data=payload)

        try:
            arguments = data["choices"][0]["message"]["tool_calls"][0]["function"]["arguments"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"网关未返回工具调用 {tool_name}")
            raise ProviderFailure(self.provider, "No result returned from AI") from e

        if isinstance(arguments, dict):
            return arguments
        try:
            parsed = json.loads(arguments)
        except (TypeError, ValueError) as e:
            logger.error(f"工具调用 {tool_name} 参数不是合法JSON: {e}")
            raise ProviderFailure(self.provider, "AI returned malformed data") from e
        if not isinstance(parsed, dict):
            raise ProviderFailure(self.provider, "AI returned malformed data")
        return parsed


class ToolProvider:
    """通过网关工具调用获取一种结构化结果"""

    name = "tool"
    tool_name = ""
    description = ""
    system_prompt = ""
    result_model: Type[PydanticBaseModel]

    def __init__(self, gateway: AIGatewayClient):
        self.gateway = gateway

    @classmethod
    def parameters(cls) -> Dict[str, Any]:
        """工具参数的JSON Schema（驼峰字段名）"""
        return cls.result_model.model_json_schema(by_alias=True)

    def parse(self, arguments: Dict[str, Any]) -> Any:
        return self.result_model.model_validate(arguments)

    async def run(self, user_prompt: str) -> Any:
        """调用并校验结果，记录调用结果指标"""
        try:
            arguments = await self.gateway.call_tool(
                self.system_prompt, user_prompt, self.tool_name, self.description, self.parameters()
            )
            result = self.parse(arguments)
        except PydanticValidationError as e:
            PROVIDER_CALLS.labels(provider=self.name, outcome="failure").inc()
            logger.error(f"{self.name} 返回数据不符合格式: {e.error_count()} 个错误")
            raise ProviderFailure(self.name, "Unexpected response format") from e
        except ProviderFailure as e:
            PROVIDER_CALLS.labels(provider=self.name, outcome="failure").inc()
            raise ProviderFailure(self.name, e.message) from e
        PROVIDER_CALLS.labels(provider=self.name, outcome="success").inc()
        return result


class RecommendationList(PydanticBaseModel):
    """recommend_destinations 工具的返回结构"""
    destinations: List[Destination]


class RecommendationProvider(ToolProvider):
    """目的地推荐"""

    name = "recommendations"
    tool_name = "recommend_destinations"
    description = "Return 3-5 travel destination recommendations"
    result_model = RecommendationList
    system_prompt = (
        "You are an expert travel advisor specializing in budget-optimized travel planning worldwide. "
        "Recommend 3-5 diverse travel destinations (domestic Indian and international) that fit the "
        "traveller's preferences. For each destination give the city, state or country, category, total "
        "estimated cost in INR within budget, trip duration, rating (4.0-5.0), a short description, an "
        "image URL, top restaurants, hotels and activities with ratings and INR prices, distance and travel "
        "duration from the departure city, travel options per mode with cost and duration, a day-by-day "
        "itinerary, budget-saving tips, weather, best time to visit, seasonal pricing and coordinates. "
        "Make cost estimates realistic and convert all costs to INR."
    )

    @staticmethod
    def build_prompt(prefs: TripPreferences) -> str:
        mode = prefs.travel_mode_preference
        travel_mode = "Optimize for best option" if mode == "any" else mode
        lines = [
            f"- Departure City: {prefs.departure_city}",
            f"- Budget: ₹{prefs.budget:g}",
            f"- Duration: {prefs.duration_days} days",
            f"- Travelers: {prefs.num_travelers}",
            f"- Travel Mode: {travel_mode}",
        ]
        if prefs.destination_city:
            lines.insert(1, f"- Preferred Destination: {prefs.destination_city} (prioritize this if it matches criteria)")
        if prefs.surprise_me:
            header = "Find RANDOM and SURPRISING travel destinations for an adventurous traveler:"
            footer = "Recommend unexpected, offbeat and lesser-known destinations."
        else:
            lines.extend([f"- Mood: {prefs.mood}", f"- Cuisine preference: {prefs.cuisine}"])
            header = "Find perfect travel destinations for:"
            footer = "Return diverse destinations that match these criteria."
        return "\n".join([header, *lines, footer])

    def parse(self, arguments: Dict[str, Any]) -> List[Destination]:
        destinations = RecommendationList.model_validate(arguments).destinations
        if not destinations:
            raise ProviderFailure(self.name, "No recommendations returned from AI")
        if len(destinations) > MAX_DESTINATIONS:
            logger.warning(f"网关返回 {len(destinations)} 个目的地，截取前 {MAX_DESTINATIONS} 个")
            destinations = destinations[:MAX_DESTINATIONS]
        return destinations

    async def recommend(self, prefs: TripPreferences) -> List[Destination]:
        logger.info(f"生成推荐: {prefs.departure_city}, 预算 {prefs.budget}, {prefs.duration_days} 天")
        return await self.run(self.build_prompt(prefs))


class WeatherProvider(ToolProvider):
    """天气预报"""

    name = "weather"
    tool_name = "get_weather_forecast"
    description = "Return weather forecast data"
    result_model = WeatherForecast
    system_prompt = (
        "You are a weather information assistant. Provide realistic weather forecasts based on the "
        "destination's typical climate patterns and current season, with temperatures in Celsius."
    )

    async def forecast(self, city: str, days: int = 7) -> WeatherForecast:
        prompt = (
            f"Provide a detailed {days}-day weather forecast for {city}. Include the current weather "
            f"(temperature, condition, humidity, wind speed) and a daily forecast for the next {days} days "
            "with date, high and low temperatures, condition, short description and chance of precipitation."
        )
        return await self.run(prompt)


class VisaProvider(ToolProvider):
    """签证要求"""

    name = "visa"
    tool_name = "provide_visa_information"
    description = "Return visa requirements for the traveller"
    result_model = VisaInfo
    system_prompt = (
        "You are an expert visa and travel documentation advisor with up-to-date knowledge of "
        "international visa requirements, entry policies and travel documentation."
    )

    async def check(self, nationality: str, destination: str) -> VisaInfo:
        prompt = (
            "Provide detailed visa requirements for:\n"
            f"- Traveler Nationality: {nationality}\n"
            f"- Destination Country: {destination}\n"
            "Include visa status, application process, required documents, processing time, costs "
            "and important travel advisories."
        )
        return await self.run(prompt)


class FlightPriceProvider(ToolProvider):
    """机票价格分析"""

    name = "flight-price"
    tool_name = "provide_flight_price_info"
    description = "Return flight price analysis"
    result_model = FlightPriceInfo
    system_prompt = (
        "You are an expert flight pricing analyst with knowledge of airline pricing patterns, "
        "seasonal variations and booking strategies. Give prices in INR."
    )

    async def estimate(self, request: FlightPriceRequest) -> FlightPriceInfo:
        trip = f"- Return: {request.return_date.isoformat()}" if request.return_date else "- One-way trip"
        prompt = (
            "Provide flight price analysis for:\n"
            f"- From: {request.from_city}\n"
            f"- To: {request.to_city}\n"
            f"- Departure: {request.departure_date.isoformat()}\n"
            f"{trip}\n"
            "Include current price estimates, booking recommendations, price trends and money-saving tips."
        )
        return await self.run(prompt)


class CurrencyProvider(BaseAPIClient):
    """汇率换算"""

    provider = "currency"

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url=base_url or settings.EXCHANGE_RATE_API_URL, **kwargs)

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> CurrencyConversion:
        try:
            data = await self.make_request("GET", f"/{from_currency}")
            rate = (data.get("rates") or {}).get(to_currency) if isinstance(data, dict) else None
            if not rate:
                logger.error(f"未找到汇率 {from_currency} -> {to_currency}")
                raise ProviderFailure(self.provider, f"Exchange rate not found for {to_currency}")
        except ProviderFailure:
            PROVIDER_CALLS.labels(provider=self.provider, outcome="failure").inc()
            raise

        PROVIDER_CALLS.labels(provider=self.provider, outcome="success").inc()
        return CurrencyConversion(
            amount=amount,
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            converted_amount=amount * rate,
            last_updated=data.get("date"),
        )
