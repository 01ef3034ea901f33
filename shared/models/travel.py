"""
旅行领域数据模型
定义旅行偏好、目的地推荐、外部辅助接口载荷、收藏行程和点评
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .common import BaseModel


class CamelModel(BaseModel):
    """外部接口使用驼峰字段名，内部使用下划线字段名"""

    model_config = ConfigDict(
        use_enum_values=True,
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ==================== 旅行偏好 ====================
class Mood(str, Enum):
    """出行心情"""
    ADVENTURE = "adventure"
    RELAXATION = "relaxation"
    CULTURE = "culture"
    NATURE = "nature"
    PARTY = "party"
    SPIRITUAL = "spiritual"


class Cuisine(str, Enum):
    """饮食偏好"""
    VEGETARIAN = "vegetarian"
    NON_VEGETARIAN = "non-vegetarian"
    VEGAN = "vegan"
    STREET_FOOD = "street-food"
    FINE_DINING = "fine-dining"
    LOCAL = "local"


class TravelModePreference(str, Enum):
    """交通方式偏好"""
    FLIGHT = "flight"
    TRAIN = "train"
    BUS = "bus"
    CAR = "car"
    ANY = "any"


class TripPreferences(CamelModel):
    """行程偏好表单"""
    budget: float = Field(..., gt=0, description="总预算（INR）")
    duration_days: int = Field(..., ge=1, le=365, description="行程天数")
    mood: Mood
    cuisine: Cuisine
    departure_city: str = Field(..., min_length=1)
    num_travelers: int = Field(1, ge=1, le=50)
    travel_mode_preference: TravelModePreference = TravelModePreference.ANY
    surprise_me: bool = False
    destination_city: Optional[str] = None

    @field_validator("departure_city")
    @classmethod
    def strip_city(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("departure city is required")
        return v


# ==================== 目的地记录 ====================
class SimpleRestaurant(CamelModel):
    """只有名称的餐厅（旧版载荷）"""
    kind: Literal["simple"] = "simple"
    name: str


class DetailedRestaurant(CamelModel):
    """带评分与价位的餐厅"""
    kind: Literal["detailed"] = "detailed"
    name: str
    rating: Optional[float] = None
    price_range: Optional[str] = None
    cuisine: Optional[str] = None


Restaurant = Annotated[Union[SimpleRestaurant, DetailedRestaurant], Field(discriminator="kind")]


def normalize_restaurant(raw: Any) -> Dict[str, Any]:
    """把字符串或对象形式的餐厅统一为带 kind 标签的字典"""
    if isinstance(raw, (SimpleRestaurant, DetailedRestaurant)):
        return raw.model_dump()
    if isinstance(raw, str):
        return {"kind": "simple", "name": raw}
    if isinstance(raw, dict):
        if "kind" in raw:
            return raw
        return {"kind": "detailed", **raw}
    raise ValueError(f"unsupported restaurant entry: {raw!r}")


class Hotel(CamelModel):
    name: str
    rating: Optional[float] = None
    price_per_night: Optional[float] = None
    amenities: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None


class Activity(CamelModel):
    name: str
    description: Optional[str] = None
    rating: Optional[float] = None
    cost: Optional[float] = None
    image_url: Optional[str] = None


class TravelOption(CamelModel):
    mode: str
    duration: Optional[str] = None
    cost: float
    details: Optional[str] = None


class ItineraryPlanDay(CamelModel):
    day: int
    activities: List[str] = Field(default_factory=list)


class WeatherSummary(CamelModel):
    climate: Optional[str] = None
    avg_temp: Optional[str] = None


class Coordinates(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Destination(CamelModel):
    """推荐目的地"""
    city: Optional[str] = None
    name: str
    state: Optional[str] = None
    category: str = ""
    cost: float = Field(..., ge=0)
    duration: Optional[str] = None
    rating: float = Field(0.0, ge=0, le=5)
    description: str = ""
    image_url: Optional[str] = None
    restaurants: List[Restaurant] = Field(default_factory=list)
    hotels: List[Hotel] = Field(default_factory=list)
    activities: List[Activity] = Field(default_factory=list)
    distance: Optional[float] = None
    travel_duration: Optional[str] = None
    travel_options: List[TravelOption] = Field(default_factory=list)
    itinerary: List[ItineraryPlanDay] = Field(default_factory=list)
    budget_tips: List[str] = Field(default_factory=list)
    weather: Optional[WeatherSummary] = None
    best_time: Optional[str] = None
    seasonal_pricing: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @field_validator("restaurants", mode="before")
    @classmethod
    def tag_restaurants(cls, v):
        if v is None:
            return []
        return [normalize_restaurant(item) for item in v]


class RecommendationSort(str, Enum):
    """推荐结果排序"""
    RATING = "rating"
    COST_LOW = "cost-low"
    COST_HIGH = "cost-high"


class RecommendationResult(CamelModel):
    """推荐结果"""
    destinations: List[Destination]
    is_fallback: bool = False
    message: Optional[str] = None


class PreferenceSession(CamelModel):
    """保存偏好后返回的检索凭证"""
    search_id: str
    expires_in: int


# ==================== 辅助接口载荷 ====================
class CurrencyConversion(CamelModel):
    amount: float
    from_currency: str = Field(..., alias="from")
    to_currency: str = Field(..., alias="to")
    rate: float
    converted_amount: float
    last_updated: Optional[str] = None


class CurrentWeather(CamelModel):
    temp: float
    condition: str
    description: Optional[str] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    feels_like: Optional[float] = None


class DailyForecast(CamelModel):
    date: str
    day_of_week: Optional[str] = None
    high: float
    low: float
    condition: str
    description: Optional[str] = None
    precipitation: Optional[float] = None


class ForecastLocation(CamelModel):
    city: str
    country: Optional[str] = None


class WeatherForecast(CamelModel):
    current: CurrentWeather
    forecast: List[DailyForecast]
    location: ForecastLocation


class VisaInfo(CamelModel):
    visa_required: str
    processing_time: Optional[str] = None
    validity_period: Optional[str] = None
    estimated_cost: Optional[str] = None
    required_documents: List[str] = Field(default_factory=list)
    application_process: List[str] = Field(default_factory=list)
    important_notes: List[str] = Field(default_factory=list)


class PriceRange(CamelModel):
    min: float
    max: float
    average: Optional[float] = None


class Airline(CamelModel):
    name: str
    type: Optional[str] = None
    estimated_price: Optional[float] = None


class FlightPriceInfo(CamelModel):
    estimated_price: PriceRange
    price_level: Optional[str] = None
    trend: Optional[str] = None
    best_time_to_book: Optional[str] = None
    airlines: List[Airline] = Field(default_factory=list)
    saving_tips: List[str] = Field(default_factory=list)
    booking_recommendations: List[str] = Field(default_factory=list)


# ==================== 收藏与点评 ====================
class SavedTripCreate(BaseModel):
    destination_name: str = Field(..., min_length=1)
    destination_state: str = ""
    category: str = ""
    cost: float = Field(0, ge=0)
    duration: str = ""
    rating: float = Field(0, ge=0, le=5)
    description: str = ""
    image_url: str = ""
    restaurants: List[str] = Field(default_factory=list)


class SavedTrip(SavedTripCreate):
    id: str
    user_id: str
    created_at: datetime


class ReviewCreate(BaseModel):
    destination_name: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    review_text: str
    tips: Optional[str] = None
    photos: List[str] = Field(default_factory=list)

    @field_validator("review_text")
    @classmethod
    def require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please write a review")
        return v


class Review(BaseModel):
    id: str
    user_id: str
    destination_name: str
    rating: int
    review_text: str
    tips: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    created_at: datetime
    author: Optional[str] = None

    @field_validator("photos", mode="before")
    @classmethod
    def default_photos(cls, v):
        return v or []


class ReviewList(BaseModel):
    reviews: List[Review]
    average_rating: Optional[float] = None
    count: int = 0


# ==================== 本地费用记录 ====================
class ExpenseCreate(BaseModel):
    category: str = "accommodation"
    amount: float
    description: Optional[str] = None
    spent_on: Optional[date] = None


class Expense(BaseModel):
    id: str
    category: str
    amount: float
    description: str
    spent_on: date


class ExpenseSummary(BaseModel):
    """费用汇总"""
    total_budget: float
    total_spent: float
    remaining: float
    percentage_spent: float
    daily_budget: float
    daily_average: float
    over_daily_budget: bool
    category_totals: Dict[str, float] = Field(default_factory=dict)
    expense_count: int = 0


class ExpenseSummaryRequest(BaseModel):
    """无状态费用汇总请求"""
    budget: float = Field(..., gt=0)
    duration_days: int = Field(..., ge=1)
    expenses: List[Expense] = Field(default_factory=list)


# ==================== 辅助接口请求 ====================
class CurrencyRequest(CamelModel):
    amount: float = Field(..., gt=0)
    from_currency: str = Field(..., alias="from", min_length=3, max_length=3)
    to_currency: Optional[str] = Field(None, alias="to", min_length=3, max_length=3)

    @field_validator("from_currency", "to_currency")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class WeatherRequest(CamelModel):
    city: str = Field(..., min_length=1)
    days: int = Field(7, ge=1, le=14)


class VisaRequest(CamelModel):
    nationality: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)


class FlightPriceRequest(CamelModel):
    from_city: str = Field(..., alias="from", min_length=1)
    to_city: str = Field(..., alias="to", min_length=1)
    departure_date: date
    return_date: Optional[date] = None

    @field_validator("return_date")
    @classmethod
    def return_after_departure(cls, v: Optional[date], info) -> Optional[date]:
        departure = info.data.get("departure_date")
        if v is not None and departure is not None and v < departure:
            raise ValueError("return date must not be before departure date")
        return v


# ==================== 目的地分析 ====================
class CostShare(CamelModel):
    name: str
    value: int


class CostBreakdown(CamelModel):
    """总费用按固定比例拆分"""
    total_cost: float
    items: List[CostShare]


class DestinationComparison(CamelModel):
    name: str
    cost: float
    rating: float
    avg_hotel_price: Optional[int] = None
    avg_activity_cost: Optional[int] = None
    cheapest_travel: Optional[TravelOption] = None


class ResultsSummary(CamelModel):
    count: int
    average_cost: Optional[float] = None
    budget: float
    within_budget: int = 0
    cheapest: Optional[str] = None
    highest_rated: Optional[str] = None


class InsightsRequest(CamelModel):
    budget: float = Field(..., gt=0)
    destinations: List[Destination] = Field(..., min_length=1)


# ==================== 行前准备 ====================
class PackingItem(CamelModel):
    id: str
    name: str
    category: str
    essential: bool


class PackingList(CamelModel):
    """按气候和目的地类型生成的打包清单"""
    destination: str
    items: List[PackingItem]
    categories: List[str]
    essential_count: int
    text: str = Field(..., description="按分类排版的纯文本清单")


class TimelineActivityType(str, Enum):
    """时间线活动类型"""
    TRAVEL = "travel"
    FOOD = "food"
    SIGHTSEEING = "sightseeing"
    ACTIVITY = "activity"
    REST = "rest"


class TimelineActivity(CamelModel):
    time: str
    title: str
    duration: str
    type: TimelineActivityType


class TimelineDay(CamelModel):
    day: int
    activities: List[TimelineActivity]


class TripTimeline(CamelModel):
    """由行程建议推算出的逐日时间线"""
    destination: str
    days: List[TimelineDay]
    is_template: bool = False
