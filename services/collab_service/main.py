"""
协作服务
提供行程小组、成员邀请、目的地投票、小组聊天、行程安排、交通预订、
预算分摊、收藏行程和目的地点评功能
"""

import asyncio
import contextlib
import json
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError

from shared.auth.tokens import get_current_user_id, websocket_user_id
from shared.cache.redis_client import close_all_redis_connections, get_redis_client
from shared.config.settings import get_settings
from shared.database.connection import DatabaseManager, get_database_manager
from shared.errors import TravelPlannerError
from shared.models.group import (
    BudgetSplit,
    BudgetSummary,
    DestinationVote,
    GroupMember,
    GroupMessage,
    GroupOverview,
    Invitation,
    InvitationCreate,
    ItineraryDay,
    ItineraryItem,
    ItineraryItemCreate,
    MessageCreate,
    PaymentUpdate,
    Profile,
    ProfileUpdate,
    TransportBooking,
    TransportBookingCreate,
    TransportSummary,
    TripGroupCreate,
    TripGroupUpdate,
    VoteCreate,
    VoteTally,
)
from shared.models.travel import (
    ExpenseSummary,
    ExpenseSummaryRequest,
    Review,
    ReviewCreate,
    ReviewList,
    SavedTrip,
    SavedTripCreate,
)
from shared.monitoring.metrics import setup_metrics
from shared.realtime.change_feed import ChangeFeed, create_change_feed
from shared.utils.exception_handlers import register_exception_handlers
from shared.utils.logger import get_logger

from .aggregates import summarize_expenses
from .container import CollabContainer, get_container

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/v1")


def _no_content() -> Response:
    return Response(status_code=204)


# ==================== 用户资料 ====================
@router.put("/profile", response_model=Profile)
async def upsert_profile(data: ProfileUpdate, user_id: str = Depends(get_current_user_id),
                         container: CollabContainer = Depends(get_container)):
    """同步当前用户资料"""
    return await container.profiles.upsert(user_id, data)


@router.get("/profile", response_model=Profile)
async def get_profile(user_id: str = Depends(get_current_user_id),
                      container: CollabContainer = Depends(get_container)):
    return await container.profiles.get(user_id)


# ==================== 行程小组 ====================
@router.get("/groups", response_model=List[GroupOverview])
async def list_groups(user_id: str = Depends(get_current_user_id),
                      container: CollabContainer = Depends(get_container)):
    """当前用户加入的小组"""
    return await container.groups.list_for_user(user_id)


@router.post("/groups", response_model=GroupOverview, status_code=201)
async def create_group(data: TripGroupCreate, user_id: str = Depends(get_current_user_id),
                       container: CollabContainer = Depends(get_container)):
    return await container.groups.create(user_id, data)


@router.get("/groups/{group_id}", response_model=GroupOverview)
async def get_group(group_id: str, user_id: str = Depends(get_current_user_id),
                    container: CollabContainer = Depends(get_container)):
    return await container.groups.get(group_id, user_id)


@router.patch("/groups/{group_id}", response_model=GroupOverview)
async def update_group(group_id: str, data: TripGroupUpdate, user_id: str = Depends(get_current_user_id),
                       container: CollabContainer = Depends(get_container)):
    return await container.groups.update(group_id, user_id, data)


# ==================== 成员 ====================
@router.get("/groups/{group_id}/members", response_model=List[GroupMember])
async def list_members(group_id: str, user_id: str = Depends(get_current_user_id),
                       container: CollabContainer = Depends(get_container)):
    return await container.members.list_by_group(group_id, user_id)


@router.delete("/groups/{group_id}/members/{member_id}", status_code=204)
async def remove_member(group_id: str, member_id: str, user_id: str = Depends(get_current_user_id),
                        container: CollabContainer = Depends(get_container)):
    await container.members.remove(group_id, user_id, member_id)
    return _no_content()


# ==================== 邀请 ====================
@router.post("/groups/{group_id}/invitations", response_model=Invitation, status_code=201)
async def send_invitation(group_id: str, data: InvitationCreate, user_id: str = Depends(get_current_user_id),
                          container: CollabContainer = Depends(get_container)):
    return await container.invitations.send(group_id, user_id, data)


@router.get("/groups/{group_id}/invitations", response_model=List[Invitation])
async def list_group_invitations(group_id: str, user_id: str = Depends(get_current_user_id),
                                 container: CollabContainer = Depends(get_container)):
    return await container.invitations.list_for_group(group_id, user_id)


@router.get("/invitations", response_model=List[Invitation])
async def list_my_invitations(user_id: str = Depends(get_current_user_id),
                              container: CollabContainer = Depends(get_container)):
    """发给当前用户的待处理邀请"""
    return await container.invitations.list_pending_for_user(user_id)


@router.post("/invitations/{invitation_id}/accept", response_model=Invitation)
async def accept_invitation(invitation_id: str, user_id: str = Depends(get_current_user_id),
                            container: CollabContainer = Depends(get_container)):
    return await container.invitations.accept(invitation_id, user_id)


@router.post("/invitations/{invitation_id}/decline", response_model=Invitation)
async def decline_invitation(invitation_id: str, user_id: str = Depends(get_current_user_id),
                             container: CollabContainer = Depends(get_container)):
    return await container.invitations.decline(invitation_id, user_id)


# ==================== 目的地投票 ====================
@router.get("/groups/{group_id}/votes", response_model=List[VoteTally])
async def list_vote_tallies(group_id: str, user_id: str = Depends(get_current_user_id),
                            container: CollabContainer = Depends(get_container)):
    """按票数排序的目的地统计"""
    return await container.votes.tallies(group_id, user_id)


@router.post("/groups/{group_id}/votes", response_model=DestinationVote, status_code=201)
async def propose_destination(group_id: str, data: VoteCreate, user_id: str = Depends(get_current_user_id),
                              container: CollabContainer = Depends(get_container)):
    return await container.votes.propose(group_id, user_id, data)


@router.post("/groups/{group_id}/votes/{destination_name}", response_model=DestinationVote, status_code=201)
async def vote_for_destination(group_id: str, destination_name: str,
                               user_id: str = Depends(get_current_user_id),
                               container: CollabContainer = Depends(get_container)):
    return await container.votes.vote_for(group_id, user_id, destination_name)


# ==================== 小组聊天 ====================
@router.get("/groups/{group_id}/messages", response_model=List[GroupMessage])
async def list_messages(group_id: str, user_id: str = Depends(get_current_user_id),
                        container: CollabContainer = Depends(get_container)):
    return await container.messages.list_by_group(group_id, user_id)


@router.post("/groups/{group_id}/messages", response_model=GroupMessage, status_code=201)
async def send_message(group_id: str, data: MessageCreate, user_id: str = Depends(get_current_user_id),
                       container: CollabContainer = Depends(get_container)):
    return await container.messages.send(group_id, user_id, data)


async def _forward_events(websocket: WebSocket, events: asyncio.Queue):
    """把合并器产生的事件发给客户端；收到 None 时关闭连接"""
    try:
        while True:
            event = await events.get()
            if event is None:
                await websocket.close(code=4403)
                return
            await websocket.send_json(event)
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info(f"WebSocket 发送结束: {e}")


def _validation_message(error: PydanticValidationError) -> str:
    """取第一条校验错误的说明"""
    message = error.errors()[0].get("msg", "Invalid message")
    return message.removeprefix("Value error, ")


@router.websocket("/groups/{group_id}/messages/stream")
async def message_stream(websocket: WebSocket, group_id: str):
    """聊天实时流：先推送全量快照，之后逐条推送新消息；客户端可直接发送 {"message": "..."}"""
    container: CollabContainer = websocket.app.state.container
    events: asyncio.Queue = asyncio.Queue()

    async def on_snapshot(rows):
        await events.put({
            "type": "snapshot",
            "rows": [GroupMessage(**row).model_dump(mode="json") for row in rows],
        })

    async def on_insert(row):
        await events.put({"type": "insert", "row": GroupMessage(**row).model_dump(mode="json")})

    async def on_revoked(error):
        await events.put({"type": "error", "message": error.message, "error_code": error.code})
        await events.put(None)

    try:
        user_id = websocket_user_id(websocket)
        reconciler = await container.messages.open_stream(
            group_id, user_id,
            on_snapshot=on_snapshot,
            on_insert=on_insert,
            on_revoked=on_revoked,
            resync_delay=settings.REALTIME_RESYNC_DELAY,
        )
    except TravelPlannerError as e:
        logger.info(f"拒绝聊天订阅 {group_id}: {e.message}")
        await websocket.close(code=4401 if e.status_code == 401 else 4403, reason=e.message)
        return

    await websocket.accept()
    sender = asyncio.create_task(_forward_events(websocket, events))
    try:
        await reconciler.start()
        while True:
            raw = await websocket.receive_text()
            try:
                payload = json.loads(raw)
                text = payload.get("message", "") if isinstance(payload, dict) else ""
                data = MessageCreate(message=str(text))
                await container.messages.send(group_id, user_id, data)
            except TravelPlannerError as e:
                await events.put({"type": "error", "message": e.message, "error_code": e.code})
            except PydanticValidationError as e:
                await events.put({"type": "error", "message": _validation_message(e),
                                  "error_code": "VALIDATION_ERROR"})
            except json.JSONDecodeError:
                await events.put({"type": "error", "message": "Message must be valid JSON",
                                  "error_code": "VALIDATION_ERROR"})
    except WebSocketDisconnect:
        logger.info(f"聊天订阅 {group_id} 已断开")
    except TravelPlannerError as e:
        logger.warning(f"聊天订阅 {group_id} 失败: {e.message}")
        await websocket.close(code=1011, reason=e.message)
    finally:
        await reconciler.stop()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender


# ==================== 行程安排 ====================
@router.get("/groups/{group_id}/itinerary", response_model=List[ItineraryDay])
async def list_itinerary(group_id: str, user_id: str = Depends(get_current_user_id),
                         container: CollabContainer = Depends(get_container)):
    return await container.itinerary.list_days(group_id, user_id)


@router.get("/groups/{group_id}/itinerary/days", response_model=List[date])
async def list_trip_days(group_id: str, user_id: str = Depends(get_current_user_id),
                         container: CollabContainer = Depends(get_container)):
    return await container.itinerary.trip_days(group_id, user_id)


@router.post("/groups/{group_id}/itinerary", response_model=ItineraryItem, status_code=201)
async def add_itinerary_item(group_id: str, data: ItineraryItemCreate,
                             user_id: str = Depends(get_current_user_id),
                             container: CollabContainer = Depends(get_container)):
    return await container.itinerary.add(group_id, user_id, data)


@router.delete("/groups/{group_id}/itinerary/{item_id}", status_code=204)
async def delete_itinerary_item(group_id: str, item_id: str, user_id: str = Depends(get_current_user_id),
                                container: CollabContainer = Depends(get_container)):
    await container.itinerary.delete(group_id, user_id, item_id)
    return _no_content()


# ==================== 交通预订 ====================
@router.get("/groups/{group_id}/transport", response_model=TransportSummary)
async def list_transport(group_id: str, user_id: str = Depends(get_current_user_id),
                         container: CollabContainer = Depends(get_container)):
    return await container.transport.summary(group_id, user_id)


@router.post("/groups/{group_id}/transport", response_model=TransportBooking, status_code=201)
async def add_transport(group_id: str, data: TransportBookingCreate, user_id: str = Depends(get_current_user_id),
                        container: CollabContainer = Depends(get_container)):
    return await container.transport.add(group_id, user_id, data)


@router.delete("/groups/{group_id}/transport/{booking_id}", status_code=204)
async def delete_transport(group_id: str, booking_id: str, user_id: str = Depends(get_current_user_id),
                           container: CollabContainer = Depends(get_container)):
    await container.transport.delete(group_id, user_id, booking_id)
    return _no_content()


# ==================== 预算分摊 ====================
@router.get("/groups/{group_id}/budget", response_model=BudgetSummary)
async def get_budget_summary(group_id: str, user_id: str = Depends(get_current_user_id),
                             container: CollabContainer = Depends(get_container)):
    """读取前重新计算分摊"""
    return await container.budget.summary(group_id, user_id)


@router.post("/groups/{group_id}/budget/{split_id}/payment", response_model=BudgetSplit)
async def record_payment(group_id: str, split_id: str, data: PaymentUpdate,
                         user_id: str = Depends(get_current_user_id),
                         container: CollabContainer = Depends(get_container)):
    return await container.budget.record_payment(group_id, user_id, split_id, data)


# ==================== 费用汇总 ====================
@router.post("/expenses/summary", response_model=ExpenseSummary)
async def expense_summary(request: ExpenseSummaryRequest):
    """本地费用记录的无状态汇总"""
    return summarize_expenses(request.expenses, request.budget, request.duration_days)


# ==================== 收藏行程 ====================
@router.get("/saved-trips", response_model=List[SavedTrip])
async def list_saved_trips(user_id: str = Depends(get_current_user_id),
                           container: CollabContainer = Depends(get_container)):
    return await container.saved_trips.list_for_user(user_id)


@router.post("/saved-trips", response_model=SavedTrip, status_code=201)
async def save_trip(data: SavedTripCreate, user_id: str = Depends(get_current_user_id),
                    container: CollabContainer = Depends(get_container)):
    return await container.saved_trips.save(user_id, data)


@router.delete("/saved-trips/{trip_id}", status_code=204)
async def delete_saved_trip(trip_id: str, user_id: str = Depends(get_current_user_id),
                            container: CollabContainer = Depends(get_container)):
    await container.saved_trips.delete(user_id, trip_id)
    return _no_content()


# ==================== 目的地点评 ====================
@router.get("/reviews", response_model=ReviewList)
async def list_reviews(destination: str = Query(..., min_length=1),
                       container: CollabContainer = Depends(get_container)):
    return await container.reviews.list_for_destination(destination)


@router.post("/reviews", response_model=Review, status_code=201)
async def add_review(data: ReviewCreate, user_id: str = Depends(get_current_user_id),
                     container: CollabContainer = Depends(get_container)):
    return await container.reviews.add(user_id, data)


@router.delete("/reviews/{review_id}", status_code=204)
async def delete_review(review_id: str, user_id: str = Depends(get_current_user_id),
                        container: CollabContainer = Depends(get_container)):
    await container.reviews.delete(user_id, review_id)
    return _no_content()


# ==================== 健康检查 ====================
@router.get("/health")
async def health_check(request: Request):
    """健康检查"""
    container: CollabContainer = request.app.state.container
    database_ok = await container.db.check_connection()
    return {
        "status": "healthy" if database_ok else "degraded",
        "service": "collab-service",
        "database": "connected" if database_ok else "unavailable",
        "realtime_backend": settings.REALTIME_BACKEND,
    }


# ==================== 应用 ====================
def create_app(db: Optional[DatabaseManager] = None, change_feed: Optional[ChangeFeed] = None,
               container: Optional[CollabContainer] = None) -> FastAPI:
    """创建协作服务应用；测试时可注入数据库和变更源"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        logger.info("启动协作服务...")

        if container is not None:
            app.state.container = container
        else:
            database = db or get_database_manager()
            feed = change_feed or create_change_feed(
                settings.REALTIME_BACKEND,
                get_redis_client() if settings.REALTIME_BACKEND == "redis" else None,
            )
            app.state.container = CollabContainer(database, feed)

        if app.state.container.db.is_sqlite:
            await app.state.container.db.create_tables()

        logger.info("协作服务启动完成")

        yield

        logger.info("关闭协作服务...")
        await app.state.container.change_feed.close()
        if container is None and db is None:
            await app.state.container.db.close()
            await close_all_redis_connections()

    app = FastAPI(
        title="Budget Trip Planner Collaboration Service",
        description="协作服务，提供小组行程的投票、聊天、行程安排和预算分摊",
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

    setup_metrics(app, "collab-service", settings.APP_VERSION)
    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.collab_service.main:app",
        host=settings.HOST,
        port=settings.COLLAB_SERVICE_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
