"""
错误分类模块
定义存储层、外部接口和输入校验的领域异常
"""

from typing import Any, Dict, Optional


# 按资源区分的重复提交提示
DUPLICATE_MESSAGES: Dict[str, str] = {
    "destination_votes": "You've already voted for this destination",
    "trip_group_members": "User is already a member of this group",
    "saved_trips": "This trip is already saved",
    "trip_invitations": "An invitation has already been sent to this email",
    "budget_splits": "A budget split already exists for this member",
    "profiles": "This email is already registered",
}


class TravelPlannerError(Exception):
    """领域异常基类"""

    code = "TRAVEL_PLANNER_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_details(self) -> Dict[str, Any]:
        return {**self.details, "retryable": self.retryable}


class NotAuthorized(TravelPlannerError):
    """没有会话或没有权限"""

    code = "NOT_AUTHORIZED"
    status_code = 403

    def __init__(self, message: str = "You do not have permission to do this",
                 details: Optional[Dict[str, Any]] = None, *, unauthenticated: bool = False):
        super().__init__(message, details)
        if unauthenticated:
            self.status_code = 401


class DuplicateEntry(TravelPlannerError):
    """唯一约束冲突"""

    code = "DUPLICATE_ENTRY"
    status_code = 409

    def __init__(self, resource: str, message: Optional[str] = None):
        super().__init__(
            message or DUPLICATE_MESSAGES.get(resource, "This entry already exists"),
            {"resource": resource},
        )
        self.resource = resource


class NotFound(TravelPlannerError):
    """引用的数据行已不存在"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, row_id: Any = None):
        super().__init__(f"{resource} not found", {"resource": resource, "id": row_id})
        self.resource = resource
        self.row_id = row_id


class TransientStoreError(TravelPlannerError):
    """存储连接异常，可重试"""

    code = "STORE_UNAVAILABLE"
    status_code = 503
    retryable = True


class ProviderFailure(TravelPlannerError):
    """外部接口调用失败或返回格式不符"""

    code = "PROVIDER_FAILURE"
    status_code = 502
    retryable = True

    def __init__(self, provider: str, message: str):
        super().__init__(message, {"provider": provider})
        self.provider = provider


class ValidationError(TravelPlannerError):
    """输入校验失败，在任何网络调用之前抛出"""

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


__all__ = [
    "DUPLICATE_MESSAGES",
    "TravelPlannerError",
    "NotAuthorized",
    "DuplicateEntry",
    "NotFound",
    "TransientStoreError",
    "ProviderFailure",
    "ValidationError",
]
