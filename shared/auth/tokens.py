"""
访问令牌
签发和校验 JWT，提供 FastAPI 依赖获取当前用户ID
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, WebSocket
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shared.config.settings import get_settings
from shared.errors import NotAuthorized
from shared.utils.logger import get_logger

logger = get_logger(__name__)

# HTTP Bearer认证；缺少令牌时交给 NotAuthorized 处理
security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """创建访问令牌"""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.JWT_EXPIRE_HOURS))
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """校验令牌并返回用户ID"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"令牌校验失败: {e}")
        raise NotAuthorized("Your session has expired, please sign in again", unauthenticated=True) from e

    user_id = payload.get("sub")
    if not user_id:
        raise NotAuthorized("Please sign in", unauthenticated=True)
    return user_id


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """获取当前用户ID"""
    if credentials is None:
        raise NotAuthorized("Please sign in", unauthenticated=True)
    return decode_access_token(credentials.credentials)


def websocket_user_id(websocket: WebSocket) -> str:
    """WebSocket 从 Authorization 头或 ?token= 取令牌"""
    authorization = websocket.headers.get("authorization", "")
    token = authorization[7:] if authorization.lower().startswith("bearer ") else None
    token = token or websocket.query_params.get("token")
    if not token:
        raise NotAuthorized("Please sign in", unauthenticated=True)
    return decode_access_token(token)
