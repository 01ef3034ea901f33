"""
FastAPI异常处理
领域异常与未处理异常统一渲染为 ErrorResponse
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.errors import TravelPlannerError
from shared.models.common import ErrorResponse
from shared.utils.logger import get_logger

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI):
    """注册异常处理器"""

    @app.exception_handler(TravelPlannerError)
    async def handle_domain_error(request: Request, exc: TravelPlannerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 失败: {exc.message}")
        body = ErrorResponse(message=exc.message, error_code=exc.code, error_details=exc.to_details())
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} 未处理异常: {exc}")
        body = ErrorResponse(message="Something went wrong, please try again",
                             error_code="INTERNAL_ERROR", error_details={"retryable": True})
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))
