"""
Prometheus监控指标模块
"""

import time

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, Info, generate_latest


# HTTP 指标
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['service', 'method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['service', 'method', 'endpoint']
)

SERVICE_INFO = Info(
    'service_info',
    'Service information'
)

# 存储与外部接口指标
ROW_STORE_OPERATIONS = Counter(
    'row_store_operations_total',
    'Row store operations by outcome',
    ['table', 'operation', 'outcome']
)

PROVIDER_CALLS = Counter(
    'provider_calls_total',
    'External provider calls by outcome',
    ['provider', 'outcome']
)

RECOMMENDATION_FALLBACKS = Counter(
    'recommendation_fallbacks_total',
    'Recommendation requests answered with the local sample set'
)

REALTIME_SUBSCRIPTIONS = Gauge(
    'realtime_subscriptions',
    'Open change-feed subscriptions',
    ['table']
)


def _endpoint_label(request: Request) -> str:
    """优先使用路由模板，避免把行ID写进标签"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def setup_metrics(app: FastAPI, service_name: str, version: str = "1.0.0"):
    """设置监控指标中间件和 /metrics 端点"""

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """监控中间件"""
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        endpoint = _endpoint_label(request)

        REQUEST_COUNT.labels(
            service=service_name,
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code
        ).inc()

        REQUEST_DURATION.labels(
            service=service_name,
            method=request.method,
            endpoint=endpoint
        ).observe(duration)

        return response

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    SERVICE_INFO.info({
        'version': version,
        'service': service_name
    })
