from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from agla.app.settings import settings

REQUESTS = Counter(
    "http_requests_total",
    "HTTP requests by route template and status",
    ["method", "path", "status"],
)
LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency by route template",
    ["method", "path"],
)
CACHE_LOOKUPS = Counter(
    "agla_cache_lookups_total",
    "Semantic cache lookups by outcome",
    ["result"],
)
TOOL_FAILURES = Counter(
    "agla_tool_failures_total",
    "Unexpected tool failures reported as 500",
    ["tool"],
)


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled or request.url.path == "/metrics":
        return await call_next(request)
    started = time.monotonic()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        path = _route_path(request)
        REQUESTS.labels(request.method, path, str(status_code)).inc()
        LATENCY.labels(request.method, path).observe(time.monotonic() - started)


def record_cache_lookup(hit: bool) -> None:
    if settings.metrics_enabled:
        CACHE_LOOKUPS.labels("hit" if hit else "miss").inc()


def record_tool_failure(tool: str) -> None:
    if settings.metrics_enabled:
        TOOL_FAILURES.labels(tool).inc()


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
