"""
Prometheus metrics for the storefront backend

Everything lives in a dedicated registry exposed at GET /metrics, together
with the process, platform and GC collectors prometheus_client ships.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from starlette.requests import Request
from starlette.responses import Response

registry = CollectorRegistry()

ProcessCollector(registry=registry)
PlatformCollector(registry=registry)
GCCollector(registry=registry)


# ============================================================================
# HTTP
# ============================================================================

http_request_duration = Histogram(
    'http_request_duration_seconds',
    'Duration of HTTP requests in seconds',
    ['method', 'route', 'status'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
    registry=registry
)
http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'route', 'status'],
    registry=registry
)
in_flight_requests = Gauge(
    'in_flight_requests',
    'Number of requests currently being processed',
    registry=registry
)


# ============================================================================
# Database, cache, rate limiting
# ============================================================================

db_operation_duration = Histogram(
    'db_operation_duration_seconds',
    'Duration of database operations in seconds',
    ['operation', 'table', 'success'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1),
    registry=registry
)
cache_hits_total = Counter(
    'cache_hits_total',
    'Total number of cache hits',
    ['cache_type'],
    registry=registry
)
cache_misses_total = Counter(
    'cache_misses_total',
    'Total number of cache misses',
    ['cache_type'],
    registry=registry
)
rate_limit_exceeded_total = Counter(
    'rate_limit_exceeded_total',
    'Total number of rate limit exceeded events',
    ['endpoint'],
    registry=registry
)


def route_label(request: Request) -> str:
    """Route template (/api/v1/orders/{order_id}) when matched, raw path otherwise"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def metrics_response() -> Response:
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
