from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import time

# Request count metric
REQUEST_COUNT = Counter(
    "http_requests_total", "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

# Request duration metric
REQUEST_DURATION = Histogram(
    "http_request_duration_seconds", "Histogram of request processing time",
    ["method", "endpoint"]
)

# Relay outcomes: upstream status code, or "transport_error"
RELAY_FORWARD_COUNT = Counter(
    "relay_forward_total", "Requests forwarded to a backend target",
    ["method", "outcome"]
)


def _endpoint_label(request: Request) -> str:
    """Route template when one matched, so relayed paths don't explode label cardinality."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        method = request.method

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        endpoint = _endpoint_label(request)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

        return response

# Metrics endpoint handler
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
