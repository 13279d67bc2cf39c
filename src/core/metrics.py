"""
Prometheus Metrics - Application Monitoring

Exposes metrics at /metrics endpoint for Prometheus scraping.
"""
import time

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from src.core.config import settings

# === Application Info ===
APP_INFO = Info("habitat_app", "Habitat application info")
APP_INFO.info({
    "version": settings.app_version,
    "environment": settings.environment,
})

# === Request Metrics ===
REQUEST_COUNT = Counter(
    "habitat_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "habitat_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# === Business Metrics ===
WORKFLOW_TRANSITIONS = Counter(
    "habitat_workflow_transitions_total",
    "Workflow, step and task status transitions",
    ["entity", "status"],
)

DOORBELL_RINGS = Counter(
    "habitat_doorbell_rings_total",
    "Doorbell rings received",
)

DOORBELL_ROUTED = Counter(
    "habitat_doorbell_routed_total",
    "Doorbell calls routed to the front desk",
)

IOT_COMMANDS = Counter(
    "habitat_iot_commands_total",
    "Commands sent to IoT devices",
    ["vendor", "status"],
)

NOTIFICATIONS_SENT = Counter(
    "habitat_notifications_sent_total",
    "In-app notifications created",
    ["type"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect request metrics."""

    async def dispatch(self, request: Request, call_next) -> StarletteResponse:
        if request.url.path == "/metrics":
            return await call_next(request)

        # Route template keeps label cardinality bounded (no ids in the label)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        method = request.method

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        REQUEST_COUNT.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(duration)

        return response


# === Metrics Router ===
router = APIRouter(tags=["Health"])


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus scrape endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# === Helper Functions ===

def record_transition(entity: str, status: str) -> None:
    WORKFLOW_TRANSITIONS.labels(entity=entity, status=status).inc()


def record_doorbell_ring() -> None:
    DOORBELL_RINGS.inc()


def record_doorbell_routed(count: int = 1) -> None:
    DOORBELL_ROUTED.inc(count)


def record_iot_command(vendor: str, status: str) -> None:
    IOT_COMMANDS.labels(vendor=vendor, status=status).inc()


def record_notification(type_: str, count: int = 1) -> None:
    NOTIFICATIONS_SENT.labels(type=type_).inc(count)
