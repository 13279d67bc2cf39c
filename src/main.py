"""
Habitat Backend - Main Application Entry Point
Application Factory Pattern with ORJSONResponse.
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.config import settings
from src.core.database import close_db, init_db
from src.core.exceptions import (
    HabitatException,
    generic_exception_handler,
    habitat_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from src.core.logging import bind_context, clear_context, configure_logging, get_logger
from src.core.metrics import MetricsMiddleware
from src.core.sentry import init_sentry

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(
        "Starting Habitat Backend",
        environment=settings.environment,
        debug=settings.debug,
    )

    if settings.run_db_init:
        await init_db()
        logger.info("Database initialized")

    ingestion_task: asyncio.Task | None = None
    if settings.mqtt_ingestion_enabled:
        from src.modules.iot.mqtt_ingestion import mqtt_service

        ingestion_task = asyncio.create_task(mqtt_service.start())

    yield

    logger.info("Shutting down Habitat Backend")
    if ingestion_task is not None:
        from src.modules.iot.mqtt_ingestion import mqtt_service

        await mqtt_service.stop()
        ingestion_task.cancel()
    await close_db()


TAGS_METADATA = [
    {"name": "Auth", "description": "Registration, login and the current user."},
    {
        "name": "Property",
        "description": """
Communities, buildings, households and working groups.

```
Community
├── Building
│   └── Household
└── WorkingGroup (front desk, maintenance crew, kitchen...)
```
        """,
    },
    {"name": "Inventory", "description": "Household rooms, cabinets, categories and items."},
    {"name": "Maintenance", "description": "Repair tickets from request to household sign-off."},
    {"name": "Catering", "description": "Community menus, time slots and food orders."},
    {"name": "Workflows", "description": "Templates, workflows, steps and tasks with timing."},
    {"name": "Messaging", "description": "Household and front desk conversations, calls."},
    {"name": "Doorbell", "description": "Doorbells, ringing sessions and front desk routing."},
    {"name": "Notifications", "description": "In-app notifications."},
    {"name": "IoT", "description": "Tuya, ESP, Midea (MQTT) and Philips Hue, Panasonic (REST) devices."},
]


def create_application() -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=f"{settings.project_name} API",
        summary="Multi-tenant property and household management",
        version=settings.app_version,
        openapi_url="/openapi.json",
        openapi_tags=TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,
            "docExpansion": "list",
            "filter": True,
            "persistAuthorization": True,
        },
        default_response_class=ORJSONResponse,
        debug=settings.debug,
        lifespan=lifespan,
    )

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            summary=app.summary,
            description=app.description,
            routes=app.routes,
            tags=TAGS_METADATA,
        )
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Access token from `POST /api/v1/auth/login`",
            },
        }
        openapi_schema["security"] = [{"BearerAuth": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    init_sentry()

    if settings.prometheus_enabled:
        app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(HabitatException, habitat_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("CORS configured", origins=settings.cors_origins_list)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        clear_context()
        bind_context(
            request_id=request.headers.get("X-Request-ID", str(uuid.uuid4())),
            method=request.method,
            path=request.url.path,
        )
        return await call_next(request)

    _include_routers(app)

    @app.get("/health", tags=["health"], response_class=ORJSONResponse)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "service": "habitat-backend"}

    @app.get("/", tags=["root"], response_class=ORJSONResponse)
    async def root() -> dict[str, str]:
        return {
            "service": "Habitat Backend",
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else "disabled",
        }

    return app


def _include_routers(app: FastAPI) -> None:
    """
    Include all module routers under /api/v1.
    Each module router carries its own prefix.
    """
    from src.core.metrics import router as metrics_router
    from src.modules.announcements.router import router as announcements_router
    from src.modules.auth.router import router as auth_router
    from src.modules.catering.router import router as catering_router
    from src.modules.deliveries.router import router as deliveries_router
    from src.modules.doorbell.router import router as doorbell_router
    from src.modules.facilities.router import router as facilities_router
    from src.modules.inventory.router import router as inventory_router
    from src.modules.iot.router import router as iot_router
    from src.modules.join_requests.router import router as join_requests_router
    from src.modules.maintenance.router import router as maintenance_router
    from src.modules.messaging.router import router as messaging_router
    from src.modules.notifications.router import router as notifications_router
    from src.modules.property.router import router as property_router
    from src.modules.workflows.router import router as workflows_router

    api_v1_prefix = settings.api_v1_str

    routers = [
        (auth_router, "auth"),
        (property_router, "property"),
        (inventory_router, "inventory"),
        (maintenance_router, "maintenance"),
        (catering_router, "catering"),
        (workflows_router, "workflows"),
        (messaging_router, "messaging"),
        (doorbell_router, "doorbell"),
        (notifications_router, "notifications"),
        (iot_router, "iot"),
        (facilities_router, "facilities"),
        (deliveries_router, "deliveries"),
        (announcements_router, "announcements"),
        (join_requests_router, "join_requests"),
    ]
    for router, _ in routers:
        app.include_router(router, prefix=api_v1_prefix)

    # Metrics router at root level (no prefix)
    if settings.prometheus_enabled:
        app.include_router(metrics_router)

    logger.info(
        "Routers registered",
        modules=[name for _, name in routers],
        api_prefix=api_v1_prefix,
    )


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
