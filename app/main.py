from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from starlette.responses import JSONResponse, Response

from app.api.plans import router as plans_router
from app.api.subscriptions import router as subscriptions_router
from app.api.users import router as users_router
from app.api.webhooks import router as webhooks_router
from app.config import config_warnings, settings, validate_settings
from app.db import SessionLocal
from app.errors import ConfigurationError, register_error_handlers
from app.logging import configure_logging
from app.observability import ObservabilityMiddleware
from app.services.plans import PlanRegistry, set_plan_registry

logger = logging.getLogger(__name__)


def check_startup_configuration() -> PlanRegistry:
    """Build the plan catalog and refuse to start on any fatal config error."""
    for warning in config_warnings(settings):
        logger.warning("Config warning: %s", warning)

    errors = validate_settings(settings)
    registry = PlanRegistry.from_settings(settings)
    plan_errors = registry.validate()
    if plan_errors:
        logger.error("Subscription plans configuration errors: %s", plan_errors)
    errors.extend(plan_errors)
    if not errors and not registry.products_for_checkout():
        errors.append(
            "No subscription plans configured. Please configure "
            "SUBSCRIPTION_PLANS or legacy environment variables."
        )
    if errors:
        raise ConfigurationError(errors)
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[arg-type]
    # ── Startup ──────────────────────────────────────────
    registry = check_startup_configuration()
    set_plan_registry(registry)
    app.state.plan_registry = registry

    logger.info(
        "Application started (pid=%s, plans=%s)", os.getpid(), len(registry.plans)
    )
    yield

    # ── Shutdown ─────────────────────────────────────────
    logger.info("Application shutting down")


app = FastAPI(title="Subscription Sync API", lifespan=lifespan)

configure_logging()
register_error_handlers(app)

cors_origins = [
    o.strip()
    for o in settings.cors_origins.split(",")
    if o.strip()
]
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

app.add_middleware(ObservabilityMiddleware)

app.include_router(webhooks_router)
app.include_router(subscriptions_router)
app.include_router(plans_router)
app.include_router(users_router)


# ── Health Checks ────────────────────────────────────────


@app.get("/health")
def health_check() -> dict[str, str]:
    """Liveness check: always returns ok if the process is running."""
    return {"status": "ok"}


@app.get("/health/ready")
def readiness_check() -> JSONResponse:
    """Readiness check: verifies database connectivity."""
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "checks": {"database": f"error: {e}"}},
        )
    return JSONResponse(
        status_code=200, content={"status": "ok", "checks": {"database": "ok"}}
    )


@app.get("/metrics")
def metrics() -> Response:
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
