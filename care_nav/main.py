from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from care_nav.api.exception_handlers import register_exception_handlers
from care_nav.api.schemas import HealthOut
from care_nav.core.llm.deps import build_openai_client
from care_nav.core.logging import setup_logging
from care_nav.core.metrics import PrometheusMetricsMiddleware, metrics_router
from care_nav.core.middleware.http_logging import HttpLoggingMiddleware
from care_nav.core.settings import get_settings
from care_nav.gcp.config_store import GcpConfigStore
from care_nav.gcp.router import router as gcp_router

setup_logging()


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Shared, read-only collaborators are built once here and injected per request.
        # Configuration files load lazily so a missing file fails requests, not startup.
        settings = get_settings()
        app.state.gcp_config_store = GcpConfigStore.from_settings(settings)
        app.state.openai_client = build_openai_client(settings)
        yield

    app = FastAPI(
        title=get_settings().app_name,
        description=(
            "Turns a care-needs questionnaire into a care-tier recommendation.\n\n"
            "Design principles:\n"
            "- The deterministic engine (scoring, gating, tier resolution) always produces "
            "a usable recommendation.\n"
            "- LLM advice is optional, validated and filtered; failures degrade silently "
            "and are visible only in the adjudication record.\n"
            "- Logging and metrics never include answers, prompts or model output."
        ),
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": "Basic uptime check for load balancers and monitoring.",
            },
            {
                "name": "gcp",
                "description": "Guided Care Plan assessment scoring and care-tier catalogue.",
            },
            {
                "name": "metrics",
                "description": "Prometheus-compatible metrics endpoint.",
            },
        ],
    )

    app.add_middleware(PrometheusMetricsMiddleware)
    app.add_middleware(HttpLoggingMiddleware)

    register_exception_handlers(app)

    @app.get(
        "/health",
        response_model=HealthOut,
        tags=["health"],
        summary="Health check",
        description=(
            "Lightweight endpoint to verify the API process is running. It does not load "
            "the questionnaire configuration or contact the LLM."
        ),
    )
    async def health() -> HealthOut:
        return HealthOut(status="ok")

    app.include_router(metrics_router)
    app.include_router(gcp_router)
    return app


app = create_app()
