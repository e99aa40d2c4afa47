from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from care_nav.domain.exceptions import ConfigurationError

logger = logging.getLogger("care_nav.config")


def register_exception_handlers(app: FastAPI) -> None:
    """Register application exception handlers."""

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(
        request: Request,
        exc: ConfigurationError,
    ) -> JSONResponse:
        # The source path is safe to log; the answer body is not.
        request_id = getattr(request.state, "request_id", None) or request.headers.get(
            "X-Request-ID"
        )
        logger.error(
            "Recommendation configuration unavailable: %s",
            exc.message,
            extra={
                "request_id": request_id,
                "http_method": request.method,
                "request_path": request.url.path,
                "status_code": 500,
                "error": "configuration",
            },
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Recommendation configuration unavailable"},
        )
