"""
FastAPI application factory.

    uvicorn --factory site_analytics.app:create_app
"""

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .config import AnalyticsConfig
from .core.client import AnalyticsClient
from .errors import AnalyticsError
from .identity import IdentityClient
from .routes import create_api_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
TRACK_PATH = f"{API_PREFIX}/track"

# The pixel posts cross-origin from any client website
TRACK_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class TrackingCORSMiddleware(BaseHTTPMiddleware):
    """Open CORS for the public ingestion endpoint and answer its preflight."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(TRACK_PATH):
            return await call_next(request)

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=TRACK_CORS_HEADERS)

        try:
            response = await call_next(request)
        except Exception:
            # The catch-all error handler runs outside this middleware
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            response = _error_response(500, "Server error")
        response.headers.update(TRACK_CORS_HEADERS)
        return response


def _error_response(status_code: int, message: str, details: list | None = None) -> JSONResponse:
    body = {"error": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def install_error_handlers(app: FastAPI) -> None:
    """Render every failure as a JSON `{"error": ...}` body."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return _error_response(exc.status_code, str(exc.detail), None)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return _error_response(400, "Invalid request", errors)

    @app.exception_handler(AnalyticsError)
    async def analytics_error(request: Request, exc: AnalyticsError):
        if exc.status_code >= 500:
            # Store and provider details stay in the log
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            return _error_response(exc.status_code, "Server error")
        return _error_response(exc.status_code, exc.message, exc.details)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(500, "Server error")


def create_app(
    config: AnalyticsConfig | None = None,
    client: AnalyticsClient | None = None,
    identity: IdentityClient | None = None,
) -> FastAPI:
    """Build the Site Analytics API.

    Args:
        config: Service configuration; read from the environment when omitted
        client: D1 client; built from config when omitted
        identity: Identity provider client; built from config when omitted
    """
    config = config or AnalyticsConfig.from_env()
    logging.basicConfig(level=config.log_level)

    client = client or AnalyticsClient(
        d1_database_id=config.d1_database_id,
        cf_account_id=config.cf_account_id,
        cf_api_token=config.cf_api_token,
        timeout=config.query_timeout_seconds,
    )
    identity = identity or IdentityClient(
        base_url=config.identity_url,
        api_key=config.identity_api_key,
        timeout=config.query_timeout_seconds,
    )

    app = FastAPI(title="Site Analytics")
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    # Added last so it runs first, ahead of the dashboard CORS policy
    app.add_middleware(TrackingCORSMiddleware)

    install_error_handlers(app)
    app.include_router(create_api_router(config, client, identity), prefix=API_PREFIX)

    logger.info(f"Site Analytics API ready (D1 database {config.d1_database_id})")
    return app
