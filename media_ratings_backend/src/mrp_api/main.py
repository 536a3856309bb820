"""
FastAPI application entrypoint for the Media Ratings Platform (MRP) backend.

Public:
- GET /, POST /api/users/register, POST /api/users/login
- GET /api/media, GET /api/media/{id}, GET /api/media/{id}/ratings

Everything else requires `Authorization: Bearer <token>`.

Every error response is JSON of the form {"error": "<message>"}.
"""

from __future__ import annotations

import logging
import os as _os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from mrp_api.db import Database
from mrp_api.errors import (
    ErrorKind,
    InternalError,
    MethodNotAllowedError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from mrp_api.routes_auth import router as auth_router
from mrp_api.routes_media import router as media_router
from mrp_api.routes_ratings import router as ratings_router
from mrp_api.routes_users import router as users_router
from mrp_api.schemas import HealthResponse

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0"

openapi_tags = [
    {"name": "Auth", "description": "Register and log in (public)."},
    {"name": "Users", "description": "Profiles, rating history and favorites."},
    {"name": "Media", "description": "Media entries, rating and favoriting."},
    {"name": "Ratings", "description": "Edit, confirm and like ratings."},
    {"name": "Health", "description": "Service health and basic runtime info."},
]


def _auto_create_schema() -> bool:
    raw = (_os.getenv("MRP_AUTO_CREATE_SCHEMA") or "1").strip().lower()
    return raw not in ("0", "false", "no", "off")


def _cors_origins() -> list:
    # Note: credentials=true requires explicit origins (not '*') in browsers.
    # Extra origins come from CORS_ALLOW_ORIGINS or ALLOWED_ORIGINS (comma-separated).
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    raw = _os.getenv("CORS_ALLOW_ORIGINS") or _os.getenv("ALLOWED_ORIGINS", "")
    origins.extend(o.strip() for o in raw.split(",") if o.strip())
    return origins


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else str(msg))
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request"


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.kind is ErrorKind.INTERNAL:
            logger.error("internal_error: path=%s message=%s", request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Raised by routing itself: no route for the path, or none for the method.
        headers = getattr(exc, "headers", None)
        if exc.status_code == 404:
            error: ServiceError = NotFoundError("Endpoint not found")
        elif exc.status_code == 405:
            error = MethodNotAllowedError("Method Not Allowed")
        else:
            return _error(exc.status_code, str(exc.detail), headers=headers)
        return _error(error.status_code, error.message, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError(_describe_validation_error(exc))
        return _error(error.status_code, error.message)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("database_error: path=%s exc=%s", request.url.path, exc.__class__.__name__)
        error = InternalError()
        return _error(error.status_code, error.message)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unexpected_error: path=%s exc=%s", request.url.path, exc.__class__.__name__)
        error = InternalError()
        return _error(error.status_code, error.message)


# PUBLIC_INTERFACE
def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI app around a persistence handle.

    Args:
        database: the Database to use. Defaults to one configured from the
            environment (DATABASE_URL / POSTGRES_*), connected lazily.
    """
    database = database if database is not None else Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if _auto_create_schema():
            database.create_schema()
        yield
        database.dispose()

    app = FastAPI(
        title="Media Ratings Platform API",
        description=(
            "Backend for rating movies, series and games.\n\n"
            "Authentication: POST /api/users/login returns a token; send it as "
            "`Authorization: Bearer <token>`.\n\n"
            "Only the creator of a media entry may update or delete it."
        ),
        version=SERVICE_VERSION,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(media_router)
    app.include_router(ratings_router)

    @app.get(
        "/",
        response_model=HealthResponse,
        summary="Health check",
        description="Simple health check endpoint.",
        tags=["Health"],
    )
    def health_check() -> HealthResponse:
        """Return basic service health information."""
        return HealthResponse(status="MRP Server is running", version=SERVICE_VERSION)

    return app


app = create_app()
