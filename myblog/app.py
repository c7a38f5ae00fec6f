"""
FastAPI application entry point for the blog backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from myblog import __version__
from myblog.config import get_settings
from myblog.errors import ApiError, InternalError, InvalidInput
from myblog.routes import router

logger = logging.getLogger(__name__)


def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _api_error_handler(request, InvalidInput.from_errors(list(exc.errors())))


def _http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _api_error_handler(request, InternalError())


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    app = FastAPI(title="My-Blog Backend API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/")
    def root():
        return {
            "message": "My-Blog Backend API",
            "version": __version__,
            "endpoints": {
                "health": f"{settings.api_prefix}/health",
                "posts": f"{settings.api_prefix}/posts",
                "contacts": f"{settings.api_prefix}/contacts",
                "support": f"{settings.api_prefix}/support",
                "media": f"{settings.api_prefix}/media",
            },
        }

    return app


app = create_app()
