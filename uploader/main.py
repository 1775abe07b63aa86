from __future__ import annotations

import logging
import os

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from uploader.config import Settings, load_local_env
from uploader.errors import MethodNotAllowedError, NotFoundError, OriginForbiddenError, UploadError
from uploader.routers.upload import UPLOAD_PATHS, json_response
from uploader.routers.upload import router as upload_router


logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    if settings is None:
        load_local_env()
        settings = Settings.from_env()

    app = FastAPI(title="Workshop Uploader", version="0.1.0", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.store_transport = transport

    @app.middleware("http")
    async def request_guard(request: Request, call_next):
        cors_headers = settings.cors_headers
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=cors_headers)

        error: UploadError | None = None
        if request.method != "POST":
            error = MethodNotAllowedError()
        elif request.headers.get("origin", "") != settings.allowed_origin:
            # Simple requests skip preflight, so the origin is enforced here too.
            error = OriginForbiddenError()
        elif request.url.path not in UPLOAD_PATHS:
            error = NotFoundError("Not found")
        if error is not None:
            return JSONResponse(content=error.payload(), status_code=error.status_code, headers=cors_headers)

        response = await call_next(request)
        for key, value in cors_headers.items():
            response.headers.setdefault(key, value)
        return response

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError) -> JSONResponse:
        return json_response(exc.payload(), exc.status_code, request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.detail)
        return json_response({"success": False, "error": {"message": str(exc.detail)}}, exc.status_code, request)

    app.include_router(upload_router)
    return app


app = create_app()


def run() -> None:
    uvicorn.run(
        "uploader.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8787")),
    )
