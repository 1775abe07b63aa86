from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from uploader.services.upload_workflows import register_output, register_tool


router = APIRouter(prefix="/upload", tags=["upload"])

UPLOAD_PATHS = {"/upload/tool", "/upload/output"}


def json_response(content: dict, status_code: int, request: Request) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=request.app.state.settings.cors_headers)


@router.post("/tool")
async def upload_tool(request: Request) -> JSONResponse:
    async with request.form() as form:
        result = await register_tool(form, request.app.state.settings, transport=request.app.state.store_transport)
    return json_response(result.model_dump(by_alias=True), 200, request)


@router.post("/output")
async def upload_output(request: Request) -> JSONResponse:
    async with request.form() as form:
        result = await register_output(form, request.app.state.settings, transport=request.app.state.store_transport)
    return json_response(result.model_dump(by_alias=True), 200, request)
