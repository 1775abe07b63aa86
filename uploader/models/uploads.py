from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError
from starlette.datastructures import UploadFile


SCRIPT_EXTENSION = "js"

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}

REQUIRED_MESSAGES = {
    "tool_name": "Tool name is required",
    "tool_description": "Description is required",
    "nickname": "Nickname is required",
    "model_used": "Model used is required",
    "tool_id": "Tool id is required",
    "tool_file": "A JavaScript file is required",
    "output_file": "An image file is required",
}


def _required_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise PydanticCustomError("required", REQUIRED_MESSAGES[field_name])
    return value.strip()


def _required_file(value: Any, field_name: str, info: ValidationInfo) -> UploadFile:
    if not isinstance(value, UploadFile):
        raise PydanticCustomError("required", REQUIRED_MESSAGES[field_name])
    limit = (info.context or {}).get("max_upload_bytes")
    if limit and value.size is not None and value.size > limit:
        raise PydanticCustomError(
            "too_big",
            "File exceeds the {limit_mb} MB upload limit",
            {"limit_mb": limit // (1024 * 1024)},
        )
    return value


class ToolUploadForm(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True, protected_namespaces=())

    tool_name: str = Field(alias="toolName")
    tool_description: str = Field(alias="toolDescription")
    nickname: str
    model_used: str = Field(alias="modelUsed")
    tool_file: UploadFile = Field(alias="toolFile")

    @field_validator("tool_name", "tool_description", "nickname", "model_used", mode="before")
    @classmethod
    def require_text(cls, value: Any, info: ValidationInfo) -> str:
        return _required_text(value, info.field_name)

    @field_validator("tool_file", mode="before")
    @classmethod
    def require_script(cls, value: Any, info: ValidationInfo) -> UploadFile:
        upload = _required_file(value, info.field_name, info)
        if not (upload.filename or "").endswith(f".{SCRIPT_EXTENSION}"):
            raise PydanticCustomError("invalid_type", "File must be a JavaScript file (.js)")
        return upload


class OutputUploadForm(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    tool_id: str = Field(alias="toolId")
    output_file: UploadFile = Field(alias="outputFile")

    @field_validator("tool_id", mode="before")
    @classmethod
    def require_text(cls, value: Any, info: ValidationInfo) -> str:
        return _required_text(value, info.field_name)

    @field_validator("output_file", mode="before")
    @classmethod
    def require_image(cls, value: Any, info: ValidationInfo) -> UploadFile:
        upload = _required_file(value, info.field_name, info)
        if upload.content_type not in IMAGE_EXTENSIONS:
            raise PydanticCustomError("invalid_type", "File must be a PNG, JPEG, WebP or GIF image")
        return upload

    @property
    def extension(self) -> str:
        return IMAGE_EXTENSIONS[self.output_file.content_type or ""]


def validation_issues(exc: PydanticValidationError, model: type[BaseModel]) -> list[dict[str, Any]]:
    by_alias = {field.alias or name: name for name, field in model.model_fields.items()}
    issues: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        if error["type"] == "missing":
            field_name = by_alias.get(loc[0], loc[0]) if loc else ""
            message = REQUIRED_MESSAGES.get(field_name, "Field is required")
            issues.append({"code": "required", "path": loc, "message": message})
        else:
            issues.append({"code": error["type"], "path": loc, "message": error["msg"]})
    return issues


class UploadResult(BaseModel):
    success: bool = True
    filename: str
    gallery_url: str = Field(serialization_alias="galleryUrl")
