from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from uploader.config import Settings
from uploader.errors import InternalError, NotFoundError, UploadError, ValidationError
from uploader.models.manifest import OutputManifestEntry, ToolManifestEntry, utc_timestamp
from uploader.models.uploads import (
    SCRIPT_EXTENSION,
    OutputUploadForm,
    ToolUploadForm,
    UploadResult,
    validation_issues,
)
from uploader.services.content_store import GitHubContentStore
from uploader.services.sanitizer import generate_id, sanitize, strip_extension
from uploader.store.manifest_repository import ManifestRepository


logger = logging.getLogger(__name__)

AUTHOR_MAX_LENGTH = 20
NAME_MAX_LENGTH = 30
RANDOM_ID_LENGTH = 6

TOOL_FIELDS = ("toolName", "toolDescription", "nickname", "modelUsed", "toolFile")
OUTPUT_FIELDS = ("toolId", "outputFile")


def _validate(model: type[Any], form: Mapping[str, Any], fields: tuple[str, ...], settings: Settings) -> Any:
    values = {name: form.get(name) for name in fields}
    try:
        return model.model_validate(values, context={"max_upload_bytes": settings.max_upload_bytes})
    except PydanticValidationError as exc:
        raise ValidationError(validation_issues(exc, model)) from exc


async def register_tool(
    form: Mapping[str, Any],
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UploadResult:
    data: ToolUploadForm = _validate(ToolUploadForm, form, TOOL_FIELDS, settings)

    try:
        script = (await data.tool_file.read()).decode("utf-8", errors="replace")

        sanitized_author = sanitize(data.nickname, AUTHOR_MAX_LENGTH)
        original_name = strip_extension(data.tool_file.filename or "", SCRIPT_EXTENSION)
        sanitized_name = sanitize(original_name, NAME_MAX_LENGTH)
        random_id = generate_id(RANDOM_ID_LENGTH)

        tool_id = f"{sanitized_author}-{sanitized_name}-{random_id}"
        filename = f"{tool_id}.{SCRIPT_EXTENSION}"
        storage_path = f"{settings.workshop_slug}/tools/{filename}"

        async with GitHubContentStore(settings, transport=transport) as store:
            await store.put_file(storage_path, script.encode("utf-8"), f"Add sketch by {data.nickname}")
            await ManifestRepository(store, settings).add_tool_entry(
                ToolManifestEntry(
                    id=tool_id,
                    author=data.nickname,
                    name=data.tool_name,
                    description=data.tool_description,
                    model=data.model_used,
                    url=f"tools/{filename}",
                    uploaded_at=utc_timestamp(),
                )
            )
    except Exception as exc:  # noqa: BLE001
        logger.exception("Tool upload failed for nickname=%s", data.nickname)
        raise InternalError() from exc

    logger.info("Registered tool %s", tool_id)
    return UploadResult(filename=filename, gallery_url=settings.gallery_url)


async def register_output(
    form: Mapping[str, Any],
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UploadResult:
    data: OutputUploadForm = _validate(OutputUploadForm, form, OUTPUT_FIELDS, settings)

    try:
        async with GitHubContentStore(settings, transport=transport) as store:
            manifests = ManifestRepository(store, settings)
            loaded = await manifests.load()
            if loaded is None:
                logger.warning("Output upload for tool %s but %s does not exist", data.tool_id, manifests.path)
                raise NotFoundError("Manifest not found")
            manifest, _ = loaded
            tool = manifest.find_tool(data.tool_id)
            if tool is None:
                logger.warning("Output upload references unknown tool %s", data.tool_id)
                raise NotFoundError("Tool not found")

            random_id = generate_id(RANDOM_ID_LENGTH)
            extension = data.extension
            sanitized_name = sanitize(strip_extension(data.output_file.filename or ""), NAME_MAX_LENGTH)
            output_id = f"{sanitized_name}-{random_id}"
            filename = f"{output_id}.{extension}"

            image = await data.output_file.read()
            await store.put_file(
                f"{settings.workshop_slug}/outputs/{filename}",
                image,
                f"Add output for {data.tool_id}",
            )
            await manifests.add_output_entry(
                OutputManifestEntry(
                    id=output_id,
                    tool_id=data.tool_id,
                    tool_url=str(tool.get("url") or ""),
                    url=f"outputs/{filename}",
                    created_at=utc_timestamp(),
                )
            )
    except UploadError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Output upload failed for tool_id=%s", data.tool_id)
        raise InternalError() from exc

    logger.info("Registered output %s for tool %s", output_id, data.tool_id)
    return UploadResult(filename=filename, gallery_url=settings.gallery_url)
