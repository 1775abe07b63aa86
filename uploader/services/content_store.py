from __future__ import annotations

import base64
import logging
from typing import Any
from urllib.parse import quote

import httpx

from uploader.config import Settings
from uploader.models.manifest import StoredFileVersion


logger = logging.getLogger(__name__)

CONFLICT_STATUSES = {409, 422}


class ContentStoreError(RuntimeError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error: {status_code} - {message}")
        self.status_code = status_code
        self.message = message


class VersionConflictError(ContentStoreError):
    """The stored file changed since its version token was read."""


class GitHubContentStore:
    """Thin async wrapper over the GitHub contents API for one repo and branch.

    One instance, and one underlying HTTP client, per request. Use it as an
    async context manager so the client is closed when the request ends.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.github_api_base.rstrip("/"),
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=10.0),
            headers={
                "Authorization": f"Bearer {settings.github_token}",
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": settings.user_agent,
            },
            transport=transport,
        )

    async def __aenter__(self) -> GitHubContentStore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _contents_url(self, path: str) -> str:
        owner = self._settings.github_owner
        repo = self._settings.github_repo
        return f"/repos/{owner}/{repo}/contents/{quote(path)}"

    async def get_file(self, path: str) -> StoredFileVersion | None:
        resp = await self._client.get(self._contents_url(path), params={"ref": self._settings.branch})
        if resp.status_code == 404:
            return None
        if not resp.is_success:
            raise ContentStoreError(resp.status_code, resp.text)
        body = resp.json()
        # The API wraps base64 content at 60 columns.
        content = base64.b64decode("".join(str(body.get("content", "")).split()))
        return StoredFileVersion(content=content, version_token=body["sha"])

    async def put_file(
        self,
        path: str,
        data: bytes,
        message: str,
        version_token: str | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self._settings.branch,
        }
        if version_token is not None:
            payload["sha"] = version_token

        resp = await self._client.put(self._contents_url(path), json=payload)
        if resp.status_code in CONFLICT_STATUSES:
            raise VersionConflictError(resp.status_code, resp.text)
        if not resp.is_success:
            raise ContentStoreError(resp.status_code, resp.text)
        new_token = resp.json()["content"]["sha"]
        logger.info("Stored %s (%d bytes) as version %s", path, len(data), new_token)
        return new_token
