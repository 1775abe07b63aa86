from __future__ import annotations

import base64
import hashlib
import io
import json
from collections.abc import Awaitable, Callable
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import Headers, UploadFile

from uploader.config import Settings
from uploader.main import create_app


ORIGIN = "https://workshop.example.org"


def blob_sha(data: bytes) -> str:
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


class FakeContentsApi:
    """In-memory stand-in for the GitHub contents API, with version-token checks."""

    def __init__(self, owner: str, repo: str) -> None:
        self.prefix = f"/repos/{owner}/{repo}/contents/"
        self.files: dict[str, tuple[bytes, str]] = {}
        self.requests: list[httpx.Request] = []
        self.on_read: Callable[[str], Awaitable[None]] | None = None
        self.fail_writes_with: int | None = None

    def seed(self, path: str, data: bytes) -> str:
        sha = blob_sha(data)
        self.files[path] = (data, sha)
        return sha

    def seed_json(self, path: str, payload: object) -> str:
        return self.seed(path, json.dumps(payload, indent=2).encode("utf-8"))

    def read_json(self, path: str) -> dict:
        return json.loads(self.files[path][0].decode("utf-8"))

    def written_paths(self) -> list[str]:
        return [self._path(req) for req in self.requests if req.method == "PUT"]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def _path(self, request: httpx.Request) -> str:
        return unquote(request.url.path[len(self.prefix):])

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not request.url.path.startswith(self.prefix):
            return httpx.Response(404, json={"message": "Not Found"})
        path = self._path(request)

        if request.method == "GET":
            stored = self.files.get(path)
            if self.on_read is not None:
                await self.on_read(path)
            if stored is None:
                return httpx.Response(404, json={"message": "Not Found"})
            data, sha = stored
            encoded = base64.encodebytes(data).decode("ascii")
            return httpx.Response(200, json={"path": path, "sha": sha, "encoding": "base64", "content": encoded})

        if request.method == "PUT":
            if self.fail_writes_with is not None:
                return httpx.Response(self.fail_writes_with, json={"message": "Server Error"})
            body = json.loads(request.content)
            current = self.files.get(path)
            sent_sha = body.get("sha")
            if current is not None and sent_sha is None:
                return httpx.Response(422, json={"message": "Invalid request.\n\n\"sha\" wasn't supplied."})
            if current is not None and sent_sha != current[1]:
                return httpx.Response(409, json={"message": f"{path} does not match {sent_sha}"})
            data = base64.b64decode(body["content"])
            sha = self.seed(path, data)
            return httpx.Response(
                201 if current is None else 200,
                json={"content": {"path": path, "sha": sha}, "commit": {"message": body["message"]}},
            )

        return httpx.Response(405, json={"message": "Method Not Allowed"})


def make_upload(data: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        allowed_origin=ORIGIN,
        github_token="test-token",
        github_owner="octo",
        github_repo="gallery",
        workshop_slug="spring-jam",
    )


@pytest.fixture()
def github(settings: Settings) -> FakeContentsApi:
    return FakeContentsApi(settings.github_owner, settings.github_repo)


@pytest.fixture()
def client(settings: Settings, github: FakeContentsApi):
    app = create_app(settings, transport=github.transport)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def tool_entry() -> dict:
    return {
        "id": "ada-spiral-x1y2z3",
        "author": "Ada",
        "name": "Spiral",
        "description": "Draws a spiral",
        "model": "gpt-4o",
        "url": "tools/ada-spiral-x1y2z3.js",
        "uploadedAt": "2025-03-01T10:00:00.000Z",
    }
