from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


ManifestCollection = Literal["tools", "outputs"]


def utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ToolManifestEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    author: str
    name: str
    description: str
    model: str
    url: str
    uploaded_at: str = Field(default_factory=utc_timestamp, alias="uploadedAt")


class OutputManifestEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    tool_id: str = Field(alias="toolId")
    tool_url: str = Field(alias="toolUrl")
    url: str
    created_at: str = Field(default_factory=utc_timestamp, alias="createdAt")


class Manifest(BaseModel):
    """Index of everything uploaded to one workshop, newest entries first.

    Entries already in the document are kept exactly as they were read; only
    new entries go through the typed models above.
    """

    model_config = ConfigDict(extra="allow")

    tools: list[Any] = Field(default_factory=list)
    outputs: list[Any] = Field(default_factory=list)

    @classmethod
    def from_bytes(cls, raw: bytes) -> Manifest:
        data = json.loads(raw.decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Manifest must be a JSON object")
        # Older manifests predate outputs and may carry explicit nulls.
        for key in ("tools", "outputs"):
            if data.get(key) is None:
                data[key] = []
        return cls.model_validate(data)

    def to_bytes(self) -> bytes:
        payload = self.model_dump(mode="json")
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")

    def prepend(self, collection: ManifestCollection, entry: ToolManifestEntry | OutputManifestEntry) -> None:
        getattr(self, collection).insert(0, entry.model_dump(mode="json", by_alias=True))

    def find_tool(self, tool_id: str) -> dict[str, Any] | None:
        for tool in self.tools:
            if isinstance(tool, dict) and tool.get("id") == tool_id:
                return tool
        return None


@dataclass
class StoredFileVersion:
    content: bytes
    version_token: str
