from __future__ import annotations

import logging
from typing import Any

from uploader.config import Settings
from uploader.models.manifest import (
    Manifest,
    ManifestCollection,
    OutputManifestEntry,
    ToolManifestEntry,
)
from uploader.services.content_store import GitHubContentStore


logger = logging.getLogger(__name__)


class ManifestRepository:
    """Read-modify-write access to the workshop manifest.

    Every write carries the version token from the read that preceded it,
    so a concurrent writer makes the later write fail instead of silently
    dropping an entry. Conflicts are not retried.
    """

    def __init__(self, store: GitHubContentStore, settings: Settings) -> None:
        self._store = store
        self._path = settings.manifest_path

    @property
    def path(self) -> str:
        return self._path

    async def load(self) -> tuple[Manifest, str] | None:
        stored = await self._store.get_file(self._path)
        if stored is None:
            return None
        return Manifest.from_bytes(stored.content), stored.version_token

    async def find_tool(self, tool_id: str) -> dict[str, Any] | None:
        loaded = await self.load()
        if loaded is None:
            return None
        manifest, _ = loaded
        return manifest.find_tool(tool_id)

    async def add_tool_entry(self, entry: ToolManifestEntry) -> None:
        await self._append_entry("tools", entry, "Update manifest with new tool")

    async def add_output_entry(self, entry: OutputManifestEntry) -> None:
        await self._append_entry("outputs", entry, "Update manifest with new output")

    async def _append_entry(
        self,
        collection: ManifestCollection,
        entry: ToolManifestEntry | OutputManifestEntry,
        message: str,
    ) -> None:
        loaded = await self.load()
        if loaded is None:
            if collection == "outputs":
                logger.warning("Manifest %s missing while adding output %s; creating it", self._path, entry.id)
            manifest, version_token = Manifest(), None
        else:
            manifest, version_token = loaded

        manifest.prepend(collection, entry)
        new_token = await self._store.put_file(self._path, manifest.to_bytes(), message, version_token)
        logger.info("Added %s entry %s to %s (version %s)", collection, entry.id, self._path, new_token)
