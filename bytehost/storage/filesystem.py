from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import anyio

from bytehost.storage import ArtifactMetadata, ArtifactNotFound, StorageBackend
from bytehost.streams import FileSource

logger = logging.getLogger(__name__)


@dataclass
class FileSystemBackend(StorageBackend):
    """Artifacts stored as `<root>/<namespace>/<key>`."""

    root: anyio.Path

    @classmethod
    async def create(cls, root: str) -> FileSystemBackend:
        path = await anyio.Path(root).resolve()
        await path.mkdir(parents=True, exist_ok=True)
        return cls(path)

    async def _resolve(self, namespace: str, key: str) -> anyio.Path | None:
        if not namespace or not key.strip("/"):
            return None
        path = await (self.root / namespace / key).resolve()
        # refuse anything that escapes the root, e.g. via ".."
        if not path.is_relative_to(self.root / namespace):
            logger.warning("Rejected artifact path outside of %s: %s/%s", self.root, namespace, key)
            return None
        return path

    async def put(self, namespace: str, key: str, body: bytes) -> ArtifactMetadata:
        path = await self._resolve(namespace, key)
        if path is None:
            raise ArtifactNotFound(f"{namespace}/{key}")
        await path.parent.mkdir(parents=True, exist_ok=True)
        await path.write_bytes(body)
        metadata = await self.stat(namespace, key)
        if metadata is None:
            raise ArtifactNotFound(f"{namespace}/{key} missing right after upload")
        return metadata

    async def stat(self, namespace: str, key: str) -> ArtifactMetadata | None:
        path = await self._resolve(namespace, key)
        if path is None or not await path.is_file():
            return None
        st = await path.stat()
        return ArtifactMetadata(
            length=st.st_size,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    async def open(self, namespace: str, key: str) -> FileSource:
        path = await self._resolve(namespace, key)
        if path is None or not await path.is_file():
            raise ArtifactNotFound(f"{namespace}/{key}")
        return await FileSource.open(path)
