from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from bytehost.streams import ByteSource


class ArtifactNotFound(LookupError):
    pass


@dataclass(frozen=True)
class ArtifactMetadata:
    length: int
    last_modified: datetime


class StorageBackend(Protocol):
    async def put(self, namespace: str, key: str, body: bytes) -> ArtifactMetadata: ...

    async def stat(self, namespace: str, key: str) -> ArtifactMetadata | None: ...

    async def open(self, namespace: str, key: str) -> ByteSource: ...
