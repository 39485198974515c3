from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from bytehost.storage import ArtifactMetadata, ArtifactNotFound, StorageBackend
from bytehost.streams import BytesSource


@dataclass
class Artifact:
    body: bytes
    last_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def metadata(self) -> ArtifactMetadata:
        return ArtifactMetadata(length=len(self.body), last_modified=self.last_modified)


@dataclass
class InMemoryBackend(StorageBackend):
    storage: dict[str, dict[str, Artifact]] = field(
        default_factory=lambda: defaultdict(dict)
    )

    async def put(self, namespace: str, key: str, body: bytes) -> ArtifactMetadata:
        artifact = self.storage[namespace][key] = Artifact(body=body)
        return artifact.metadata

    async def stat(self, namespace: str, key: str) -> ArtifactMetadata | None:
        artifact = self.storage[namespace].get(key)
        return artifact.metadata if artifact is not None else None

    async def open(self, namespace: str, key: str) -> BytesSource:
        artifact = self.storage[namespace].get(key)
        if artifact is None:
            raise ArtifactNotFound(f"{namespace}/{key}")
        return BytesSource(artifact.body)
