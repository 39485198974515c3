from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from email.utils import parsedate_to_datetime

from aioaws.s3 import S3Client, S3Config
from httpx import AsyncClient
from bytehost.storage import ArtifactMetadata, ArtifactNotFound
from bytehost.storage import StorageBackend
from bytehost.streams import ChunkedSource


@dataclass
class S3Storage(StorageBackend):
    client: AsyncClient
    access_key_id: str
    access_key_secret: str
    region: str
    endpoint: str | None

    @classmethod
    @asynccontextmanager
    async def connect(cls, access_key_id: str, access_key_secret: str, region: str, endpoint: str | None = None) -> AsyncIterator[S3Storage]:
        async with AsyncClient() as client:
            yield cls(client, access_key_id, access_key_secret, region, endpoint)

    def _get_client(self, bucket: str) -> S3Client:
        return S3Client(
            self.client,
            S3Config(
                aws_access_key=self.access_key_id,
                aws_secret_key=self.access_key_secret,
                aws_region=self.region,
                aws_s3_bucket=bucket,
                aws_host=self.endpoint,
            ),
        )

    async def put(self, namespace: str, key: str, body: bytes) -> ArtifactMetadata:
        client = self._get_client(namespace)
        await client.upload(key, body)
        metadata = await self.stat(namespace, key)
        if metadata is None:
            raise ArtifactNotFound(f"{namespace}/{key} missing right after upload")
        return metadata

    async def stat(self, namespace: str, key: str) -> ArtifactMetadata | None:
        client = self._get_client(namespace)
        url = client.signed_download_url(key, method='HEAD')
        response = await self.client.head(url)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return ArtifactMetadata(
            length=int(response.headers["Content-Length"]),
            last_modified=parsedate_to_datetime(response.headers["Last-Modified"]),
        )

    async def open(self, namespace: str, key: str) -> ChunkedSource:
        metadata = await self.stat(namespace, key)
        if metadata is None:
            raise ArtifactNotFound(f"{namespace}/{key}")
        url = self._get_client(namespace).signed_download_url(key, method='GET')
        return ChunkedSource(metadata.length, lambda: self._stream(url))

    async def _stream(self, url: str) -> AsyncGenerator[bytes, None]:
        async with self.client.stream("GET", url) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes():
                yield chunk
