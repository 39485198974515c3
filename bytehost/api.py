import base64
import logging
from dataclasses import dataclass
from hashlib import md5
from typing import Annotated
import anyio
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Header, Path, Request, Response
from starlette.types import Receive, Scope, Send

from bytehost.depends import Injected, bind
from bytehost.responses import DEFAULT_CHUNK_SIZE, handle_partial_download, provide_artifact_headers
from bytehost.storage import ArtifactNotFound, StorageBackend
from bytehost.streams import ByteSource

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class Config:
    chunk_size: int = DEFAULT_CHUNK_SIZE


def make_app(
    storage: StorageBackend,
    config: Config,
) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    bind(app, StorageBackend, storage)
    bind(app, Config, config)
    return app


@router.get("/health")
async def health() -> Response:
    return Response(status_code=200)


@dataclass
class ArtifactPath:
    repository: str
    path: str

    @property
    def key(self) -> str:
        return f"{self.repository}/{self.path}"


def get_artifact_path(
    repository: Annotated[str, Path()],
    artifact: Annotated[str, Path()],
) -> ArtifactPath:
    return ArtifactPath(repository=repository, path=artifact.strip("/"))


def get_md5_digests(data: bytes) -> tuple[str, str]:
    """The hex ETag and the base64 Content-MD5 of `data`."""
    hash = md5(data)
    return hash.hexdigest(), base64.b64encode(hash.digest()).decode()


class ReleasingResponse(Response):
    """Sends `response`, then closes `source` however sending ended.

    Covers a failed `http.response.start`, a client that goes away before
    the first chunk and a source that breaks mid-body.
    """

    def __init__(self, response: Response, source: ByteSource) -> None:
        self.response = response
        self.source = source
        self.status_code = response.status_code
        self.raw_headers = response.raw_headers
        self.background = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await self.response(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.source.aclose()
        if self.background is not None:
            await self.background()


@router.put("/api/artifacts/{repository}/{artifact:path}")
async def upload_artifact(
    request: Request,
    artifact: Annotated[ArtifactPath, Depends(get_artifact_path)],
    fs: Injected[StorageBackend],
) -> Response:
    if not artifact.path:
        raise HTTPException(status_code=400, detail="Missing artifact path")
    body = await request.body()
    etag, digest = get_md5_digests(body)
    content_md5 = request.headers.get("Content-MD5")
    if content_md5 and digest != content_md5:
        return Response(status_code=400, content="MD5 mismatch")
    try:
        metadata = await fs.put(artifact.repository, artifact.path, body)
    except ArtifactNotFound:
        raise HTTPException(status_code=400, detail="Invalid artifact path")
    logger.info("Stored %s (%d bytes)", artifact.key, metadata.length)
    return Response(status_code=200, headers={"ETag": etag})


@router.get("/api/artifacts/{repository}/{artifact:path}")
async def download_artifact(
    artifact: Annotated[ArtifactPath, Depends(get_artifact_path)],
    fs: Injected[StorageBackend],
    config: Injected[Config],
    range: Annotated[str | None, Header()] = None,
) -> Response:
    if not artifact.path:
        return Response(status_code=404)
    try:
        source = await fs.open(artifact.repository, artifact.path)
    except ArtifactNotFound:
        return Response(status_code=404)
    try:
        response = handle_partial_download(source, range, config.chunk_size)
    except BaseException:
        await source.aclose()
        raise
    return ReleasingResponse(response, source)


@router.head("/api/artifacts/{repository}/{artifact:path}")
async def head_artifact(
    artifact: Annotated[ArtifactPath, Depends(get_artifact_path)],
    fs: Injected[StorageBackend],
) -> Response:
    if not artifact.path:
        return provide_artifact_headers(None)
    return provide_artifact_headers(await fs.stat(artifact.repository, artifact.path))
