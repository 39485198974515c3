"""Turn a Range header and an artifact into a protocol-correct response.

`plan_partial_download` picks exactly one response shape per request and
`handle_partial_download` renders it. The source handed in is only read,
never closed: whoever opened it owns it.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import timezone
from email.utils import format_datetime
from typing import Union

from fastapi import Response
from fastapi.responses import StreamingResponse

from bytehost.ranges import MULTIPART_BOUNDARY, ResolvedRange, parse_range_header, resolve_ranges
from bytehost.storage import ArtifactMetadata
from bytehost.streams import ByteSource, copy, skip

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
DEFAULT_CHUNK_SIZE = 64 * 1024
CRLF = b"\r\n"


@dataclass(frozen=True)
class FullContent:
    total: int

    def respond(self, source: ByteSource, chunk_size: int) -> Response:
        return StreamingResponse(
            copy(source, self.total, chunk_size),
            media_type=OCTET_STREAM,
            headers={"Content-Length": str(self.total), "Accept-Ranges": "bytes"},
        )


@dataclass(frozen=True)
class SingleRange:
    range: ResolvedRange

    def respond(self, source: ByteSource, chunk_size: int) -> Response:
        return StreamingResponse(
            self._body(source, chunk_size),
            status_code=206,
            media_type=OCTET_STREAM,
            headers={
                "Content-Range": self.range.content_range,
                "Content-Length": str(self.range.length),
            },
        )

    async def _body(self, source: ByteSource, chunk_size: int) -> AsyncIterator[bytes]:
        await skip(source, self.range.start, chunk_size)
        async for chunk in copy(source, self.range.length, chunk_size):
            yield chunk


@dataclass(frozen=True)
class MultiRange:
    ranges: tuple[ResolvedRange, ...]

    def respond(self, source: ByteSource, chunk_size: int) -> Response:
        # no Content-Length: the body goes out with chunked transfer encoding
        return StreamingResponse(
            self._body(source, chunk_size),
            status_code=206,
            media_type=f"multipart/byteranges; boundary={MULTIPART_BOUNDARY}",
        )

    async def _body(self, source: ByteSource, chunk_size: int) -> AsyncIterator[bytes]:
        position = 0
        for range in self.ranges:
            if range.start < position:
                await source.restart()
                position = 0
            yield (
                f"--{MULTIPART_BOUNDARY}\r\n"
                f"Content-Type: {OCTET_STREAM}\r\n"
                f"Content-Range: {range.content_range}\r\n"
                "\r\n"
            ).encode()
            await skip(source, range.start - position, chunk_size)
            async for chunk in copy(source, range.length, chunk_size):
                yield chunk
            position = range.end + 1
            yield CRLF
        yield f"--{MULTIPART_BOUNDARY}--\r\n".encode()


@dataclass(frozen=True)
class NotSatisfiable:
    total: int

    def respond(self, source: ByteSource, chunk_size: int) -> Response:
        return Response(status_code=416, headers={"Content-Range": f"bytes */{self.total}"})


PartialDownload = Union[FullContent, SingleRange, MultiRange, NotSatisfiable]


def plan_partial_download(range_header: str | None, total: int) -> PartialDownload:
    ranges = parse_range_header(range_header)
    if not ranges:
        return FullContent(total)
    resolved = resolve_ranges(ranges, total)
    if resolved is None:
        return NotSatisfiable(total)
    if len(resolved) == 1:
        return SingleRange(resolved[0])
    return MultiRange(tuple(resolved))


def handle_partial_download(
    source: ByteSource,
    range_header: str | None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Response:
    plan = plan_partial_download(range_header, source.length)
    logger.debug("Range %r against %d bytes: %s", range_header, source.length, plan)
    return plan.respond(source, chunk_size)


def provide_artifact_headers(metadata: ArtifactMetadata | None) -> Response:
    """Headers for a HEAD request; a missing artifact gets a bare 404."""
    if metadata is None:
        return Response(status_code=404)
    return Response(
        headers={
            "Content-Length": str(metadata.length),
            "Last-Modified": format_datetime(metadata.last_modified.astimezone(timezone.utc), usegmt=True),
            "Content-Type": OCTET_STREAM,
            "Accept-Ranges": "bytes",
        }
    )
