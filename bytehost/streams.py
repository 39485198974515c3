from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Protocol

import anyio
from anyio import AsyncFile

logger = logging.getLogger(__name__)


class TruncatedArtifact(OSError):
    """The source ended before the requested bytes were read."""


class ByteSource(Protocol):
    """A forward-only byte stream with a known total length."""

    @property
    def length(self) -> int: ...

    async def read(self, size: int) -> bytes: ...

    async def restart(self) -> None: ...

    async def aclose(self) -> None: ...


async def skip(source: ByteSource, count: int, chunk_size: int) -> None:
    """Read and discard `count` bytes."""
    while count > 0:
        chunk = await source.read(min(chunk_size, count))
        if not chunk:
            raise TruncatedArtifact(f"source ended with {count} bytes left to skip")
        count -= len(chunk)


async def copy(source: ByteSource, count: int, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield exactly `count` bytes, never reading past them."""
    remaining = count
    while remaining > 0:
        chunk = await source.read(min(chunk_size, remaining))
        if not chunk:
            logger.warning("Source ended after %d of %d bytes", count - remaining, count)
            raise TruncatedArtifact(f"source ended with {remaining} of {count} bytes unread")
        remaining -= len(chunk)
        yield chunk


@dataclass
class BytesSource:
    data: bytes
    position: int = 0

    @property
    def length(self) -> int:
        return len(self.data)

    async def read(self, size: int) -> bytes:
        chunk = self.data[self.position : self.position + size]
        self.position += len(chunk)
        return chunk

    async def restart(self) -> None:
        self.position = 0

    async def aclose(self) -> None:
        pass


@dataclass
class FileSource:
    file: AsyncFile[bytes]
    length: int

    @classmethod
    async def open(cls, path: str | anyio.Path) -> FileSource:
        file = await anyio.open_file(path, "rb")
        try:
            stat = await anyio.Path(path).stat()
        except BaseException:
            await file.aclose()
            raise
        return cls(file, stat.st_size)

    async def read(self, size: int) -> bytes:
        return await self.file.read(size)

    async def restart(self) -> None:
        await self.file.seek(0)

    async def aclose(self) -> None:
        await self.file.aclose()


@dataclass
class ChunkedSource:
    """Adapts an async chunk generator (e.g. a streamed HTTP body) to sized reads.

    `restart` closes the current generator and calls `opener` again on the
    next read, so the underlying stream never needs to support seeking.
    """

    length: int
    opener: Callable[[], AsyncGenerator[bytes, None]]
    _chunks: AsyncGenerator[bytes, None] | None = field(default=None, init=False)
    _buffer: bytes = field(default=b"", init=False)

    async def read(self, size: int) -> bytes:
        if self._chunks is None:
            self._chunks = self.opener()
        while not self._buffer:
            try:
                self._buffer = await self._chunks.__anext__()
            except StopAsyncIteration:
                return b""
        chunk, self._buffer = self._buffer[:size], self._buffer[size:]
        return chunk

    async def restart(self) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        chunks, self._chunks, self._buffer = self._chunks, None, b""
        if chunks is not None:
            await chunks.aclose()
