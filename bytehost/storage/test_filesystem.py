from pathlib import Path

import pytest

from bytehost.storage import ArtifactNotFound
from bytehost.storage.filesystem import FileSystemBackend


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def fs(tmp_path: Path) -> FileSystemBackend:
    return await FileSystemBackend.create(str(tmp_path / "storage"))


@pytest.mark.anyio
async def test_put_stat_open(fs: FileSystemBackend) -> None:
    metadata = await fs.put("releases", "org/lib/1.0/lib-1.0.jar", b"0123456789")
    assert metadata.length == 10
    assert await fs.stat("releases", "org/lib/1.0/lib-1.0.jar") == metadata

    source = await fs.open("releases", "org/lib/1.0/lib-1.0.jar")
    try:
        assert source.length == 10
        assert await source.read(100) == b"0123456789"
    finally:
        await source.aclose()


@pytest.mark.anyio
@pytest.mark.parametrize("key", ["test/test.jar", "", "../outside.jar", "org"])
async def test_missing(fs: FileSystemBackend, key: str) -> None:
    await fs.put("releases", "org/lib.jar", b"x")
    assert await fs.stat("releases", key) is None
    with pytest.raises(ArtifactNotFound):
        await fs.open("releases", key)


@pytest.mark.anyio
async def test_put_reports_a_vanished_file(fs: FileSystemBackend, monkeypatch: pytest.MonkeyPatch) -> None:
    async def stat(namespace: str, key: str) -> None:
        return None

    monkeypatch.setattr(fs, "stat", stat)
    with pytest.raises(ArtifactNotFound):
        await fs.put("releases", "org/lib.jar", b"x")
