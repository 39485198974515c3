import logging
import os
from contextlib import AsyncExitStack
import anyio

from bytehost.api import Config, make_app
from bytehost.storage import StorageBackend


async def main() -> None:
    import uvicorn

    from bytehost.storage.filesystem import FileSystemBackend
    from bytehost.storage.s3 import S3Storage

    env = os.environ
    async with AsyncExitStack() as stack:
        fs: StorageBackend
        if env.get("BYTEHOST_S3_ACCESS_KEY_ID"):
            fs = await stack.enter_async_context(
                S3Storage.connect(
                    access_key_id=env["BYTEHOST_S3_ACCESS_KEY_ID"],
                    access_key_secret=env["BYTEHOST_S3_ACCESS_KEY_SECRET"],
                    region=env.get("BYTEHOST_S3_REGION", "us-east-1"),
                    endpoint=env.get("BYTEHOST_S3_ENDPOINT"),
                )
            )
        else:
            fs = await FileSystemBackend.create(env.get("BYTEHOST_ROOT", "./artifacts"))
        config = Config(chunk_size=int(env.get("BYTEHOST_CHUNK_SIZE", Config.chunk_size)))
        app = make_app(fs, config)

        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=env.get("BYTEHOST_HOST", "0.0.0.0"),
                port=int(env.get("BYTEHOST_PORT", "8000")),
            )
        )
        await server.serve()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    anyio.run(main)
