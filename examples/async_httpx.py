#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "etagtransport[sqlite]",
# ]
#
# [tool.uv.sources]
# etagtransport = { path = "../", editable = true }
# ///

import asyncio
import logging
import os

import anysqlite

from etagtransport import AsyncCacheClient, AsyncSQLiteStorage

logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
logging.getLogger("httpcore").setLevel(logging.WARNING)


async def main() -> None:
    storage = AsyncSQLiteStorage(connection=await anysqlite.connect(":memory:"))
    headers = {}
    if "GITHUB_TOKEN" in os.environ:
        headers["Authorization"] = f"Bearer {os.environ['GITHUB_TOKEN']}"

    async with AsyncCacheClient(base_url="https://api.github.com", headers=headers, storage=storage) as client:
        for _ in range(2):
            response = await client.get("/repos/encode/httpx")
            print(f"🔄 From Cache: {response.extensions.get('from_cache', False)}")
            print(f"⏳ Rate Limit Remaining: {response.headers.get('x-ratelimit-remaining')}")


if __name__ == "__main__":
    asyncio.run(main())
