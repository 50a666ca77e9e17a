from __future__ import annotations

import datetime
import typing as tp
from pathlib import Path

import httpx

try:
    import boto3

    from .._s3 import AsyncS3Manager
except ImportError:  # pragma: no cover
    boto3 = None  # type: ignore

try:
    import anysqlite
except ImportError:  # pragma: no cover
    anysqlite = None  # type: ignore

try:
    import redis.asyncio as redis
except ImportError:  # pragma: no cover
    redis = None  # type: ignore

from .._files import AsyncFileManager
from .._serializers import BaseSerializer, JSONSerializer, Metadata
from .._synchronization import AsyncLock
from .._utils import cache_key, ensure_cache_dir, float_seconds_to_int_milliseconds, hashed_key, strip_scheme

__all__ = (
    "AsyncBaseStorage",
    "AsyncFileStorage",
    "AsyncRedisStorage",
    "AsyncSQLiteStorage",
    "AsyncInMemoryStorage",
    "AsyncS3Storage",
)


class AsyncBaseStorage:
    """
    The two operations a transport needs from a cache backend.

    `get` returns an independent copy of the response stored for the
    request's URL, or None. `put` stores a response under the URL of the
    request that produced it, overwriting any previous entry.
    """

    def __init__(self, serializer: tp.Optional[BaseSerializer] = None) -> None:
        self._serializer = serializer or JSONSerializer()

    async def get(self, request: httpx.Request) -> tp.Optional[httpx.Response]:
        raise NotImplementedError()

    async def put(self, response: httpx.Response) -> None:
        raise NotImplementedError()

    async def aclose(self) -> None:
        raise NotImplementedError()

    def _dump(self, key: str, response: httpx.Response) -> tp.Union[str, bytes]:
        metadata = Metadata(cache_key=key, created_at=datetime.datetime.now(datetime.timezone.utc))
        return self._serializer.dumps(response=response, metadata=metadata)

    def _load(self, data: tp.Union[str, bytes]) -> httpx.Response:
        response, metadata = self._serializer.loads(data)
        response.extensions["cache_metadata"] = metadata
        return response


class AsyncInMemoryStorage(AsyncBaseStorage):
    """
    A simple in-memory storage.

    Entries are kept serialized so every lookup returns a fresh copy.

    :param serializer: Serializer capable of serializing and de-serializing http responses, defaults to None
    :type serializer: tp.Optional[BaseSerializer], optional
    :param capacity: The maximum number of responses to keep, the oldest writes are evicted first,
        defaults to None (unbounded)
    :type capacity: tp.Optional[int], optional
    """

    def __init__(self, serializer: tp.Optional[BaseSerializer] = None, capacity: tp.Optional[int] = None) -> None:
        super().__init__(serializer)

        if capacity is not None and capacity <= 0:
            raise ValueError("Capacity must be positive")

        self._capacity = capacity
        self._entries: tp.Dict[str, tp.Union[str, bytes]] = {}
        self._lock = AsyncLock()

    async def get(self, request: httpx.Request) -> tp.Optional[httpx.Response]:
        async with self._lock:
            data = self._entries.get(cache_key(request.url))
        if data is None:
            return None
        return self._load(data)

    async def put(self, response: httpx.Response) -> None:
        key = cache_key(response.request.url)
        data = self._dump(key, response)

        async with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = data
            if self._capacity is not None and len(self._entries) > self._capacity:
                del self._entries[next(iter(self._entries))]

    def keys(self) -> tp.List[str]:
        return sorted(self._entries)

    async def aclose(self) -> None:  # pragma: no cover
        return


class AsyncFileStorage(AsyncBaseStorage):
    """
    A simple file storage, one file per URL.

    :param serializer: Serializer capable of serializing and de-serializing http responses, defaults to None
    :type serializer: tp.Optional[BaseSerializer], optional
    :param base_path: A storage base path where the responses should be saved, defaults to None
    :type base_path: tp.Optional[Path], optional
    """

    def __init__(self, serializer: tp.Optional[BaseSerializer] = None, base_path: tp.Optional[Path] = None) -> None:
        super().__init__(serializer)

        self._base_path = ensure_cache_dir(base_path)
        self._file_manager = AsyncFileManager(is_binary=self._serializer.is_binary)

    def _path(self, key: str) -> str:
        return str(self._base_path / hashed_key(key))

    async def get(self, request: httpx.Request) -> tp.Optional[httpx.Response]:
        data = await self._file_manager.read_from(self._path(cache_key(request.url)))
        if not data:
            return None
        return self._load(data)

    async def put(self, response: httpx.Response) -> None:
        key = cache_key(response.request.url)
        await self._file_manager.write_to(self._path(key), self._dump(key, response))

    async def aclose(self) -> None:  # pragma: no cover
        return


class AsyncSQLiteStorage(AsyncBaseStorage):
    """
    A simple sqlite storage.

    :param serializer: Serializer capable of serializing and de-serializing http responses, defaults to None
    :type serializer: tp.Optional[BaseSerializer], optional
    :param connection: A connection for sqlite, defaults to None
    :type connection: tp.Optional[anysqlite.Connection], optional
    """

    def __init__(
        self,
        serializer: tp.Optional[BaseSerializer] = None,
        connection: tp.Optional[anysqlite.Connection] = None,
    ) -> None:
        if anysqlite is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `etagtransport` installed with the `sqlite` extension as shown.\n"
                "```pip install etagtransport[sqlite]```"
            )
        super().__init__(serializer)

        self._connection: tp.Optional[anysqlite.Connection] = connection or None
        self._setup_lock = AsyncLock()
        self._setup_completed: bool = False
        self._lock = AsyncLock()

    async def _setup(self) -> None:
        async with self._setup_lock:
            if not self._setup_completed:
                if not self._connection:  # pragma: no cover
                    self._connection = await anysqlite.connect(".etagtransport.sqlite", check_same_thread=False)
                await self._connection.execute(
                    "CREATE TABLE IF NOT EXISTS cache(key TEXT PRIMARY KEY, data BLOB, date_created REAL)"
                )
                await self._connection.commit()
                self._setup_completed = True

    async def get(self, request: httpx.Request) -> tp.Optional[httpx.Response]:
        await self._setup()
        assert self._connection

        async with self._lock:
            cursor = await self._connection.execute("SELECT data FROM cache WHERE key = ?", [cache_key(request.url)])
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._load(row[0])

    async def put(self, response: httpx.Response) -> None:
        await self._setup()
        assert self._connection

        key = cache_key(response.request.url)
        data = self._dump(key, response)
        created_at = datetime.datetime.now(datetime.timezone.utc).timestamp()

        async with self._lock:
            await self._connection.execute(
                "INSERT OR REPLACE INTO cache(key, data, date_created) VALUES(?, ?, ?)", [key, data, created_at]
            )
            await self._connection.commit()

    async def aclose(self) -> None:  # pragma: no cover
        if self._connection is not None:
            await self._connection.close()


class AsyncRedisStorage(AsyncBaseStorage):
    """
    A simple redis storage.

    :param serializer: Serializer capable of serializing and de-serializing http responses, defaults to None
    :type serializer: tp.Optional[BaseSerializer], optional
    :param client: A client for redis, defaults to None
    :type client: tp.Optional["redis.Redis"], optional
    :param ttl: How many seconds redis keeps an entry, defaults to None (forever)
    :type ttl: tp.Optional[tp.Union[int, float]], optional
    """

    def __init__(
        self,
        serializer: tp.Optional[BaseSerializer] = None,
        client: tp.Optional[redis.Redis] = None,  # type: ignore
        ttl: tp.Optional[tp.Union[int, float]] = None,
    ) -> None:
        if redis is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `etagtransport` installed with the `redis` extension as shown.\n"
                "```pip install etagtransport[redis]```"
            )
        super().__init__(serializer)

        if client is None:  # pragma: no cover
            self._client = redis.Redis()  # type: ignore
        else:
            self._client = client
        self._ttl = ttl

    async def get(self, request: httpx.Request) -> tp.Optional[httpx.Response]:
        data = await self._client.get(strip_scheme(cache_key(request.url)))
        if data is None:
            return None
        return self._load(data)

    async def put(self, response: httpx.Response) -> None:
        key = cache_key(response.request.url)
        px = float_seconds_to_int_milliseconds(self._ttl) if self._ttl is not None else None
        await self._client.set(strip_scheme(key), self._dump(key, response), px=px)

    async def aclose(self) -> None:  # pragma: no cover
        await self._client.aclose()


class AsyncS3Storage(AsyncBaseStorage):
    """
    AWS S3 storage.

    :param bucket_name: The name of the bucket to store the responses in
    :type bucket_name: str
    :param serializer: Serializer capable of serializing and de-serializing http responses, defaults to None
    :type serializer: tp.Optional[BaseSerializer], optional
    :param prefix: Key prefix of every stored object, defaults to ""
    :type prefix: str, optional
    :param client: A client for S3, defaults to None
    :type client: tp.Optional[tp.Any], optional
    """

    def __init__(
        self,
        bucket_name: str,
        serializer: tp.Optional[BaseSerializer] = None,
        prefix: str = "",
        client: tp.Optional[tp.Any] = None,
    ) -> None:
        if boto3 is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `etagtransport` installed with the `s3` extension as shown.\n"
                "```pip install etagtransport[s3]```"
            )
        super().__init__(serializer)

        self._bucket_name = bucket_name
        client = client or boto3.client("s3")
        self._s3_manager = AsyncS3Manager(
            client=client,
            bucket_name=bucket_name,
            prefix=prefix,
            is_binary=self._serializer.is_binary,
        )

    async def get(self, request: httpx.Request) -> tp.Optional[httpx.Response]:
        data = await self._s3_manager.read_from(strip_scheme(cache_key(request.url)))
        if data is None:
            return None
        return self._load(data)

    async def put(self, response: httpx.Response) -> None:
        key = cache_key(response.request.url)
        await self._s3_manager.write_to(strip_scheme(key), self._dump(key, response))

    async def aclose(self) -> None:  # pragma: no cover
        return
