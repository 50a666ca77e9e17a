import datetime
import io
import typing as tp
from pathlib import Path

import sqlite3
import httpx
import pytest
from botocore.exceptions import ClientError
from time_machine import travel

from etagtransport import JSONSerializer, PickleSerializer
from etagtransport._sync._storages import (
    FileStorage,
    InMemoryStorage,
    RedisStorage,
    S3Storage,
    SQLiteStorage,
)
from etagtransport._utils import hashed_key

USER_URL = "https://api.github.com/users/x"


def make_response(url: str = USER_URL, content: bytes = b"test") -> httpx.Response:
    return httpx.Response(
        200,
        headers=[(b"ETag", b'"deadbeef"'), (b"X-Varied-Accept", b"application/json")],
        content=content,
        request=httpx.Request("GET", url),
    )


class FakeRedis:
    def __init__(self) -> None:
        self.data: tp.Dict[str, tp.Any] = {}
        self.expirations: tp.Dict[str, tp.Optional[int]] = {}

    def get(self, key: str) -> tp.Any:
        return self.data.get(key)

    def set(self, key: str, value: tp.Any, px: tp.Optional[int] = None) -> None:
        self.data[key] = value
        self.expirations[key] = px

    def close(self) -> None: ...


class FakeS3Client:
    def __init__(self) -> None:
        self.objects: tp.Dict[tp.Tuple[str, str], bytes] = {}

    def put_object(self, Bucket: str, Key: str, Body: bytes) -> None:
        self.objects[(Bucket, Key)] = Body

    def get_object(self, Bucket: str, Key: str) -> tp.Dict[str, tp.Any]:
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "Not found"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}



def test_inmemorystorage():
    storage = InMemoryStorage()

    assert storage.get(httpx.Request("GET", USER_URL)) is None

    storage.put(make_response())
    stored = storage.get(httpx.Request("HEAD", USER_URL))

    assert stored is not None
    assert stored.status_code == 200
    assert stored.headers["ETag"] == '"deadbeef"'
    assert stored.headers["X-Varied-Accept"] == "application/json"
    assert stored.content == b"test"
    assert stored.extensions["cache_metadata"]["cache_key"] == USER_URL



def test_inmemorystorage_returns_independent_copies():
    storage = InMemoryStorage()
    storage.put(make_response())

    first = storage.get(httpx.Request("GET", USER_URL))
    assert first is not None
    first.headers["ETag"] = '"changed"'

    second = storage.get(httpx.Request("GET", USER_URL))
    assert second is not None
    assert second.headers["ETag"] == '"deadbeef"'



def test_inmemorystorage_overwrites():
    storage = InMemoryStorage()

    storage.put(make_response(content=b"first"))
    storage.put(make_response(content=b"second"))

    stored = storage.get(httpx.Request("GET", USER_URL))
    assert stored is not None
    assert stored.content == b"second"
    assert storage.keys() == [USER_URL]



def test_inmemorystorage_capacity():
    storage = InMemoryStorage(capacity=2)

    storage.put(make_response(url="https://api.github.com/users/a"))
    storage.put(make_response(url="https://api.github.com/users/b"))
    storage.put(make_response(url="https://api.github.com/users/a"))
    storage.put(make_response(url="https://api.github.com/users/c"))

    assert storage.keys() == ["https://api.github.com/users/a", "https://api.github.com/users/c"]


def test_inmemorystorage_rejects_invalid_capacity():
    with pytest.raises(ValueError):
        InMemoryStorage(capacity=0)



def test_url_with_query_is_a_distinct_entry():
    storage = InMemoryStorage()

    storage.put(make_response(url=USER_URL + "?page=2"))

    assert storage.get(httpx.Request("GET", USER_URL)) is None
    assert storage.get(httpx.Request("GET", USER_URL + "?page=2")) is not None



@travel(datetime.datetime(2003, 8, 25, 12, tzinfo=datetime.timezone.utc), tick=False)
def test_filestorage(use_temp_dir):
    storage = FileStorage(base_path=Path("cache"))

    assert storage.get(httpx.Request("GET", USER_URL)) is None

    storage.put(make_response())

    assert (Path("cache") / hashed_key(USER_URL)).is_file()
    assert (Path("cache") / ".gitignore").is_file()

    stored = storage.get(httpx.Request("GET", USER_URL))
    assert stored is not None
    assert stored.content == b"test"
    assert stored.extensions["cache_metadata"]["created_at"] == datetime.datetime(
        2003, 8, 25, 12, tzinfo=datetime.timezone.utc
    )



def test_filestorage_with_binary_serializer(use_temp_dir):
    storage = FileStorage(serializer=PickleSerializer())

    storage.put(make_response())
    stored = storage.get(httpx.Request("GET", USER_URL))

    assert (Path(".cache/etagtransport") / hashed_key(USER_URL)).is_file()
    assert stored is not None
    assert stored.content == b"test"



def test_sqlitestorage():
    storage = SQLiteStorage(connection=sqlite3.connect(":memory:"))

    assert storage.get(httpx.Request("GET", USER_URL)) is None

    storage.put(make_response(content=b"first"))
    storage.put(make_response(content=b"second"))

    stored = storage.get(httpx.Request("GET", USER_URL))
    assert stored is not None
    assert stored.content == b"second"
    storage.close()



def test_redisstorage():
    client = FakeRedis()
    storage = RedisStorage(client=client, ttl=1.5)  # type: ignore

    assert storage.get(httpx.Request("GET", USER_URL)) is None

    storage.put(make_response())

    assert list(client.data) == ["api.github.com/users/x"]
    assert client.expirations == {"api.github.com/users/x": 1500}

    stored = storage.get(httpx.Request("GET", USER_URL))
    assert stored is not None
    assert stored.content == b"test"
    storage.close()



def test_s3storage():
    client = FakeS3Client()
    storage = S3Storage(bucket_name="responses", prefix="/cache/", client=client, serializer=JSONSerializer())

    assert storage.get(httpx.Request("GET", USER_URL)) is None

    storage.put(make_response())

    assert list(client.objects) == [("responses", "cache/api.github.com/users/x")]

    stored = storage.get(httpx.Request("GET", USER_URL))
    assert stored is not None
    assert stored.headers["ETag"] == '"deadbeef"'
    assert stored.content == b"test"



def test_s3storage_propagates_other_errors():
    class DeniedS3Client(FakeS3Client):
        def get_object(self, Bucket: str, Key: str) -> tp.Dict[str, tp.Any]:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "Denied"}}, "GetObject")

    storage = S3Storage(bucket_name="responses", client=DeniedS3Client())

    with pytest.raises(ClientError):
        storage.get(httpx.Request("GET", USER_URL))
