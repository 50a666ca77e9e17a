from __future__ import annotations

import typing as tp

from anyio import to_thread
from botocore.exceptions import ClientError

MISSING_OBJECT_CODES = ("NoSuchKey", "404")


class S3Manager:
    def __init__(self, client: tp.Any, bucket_name: str, prefix: str = "", is_binary: bool = False):
        self._client = client
        self._bucket_name = bucket_name
        self._prefix = prefix.strip("/")
        self._is_binary = is_binary

    def object_key(self, key: str) -> str:
        if not self._prefix:
            return key
        return f"{self._prefix}/{key}"

    def write_to(self, key: str, data: tp.Union[bytes, str]) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")

        self._client.put_object(
            Bucket=self._bucket_name,
            Key=self.object_key(key),
            Body=data,
        )

    def read_from(self, key: str) -> tp.Optional[tp.Union[bytes, str]]:
        try:
            response = self._client.get_object(
                Bucket=self._bucket_name,
                Key=self.object_key(key),
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                return None
            raise

        content = response["Body"].read()

        if self._is_binary:  # pragma: no cover
            return tp.cast(bytes, content)

        return tp.cast(str, content.decode("utf-8"))


class AsyncS3Manager:
    def __init__(self, client: tp.Any, bucket_name: str, prefix: str = "", is_binary: bool = False):
        self._sync_manager = S3Manager(client, bucket_name, prefix, is_binary)

    async def write_to(self, key: str, data: tp.Union[bytes, str]) -> None:
        return await to_thread.run_sync(self._sync_manager.write_to, key, data)

    async def read_from(self, key: str) -> tp.Optional[tp.Union[bytes, str]]:
        return await to_thread.run_sync(self._sync_manager.read_from, key)
