from __future__ import annotations

import typing as tp

if tp.TYPE_CHECKING:  # pragma: no cover
    import httpx

__all__ = ("CacheError", "StorageError", "StorageGetError", "StoragePutError", "BodyError")


class CacheError(Exception): ...


class StorageError(CacheError): ...


class StorageGetError(StorageError): ...


class StoragePutError(StorageError):
    def __init__(self, message: str, response: tp.Optional[httpx.Response] = None) -> None:
        super().__init__(message)
        self.response = response


class BodyError(CacheError): ...
