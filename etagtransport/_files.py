from __future__ import annotations

import os
import tempfile
import typing as tp

from anyio import to_thread


def _atomic_write(path: str, data: tp.Union[bytes, str], is_binary: bool) -> None:
    directory = os.path.dirname(path) or "."
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb" if is_binary else "wt", encoding=None if is_binary else "utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        os.unlink(tmp_path)
        raise


def _read(path: str, is_binary: bool) -> tp.Optional[tp.Union[bytes, str]]:
    try:
        with open(path, "rb" if is_binary else "rt", encoding=None if is_binary else "utf-8") as f:
            return tp.cast(tp.Union[bytes, str], f.read())
    except FileNotFoundError:
        return None


class FileManager:
    """
    Reads and writes whole cache files.

    Writes go to a temporary file that replaces the target, so a concurrent
    reader sees either the old or the new entry, never a torn one.
    """

    def __init__(self, is_binary: bool) -> None:
        self.is_binary = is_binary

    def write_to(self, path: str, data: tp.Union[bytes, str]) -> None:
        _atomic_write(path, data, self.is_binary)

    def read_from(self, path: str) -> tp.Optional[tp.Union[bytes, str]]:
        return _read(path, self.is_binary)


class AsyncFileManager:
    def __init__(self, is_binary: bool) -> None:
        self.is_binary = is_binary

    async def write_to(self, path: str, data: tp.Union[bytes, str]) -> None:
        await to_thread.run_sync(_atomic_write, path, data, self.is_binary)

    async def read_from(self, path: str) -> tp.Optional[tp.Union[bytes, str]]:
        return await to_thread.run_sync(_read, path, self.is_binary)
