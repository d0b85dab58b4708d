"""Key-value storage using fsspec for filesystem abstraction.

Backs durable client-side state (the offline payment queue) with local
files or cloud storage (S3, GCS) through fsspec's protocol detection. Each
key is one file under the base URL, rewritten in full on every set.
"""

import asyncio
import os
from typing import Protocol
from urllib.parse import urlparse

import fsspec
import structlog

logger = structlog.get_logger()


def get_filesystem(url: str) -> fsspec.AbstractFileSystem:
    """Get filesystem for URL, auto-detecting protocol.

    Args:
        url: Storage URL (file://, s3://, gs://, or local path)

    Returns:
        Filesystem instance for the protocol

    Examples:
        get_filesystem("s3://bucket/queue") -> S3FileSystem
        get_filesystem("/var/lib/sigma") -> LocalFileSystem
        get_filesystem("file:///var/lib/sigma") -> LocalFileSystem
    """
    parsed = urlparse(url)

    if not parsed.scheme or parsed.scheme == "file":
        return fsspec.filesystem("file")

    return fsspec.filesystem(parsed.scheme)


def is_local(url: str) -> bool:
    return urlparse(url).scheme in ("", "file")


def build_full_path(url: str, path: str) -> str:
    """Build full path from base URL and relative path.

    Args:
        url: Base storage URL
        path: Relative path within storage

    Returns:
        Full path for filesystem operations
    """
    parsed = urlparse(url)

    if not parsed.scheme or parsed.scheme == "file":
        base = parsed.path if parsed.path else url
        if path:
            return os.path.join(base, path)
        return base

    # Cloud storage - combine netloc and path
    base = f"{parsed.netloc}{parsed.path}" if parsed.netloc else parsed.path
    if path:
        return f"{base.rstrip('/')}/{path.lstrip('/')}"
    return base


class KeyValueStore(Protocol):
    """Durable string storage keyed by name."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class FileKeyValueStore:
    """Key-value store with one JSON file per key.

    Writes go to a temporary sibling first and are then moved over the
    target, so a crash mid-write leaves the previous value intact.

    Args:
        url: Base storage URL (local path, file://, s3://, gs://)
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._fs = get_filesystem(url)

    def path_for(self, key: str) -> str:
        return build_full_path(self.url, f"{key}.json")

    async def get(self, key: str) -> str | None:
        path = self.path_for(key)
        return await asyncio.to_thread(_read_text_sync, self._fs, path)

    async def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        if is_local(self.url):
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        await asyncio.to_thread(_replace_text_sync, self._fs, path, value)
        logger.debug("key_value_written", key=key, path=path, size=len(value))

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        await asyncio.to_thread(_remove_sync, self._fs, path)


class MemoryKeyValueStore:
    """In-process key-value store for tests and single-run tools."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


def _read_text_sync(fs: fsspec.AbstractFileSystem, path: str) -> str | None:
    """Read file contents synchronously; None when the file is absent."""
    try:
        with fs.open(path, "rb") as f:
            return f.read().decode("utf-8")
    except FileNotFoundError:
        return None


def _replace_text_sync(fs: fsspec.AbstractFileSystem, path: str, value: str) -> None:
    """Write to a temporary sibling and move it over the target."""
    tmp_path = f"{path}.tmp"
    with fs.open(tmp_path, "wb") as f:
        f.write(value.encode("utf-8"))
    fs.mv(tmp_path, path)


def _remove_sync(fs: fsspec.AbstractFileSystem, path: str) -> None:
    if fs.exists(path):
        fs.rm(path)
