"""
Handles the low-level downloading of sample files over HTTP and their atomic
persistence to disk.
"""

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import NamedTuple

import aiofiles
import aiohttp

from soundraw_cli.exceptions import DownloadError, NetworkError

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(max_connections: int = 8) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    Only one pool is created for the lifetime of the application run.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_connections * 2,
            limit_per_host=max_connections,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug(f"Created download pool with limit_per_host={max_connections}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class FetchResult(NamedTuple):
    buffer: bytes
    content_type: str


class Downloader:
    """Fetches whole files into memory and writes them with write-then-rename."""

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session
        return await get_connection_pool()

    async def fetch(self, url: str) -> FetchResult:
        """
        Downloads ``url`` and returns its body and content type.

        Raises:
            DownloadError: On a non-success status or an empty body.
            NetworkError: On a transport failure or timeout.
        """
        session = await self._get_session()
        log.debug(f"Fetching {url}")
        try:
            async with session.get(url, allow_redirects=True) as response:
                if response.status >= 400:
                    raise DownloadError(
                        f"Failed to download audio file: {response.status} "
                        f"{response.reason}",
                        status=response.status,
                        reason=response.reason,
                    )
                chunks = []
                async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                    chunks.append(chunk)
                content_type = response.headers.get(
                    "Content-Type", "application/octet-stream"
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Network error while downloading {url}: {e}") from e

        buffer = b"".join(chunks)
        if not buffer:
            raise DownloadError(f"Downloaded file is empty: {url}")
        log.debug(f"Fetched {len(buffer)} bytes ({content_type}) from {url}")
        return FetchResult(buffer, content_type)

    @staticmethod
    async def write_atomic(destination_path: Path, data: bytes) -> None:
        """
        Writes to a sibling temp file, then renames it over the destination so a
        reader never observes a partially written file.

        Raises:
            DownloadError: If the directory or file cannot be written.
        """
        part_path = destination_path.with_name(
            f".{destination_path.name}.part-{uuid.uuid4().hex[:8]}"
        )
        try:
            destination_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(part_path, "wb") as f:
                await f.write(data)
            await asyncio.to_thread(os.replace, part_path, destination_path)
        except OSError as e:
            await asyncio.to_thread(_unlink_quietly, part_path)
            raise DownloadError(f"Failed to save {destination_path.name}: {e}") from e
        except BaseException:
            await asyncio.to_thread(_unlink_quietly, part_path)
            raise


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except (FileNotFoundError, NotADirectoryError):
        pass
