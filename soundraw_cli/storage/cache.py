"""
A content-addressed file cache for sample audio. Files are named by the
sanitized sample name plus a hash of the source URL, written once, and
served from disk on every later request for the same key.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from soundraw_cli.media.downloader import Downloader
from soundraw_cli.models.sample import Sample
from soundraw_cli.utils.path import (
    SCRATCH_DIR,
    content_type_for_path,
    extension_for_content_type,
    extension_from_url,
    is_resolver_filename,
    resolve_path,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedFile:
    path: Path
    buffer: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.buffer)


class FileCache:
    """
    Returns cached sample files or downloads them, coalescing concurrent
    requests for the same path into a single fetch.
    """

    def __init__(
        self,
        downloader: Downloader | None = None,
        scratch_dir: Path | None = None,
        export_dir: Path | None = None,
    ):
        """
        Args:
            downloader: The HTTP fetcher used on a cache miss.
            scratch_dir: Directory for playback, preview and drag preparation.
            export_dir: Persistent directory for explicit exports.
        """
        self.downloader = downloader or Downloader()
        self.scratch_dir = Path(scratch_dir) if scratch_dir else SCRATCH_DIR
        self.export_dir = Path(export_dir) if export_dir else None
        self._in_flight: dict[Path, asyncio.Task] = {}
        self.hits = 0
        self.misses = 0

    async def get_or_fetch(
        self,
        url: str,
        base_dir: Path | None,
        name: str,
        extension: str | None = None,
    ) -> CachedFile:
        """
        Returns the file for (url, name) from ``base_dir``, downloading it on a miss.

        A zero-length file is treated as missing and is fetched again.
        """
        path = resolve_path(url, name, extension, base_dir or self.scratch_dir)

        task = self._in_flight.get(path)
        if task is None:
            task = asyncio.create_task(self._load_or_download(url, path))
            self._in_flight[path] = task
            task.add_done_callback(lambda _t, p=path: self._in_flight.pop(p, None))
        else:
            log.debug(f"Joining in-flight download for {path.name}")

        return await asyncio.shield(task)

    def cached_path(
        self, url: str, name: str, base_dir: Path | None = None
    ) -> Path | None:
        """Returns the expected path if a non-empty cached copy exists."""
        path = resolve_path(url, name, None, base_dir or self.scratch_dir)
        return path if _nonempty_file(path) else None

    async def _load_or_download(self, url: str, path: Path) -> CachedFile:
        if await asyncio.to_thread(_nonempty_file, path):
            async with aiofiles.open(path, "rb") as f:
                buffer = await f.read()
            if buffer:
                self.hits += 1
                log.debug(f"Cache hit: {path.name} ({len(buffer)} bytes)")
                return CachedFile(path, buffer, content_type_for_path(path))
        elif await asyncio.to_thread(path.exists):
            log.debug(f"Cached file is empty, re-downloading: {path.name}")

        self.misses += 1
        log.debug(f"Cache miss: {path.name}")
        result = await self.downloader.fetch(url)
        await self.downloader.write_atomic(path, result.buffer)
        log.debug(f"Saved {path.name} ({len(result.buffer)} bytes)")
        return CachedFile(path, result.buffer, result.content_type)

    async def export(self, sample: Sample) -> CachedFile:
        """
        Writes a sample into the persistent export directory. When the URL has no
        usable extension, the one matching the response content type is used.
        """
        if self.export_dir is None:
            raise ValueError("No export directory configured.")

        if extension_from_url(sample.sample) is not None:
            return await self.get_or_fetch(sample.sample, self.export_dir, sample.name)

        scratch = await self.get_or_fetch(sample.sample, self.scratch_dir, sample.name)
        extension = extension_for_content_type(scratch.content_type)
        if extension is None or extension == scratch.path.suffix.lstrip("."):
            return await self.get_or_fetch(sample.sample, self.export_dir, sample.name)

        path = resolve_path(sample.sample, sample.name, extension, self.export_dir)
        if not await asyncio.to_thread(_nonempty_file, path):
            await self.downloader.write_atomic(path, scratch.buffer)
        return CachedFile(path, scratch.buffer, scratch.content_type)

    async def prepare(self, samples: Iterable[Sample]) -> dict[str, Path]:
        """
        Warms the scratch directory for every sample so files are ready for preview.

        Returns a mapping of sample id to path for the samples that succeeded;
        failures are logged and skipped.
        """
        samples = list(samples)
        if not samples:
            return {}

        log.debug(f"Preparing {len(samples)} files")
        results = await asyncio.gather(
            *(self.get_or_fetch(s.sample, self.scratch_dir, s.name) for s in samples),
            return_exceptions=True,
        )

        paths: dict[str, Path] = {}
        for sample, result in zip(samples, results, strict=True):
            if isinstance(result, BaseException):
                log.debug(f"Failed to prepare file for {sample.name}: {result}")
                continue
            paths[sample.id] = result.path
        log.debug(f"Prepared {len(paths)}/{len(samples)} files")
        return paths

    def clear(self, base_dir: Path | None = None) -> int:
        """Removes cached sample files from ``base_dir``; returns how many were removed."""
        directory = base_dir or self.scratch_dir
        removed = 0
        if not directory.is_dir():
            return removed
        for path in directory.iterdir():
            if path.is_file() and is_resolver_filename(path.name):
                try:
                    path.unlink()
                    removed += 1
                except OSError as e:
                    log.warning(f"Failed to remove cached file {path.name}: {e}")
        log.info(f"Removed {removed} cached files from {directory}")
        return removed


def _nonempty_file(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False
