"""Tests for the content-addressed file cache and downloader."""

import asyncio

import aiohttp
import pytest
from aiohttp import web

from soundraw_cli.exceptions import DownloadError
from soundraw_cli.media.downloader import Downloader
from soundraw_cli.models.sample import Sample
from soundraw_cli.storage.cache import FileCache
from soundraw_cli.utils.path import resolve_path

from .fakes import FakeDownloader

AUDIO = b"\x00\x00\x00\x20ftypM4A " + b"x" * 2048


def _audio_app(hits: list[str], delay: float = 0.0) -> web.Application:
    async def audio(request: web.Request) -> web.Response:
        hits.append(request.path)
        if delay:
            await asyncio.sleep(delay)
        return web.Response(body=AUDIO, content_type="audio/mp4")

    async def raw(request: web.Request) -> web.Response:
        hits.append(request.path)
        return web.Response(body=b"ID3mp3data", content_type="audio/mpeg")

    async def empty(request: web.Request) -> web.Response:
        hits.append(request.path)
        return web.Response(body=b"", content_type="audio/mp4")

    application = web.Application()
    application.router.add_get("/samples/{name}.m4a", audio)
    application.router.add_get("/raw/{name}", raw)
    application.router.add_get("/empty.m4a", empty)
    return application


class TestGetOrFetch:
    def test_second_request_served_from_disk(self, serve, tmp_path):
        """Downloading then requesting again issues one request and identical bytes."""
        hits: list[str] = []

        async def scenario():
            async with serve(_audio_app(hits)) as server, aiohttp.ClientSession() as session:
                cache = FileCache(Downloader(session), scratch_dir=tmp_path)
                url = str(server.make_url("/samples/a.m4a"))
                first = await cache.get_or_fetch(url, None, "Cool Beat!")
                second = await cache.get_or_fetch(url, None, "Cool Beat!")
                return cache, first, second

        cache, first, second = asyncio.run(scenario())
        assert hits == ["/samples/a.m4a"]
        assert first.buffer == second.buffer == AUDIO
        assert first.path == second.path
        assert first.path.read_bytes() == AUDIO
        assert first.content_type.startswith("audio/mp4")
        assert second.content_type == "audio/mp4"
        assert (cache.hits, cache.misses) == (1, 1)

    def test_zero_length_file_is_refetched(self, serve, tmp_path):
        hits: list[str] = []

        async def scenario():
            async with serve(_audio_app(hits)) as server, aiohttp.ClientSession() as session:
                url = str(server.make_url("/samples/b.m4a"))
                path = resolve_path(url, "Beat", base_dir=tmp_path)
                path.write_bytes(b"")
                cache = FileCache(Downloader(session), scratch_dir=tmp_path)
                return path, await cache.get_or_fetch(url, tmp_path, "Beat")

        path, result = asyncio.run(scenario())
        assert hits == ["/samples/b.m4a"]
        assert result.path == path
        assert path.read_bytes() == AUDIO

    def test_http_error_raises_and_writes_nothing(self, serve, tmp_path):
        hits: list[str] = []

        async def scenario():
            async with serve(_audio_app(hits)) as server, aiohttp.ClientSession() as session:
                cache = FileCache(Downloader(session), scratch_dir=tmp_path)
                await cache.get_or_fetch(str(server.make_url("/missing.m4a")), None, "Gone")

        with pytest.raises(DownloadError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.status == 404
        assert exc_info.value.reason == "Not Found"
        assert list(tmp_path.iterdir()) == []

    def test_empty_body_is_a_download_error(self, serve, tmp_path):
        hits: list[str] = []

        async def scenario():
            async with serve(_audio_app(hits)) as server, aiohttp.ClientSession() as session:
                cache = FileCache(Downloader(session), scratch_dir=tmp_path)
                await cache.get_or_fetch(str(server.make_url("/empty.m4a")), None, "Empty")

        with pytest.raises(DownloadError):
            asyncio.run(scenario())
        assert list(tmp_path.iterdir()) == []

    def test_concurrent_requests_share_one_fetch(self, serve, tmp_path):
        hits: list[str] = []

        async def scenario():
            async with serve(_audio_app(hits, delay=0.05)) as server, aiohttp.ClientSession() as session:
                cache = FileCache(Downloader(session), scratch_dir=tmp_path)
                url = str(server.make_url("/samples/c.m4a"))
                return await asyncio.gather(
                    *(cache.get_or_fetch(url, None, "Same") for _ in range(5))
                )

        results = asyncio.run(scenario())
        assert hits == ["/samples/c.m4a"]
        assert len({r.path for r in results}) == 1
        assert all(r.buffer == AUDIO for r in results)

    def test_failed_fetch_is_not_remembered(self, tmp_path):
        downloader = FakeDownloader({})

        async def scenario():
            cache = FileCache(downloader, scratch_dir=tmp_path)
            for _ in range(2):
                with pytest.raises(DownloadError):
                    await cache.get_or_fetch("https://x/a.m4a", None, "A")

        asyncio.run(scenario())
        assert downloader.fetches == ["https://x/a.m4a", "https://x/a.m4a"]

    def test_no_partial_files_left_behind(self, serve, tmp_path):
        hits: list[str] = []

        async def scenario():
            async with serve(_audio_app(hits)) as server, aiohttp.ClientSession() as session:
                cache = FileCache(Downloader(session), scratch_dir=tmp_path)
                await cache.get_or_fetch(str(server.make_url("/samples/d.m4a")), None, "D")

        asyncio.run(scenario())
        names = [p.name for p in tmp_path.iterdir()]
        assert len(names) == 1
        assert ".part-" not in names[0]


class TestExportAndPrepare:
    def test_export_uses_content_type_when_url_has_no_extension(self, serve, tmp_path):
        hits: list[str] = []
        scratch, export = tmp_path / "scratch", tmp_path / "export"

        async def scenario():
            async with serve(_audio_app(hits)) as server, aiohttp.ClientSession() as session:
                cache = FileCache(Downloader(session), scratch_dir=scratch, export_dir=export)
                sample = Sample(id=1, name="Raw Loop", sample=str(server.make_url("/raw/xyz")))
                return await cache.export(sample)

        exported = asyncio.run(scenario())
        assert exported.path.parent == export
        assert exported.path.suffix == ".mp3"
        assert exported.path.read_bytes() == b"ID3mp3data"
        assert hits == ["/raw/xyz"]

    def test_export_goes_to_export_dir(self, serve, tmp_path):
        hits: list[str] = []
        scratch, export = tmp_path / "scratch", tmp_path / "export"

        async def scenario():
            async with serve(_audio_app(hits)) as server, aiohttp.ClientSession() as session:
                cache = FileCache(Downloader(session), scratch_dir=scratch, export_dir=export)
                sample = Sample(id="s1", name="Beat", sample=str(server.make_url("/samples/e.m4a")))
                return await cache.export(sample)

        exported = asyncio.run(scenario())
        assert exported.path.parent == export
        assert exported.path.suffix == ".m4a"
        assert not scratch.exists() or not any(scratch.iterdir())

    def test_unwritable_export_dir_is_a_download_error(self, tmp_path):
        export = tmp_path / "export"
        export.write_text("not a directory")
        downloader = FakeDownloader({"https://x/a.m4a": AUDIO})
        cache = FileCache(downloader, scratch_dir=tmp_path / "scratch", export_dir=export)
        sample = Sample(id="s1", name="Beat", sample="https://x/a.m4a")

        with pytest.raises(DownloadError, match="Failed to save Beat-"):
            asyncio.run(cache.export(sample))
        assert export.read_text() == "not a directory"
        assert cache.cached_path(sample.sample, sample.name, export) is None

    def test_prepare_skips_failures(self, tmp_path):
        downloader = FakeDownloader({"https://x/ok.m4a": AUDIO})
        samples = [
            Sample(id="ok", name="Ok", sample="https://x/ok.m4a"),
            Sample(id="bad", name="Bad", sample="https://x/bad.m4a"),
        ]

        paths = asyncio.run(FileCache(downloader, scratch_dir=tmp_path).prepare(samples))
        assert list(paths) == ["ok"]
        assert paths["ok"].read_bytes() == AUDIO

    def test_clear_removes_only_cached_samples(self, tmp_path):
        downloader = FakeDownloader({"https://x/a.m4a": AUDIO})
        cache = FileCache(downloader, scratch_dir=tmp_path)
        asyncio.run(cache.get_or_fetch("https://x/a.m4a", None, "A"))
        (tmp_path / "keep.txt").write_text("mine")

        assert cache.clear() == 1
        assert [p.name for p in tmp_path.iterdir()] == ["keep.txt"]
        assert cache.cached_path("https://x/a.m4a", "A") is None
