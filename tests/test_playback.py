"""Tests for the playback coordinator, its queue and observers."""

import asyncio

import pytest

from soundraw_cli.automation.player import MediaPlayer
from soundraw_cli.core.observers import ObserverRegistry
from soundraw_cli.core.playback import PlaybackCoordinator, PlaybackState
from soundraw_cli.core.task_queue import SerialTaskQueue
from soundraw_cli.exceptions import AutomationError, DownloadError
from soundraw_cli.models.sample import Sample
from soundraw_cli.storage.cache import FileCache

from .fakes import FakeBridge, FakeDownloader

SAMPLE_A = Sample(id="a", name="Sample A", sample="https://cdn.example/a.m4a", bpm=90)
SAMPLE_B = Sample(id="b", name="Sample B", sample="https://cdn.example/b.m4a")
BODIES = {SAMPLE_A.sample: b"aaaa", SAMPLE_B.sample: b"bbbb"}


def _coordinator(tmp_path, bridge, bodies=BODIES, delay=0.0):
    cache = FileCache(FakeDownloader(dict(bodies), delay=delay), scratch_dir=tmp_path)
    return PlaybackCoordinator(cache, MediaPlayer(bridge))


def _assert_consistent(coordinator: PlaybackCoordinator):
    assert (coordinator.temp_path is None) == (coordinator.current_sample_id is None)


class TestPlay:
    def test_play_starts_player_with_cached_file(self, tmp_path, fake_bridge):
        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)
            await coordinator.play(SAMPLE_A)
            return coordinator

        coordinator = asyncio.run(scenario())
        assert coordinator.state is PlaybackState.PLAYING
        assert coordinator.current_sample_id == "a"
        assert coordinator.is_playing("a")
        assert coordinator.temp_path.read_bytes() == b"aaaa"
        assert fake_bridge.events == [f"open:{coordinator.temp_path}"]
        assert "set looping of theMovie to true" in fake_bridge.scripts[0]
        _assert_consistent(coordinator)

    def test_play_b_after_a_leaves_only_b(self, tmp_path, fake_bridge):
        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)
            await coordinator.play(SAMPLE_A)
            a_path = coordinator.temp_path
            await coordinator.play(SAMPLE_B)
            return coordinator, a_path

        coordinator, a_path = asyncio.run(scenario())
        assert coordinator.current_sample_id == "b"
        assert not a_path.exists()
        assert coordinator.temp_path.exists()
        assert fake_bridge.events == [
            f"open:{a_path}",
            "close",
            f"open:{coordinator.temp_path}",
        ]

    def test_rapid_requests_never_interleave(self, tmp_path, fake_bridge):
        """play(A) and play(B) issued together: B starts only after A's stop."""

        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge, delay=0.02)
            await asyncio.gather(coordinator.play(SAMPLE_A), coordinator.play(SAMPLE_B))
            return coordinator

        coordinator = asyncio.run(scenario())
        events = fake_bridge.events
        assert len(events) == 3
        assert events[0].startswith("open:") and "Sample A" in events[0]
        assert events[1] == "close"
        assert events[2] == f"open:{coordinator.temp_path}"
        assert coordinator.current_sample_id == "b"
        assert [p.name for p in tmp_path.iterdir()] == [coordinator.temp_path.name]

    def test_player_failure_resets_to_idle(self, tmp_path):
        bridge = FakeBridge(fail_on=("open POSIX file",))

        async def scenario():
            coordinator = _coordinator(tmp_path, bridge)
            with pytest.raises(AutomationError):
                await coordinator.play(SAMPLE_A)
            return coordinator

        coordinator = asyncio.run(scenario())
        assert coordinator.state is PlaybackState.IDLE
        assert coordinator.current_sample_id is None
        assert coordinator.temp_path is None
        assert list(tmp_path.iterdir()) == []

    def test_download_failure_propagates(self, tmp_path, fake_bridge):
        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge, bodies={})
            with pytest.raises(DownloadError):
                await coordinator.play(SAMPLE_A)
            return coordinator

        coordinator = asyncio.run(scenario())
        assert coordinator.state is PlaybackState.IDLE
        assert fake_bridge.scripts == []

    def test_failure_does_not_block_later_requests(self, tmp_path, fake_bridge):
        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge, bodies={SAMPLE_B.sample: b"bbbb"})
            results = await asyncio.gather(
                coordinator.play(SAMPLE_A),
                coordinator.play(SAMPLE_B),
                return_exceptions=True,
            )
            return coordinator, results

        coordinator, results = asyncio.run(scenario())
        assert isinstance(results[0], DownloadError)
        assert results[1] is None
        assert coordinator.current_sample_id == "b"

    def test_toggle(self, tmp_path, fake_bridge):
        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)
            await coordinator.toggle(SAMPLE_A)
            playing = coordinator.current_sample_id
            await coordinator.toggle(SAMPLE_A)
            return coordinator, playing

        coordinator, playing = asyncio.run(scenario())
        assert playing == "a"
        assert coordinator.current_sample_id is None


class TestStop:
    def test_stop_when_idle_does_nothing(self, tmp_path, fake_bridge):
        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)
            await coordinator.stop()
            await coordinator.stop()

        asyncio.run(scenario())
        assert fake_bridge.scripts == []

    def test_stop_twice_calls_player_once(self, tmp_path, fake_bridge):
        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)
            await coordinator.play(SAMPLE_A)
            path = coordinator.temp_path
            await coordinator.stop()
            await coordinator.stop()
            return coordinator, path

        coordinator, path = asyncio.run(scenario())
        assert fake_bridge.events == [f"open:{path}", "close"]
        assert coordinator.state is PlaybackState.IDLE
        assert not path.exists()
        _assert_consistent(coordinator)

    def test_stop_failure_is_swallowed(self, tmp_path):
        bridge = FakeBridge(fail_on=("close front document",))

        async def scenario():
            coordinator = _coordinator(tmp_path, bridge)
            await coordinator.play(SAMPLE_A)
            path = coordinator.temp_path
            await coordinator.stop()
            return coordinator, path

        coordinator, path = asyncio.run(scenario())
        assert coordinator.state is PlaybackState.IDLE
        assert coordinator.current_sample_id is None
        assert not path.exists()


class TestObservers:
    def test_subscriber_gets_current_state_and_transitions(self, tmp_path, fake_bridge):
        seen = []

        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)

            def observe(sample_id):
                _assert_consistent(coordinator)
                seen.append(sample_id)

            unsubscribe = coordinator.subscribe(observe)
            await coordinator.play(SAMPLE_A)
            await coordinator.stop()
            unsubscribe()
            await coordinator.play(SAMPLE_B)

        asyncio.run(scenario())
        assert seen[0] is None
        assert "a" in seen
        assert seen[-1] is None
        assert "b" not in seen

    def test_late_subscriber_sees_playing_sample(self, tmp_path, fake_bridge):
        seen = []

        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)
            await coordinator.play(SAMPLE_A)
            coordinator.subscribe(seen.append)

        asyncio.run(scenario())
        assert seen == ["a"]

    def test_failing_observer_does_not_break_others(self):
        registry = ObserverRegistry(0)
        seen = []

        def broken(value):
            raise RuntimeError("observer bug")

        registry.subscribe(broken)
        registry.subscribe(seen.append)
        registry.publish(1)
        assert seen == [0, 1]


class TestTeardown:
    def test_aclose_stops_and_releases_observers(self, tmp_path, fake_bridge):
        seen = []

        async def scenario():
            coordinator = _coordinator(tmp_path, fake_bridge)
            coordinator.subscribe(seen.append)
            await coordinator.play(SAMPLE_A)
            path = coordinator.temp_path
            await coordinator.aclose()
            await coordinator.aclose()
            return coordinator, path

        coordinator, path = asyncio.run(scenario())
        assert fake_bridge.events[-1] == "close"
        assert not path.exists()
        assert coordinator.current_sample_id is None
        assert seen[-1] is None

    def test_play_after_close_is_rejected(self, tmp_path, fake_bridge):
        async def scenario():
            async with _coordinator(tmp_path, fake_bridge) as coordinator:
                pass
            with pytest.raises(RuntimeError):
                await coordinator.play(SAMPLE_A)

        asyncio.run(scenario())


class TestSerialTaskQueue:
    def test_runs_in_submission_order(self):
        order = []

        async def job(name, delay):
            order.append(f"start {name}")
            await asyncio.sleep(delay)
            order.append(f"end {name}")
            return name

        async def scenario():
            queue = SerialTaskQueue()
            results = await asyncio.gather(
                queue.submit(lambda: job("first", 0.03)),
                queue.submit(lambda: job("second", 0.0)),
            )
            await queue.close()
            return results

        assert asyncio.run(scenario()) == ["first", "second"]
        assert order == ["start first", "end first", "start second", "end second"]

    def test_failed_operation_only_fails_its_caller(self):
        async def boom():
            raise ValueError("nope")

        async def ok():
            return 42

        async def scenario():
            queue = SerialTaskQueue()
            results = await asyncio.gather(
                queue.submit(boom), queue.submit(ok), return_exceptions=True
            )
            pending = queue.pending
            await queue.close()
            return results, pending

        results, pending = asyncio.run(scenario())
        assert isinstance(results[0], ValueError)
        assert results[1] == 42
        assert pending == 0
