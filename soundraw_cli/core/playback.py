"""
Coordinates sample previews so that at most one sample plays at a time.

Every play and stop request goes through a single FIFO queue, so rapid
requests (select A, then immediately B) can never interleave their player
commands: B starts only after A has been fully stopped and its temp file
removed.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from soundraw_cli.automation.player import MediaPlayer
from soundraw_cli.exceptions import AutomationError
from soundraw_cli.models.sample import Sample
from soundraw_cli.storage.cache import FileCache

from .observers import ObserverRegistry
from .task_queue import SerialTaskQueue

log = logging.getLogger(__name__)


class PlaybackState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    PLAYING = "playing"
    STOPPING = "stopping"


@dataclass(frozen=True)
class PlaybackSession:
    sample_id: Optional[str]
    temp_path: Optional[Path]


class PlaybackCoordinator:
    """
    Owns the single playback session of the process.

    Observers registered with ``subscribe`` receive the active sample id (or
    None) synchronously on every state transition and once on subscription.
    """

    def __init__(self, cache: FileCache, player: MediaPlayer):
        self.cache = cache
        self.player = player
        self._state = PlaybackState.IDLE
        self._sample_id: Optional[str] = None
        self._temp_path: Optional[Path] = None
        self._queue = SerialTaskQueue("playback")
        self._observers: ObserverRegistry[Optional[str]] = ObserverRegistry(None)
        self._closed = False

    async def __aenter__(self) -> "PlaybackCoordinator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def current_sample_id(self) -> Optional[str]:
        return self._sample_id

    @property
    def temp_path(self) -> Optional[Path]:
        return self._temp_path

    @property
    def session(self) -> PlaybackSession:
        return PlaybackSession(self._sample_id, self._temp_path)

    def is_playing(self, sample_id: str) -> bool:
        return self._sample_id == sample_id

    def subscribe(self, callback: Callable[[Optional[str]], None]) -> Callable[[], None]:
        """Registers an observer; returns the function that unregisters it."""
        return self._observers.subscribe(callback)

    def _transition(
        self,
        state: PlaybackState,
        sample_id: Optional[str] = None,
        temp_path: Optional[Path] = None,
    ) -> None:
        previous = self._sample_id
        self._state = state
        self._sample_id = sample_id
        self._temp_path = temp_path
        if state is PlaybackState.PLAYING:
            log.debug(f"Playback state: playing sample_id={sample_id}, temp_path={temp_path}")
        elif state is PlaybackState.IDLE and previous is not None:
            log.debug(f"Playback state: stopped (was playing sample_id={previous})")
        self._observers.publish(sample_id)

    async def play(self, sample: Sample) -> None:
        """
        Stops whatever is playing, then fetches and plays ``sample`` on loop.

        Raises:
            The error from fetching the file or starting the player, after the
            session has been reset to idle.
        """
        if self._closed:
            raise RuntimeError("PlaybackCoordinator is closed.")
        log.debug(f"Play requested: sample_id={sample.id}, url={sample.sample}")
        await self._queue.submit(lambda: self._play(sample))

    async def stop(self) -> None:
        """Stops playback. A no-op when nothing is playing or queued."""
        if self._state is PlaybackState.IDLE and self._queue.pending == 0:
            log.debug("Stop requested: no audio currently playing")
            return
        await self._queue.submit(self._stop)

    async def toggle(self, sample: Sample) -> None:
        if self.is_playing(sample.id):
            await self.stop()
        else:
            await self.play(sample)

    async def _play(self, sample: Sample) -> None:
        if self._sample_id is not None:
            log.debug(
                f"Stopping current playback (sample_id={self._sample_id}) "
                "before starting a new one"
            )
        await self._stop()

        self._transition(PlaybackState.STARTING)
        temp_path: Optional[Path] = None
        try:
            cached = await self.cache.get_or_fetch(
                sample.sample, self.cache.scratch_dir, sample.name
            )
            temp_path = cached.path
            log.debug(f"File ready for playback: {temp_path}")
            await self.player.play(temp_path)
        except Exception as e:
            log.debug(f"Playback failed: sample_id={sample.id} - {e}")
            await asyncio.to_thread(_delete_file, temp_path)
            self._transition(PlaybackState.IDLE)
            raise

        self._transition(PlaybackState.PLAYING, sample.id, temp_path)
        log.debug(f"Playback started: sample_id={sample.id}")

    async def _stop(self) -> None:
        if self._sample_id is None:
            return

        sample_id, temp_path = self._sample_id, self._temp_path
        self._transition(PlaybackState.STOPPING, sample_id, temp_path)
        try:
            await self.player.stop()
        except AutomationError as e:
            log.warning(f"Failed to stop {self.player.app_name}: {e}")
        finally:
            await asyncio.to_thread(_delete_file, temp_path)
            self._transition(PlaybackState.IDLE)
            log.debug(f"Stop completed: sample_id={sample_id}")

    async def aclose(self) -> None:
        """
        Stops active playback, removes any residual temp file and drops all
        observers. Safe to call more than once.
        """
        if self._closed:
            return
        log.debug(f"Closing playback coordinator ({len(self._observers)} observers)")
        try:
            await self.stop()
        finally:
            self._closed = True
            await self._queue.close()
            if self._temp_path is not None:
                await asyncio.to_thread(_delete_file, self._temp_path)
            if self._sample_id is not None or self._state is not PlaybackState.IDLE:
                self._transition(PlaybackState.IDLE)
            self._observers.clear()


def _delete_file(path: Optional[Path]) -> None:
    if path is None:
        return
    try:
        path.unlink()
        log.debug(f"Temp file deleted: {path}")
    except FileNotFoundError:
        log.debug(f"Temp file does not exist: {path}")
    except OSError as e:
        log.debug(f"Failed to delete temp file: {path} - {e}")
