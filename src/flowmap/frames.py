"""Frame clock used for animations and redraw throttling.

Everything that "waits for the next animation frame" goes through a
FrameScheduler, so the engine runs the same under a real event loop and in
deterministic tests.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Callable
from typing import Protocol

FRAME_MS: float = 1000 / 60

FrameCallback = Callable[[float], None]


class FrameScheduler(Protocol):
    """Runs callbacks on the next frame, passing the frame time in ms."""

    def request_frame(self, callback: FrameCallback) -> int: ...

    def cancel_frame(self, handle: int) -> None: ...

    def now(self) -> float: ...


class ManualFrameScheduler:
    """Frames only advance when told to. Used by tests and the CLI."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = start_ms
        self._ids = itertools.count(1)
        self._queue: dict[int, FrameCallback] = {}

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._queue[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._queue.pop(handle, None)

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return len(self._queue)

    def tick(self, ms: float = FRAME_MS) -> None:
        """Advance one frame and run the callbacks queued before it."""
        self._now += ms
        due, self._queue = self._queue, {}
        for callback in due.values():
            callback(self._now)

    def advance(self, ms: float, step: float = FRAME_MS) -> None:
        """Advance ``ms`` milliseconds frame by frame."""
        remaining = ms
        while remaining > 0:
            delta = min(step, remaining)
            self.tick(delta)
            remaining -= delta

    def run_until_idle(self, max_frames: int = 10_000) -> None:
        for _ in range(max_frames):
            if not self._queue:
                return
            self.tick()


class AsyncioFrameScheduler:
    """60 Hz frames on the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._ids = itertools.count(1)
        self._handles: dict[int, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)

        def fire() -> None:
            self._handles.pop(handle, None)
            callback(self.now())

        self._handles[handle] = self._get_loop().call_later(FRAME_MS / 1000, fire)
        return handle

    def cancel_frame(self, handle: int) -> None:
        timer = self._handles.pop(handle, None)
        if timer is not None:
            timer.cancel()

    def now(self) -> float:
        return time.monotonic() * 1000
