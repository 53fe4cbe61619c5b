"""Tick sources that drive the per-question countdown.

A clock knows nothing about quizzes. It is armed with a number of ticks to
deliver and a callback, delivers one tick per interval, and stops by itself
after the last one. Arming again replaces the previous arm. Every arm carries
a generation number; a tick belonging to an older generation is dropped, so
once ``disarm()`` returns no tick of the previous arm can still arrive.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

from quizmaster.constants.quiz_constants import TICK_INTERVAL_SECONDS

TickCallback = Callable[[], None]


class Clock(Protocol):
    @property
    def is_armed(self) -> bool: ...

    def arm(self, duration_seconds: int, on_tick: TickCallback) -> None: ...

    def disarm(self) -> None: ...


class ManualClock:
    """Clock driven explicitly by the caller, for tests and headless drivers."""

    def __init__(self) -> None:
        self._on_tick: TickCallback | None = None
        self._remaining: int = 0
        self.arm_count: int = 0

    @property
    def is_armed(self) -> bool:
        return self._on_tick is not None

    @property
    def remaining_ticks(self) -> int:
        return self._remaining if self.is_armed else 0

    def arm(self, duration_seconds: int, on_tick: TickCallback) -> None:
        self.disarm()
        if duration_seconds <= 0:
            return
        self._remaining = duration_seconds
        self._on_tick = on_tick
        self.arm_count += 1

    def disarm(self) -> None:
        self._on_tick = None
        self._remaining = 0

    def advance(self, ticks: int = 1) -> int:
        """Deliver up to ``ticks`` ticks and return how many were delivered."""
        delivered = 0
        for _ in range(ticks):
            on_tick = self._on_tick
            if on_tick is None:
                break
            self._remaining -= 1
            if self._remaining <= 0:
                self.disarm()
            delivered += 1
            on_tick()
        return delivered


class AsyncioClock:
    """Clock backed by ``loop.call_later`` on an asyncio event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        interval_seconds: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive.")
        self._loop = loop
        self._interval = interval_seconds
        self._handle: asyncio.TimerHandle | None = None
        self._on_tick: TickCallback | None = None
        self._remaining: int = 0
        self._generation: int = 0

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def arm(self, duration_seconds: int, on_tick: TickCallback) -> None:
        self.disarm()
        if duration_seconds <= 0:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._remaining = duration_seconds
        self._on_tick = on_tick
        self._schedule(self._generation)

    def disarm(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._on_tick = None
        self._remaining = 0

    def _schedule(self, generation: int) -> None:
        assert self._loop is not None
        self._handle = self._loop.call_later(self._interval, self._fire, generation)

    def _fire(self, generation: int) -> None:
        if generation != self._generation or self._on_tick is None:
            return
        on_tick = self._on_tick
        self._handle = None
        self._remaining -= 1
        if self._remaining > 0:
            # Scheduled before the callback runs so a disarm inside it cancels the next tick.
            self._schedule(generation)
        else:
            self._on_tick = None
        on_tick()
