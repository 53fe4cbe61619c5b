"""Tick source backed by a Qt timer, for sessions hosted in a Qt event loop."""

from __future__ import annotations

from PySide6.QtCore import QTimer

from quizmaster.core.clock import TickCallback


class QtClock:
    """Delivers ticks from a repeating ``QTimer`` on the Qt event loop.

    Ticks of an older arm are dropped by generation, so a tick that Qt had
    already queued when ``disarm()`` ran never reaches the callback.
    """

    def __init__(self, interval_ms: int = 1000) -> None:
        if interval_ms <= 0:
            raise ValueError("Tick interval must be positive.")
        self._timer = QTimer()
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)
        self._on_tick: TickCallback | None = None
        self._remaining: int = 0
        self._generation: int = 0
        self._armed_generation: int = -1

    @property
    def is_armed(self) -> bool:
        return self._on_tick is not None

    def arm(self, duration_seconds: int, on_tick: TickCallback) -> None:
        self.disarm()
        if duration_seconds <= 0:
            return
        self._remaining = duration_seconds
        self._on_tick = on_tick
        self._armed_generation = self._generation
        self._timer.start()

    def disarm(self) -> None:
        self._generation += 1
        self._timer.stop()
        self._on_tick = None
        self._remaining = 0

    def _on_timeout(self) -> None:
        if self._armed_generation != self._generation or self._on_tick is None:
            return
        on_tick = self._on_tick
        self._remaining -= 1
        if self._remaining <= 0:
            self.disarm()
        on_tick()
