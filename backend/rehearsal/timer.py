"""
Countdown state machine for an interview session.

The functions take the SessionState for the duration of one call and never
keep it. ``remaining_seconds`` moves only through ``tick``, ``reset_timer`` and
the idle-duration sync in ``set_duration``.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

from rehearsal import config

if TYPE_CHECKING:
    from rehearsal.models import SessionState

LOG = logging.getLogger("rehearsal.timer")


class TimerPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"


def clamp_minutes(minutes: Optional[int]) -> int:
    try:
        value = int(minutes)
    except (TypeError, ValueError):
        value = config.DEFAULT_DURATION_MINUTES
    return max(1, min(config.MAX_DURATION_MINUTES, value))


def timer_phase(state: "SessionState") -> TimerPhase:
    if state.running:
        return TimerPhase.RUNNING
    if state.remaining_seconds <= 0:
        return TimerPhase.EXPIRED
    return TimerPhase.IDLE


def start_timer(state: "SessionState") -> bool:
    """Returns True when the timer actually transitioned to running."""
    if state.running or state.remaining_seconds <= 0:
        return False
    state.running = True
    return True


def pause_timer(state: "SessionState") -> bool:
    if not state.running:
        return False
    state.running = False
    return True


def tick(state: "SessionState") -> TimerPhase:
    if not state.running:
        return timer_phase(state)
    state.remaining_seconds = max(0, state.remaining_seconds - 1)
    if state.remaining_seconds == 0:
        state.running = False
        LOG.info("Timer expired")
    return timer_phase(state)


def reset_timer(state: "SessionState", minutes: Optional[int] = None) -> None:
    if minutes is None:
        minutes = state.pending_duration_minutes
    if minutes is not None:
        state.duration_minutes = clamp_minutes(minutes)
    state.pending_duration_minutes = None
    state.running = False
    state.remaining_seconds = max(1, state.duration_minutes) * 60


def set_duration(state: "SessionState", minutes: Optional[int]) -> None:
    """Apply a new configured length without rewinding a timer that has already run.

    An untouched idle timer follows the new duration. A started timer keeps its
    remaining time; if that no longer fits the shorter duration, the change is
    held until the next reset.
    """
    target = clamp_minutes(minutes)
    untouched = not state.running and state.remaining_seconds == state.duration_minutes * 60
    if untouched:
        state.duration_minutes = target
        state.remaining_seconds = target * 60
        state.pending_duration_minutes = None
    elif state.remaining_seconds <= target * 60:
        state.duration_minutes = target
        state.pending_duration_minutes = None
    else:
        state.pending_duration_minutes = target


def format_clock(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def percent_remaining(state: "SessionState") -> float:
    total = max(1, state.duration_minutes) * 60
    return round(state.remaining_seconds / total * 100, 1)


def is_low_time(state: "SessionState") -> bool:
    return 0 < state.remaining_seconds < config.LOW_TIME_SECONDS


class TimerTicker:
    """Owns the one-second interval task.

    ``on_tick`` runs once per interval and returns False to stop the loop (the
    session uses this when the timer is no longer running). Use as an async
    context manager, or call ``stop`` on every exit path.
    """

    def __init__(self, on_tick: Callable[[], Union[bool, Awaitable[bool]]], interval: Optional[float] = None) -> None:
        self._on_tick = on_tick
        self.interval = config.TIMER_TICK_SECONDS if interval is None else interval
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            keep_going = self._on_tick()
            if asyncio.iscoroutine(keep_going):
                keep_going = await keep_going
            if not keep_going:
                return

    async def stop(self) -> None:
        task = self._task
        if task is None or task is asyncio.current_task():
            # Inside on_tick the loop exits on its own return value.
            return
        self._task = None
        if task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "TimerTicker":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
