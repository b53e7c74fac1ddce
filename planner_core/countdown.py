"""
Countdown labels and the periodic timer that keeps them fresh.

``format_countdown`` is pure. ``CountdownTimer`` owns the only background
activity of the dashboard: an asyncio task that re-runs a callback on a fixed
cadence until the consuming view stops it.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import typing as t
from datetime import datetime

logger = logging.getLogger(__name__)

DUE_NOW = "Due now!"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"


def format_countdown(
        target: datetime,
        now: datetime,
        end: t.Optional[datetime] = None
) -> str:
    """Render the time left until ``target``.

    :param target: Due instant of a point item, or start of a ranged item.
    :param now: The evaluation instant.
    :param end: End of a ranged item; None for point items.
    :return: e.g. ``"2d 3h 15m remaining"``, ``"1h 30m remaining"``,
        ``"45m remaining"``, ``"Due now!"``, ``"In Progress"`` or ``"Completed"``.
    """
    remaining = (target - now).total_seconds()
    if remaining <= 0:
        if end is None:
            return DUE_NOW
        return IN_PROGRESS if now <= end else COMPLETED

    total_minutes = int(remaining // 60)
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)

    if days > 0:
        return f"{days}d {hours}h {minutes}m remaining"
    if hours > 0:
        return f"{hours}h {minutes}m remaining"
    return f"{minutes}m remaining"


TickCallback = t.Callable[[], t.Union[None, t.Awaitable[None]]]


class CountdownTimer:
    """Cancellable periodic refresh.

    Use it as an async context manager so the timer is always released when
    the view goes away::

        async with CountdownTimer(60, redraw):
            await view_closed.wait()

    The callback runs once right away and then every ``interval`` seconds. It
    may be a plain function or a coroutine function. A failing callback is
    logged and the timer keeps going.
    """

    def __init__(self, interval: float, on_tick: TickCallback) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._on_tick = on_tick
        self._task: t.Optional[asyncio.Task[None]] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Must be called from a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Countdown timer started (every %ss)", self.interval)

    async def stop(self) -> None:
        """Cancel the timer and wait until it has fully stopped.

        Safe to call more than once. No tick runs after this returns.
        """
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Countdown timer stopped after %d tick(s)", self.ticks)

    async def __aenter__(self) -> "CountdownTimer":
        self.start()
        return self

    async def __aexit__(self, *exc_info: t.Any) -> None:
        await self.stop()

    async def _run(self) -> None:
        while True:
            await self._tick()
            await asyncio.sleep(self.interval)

    async def _tick(self) -> None:
        self.ticks += 1
        try:
            result = self._on_tick()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Countdown refresh failed")
