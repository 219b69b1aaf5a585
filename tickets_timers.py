"""Timer handles for ticket reminders and garbage collection"""
import asyncio
import time
import traceback
from typing import Awaitable, Callable, Optional

from discord.ext import tasks

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle:
    """A one-shot or repeating callback running on a ``tasks.Loop``.

    The first run happens ``delay`` seconds after start, then every ``delay``
    seconds until ``count`` runs are done. Cancelling stops future runs only,
    a callback that is already running is left to finish.
    """
    def __init__(self, delay: float, callback: TimerCallback, count: Optional[int] = None):
        self._delay = delay
        self._callback = callback
        self._running = False
        self.cancelled = False
        self._loop = tasks.loop(seconds=delay, count=count)(self._tick)
        self._loop.before_loop(self._wait_first)

    def start(self) -> "TimerHandle":
        self._loop.start()
        return self

    async def _wait_first(self):
        await asyncio.sleep(self._delay)

    async def _tick(self):
        if self.cancelled:
            return
        self._running = True
        try:
            await self._callback()
        except Exception as e:
            print(f"❌ Timer callback failed: {e}")
            traceback.print_exc()
        finally:
            self._running = False

    def cancel(self):
        if self.cancelled:
            return
        self.cancelled = True
        if self._running:
            # let the current run finish, no further ones
            self._loop.stop()
        else:
            self._loop.cancel()


class TimerService:
    """Schedules coroutine callbacks on the running event loop.

    Delays are in seconds. ``now()`` is monotonic so it can be compared with
    room creation and activity timestamps.
    """

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        return TimerHandle(delay, callback, count=1).start()

    def call_every(self, interval: float, callback: TimerCallback) -> TimerHandle:
        return TimerHandle(interval, callback).start()


def minutes(value: float) -> float:
    """Convert minutes into timer seconds"""
    return value * 60
