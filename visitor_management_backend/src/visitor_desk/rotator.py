"""
Slide rotation for kiosk displays.

A SlideRotator cycles an index over the active slides. `tick()` is the pure
step; `start()`/`stop()` drive it from a single asyncio timer task. One
rotator serves one display and must be stopped when the display goes away.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

SlideCallback = Callable[[int, Any], Awaitable[None]]


# PUBLIC_INTERFACE
class SlideRotator:
    """
    Index cycler over an ordered slide list.

    Args:
        slides: Active slides in display order.
        interval: Seconds between ticks; a new value restarts the wait for the
            next tick.
        on_change: Coroutine called with (index, slide) after each timer tick.
    """

    def __init__(self, slides: Sequence[Any] = (), interval: float = 10, on_change: Optional[SlideCallback] = None):
        self._slides = list(slides)
        self.index = 0
        self._retimed: Optional[asyncio.Event] = None
        self.interval = interval
        self._on_change = on_change
        self._task: Optional[asyncio.Task] = None

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float):
        if value <= 0:
            raise ValueError("interval must be positive")
        changed = value != getattr(self, "_interval", None)
        self._interval = value
        if changed and self._retimed is not None:
            self._retimed.set()

    @property
    def current(self):
        """The slide on screen, or None when there is nothing to show."""
        if not self._slides:
            return None
        return self._slides[self.index]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self):
        """
        Advance to the next slide, wrapping after the last one.
        Returns the new current slide; with no slides nothing moves and None
        is returned.
        """
        if not self._slides:
            return None
        self.index = (self.index + 1) % len(self._slides)
        return self._slides[self.index]

    def replace_slides(self, slides: Sequence[Any]):
        """Swap in a refreshed slide list, keeping the index when it still fits."""
        self._slides = list(slides)
        if self.index >= len(self._slides):
            self.index = 0

    def start(self) -> asyncio.Task:
        """Start the timer; a rotator never runs more than one."""
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self):
        """Cancel the timer and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as ex:
            logger.warning(f"Slide rotation ended with an error: {ex}")

    async def _run(self):
        self._retimed = asyncio.Event()
        try:
            while True:
                self._retimed.clear()
                try:
                    await asyncio.wait_for(self._retimed.wait(), timeout=self.interval)
                    # new interval: restart the wait for the pending tick
                    continue
                except asyncio.TimeoutError:
                    pass
                slide = self.tick()
                if slide is not None and self._on_change is not None:
                    await self._on_change(self.index, slide)
        finally:
            self._retimed = None
