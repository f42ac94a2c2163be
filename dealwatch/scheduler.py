# dealwatch/scheduler.py
"""Coalescing of change bursts into scans, and the page auto-scroller."""
import asyncio
import inspect
from enum import Enum
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .utils import logger


class SchedulerState(str, Enum):
    IDLE = "idle"
    SCAN_PENDING = "scan_pending"


class ChangeScheduler:
    """Runs `on_scan` at most once per loop iteration, however many
    notifications arrive before it gets to run.

    The state flips back to IDLE before `on_scan` is invoked, so a
    notification raised during a plain scan schedules a fresh cycle. While a
    coroutine scan is still in flight, notifications only mark the scheduler
    dirty and exactly one follow-up cycle runs once it finishes.
    """

    def __init__(self, on_scan: Callable[[], object], loop: Optional[asyncio.AbstractEventLoop] = None):
        self.on_scan = on_scan
        self._loop = loop
        self.state = SchedulerState.IDLE
        self.scans_run = 0
        self._handle = None
        self._unsubscribe = None
        self._inflight = None
        self._dirty = False

    @property
    def loop(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def connected(self) -> bool:
        return self._unsubscribe is not None

    @property
    def scanning(self) -> bool:
        return self._inflight is not None

    def notify(self) -> None:
        if self.state is SchedulerState.SCAN_PENDING:
            return
        if self._inflight is not None:
            self._dirty = True
            return
        self.state = SchedulerState.SCAN_PENDING
        self._handle = self.loop.call_soon(self._run)

    def _run(self):
        self._handle = None
        self.state = SchedulerState.IDLE
        self.scans_run += 1
        try:
            result = self.on_scan()
            if inspect.isawaitable(result):
                self._inflight = asyncio.ensure_future(result, loop=self.loop)
                self._inflight.add_done_callback(self._scan_done)
        except Exception as e:
            logger.exception("Scan failed: %s", e)

    def _scan_done(self, task):
        if task is self._inflight:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Scan failed: %s", task.exception())
        if self._dirty:
            self._dirty = False
            self.notify()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._dirty = False
        self.state = SchedulerState.IDLE

    def connect(self, source, container) -> None:
        """Subscribe to a change source; replaces any previous subscription."""
        self.disconnect()
        self._unsubscribe = source.subscribe(container, self.notify)

    def disconnect(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("Change observer disconnected")
        self.cancel()


SCROLL_STEP = 200
BOTTOM_MARGIN = 100

_SCROLL_JS = """
([step, margin]) => {
  window.scrollBy(0, step);
  if ((window.innerHeight + window.scrollY) >= document.body.offsetHeight - margin) {
    window.scrollTo(0, 0);
  }
}
"""


class AutoScroller:
    """Scrolls a live page on an interval so the site keeps rendering listings."""

    def __init__(self, page, interval: float = 1.0, step: int = SCROLL_STEP):
        self.page = page
        self.interval = interval
        self.step = step
        self._scheduler = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    async def tick(self):
        await self.page.evaluate(_SCROLL_JS, [self.step, BOTTOM_MARGIN])

    def start(self):
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(self.tick, "interval", seconds=self.interval,
                                id="auto-scroll", max_instances=1, coalesce=True)
        self._scheduler.start()
        logger.info("Auto scroll started (every %ss)", self.interval)

    def stop(self):
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Auto scroll stopped")

    def toggle(self) -> bool:
        if self.running:
            self.stop()
        else:
            self.start()
        return self.running
