"""
Footer ad rotation.

A small tick-driven state machine. One tick is one second in production; the
driver is `run()`, tests call `tick()` directly.

    idle ──load(ads)──> armed ──delay──> showing ──countdown/dismiss/contact──> hidden
                                            ^                                     │
                                            └───────────────delay─────────────────┘

Exposure counters belong to the backend. The engine only asks it to bump the
counter once per display and keeps its own snapshot untouched, so an ad that
was exhausted when loaded stays skipped until the next load. The bump runs as
a background task; a slow or failing backend never holds up the countdown.
"""
import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Set

from classifieds.database.connection import get_pool
from classifieds.models.listing import FooterListing

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

INITIAL_DELAY = 5
DISPLAY_WINDOW = 30

ExposureReporter = Callable[[str], Awaitable[None]]
ContactHandler = Callable[[FooterListing], Awaitable[None]]
EventSink = Callable[[str, dict], Awaitable[None]]


class RotationState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    SHOWING = "showing"
    HIDDEN = "hidden"


async def increment_exposures(ad_id: str) -> None:
    """Backend RPC; the function itself refuses to go past max_exposures"""
    async with get_pool().acquire() as conn:
        await conn.execute("SELECT increment_exposures($1::uuid)", ad_id)


class FooterAdRotation:
    def __init__(
        self,
        report_exposure: ExposureReporter = increment_exposures,
        on_contact: Optional[ContactHandler] = None,
        on_event: Optional[EventSink] = None,
        initial_delay: int = INITIAL_DELAY,
        display_window: int = DISPLAY_WINDOW,
    ):
        self._report_exposure = report_exposure
        self._on_contact = on_contact
        self._on_event = on_event
        self.initial_delay = initial_delay
        self.display_window = display_window

        self.ads: List[FooterListing] = []
        self.state = RotationState.IDLE
        self.current: Optional[FooterListing] = None
        self.seconds_left = 0
        self._delay_left = 0
        self._next_index = 0
        self._pending_reports: Set[asyncio.Task] = set()

    def load(self, ads: List[FooterListing]) -> None:
        """Replace the rotation list. Both timers start over."""
        self.ads = list(ads)
        self.current = None
        self.seconds_left = 0
        self._next_index = 0
        if not self.ads:
            self.state = RotationState.IDLE
            self._delay_left = 0
            return
        self.state = RotationState.ARMED
        self._delay_left = self.initial_delay

    async def tick(self) -> None:
        if self.state in (RotationState.ARMED, RotationState.HIDDEN):
            self._delay_left -= 1
            if self._delay_left <= 0:
                await self._show_next()
        elif self.state is RotationState.SHOWING:
            self.seconds_left -= 1
            if self.seconds_left <= 0:
                await self._hide()
            else:
                await self._emit("tick", {"seconds_left": self.seconds_left})

    async def dismiss(self) -> None:
        if self.state is RotationState.SHOWING:
            await self._hide()

    async def contact(self) -> None:
        """Close the ad and hand it to the contact flow"""
        if self.state is not RotationState.SHOWING or self.current is None:
            return
        listing = self.current
        await self._hide()
        await self._emit("contact", {"ad_id": listing.id})
        if self._on_contact is not None:
            await self._on_contact(listing)

    async def run(self, tick_seconds: float = 1.0) -> None:
        """Tick forever; cancel the task to stop"""
        while True:
            await asyncio.sleep(tick_seconds)
            await self.tick()

    def _next_with_budget(self) -> Optional[FooterListing]:
        # Round robin from the pointer; exhausted ads are stepped over
        for _ in range(len(self.ads)):
            candidate = self.ads[self._next_index]
            self._next_index = (self._next_index + 1) % len(self.ads)
            if candidate.has_exposure_budget():
                return candidate
        return None

    async def _show_next(self) -> None:
        listing = self._next_with_budget()
        if listing is None:
            self.state = RotationState.IDLE
            self.current = None
            logger.info("Every footer ad is out of exposures, rotation idle")
            await self._emit("idle", {})
            return

        self.state = RotationState.SHOWING
        self.current = listing
        self.seconds_left = self.display_window
        await self._emit("show", {"ad_id": listing.id, "seconds_left": self.seconds_left})

        # The countdown does not wait on the backend
        task = asyncio.create_task(
            self._report_exposure(listing.id), name=f"exposure-{listing.id}"
        )
        self._pending_reports.add(task)
        task.add_done_callback(self._report_done)

    def _report_done(self, task: asyncio.Task) -> None:
        self._pending_reports.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Error reporting exposure ({task.get_name()}): {error}", exc_info=error)

    async def wait_for_reports(self) -> None:
        """Let in-flight exposure reports finish; their errors are already logged"""
        if self._pending_reports:
            await asyncio.gather(*self._pending_reports, return_exceptions=True)

    async def _hide(self) -> None:
        hidden = self.current
        self.state = RotationState.HIDDEN
        self.current = None
        self.seconds_left = 0
        self._delay_left = self.initial_delay
        await self._emit("hide", {"ad_id": hidden.id if hidden else None})

    async def _emit(self, event: str, payload: dict) -> None:
        if self._on_event is not None:
            await self._on_event(event, payload)
