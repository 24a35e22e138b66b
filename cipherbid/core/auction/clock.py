"""
Auction Clock - status and countdown projection.

project() is pure: it maps (auction, now) to the status and the time
remaining until the next boundary. CountdownTicker re-runs it on an
interval for as long as an auction card is displayed, since nothing
notifies us when wall-clock time crosses a boundary.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Union

from cipherbid.core.auction.models import AuctionItem, AuctionStatus
from cipherbid.utils.logger import get_logger

logger = get_logger("clock")

ENDED_LABEL = "Ended"

Clock = Callable[[], datetime]
TickCallback = Callable[["ClockProjection"], Union[None, Awaitable[None]]]


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ClockProjection:
    """Status of an auction at an instant, plus countdown."""
    status: AuctionStatus
    remaining: timedelta
    label: str

    @property
    def prefix(self) -> str:
        """Caption shown before the countdown."""
        if self.status == AuctionStatus.UPCOMING:
            return "Starts in"
        if self.status == AuctionStatus.ACTIVE:
            return "Ends in"
        return ""


def format_remaining(remaining: timedelta) -> str:
    """Render a non-negative duration as '1d 2h 3m 4s' (days only when present)."""
    total = int(remaining.total_seconds())
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    label = f"{hours}h {minutes}m {seconds}s"
    if days:
        label = f"{days}d {label}"
    return label


def project(auction: AuctionItem, now: datetime) -> ClockProjection:
    """
    Project an auction's status and countdown at now.

    remaining counts to start_time while upcoming and to end_time
    otherwise. An ended auction reports zero and the terminal label.
    """
    status = auction.status_at(now)
    if status == AuctionStatus.ENDED:
        return ClockProjection(status=status, remaining=timedelta(0), label=ENDED_LABEL)

    target = auction.start_time if status == AuctionStatus.UPCOMING else auction.end_time
    remaining = target - now
    return ClockProjection(status=status, remaining=remaining, label=format_remaining(remaining))


# =============================================================================
# Countdown Ticker
# =============================================================================


class CountdownTicker:
    """
    Periodic countdown for one displayed auction.

    Calls callback with a fresh projection immediately and then every
    interval seconds until stopped. A failing callback is logged and
    the ticker keeps running. Usable as an async context manager
    so the task never outlives the card that owns it.
    """

    def __init__(
        self,
        auction: AuctionItem,
        callback: TickCallback,
        interval: float = 1.0,
        clock: Optional[Clock] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.auction = auction
        self.callback = callback
        self.interval = interval
        self.clock = clock or utcnow
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._tick_loop())
        logger.debug(f"Countdown started for auction {self.auction.id}")

    async def stop(self) -> None:
        """Cancel the ticker and wait for it to unwind. Idempotent."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"Countdown stopped for auction {self.auction.id} after {self.ticks} ticks")

    async def _tick_loop(self) -> None:
        while True:
            projection = project(self.auction, self.clock())
            self.ticks += 1
            try:
                result = self.callback(projection)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception(f"Countdown callback failed for auction {self.auction.id}")
            await asyncio.sleep(self.interval)

    async def __aenter__(self) -> "CountdownTicker":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
