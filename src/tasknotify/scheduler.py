"""
Daily trigger for the overdue sweep.

An asyncio loop that sleeps until the next configured wall-clock time,
runs one sweep in a worker thread and logs its summary. Runs are not
coordinated across processes; two schedulers against one store will both
notify. To stop the loop, cancel the task running it.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from .context import AppContext
from .models import utcnow
from .sweep import SweepResult, run_overdue_sweep

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def next_run_at(now: datetime, at: time, tz: ZoneInfo) -> datetime:
    """
    Return the next instant strictly after `now` whose wall-clock time in `tz` is `at`.

    The result is timezone-aware in `tz`.
    """
    local_now = now.astimezone(tz)
    candidate = datetime.combine(local_now.date(), at, tzinfo=tz)
    if candidate <= local_now:
        candidate = datetime.combine(local_now.date() + timedelta(days=1), at, tzinfo=tz)
    return candidate


def seconds_until(now: datetime, at: time, tz: ZoneInfo) -> float:
    return max(0.0, (next_run_at(now, at, tz) - now).total_seconds())


async def run_daily_sweeps(
    context: AppContext,
    *,
    clock: Callable[[], datetime] = utcnow,
    on_result: Optional[Callable[[SweepResult], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """
    Run the overdue sweep every day at settings.sweep_daily_at in settings.sweep_timezone.

    A failed run is logged and the loop waits for the next day; it never
    retries the same day.
    """
    settings = context.settings
    tz = ZoneInfo(settings.sweep_timezone)
    at = settings.sweep_daily_at

    while True:
        delay = seconds_until(clock(), at, tz)
        logger.info("Next overdue sweep in %.0fs (%s %s)", delay, at.strftime("%H:%M"), settings.sweep_timezone)
        await sleep(delay)

        try:
            result = await asyncio.to_thread(run_overdue_sweep, context)
        except Exception:
            logger.exception("Scheduled overdue sweep failed")
            continue

        logger.info(
            "Scheduled overdue sweep finished: overdue=%d emailsSent=%d",
            len(result.overdue_tasks),
            result.emails_sent,
        )
        if on_result is not None:
            on_result(result)
