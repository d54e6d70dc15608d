"""In-process recurring backup timer.

One asyncio task sleeps until the next run time for the configured
frequency, triggers a scheduled backup, and repeats. Scheduling again
cancels the previous task, so at most one timer is active.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from app.models.settings import BackupFrequency

logger = logging.getLogger(__name__)

# Cron equivalents (UTC). Only logged; next_run_time computes the same instants
CRON_SCHEDULES: dict[BackupFrequency, str] = {
    BackupFrequency.HOURLY: "0 * * * *",
    BackupFrequency.DAILY: "0 2 * * *",
    BackupFrequency.WEEKLY: "0 2 * * 0",  # Sunday 02:00
    BackupFrequency.MONTHLY: "0 2 1 * *",  # 1st of month 02:00
}

_RUN_HOUR = 2
_SUNDAY = 6


def next_run_time(frequency: BackupFrequency | str, now: datetime) -> datetime:
    """First run instant strictly after *now* for *frequency* (UTC)."""
    frequency = BackupFrequency(frequency)
    now = now.astimezone(UTC) if now.tzinfo else now.replace(tzinfo=UTC)
    top_of_hour = now.replace(minute=0, second=0, microsecond=0)

    if frequency == BackupFrequency.HOURLY:
        return top_of_hour + timedelta(hours=1)

    run_today = top_of_hour.replace(hour=_RUN_HOUR)

    if frequency == BackupFrequency.DAILY:
        return run_today if run_today > now else run_today + timedelta(days=1)

    if frequency == BackupFrequency.WEEKLY:
        candidate = run_today + timedelta(days=(_SUNDAY - now.weekday()) % 7)
        return candidate if candidate > now else candidate + timedelta(days=7)

    candidate = run_today.replace(day=1)
    if candidate > now:
        return candidate
    if candidate.month == 12:
        return candidate.replace(year=candidate.year + 1, month=1)
    return candidate.replace(month=candidate.month + 1)


class BackupScheduler:
    """Owns the single recurring backup task."""

    def __init__(
        self,
        run_backup: Callable[[str], Awaitable[Any]],
        is_enabled: Callable[[], Awaitable[bool]] | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._run_backup = run_backup
        self._is_enabled = is_enabled
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self.active_frequency: BackupFrequency | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, frequency: BackupFrequency | str) -> None:
        """Install the timer for *frequency*, replacing any previous one."""
        frequency = BackupFrequency(frequency)
        self.stop()
        logger.info(
            "Scheduling backup with frequency: %s (%s)", frequency, CRON_SCHEDULES[frequency]
        )
        self.active_frequency = frequency
        self._task = asyncio.get_running_loop().create_task(
            self._run_loop(frequency), name=f"backup-scheduler-{frequency}"
        )

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("Backup schedule (%s) cancelled", self.active_frequency)
        self._task = None
        self.active_frequency = None

    async def shutdown(self) -> None:
        """Cancel the timer and wait for the task to finish."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def run_once(self) -> None:
        """One scheduled run; skipped when the backup service is toggled off."""
        try:
            if self._is_enabled is not None and not await self._is_enabled():
                logger.info("Backup service disabled; skipping scheduled backup")
                return
            logger.info("Starting scheduled backup...")
            await self._run_backup("scheduled")
        except Exception:
            logger.exception("Scheduled backup failed")

    async def _run_loop(self, frequency: BackupFrequency) -> None:
        while True:
            now = self._clock()
            target = next_run_time(frequency, now)
            logger.info("Next backup scheduled at %s", target.isoformat())
            await self._sleep(max((target - now).total_seconds(), 0.0))
            await self.run_once()
