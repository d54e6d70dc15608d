"""Unit tests for services/backup_scheduler.py."""

import asyncio
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from app.models.settings import BackupFrequency
from app.services.backup_scheduler import CRON_SCHEDULES, BackupScheduler, next_run_time


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestNextRunTime:
    @pytest.mark.parametrize(
        ("frequency", "now", "expected"),
        [
            # Hourly: next top of the hour
            ("hourly", _utc(2024, 1, 1, 10, 15), _utc(2024, 1, 1, 11)),
            ("hourly", _utc(2024, 1, 1, 10), _utc(2024, 1, 1, 11)),
            ("hourly", _utc(2024, 12, 31, 23, 59), _utc(2025, 1, 1, 0)),
            # Daily: 02:00
            ("daily", _utc(2024, 1, 1, 1, 30), _utc(2024, 1, 1, 2)),
            ("daily", _utc(2024, 1, 1, 2), _utc(2024, 1, 2, 2)),
            ("daily", _utc(2024, 1, 31, 23), _utc(2024, 2, 1, 2)),
            # Weekly: Sunday 02:00 (2024-01-07 is a Sunday)
            ("weekly", _utc(2024, 1, 3, 12), _utc(2024, 1, 7, 2)),
            ("weekly", _utc(2024, 1, 7, 1), _utc(2024, 1, 7, 2)),
            ("weekly", _utc(2024, 1, 7, 2), _utc(2024, 1, 14, 2)),
            # Monthly: 1st at 02:00
            ("monthly", _utc(2024, 1, 1, 1), _utc(2024, 1, 1, 2)),
            ("monthly", _utc(2024, 1, 1, 2), _utc(2024, 2, 1, 2)),
            ("monthly", _utc(2024, 1, 15), _utc(2024, 2, 1, 2)),
            ("monthly", _utc(2024, 12, 15), _utc(2025, 1, 1, 2)),
        ],
    )
    def test_schedule(self, frequency, now, expected):
        assert next_run_time(frequency, now) == expected

    @pytest.mark.parametrize("frequency", list(BackupFrequency))
    def test_strictly_after_now(self, frequency):
        now = _utc(2024, 5, 19, 2)
        assert next_run_time(frequency, now) > now

    def test_non_utc_input_is_normalised(self):
        # 03:30 at +02:00 is 01:30 UTC
        now = datetime(2024, 1, 1, 3, 30, tzinfo=timezone(timedelta(hours=2)))
        assert next_run_time("daily", now) == _utc(2024, 1, 1, 2)

    def test_naive_input_is_treated_as_utc(self):
        assert next_run_time("hourly", datetime(2024, 1, 1, 10, 15)) == _utc(2024, 1, 1, 11)

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValueError):
            next_run_time("fortnightly", _utc(2024, 1, 1))

    def test_every_frequency_has_a_cron_expression(self):
        assert set(CRON_SCHEDULES) == set(BackupFrequency)

    @pytest.mark.parametrize("frequency", list(BackupFrequency))
    def test_run_times_match_cron_expression(self, frequency):
        minute, hour, day, _month, weekday = CRON_SCHEDULES[frequency].split()
        run = _utc(2024, 2, 27, 13, 45)

        for _ in range(6):
            run = next_run_time(frequency, run)
            assert run.second == 0
            assert str(run.minute) == minute
            assert hour == "*" or str(run.hour) == hour
            assert day == "*" or str(run.day) == day
            # cron counts Sunday as 0
            assert weekday == "*" or str(run.isoweekday() % 7) == weekday


class BlockingSleep:
    """Records requested delays; the first returns at once, later ones block."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if len(self.delays) > 1:
            await asyncio.Event().wait()


class TestScheduleLifecycle:
    async def test_schedule_starts_single_timer(self):
        scheduler = BackupScheduler(run_backup=AsyncMock(), sleep=BlockingSleep())
        assert scheduler.is_running is False

        scheduler.schedule("daily")

        assert scheduler.is_running is True
        assert scheduler.active_frequency == BackupFrequency.DAILY
        await scheduler.shutdown()

    async def test_rescheduling_replaces_previous_timer(self):
        scheduler = BackupScheduler(run_backup=AsyncMock(), sleep=BlockingSleep())
        scheduler.schedule("daily")
        first = scheduler._task

        scheduler.schedule("weekly")
        await asyncio.sleep(0)

        assert first.cancelled()
        assert scheduler.active_frequency == BackupFrequency.WEEKLY
        assert scheduler.is_running is True
        await scheduler.shutdown()

    async def test_stop_clears_state(self):
        scheduler = BackupScheduler(run_backup=AsyncMock(), sleep=BlockingSleep())
        scheduler.schedule("hourly")

        scheduler.stop()

        assert scheduler.is_running is False
        assert scheduler.active_frequency is None

    async def test_stop_without_timer_is_noop(self):
        scheduler = BackupScheduler(run_backup=AsyncMock())
        scheduler.stop()
        await scheduler.shutdown()
        assert scheduler.is_running is False

    async def test_loop_sleeps_until_next_run_then_backs_up(self):
        fired = asyncio.Event()
        run_backup = AsyncMock(side_effect=lambda kind: fired.set())
        sleep = BlockingSleep()
        scheduler = BackupScheduler(
            run_backup=run_backup,
            clock=lambda: _utc(2024, 1, 1, 1, 30),
            sleep=sleep,
        )

        scheduler.schedule("daily")
        await asyncio.wait_for(fired.wait(), timeout=1)

        run_backup.assert_awaited_once_with("scheduled")
        assert sleep.delays[0] == 1800.0
        await scheduler.shutdown()


class TestRunOnce:
    async def test_runs_scheduled_backup(self):
        run_backup = AsyncMock()
        scheduler = BackupScheduler(run_backup=run_backup, is_enabled=AsyncMock(return_value=True))

        await scheduler.run_once()

        run_backup.assert_awaited_once_with("scheduled")

    async def test_skips_when_backup_service_disabled(self):
        run_backup = AsyncMock()
        scheduler = BackupScheduler(
            run_backup=run_backup, is_enabled=AsyncMock(return_value=False)
        )

        await scheduler.run_once()

        run_backup.assert_not_awaited()

    async def test_failure_is_logged_not_raised(self, caplog):
        scheduler = BackupScheduler(run_backup=AsyncMock(side_effect=RuntimeError("disk full")))

        await scheduler.run_once()

        assert "Scheduled backup failed" in caplog.text

    async def test_toggle_lookup_failure_is_logged(self, caplog):
        run_backup = AsyncMock()
        scheduler = BackupScheduler(
            run_backup=run_backup, is_enabled=AsyncMock(side_effect=RuntimeError("db down"))
        )

        await scheduler.run_once()

        run_backup.assert_not_awaited()
        assert "Scheduled backup failed" in caplog.text
