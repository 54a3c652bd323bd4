from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from portfolio_metrics.common.time_utils import to_utc, utc_now
from portfolio_metrics.integration.event_bus import EventBus
from portfolio_metrics.integration.events import ScheduleRunPlanned
from portfolio_metrics.periods.domain.models import ScheduledRun, ScheduleState
from portfolio_metrics.periods.reporting import calculate_reporting_period, format_reporting_period
from portfolio_metrics.periods.schedule import (
    calculate_next_run_after_completion,
    calculate_reminder_dates,
    is_schedule_due,
)


logger = logging.getLogger(__name__)


def plan_run(schedule: ScheduleState, now: datetime | None = None) -> ScheduledRun:
    """Compute everything a schedule run needs, without side effects.

    The run reports on the previous complete period, requests fall due
    due_days_offset days after the run, and the following run is one
    cadence unit later.
    """
    run_at = to_utc(now) if now is not None else utc_now()
    period = calculate_reporting_period(schedule.cadence, run_at)
    due_at = run_at + timedelta(days=schedule.due_days_offset)

    reminders: tuple[datetime, ...] = ()
    if schedule.reminder_enabled:
        reminders = tuple(
            calculate_reminder_dates(due_at, schedule.reminder_days_before_due, now=run_at)
        )

    return ScheduledRun(
        schedule_id=schedule.schedule_id,
        run_at=run_at,
        period=period,
        period_label=format_reporting_period(schedule.cadence, period.period_start),
        due_date=due_at.date(),
        reminder_dates=reminders,
        next_run_at=calculate_next_run_after_completion(
            schedule.cadence,
            schedule.day_of_month,
            run_at,
        ),
    )


@dataclass
class SchedulePlanner:
    """Plans runs for every active schedule that is due."""

    bus: EventBus | None = None

    def due_schedules(
        self,
        schedules: Iterable[ScheduleState],
        now: datetime,
    ) -> list[ScheduleState]:
        return [s for s in schedules if s.is_active and is_schedule_due(s.next_run_at, now)]

    def plan_due(
        self,
        schedules: Iterable[ScheduleState],
        now: datetime | None = None,
    ) -> list[ScheduledRun]:
        current = to_utc(now) if now is not None else utc_now()
        due = self.due_schedules(schedules, current)
        if not due:
            logger.info("No schedules due at %s", current.isoformat())
            return []

        runs: list[ScheduledRun] = []
        for schedule in due:
            run = plan_run(schedule, current)
            runs.append(run)
            logger.info(
                "Planned run for schedule %s: %s, due %s, next run %s",
                schedule.schedule_id,
                run.period_label,
                run.due_date.isoformat(),
                run.next_run_at.isoformat(),
            )
            if self.bus is not None:
                failures = self.bus.publish(
                    ScheduleRunPlanned(
                        occurred_at=current,
                        schedule_id=run.schedule_id,
                        cadence=schedule.cadence.value,
                        period_start=run.period.period_start,
                        period_end=run.period.period_end,
                        period_label=run.period_label,
                        due_date=run.due_date,
                        next_run_at=run.next_run_at,
                    )
                )
                if failures:
                    logger.warning(
                        "Run for schedule %s planned but %d event handler(s) failed",
                        schedule.schedule_id,
                        len(failures),
                    )
        return runs
