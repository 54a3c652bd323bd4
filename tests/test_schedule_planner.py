from __future__ import annotations

import logging
from datetime import date, datetime, timezone

import pytest

from portfolio_metrics.integration.event_bus import InMemoryEventBus
from portfolio_metrics.integration.events import ScheduleRunPlanned
from portfolio_metrics.periods.domain.models import Cadence, ScheduleState
from portfolio_metrics.periods.services.schedule_planner import SchedulePlanner, plan_run


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _quarterly(schedule_id: str = "s1", **kwargs) -> ScheduleState:
    params = dict(
        schedule_id=schedule_id,
        cadence="quarterly",
        day_of_month=1,
        next_run_at=_utc(2025, 4, 1, 6),
    )
    params.update(kwargs)
    return ScheduleState(**params)


def test_plan_run_for_quarterly_schedule() -> None:
    run = plan_run(_quarterly(), _utc(2025, 4, 1, 6))

    assert run.period.period_start == date(2025, 1, 1)
    assert run.period.period_end == date(2025, 3, 31)
    assert run.period_label == "Q1 2025"
    assert run.due_date == date(2025, 4, 15)
    assert run.reminder_dates == (
        _utc(2025, 4, 8, 9),
        _utc(2025, 4, 12, 9),
        _utc(2025, 4, 14, 9),
    )
    assert run.next_run_at == _utc(2025, 7, 1, 6)


def test_reminders_can_be_disabled() -> None:
    run = plan_run(_quarterly(reminder_enabled=False), _utc(2025, 4, 1, 6))
    assert run.reminder_dates == ()


def test_monthly_plan_with_short_due_offset() -> None:
    schedule = ScheduleState(
        schedule_id="m1",
        cadence=Cadence.MONTHLY,
        day_of_month=15,
        next_run_at=_utc(2025, 3, 15, 6),
        due_days_offset=2,
    )
    run = plan_run(schedule, _utc(2025, 3, 15, 6))

    assert run.period_label == "February 2025"
    assert run.due_date == date(2025, 3, 17)
    # The 7-day reminder would fall before the run itself.
    assert run.reminder_dates == (_utc(2025, 3, 16, 9),)
    assert run.next_run_at == _utc(2025, 4, 15, 6)


def test_schedule_state_clamps_and_validates() -> None:
    assert _quarterly(day_of_month=31).day_of_month == 28
    assert _quarterly(day_of_month=0).day_of_month == 1
    assert _quarterly().cadence is Cadence.QUARTERLY
    with pytest.raises(ValueError):
        _quarterly(cadence="weekly")


def test_planner_skips_inactive_and_future_schedules() -> None:
    bus = InMemoryEventBus()
    seen: list[ScheduleRunPlanned] = []
    bus.subscribe(ScheduleRunPlanned, seen.append)

    schedules = [
        _quarterly("due"),
        _quarterly("inactive", is_active=False),
        _quarterly("future", next_run_at=_utc(2025, 7, 1, 6)),
    ]
    runs = SchedulePlanner(bus=bus).plan_due(schedules, now=_utc(2025, 4, 1, 6))

    assert [r.schedule_id for r in runs] == ["due"]
    assert len(seen) == 1
    assert seen[0].schedule_id == "due"
    assert seen[0].cadence == "quarterly"
    assert seen[0].period_label == "Q1 2025"
    assert seen[0].due_date == date(2025, 4, 15)
    assert seen[0].next_run_at == _utc(2025, 7, 1, 6)


def test_planner_with_nothing_due() -> None:
    planner = SchedulePlanner()
    assert planner.plan_due([_quarterly()], now=_utc(2025, 3, 31, 23)) == []


def test_failing_subscriber_does_not_block_planning(caplog) -> None:
    bus = InMemoryEventBus()

    def notify_founders(event: ScheduleRunPlanned) -> None:
        raise ConnectionError("mail relay down")

    bus.subscribe(ScheduleRunPlanned, notify_founders)
    with caplog.at_level(logging.WARNING):
        runs = SchedulePlanner(bus=bus).plan_due([_quarterly("s1"), _quarterly("s2")], now=_utc(2025, 4, 1, 6))

    assert [r.schedule_id for r in runs] == ["s1", "s2"]
    assert [f.event.schedule_id for f in bus.failures] == ["s1", "s2"]
    assert "Run for schedule s1 planned but 1 event handler(s) failed" in caplog.text
