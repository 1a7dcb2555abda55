from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from taskboard.domain.enums import Frequency, MonthlyPattern, WeekOfMonth, Weekday
from taskboard.domain.recurrence import RecurrenceRule
from taskboard.services.evaluator import (
    last_full_business_week,
    local_date,
    next_due_date,
    nth_weekday_of_month,
)

TODAY = date(2024, 1, 15)


def weekday_rule(week: int, day: int, interval: int = 1, frequency=Frequency.MONTHLY) -> RecurrenceRule:
    return RecurrenceRule(
        frequency=frequency,
        interval=interval,
        monthly_pattern=MonthlyPattern.DAY_OF_WEEK,
        week_of_month=week,
        monthly_day_of_week=day,
    )


@pytest.mark.parametrize("interval", [1, 2, 3, 10, 45])
def test_daily_adds_interval_days(interval: int) -> None:
    rule = RecurrenceRule(Frequency.DAILY, interval=interval)
    assert next_due_date(rule, TODAY, TODAY) == TODAY + timedelta(days=interval)


def test_daily_crosses_year_boundary() -> None:
    rule = RecurrenceRule(Frequency.DAILY)
    assert next_due_date(rule, date(2024, 12, 31), date(2024, 12, 31)) == date(2025, 1, 1)


def test_weekly_picks_next_selected_day_in_same_week() -> None:
    rule = RecurrenceRule(
        Frequency.WEEKLY, days_of_week=(Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY)
    )
    # 2024-01-15 is a Monday
    assert next_due_date(rule, date(2024, 1, 15), TODAY) == date(2024, 1, 17)


def test_weekly_wraps_to_next_cycle() -> None:
    rule = RecurrenceRule(Frequency.WEEKLY, days_of_week=(Weekday.MONDAY,))
    assert next_due_date(rule, date(2024, 1, 17), TODAY) == date(2024, 1, 22)


def test_weekly_interval_skips_whole_cycles() -> None:
    rule = RecurrenceRule(
        Frequency.WEEKLY, interval=2, days_of_week=(Weekday.MONDAY, Weekday.WEDNESDAY)
    )
    # Monday -> Wednesday of the same cycle, Friday -> Monday two cycles on
    assert next_due_date(rule, date(2024, 1, 15), TODAY) == date(2024, 1, 17)
    assert next_due_date(rule, date(2024, 1, 19), TODAY) == date(2024, 1, 29)


def test_weekly_without_days_keeps_weekday() -> None:
    assert next_due_date(RecurrenceRule(Frequency.WEEKLY), TODAY, TODAY) == date(2024, 1, 22)
    assert next_due_date(RecurrenceRule(Frequency.WEEKLY, interval=3), TODAY, TODAY) == date(2024, 2, 5)


def test_biweekly_steps_two_weeks_per_interval() -> None:
    rule = RecurrenceRule(Frequency.BIWEEKLY, days_of_week=(Weekday.MONDAY,))
    assert next_due_date(rule, TODAY, TODAY) == date(2024, 1, 29)
    assert next_due_date(RecurrenceRule(Frequency.BIWEEKLY, interval=2), TODAY, TODAY) == date(2024, 2, 12)


def test_monthly_day_of_month() -> None:
    rule = RecurrenceRule(Frequency.MONTHLY, day_of_month=15)
    assert next_due_date(rule, TODAY, TODAY) == date(2024, 2, 15)
    assert next_due_date(RecurrenceRule(Frequency.MONTHLY, interval=3, day_of_month=15), TODAY, TODAY) == date(
        2024, 4, 15
    )


@pytest.mark.parametrize(
    ("completed", "expected"),
    [
        (date(2024, 1, 31), date(2024, 2, 29)),
        (date(2023, 1, 31), date(2023, 2, 28)),
        (date(2023, 2, 28), date(2023, 3, 31)),
        (date(2024, 3, 31), date(2024, 4, 30)),
    ],
)
def test_monthly_clamps_to_month_end(completed: date, expected: date) -> None:
    rule = RecurrenceRule(Frequency.MONTHLY, day_of_month=31, monthly_pattern=MonthlyPattern.DAY_OF_MONTH)
    assert next_due_date(rule, completed, completed) == expected


def test_monthly_rolls_over_year() -> None:
    rule = RecurrenceRule(Frequency.MONTHLY)
    assert next_due_date(rule, date(2024, 12, 15), TODAY) == date(2025, 1, 15)


def test_quarterly() -> None:
    rule = RecurrenceRule(Frequency.QUARTERLY, day_of_month=31)
    assert next_due_date(rule, date(2024, 1, 31), TODAY) == date(2024, 4, 30)
    assert next_due_date(RecurrenceRule(Frequency.QUARTERLY), date(2024, 11, 15), TODAY) == date(2025, 2, 15)


def test_yearly_clamps_leap_day() -> None:
    rule = RecurrenceRule(Frequency.YEARLY)
    assert next_due_date(rule, date(2024, 2, 29), TODAY) == date(2025, 2, 28)
    assert next_due_date(RecurrenceRule(Frequency.YEARLY, interval=4), date(2024, 2, 29), TODAY) == date(
        2028, 2, 29
    )
    assert next_due_date(RecurrenceRule(Frequency.YEARLY, interval=2), TODAY, TODAY) == date(2026, 1, 15)


def test_last_friday_in_four_and_five_friday_months() -> None:
    rule = weekday_rule(WeekOfMonth.LAST, Weekday.FRIDAY)
    # February 2024 has four Fridays, March 2024 has five
    assert next_due_date(rule, date(2024, 1, 26), TODAY) == date(2024, 2, 23)
    assert next_due_date(rule, date(2024, 2, 23), TODAY) == date(2024, 3, 29)


def test_nth_weekday() -> None:
    rule = weekday_rule(WeekOfMonth.SECOND, Weekday.TUESDAY)
    assert next_due_date(rule, date(2024, 1, 9), TODAY) == date(2024, 2, 13)


def test_last_full_business_week_skips_week_leaking_into_next_month() -> None:
    # April 2024 ends on a Tuesday, so the week of the 29th is not fully inside it
    assert next_due_date(weekday_rule(WeekOfMonth.LAST, Weekday.MONDAY), date(2024, 3, 25), TODAY) == date(
        2024, 4, 29
    )
    rule = weekday_rule(WeekOfMonth.LAST_FULL_BUSINESS_WEEK, Weekday.MONDAY)
    assert next_due_date(rule, date(2024, 3, 25), TODAY) == date(2024, 4, 22)


def test_quarterly_weekday_pattern() -> None:
    rule = weekday_rule(WeekOfMonth.FIRST, Weekday.MONDAY, frequency=Frequency.QUARTERLY)
    assert next_due_date(rule, date(2024, 1, 1), TODAY) == date(2024, 4, 1)


@pytest.mark.parametrize(
    ("year", "month", "expected_monday"),
    [
        (2024, 3, date(2024, 3, 25)),
        (2024, 4, date(2024, 4, 22)),
        (2024, 5, date(2024, 5, 27)),
        (2024, 6, date(2024, 6, 24)),
    ],
)
def test_last_full_business_week(year: int, month: int, expected_monday: date) -> None:
    monday = last_full_business_week(year, month)
    assert monday == expected_monday
    assert (monday + timedelta(days=4)).month == month


def test_nth_weekday_of_month_helper() -> None:
    assert nth_weekday_of_month(2024, 2, 1, Weekday.THURSDAY) == date(2024, 2, 1)
    assert nth_weekday_of_month(2024, 2, 4, Weekday.THURSDAY) == date(2024, 2, 22)
    assert nth_weekday_of_month(2024, 2, -1, Weekday.THURSDAY) == date(2024, 2, 29)
    assert nth_weekday_of_month(2024, 4, -2, Weekday.FRIDAY) == date(2024, 4, 26)


def test_end_date_reached_by_reference_day() -> None:
    rule = RecurrenceRule(Frequency.DAILY, end_date=date(2024, 1, 15))
    assert next_due_date(rule, date(2024, 1, 15), date(2024, 1, 20)) is None


def test_end_date_not_yet_reached() -> None:
    rule = RecurrenceRule(Frequency.DAILY, end_date=date(2024, 1, 20))
    assert next_due_date(rule, date(2024, 1, 15), date(2024, 1, 15)) == date(2024, 1, 16)


def test_next_date_on_end_date_is_kept_and_after_is_dropped() -> None:
    rule = RecurrenceRule(Frequency.DAILY, end_date=date(2024, 1, 16))
    assert next_due_date(rule, date(2024, 1, 15), date(2024, 1, 15)) == date(2024, 1, 16)
    monthly = RecurrenceRule(Frequency.MONTHLY, day_of_month=15, end_date=date(2024, 1, 31))
    assert next_due_date(monthly, date(2024, 1, 15), date(2024, 1, 16)) is None


def test_reference_time_does_not_move_the_series() -> None:
    rule = RecurrenceRule(Frequency.DAILY)
    late = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)
    assert next_due_date(rule, date(2024, 1, 1), late) == date(2024, 1, 2)


def test_missing_completed_due_date() -> None:
    assert next_due_date(RecurrenceRule(Frequency.DAILY), None, TODAY) is None


def test_local_date_applies_org_offset() -> None:
    late_evening = datetime(2024, 1, 15, 23, 30, tzinfo=timezone.utc)
    assert local_date(late_evening, timedelta(hours=2)) == date(2024, 1, 16)
    assert local_date(late_evening, timedelta(hours=-5)) == date(2024, 1, 15)
    assert local_date(datetime(2024, 1, 15, 23, 30), timedelta(0)) == date(2024, 1, 15)
