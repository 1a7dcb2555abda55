"""Next-occurrence calculation for recurring tasks.

Everything here is pure: the only notion of "today" is the ``now`` argument,
and it is compared against the rule's end date, never used as an anchor.
Weekday numbers follow the stored rule convention (0 is Sunday).
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from taskboard.domain.enums import Frequency, WeekOfMonth
from taskboard.domain.recurrence import RecurrenceRule

logger = logging.getLogger(__name__)

MAX_GUARD_STEPS = 1000


def next_due_date(
    rule: RecurrenceRule,
    completed_due_date: date | None,
    now: date | datetime,
) -> date | None:
    if completed_due_date is None:
        return None

    reference = now.date() if isinstance(now, datetime) else now
    if rule.end_date and reference > rule.end_date:
        return None

    next_due = advance(completed_due_date, rule)
    steps = 0
    while next_due <= completed_due_date:
        steps += 1
        if steps > MAX_GUARD_STEPS:
            logger.error("rule %s never moves past %s", rule.to_dict(), completed_due_date)
            return None
        next_due = advance(next_due, rule)

    if rule.end_date and next_due > rule.end_date:
        return None
    return next_due


def advance(current: date, rule: RecurrenceRule) -> date:
    """Move ``current`` forward by exactly one period of ``rule``."""
    if rule.frequency == Frequency.DAILY:
        return current + timedelta(days=rule.interval)
    if rule.frequency == Frequency.WEEKLY:
        return _next_weekly(current, rule.days_of_week, rule.interval)
    if rule.frequency == Frequency.BIWEEKLY:
        return _next_weekly(current, rule.days_of_week, rule.interval * 2)
    if rule.frequency == Frequency.MONTHLY:
        return _next_monthly(current, rule, rule.interval)
    if rule.frequency == Frequency.QUARTERLY:
        return _next_monthly(current, rule, rule.interval * 3)
    if rule.frequency == Frequency.YEARLY:
        return add_months(current, rule.interval * 12)
    raise ValueError(f"unsupported frequency {rule.frequency!r}")


def weekday_number(value: date) -> int:
    return (value.weekday() + 1) % 7


def local_date(now: datetime, utc_offset: timedelta) -> date:
    """Calendar date at the organization's fixed offset. Naive values are UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now.astimezone(timezone.utc) + utc_offset).date()


def _next_weekly(current: date, days_of_week: tuple[int, ...], weeks: int) -> date:
    if not days_of_week:
        return current + timedelta(weeks=weeks)

    today = weekday_number(current)
    later = [day for day in days_of_week if day > today]
    if later:
        return current + timedelta(days=later[0] - today)

    # Weeks run Sunday..Saturday: jump to the start of the next cycle,
    # skip the remaining interval cycles, then land on the first selected day.
    days_to_cycle_end = 7 - today
    return current + timedelta(days=days_to_cycle_end + (weeks - 1) * 7 + days_of_week[0])


def _next_monthly(current: date, rule: RecurrenceRule, months: int) -> date:
    if rule.uses_weekday_pattern:
        target = add_months(current.replace(day=1), months)
        return nth_weekday_of_month(
            target.year, target.month, rule.week_of_month, rule.monthly_day_of_week
        )
    return add_months(current, months, rule.day_of_month or current.day)


def nth_weekday_of_month(year: int, month: int, week_of_month: int, day_of_week: int) -> date:
    if week_of_month == WeekOfMonth.LAST:
        last = date(year, month, days_in_month(year, month))
        return last - timedelta(days=(weekday_number(last) - day_of_week) % 7)

    if week_of_month == WeekOfMonth.LAST_FULL_BUSINESS_WEEK:
        monday = last_full_business_week(year, month)
        return monday + timedelta(days=day_of_week - 1)

    first = date(year, month, 1)
    offset = (day_of_week - weekday_number(first)) % 7
    return first + timedelta(days=offset, weeks=week_of_month - 1)


def last_full_business_week(year: int, month: int) -> date:
    """Monday of the last Monday-Friday span that lies entirely inside the month."""
    last = date(year, month, days_in_month(year, month))
    friday = last - timedelta(days=(weekday_number(last) - 5) % 7)
    return friday - timedelta(days=4)


def add_months(base: date, months: int, day: int | None = None) -> date:
    year = base.year + (base.month - 1 + months) // 12
    month = (base.month - 1 + months) % 12 + 1
    target_day = base.day if day is None else day
    return date(year, month, min(target_day, days_in_month(year, month)))


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - timedelta(days=1)).day
