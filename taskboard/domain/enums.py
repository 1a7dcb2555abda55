from __future__ import annotations

from enum import IntEnum, StrEnum


class Frequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class MonthlyPattern(StrEnum):
    DAY_OF_MONTH = "dayOfMonth"
    DAY_OF_WEEK = "dayOfWeek"


class WeekOfMonth(IntEnum):
    FIRST = 1
    SECOND = 2
    THIRD = 3
    FOURTH = 4
    LAST = -1
    LAST_FULL_BUSINESS_WEEK = -2


class Weekday(IntEnum):
    """Day numbering used by stored rules: 0 is Sunday."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


class DateFlexibility(StrEnum):
    NOT_SET = "not_set"
    FLEXIBLE = "flexible"
    SEMI_FLEXIBLE = "semi_flexible"
    NOT_FLEXIBLE = "not_flexible"


class OutcomeKind(StrEnum):
    MATERIALIZED = "materialized"
    SERIES_ENDED = "series_ended"
    NO_NEXT_OCCURRENCE = "no_next_occurrence"
