"""Recurrence rule value object.

The rule is stored as JSON on every task of a series and travels inside the
completion event, so ``from_dict``/``to_dict`` use the same camelCase keys as
the stored document.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from .enums import Frequency, MonthlyPattern, WeekOfMonth
from .errors import ValidationError

MAX_INTERVAL = 99
MAX_OCCURRENCES = 999

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
SHORT_DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

WEEK_OF_MONTH_LABELS = {
    WeekOfMonth.FIRST: "1st",
    WeekOfMonth.SECOND: "2nd",
    WeekOfMonth.THIRD: "3rd",
    WeekOfMonth.FOURTH: "4th",
    WeekOfMonth.LAST: "last",
    WeekOfMonth.LAST_FULL_BUSINESS_WEEK: "last full week",
}

FREQUENCY_LABELS = {
    Frequency.DAILY: "Daily",
    Frequency.WEEKLY: "Weekly",
    Frequency.BIWEEKLY: "Biweekly",
    Frequency.MONTHLY: "Monthly",
    Frequency.QUARTERLY: "Quarterly",
    Frequency.YEARLY: "Yearly",
}

_INTERVAL_UNITS = {
    Frequency.DAILY: "days",
    Frequency.WEEKLY: "weeks",
    Frequency.MONTHLY: "months",
    Frequency.YEARLY: "years",
}

_FIELD_KEYS = {
    "frequency": "frequency",
    "interval": "interval",
    "days_of_week": "daysOfWeek",
    "day_of_month": "dayOfMonth",
    "monthly_pattern": "monthlyPattern",
    "week_of_month": "weekOfMonth",
    "monthly_day_of_week": "monthlyDayOfWeek",
    "end_date": "endDate",
    "end_after_occurrences": "endAfterOccurrences",
}


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    interval: int = 1
    days_of_week: tuple[int, ...] = ()
    day_of_month: Optional[int] = None
    monthly_pattern: Optional[MonthlyPattern] = None
    week_of_month: Optional[int] = None
    monthly_day_of_week: Optional[int] = None
    end_date: Optional[date] = None
    end_after_occurrences: Optional[int] = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "frequency", Frequency(self.frequency))
        except ValueError:
            raise ValidationError(f"unknown frequency {self.frequency!r}", "frequency") from None
        if self.monthly_pattern is not None:
            try:
                object.__setattr__(self, "monthly_pattern", MonthlyPattern(self.monthly_pattern))
            except ValueError:
                raise ValidationError(
                    f"unknown monthly pattern {self.monthly_pattern!r}", "monthlyPattern"
                ) from None
        object.__setattr__(self, "days_of_week", tuple(sorted(set(self.days_of_week or ()))))
        self._validate()

    def _validate(self) -> None:
        _check_int(self.interval, "interval", 1, MAX_INTERVAL)
        for day in self.days_of_week:
            _check_int(day, "daysOfWeek", 0, 6)
        if self.day_of_month is not None:
            _check_int(self.day_of_month, "dayOfMonth", 1, 31)
        if self.monthly_day_of_week is not None:
            _check_int(self.monthly_day_of_week, "monthlyDayOfWeek", 0, 6)
        if self.week_of_month is not None:
            if isinstance(self.week_of_month, bool) or self.week_of_month not in set(WeekOfMonth):
                raise ValidationError("weekOfMonth must be 1-4, -1 (last) or -2", "weekOfMonth")
        if self.end_after_occurrences is not None:
            _check_int(self.end_after_occurrences, "endAfterOccurrences", 1, MAX_OCCURRENCES)
        if self.end_date is not None and not isinstance(self.end_date, date):
            raise ValidationError("endDate must be a date", "endDate")

        if self.monthly_pattern == MonthlyPattern.DAY_OF_WEEK:
            if self.week_of_month is None or self.monthly_day_of_week is None:
                raise ValidationError(
                    "weekOfMonth and monthlyDayOfWeek are required for the dayOfWeek pattern",
                    "weekOfMonth",
                )
            if (
                self.week_of_month == WeekOfMonth.LAST_FULL_BUSINESS_WEEK
                and not 1 <= self.monthly_day_of_week <= 5
            ):
                raise ValidationError(
                    "last full business week only supports Monday to Friday",
                    "monthlyDayOfWeek",
                )
        elif self.monthly_pattern == MonthlyPattern.DAY_OF_MONTH and self.day_of_month is None:
            raise ValidationError("dayOfMonth is required for the dayOfMonth pattern", "dayOfMonth")

    @property
    def uses_weekday_pattern(self) -> bool:
        return self.monthly_pattern == MonthlyPattern.DAY_OF_WEEK

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecurrenceRule":
        if not isinstance(data, dict):
            raise ValidationError("recurrence config must be an object")
        if "frequency" not in data:
            raise ValidationError("frequency is required", "frequency")

        end_date = data.get("endDate")
        if isinstance(end_date, str):
            try:
                end_date = date.fromisoformat(end_date)
            except ValueError:
                raise ValidationError("endDate must be YYYY-MM-DD", "endDate") from None

        interval = data.get("interval", 1)
        return cls(
            frequency=data["frequency"],
            interval=interval,
            days_of_week=tuple(data.get("daysOfWeek") or ()),
            day_of_month=data.get("dayOfMonth"),
            monthly_pattern=data.get("monthlyPattern"),
            week_of_month=data.get("weekOfMonth"),
            monthly_day_of_week=data.get("monthlyDayOfWeek"),
            end_date=end_date,
            end_after_occurrences=data.get("endAfterOccurrences"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for attr, key in _FIELD_KEYS.items():
            value = getattr(self, attr)
            if value is None or value == ():
                continue
            if attr == "days_of_week":
                value = [int(day) for day in value]
            elif attr == "end_date":
                value = value.isoformat()
            elif attr in ("frequency", "monthly_pattern"):
                value = value.value
            else:
                value = int(value)
            result[key] = value
        return result

    def describe(self) -> str:
        """Sentence form, e.g. "Every 2 weeks on Mon, Thu until Dec 31, 2024"."""
        text = self._describe_frequency()
        if self.end_date:
            text += f" until {self.end_date:%b} {self.end_date.day}, {self.end_date.year}"
        elif self.end_after_occurrences:
            text += f", {self.end_after_occurrences} times"
        return text

    def label(self) -> str:
        """Short badge form, e.g. "Monthly on last Fri"."""
        text = FREQUENCY_LABELS[self.frequency]
        unit = _INTERVAL_UNITS.get(self.frequency)
        if self.interval > 1 and unit:
            text = f"Every {self.interval} {unit}"
        if self.frequency in (Frequency.MONTHLY, Frequency.QUARTERLY) and self.uses_weekday_pattern:
            week_label = WEEK_OF_MONTH_LABELS[WeekOfMonth(self.week_of_month)]
            text += f" on {week_label} {SHORT_DAY_NAMES[self.monthly_day_of_week]}"
        return text

    def _describe_frequency(self) -> str:
        days = ", ".join(SHORT_DAY_NAMES[day] for day in self.days_of_week)

        if self.frequency == Frequency.DAILY:
            return "Every day" if self.interval == 1 else f"Every {self.interval} days"

        if self.frequency == Frequency.WEEKLY:
            base = "Weekly" if self.interval == 1 else f"Every {self.interval} weeks"
            return f"{base} on {days}" if days else base

        if self.frequency == Frequency.BIWEEKLY:
            weeks = self.interval * 2
            return f"Every {weeks} weeks on {days}" if days else f"Every {weeks} weeks"

        if self.frequency in (Frequency.MONTHLY, Frequency.QUARTERLY):
            if self.frequency == Frequency.MONTHLY:
                singular, plural = "Monthly", "months"
            else:
                singular, plural = "Quarterly", "quarters"
            base = singular if self.interval == 1 else f"Every {self.interval} {plural}"
            detail = self._monthly_detail()
            return f"{base} on the {detail}" if detail else base

        return "Yearly" if self.interval == 1 else f"Every {self.interval} years"

    def _monthly_detail(self) -> str | None:
        if self.uses_weekday_pattern:
            week_label = WEEK_OF_MONTH_LABELS[WeekOfMonth(self.week_of_month)]
            return f"{week_label} {DAY_NAMES[self.monthly_day_of_week]}"
        if self.day_of_month:
            return f"{self.day_of_month}{ordinal_suffix(self.day_of_month)}"
        return None


def ordinal_suffix(n: int) -> str:
    if 10 <= n % 100 <= 20:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")


def _check_int(value: Any, name: str, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ValidationError(f"{name} must be an integer between {low} and {high}", name)
