"""
Hour and week arithmetic for timesheets.

Responsibility:
    Normalises declared durations to Decimal, enforces the 15-minute
    granularity and the per-day ceiling, validates that a timesheet
    spans exactly one Monday..Sunday week, and produces non-fatal
    warnings for days that exceed the working-hour reference.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Hours are Decimal, never float, once past this boundary.
    - ``hours > 0`` and ``hours % granularity == 0`` and
      ``hours <= max_daily_hours``.
    - ``week_end == week_start + 6 days`` and ``week_start`` is a Monday.

Failure modes:
    - HourGranularityError for non-positive, non-granular or oversized hours.
    - WeekAlignmentError for a week that does not start on Monday.
    - ValidationError for an activity dated outside its week.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable

from timesheet_kernel.exceptions import (
    HourGranularityError,
    ValidationError,
    WeekAlignmentError,
)

HOUR_GRANULARITY = Decimal("0.25")
MAX_DAILY_HOURS = Decimal("24")
DAILY_REFERENCE_HOURS = Decimal("8")
WORKING_WEEKDAYS: frozenset[int] = frozenset({0, 1, 2, 3, 4})  # Monday..Friday

WEEK_LENGTH = timedelta(days=6)


def to_hours(value: Decimal | int | str | float) -> Decimal:
    """Convert caller input to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise HourGranularityError(str(value), "not a number")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise HourGranularityError(str(value), "not a number") from exc


def validate_hours(
    value: Decimal | int | str | float,
    granularity: Decimal = HOUR_GRANULARITY,
    max_hours: Decimal = MAX_DAILY_HOURS,
) -> Decimal:
    """Return ``value`` as Decimal if it is a valid activity duration."""
    hours = to_hours(value)
    if not hours.is_finite():
        raise HourGranularityError(str(value), "not a finite number")
    if hours <= 0:
        raise HourGranularityError(str(value), "must be positive")
    if hours > max_hours:
        raise HourGranularityError(str(value), f"exceeds {max_hours} hours per day")
    if hours % granularity != 0:
        raise HourGranularityError(
            str(value), f"must be a multiple of {granularity} hours",
        )
    return hours


def week_end_for(week_start: date) -> date:
    """Validate ``week_start`` and return the matching Sunday."""
    if week_start.weekday() != 0:
        raise WeekAlignmentError(week_start.isoformat(), "week must start on a Monday")
    return week_start + WEEK_LENGTH


def validate_week(week_start: date, week_end: date) -> None:
    expected = week_end_for(week_start)
    if week_end != expected:
        raise WeekAlignmentError(
            week_start.isoformat(),
            f"week must end on {expected.isoformat()}, got {week_end.isoformat()}",
        )


def validate_activity_date(activity_date: date, week_start: date, week_end: date) -> None:
    if not (week_start <= activity_date <= week_end):
        raise ValidationError(
            f"Activity date {activity_date.isoformat()} is outside the week "
            f"{week_start.isoformat()}..{week_end.isoformat()}",
            field="activity_date",
        )


def daily_totals(entries: Iterable[tuple[date, Decimal]]) -> dict[date, Decimal]:
    totals: dict[date, Decimal] = defaultdict(Decimal)
    for day, hours in entries:
        totals[day] += hours
    return dict(totals)


def ensure_daily_cap(
    totals: dict[date, Decimal], max_hours: Decimal = MAX_DAILY_HOURS,
) -> None:
    for day, total in sorted(totals.items()):
        if total > max_hours:
            raise HourGranularityError(
                str(total), f"{day.isoformat()} exceeds {max_hours} hours",
            )


@dataclass(frozen=True)
class HoursWarning:
    """A day whose declared hours deserve a reviewer's attention."""

    day: date
    declared: Decimal
    reference: Decimal
    kind: str  # "over_reference" | "non_working_day"

    @property
    def excess(self) -> Decimal:
        return self.declared - self.reference


def reference_warnings(
    totals: dict[date, Decimal],
    reference_hours: Decimal = DAILY_REFERENCE_HOURS,
    working_weekdays: frozenset[int] = WORKING_WEEKDAYS,
) -> tuple[HoursWarning, ...]:
    """Flag anomalous days.  Never raises: excess hours are permitted."""
    warnings: list[HoursWarning] = []
    for day, total in sorted(totals.items()):
        if day.weekday() not in working_weekdays:
            warnings.append(HoursWarning(day, total, Decimal("0"), "non_working_day"))
        elif total > reference_hours:
            warnings.append(HoursWarning(day, total, reference_hours, "over_reference"))
    return tuple(warnings)
