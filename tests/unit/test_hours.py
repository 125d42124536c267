"""
Unit tests for hour and week arithmetic.

Verifies:
- Quarter-hour granularity and the 24h ceiling
- Decimal conversion without float artefacts
- Monday-aligned weeks and activity dates inside the week
- Per-day cap across activities
- Reference-hour warnings (never errors)
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from timesheet_kernel.domain.hours import (
    daily_totals,
    ensure_daily_cap,
    reference_warnings,
    to_hours,
    validate_activity_date,
    validate_hours,
    validate_week,
    week_end_for,
)
from timesheet_kernel.exceptions import (
    HourGranularityError,
    ValidationError,
    WeekAlignmentError,
)

MONDAY = date(2025, 1, 13)


class TestValidateHours:
    @pytest.mark.parametrize("value", ["0.25", "1", "7.5", "8.75", "24", 3, Decimal("12.00")])
    def test_accepts_quarter_hours(self, value):
        assert validate_hours(value) == Decimal(str(value))

    @pytest.mark.parametrize("value", ["0", "-1", "-0.25"])
    def test_rejects_non_positive(self, value):
        with pytest.raises(HourGranularityError, match="must be positive"):
            validate_hours(value)

    @pytest.mark.parametrize("value", ["0.1", "1.3", "7.33", "0.2"])
    def test_rejects_off_granularity(self, value):
        with pytest.raises(HourGranularityError, match="multiple of"):
            validate_hours(value)

    def test_rejects_more_than_a_day(self):
        with pytest.raises(HourGranularityError, match="exceeds"):
            validate_hours("24.25")

    def test_rejects_garbage(self):
        with pytest.raises(HourGranularityError, match="not a number"):
            validate_hours("eight")

    def test_rejects_nan_and_infinity(self):
        with pytest.raises(HourGranularityError):
            validate_hours("NaN")
        with pytest.raises(HourGranularityError):
            validate_hours("Infinity")

    def test_bool_is_not_hours(self):
        with pytest.raises(HourGranularityError):
            to_hours(True)

    def test_float_goes_through_str(self):
        assert to_hours(0.1 + 0.2) == Decimal("0.30000000000000004")
        assert to_hours(7.25) == Decimal("7.25")

    def test_granularity_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            validate_hours("0.1")

    def test_custom_granularity(self):
        assert validate_hours("0.5", granularity=Decimal("0.5")) == Decimal("0.5")
        with pytest.raises(HourGranularityError):
            validate_hours("0.25", granularity=Decimal("0.5"))

    @given(st.integers(min_value=1, max_value=96))
    def test_every_quarter_up_to_24_is_valid(self, quarters):
        hours = Decimal(quarters) * Decimal("0.25")
        assert validate_hours(hours) == hours

    @given(
        st.decimals(
            min_value=Decimal("0.01"), max_value=Decimal("24"), places=2,
            allow_nan=False, allow_infinity=False,
        )
    )
    def test_valid_iff_multiple_of_quarter(self, hours):
        if hours % Decimal("0.25") == 0:
            assert validate_hours(hours) == hours
        else:
            with pytest.raises(HourGranularityError):
                validate_hours(hours)


class TestWeeks:
    def test_week_end_is_sunday(self):
        assert week_end_for(MONDAY) == date(2025, 1, 19)
        assert week_end_for(MONDAY).weekday() == 6

    @pytest.mark.parametrize("offset", range(1, 7))
    def test_week_must_start_on_monday(self, offset):
        with pytest.raises(WeekAlignmentError, match="Monday"):
            week_end_for(MONDAY + timedelta(days=offset))

    def test_validate_week_rejects_wrong_end(self):
        validate_week(MONDAY, MONDAY + timedelta(days=6))
        with pytest.raises(WeekAlignmentError, match="must end on 2025-01-19"):
            validate_week(MONDAY, MONDAY + timedelta(days=5))

    def test_activity_inside_week(self):
        end = week_end_for(MONDAY)
        validate_activity_date(MONDAY, MONDAY, end)
        validate_activity_date(end, MONDAY, end)

    @pytest.mark.parametrize("day", [date(2025, 1, 12), date(2025, 1, 20)])
    def test_activity_outside_week(self, day):
        with pytest.raises(ValidationError, match="outside the week") as exc_info:
            validate_activity_date(day, MONDAY, week_end_for(MONDAY))
        assert exc_info.value.field == "activity_date"


class TestDailyTotals:
    def test_sums_per_day(self):
        totals = daily_totals([
            (MONDAY, Decimal("4")),
            (MONDAY, Decimal("4.5")),
            (MONDAY + timedelta(days=1), Decimal("8")),
        ])
        assert totals == {MONDAY: Decimal("8.5"), MONDAY + timedelta(days=1): Decimal("8")}

    def test_cap_allows_exactly_24(self):
        ensure_daily_cap({MONDAY: Decimal("24")})

    def test_cap_rejects_more_than_24_across_activities(self):
        with pytest.raises(HourGranularityError, match="2025-01-13 exceeds 24"):
            ensure_daily_cap(daily_totals([(MONDAY, Decimal("16")), (MONDAY, Decimal("8.25"))]))


class TestReferenceWarnings:
    def test_normal_week_has_no_warnings(self):
        totals = {MONDAY + timedelta(days=i): Decimal("8") for i in range(5)}
        assert reference_warnings(totals) == ()

    def test_over_reference_day(self):
        (warning,) = reference_warnings({MONDAY: Decimal("10")})
        assert warning.kind == "over_reference"
        assert warning.excess == Decimal("2")

    def test_weekend_work(self):
        saturday = MONDAY + timedelta(days=5)
        (warning,) = reference_warnings({saturday: Decimal("3")})
        assert warning.kind == "non_working_day"
        assert warning.day == saturday

    def test_configurable_reference(self):
        assert reference_warnings({MONDAY: Decimal("7.5")}, Decimal("7")) != ()
        assert reference_warnings({MONDAY: Decimal("7.5")}, Decimal("7.5")) == ()
