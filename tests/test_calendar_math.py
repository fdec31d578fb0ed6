from datetime import date

from payroll_api.services.calendar_math import business_days_between, is_business_day


def test_first_week_of_2024_has_five_business_days():
    assert business_days_between(date(2024, 1, 1), date(2024, 1, 7)) == 5


def test_reversed_range_is_zero():
    assert business_days_between(date(2024, 1, 7), date(2024, 1, 1)) == 0


def test_single_day():
    assert business_days_between(date(2024, 1, 3), date(2024, 1, 3)) == 1   # Wednesday
    assert business_days_between(date(2024, 1, 6), date(2024, 1, 6)) == 0   # Saturday


def test_weekend_only_range():
    assert business_days_between(date(2024, 3, 9), date(2024, 3, 10)) == 0


def test_multi_week_span_matches_day_by_day_count():
    start, end = date(2024, 2, 14), date(2024, 5, 3)
    expected = sum(
        1 for n in range((end - start).days + 1)
        if is_business_day(date.fromordinal(start.toordinal() + n))
    )
    assert business_days_between(start, end) == expected


def test_four_full_weeks_of_march_2024():
    assert business_days_between(date(2024, 3, 4), date(2024, 3, 29)) == 20
