'''
testing core/slot_generator.py
'''
from dataclasses import dataclass, field
from datetime import date, timedelta

from src.skill_swap_backend.core.slot_generator import (
    expand_bulk,
    expand_recurring,
    iter_dates,
    js_day_of_week,
)


@dataclass
class Template:
    day_of_week: int
    time_slots: list[str] = field(default_factory=list)
    is_active: bool = True


# 2024-06-09 is a Sunday, 2024-06-10 a Monday.
SUNDAY = date(2024, 6, 9)
MONDAY = date(2024, 6, 10)


class TestDayOfWeek:

    def test_sunday_is_zero(self):
        assert js_day_of_week(SUNDAY) == 0

    def test_monday_to_saturday(self):
        assert [js_day_of_week(SUNDAY + timedelta(days=i)) for i in range(1, 7)] == [1, 2, 3, 4, 5, 6]


class TestIterDates:

    def test_range_is_inclusive(self):
        days = list(iter_dates(SUNDAY, SUNDAY + timedelta(days=2)))
        assert days == [SUNDAY, SUNDAY + timedelta(days=1), SUNDAY + timedelta(days=2)]

    def test_single_day(self):
        assert list(iter_dates(MONDAY, MONDAY)) == [MONDAY]

    def test_empty_when_start_after_end(self):
        assert list(iter_dates(MONDAY, SUNDAY)) == []


class TestExpandRecurring:

    def test_two_mondays_in_fourteen_days(self):
        templates = [Template(day_of_week=1, time_slots=["09:00-10:00"])]

        keys = expand_recurring(templates, MONDAY, MONDAY + timedelta(days=13))

        assert keys == [
            (MONDAY, "09:00-10:00"),
            (MONDAY + timedelta(days=7), "09:00-10:00"),
        ]

    def test_inactive_templates_are_ignored(self):
        templates = [
            Template(day_of_week=1, time_slots=["09:00-10:00"], is_active=False),
            Template(day_of_week=2, time_slots=["11:00-12:00"]),
        ]

        keys = expand_recurring(templates, MONDAY, MONDAY + timedelta(days=1))

        assert keys == [(MONDAY + timedelta(days=1), "11:00-12:00")]

    def test_all_matching_templates_for_a_day_are_used(self):
        templates = [
            Template(day_of_week=1, time_slots=["09:00-10:00"]),
            Template(day_of_week=1, time_slots=["14:00-15:00", "09:00-10:00"]),
        ]

        keys = expand_recurring(templates, MONDAY, MONDAY)

        assert keys == [(MONDAY, "09:00-10:00"), (MONDAY, "14:00-15:00")]

    def test_existing_keys_are_skipped(self):
        templates = [Template(day_of_week=1, time_slots=["09:00-10:00", "10:00-11:00"])]

        keys = expand_recurring(templates, MONDAY, MONDAY, existing_keys=[(MONDAY, "09:00-10:00")])

        assert keys == [(MONDAY, "10:00-11:00")]

    def test_second_run_over_same_range_yields_nothing(self):
        templates = [Template(day_of_week=d, time_slots=["09:00-10:00"]) for d in range(7)]
        end = MONDAY + timedelta(days=20)

        first = expand_recurring(templates, MONDAY, end)
        second = expand_recurring(templates, MONDAY, end, existing_keys=first)

        assert len(first) == 21
        assert len(set(first)) == len(first)
        assert second == []

    def test_no_active_templates(self):
        assert expand_recurring([], MONDAY, MONDAY + timedelta(days=30)) == []


class TestExpandBulk:

    def test_cartesian_expansion(self):
        keys = expand_bulk(
            SUNDAY,
            SUNDAY + timedelta(days=6),
            days_of_week=[1, 3],
            time_slots=["09:00-10:00", "10:00-11:00"]
        )

        wednesday = SUNDAY + timedelta(days=3)
        assert keys == [
            (MONDAY, "09:00-10:00"),
            (MONDAY, "10:00-11:00"),
            (wednesday, "09:00-10:00"),
            (wednesday, "10:00-11:00"),
        ]

    def test_excluded_dates_are_skipped(self):
        keys = expand_bulk(
            MONDAY,
            MONDAY + timedelta(days=7),
            days_of_week=[1],
            time_slots=["09:00-10:00"],
            exclude_dates=[MONDAY]
        )

        assert keys == [(MONDAY + timedelta(days=7), "09:00-10:00")]

    def test_duplicate_time_slots_collapse(self):
        keys = expand_bulk(MONDAY, MONDAY, [1], ["09:00-10:00", "09:00-10:00"])
        assert keys == [(MONDAY, "09:00-10:00")]

    def test_no_matching_weekday_is_empty(self):
        assert expand_bulk(MONDAY, MONDAY + timedelta(days=2), [5], ["09:00-10:00"]) == []
