'''
Expands weekly availability templates into concrete dated slots.

Everything here is pure: callers load the templates and existing slots,
and persist whatever comes back.
'''
from datetime import date, timedelta
from typing import Iterable, Iterator, Protocol

SlotKey = tuple[date, str]


class RecurringTemplate(Protocol):
    day_of_week: int
    time_slots: list[str]
    is_active: bool


def js_day_of_week(day: date) -> int:
    """
    Weekday with Sunday=0 .. Saturday=6.
    Python's date.weekday() is Monday=0 .. Sunday=6.
    """
    return (day.weekday() + 1) % 7


def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yields each calendar day from start_date to end_date inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def expand_recurring(
    templates: Iterable[RecurringTemplate],
    start_date: date,
    end_date: date,
    existing_keys: Iterable[SlotKey] = ()
) -> list[SlotKey]:
    """
    Emits one (date, time_slot) per time slot of every *active* template
    matching each day of the range.

    Keys already in 'existing_keys' are skipped, as are keys emitted earlier
    in the same run (two active templates for the same weekday may share a
    time slot). Running it again with the result merged into 'existing_keys'
    therefore yields nothing.
    """
    by_day: dict[int, list[RecurringTemplate]] = {}
    for template in templates:
        if template.is_active:
            by_day.setdefault(template.day_of_week, []).append(template)

    if not by_day:
        return []

    seen = set(existing_keys)
    new_keys: list[SlotKey] = []

    for day in iter_dates(start_date, end_date):
        for template in by_day.get(js_day_of_week(day), []):
            for time_slot in template.time_slots:
                key = (day, time_slot)
                if key in seen:
                    continue
                seen.add(key)
                new_keys.append(key)

    return new_keys


def expand_bulk(
    start_date: date,
    end_date: date,
    days_of_week: Iterable[int],
    time_slots: Iterable[str],
    exclude_dates: Iterable[date] = ()
) -> list[SlotKey]:
    """
    Cartesian expansion of the matching weekdays in the range with the given
    time slots, skipping any date listed in 'exclude_dates'.
    """
    wanted_days = set(days_of_week)
    excluded = set(exclude_dates)
    # dict.fromkeys keeps the caller's order while dropping repeats
    unique_slots = list(dict.fromkeys(time_slots))

    keys: list[SlotKey] = []
    for day in iter_dates(start_date, end_date):
        if js_day_of_week(day) not in wanted_days or day in excluded:
            continue
        keys.extend((day, time_slot) for time_slot in unique_slots)
    return keys
