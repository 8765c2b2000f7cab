from calendar import isleap
from datetime import date, timedelta
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple


class CalendarError(Exception):
    """Exception raised for errors in the WorkingCalendar class."""

    pass


# (month, day) pairs observed every year
PORTUGUESE_FIXED_HOLIDAYS = (
    (1, 1),  # New Year
    (4, 25),  # Freedom Day
    (5, 1),  # Labour Day
    (6, 10),  # Portugal Day
    (6, 13),  # Santo Antonio (Lisbon)
    (8, 15),  # Assumption
    (10, 5),  # Republic Day
    (11, 1),  # All Saints
    (12, 1),  # Restoration of Independence
    (12, 8),  # Immaculate Conception
    (12, 25),  # Christmas
)

# Day offsets from Easter Sunday: Good Friday and Corpus Christi
PORTUGUESE_EASTER_OFFSETS = (-2, 60)

# date.weekday() values for Saturday and Sunday
DEFAULT_WEEKEND = (5, 6)


def easter_sunday(year: int) -> date:
    """
    Compute Easter Sunday for a Gregorian year.

    Uses the anonymous Gregorian algorithm (Meeus/Jones/Butcher).
    """
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


class WorkingCalendar:
    """
    Working-day calendar used by every scheduling component.

    A day is a working day unless it falls on a weekend day or on a holiday.
    Holidays are either fixed (month, day) pairs or offsets from Easter Sunday,
    so the same calendar instance works for any year.

    The calendar is immutable once built; the per-year holiday cache is the
    only internal state and is derived purely from the constructor arguments.
    """

    def __init__(
        self,
        fixed_holidays: Iterable[Tuple[int, int]] = PORTUGUESE_FIXED_HOLIDAYS,
        easter_offsets: Iterable[int] = PORTUGUESE_EASTER_OFFSETS,
        weekend: Iterable[int] = DEFAULT_WEEKEND,
        extra_holidays: Optional[Iterable[date]] = None,
    ):
        """
        Initialize a new WorkingCalendar.

        Args:
            fixed_holidays: (month, day) pairs that are holidays every year
            easter_offsets: Day offsets from Easter Sunday that are holidays
            weekend: weekday() numbers that are never worked (0=Monday)
            extra_holidays: One-off non-working dates (site shutdowns, etc.)

        Raises:
            CalendarError: If a holiday or weekend definition is invalid
        """
        self._fixed_holidays = tuple(fixed_holidays)
        for month, day in self._fixed_holidays:
            try:
                # 2000 is a leap year, so February 29 is accepted
                date(2000, month, day)
            except (TypeError, ValueError):
                raise CalendarError(f"Invalid fixed holiday: {month}-{day}")

        self._easter_offsets = tuple(easter_offsets)

        self._weekend = frozenset(weekend)
        if not self._weekend.issubset(range(7)):
            raise CalendarError("Weekend days must be weekday numbers 0-6")
        if len(self._weekend) == 7:
            raise CalendarError("A calendar needs at least one working weekday")

        self._extra_holidays = frozenset(extra_holidays or ())
        self._holiday_cache: Dict[int, FrozenSet[date]] = {}

    @property
    def weekend(self) -> FrozenSet[int]:
        return self._weekend

    def holidays_for_year(self, year: int) -> FrozenSet[date]:
        """Return the set of holidays for a year, computing it once."""
        if year not in self._holiday_cache:
            days: Set[date] = set()
            for month, day in self._fixed_holidays:
                if (month, day) == (2, 29) and not isleap(year):
                    continue
                days.add(date(year, month, day))

            easter = easter_sunday(year)
            for offset in self._easter_offsets:
                days.add(easter + timedelta(days=offset))

            days.update(d for d in self._extra_holidays if d.year == year)
            self._holiday_cache[year] = frozenset(days)

        return self._holiday_cache[year]

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays_for_year(day.year)

    def is_working_day(self, day: date) -> bool:
        """Check whether a date is neither a weekend day nor a holiday."""
        if day.weekday() in self._weekend:
            return False
        return not self.is_holiday(day)

    def next_working_day(self, day: date) -> date:
        """Return day itself if it is a working day, else the next one."""
        while not self.is_working_day(day):
            day += timedelta(days=1)
        return day

    def add_working_days(self, start: date, days: int) -> date:
        """
        Advance a date by a number of working days.

        Each step moves to the next working day, so add_working_days(d, 0)
        returns d unchanged and consecutive additions compose.

        Args:
            start: The date to start counting from
            days: Number of working days to add (must be non-negative)

        Returns:
            The resulting date

        Raises:
            CalendarError: If days is negative
        """
        if days < 0:
            raise CalendarError("Cannot add a negative number of working days")

        current = start
        remaining = int(days)
        while remaining > 0:
            current += timedelta(days=1)
            if self.is_working_day(current):
                remaining -= 1
        return current

    def subtract_working_days(self, start: date, days: int) -> date:
        """Move a date backwards by a number of working days."""
        if days < 0:
            raise CalendarError("Cannot subtract a negative number of working days")

        current = start
        remaining = int(days)
        while remaining > 0:
            current -= timedelta(days=1)
            if self.is_working_day(current):
                remaining -= 1
        return current

    def working_days_between(self, start: date, end: date) -> int:
        """
        Count the working days in the half-open interval (start, end].

        This is the inverse of add_working_days for working-day targets:
        working_days_between(d, add_working_days(d, n)) == n. The result is
        negative when end precedes start.
        """
        if end < start:
            return -self.working_days_between(end, start)

        count = 0
        current = start
        while current < end:
            current += timedelta(days=1)
            if self.is_working_day(current):
                count += 1
        return count

    def iter_working_days(self, start: date, end: date) -> Iterator[date]:
        """Yield the working days in the half-open interval [start, end)."""
        current = start
        while current < end:
            if self.is_working_day(current):
                yield current
            current += timedelta(days=1)

    def working_days_in_range(self, start: date, end: date) -> List[date]:
        return list(self.iter_working_days(start, end))

    def __repr__(self) -> str:
        return (
            f"WorkingCalendar(fixed={len(self._fixed_holidays)}, "
            f"easter_offsets={self._easter_offsets}, "
            f"weekend={sorted(self._weekend)})"
        )
