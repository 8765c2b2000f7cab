import unittest
from datetime import date

from sitechain.domain.calendar import CalendarError, WorkingCalendar, easter_sunday


class EasterTestCase(unittest.TestCase):
    def test_known_dates(self):
        self.assertEqual(easter_sunday(2024), date(2024, 3, 31))
        self.assertEqual(easter_sunday(2025), date(2025, 4, 20))
        self.assertEqual(easter_sunday(2026), date(2026, 4, 5))


class WorkingCalendarTestCase(unittest.TestCase):
    """Test cases for working-day arithmetic on the Portuguese calendar."""

    def setUp(self):
        self.calendar = WorkingCalendar()

    def test_weekends_and_fixed_holidays(self):
        # 2025-01-01 is a Wednesday holiday, 2025-01-04 a Saturday
        self.assertFalse(self.calendar.is_working_day(date(2025, 1, 1)))
        self.assertTrue(self.calendar.is_working_day(date(2025, 1, 2)))
        self.assertFalse(self.calendar.is_working_day(date(2025, 1, 4)))
        self.assertFalse(self.calendar.is_working_day(date(2025, 1, 5)))
        self.assertFalse(self.calendar.is_working_day(date(2025, 12, 25)))

    def test_easter_based_holidays(self):
        # Good Friday and Corpus Christi move with Easter
        self.assertTrue(self.calendar.is_holiday(date(2025, 4, 18)))
        self.assertTrue(self.calendar.is_holiday(date(2025, 6, 19)))
        self.assertTrue(self.calendar.is_holiday(date(2024, 3, 29)))
        self.assertFalse(self.calendar.is_holiday(date(2025, 4, 21)))

    def test_holidays_are_cached_per_year(self):
        first = self.calendar.holidays_for_year(2025)
        self.assertIs(first, self.calendar.holidays_for_year(2025))
        self.assertIn(date(2025, 4, 25), first)

    def test_add_working_days(self):
        start = date(2025, 1, 6)  # Monday
        self.assertEqual(self.calendar.add_working_days(start, 0), start)
        self.assertEqual(self.calendar.add_working_days(start, 1), date(2025, 1, 7))
        self.assertEqual(self.calendar.add_working_days(start, 5), date(2025, 1, 13))
        self.assertEqual(self.calendar.add_working_days(start, 10), date(2025, 1, 20))

        # Thursday before Good Friday skips the long weekend
        self.assertEqual(
            self.calendar.add_working_days(date(2025, 4, 17), 1), date(2025, 4, 21)
        )

    def test_add_working_days_composes(self):
        start = date(2025, 3, 27)
        two_steps = self.calendar.add_working_days(self.calendar.add_working_days(start, 3), 4)
        self.assertEqual(two_steps, self.calendar.add_working_days(start, 7))

    def test_negative_days_rejected(self):
        with self.assertRaises(CalendarError):
            self.calendar.add_working_days(date(2025, 1, 6), -1)
        with self.assertRaises(CalendarError):
            self.calendar.subtract_working_days(date(2025, 1, 6), -1)

    def test_subtract_working_days(self):
        self.assertEqual(
            self.calendar.subtract_working_days(date(2025, 1, 13), 5), date(2025, 1, 6)
        )
        self.assertEqual(
            self.calendar.subtract_working_days(date(2025, 1, 2), 1), date(2024, 12, 31)
        )

    def test_working_days_between(self):
        start = date(2025, 1, 6)
        self.assertEqual(self.calendar.working_days_between(start, start), 0)
        self.assertEqual(self.calendar.working_days_between(start, date(2025, 1, 13)), 5)
        self.assertEqual(self.calendar.working_days_between(date(2025, 1, 13), start), -5)

        for days in (1, 7, 23, 60):
            end = self.calendar.add_working_days(start, days)
            self.assertEqual(self.calendar.working_days_between(start, end), days)

    def test_next_working_day(self):
        self.assertEqual(self.calendar.next_working_day(date(2024, 12, 31)), date(2024, 12, 31))
        self.assertEqual(self.calendar.next_working_day(date(2025, 1, 1)), date(2025, 1, 2))
        self.assertEqual(self.calendar.next_working_day(date(2025, 1, 4)), date(2025, 1, 6))

    def test_iter_working_days(self):
        days = self.calendar.working_days_in_range(date(2025, 1, 3), date(2025, 1, 8))
        self.assertEqual(days, [date(2025, 1, 3), date(2025, 1, 6), date(2025, 1, 7)])

    def test_extra_holidays(self):
        calendar = WorkingCalendar(extra_holidays=[date(2025, 1, 7)])
        self.assertFalse(calendar.is_working_day(date(2025, 1, 7)))
        self.assertEqual(calendar.add_working_days(date(2025, 1, 6), 1), date(2025, 1, 8))

    def test_custom_weekend(self):
        calendar = WorkingCalendar(fixed_holidays=(), easter_offsets=(), weekend=(6,))
        self.assertTrue(calendar.is_working_day(date(2025, 1, 4)))
        self.assertFalse(calendar.is_working_day(date(2025, 1, 5)))

    def test_invalid_definitions(self):
        with self.assertRaises(CalendarError):
            WorkingCalendar(weekend=range(7))
        with self.assertRaises(CalendarError):
            WorkingCalendar(weekend=(7,))
        with self.assertRaises(CalendarError):
            WorkingCalendar(fixed_holidays=[(13, 1)])
        # Days that exist in no month are rejected up front
        with self.assertRaises(CalendarError):
            WorkingCalendar(fixed_holidays=[(2, 30)])
        with self.assertRaises(CalendarError):
            WorkingCalendar(fixed_holidays=[(4, 31)])

    def test_leap_day_holiday(self):
        calendar = WorkingCalendar(fixed_holidays=[(2, 29)], easter_offsets=())
        self.assertFalse(calendar.is_working_day(date(2024, 2, 29)))
        self.assertEqual(calendar.holidays_for_year(2025), frozenset())
        self.assertTrue(calendar.is_working_day(date(2025, 2, 28)))


if __name__ == "__main__":
    unittest.main()
