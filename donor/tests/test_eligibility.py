from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, override_settings

from donor.services import eligibility


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=dt_timezone.utc)


class EligibilityCalculatorTests(SimpleTestCase):
    def test_never_donated_is_always_eligible(self):
        self.assertTrue(eligibility.is_eligible(None, NOW))
        self.assertTrue(eligibility.is_eligible(None, NOW + timedelta(days=3650)))
        self.assertEqual(eligibility.days_until_eligible(None, NOW), 0)

    def test_boundaries(self):
        self.assertEqual(eligibility.days_until_eligible(NOW - timedelta(days=90), NOW), 0)
        self.assertEqual(eligibility.days_until_eligible(NOW - timedelta(days=89), NOW), 1)
        self.assertEqual(eligibility.days_until_eligible(NOW, NOW), 90)
        self.assertTrue(eligibility.is_eligible(NOW - timedelta(days=90), NOW))
        self.assertFalse(eligibility.is_eligible(NOW - timedelta(days=89), NOW))

    def test_partial_days_are_truncated(self):
        last = NOW - timedelta(days=89, hours=23, minutes=59)
        self.assertEqual(eligibility.days_until_eligible(last, NOW), 1)
        self.assertFalse(eligibility.is_eligible(last, NOW))

    def test_eligibility_is_monotonic_in_elapsed_time(self):
        last = NOW
        previous = False
        previous_days = None
        for elapsed in range(0, 200):
            current = eligibility.is_eligible(last, NOW + timedelta(days=elapsed))
            days_left = eligibility.days_until_eligible(last, NOW + timedelta(days=elapsed))
            self.assertFalse(previous and not current, f"eligibility dropped at day {elapsed}")
            if previous_days is not None:
                self.assertLessEqual(days_left, previous_days)
            self.assertGreaterEqual(days_left, 0)
            previous, previous_days = current, days_left

    def test_explicit_cooldown(self):
        last = NOW - timedelta(days=10)
        self.assertEqual(eligibility.days_until_eligible(last, NOW, cooldown_days=56), 46)
        self.assertTrue(eligibility.is_eligible(last, NOW, cooldown_days=10))

    @override_settings(DONATION_RECOVERY_DAYS=56)
    def test_cooldown_comes_from_settings(self):
        last = NOW - timedelta(days=50)
        self.assertEqual(eligibility.days_until_eligible(last, NOW), 6)
        self.assertEqual(eligibility.next_eligible_at(last), last + timedelta(days=56))

    def test_next_eligible_at(self):
        self.assertIsNone(eligibility.next_eligible_at(None))
        self.assertEqual(eligibility.next_eligible_at(NOW), NOW + timedelta(days=90))
