from datetime import datetime, timedelta, timezone as dt_timezone

from django.contrib.auth.models import User
from django.test import SimpleTestCase, TestCase

from blood.services.repository import DjangoRepository, DonorRecord, InMemoryRepository
from donor.models import Donor
from donor.services.matching import search_donors


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=dt_timezone.utc)


class InMemorySearchTests(SimpleTestCase):
    def setUp(self):
        self.repo = InMemoryRepository([
            DonorRecord(id=1, blood_group="O+", location="Mirpur, Dhaka"),
            DonorRecord(id=2, blood_group="O+", location="Dhanmondi, DHAKA", last_donation_date=NOW - timedelta(days=30)),
            DonorRecord(id=3, blood_group="A-", location="Chittagong", last_donation_date=NOW - timedelta(days=120)),
            DonorRecord(id=4, blood_group="O+", location="Uttara, Dhaka", status="suspended"),
            DonorRecord(id=5, blood_group="O+", location="Gulshan, Dhaka", avg_rating=13 / 3, rating_count=3),
        ])

    def _ids(self, matches):
        return sorted(match.donor.id for match in matches)

    def test_excludes_ineligible_suspended_and_caller(self):
        matches = search_donors(self.repo, blood_group="O+", location="dhaka", exclude_id=1, now=NOW)
        self.assertEqual(self._ids(matches), [5])

    def test_location_is_case_insensitive_substring(self):
        matches = search_donors(self.repo, location="CHITTA", now=NOW)
        self.assertEqual(self._ids(matches), [3])

    def test_no_filters_returns_all_eligible_active_donors(self):
        matches = search_donors(self.repo, now=NOW)
        self.assertEqual(self._ids(matches), [1, 3, 5])

    def test_donor_reappears_after_cooldown(self):
        matches = search_donors(self.repo, blood_group="O+", now=NOW + timedelta(days=60))
        self.assertIn(2, self._ids(matches))

    def test_results_are_annotated(self):
        matches = {m.donor.id: m for m in search_donors(self.repo, blood_group="O+", now=NOW)}
        self.assertTrue(all(m.eligible and m.days_until_eligible == 0 for m in matches.values()))
        self.assertEqual(matches[5].avg_rating, 4.3)
        self.assertEqual(matches[5].rating_count, 3)
        self.assertIsNone(matches[1].avg_rating)

        payload = matches[5].as_dict()
        self.assertEqual(payload["bloodGroup"], "O+")
        self.assertTrue(payload["eligible"])
        self.assertEqual(payload["daysUntilEligible"], 0)


class DjangoSearchTests(TestCase):
    def setUp(self):
        self.user_counter = 0

    def _create_donor(self, **kwargs):
        self.user_counter += 1
        user = User.objects.create_user(username=f"donor{self.user_counter}", password="pass1234")
        defaults = {"blood_group": "B+", "location": "Sylhet"}
        defaults.update(kwargs)
        return Donor.objects.create(user=user, **defaults)

    def test_search_uses_database_filters(self):
        now = datetime.now(dt_timezone.utc)
        caller = self._create_donor()
        eligible = self._create_donor(location="Zindabazar, Sylhet")
        self._create_donor(location="Sylhet Sadar", last_donation_date=now - timedelta(days=5))
        self._create_donor(location="sylhet", status=Donor.STATUS_SUSPENDED)
        self._create_donor(blood_group="AB-", location="Sylhet")

        matches = search_donors(DjangoRepository(), blood_group="B+", location="SYLHET", exclude_id=caller.pk, now=now)

        self.assertEqual([m.donor.id for m in matches], [eligible.pk])
        self.assertEqual(matches[0].donor.name, eligible.user.username)
