from io import StringIO

from django.contrib.auth.models import User
from django.core.management import call_command
from django.test import TestCase

from blood.services.lifecycle import RequestLifecycle
from donor.models import Donor


class RequestStatsCommandTests(TestCase):
    def setUp(self):
        self.donors = [
            Donor.objects.create(
                user=User.objects.create_user(username=f"donor{i}", password="pass1234"),
                blood_group=group,
            )
            for i, group in enumerate(["A+", "A+", "O-"])
        ]
        lifecycle = RequestLifecycle()
        first = lifecycle.create(self.donors[0].pk, self.donors[2].pk)
        lifecycle.create(self.donors[1].pk, self.donors[2].pk)
        lifecycle.reject(first.id, self.donors[2].pk, note="busy")

    def test_prints_counts(self):
        out = StringIO()
        call_command("request_stats", stdout=out)
        output = out.getvalue()
        self.assertIn("Active requests: 1", output)
        self.assertIn("Total requests: 2", output)
        self.assertIn("- rejected: 1", output)
        self.assertIn("- completed: 0", output)
        self.assertIn("Total donors: 3", output)
        self.assertIn("- A+: 2", output)

    def test_skip_empty(self):
        out = StringIO()
        call_command("request_stats", skip_empty=True, stdout=out)
        output = out.getvalue()
        self.assertNotIn("- completed: 0", output)
        self.assertNotIn("- AB+: 0", output)
        self.assertIn("- O-: 1", output)
