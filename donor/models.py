from django.db import models
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone

from .services import eligibility


BLOOD_GROUP_CHOICES = [
    ('A+', 'A+'),
    ('A-', 'A-'),
    ('B+', 'B+'),
    ('B-', 'B-'),
    ('AB+', 'AB+'),
    ('AB-', 'AB-'),
    ('O+', 'O+'),
    ('O-', 'O-'),
]

BLOOD_GROUPS = tuple(value for value, _ in BLOOD_GROUP_CHOICES)


class Donor(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_SUSPENDED = 'suspended'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Active'),
        (STATUS_SUSPENDED, 'Suspended'),
    )

    user = models.OneToOneField(User, on_delete=models.CASCADE)

    blood_group = models.CharField(max_length=3, choices=BLOOD_GROUP_CHOICES)
    location = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)

    # Donation recovery tracking; null means the donor has never donated
    last_donation_date = models.DateTimeField(null=True, blank=True)

    # Running mean of completed-request ratings
    avg_rating = models.FloatField(
        default=0.0,
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    rating_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']

    @property
    def get_name(self):
        return (self.user.first_name + " " + self.user.last_name).strip() or self.user.username

    def __str__(self):
        return f"{self.get_name} ({self.blood_group})"

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    @property
    def is_eligible(self) -> bool:
        return eligibility.is_eligible(self.last_donation_date, timezone.now())

    @property
    def days_until_eligible(self) -> int:
        return eligibility.days_until_eligible(self.last_donation_date, timezone.now())

    @property
    def next_eligible_donation_date(self):
        return eligibility.next_eligible_at(self.last_donation_date)
