from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Q

from donor import models as dmodels


class BloodRequest(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_COMPLETED, 'Completed'),
    )

    requester = models.ForeignKey(dmodels.Donor, on_delete=models.CASCADE, related_name='sent_requests')
    donor = models.ForeignKey(dmodels.Donor, on_delete=models.CASCADE, related_name='received_requests')

    # Snapshot of the requested donor at creation time
    blood_group = models.CharField(max_length=3, choices=dmodels.BLOOD_GROUP_CHOICES)
    location = models.CharField(max_length=255, blank=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    note = models.CharField(max_length=500, blank=True, default='')
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        help_text="Set by the requester when the request is completed.",
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['requester', 'donor'],
                condition=Q(status='pending'),
                name='unique_pending_request_per_pair',
            ),
        ]

    def __str__(self):
        return f"Request {self.pk}: {self.requester_id} -> {self.donor_id} ({self.status})"


class RequestAuditLog(models.Model):
    ACTION_CREATE = 'CREATE'
    ACTION_ACCEPT = 'ACCEPT'
    ACTION_REJECT = 'REJECT'
    ACTION_CANCEL = 'CANCEL'
    ACTION_COMPLETE = 'COMPLETE'
    ACTION_CHOICES = (
        (ACTION_CREATE, 'Create Request'),
        (ACTION_ACCEPT, 'Accept Request'),
        (ACTION_REJECT, 'Reject Request'),
        (ACTION_CANCEL, 'Cancel Request'),
        (ACTION_COMPLETE, 'Complete Request'),
    )

    action = models.CharField(max_length=16, choices=ACTION_CHOICES)
    request_id = models.PositiveBigIntegerField(db_index=True)
    actor = models.ForeignKey(dmodels.Donor, null=True, blank=True, on_delete=models.SET_NULL)
    status_before = models.CharField(max_length=10, blank=True)
    status_after = models.CharField(max_length=10, blank=True)
    note = models.CharField(max_length=500, blank=True)
    rating = models.PositiveSmallIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = "Request Audit Log"
        verbose_name_plural = "Request Audit Logs"

    def __str__(self):
        return f"{self.action} request {self.request_id} ({self.status_before or '-'} -> {self.status_after})"
