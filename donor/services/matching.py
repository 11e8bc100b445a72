from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from django.utils import timezone

from blood.services.repository import DonorFilter, DonorRecord, Repository
from . import eligibility

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DonorMatch:
    donor: DonorRecord
    eligible: bool
    days_until_eligible: int

    @property
    def avg_rating(self) -> Optional[float]:
        # Unrated donors report no average rather than 0.
        if not self.donor.rating_count:
            return None
        return round(self.donor.avg_rating, 1)

    @property
    def rating_count(self) -> int:
        return self.donor.rating_count

    def as_dict(self) -> dict:
        donor = self.donor
        return {
            "id": donor.id,
            "name": donor.name,
            "bloodGroup": donor.blood_group,
            "location": donor.location,
            "lastDonationDate": donor.last_donation_date.isoformat() if donor.last_donation_date else None,
            "avgRating": self.avg_rating,
            "ratingCount": self.rating_count,
            "eligible": self.eligible,
            "daysUntilEligible": self.days_until_eligible,
        }


def search_donors(
    repository: Repository,
    *,
    blood_group: Optional[str] = None,
    location: Optional[str] = None,
    exclude_id=None,
    now: Optional[datetime] = None,
) -> List[DonorMatch]:
    """Active donors matching the filters who may donate right now.

    Donors still inside their recovery window are dropped, so every
    returned match is ``eligible`` with zero days to wait.
    """

    now = now or timezone.now()
    location = (location or "").strip() or None
    candidates = repository.find_donors(
        DonorFilter(
            blood_group=blood_group or None,
            location=location,
            exclude_id=exclude_id,
            status="active",
        )
    )

    matches: List[DonorMatch] = []
    for donor in candidates:
        # Suspended donors never match, whatever the adapter returned.
        if not donor.is_active or donor.id == exclude_id:
            continue
        if not eligibility.is_eligible(donor.last_donation_date, now):
            continue
        matches.append(DonorMatch(donor=donor, eligible=True, days_until_eligible=0))

    logger.debug(
        "Donor search blood_group=%s location=%s: %s of %s candidates eligible",
        blood_group,
        location,
        len(matches),
        len(candidates),
    )
    return matches
