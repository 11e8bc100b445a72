import logging

from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from blood.services.repository import DjangoRepository
from blood.views import donor_api
from .models import BLOOD_GROUPS
from .services import eligibility
from .services.matching import search_donors

logger = logging.getLogger(__name__)


@require_GET
@donor_api
def donor_search_view(request, actor):
    blood_group = (request.GET.get('bloodGroup') or '').strip() or None
    location = (request.GET.get('location') or '').strip() or None

    if blood_group and blood_group not in BLOOD_GROUPS:
        return JsonResponse(
            {'error': 'BadRequest', 'message': f"Unknown blood group {blood_group!r}"},
            status=400,
        )

    matches = search_donors(
        DjangoRepository(),
        blood_group=blood_group,
        location=location,
        exclude_id=actor.pk,
    )
    logger.debug("Donor %s searched %s/%s: %s results", actor.pk, blood_group, location, len(matches))
    return JsonResponse([match.as_dict() for match in matches], safe=False)


@require_GET
@donor_api
def donor_eligibility_view(request, actor, pk):
    donor = DjangoRepository().get_donor(pk)
    now = timezone.now()
    next_eligible = eligibility.next_eligible_at(donor.last_donation_date)
    return JsonResponse({
        'donorId': donor.id,
        'eligible': eligibility.is_eligible(donor.last_donation_date, now),
        'daysUntilEligible': eligibility.days_until_eligible(donor.last_donation_date, now),
        'lastDonationDate': donor.last_donation_date.isoformat() if donor.last_donation_date else None,
        'nextEligibleAt': next_eligible.isoformat() if next_eligible else None,
    })
