import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from donor import models as dmodels
from . import tasks
from .services import errors
from .services.lifecycle import RequestLifecycle
from .services.repository import DIRECTION_RECEIVED, DIRECTION_SENT, DjangoRepository

logger = logging.getLogger(__name__)


ERROR_STATUS = {
    errors.SelfRequest: 400,
    errors.DonorNotEligible: 400,
    errors.DuplicatePending: 400,
    errors.InvalidRating: 400,
    errors.Unauthorized: 403,
    errors.NotFound: 404,
    errors.InvalidTransition: 409,
}


def get_lifecycle():
    return RequestLifecycle(DjangoRepository(), on_transition=tasks.audit_transition)


def request_to_dict(record):
    return {
        'id': record.id,
        'requesterId': record.requester_id,
        'donorId': record.donor_id,
        'bloodGroup': record.blood_group,
        'location': record.location,
        'status': record.status,
        'note': record.note,
        'rating': record.rating,
        'createdAt': record.created_at.isoformat() if record.created_at else None,
        'updatedAt': record.updated_at.isoformat() if record.updated_at else None,
    }


def error_response(exc):
    status = ERROR_STATUS.get(type(exc), 400)
    return JsonResponse(exc.as_dict(), status=status)


def _json_body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def donor_api(view):
    """Resolve the logged-in user's donor profile and translate engine errors."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'error': 'Unauthorized', 'message': 'Login required'}, status=403)
        try:
            actor = dmodels.Donor.objects.get(user=request.user)
        except dmodels.Donor.DoesNotExist:
            logger.warning("User %s has no donor profile", request.user.username)
            return JsonResponse({'error': 'Unauthorized', 'message': 'Donor profile required'}, status=403)
        try:
            return view(request, actor, *args, **kwargs)
        except errors.LifecycleError as exc:
            logger.info("%s %s rejected for donor %s: %s", request.method, request.path, actor.pk, exc)
            return error_response(exc)

    return wrapper


def _bad_request(message):
    return JsonResponse({'error': 'BadRequest', 'message': message}, status=400)


def _parse_rating(value):
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _parse_id(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


@require_POST
@donor_api
def create_request_view(request, actor):
    data = _json_body(request)
    if data is None:
        return _bad_request('Request body must be a JSON object')
    donor_id = _parse_id(data.get('donorId'))
    if donor_id is None:
        return _bad_request('donorId must be an integer')

    record = get_lifecycle().create(actor.pk, donor_id)
    return JsonResponse(
        {'message': 'Blood request sent successfully', 'requestId': record.id, 'request': request_to_dict(record)},
        status=201,
    )


@require_POST
@donor_api
def accept_request_view(request, actor, pk):
    record = get_lifecycle().accept(pk, actor.pk)
    return JsonResponse(request_to_dict(record))


@require_POST
@donor_api
def reject_request_view(request, actor, pk):
    data = _json_body(request)
    if data is None:
        return _bad_request('Request body must be a JSON object')
    record = get_lifecycle().reject(pk, actor.pk, note=data.get('note'))
    return JsonResponse(request_to_dict(record))


@require_POST
@donor_api
def cancel_request_view(request, actor, pk):
    data = _json_body(request)
    if data is None:
        return _bad_request('Request body must be a JSON object')
    record = get_lifecycle().cancel(pk, actor.pk, note=data.get('note'))
    return JsonResponse(request_to_dict(record))


@require_POST
@donor_api
def complete_request_view(request, actor, pk):
    data = _json_body(request)
    if data is None:
        return _bad_request('Request body must be a JSON object')
    record = get_lifecycle().complete(pk, actor.pk, _parse_rating(data.get('rating')))
    return JsonResponse(request_to_dict(record))


@require_GET
@donor_api
def my_requests_view(request, actor):
    direction = request.GET.get('type') or None
    if direction not in (None, DIRECTION_SENT, DIRECTION_RECEIVED):
        return _bad_request("type must be 'sent' or 'received'")
    records = get_lifecycle().requests_for(actor.pk, direction=direction)
    return JsonResponse([request_to_dict(r) for r in records], safe=False)


@require_GET
@donor_api
def donation_history_view(request, actor):
    records = get_lifecycle().donation_history(actor.pk)
    return JsonResponse([request_to_dict(r) for r in records], safe=False)
