import logging

from celery import shared_task
from django.db import transaction

from blood import models


logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(Exception,), retry_backoff=True, retry_kwargs={'max_retries': 3})
def record_request_audit(
    self,
    request_id: int,
    action: str,
    actor_id=None,
    status_before: str = "",
    status_after: str = "",
    note: str = "",
    rating=None,
) -> int:
    entry = models.RequestAuditLog.objects.create(
        request_id=request_id,
        action=action,
        actor_id=actor_id,
        status_before=status_before or "",
        status_after=status_after or "",
        note=(note or "")[:500],
        rating=rating,
    )
    return entry.pk


def audit_transition(transition) -> None:
    """Queue an audit row for a lifecycle transition once the transaction commits."""

    record = transition.request
    kwargs = {
        'request_id': record.id,
        'action': transition.action,
        'actor_id': transition.actor_id,
        'status_before': transition.status_before,
        'status_after': record.status,
        'note': record.note,
        'rating': record.rating,
    }
    transaction.on_commit(lambda: _dispatch_audit(kwargs))
    logger.debug("Queued audit for request %s (%s)", record.id, transition.action)


def _dispatch_audit(kwargs) -> None:
    # Runs after the transition committed; failures are logged, never raised.
    try:
        record_request_audit.delay(**kwargs)
    except Exception:
        logger.exception("Failed to queue audit for request %s (%s)", kwargs['request_id'], kwargs['action'])
