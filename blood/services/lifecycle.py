"""Blood request lifecycle.

::

    pending --accept (donor)------> accepted --complete (requester)--> completed
    pending --reject (donor)------> rejected
    pending --cancel (requester)--> cancelled
    pending --complete (requester)> completed

``rejected``, ``cancelled`` and ``completed`` are terminal. Completing a
request is the only transition that touches the donor: it stamps the
donation date and folds the requester's rating into the donor's average,
in the same unit of work as the status change.

Every transition re-reads the request and writes through a conditional
update on the status it read, so of two racing callers exactly one wins
and the other gets ``InvalidTransition``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from django.utils import timezone

from donor.services import eligibility, ratings
from .errors import (
    Conflict,
    DonorNotEligible,
    DuplicatePending,
    InvalidTransition,
    SelfRequest,
    Unauthorized,
)
from .repository import (
    DjangoRepository,
    Repository,
    RequestRecord,
    STATUS_ACCEPTED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_REJECTED,
)

logger = logging.getLogger(__name__)


ACTION_CREATE = "CREATE"
ACTION_ACCEPT = "ACCEPT"
ACTION_REJECT = "REJECT"
ACTION_CANCEL = "CANCEL"
ACTION_COMPLETE = "COMPLETE"

ROLE_REQUESTER = "requester"
ROLE_DONOR = "donor"

HISTORY_STATUSES = (STATUS_ACCEPTED, STATUS_COMPLETED)


@dataclass(frozen=True)
class Transition:
    action: str
    request: RequestRecord
    actor_id: object
    status_before: str


class RequestLifecycle:
    def __init__(
        self,
        repository: Optional[Repository] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        on_transition: Optional[Callable[[Transition], None]] = None,
    ):
        self.repository = repository or DjangoRepository()
        self.clock = clock or timezone.now
        self.on_transition = on_transition

    def _notify(self, action: str, record: RequestRecord, actor_id, status_before: str) -> None:
        logger.info(
            "Request %s %s by %s: %s -> %s",
            record.id,
            action.lower(),
            actor_id,
            status_before or "-",
            record.status,
        )
        if self.on_transition is not None:
            self.on_transition(Transition(action, record, actor_id, status_before))

    def create(self, requester_id, donor_id, now: Optional[datetime] = None) -> RequestRecord:
        now = now or self.clock()
        if requester_id == donor_id:
            raise SelfRequest()

        repo = self.repository
        with repo.atomic():
            requester = repo.get_donor(requester_id)
            donor = repo.get_donor(donor_id)
            if not requester.is_active:
                raise Unauthorized("Suspended accounts cannot send blood requests")
            if not donor.is_active:
                raise Unauthorized("This donor is not accepting requests")

            days_left = eligibility.days_until_eligible(donor.last_donation_date, now)
            if days_left > 0:
                logger.info("Donor %s still in recovery for %s days", donor_id, days_left)
                raise DonorNotEligible(days_left)

            if repo.find_pending_request(requester_id, donor_id) is not None:
                raise DuplicatePending()

            record = repo.insert_request(
                RequestRecord(
                    id=None,
                    requester_id=requester_id,
                    donor_id=donor_id,
                    status=STATUS_PENDING,
                    blood_group=donor.blood_group,
                    location=donor.location,
                )
            )

        self._notify(ACTION_CREATE, record, requester_id, "")
        return record

    def _authorize(self, record: RequestRecord, actor_id, role: str, verb: str) -> None:
        allowed = record.donor_id if role == ROLE_DONOR else record.requester_id
        if actor_id == allowed:
            return
        if verb == "complete" and actor_id == record.donor_id:
            raise Unauthorized("Only the requester can mark this request as completed")
        raise Unauthorized(f"Not authorized to {verb} this request")

    def _ensure_status(self, record: RequestRecord, allowed: Iterable[str], verb: str) -> None:
        allowed = tuple(allowed)
        if record.status not in allowed:
            raise InvalidTransition(
                f"Only {' or '.join(allowed)} requests can be {_past_tense(verb)} (request is {record.status})"
            )

    def _write_status(self, record: RequestRecord, **fields) -> RequestRecord:
        try:
            return self.repository.update_request_status(record.id, record.status, **fields)
        except Conflict as exc:
            logger.warning("Lost race on request %s: %s", record.id, exc)
            raise InvalidTransition(
                f"Request changed to {exc.actual_status} while it was being updated"
            ) from exc

    def _simple_transition(
        self,
        request_id,
        actor_id,
        *,
        action: str,
        verb: str,
        role: str,
        new_status: str,
        **fields,
    ) -> RequestRecord:
        repo = self.repository
        with repo.atomic():
            current = repo.get_request(request_id)
            self._authorize(current, actor_id, role, verb)
            self._ensure_status(current, (STATUS_PENDING,), verb)
            updated = self._write_status(current, status=new_status, **fields)

        self._notify(action, updated, actor_id, current.status)
        return updated

    def accept(self, request_id, actor_id) -> RequestRecord:
        return self._simple_transition(
            request_id,
            actor_id,
            action=ACTION_ACCEPT,
            verb="accept",
            role=ROLE_DONOR,
            new_status=STATUS_ACCEPTED,
        )

    def reject(self, request_id, actor_id, note: Optional[str] = None) -> RequestRecord:
        return self._simple_transition(
            request_id,
            actor_id,
            action=ACTION_REJECT,
            verb="reject",
            role=ROLE_DONOR,
            new_status=STATUS_REJECTED,
            note=note or "",
        )

    def cancel(self, request_id, actor_id, note: Optional[str] = None) -> RequestRecord:
        fields = {"note": note} if note is not None else {}
        return self._simple_transition(
            request_id,
            actor_id,
            action=ACTION_CANCEL,
            verb="cancel",
            role=ROLE_REQUESTER,
            new_status=STATUS_CANCELLED,
            **fields,
        )

    def complete(self, request_id, actor_id, rating, now: Optional[datetime] = None) -> RequestRecord:
        now = now or self.clock()
        repo = self.repository
        with repo.atomic():
            current = repo.get_request(request_id)
            self._authorize(current, actor_id, ROLE_REQUESTER, "complete")
            self._ensure_status(current, (STATUS_PENDING, STATUS_ACCEPTED), "complete")
            rating = ratings.validate_rating(rating)

            updated = self._write_status(current, status=STATUS_COMPLETED, rating=rating)

            donor = repo.get_donor(current.donor_id, for_update=True)
            avg_rating, rating_count = ratings.fold(donor.avg_rating, donor.rating_count, rating)
            repo.update_donor(
                donor.id,
                last_donation_date=now,
                avg_rating=avg_rating,
                rating_count=rating_count,
            )
            logger.info(
                "Donor %s donated at %s; rating now %.2f over %s ratings",
                donor.id,
                now.isoformat(),
                avg_rating,
                rating_count,
            )

        self._notify(ACTION_COMPLETE, updated, actor_id, current.status)
        return updated

    def requests_for(self, participant_id, direction: Optional[str] = None, limit: int = 100) -> List[RequestRecord]:
        return self.repository.find_requests(participant_id, direction=direction, limit=limit)

    def donation_history(self, participant_id, limit: int = 100) -> List[RequestRecord]:
        return self.repository.find_requests(
            participant_id,
            statuses=HISTORY_STATUSES,
            order_by="-updated_at",
            limit=limit,
        )


def _past_tense(verb: str) -> str:
    if verb == "cancel":
        return "cancelled"
    return verb + ("d" if verb.endswith("e") else "ed")
