"""Persistence boundary for the lifecycle engine and the matching query.

The engine only ever sees ``DonorRecord`` and ``RequestRecord``. Two
adapters implement ``Repository``:

``DjangoRepository``
    Backed by the ORM models of the ``donor`` and ``blood`` apps. Status
    transitions are conditional updates keyed on the expected status, and
    donor rows can be locked with ``select_for_update``.

``InMemoryRepository``
    Dict-backed reference adapter guarded by a re-entrant lock. Used by the
    engine's unit tests and handy for scripting without a database.
"""

from __future__ import annotations

import abc
import itertools
import logging
import threading
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from .errors import Conflict, DuplicatePending, NotFound

logger = logging.getLogger(__name__)


STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"

REQUEST_STATUSES = (
    STATUS_PENDING,
    STATUS_ACCEPTED,
    STATUS_REJECTED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
)

DIRECTION_SENT = "sent"
DIRECTION_RECEIVED = "received"

DONOR_FIELDS = frozenset({"last_donation_date", "avg_rating", "rating_count", "status", "location"})
REQUEST_FIELDS = frozenset({"status", "note", "rating"})


@dataclass(frozen=True)
class DonorRecord:
    id: object
    blood_group: str
    location: str = ""
    last_donation_date: Optional[datetime] = None
    avg_rating: float = 0.0
    rating_count: int = 0
    status: str = "active"
    name: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True)
class RequestRecord:
    id: object
    requester_id: object
    donor_id: object
    status: str = STATUS_PENDING
    blood_group: str = ""
    location: str = ""
    note: str = ""
    rating: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class DonorFilter:
    blood_group: Optional[str] = None
    location: Optional[str] = None
    exclude_id: object = None
    status: Optional[str] = "active"


def _check_fields(fields: dict, allowed: frozenset, kind: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update {kind} fields: {', '.join(sorted(unknown))}")


class Repository(abc.ABC):
    """Storage contract consumed by the engine."""

    @abc.abstractmethod
    def atomic(self):
        """Context manager grouping several calls into one unit of work."""

    @abc.abstractmethod
    def get_donor(self, donor_id, *, for_update: bool = False) -> DonorRecord:
        ...

    @abc.abstractmethod
    def update_donor(self, donor_id, **fields) -> DonorRecord:
        ...

    @abc.abstractmethod
    def find_donors(self, donor_filter: DonorFilter) -> List[DonorRecord]:
        ...

    @abc.abstractmethod
    def get_request(self, request_id) -> RequestRecord:
        ...

    @abc.abstractmethod
    def insert_request(self, record: RequestRecord) -> RequestRecord:
        ...

    @abc.abstractmethod
    def update_request_status(self, request_id, expected_status: str, **fields) -> RequestRecord:
        """Apply ``fields`` only if the request is still in ``expected_status``.

        Raises ``Conflict`` when the status moved on, ``NotFound`` when the
        request does not exist.
        """

    @abc.abstractmethod
    def find_pending_request(self, requester_id, donor_id) -> Optional[RequestRecord]:
        ...

    @abc.abstractmethod
    def find_requests(
        self,
        participant_id,
        *,
        direction: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
        order_by: str = "-created_at",
        limit: int = 100,
    ) -> List[RequestRecord]:
        ...

    @abc.abstractmethod
    def count_requests_by_status(self) -> Dict[str, int]:
        ...

    @abc.abstractmethod
    def count_donors_by_blood_group(self) -> Dict[str, int]:
        ...


class DjangoRepository(Repository):
    def atomic(self):
        return transaction.atomic()

    @staticmethod
    def _donor_record(donor) -> DonorRecord:
        return DonorRecord(
            id=donor.pk,
            blood_group=donor.blood_group,
            location=donor.location or "",
            last_donation_date=donor.last_donation_date,
            avg_rating=float(donor.avg_rating or 0.0),
            rating_count=int(donor.rating_count or 0),
            status=donor.status,
            name=donor.get_name,
        )

    @staticmethod
    def _request_record(blood_request) -> RequestRecord:
        return RequestRecord(
            id=blood_request.pk,
            requester_id=blood_request.requester_id,
            donor_id=blood_request.donor_id,
            status=blood_request.status,
            blood_group=blood_request.blood_group,
            location=blood_request.location,
            note=blood_request.note,
            rating=blood_request.rating,
            created_at=blood_request.created_at,
            updated_at=blood_request.updated_at,
        )

    def get_donor(self, donor_id, *, for_update: bool = False) -> DonorRecord:
        from donor.models import Donor

        qs = Donor.objects.select_related("user")
        if for_update:
            # select_related + select_for_update would also lock the auth row.
            qs = Donor.objects.select_for_update(of=("self",)).select_related("user")
        try:
            return self._donor_record(qs.get(pk=donor_id))
        except (Donor.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Donor {donor_id} not found")

    def update_donor(self, donor_id, **fields) -> DonorRecord:
        from donor.models import Donor

        _check_fields(fields, DONOR_FIELDS, "donor")
        updated = Donor.objects.filter(pk=donor_id).update(**fields)
        if not updated:
            raise NotFound(f"Donor {donor_id} not found")
        logger.debug("Updated donor %s fields %s", donor_id, sorted(fields))
        return self.get_donor(donor_id)

    def find_donors(self, donor_filter: DonorFilter) -> List[DonorRecord]:
        from donor.models import Donor

        qs = Donor.objects.select_related("user").order_by("id")
        if donor_filter.status:
            qs = qs.filter(status=donor_filter.status)
        if donor_filter.blood_group:
            qs = qs.filter(blood_group=donor_filter.blood_group)
        if donor_filter.location:
            qs = qs.filter(location__icontains=donor_filter.location)
        if donor_filter.exclude_id is not None:
            qs = qs.exclude(pk=donor_filter.exclude_id)
        return [self._donor_record(donor) for donor in qs]

    def get_request(self, request_id) -> RequestRecord:
        from blood.models import BloodRequest

        try:
            return self._request_record(BloodRequest.objects.get(pk=request_id))
        except (BloodRequest.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Request {request_id} not found")

    def insert_request(self, record: RequestRecord) -> RequestRecord:
        from blood.models import BloodRequest

        try:
            # Savepoint so a unique violation does not poison an outer transaction.
            with transaction.atomic():
                blood_request = BloodRequest.objects.create(
                    requester_id=record.requester_id,
                    donor_id=record.donor_id,
                    status=record.status,
                    blood_group=record.blood_group,
                    location=record.location,
                    note=record.note or "",
                    rating=record.rating,
                )
        except IntegrityError:
            logger.info(
                "Pending request already exists for requester=%s donor=%s",
                record.requester_id,
                record.donor_id,
            )
            raise DuplicatePending()
        return self._request_record(blood_request)

    def update_request_status(self, request_id, expected_status: str, **fields) -> RequestRecord:
        from blood.models import BloodRequest

        _check_fields(fields, REQUEST_FIELDS, "request")
        updated = BloodRequest.objects.filter(pk=request_id, status=expected_status).update(
            updated_at=timezone.now(),
            **fields,
        )
        if not updated:
            current = BloodRequest.objects.filter(pk=request_id).values_list("status", flat=True).first()
            if current is None:
                raise NotFound(f"Request {request_id} not found")
            raise Conflict(request_id, expected_status, current)
        return self.get_request(request_id)

    def find_pending_request(self, requester_id, donor_id) -> Optional[RequestRecord]:
        from blood.models import BloodRequest

        blood_request = BloodRequest.objects.filter(
            requester_id=requester_id,
            donor_id=donor_id,
            status=STATUS_PENDING,
        ).first()
        return self._request_record(blood_request) if blood_request else None

    def find_requests(
        self,
        participant_id,
        *,
        direction: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
        order_by: str = "-created_at",
        limit: int = 100,
    ) -> List[RequestRecord]:
        from blood.models import BloodRequest

        if direction == DIRECTION_SENT:
            qs = BloodRequest.objects.filter(requester_id=participant_id)
        elif direction == DIRECTION_RECEIVED:
            qs = BloodRequest.objects.filter(donor_id=participant_id)
        else:
            qs = BloodRequest.objects.filter(Q(requester_id=participant_id) | Q(donor_id=participant_id))
        if statuses:
            qs = qs.filter(status__in=list(statuses))
        qs = qs.order_by(order_by, "-id")[:limit]
        return [self._request_record(blood_request) for blood_request in qs]

    def count_requests_by_status(self) -> Dict[str, int]:
        from blood.models import BloodRequest

        counts = {status: 0 for status in REQUEST_STATUSES}
        for row in BloodRequest.objects.values("status").annotate(total=Count("id")):
            counts[row["status"]] = row["total"]
        return counts

    def count_donors_by_blood_group(self) -> Dict[str, int]:
        from donor.models import Donor, BLOOD_GROUPS

        counts = {group: 0 for group in BLOOD_GROUPS}
        for row in Donor.objects.values("blood_group").annotate(total=Count("id")):
            counts[row["blood_group"]] = row["total"]
        return counts


class InMemoryRepository(Repository):
    def __init__(self, donors: Iterable[DonorRecord] = ()):
        self._lock = threading.RLock()
        self._donors: Dict[object, DonorRecord] = {}
        self._requests: Dict[object, RequestRecord] = {}
        self._ids = itertools.count(1)
        for donor in donors:
            self.add_donor(donor)

    def add_donor(self, donor: DonorRecord) -> DonorRecord:
        with self._lock:
            self._donors[donor.id] = donor
        return donor

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            yield

    def get_donor(self, donor_id, *, for_update: bool = False) -> DonorRecord:
        with self._lock:
            try:
                return self._donors[donor_id]
            except KeyError:
                raise NotFound(f"Donor {donor_id} not found")

    def update_donor(self, donor_id, **fields) -> DonorRecord:
        _check_fields(fields, DONOR_FIELDS, "donor")
        with self._lock:
            donor = replace(self.get_donor(donor_id), **fields)
            self._donors[donor_id] = donor
            return donor

    def find_donors(self, donor_filter: DonorFilter) -> List[DonorRecord]:
        needle = (donor_filter.location or "").lower()
        with self._lock:
            donors = list(self._donors.values())
        return [
            donor
            for donor in donors
            if (not donor_filter.status or donor.status == donor_filter.status)
            and (not donor_filter.blood_group or donor.blood_group == donor_filter.blood_group)
            and (not needle or needle in (donor.location or "").lower())
            and (donor_filter.exclude_id is None or donor.id != donor_filter.exclude_id)
        ]

    def get_request(self, request_id) -> RequestRecord:
        with self._lock:
            try:
                return self._requests[request_id]
            except KeyError:
                raise NotFound(f"Request {request_id} not found")

    def insert_request(self, record: RequestRecord) -> RequestRecord:
        with self._lock:
            if record.status == STATUS_PENDING and self.find_pending_request(record.requester_id, record.donor_id):
                raise DuplicatePending()
            now = timezone.now()
            stored = replace(
                record,
                id=next(self._ids),
                created_at=record.created_at or now,
                updated_at=record.updated_at or now,
            )
            self._requests[stored.id] = stored
            return stored

    def update_request_status(self, request_id, expected_status: str, **fields) -> RequestRecord:
        _check_fields(fields, REQUEST_FIELDS, "request")
        with self._lock:
            current = self.get_request(request_id)
            if current.status != expected_status:
                raise Conflict(request_id, expected_status, current.status)
            stored = replace(current, updated_at=timezone.now(), **fields)
            self._requests[request_id] = stored
            return stored

    def find_pending_request(self, requester_id, donor_id) -> Optional[RequestRecord]:
        with self._lock:
            for record in self._requests.values():
                if (
                    record.requester_id == requester_id
                    and record.donor_id == donor_id
                    and record.status == STATUS_PENDING
                ):
                    return record
        return None

    def find_requests(
        self,
        participant_id,
        *,
        direction: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
        order_by: str = "-created_at",
        limit: int = 100,
    ) -> List[RequestRecord]:
        def involved(record: RequestRecord) -> bool:
            if direction == DIRECTION_SENT:
                return record.requester_id == participant_id
            if direction == DIRECTION_RECEIVED:
                return record.donor_id == participant_id
            return participant_id in (record.requester_id, record.donor_id)

        with self._lock:
            records = [
                record
                for record in self._requests.values()
                if involved(record) and (not statuses or record.status in statuses)
            ]
        field = order_by.lstrip("-")
        records.sort(key=lambda r: (getattr(r, field), r.id), reverse=order_by.startswith("-"))
        return records[:limit]

    def count_requests_by_status(self) -> Dict[str, int]:
        counts = {status: 0 for status in REQUEST_STATUSES}
        with self._lock:
            counts.update(Counter(record.status for record in self._requests.values()))
        return counts

    def count_donors_by_blood_group(self) -> Dict[str, int]:
        from donor.models import BLOOD_GROUPS

        counts = {group: 0 for group in BLOOD_GROUPS}
        with self._lock:
            counts.update(Counter(donor.blood_group for donor in self._donors.values()))
        return counts
