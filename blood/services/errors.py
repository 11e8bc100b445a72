"""Errors raised by the request lifecycle engine.

Every error carries a stable ``code`` so the HTTP layer can translate it
without inspecting messages. None of them is retried by the engine.
"""

from __future__ import annotations

from typing import Optional


class LifecycleError(Exception):
    code = "LifecycleError"
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def as_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class SelfRequest(LifecycleError):
    code = "SelfRequest"
    default_message = "You cannot send a blood request to yourself"


class DonorNotEligible(LifecycleError):
    code = "DonorNotEligible"

    def __init__(self, days_until_eligible: int, message: Optional[str] = None):
        super().__init__(
            message
            or f"Donor is not eligible to donate yet. Please wait {days_until_eligible} more days."
        )
        self.days_until_eligible = days_until_eligible

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["daysUntilEligible"] = self.days_until_eligible
        return data


class DuplicatePending(LifecycleError):
    code = "DuplicatePending"
    default_message = "A pending request to this user already exists"


class NotFound(LifecycleError):
    code = "NotFound"
    default_message = "Not found"


class Unauthorized(LifecycleError):
    code = "Unauthorized"
    default_message = "Not authorized to perform this action"


class InvalidTransition(LifecycleError):
    code = "InvalidTransition"
    default_message = "This request can no longer be changed"


class InvalidRating(LifecycleError):
    code = "InvalidRating"
    default_message = "Rating (1-5) is required when the requester completes"


class Conflict(Exception):
    """A conditional update found the record in a different state than expected."""

    def __init__(self, request_id, expected_status: str, actual_status: str):
        super().__init__(
            f"Request {request_id} is {actual_status!r}, expected {expected_status!r}"
        )
        self.request_id = request_id
        self.expected_status = expected_status
        self.actual_status = actual_status
