"""Donation cooldown rules.

A donor may donate again once ``DONATION_RECOVERY_DAYS`` whole days have
elapsed since their last donation. Elapsed time is truncated to whole days,
so a donation 89 days and 23 hours ago still counts as 89 days.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings


DEFAULT_RECOVERY_DAYS = 90


def get_recovery_days() -> int:
    return int(getattr(settings, "DONATION_RECOVERY_DAYS", DEFAULT_RECOVERY_DAYS))


def days_since(last_donation_date: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed since ``last_donation_date``, or None if never donated."""

    if last_donation_date is None:
        return None
    # timedelta.days floors, which is the truncation we want for past dates.
    return (now - last_donation_date).days


def days_until_eligible(
    last_donation_date: Optional[datetime],
    now: datetime,
    *,
    cooldown_days: Optional[int] = None,
) -> int:
    if cooldown_days is None:
        cooldown_days = get_recovery_days()
    elapsed = days_since(last_donation_date, now)
    if elapsed is None:
        return 0
    return max(0, cooldown_days - elapsed)


def is_eligible(
    last_donation_date: Optional[datetime],
    now: datetime,
    *,
    cooldown_days: Optional[int] = None,
) -> bool:
    return days_until_eligible(last_donation_date, now, cooldown_days=cooldown_days) == 0


def next_eligible_at(
    last_donation_date: Optional[datetime],
    *,
    cooldown_days: Optional[int] = None,
) -> Optional[datetime]:
    if last_donation_date is None:
        return None
    if cooldown_days is None:
        cooldown_days = get_recovery_days()
    return last_donation_date + timedelta(days=cooldown_days)
