from __future__ import annotations

from typing import Tuple

from blood.services.errors import InvalidRating


MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating) -> int:
    """Return ``rating`` if it is an integer in [1, 5], raise InvalidRating otherwise."""

    # bool is an int subclass; True must not count as a rating of 1.
    if rating is None or isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(f"Rating ({MIN_RATING}-{MAX_RATING}) is required when the requester completes")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise InvalidRating(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
    return rating


def fold(current_avg: float, current_count: int, new_rating: int) -> Tuple[float, int]:
    """Fold one rating into a running mean.

    >>> fold(4.0, 3, 5)
    (4.25, 4)
    """

    validate_rating(new_rating)
    if current_count < 0:
        raise ValueError("rating count cannot be negative")
    new_count = current_count + 1
    new_avg = (float(current_avg) * current_count + new_rating) / new_count
    return new_avg, new_count
