"""Expiration classification for inventory items.

Splits an inventory snapshot into expired, expiring-soon and fresh items and
derives the ingredient names sent to the recipe backend.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from src.models.models import ExpirationBuckets, IngredientSet, InventoryItem
from src.pipeline.matching import normalize_names

DEFAULT_WINDOW_DAYS = 3


def _align(value: datetime, reference: datetime) -> datetime:
    """Make `value` comparable with `reference`; naive values are taken as UTC."""
    if (value.tzinfo is None) == (reference.tzinfo is None):
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def days_until(expiration_date: datetime, now: datetime) -> int:
    """Whole days from `now` until `expiration_date`, truncated toward zero.

    An item expiring 23 hours from now is 0 days away; one expiring 3 days and
    23 hours from now is 3 days away.
    """
    delta = _align(expiration_date, now) - now
    seconds = int(delta.total_seconds())
    days = abs(seconds) // 86400
    return days if seconds >= 0 else -days


def is_expired(item: InventoryItem, now: datetime) -> bool:
    return _align(item.expiration_date, now) < now


def is_expiring_soon(item: InventoryItem, now: datetime, window_days: int = DEFAULT_WINDOW_DAYS) -> bool:
    if is_expired(item, now):
        return False
    return 0 <= days_until(item.expiration_date, now) <= window_days


def classify(
    items: Iterable[InventoryItem],
    now: Optional[datetime] = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> ExpirationBuckets:
    """Partition items into expired, expiring-soon and fresh.

    Every input item lands in exactly one bucket. Expired items are ordered
    most recently expired first and expiring-soon items soonest first; fresh
    items keep their input order.

    Args:
        items: Inventory snapshot.
        now: Reference time. Defaults to the current UTC time.
        window_days: Items at most this many whole days away count as expiring soon.

    Returns:
        ExpirationBuckets with the three partitions.
    """
    if window_days < 0:
        raise ValueError(f"window_days must not be negative, got: {window_days}")
    if now is None:
        now = datetime.now(timezone.utc)

    expired: list[InventoryItem] = []
    expiring_soon: list[InventoryItem] = []
    fresh: list[InventoryItem] = []

    for item in items:
        if is_expired(item, now):
            expired.append(item)
        elif is_expiring_soon(item, now, window_days):
            expiring_soon.append(item)
        else:
            fresh.append(item)

    expired.sort(key=lambda item: _align(item.expiration_date, now), reverse=True)
    expiring_soon.sort(key=lambda item: _align(item.expiration_date, now))

    return ExpirationBuckets(expired=expired, expiring_soon=expiring_soon, fresh=fresh)


def build_ingredient_set(buckets: ExpirationBuckets) -> IngredientSet:
    """Derive priority and available ingredient names from classified items.

    Priority ingredients are the expiring-soon items; available ingredients
    are every item that has not expired yet.
    """
    return IngredientSet(
        priority_ingredients=normalize_names(item.name for item in buckets.expiring_soon),
        all_ingredients=normalize_names(item.name for item in [*buckets.expiring_soon, *buckets.fresh]),
    )
