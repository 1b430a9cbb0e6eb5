"""Day grouping of availability intervals."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timezone, tzinfo
from typing import TypeAlias

from booking.models import AvailabilityInterval

DayKey: TypeAlias = date
DayBuckets: TypeAlias = dict[DayKey, list[AvailabilityInterval]]


def day_key(interval: AvailabilityInterval, tz: tzinfo | None = None) -> DayKey:
    """Return the calendar day an interval starts on.

    Aware timestamps are moved to ``tz`` first when one is given; otherwise the
    date carried by the timestamp itself is used.
    """
    start = interval.start_time
    if tz is not None and start.tzinfo is not None:
        start = start.astimezone(tz)
    return start.date()


def _instant(start: datetime, tz: tzinfo | None) -> datetime:
    # naive timestamps are read in the display zone, or UTC without one
    if start.tzinfo is None:
        return start.replace(tzinfo=tz or timezone.utc)
    return start


def group_by_day(
    intervals: Iterable[AvailabilityInterval], tz: tzinfo | None = None
) -> DayBuckets:
    """Partition intervals into day buckets.

    Keys come out in ascending date order, and each bucket is sorted by start
    time with the interval id breaking ties. Payloads may mix timestamps with
    and without a UTC offset.
    """
    buckets: dict[DayKey, list[AvailabilityInterval]] = defaultdict(list)
    for interval in intervals:
        buckets[day_key(interval, tz)].append(interval)

    return {
        key: sorted(buckets[key], key=lambda i: (_instant(i.start_time, tz), i.id))
        for key in sorted(buckets)
    }
