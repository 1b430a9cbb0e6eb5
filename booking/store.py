"""In-memory stores fed by the external booking API."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import tzinfo
from typing import Generic, TypeVar

from booking.grouping import DayBuckets, group_by_day
from booking.models import AvailabilityInterval, Patient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AvailabilityStore:
    """Availability of the currently selected practitioner.

    Contents are only ever replaced wholesale. Completions tagged with a
    practitioner other than the one last passed to ``begin_fetch`` are stale
    and get dropped.
    """

    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz
        self.practitioner_id: str | None = None
        self.loaded_for: str | None = None
        self.is_loading = False
        self.last_error: Exception | None = None
        self._intervals: tuple[AvailabilityInterval, ...] = ()
        self._buckets: DayBuckets = {}

    @property
    def intervals(self) -> tuple[AvailabilityInterval, ...]:
        return self._intervals

    @property
    def buckets(self) -> DayBuckets:
        return self._buckets

    def begin_fetch(self, practitioner_id: str) -> None:
        self.practitioner_id = practitioner_id
        self.is_loading = True

    def _is_current(self, practitioner_id: str) -> bool:
        if self.practitioner_id is None:
            # nothing requested yet: the first completion selects its practitioner
            self.practitioner_id = practitioner_id
        if practitioner_id != self.practitioner_id:
            logger.info(
                "Discarding availability response for practitioner %s (current: %s)",
                practitioner_id,
                self.practitioner_id,
            )
            return False
        return True

    def replace_all(
        self, practitioner_id: str, intervals: Iterable[AvailabilityInterval]
    ) -> bool:
        """Swap in a practitioner's intervals.

        Without a prior ``begin_fetch`` the call is accepted and tags the store
        with ``practitioner_id``.
        """
        if not self._is_current(practitioner_id):
            return False
        self._intervals = tuple(intervals)
        self._buckets = group_by_day(self._intervals, self._tz)
        self.loaded_for = practitioner_id
        self.last_error = None
        self.is_loading = False
        return True

    def record_error(self, practitioner_id: str, error: Exception) -> bool:
        """Record a failed fetch; loaded intervals are kept as they are."""
        if not self._is_current(practitioner_id):
            return False
        self.last_error = error
        self.is_loading = False
        return True

    def end_fetch(self, practitioner_id: str) -> None:
        """Clear the loading flag unless a newer fetch is under way."""
        if practitioner_id == self.practitioner_id:
            self.is_loading = False


class DirectoryStore(Generic[T]):
    """Patient or practitioner list with the same load/error lifecycle."""

    def __init__(self, sort_key: Callable[[T], object] | None = None) -> None:
        self._sort_key = sort_key
        self._items: list[T] = []
        self.is_loading = False
        self.last_error: Exception | None = None

    @property
    def items(self) -> list[T]:
        return list(self._items)

    def begin_fetch(self) -> None:
        self.is_loading = True

    def replace_all(self, items: Iterable[T]) -> None:
        items = list(items)
        if self._sort_key is not None:
            items.sort(key=self._sort_key)
        self._items = items
        self.last_error = None
        self.is_loading = False

    def record_error(self, error: Exception) -> None:
        self.last_error = error
        self.is_loading = False

    def get(self, item_id: str) -> T | None:
        return next((item for item in self._items if item.id == item_id), None)


def patient_sort_key(patient: Patient) -> str:
    return patient.last_name.casefold()
