"""Form field definitions for the booking form.

Each field knows
    • its public (wire) name
    • which earlier fields it depends on
    • how to list its options, given the current day buckets
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from booking.grouping import DayBuckets

PRACTITIONER = "practitionerId"
PATIENT = "patientId"
DAY = "selectedDay"
SLOT = "slotId"


@dataclass(frozen=True, slots=True)
class FormField:
    name: str
    attr: str
    dependencies: Sequence[str]
    options_fn: Callable[[DayBuckets, date | None], list[Any]] | None = None

    def options(self, buckets: DayBuckets, selected_day: date | None = None) -> list[Any]:
        """Return the choices offered for this field; empty for free fields."""
        if self.options_fn is None:
            return []
        return self.options_fn(buckets, selected_day)


def _day_options(buckets: DayBuckets, _: date | None) -> list[date]:
    return list(buckets)


def _slot_options(buckets: DayBuckets, selected_day: date | None) -> list[int]:
    if selected_day is None:
        return []
    return [interval.id for interval in buckets.get(selected_day, [])]


FIELDS: tuple[FormField, ...] = (
    FormField(PRACTITIONER, "practitioner_id", []),
    FormField(PATIENT, "patient_id", []),
    FormField(DAY, "selected_day", [PRACTITIONER], _day_options),
    FormField(SLOT, "slot_id", [PRACTITIONER, DAY], _slot_options),
)


def get_field(name: str) -> FormField:
    return next(f for f in FIELDS if f.name == name)


def dependents_of(name: str) -> list[FormField]:
    """Return every field whose value is invalidated when ``name`` changes."""
    return [f for f in FIELDS if name in f.dependencies]
