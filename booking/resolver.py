"""Turn a complete selection into a booking request."""

from __future__ import annotations

from booking.errors import FormValidationError, StaleSelectionError
from booking.grouping import DayBuckets
from booking.models import BookingRequest
from booking.selection import SelectionState, validate


def resolve(state: SelectionState, buckets: DayBuckets) -> BookingRequest:
    """Map the selected day and slot back to the authoritative interval.

    Raises ``FormValidationError`` when a field is unset and
    ``StaleSelectionError`` when the day or slot is no longer offered.
    """
    errors = validate(state)
    if errors:
        raise FormValidationError(errors)

    bucket = buckets.get(state.selected_day)
    if bucket is None:
        raise StaleSelectionError(f"{state.selected_day} is no longer available")

    interval = next((i for i in bucket if i.id == state.slot_id), None)
    if interval is None:
        raise StaleSelectionError(
            f"Time slot {state.slot_id} is no longer available on {state.selected_day}"
        )

    return BookingRequest(
        patient_id=state.patient_id,
        practitioner_id=state.practitioner_id,
        start_date=interval.start_time,
        end_date=interval.end_time,
    )
