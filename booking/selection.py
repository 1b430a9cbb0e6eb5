"""Selection state of the booking form and its transitions.

Transitions are pure: each returns a new ``SelectionState`` and leaves the
input untouched. Changing a field clears every field that depends on it
(see ``booking.slots``), so a practitioner change drops the chosen day and
slot, and a day change drops the chosen slot.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from booking.errors import UnknownDayError, UnknownSlotError
from booking.grouping import DayBuckets
from booking.slots import DAY, FIELDS, PATIENT, PRACTITIONER, SLOT, dependents_of, get_field

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "This field is required."


class SelectionState(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    practitioner_id: str | None = None
    patient_id: str | None = None
    selected_day: date | None = None
    slot_id: int | None = None


def _assign(state: SelectionState, name: str, value) -> SelectionState:
    update = {get_field(name).attr: value}
    for dependent in dependents_of(name):
        update[dependent.attr] = None
    return state.model_copy(update=update)


def reset_from(state: SelectionState, name: str) -> SelectionState:
    """Clear ``name`` and everything downstream of it."""
    return _assign(state, name, None)


def set_practitioner(state: SelectionState, practitioner_id: str) -> SelectionState:
    return _assign(state, PRACTITIONER, practitioner_id)


def set_patient(state: SelectionState, patient_id: str) -> SelectionState:
    return _assign(state, PATIENT, patient_id)


def _parse_day(key) -> date | None:
    if isinstance(key, datetime):
        return key.date()
    if isinstance(key, date):
        return key
    try:
        return date.fromisoformat(str(key))
    except ValueError:
        return None


def set_day(state: SelectionState, key, buckets: DayBuckets) -> SelectionState:
    """Select a day; it must be one of the current bucket keys."""
    if not state.practitioner_id:
        raise UnknownDayError("Select a practitioner before choosing a day")
    day = _parse_day(key)
    if day is None or day not in get_field(DAY).options(buckets):
        logger.debug("Rejected day %r, offered: %s", key, list(buckets))
        raise UnknownDayError(f"No availability on {key}")
    return _assign(state, DAY, day)


def _parse_slot_id(slot_id) -> int | None:
    if isinstance(slot_id, bool):
        return None
    try:
        return int(slot_id)
    except (TypeError, ValueError):
        return None


def set_slot(state: SelectionState, slot_id, buckets: DayBuckets) -> SelectionState:
    """Select a time slot within the bucket of the selected day."""
    if state.selected_day is None:
        raise UnknownSlotError("Select a day before choosing a time slot")

    parsed = _parse_slot_id(slot_id)
    if parsed is None or parsed not in get_field(SLOT).options(buckets, state.selected_day):
        logger.debug("Rejected slot %r for %s", slot_id, state.selected_day)
        raise UnknownSlotError(f"Time slot {slot_id} is not available on {state.selected_day}")
    return _assign(state, SLOT, parsed)


def validate(state: SelectionState) -> dict[str, str]:
    """Return a field-keyed error map; every field is mandatory."""
    errors: dict[str, str] = {}
    for field in FIELDS:
        if getattr(state, field.attr) in (None, ""):
            errors[field.name] = REQUIRED_MESSAGE
    return errors


def is_complete(state: SelectionState, buckets: DayBuckets) -> bool:
    """True when every field is set and the selected day holds the selected slot."""
    if validate(state):
        return False
    return state.slot_id in get_field(SLOT).options(buckets, state.selected_day)
