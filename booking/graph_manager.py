from __future__ import annotations

import asyncio
import logging
from datetime import date, tzinfo
from typing import Literal

from langgraph.graph import END, START, StateGraph
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking.errors import (
    FetchError,
    FormValidationError,
    SelectionRejected,
    StaleSelectionError,
    SubmissionError,
)
from booking.grouping import DayBuckets, group_by_day
from booking.models import AvailabilityInterval, BookingRequest, Patient, Practitioner
from booking.resolver import resolve
from booking.selection import (
    REQUIRED_MESSAGE,
    SelectionState,
    is_complete,
    reset_from,
    set_day,
    set_patient,
    set_practitioner,
    set_slot,
)
from booking.slots import DAY, PATIENT, PRACTITIONER, SLOT, get_field
from booking.store import AvailabilityStore, DirectoryStore, patient_sort_key

logger = logging.getLogger(__name__)

Action = Literal[
    "set_practitioner", "set_patient", "set_day", "set_slot", "submit", "refresh", "reset"
]


class FormEvent(BaseModel):
    """One user action on the booking form."""

    action: Action
    value: str | int | None = None


class BookingFormState(BaseModel):
    """Per-session form state carried through the graph."""

    selection: SelectionState = Field(default_factory=SelectionState)

    # ─ runtime-only fields (excluded from persistence) ─
    intervals: list[AvailabilityInterval] = Field(default_factory=list)
    event: FormEvent | None = None
    errors: dict[str, str] = Field(default_factory=dict)
    availability_for: str | None = None
    fetch_for: str | None = None
    booking: BookingRequest | None = None


class FormSnapshot(BaseModel):
    """What a client needs to render the form after an event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    selection: SelectionState
    days: list[date] = Field(default_factory=list)
    slots: list[AvailabilityInterval] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)
    complete: bool = False
    is_loading: bool = False
    last_error: str | None = None
    availability_for: str | None = None
    booking: BookingRequest | None = None
    submission_error: str | None = None


class BookingGraphManager:
    """Wraps a LangGraph state-machine over the booking form and keeps
    per-session selections and availability stores."""

    def __init__(self, client, tz: tzinfo | None = None) -> None:
        self.client = client
        self.tz = tz

        self.graph = self._build_graph()
        self.executor = self.graph.compile()

        # in-memory persistence (guarded by an asyncio.Lock)
        self._sessions: dict[str, dict] = {}
        self._stores: dict[str, AvailabilityStore] = {}
        self._lock = asyncio.Lock()

        self.patients: DirectoryStore[Patient] = DirectoryStore(patient_sort_key)
        self.practitioners: DirectoryStore[Practitioner] = DirectoryStore()

    def _build_graph(self) -> StateGraph:
        """Build the graph routing each form event to its transition."""
        g = StateGraph(BookingFormState)

        g.add_node("practitioner", self._on_practitioner)
        g.add_node("patient", self._on_patient)
        g.add_node("day", self._on_day)
        g.add_node("slot", self._on_slot)
        g.add_node("submit", self._on_submit)
        g.add_node("refresh", self._on_refresh)
        g.add_node("reset", self._on_reset)

        g.add_conditional_edges(
            START,
            self._route_event,
            {
                "set_practitioner": "practitioner",
                "set_patient": "patient",
                "set_day": "day",
                "set_slot": "slot",
                "submit": "submit",
                "refresh": "refresh",
                "reset": "reset",
                "end": END,
            },
        )

        for node in ("practitioner", "patient", "day", "slot", "submit", "refresh", "reset"):
            g.add_edge(node, END)
        return g

    def _route_event(self, state: BookingFormState) -> str:
        if state.event is None:
            return "end"
        return state.event.action

    # ------------------------------------------------------------------ #
    #  Graph nodes
    # ------------------------------------------------------------------ #
    def _buckets(self, state: BookingFormState) -> DayBuckets:
        # availability loaded for another practitioner offers no choices
        if state.availability_for is None or state.availability_for != state.selection.practitioner_id:
            return {}
        return group_by_day(state.intervals, self.tz)

    @staticmethod
    def _unlisted(directory: DirectoryStore, item_id: str) -> bool:
        """True when a loaded directory does not know ``item_id``."""
        return bool(directory.items) and directory.get(item_id) is None

    def _on_practitioner(self, state: BookingFormState) -> dict:
        value = state.event.value
        if value in (None, ""):
            return {"errors": {PRACTITIONER: REQUIRED_MESSAGE}}
        practitioner_id = str(value)
        if self._unlisted(self.practitioners, practitioner_id):
            return {"errors": {PRACTITIONER: f"Unknown practitioner {practitioner_id}"}}
        return {
            "selection": set_practitioner(state.selection, practitioner_id),
            "fetch_for": practitioner_id,
        }

    def _on_patient(self, state: BookingFormState) -> dict:
        value = state.event.value
        if value in (None, ""):
            return {"errors": {PATIENT: REQUIRED_MESSAGE}}
        patient_id = str(value)
        if self._unlisted(self.patients, patient_id):
            return {"errors": {PATIENT: f"Unknown patient {patient_id}"}}
        return {"selection": set_patient(state.selection, patient_id)}

    def _on_day(self, state: BookingFormState) -> dict:
        try:
            selection = set_day(state.selection, state.event.value, self._buckets(state))
        except SelectionRejected as e:
            return {"errors": {DAY: str(e)}}
        return {"selection": selection}

    def _on_slot(self, state: BookingFormState) -> dict:
        try:
            selection = set_slot(state.selection, state.event.value, self._buckets(state))
        except SelectionRejected as e:
            return {"errors": {SLOT: str(e)}}
        return {"selection": selection}

    def _on_submit(self, state: BookingFormState) -> dict:
        try:
            booking = resolve(state.selection, self._buckets(state))
        except FormValidationError as e:
            return {"errors": e.errors}
        except StaleSelectionError as e:
            logger.info("Stale selection on submit: %s", e)
            return {"selection": reset_from(state.selection, DAY), "errors": {SLOT: str(e)}}

        logger.info(
            "Resolved booking for patient %s with practitioner %s at %s",
            booking.patient_id,
            booking.practitioner_id,
            booking.start_date.isoformat(),
        )
        # the selection is discarded once a booking is built
        return {"booking": booking, "selection": SelectionState()}

    def _on_refresh(self, state: BookingFormState) -> dict:
        practitioner_id = state.selection.practitioner_id
        if not practitioner_id:
            return {"errors": {PRACTITIONER: REQUIRED_MESSAGE}}
        return {"fetch_for": practitioner_id}

    def _on_reset(self, state: BookingFormState) -> dict:
        return {"selection": SelectionState()}

    # ------------------------------------------------------------------ #
    #  External calls
    # ------------------------------------------------------------------ #
    def store_for(self, session_id: str) -> AvailabilityStore:
        store = self._stores.get(session_id)
        if store is None:
            store = self._stores[session_id] = AvailabilityStore(self.tz)
        return store

    async def refresh_availability(self, session_id: str, practitioner_id: str) -> None:
        """Fetch availability for a practitioner into the session's store."""
        store = self.store_for(session_id)
        store.begin_fetch(practitioner_id)
        logger.debug("Fetching availability for practitioner %s", practitioner_id)
        try:
            intervals = await self.client.get_availabilities(practitioner_id)
            store.replace_all(practitioner_id, intervals)
        except FetchError as e:
            logger.warning("Availability fetch for practitioner %s failed: %s", practitioner_id, e)
            store.record_error(practitioner_id, e)
        finally:
            store.end_fetch(practitioner_id)

    async def load_directories(self) -> None:
        """Load the patient and practitioner lists offered by the form."""
        for directory, fetch in (
            (self.patients, self.client.get_patients),
            (self.practitioners, self.client.get_practitioners),
        ):
            directory.begin_fetch()
            try:
                directory.replace_all(await fetch())
            except FetchError as e:
                logger.warning("Directory fetch failed: %s", e)
                directory.record_error(e)

    async def _submit(self, booking: BookingRequest) -> str | None:
        try:
            await self.client.create_appointment(booking)
        except SubmissionError as e:
            logger.warning("Booking for patient %s was not submitted: %s", booking.patient_id, e)
            return str(e)
        logger.info("Booking for patient %s submitted", booking.patient_id)
        return None

    # ------------------------------------------------------------------ #
    #  Persistence helpers (thread-safe)
    # ------------------------------------------------------------------ #
    async def _load_state(self, session_id: str) -> BookingFormState:
        """Load the form state of a session."""
        async with self._lock:
            raw = self._sessions.get(session_id)
        return BookingFormState.model_validate(raw) if raw else BookingFormState()

    async def _save_state(self, session_id: str, state: BookingFormState) -> None:
        """Persist the selection of a session; runtime fields are dropped."""
        serialisable = state.model_dump(include={"selection"})
        async with self._lock:
            self._sessions[session_id] = serialisable

    def _snapshot(
        self,
        session_id: str,
        selection: SelectionState,
        errors: dict[str, str] | None = None,
        booking: BookingRequest | None = None,
        submission_error: str | None = None,
    ) -> FormSnapshot:
        store = self.store_for(session_id)
        buckets = store.buckets if store.loaded_for == selection.practitioner_id else {}
        slots = buckets.get(selection.selected_day, []) if selection.selected_day else []
        return FormSnapshot(
            session_id=session_id,
            selection=selection,
            days=get_field(DAY).options(buckets),
            slots=slots,
            errors=errors or {},
            complete=is_complete(selection, buckets),
            is_loading=store.is_loading,
            last_error=str(store.last_error) if store.last_error else None,
            availability_for=store.loaded_for,
            booking=booking,
            submission_error=submission_error,
        )

    async def get_snapshot(self, session_id: str) -> FormSnapshot:
        state = await self._load_state(session_id)
        return self._snapshot(session_id, state.selection)

    async def process_event(self, session_id: str, event: FormEvent) -> FormSnapshot:
        """Apply a form event to a session.

        Runs the transition through the graph, saves the new selection, then
        performs the external calls the transition asked for.
        """
        state = await self._load_state(session_id)
        store = self.store_for(session_id)
        state = state.model_copy(
            update={
                "event": event,
                "intervals": list(store.intervals),
                "availability_for": store.loaded_for,
            }
        )

        result = await asyncio.to_thread(self.executor.invoke, state)
        state = result if isinstance(result, BookingFormState) else BookingFormState.model_validate(result)
        await self._save_state(session_id, state)

        if event.action == "reset":
            self._stores.pop(session_id, None)

        if state.fetch_for is not None:
            await self.refresh_availability(session_id, state.fetch_for)

        submission_error = None
        if state.booking is not None:
            # the form's availability goes away with its selection
            self._stores.pop(session_id, None)
            submission_error = await self._submit(state.booking)

        return self._snapshot(
            session_id,
            state.selection,
            errors=state.errors,
            booking=state.booking,
            submission_error=submission_error,
        )
