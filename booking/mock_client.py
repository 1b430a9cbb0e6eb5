import asyncio

from booking.errors import FetchError, SubmissionError
from booking.models import AvailabilityInterval, BookingRequest, Patient, Practitioner


class MockApiClient:
    """In-memory stand-in for the booking API, used by tests and local runs."""

    def __init__(self) -> None:
        self.patients: list[Patient] = [
            Patient(id="P1", first_name="Alice", last_name="Martin"),
            Patient(id="P2", first_name="Bruno", last_name="Durand"),
        ]
        self.practitioners: list[Practitioner] = [
            Practitioner(id="Pr1", first_name="Claire", last_name="Bernard", speciality="Cardiology"),
            Practitioner(id="Pr2", first_name="David", last_name="Petit", speciality="Dermatology"),
        ]
        self.availabilities: dict[str, list[AvailabilityInterval]] = {
            "Pr1": [
                AvailabilityInterval(id=1, start_time="2024-01-10T09:00:00", end_time="2024-01-10T09:30:00"),
                AvailabilityInterval(id=2, start_time="2024-01-10T09:30:00", end_time="2024-01-10T10:00:00"),
                AvailabilityInterval(id=3, start_time="2024-01-11T09:00:00", end_time="2024-01-11T09:30:00"),
            ],
            "Pr2": [
                AvailabilityInterval(id=10, start_time="2024-01-12T14:00:00", end_time="2024-01-12T14:30:00"),
            ],
        }
        self.appointments: list[BookingRequest] = []
        self.availability_calls: list[str] = []

        # failure injection and response gating
        self.failing: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}

    async def get_availabilities(self, practitioner_id: str) -> list[AvailabilityInterval]:
        """Return the practitioner's slots, waiting on its gate if one is set."""
        self.availability_calls.append(practitioner_id)
        if gate := self.gates.get(practitioner_id):
            await gate.wait()
        if "availabilities" in self.failing or practitioner_id in self.failing:
            raise FetchError(f"availabilities for {practitioner_id} unavailable")
        return list(self.availabilities.get(practitioner_id, []))

    async def get_patients(self) -> list[Patient]:
        if "patients" in self.failing:
            raise FetchError("patients unavailable")
        return list(self.patients)

    async def get_practitioners(self) -> list[Practitioner]:
        if "practitioners" in self.failing:
            raise FetchError("practitioners unavailable")
        return list(self.practitioners)

    async def create_appointment(self, booking: BookingRequest) -> None:
        if "appointments" in self.failing:
            raise SubmissionError("appointments unavailable")
        self.appointments.append(booking)
