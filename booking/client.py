"""HTTP client for the external booking API."""

from __future__ import annotations

import logging

import httpx
from pydantic import TypeAdapter, ValidationError

from booking.errors import FetchError, SubmissionError
from booking.models import AvailabilityInterval, BookingRequest, Patient, Practitioner

logger = logging.getLogger(__name__)

_availabilities = TypeAdapter(list[AvailabilityInterval])
_patients = TypeAdapter(list[Patient])
_practitioners = TypeAdapter(list[Practitioner])


class BookingApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def _get(self, path: str, adapter: TypeAdapter, **params):
        try:
            async with self._client() as client:
                resp = await client.get(path, params=params or None)
                resp.raise_for_status()
                return adapter.validate_python(resp.json())
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning("GET %s%s failed: %s", self.base_url, path, e)
            raise FetchError(f"GET {path} failed: {e}") from e

    async def get_availabilities(self, practitioner_id: str) -> list[AvailabilityInterval]:
        return await self._get("/availabilities", _availabilities, practitionerId=practitioner_id)

    async def get_patients(self) -> list[Patient]:
        return await self._get("/patients", _patients)

    async def get_practitioners(self) -> list[Practitioner]:
        return await self._get("/practitioners", _practitioners)

    async def create_appointment(self, booking: BookingRequest) -> None:
        try:
            async with self._client() as client:
                resp = await client.post(
                    "/appointments", json=booking.model_dump(mode="json", by_alias=True)
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("POST %s/appointments failed: %s", self.base_url, e)
            raise SubmissionError(f"Appointment submission failed: {e}") from e
