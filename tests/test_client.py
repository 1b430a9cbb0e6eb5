import json
from datetime import datetime

import httpx
import pytest

from booking.client import BookingApiClient
from booking.errors import FetchError, SubmissionError
from booking.models import BookingRequest

BASE_URL = "http://booking.test/api"


def make_client(handler) -> BookingApiClient:
    return BookingApiClient(BASE_URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_availabilities_queries_by_practitioner():
    """Test the availability request and parsing of the API records."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[
            {"id": 1, "startDate": "2024-01-10T09:00:00", "endDate": "2024-01-10T09:30:00", "status": "free"},
        ])

    intervals = await make_client(handler).get_availabilities("60")

    assert seen[0].url.path == "/api/availabilities"
    assert seen[0].url.params["practitionerId"] == "60"
    assert intervals[0].id == 1
    assert intervals[0].end_time == datetime(2024, 1, 10, 9, 30)


@pytest.mark.asyncio
async def test_get_patients_and_practitioners():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/patients"):
            return httpx.Response(200, json=[{"id": 4, "firstName": "Ana", "lastName": "Lopez"}])
        return httpx.Response(200, json=[
            {"id": 60, "firstName": "Luc", "lastName": "Moreau", "speciality": "ENT"},
        ])

    client = make_client(handler)
    patients = await client.get_patients()
    practitioners = await client.get_practitioners()

    assert patients[0].id == "4"
    assert practitioners[0].display_name == "Luc MOREAU : ENT"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=[{"id": 1, "startDate": "2024-01-10T10:00:00", "endDate": "2024-01-10T09:00:00"}]),
    ],
)
async def test_failed_reads_raise_fetch_error(response):
    client = make_client(lambda request: response)

    with pytest.raises(FetchError):
        await client.get_availabilities("60")


@pytest.mark.asyncio
async def test_transport_error_raises_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FetchError):
        await make_client(handler).get_patients()


@pytest.fixture
def booking():
    return BookingRequest(
        patient_id="P1",
        practitioner_id="Pr1",
        start_date=datetime(2024, 1, 10, 9, 30),
        end_date=datetime(2024, 1, 10, 10, 0),
    )


@pytest.mark.asyncio
async def test_create_appointment_posts_booking(booking):
    """Test that the booking is posted with the appointments payload shape."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 1})

    await make_client(handler).create_appointment(booking)

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/appointments"
    assert json.loads(seen[0].content) == {
        "patientId": "P1",
        "practitionerId": "Pr1",
        "startDate": "2024-01-10T09:30:00",
        "endDate": "2024-01-10T10:00:00",
    }


@pytest.mark.asyncio
async def test_create_appointment_failure(booking):
    client = make_client(lambda request: httpx.Response(503))

    with pytest.raises(SubmissionError):
        await client.create_appointment(booking)


@pytest.mark.asyncio
async def test_mixed_offsets_raise_fetch_error():
    """Test that a record mixing aware and naive bounds fails the fetch cleanly."""
    client = make_client(lambda request: httpx.Response(200, json=[
        {"id": 1, "startDate": "2024-01-10T09:00:00Z", "endDate": "2024-01-10T09:30:00"},
    ]))

    with pytest.raises(FetchError):
        await client.get_availabilities("60")
