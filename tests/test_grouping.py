from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from booking.grouping import day_key, group_by_day
from booking.models import AvailabilityInterval


def interval(id_, start, minutes=30):
    start = datetime.fromisoformat(start)
    return AvailabilityInterval(id=id_, start_time=start, end_time=start + timedelta(minutes=minutes))


@pytest.fixture
def intervals():
    """The two-day availability used across the booking scenarios."""
    return [
        interval(1, "2024-01-10T09:00"),
        interval(2, "2024-01-10T09:30"),
        interval(3, "2024-01-11T09:00"),
    ]


def test_groups_scenario_into_two_days(intervals):
    """Test that the scenario intervals land in one bucket per calendar day."""
    buckets = group_by_day(intervals)

    assert list(buckets) == [date(2024, 1, 10), date(2024, 1, 11)]
    assert [i.id for i in buckets[date(2024, 1, 10)]] == [1, 2]
    assert [i.id for i in buckets[date(2024, 1, 11)]] == [3]


def test_every_interval_in_exactly_one_bucket():
    """Test that grouping neither loses nor duplicates intervals."""
    data = [
        interval(7, "2024-03-02T16:00"),
        interval(4, "2024-03-01T08:00"),
        interval(9, "2024-03-01T23:30", minutes=15),
        interval(1, "2024-03-03T00:00"),
        interval(2, "2024-03-02T07:45"),
    ]
    buckets = group_by_day(data)

    grouped = [i for bucket in buckets.values() for i in bucket]
    assert len(grouped) == len(data)
    assert {i.id for i in grouped} == {i.id for i in data}
    for key, bucket in buckets.items():
        assert all(day_key(i) == key for i in bucket)


def test_bucket_order_by_start_then_id():
    """Test chronological order inside a bucket, with id breaking ties."""
    data = [
        interval(5, "2024-01-10T10:00"),
        interval(3, "2024-01-10T09:00"),
        interval(8, "2024-01-10T08:00"),
        interval(2, "2024-01-10T09:00"),
    ]
    bucket = group_by_day(data)[date(2024, 1, 10)]

    assert [i.id for i in bucket] == [8, 2, 3, 5]


def test_empty_input_yields_no_buckets():
    assert group_by_day([]) == {}


def test_grouping_is_recomputed_not_cached(intervals):
    """Test that grouping the same input twice gives equal, independent results."""
    first = group_by_day(intervals)
    second = group_by_day(intervals)

    assert first == second
    first[date(2024, 1, 10)].clear()
    assert len(second[date(2024, 1, 10)]) == 2


def test_day_key_uses_timestamp_date_without_display_zone():
    """Test that an aware timestamp keeps its own calendar date by default."""
    late = AvailabilityInterval(
        id=1,
        start_time=datetime(2024, 1, 10, 23, 30, tzinfo=timezone.utc),
        end_time=datetime(2024, 1, 11, 0, 0, tzinfo=timezone.utc),
    )
    assert day_key(late) == date(2024, 1, 10)


def test_day_key_moves_to_display_zone():
    """Test that a display zone can push a slot onto the next day."""
    late = AvailabilityInterval(
        id=1,
        start_time=datetime(2024, 1, 10, 23, 30, tzinfo=timezone.utc),
        end_time=datetime(2024, 1, 11, 0, 0, tzinfo=timezone.utc),
    )
    buckets = group_by_day([late], tz=ZoneInfo("Europe/Paris"))

    assert list(buckets) == [date(2024, 1, 11)]


def test_interval_accepts_api_field_names():
    """Test that the API's startDate/endDate names and extra fields are accepted."""
    parsed = AvailabilityInterval.model_validate(
        {"id": "12", "startDate": "2024-01-10T09:00:00.000Z", "endDate": "2024-01-10T09:30:00.000Z", "status": "free"}
    )

    assert parsed.id == 12
    assert parsed.start_time == datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)
    assert parsed.model_dump(by_alias=True)["startTime"] == parsed.start_time


def test_interval_rejects_inverted_bounds():
    with pytest.raises(ValidationError):
        AvailabilityInterval(id=1, start_time="2024-01-10T10:00:00", end_time="2024-01-10T09:00:00")


def test_interval_rejects_mixed_offsets():
    """Test that one bound with a UTC offset and one without is a validation error."""
    with pytest.raises(ValidationError):
        AvailabilityInterval.model_validate(
            {"id": 1, "startDate": "2024-01-10T09:00:00Z", "endDate": "2024-01-10T09:30:00"}
        )


def test_bucket_mixing_aware_and_naive_starts():
    """Test that a bucket sorts naive starts as UTC next to aware ones."""
    aware = AvailabilityInterval(
        id=1,
        start_time=datetime(2024, 1, 10, 9, 30, tzinfo=timezone.utc),
        end_time=datetime(2024, 1, 10, 10, 0, tzinfo=timezone.utc),
    )
    naive = interval(2, "2024-01-10T09:00")

    bucket = group_by_day([aware, naive])[date(2024, 1, 10)]

    assert [i.id for i in bucket] == [2, 1]
