"""Wire models exchanged with the external booking API."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class AvailabilityInterval(BaseModel):
    """A bookable time range of one practitioner.

    The API names the bounds ``startDate``/``endDate``; ``startTime``/``endTime``
    are accepted as well. Other fields (``status``...) are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    start_time: datetime = Field(
        validation_alias=AliasChoices("startTime", "startDate", "start_time"),
        serialization_alias="startTime",
    )
    end_time: datetime = Field(
        validation_alias=AliasChoices("endTime", "endDate", "end_time"),
        serialization_alias="endTime",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> AvailabilityInterval:
        if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
            raise ValueError("startTime and endTime must both carry a UTC offset or neither")
        if self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        return self


class Patient(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: str
    first_name: str
    last_name: str

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name.upper()}"


class Practitioner(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: str
    first_name: str
    last_name: str
    speciality: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name.upper()} : {self.speciality}"


class BookingRequest(BaseModel):
    """Final payload handed to the appointments endpoint."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    patient_id: str
    practitioner_id: str
    start_date: datetime
    end_date: datetime
