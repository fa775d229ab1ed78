"""Pydantic models for River Log API payloads."""

from datetime import date, datetime
from typing import TypeVar

from pydantic import BaseModel, ValidationError, field_validator

from river_log.domain.catalog import River, Section
from river_log.domain.errors import DecodingError
from river_log.domain.models import UserRecord
from river_log.domain.sessions import Session
from river_log.domain.trips import CatalogRefAddressing, FreeTextAddressing, Trip

_ISO_DATE_LENGTH = 10

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class UserPayload(BaseModel):
    """User payload."""

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_domain(self) -> UserRecord:
        return UserRecord(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_domain(cls, user: UserRecord) -> "UserPayload":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AuthTokenPayload(BaseModel):
    """Login response payload."""

    token: str
    user: UserPayload

    def to_domain(self) -> Session:
        return Session(token=self.token, user=self.user.to_domain())


class TripPayload(BaseModel):
    """Trip payload in either schema version."""

    id: int
    user_id: int
    river_name: str | None = None
    section_name: str | None = None
    section_id: int | None = None
    trip_date: date
    difficulty: str | None = None
    flow: int | None = None
    flow_unit: str | None = None
    craft_type: str | None = None
    duration_minutes: int | None = None
    mileage: float | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("trip_date", mode="before")
    @classmethod
    def _date_only(cls, value: object) -> object:
        # Some deployments serialize the date as a full timestamp.
        if isinstance(value, str) and len(value) > _ISO_DATE_LENGTH:
            return value[:_ISO_DATE_LENGTH]
        return value

    def to_domain(self) -> Trip:
        if self.section_id is not None:
            addressing: FreeTextAddressing | CatalogRefAddressing = (
                CatalogRefAddressing(
                    section_id=self.section_id,
                    river_name=self.river_name,
                    section_name=self.section_name,
                )
            )
        else:
            addressing = FreeTextAddressing(
                river_name=self.river_name or "",
                section_name=self.section_name or "",
            )
        return Trip(
            id=self.id,
            user_id=self.user_id,
            addressing=addressing,
            trip_date=self.trip_date,
            difficulty=self.difficulty,
            flow=self.flow,
            flow_unit=self.flow_unit,
            craft_type=self.craft_type,
            duration_minutes=self.duration_minutes,
            mileage=self.mileage,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class TripsPagePayload(BaseModel):
    """Trip list payload."""

    trips: list[TripPayload] | None = None
    total: int | None = None
    limit: int | None = None
    offset: int | None = None


class SectionPayload(BaseModel):
    """Catalog section payload."""

    id: int
    river_id: int
    river_name: str
    state: str
    name: str
    class_rating: str | None = None
    gradient: float | None = None
    gradient_unit: str | None = None
    mileage: float | None = None
    put_in_name: str | None = None
    take_out_name: str | None = None
    gauge_name: str | None = None
    gauge_id: str | None = None
    flow_min: float | None = None
    flow_max: float | None = None
    flow_low: float | None = None
    flow_high: float | None = None
    flow_unit: str | None = None
    aw_url: str | None = None
    aw_id: str | None = None

    def to_domain(self) -> Section:
        return Section(**self.model_dump())


class SectionsPagePayload(BaseModel):
    """Section list payload."""

    sections: list[SectionPayload] | None = None
    total: int | None = None


class RiverPayload(BaseModel):
    """Catalog river payload."""

    id: int
    name: str
    state: str

    def to_domain(self) -> River:
        return River(id=self.id, name=self.name, state=self.state)


class RiversPagePayload(BaseModel):
    """River list payload."""

    rivers: list[RiverPayload] | None = None
    total: int | None = None


def decode(model: type[PayloadT], data: object) -> PayloadT:
    """Validate envelope data against a payload model."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodingError(
            f"Unexpected {model.__name__} shape: {exc.error_count()} error(s)"
        ) from exc
