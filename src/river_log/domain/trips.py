"""Domain models for logged trips."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

FlowUnit = Literal["cfs", "feet"]
FLOW_UNITS: tuple[str, ...] = ("cfs", "feet")

TripSchema = Literal["free_text", "catalog_ref"]


@dataclass(frozen=True)
class FreeTextAddressing:
    """Trip identified by typed river and section names."""

    river_name: str
    section_name: str

    def to_payload(self) -> dict[str, object]:
        return {"river_name": self.river_name, "section_name": self.section_name}


@dataclass(frozen=True)
class CatalogRefAddressing:
    """Trip identified by a catalog section id.

    The names are denormalized display fields returned by the server and are
    never sent back on writes.
    """

    section_id: int
    river_name: str | None = None
    section_name: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {"section_id": self.section_id}


TripAddressing = FreeTextAddressing | CatalogRefAddressing


@dataclass(frozen=True)
class Trip:
    """A trip as stored by the server."""

    id: int
    user_id: int
    addressing: TripAddressing
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

    @property
    def river_name(self) -> str:
        return self.addressing.river_name or ""

    @property
    def section_name(self) -> str:
        return self.addressing.section_name or ""


@dataclass(frozen=True)
class TripWriteRequest:
    """Typed body for creating or replacing a trip."""

    addressing: TripAddressing
    trip_date: date
    difficulty: str | None = None
    flow: int | None = None
    flow_unit: str | None = None
    craft_type: str | None = None
    duration_minutes: int | None = None
    mileage: float | None = None
    notes: str | None = None

    def to_payload(self) -> dict[str, object]:
        """Serialize to the snake_case JSON body the API expects."""
        payload = self.addressing.to_payload()
        payload.update(
            {
                "trip_date": self.trip_date.isoformat(),
                "difficulty": self.difficulty,
                "flow": self.flow,
                "flow_unit": self.flow_unit,
                "craft_type": self.craft_type,
                "duration_minutes": self.duration_minutes,
                "mileage": self.mileage,
                "notes": self.notes,
            }
        )
        return payload


@dataclass(frozen=True)
class TripStats:
    """Aggregates over the cached trip list."""

    total_mileage: float
    total_trips: int
    distinct_rivers: int
