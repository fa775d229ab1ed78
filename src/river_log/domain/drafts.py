"""Editable trip form state and its conversion to a write request."""

from dataclasses import dataclass
from datetime import date

from river_log.domain.catalog import Section
from river_log.domain.errors import InvalidInputError
from river_log.domain.trips import (
    CatalogRefAddressing,
    FreeTextAddressing,
    Trip,
    TripAddressing,
    TripSchema,
    TripWriteRequest,
)


@dataclass
class TripDraft:
    """Mutable in-progress trip. Every user-typed field is kept as a string."""

    schema: TripSchema = "free_text"
    river_name: str = ""
    section_name: str = ""
    section: Section | None = None
    section_id: int | None = None
    trip_date: str = ""
    difficulty: str = ""
    flow: str = ""
    flow_unit: str = "cfs"
    craft_type: str = ""
    duration_minutes: str = ""
    mileage: str = ""
    notes: str = ""

    @classmethod
    def from_trip(cls, trip: Trip, schema: TripSchema) -> "TripDraft":
        """Build a draft pre-filled from an existing trip."""
        addressing = trip.addressing
        section_id = (
            addressing.section_id
            if isinstance(addressing, CatalogRefAddressing)
            else None
        )
        return cls(
            schema=schema,
            river_name=trip.river_name,
            section_name=trip.section_name,
            section_id=section_id,
            trip_date=trip.trip_date.isoformat(),
            difficulty=trip.difficulty or "",
            flow=_text(trip.flow),
            flow_unit=trip.flow_unit or "cfs",
            craft_type=trip.craft_type or "",
            duration_minutes=_text(trip.duration_minutes),
            mileage=_text(trip.mileage),
            notes=trip.notes or "",
        )

    @property
    def bound_section_id(self) -> int | None:
        if self.section is not None:
            return self.section.id
        return self.section_id


def build_write_request(draft: TripDraft) -> TripWriteRequest:
    """Convert a draft into a typed request, rejecting missing required fields."""
    missing: list[str] = []
    addressing = _addressing(draft, missing)
    trip_date = _parse_date(draft.trip_date, missing)
    if missing or addressing is None or trip_date is None:
        raise InvalidInputError(
            f"Missing or invalid required fields: {', '.join(missing)}",
            fields=tuple(missing),
        )
    return TripWriteRequest(
        addressing=addressing,
        trip_date=trip_date,
        difficulty=blank_to_none(draft.difficulty),
        flow=parse_int(draft.flow),
        flow_unit=blank_to_none(draft.flow_unit),
        craft_type=blank_to_none(draft.craft_type),
        duration_minutes=parse_int(draft.duration_minutes),
        mileage=parse_float(draft.mileage),
        notes=blank_to_none(draft.notes),
    )


def blank_to_none(text: str | None) -> str | None:
    """Return None for blank text, otherwise the stripped text."""
    if text is None:
        return None
    cleaned = text.strip()
    return cleaned or None


def parse_int(text: str | None) -> int | None:
    """Parse an integer permissively; blank or non-numeric input yields None."""
    cleaned = blank_to_none(text)
    if cleaned is None:
        return None
    try:
        return int(cleaned)
    except ValueError:
        pass
    try:
        return int(float(cleaned))
    except (ValueError, OverflowError):
        return None


def parse_float(text: str | None) -> float | None:
    """Parse a float permissively; blank or non-numeric input yields None."""
    cleaned = blank_to_none(text)
    if cleaned is None:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if value != value or value in {float("inf"), float("-inf")}:
        return None
    return value


def _addressing(draft: TripDraft, missing: list[str]) -> TripAddressing | None:
    if draft.schema == "catalog_ref":
        section_id = draft.bound_section_id
        if section_id is None:
            missing.append("section")
            return None
        return CatalogRefAddressing(section_id=section_id)

    has_river = bool(draft.river_name.strip())
    has_section = bool(draft.section_name.strip())
    if not has_river:
        missing.append("river_name")
    if not has_section:
        missing.append("section_name")
    if not has_river or not has_section:
        return None
    return FreeTextAddressing(
        river_name=draft.river_name, section_name=draft.section_name
    )


def _parse_date(text: str, missing: list[str]) -> date | None:
    cleaned = text.strip()
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        missing.append("trip_date")
        return None


def _text(value: int | float | None) -> str:
    return "" if value is None else str(value)
