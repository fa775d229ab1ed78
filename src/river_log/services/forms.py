"""Trip form reconciliation against the section catalog."""

import logging
from dataclasses import dataclass
from datetime import date

from river_log.domain.catalog import Section
from river_log.domain.drafts import TripDraft, build_write_request
from river_log.domain.trips import Trip, TripSchema, TripWriteRequest
from river_log.services.catalog import SectionCatalogClient
from river_log.services.trips import TripRepository

_logger = logging.getLogger(__name__)


@dataclass
class TripFormReconciler:
    """Builds trip drafts and merges catalog data into them.

    Section-derived fields are filled only while they are blank; once a
    field holds text it belongs to the user and is never overwritten.
    """

    catalog: SectionCatalogClient
    repository: TripRepository
    schema: TripSchema = "free_text"

    def new_draft(self, trip_date: date | None = None) -> TripDraft:
        """Return an empty draft dated today unless a date is given."""
        return TripDraft(
            schema=self.schema, trip_date=(trip_date or date.today()).isoformat()
        )

    async def load_trip(self, trip: Trip) -> TripDraft:
        """Return a draft for editing an existing trip.

        Catalog-addressed trips get their section bound when the catalog
        knows it; no field is re-derived from it.
        """
        draft = TripDraft.from_trip(trip, self.schema)
        if draft.section_id is not None:
            section = await self.catalog.find_section(draft.section_id)
            if section is None:
                _logger.warning(
                    "Trip %s references unknown section %s", trip.id, draft.section_id
                )
            else:
                draft.section = section
        return draft

    def apply_section(self, selected: Section, draft: TripDraft) -> TripDraft:
        """Bind a selected section and fill blank derived fields from it."""
        draft.section = selected
        draft.section_id = selected.id
        if not draft.difficulty.strip() and selected.class_rating:
            draft.difficulty = format_class_rating(selected.class_rating)
        if not draft.mileage.strip() and selected.mileage is not None:
            draft.mileage = str(selected.mileage)
        if draft.schema == "catalog_ref":
            draft.river_name = selected.river_name
            draft.section_name = selected.name
        else:
            if not draft.river_name.strip():
                draft.river_name = selected.river_name
            if not draft.section_name.strip():
                draft.section_name = selected.name
        return draft

    def clear_section(self, draft: TripDraft) -> TripDraft:
        """Unbind the section; typed and derived values stay as they are."""
        draft.section = None
        draft.section_id = None
        return draft

    def to_create_request(self, draft: TripDraft) -> TripWriteRequest:
        """Convert the draft, raising InvalidInputError before any network call."""
        return build_write_request(draft)

    async def submit(self, draft: TripDraft, trip_id: int | None = None) -> Trip:
        """Create the trip, or replace it when ``trip_id`` is given."""
        request = self.to_create_request(draft)
        if trip_id is None:
            return await self.repository.create(request)
        return await self.repository.update(trip_id, request)


def format_class_rating(rating: str) -> str:
    """Turn a catalog class rating into a difficulty label.

    "IIItoIV" -> "III - IV", "IVplus" -> "IV+",
    "IVstandoutVplus" -> "IV(V+)".
    """
    formatted = rating.replace("to", " - ")
    formatted = formatted.replace("plus", "+")
    formatted = formatted.replace("minus", "-")
    head, marker, tail = formatted.partition("standout")
    if marker:
        formatted = f"{head}({tail})"
    return formatted
