"""Section catalog lookups with debounced search."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from river_log.adapters.payloads import RiversPagePayload, SectionsPagePayload, decode
from river_log.domain.catalog import River, Section
from river_log.domain.errors import ApiError
from river_log.services.sessions import SessionManager

_logger = logging.getLogger(__name__)

# Matches the server default page size for /sections.
_PAGE_SIZE = 50

SectionsListener = Callable[[list[Section]], None]


@dataclass
class SectionCatalogClient:
    """Client for the read-only section catalog.

    Every ``search`` call takes a sequence number. A call reaches the network
    only if no newer call was issued during the debounce window, and its
    response is applied only if it is still the newest call when it arrives.
    """

    session_manager: SessionManager
    debounce_seconds: float = 0.3
    _sequence: int = field(default=0, init=False)
    _results: list[Section] = field(default_factory=list, init=False)
    _all_sections: list[Section] | None = field(default=None, init=False)
    _listeners: list[SectionsListener] = field(default_factory=list, init=False)

    @property
    def results(self) -> list[Section]:
        """The currently visible result set."""
        return list(self._results)

    def subscribe(self, listener: SectionsListener) -> Callable[[], None]:
        """Register a listener for result changes and return an unsubscribe hook."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def search(self, query: str) -> list[Section] | None:
        """Search the catalog.

        Returns the applied results, or None when a newer search superseded
        this one (before it was sent or while it was in flight). A superseded
        call that fails also returns None instead of raising.
        """
        self._sequence += 1
        sequence = self._sequence
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
        if sequence != self._sequence:
            _logger.debug("Search superseded before sending (sequence=%s)", sequence)
            return None

        try:
            data = await self.session_manager.authorized(
                "GET", "/sections", params={"search": query}
            )
        except ApiError:
            if sequence != self._sequence:
                _logger.debug("Discarded stale search failure (sequence=%s)", sequence)
                return None
            raise
        sections = _sections(data)
        if sequence != self._sequence:
            _logger.debug("Discarded stale search result (sequence=%s)", sequence)
            return None
        self._publish(sections)
        return sections

    def filter_local(self, query: str) -> list[Section] | None:
        """Filter the fully fetched catalog locally.

        Returns None when no full set has been fetched yet. The filtered view
        is provisional; the next applied ``search`` result replaces it.
        """
        if self._all_sections is None:
            return None
        matches = [section for section in self._all_sections if section.matches(query)]
        self._publish(matches)
        return matches

    def cancel_pending(self) -> None:
        """Discard any search still waiting or in flight."""
        self._sequence += 1

    async def fetch_all(self) -> list[Section]:
        """Fetch the unfiltered catalog page by page and keep it for local lookups."""
        sections: list[Section] = []
        while True:
            data = await self.session_manager.authorized(
                "GET",
                "/sections",
                params={"limit": _PAGE_SIZE, "offset": len(sections)},
            )
            page = decode(SectionsPagePayload, data)
            batch = [section.to_domain() for section in page.sections or []]
            sections.extend(batch)
            if not batch:
                break
            if page.total is not None and len(sections) >= page.total:
                break
            if page.total is None and len(batch) < _PAGE_SIZE:
                break
        self._all_sections = sections
        _logger.info("Fetched %s catalog sections", len(sections))
        return list(sections)

    async def find_section(self, section_id: int) -> Section | None:
        """Resolve a section reference, fetching the catalog once if needed."""
        sections = self._all_sections
        if sections is None:
            sections = await self.fetch_all()
        for section in sections:
            if section.id == section_id:
                return section
        return None

    async def list_rivers(
        self, search: str | None = None, state: str | None = None
    ) -> list[River]:
        """Return catalog rivers, optionally filtered by name or state."""
        data = await self.session_manager.authorized(
            "GET", "/rivers", params={"search": search, "state": state}
        )
        page = decode(RiversPagePayload, data)
        return [river.to_domain() for river in page.rivers or []]

    def _publish(self, sections: list[Section]) -> None:
        self._results = list(sections)
        for listener in list(self._listeners):
            try:
                listener(list(sections))
            except Exception:
                _logger.exception("Section listener failed")


def _sections(data: object) -> list[Section]:
    page = decode(SectionsPagePayload, data)
    return [section.to_domain() for section in page.sections or []]
