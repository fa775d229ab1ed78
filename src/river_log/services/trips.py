"""Trip CRUD with an in-memory list cache."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from river_log.adapters.payloads import TripPayload, TripsPagePayload, decode
from river_log.domain.drafts import TripDraft, build_write_request
from river_log.domain.trips import Trip, TripStats, TripWriteRequest
from river_log.services.sessions import SessionManager

_logger = logging.getLogger(__name__)

# Listeners receive None once the cache is dropped, matching ``trips``.
TripsListener = Callable[[list[Trip] | None], None]


@dataclass
class TripRepository:
    """Service for trip resources.

    The cache is only ever replaced by the most recently issued list call,
    and only changed by writes the server has confirmed.
    """

    session_manager: SessionManager
    _trips: list[Trip] | None = field(default=None, init=False)
    _list_sequence: int = field(default=0, init=False)
    _listeners: list[TripsListener] = field(default_factory=list, init=False)

    @property
    def trips(self) -> list[Trip] | None:
        """Return a copy of the cached list, or None before the first fetch."""
        if self._trips is None:
            return None
        return list(self._trips)

    @property
    def stats(self) -> TripStats:
        """Aggregates recomputed from the current cache."""
        return summarize_trips(self._trips or [])

    def subscribe(self, listener: TripsListener) -> Callable[[], None]:
        """Register a listener for cache changes and return an unsubscribe hook."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def list_trips(
        self,
        sort_by: str | None = None,
        sort_order: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Trip]:
        """Fetch trips in server order and replace the cache."""
        self._list_sequence += 1
        sequence = self._list_sequence
        data = await self.session_manager.authorized(
            "GET",
            "/trips",
            params={
                "sort_by": sort_by,
                "sort_order": sort_order,
                "limit": limit,
                "offset": offset,
            },
        )
        page = decode(TripsPagePayload, data)
        trips = [payload.to_domain() for payload in page.trips or []]
        if sequence == self._list_sequence:
            self._replace(trips)
        else:
            _logger.debug("Discarded stale trip list (sequence=%s)", sequence)
        return trips

    async def get(self, trip_id: int) -> Trip:
        """Fetch a single trip without touching the cache."""
        data = await self.session_manager.authorized("GET", f"/trips/{trip_id}")
        return decode(TripPayload, data).to_domain()

    async def create(self, trip: TripDraft | TripWriteRequest) -> Trip:
        """Create a trip and append it to the cache."""
        request = _as_request(trip)
        data = await self.session_manager.authorized(
            "POST", "/trips", body=request.to_payload()
        )
        created = decode(TripPayload, data).to_domain()
        if self._trips is not None:
            self._replace([*self._trips, created])
        _logger.info("Created trip_id=%s", created.id)
        return created

    async def update(self, trip_id: int, trip: TripDraft | TripWriteRequest) -> Trip:
        """Replace a trip and its cached entry."""
        request = _as_request(trip)
        data = await self.session_manager.authorized(
            "PUT", f"/trips/{trip_id}", body=request.to_payload()
        )
        updated = decode(TripPayload, data).to_domain()
        if self._trips is not None:
            trips = list(self._trips)
            index = _index_of(trips, trip_id)
            if index is None:
                trips.append(updated)
            else:
                trips[index] = updated
            self._replace(trips)
        _logger.info("Updated trip_id=%s", trip_id)
        return updated

    async def delete(self, trip_id: int) -> None:
        """Delete a trip; the cache changes only after the server confirms."""
        await self.session_manager.authorized("DELETE", f"/trips/{trip_id}")
        if self._trips is not None:
            index = _index_of(self._trips, trip_id)
            if index is not None:
                trips = list(self._trips)
                del trips[index]
                self._replace(trips)
        _logger.info("Deleted trip_id=%s", trip_id)

    def clear(self) -> None:
        """Drop the cache, e.g. after the session ends."""
        self._list_sequence += 1
        self._trips = None
        self._notify(None)

    def _replace(self, trips: list[Trip]) -> None:
        self._trips = trips
        self._notify(trips)

    def _notify(self, trips: list[Trip] | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(None if trips is None else list(trips))
            except Exception:
                _logger.exception("Trip listener failed")


def summarize_trips(trips: list[Trip]) -> TripStats:
    """Total mileage, trip count and distinct river count."""
    total_mileage = 0.0
    rivers: set[str] = set()
    for trip in trips:
        if trip.mileage is not None:
            total_mileage += trip.mileage
        if trip.river_name:
            rivers.add(trip.river_name)
    return TripStats(
        total_mileage=total_mileage,
        total_trips=len(trips),
        distinct_rivers=len(rivers),
    )


def sort_newest_first(trips: list[Trip]) -> list[Trip]:
    """Order trips by trip date, newest first."""
    return sorted(trips, key=lambda trip: trip.trip_date, reverse=True)


def _as_request(trip: TripDraft | TripWriteRequest) -> TripWriteRequest:
    if isinstance(trip, TripDraft):
        return build_write_request(trip)
    return trip


def _index_of(trips: list[Trip], trip_id: int) -> int | None:
    for index, trip in enumerate(trips):
        if trip.id == trip_id:
            return index
    return None
