"""Domain models for the river and section catalog."""

from dataclasses import dataclass


@dataclass(frozen=True)
class River:
    """A river in the catalog."""

    id: int
    name: str
    state: str


@dataclass(frozen=True, eq=False)
class Section:
    """A runnable section of a river. Sections compare equal by id."""

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

    @property
    def display_name(self) -> str:
        return f"{self.river_name} - {self.name}"

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on river or section name."""
        needle = query.strip().lower()
        if not needle:
            return True
        return needle in self.river_name.lower() or needle in self.name.lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Section):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
