"""Domain models for River Log users."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserRecord:
    """Represents the authenticated user as returned by the API."""

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def display_name(self) -> str:
        """Return "first last" when both names are set, else the email."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.email
