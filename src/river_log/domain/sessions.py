"""Domain models for the authentication session."""

from dataclasses import dataclass
from enum import Enum

from river_log.domain.models import UserRecord


class SessionState(Enum):
    """Lifecycle state of the client session."""

    UNKNOWN = "unknown"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Session:
    """Bearer token paired with the user it belongs to."""

    token: str
    user: UserRecord


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time view of the session handed to observers."""

    state: SessionState
    session: Session | None = None
    validated: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED and self.session is not None
