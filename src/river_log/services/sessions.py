"""Authentication session lifecycle."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from river_log.adapters.http_gateway import RequestGateway
from river_log.adapters.payloads import AuthTokenPayload, UserPayload, decode
from river_log.domain.errors import (
    ApiError,
    DecodingError,
    SecretStoreError,
    UnauthorizedError,
)
from river_log.domain.models import UserRecord
from river_log.domain.sessions import Session, SessionSnapshot, SessionState

_logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]


class SecretStore(Protocol):
    """Platform storage for the persisted token and user."""

    def load_token(self) -> str | None:
        """Return the stored bearer token, if any."""

    def load_user(self) -> UserRecord | None:
        """Return the stored user snapshot, if any."""

    def save(self, token: str, user: UserRecord) -> None:
        """Persist token and user together, or neither."""

    def clear(self) -> None:
        """Remove both token and user."""


@dataclass
class SessionManager:
    """Owns the bearer credential and the current user.

    Every mutation runs under one lock, so a logout racing a login always
    ends in one consistent state. Each new session bumps a generation
    counter; late results tied to an older generation (background
    validation, a 401 on a request sent with an old token) are discarded.
    """

    gateway: RequestGateway
    secret_store: SecretStore
    _snapshot: SessionSnapshot = field(
        default_factory=lambda: SessionSnapshot(state=SessionState.UNKNOWN),
        init=False,
    )
    _generation: int = field(default=0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _validation_task: "asyncio.Task[None] | None" = field(default=None, init=False)
    _listeners: list[SessionListener] = field(default_factory=list, init=False)

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def state(self) -> SessionState:
        return self._snapshot.state

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot.is_authenticated

    @property
    def token(self) -> str | None:
        session = self._snapshot.session
        return session.token if session else None

    @property
    def current_user(self) -> UserRecord | None:
        session = self._snapshot.session
        return session.user if session else None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for state changes and return an unsubscribe hook."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def restore(self) -> SessionSnapshot:
        """Restore a persisted session and re-validate it in the background.

        The returned authenticated snapshot is provisional (``validated`` is
        False) until the profile check finishes; see ``wait_validated``.
        """
        async with self._lock:
            try:
                token = self.secret_store.load_token()
                user = self.secret_store.load_user()
            except SecretStoreError:
                _logger.exception("Failed to read persisted session")
                self._publish(SessionSnapshot(state=SessionState.UNAUTHENTICATED))
                return self._snapshot

            if token is None or user is None:
                if token is not None or user is not None:
                    _logger.warning("Persisted session is incomplete; clearing it")
                    self._clear_store()
                self._publish(SessionSnapshot(state=SessionState.UNAUTHENTICATED))
                return self._snapshot

            generation = self._next_generation()
            self._publish(
                SessionSnapshot(
                    state=SessionState.AUTHENTICATED,
                    session=Session(token=token, user=user),
                    validated=False,
                )
            )
            self._validation_task = asyncio.create_task(
                self._validate(token, generation)
            )
            return self._snapshot

    async def wait_validated(self) -> SessionSnapshot:
        """Wait for a pending background validation and return the snapshot."""
        task = self._validation_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self._snapshot

    async def login(self, email: str, password: str) -> Session:
        """Authenticate and persist the new session."""
        async with self._lock:
            return await self._login_locked(email, password)

    async def register(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> Session:
        """Create an account, then log in with the same credentials.

        If the follow-up login fails the error propagates even though the
        account now exists on the server.
        """
        async with self._lock:
            data = await self.gateway.execute(
                "POST",
                "/auth/register",
                body={
                    "email": email,
                    "password": password,
                    "first_name": _optional(first_name),
                    "last_name": _optional(last_name),
                },
            )
            created = decode(UserPayload, data).to_domain()
            _logger.info("Registered user_id=%s", created.id)
            try:
                return await self._login_locked(email, password)
            except (ApiError, SecretStoreError) as exc:
                _logger.warning(
                    "Account user_id=%s created but automatic login failed: %s",
                    created.id,
                    type(exc).__name__,
                )
                raise

    async def logout(self) -> None:
        """Clear the persisted session and become unauthenticated."""
        async with self._lock:
            self._teardown()

    async def update_profile(
        self, first_name: str | None = None, last_name: str | None = None
    ) -> UserRecord:
        """Update the current user's names and refresh the stored user."""
        data = await self.authorized(
            "PUT",
            "/users/me",
            body={
                "first_name": _optional(first_name),
                "last_name": _optional(last_name),
            },
        )
        user = decode(UserPayload, data).to_domain()
        async with self._lock:
            session = self._snapshot.session
            if session is not None and session.user.id == user.id:
                refreshed = Session(token=session.token, user=user)
                self._save_store(refreshed)
                self._publish(
                    SessionSnapshot(
                        state=SessionState.AUTHENTICATED,
                        session=refreshed,
                        validated=self._snapshot.validated,
                    )
                )
        return user

    async def authorized(
        self,
        method: str,
        path: str,
        body: dict[str, object] | None = None,
        params: dict[str, object] | None = None,
    ) -> object:
        """Execute a call with the current token.

        A 401 tears the session down before the error is re-raised.
        """
        session = self._snapshot.session
        generation = self._generation
        if session is None:
            raise UnauthorizedError("Not authenticated")
        try:
            return await self.gateway.execute(
                method, path, body=body, token=session.token, params=params
            )
        except UnauthorizedError:
            await self._invalidate(generation)
            raise

    async def _login_locked(self, email: str, password: str) -> Session:
        data = await self.gateway.execute(
            "POST", "/auth/login", body={"email": email, "password": password}
        )
        session = decode(AuthTokenPayload, data).to_domain()
        self.secret_store.save(session.token, session.user)
        self._next_generation()
        self._publish(
            SessionSnapshot(
                state=SessionState.AUTHENTICATED, session=session, validated=True
            )
        )
        _logger.info("Logged in user_id=%s", session.user.id)
        return session

    async def _validate(self, token: str, generation: int) -> None:
        try:
            data = await self.gateway.execute("GET", "/users/me", token=token)
            user = decode(UserPayload, data).to_domain()
        except (UnauthorizedError, DecodingError) as exc:
            _logger.info("Stored session rejected (%s)", type(exc).__name__)
            await self._invalidate(generation)
            return
        except ApiError as exc:
            _logger.warning("Could not validate stored session: %s", exc)
            return

        async with self._lock:
            if generation != self._generation:
                return
            session = Session(token=token, user=user)
            self._save_store(session)
            self._publish(
                SessionSnapshot(
                    state=SessionState.AUTHENTICATED, session=session, validated=True
                )
            )

    async def _invalidate(self, generation: int) -> None:
        async with self._lock:
            if generation != self._generation:
                return
            self._teardown()

    def _teardown(self) -> None:
        self._next_generation()
        task = self._validation_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._clear_store()
        was_authenticated = self._snapshot.is_authenticated
        self._publish(SessionSnapshot(state=SessionState.UNAUTHENTICATED))
        if was_authenticated:
            _logger.info("Session cleared")

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _clear_store(self) -> None:
        try:
            self.secret_store.clear()
        except SecretStoreError:
            _logger.exception("Failed to clear persisted session")

    def _save_store(self, session: Session) -> None:
        try:
            self.secret_store.save(session.token, session.user)
        except SecretStoreError:
            _logger.exception("Failed to persist refreshed user")

    def _publish(self, snapshot: SessionSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.exception("Session listener failed")


def _optional(text: str | None) -> str | None:
    if text is None:
        return None
    cleaned = text.strip()
    return cleaned or None
