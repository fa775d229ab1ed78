"""Session persistence in the operating system keychain.

Uses the system's secure credential storage through ``keyring``:
macOS Keychain, Windows Credential Locker, or the Secret Service API on Linux.
The bearer token and the last-known user are stored as two entries under one
service name and are always written and cleared together.
"""

import logging
from dataclasses import dataclass

import keyring
from keyring.errors import KeyringError, PasswordDeleteError
from pydantic import ValidationError

from river_log.adapters.payloads import UserPayload
from river_log.domain.errors import SecretStoreError
from river_log.domain.models import UserRecord
from river_log.services.sessions import SecretStore

_logger = logging.getLogger(__name__)

TOKEN_ENTRY = "token"
USER_ENTRY = "user"


@dataclass
class KeyringSecretStore(SecretStore):
    """Secret store backed by the active keyring backend."""

    service: str

    def load_token(self) -> str | None:
        """Return the stored bearer token, if any."""
        return self._get(TOKEN_ENTRY)

    def load_user(self) -> UserRecord | None:
        """Return the stored user, or None when absent or unreadable."""
        raw = self._get(USER_ENTRY)
        if raw is None:
            return None
        try:
            return UserPayload.model_validate_json(raw).to_domain()
        except ValidationError:
            _logger.warning("Stored user entry is corrupt; ignoring it")
            return None

    def save(self, token: str, user: UserRecord) -> None:
        """Store token and user; a failed user write removes the token again."""
        serialized = UserPayload.from_domain(user).model_dump_json()
        self._set(TOKEN_ENTRY, token)
        try:
            self._set(USER_ENTRY, serialized)
        except SecretStoreError:
            self._delete(TOKEN_ENTRY)
            raise

    def clear(self) -> None:
        """Remove both entries."""
        failures: list[str] = []
        for entry in (TOKEN_ENTRY, USER_ENTRY):
            try:
                self._delete(entry)
            except SecretStoreError as exc:
                failures.append(str(exc))
        if failures:
            raise SecretStoreError("; ".join(failures))

    def _get(self, entry: str) -> str | None:
        try:
            return keyring.get_password(self.service, entry)
        except KeyringError as exc:
            raise SecretStoreError(f"Failed to read {entry} from keychain") from exc

    def _set(self, entry: str, value: str) -> None:
        try:
            keyring.set_password(self.service, entry, value)
        except KeyringError as exc:
            raise SecretStoreError(f"Failed to write {entry} to keychain") from exc

    def _delete(self, entry: str) -> None:
        try:
            keyring.delete_password(self.service, entry)
        except PasswordDeleteError:
            # Already absent.
            return
        except KeyringError as exc:
            raise SecretStoreError(f"Failed to delete {entry} from keychain") from exc

