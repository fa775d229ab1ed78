"""Error taxonomy shared by every API operation."""


class ApiError(Exception):
    """Base class for failures surfaced by the client core."""


class InvalidInputError(ApiError):
    """Local validation failed; nothing was sent to the server."""

    def __init__(self, message: str, fields: tuple[str, ...] = ()) -> None:
        self.fields = fields
        super().__init__(message)


class UnauthorizedError(ApiError):
    """The server rejected the bearer credential (HTTP 401)."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ServerError(ApiError):
    """Any other 4xx/5xx response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NetworkError(ApiError):
    """The request never produced an HTTP response."""


class DecodingError(ApiError):
    """The response body did not match the expected shape."""


class SecretStoreError(Exception):
    """The platform secret store could not be read or written."""


_NETWORK_MESSAGE = "Network error. Please check your connection."
_SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."


def describe_error(error: Exception, action: str) -> str:
    """Return the single user-facing message for a failed action.

    ``action`` is a short verb phrase such as ``"save trip"``; it is used for
    the generic fallback message.
    """
    if isinstance(error, InvalidInputError):
        return str(error)
    if isinstance(error, UnauthorizedError):
        if action == "log in":
            return "Invalid email or password"
        return _SESSION_EXPIRED_MESSAGE
    if isinstance(error, ServerError) and error.message:
        return error.message
    if isinstance(error, NetworkError):
        return _NETWORK_MESSAGE
    if isinstance(error, ApiError):
        return f"Failed to {action}. Please try again."
    return "An unexpected error occurred"
