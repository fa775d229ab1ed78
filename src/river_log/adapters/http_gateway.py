"""River Log REST API request gateway."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from river_log.config import normalize_base_url
from river_log.domain.errors import (
    DecodingError,
    NetworkError,
    ServerError,
    UnauthorizedError,
)

_logger = logging.getLogger(__name__)

_NO_CONTENT = 204
_UNAUTHORIZED = 401
_FIRST_ERROR_STATUS = 400


class RequestGateway(Protocol):
    """Interface for executing a single API call."""

    async def execute(
        self,
        method: str,
        path: str,
        body: dict[str, object] | None = None,
        token: str | None = None,
        params: dict[str, object] | None = None,
    ) -> object:
        """Run one request and return the envelope's ``data`` value."""


@dataclass
class HttpxRequestGateway(RequestGateway):
    """Gateway implemented with httpx.

    Failures are raised as the ``river_log.domain.errors`` taxonomy and are
    never retried here.
    """

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, timeout_seconds: float) -> "HttpxRequestGateway":
        """Create a gateway with a managed httpx session."""
        return cls(
            base_url=normalize_base_url(base_url),
            http_client=httpx.AsyncClient(timeout=timeout_seconds),
        )

    async def execute(
        self,
        method: str,
        path: str,
        body: dict[str, object] | None = None,
        token: str | None = None,
        params: dict[str, object] | None = None,
    ) -> object:
        """Send the request and classify the response."""
        url = f"{self.base_url}{path}"
        headers: dict[str, str] = {"Accept": "application/json"}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        query = _clean_params(params)
        try:
            response = await self.http_client.request(
                method,
                url,
                json=body,
                headers=headers,
                params=query,
            )
        except httpx.DecodingError as exc:
            _logger.warning("Request %s %s returned an undecodable body", method, path)
            raise DecodingError(f"{method} {path}: {exc}") from exc
        except httpx.RequestError as exc:
            _logger.warning("Request %s %s failed in transport: %s", method, path, exc)
            raise NetworkError(str(exc) or type(exc).__name__) from exc
        return _classify(method, path, response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _classify(method: str, path: str, response: httpx.Response) -> object:
    status = response.status_code
    if status == _NO_CONTENT:
        return None
    if status == _UNAUTHORIZED:
        _logger.warning("Request %s %s unauthorized", method, path)
        raise UnauthorizedError()
    if status >= _FIRST_ERROR_STATUS or not response.is_success:
        message = _error_message(response)
        _logger.warning("Request %s %s failed (status=%s)", method, path, status)
        raise ServerError(message, status_code=status)

    try:
        payload = response.json()
    except ValueError as exc:
        raise DecodingError(f"{method} {path}: response is not JSON") from exc
    if not isinstance(payload, dict) or "data" not in payload:
        raise DecodingError(f"{method} {path}: response has no data envelope")
    return payload["data"]


def _error_message(response: httpx.Response) -> str:
    """Return the ``error`` field of a failure envelope, else the status code."""
    try:
        payload = response.json()
    except ValueError:
        return str(response.status_code)
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, str) and error:
            return error
    return str(response.status_code)


def _clean_params(params: dict[str, object] | None) -> dict[str, str] | None:
    if not params:
        return None
    cleaned = {key: str(value) for key, value in params.items() if value is not None}
    return cleaned or None
