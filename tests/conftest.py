"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from itertools import count

import httpx
import pytest

from river_log.adapters.http_gateway import HttpxRequestGateway
from river_log.config import Settings
from river_log.containers import AppContainer, build_container
from river_log.domain.errors import SecretStoreError
from river_log.domain.models import UserRecord
from river_log.services.catalog import SectionCatalogClient
from river_log.services.forms import TripFormReconciler
from river_log.services.sessions import SecretStore, SessionManager
from river_log.services.trips import TripRepository

BASE_URL = "https://riverlog.test/api/v1"
API_PREFIX = "/api/v1"
TIMESTAMP = "2024-05-01T12:00:00Z"
SECTIONS_DEFAULT_LIMIT = 50

SAMPLE_SECTIONS: list[dict[str, object]] = [
    {
        "id": 1,
        "river_id": 10,
        "river_name": "Elk River",
        "state": "CO",
        "name": "Box Canyon",
        "class_rating": "IIItoIV",
        "mileage": 4.5,
        "gauge_id": "09241000",
        "flow_min": 300.0,
        "flow_max": 1500.0,
        "flow_unit": "cfs",
    },
    {
        "id": 2,
        "river_id": 10,
        "river_name": "Elk River",
        "state": "CO",
        "name": "Upper Elk",
        "class_rating": "IVstandoutVplus",
        "mileage": 6.0,
    },
    {
        "id": 3,
        "river_id": 20,
        "river_name": "Green River",
        "state": "NC",
        "name": "Narrows",
        "class_rating": "IVplus",
        "mileage": None,
    },
]

SAMPLE_RIVERS: list[dict[str, object]] = [
    {"id": 10, "name": "Elk River", "state": "CO"},
    {"id": 20, "name": "Green River", "state": "NC"},
]


@dataclass
class InMemorySecretStore(SecretStore):
    """In-memory secret store for tests."""

    token: str | None = None
    user: UserRecord | None = None
    fail_on_save: bool = False
    clear_calls: int = 0

    def load_token(self) -> str | None:
        return self.token

    def load_user(self) -> UserRecord | None:
        return self.user

    def save(self, token: str, user: UserRecord) -> None:
        if self.fail_on_save:
            raise SecretStoreError("keychain locked")
        self.token = token
        self.user = user

    def clear(self) -> None:
        self.clear_calls += 1
        self.token = None
        self.user = None


@dataclass
class FakeBackend:
    """In-memory River Log API served through httpx.MockTransport."""

    accounts: dict[str, dict[str, object]] = field(default_factory=dict)
    tokens: dict[str, int] = field(default_factory=dict)
    trips: dict[int, dict[str, object]] = field(default_factory=dict)
    sections: list[dict[str, object]] = field(
        default_factory=lambda: [dict(section) for section in SAMPLE_SECTIONS]
    )
    rivers: list[dict[str, object]] = field(
        default_factory=lambda: [dict(river) for river in SAMPLE_RIVERS]
    )
    failures: dict[tuple[str, str], httpx.Response] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    _user_ids: count = field(default_factory=lambda: count(1))
    _trip_ids: count = field(default_factory=lambda: count(100))
    _token_ids: count = field(default_factory=lambda: count(1))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add_user(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> dict[str, object]:
        user = {
            "id": next(self._user_ids),
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "created_at": TIMESTAMP,
            "updated_at": TIMESTAMP,
        }
        self.accounts[email] = {"password": password, "user": user}
        return user

    def issue_token(self, email: str) -> str:
        token = f"token-{next(self._token_ids)}"
        self.tokens[token] = int(self.accounts[email]["user"]["id"])  # type: ignore[index]
        return token

    def add_trip(self, user_id: int, **fields: object) -> dict[str, object]:
        trip_id = next(self._trip_ids)
        trip = {
            "id": trip_id,
            "user_id": user_id,
            "river_name": "Elk River",
            "section_name": "Box Canyon",
            "trip_date": "2024-05-01",
            "created_at": TIMESTAMP,
            "updated_at": TIMESTAMP,
        }
        trip.update(fields)
        for section in self.sections:
            if section["id"] == trip.get("section_id"):
                trip["river_name"] = section["river_name"]
                trip["section_name"] = section["name"]
        self.trips[trip_id] = trip
        return trip

    def count_requests(self, method: str, path: str) -> int:
        return sum(
            1
            for request in self.requests
            if request.method == method
            and request.url.path.removeprefix(API_PREFIX) == path
        )

    def handle(self, request: httpx.Request) -> httpx.Response:  # noqa: PLR0911
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)
        failure = self.failures.get((request.method, path))
        if failure is not None:
            return failure

        if path == "/auth/register" and request.method == "POST":
            return self._register(_json_body(request))
        if path == "/auth/login" and request.method == "POST":
            return self._login(_json_body(request))

        user = self._authenticated_user(request)
        if user is None:
            return httpx.Response(401, json={"error": "Unauthorized"})

        if path == "/users/me":
            if request.method == "PUT":
                body = _json_body(request)
                user["first_name"] = body.get("first_name")
                user["last_name"] = body.get("last_name")
            return httpx.Response(200, json={"data": user})
        if path == "/trips" and request.method == "GET":
            return self._list_trips(int(user["id"]))  # type: ignore[arg-type]
        if path == "/trips" and request.method == "POST":
            trip = self.add_trip(int(user["id"]), **_json_body(request))  # type: ignore[arg-type]
            return httpx.Response(201, json={"data": trip})
        if path.startswith("/trips/"):
            return self._trip_item(request, int(path.rsplit("/", 1)[1]))
        if path == "/sections":
            return self._list_sections(request.url.params)
        if path == "/rivers":
            return httpx.Response(
                200, json={"data": {"rivers": self.rivers, "total": len(self.rivers)}}
            )
        return httpx.Response(404, json={"error": "Not found"})

    def _register(self, body: dict[str, object]) -> httpx.Response:
        email = str(body["email"])
        if email in self.accounts:
            return httpx.Response(409, json={"error": "Email already registered"})
        user = self.add_user(
            email,
            str(body["password"]),
            first_name=body.get("first_name"),  # type: ignore[arg-type]
            last_name=body.get("last_name"),  # type: ignore[arg-type]
        )
        return httpx.Response(201, json={"data": user, "message": "Registered"})

    def _login(self, body: dict[str, object]) -> httpx.Response:
        account = self.accounts.get(str(body.get("email")))
        if account is None or account["password"] != body.get("password"):
            return httpx.Response(401, json={"error": "Invalid credentials"})
        token = self.issue_token(str(body["email"]))
        return httpx.Response(
            200, json={"data": {"token": token, "user": account["user"]}}
        )

    def _authenticated_user(self, request: httpx.Request) -> dict[str, object] | None:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ")
        user_id = self.tokens.get(token)
        if user_id is None:
            return None
        for account in self.accounts.values():
            user = account["user"]
            if user["id"] == user_id:  # type: ignore[index]
                return user  # type: ignore[return-value]
        return None

    def _list_trips(self, user_id: int) -> httpx.Response:
        trips = [trip for trip in self.trips.values() if trip["user_id"] == user_id]
        page = {"trips": trips, "total": len(trips), "limit": 20, "offset": 0}
        return httpx.Response(200, json={"data": page})

    def _trip_item(self, request: httpx.Request, trip_id: int) -> httpx.Response:
        trip = self.trips.get(trip_id)
        if trip is None:
            return httpx.Response(404, json={"error": "Trip not found"})
        if request.method == "GET":
            return httpx.Response(200, json={"data": trip})
        if request.method == "PUT":
            trip.update(_json_body(request))
            return httpx.Response(200, json={"data": trip})
        if request.method == "DELETE":
            del self.trips[trip_id]
            return httpx.Response(204)
        return httpx.Response(405, json={"error": "Method not allowed"})

    def _list_sections(self, params: httpx.QueryParams) -> httpx.Response:
        sections = self.sections
        search = params.get("search")
        if search:
            needle = search.lower()
            sections = [
                section
                for section in sections
                if needle in str(section["river_name"]).lower()
                or needle in str(section["name"]).lower()
            ]
        limit = int(params.get("limit") or SECTIONS_DEFAULT_LIMIT)
        offset = int(params.get("offset") or 0)
        page = {"sections": sections[offset : offset + limit], "total": len(sections)}
        return httpx.Response(200, json={"data": page})


def _json_body(request: httpx.Request) -> dict[str, object]:
    return json.loads(request.content.decode()) if request.content else {}


def make_gateway(transport: httpx.MockTransport) -> HttpxRequestGateway:
    return HttpxRequestGateway(
        base_url=BASE_URL, http_client=httpx.AsyncClient(transport=transport)
    )


def stored_user(user: dict[str, object]) -> UserRecord:
    return UserRecord(
        id=int(user["id"]),  # type: ignore[arg-type]
        email=str(user["email"]),
        first_name=user.get("first_name"),  # type: ignore[arg-type]
        last_name=user.get("last_name"),  # type: ignore[arg-type]
        created_at=datetime(2024, 5, 1, 12, tzinfo=UTC),
        updated_at=datetime(2024, 5, 1, 12, tzinfo=UTC),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url=BASE_URL,
        search_debounce_seconds=0.0,
        trip_schema="free_text",
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def gateway(backend: FakeBackend) -> HttpxRequestGateway:
    return make_gateway(backend.transport())


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    return InMemorySecretStore()


@pytest.fixture
def session_manager(
    gateway: HttpxRequestGateway, secret_store: InMemorySecretStore
) -> SessionManager:
    return SessionManager(gateway=gateway, secret_store=secret_store)


@pytest.fixture
def trip_repository(session_manager: SessionManager) -> TripRepository:
    return TripRepository(session_manager)


@pytest.fixture
def catalog(session_manager: SessionManager) -> SectionCatalogClient:
    return SectionCatalogClient(session_manager=session_manager, debounce_seconds=0.0)


@pytest.fixture
def reconciler(
    catalog: SectionCatalogClient, trip_repository: TripRepository
) -> TripFormReconciler:
    return TripFormReconciler(catalog=catalog, repository=trip_repository)


@pytest.fixture
def container(
    settings: Settings,
    gateway: HttpxRequestGateway,
    secret_store: InMemorySecretStore,
) -> AppContainer:
    return build_container(settings, secret_store=secret_store, gateway=gateway)
