"""Dependency container wiring for the client core."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from river_log.adapters.http_gateway import HttpxRequestGateway, RequestGateway
from river_log.adapters.keyring_secret_store import KeyringSecretStore
from river_log.config import Settings
from river_log.domain.sessions import SessionSnapshot, SessionState
from river_log.services.catalog import SectionCatalogClient
from river_log.services.forms import TripFormReconciler
from river_log.services.sessions import SecretStore, SessionManager
from river_log.services.trips import TripRepository


@dataclass
class AppContainer:
    """Holds client-wide dependencies."""

    settings: Settings
    gateway: RequestGateway
    session_manager: SessionManager
    trip_repository: TripRepository
    catalog: SectionCatalogClient
    form_reconciler: TripFormReconciler
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    secret_store: SecretStore | None = None,
    gateway: HttpxRequestGateway | None = None,
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    resolved_gateway = gateway or HttpxRequestGateway.create(
        base_url=resolved_settings.api_base_url,
        timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    session_manager = SessionManager(
        gateway=resolved_gateway,
        secret_store=secret_store
        or KeyringSecretStore(service=resolved_settings.keyring_service),
    )
    trip_repository = TripRepository(session_manager)
    catalog = SectionCatalogClient(
        session_manager=session_manager,
        debounce_seconds=resolved_settings.search_debounce_seconds,
    )
    form_reconciler = TripFormReconciler(
        catalog=catalog,
        repository=trip_repository,
        schema=resolved_settings.trip_schema,
    )

    def drop_user_data(snapshot: SessionSnapshot) -> None:
        if snapshot.state is SessionState.UNAUTHENTICATED:
            trip_repository.clear()
            catalog.cancel_pending()

    session_manager.subscribe(drop_user_data)

    async def close_resources() -> None:
        await resolved_gateway.close()

    return AppContainer(
        settings=resolved_settings,
        gateway=resolved_gateway,
        session_manager=session_manager,
        trip_repository=trip_repository,
        catalog=catalog,
        form_reconciler=form_reconciler,
        close_resources=close_resources,
    )
