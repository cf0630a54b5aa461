"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from prison_console.adapters.auth_api import HttpxAuthApi
from prison_console.adapters.backend_client import HttpxBackendClient
from prison_console.adapters.prisoner_api import HttpxPrisonerApi
from prison_console.adapters.resource_api import HttpxResourceApi
from prison_console.adapters.session_store import JsonFileSessionStore
from prison_console.config import Settings
from prison_console.services.auth import AuthService, SessionContext
from prison_console.services.console import ConsoleSession, ConsoleSessionRegistry
from prison_console.services.notifications import NotificationCenter
from prison_console.services.records import RESOURCES, build_record_services
from prison_console.services.wizard import WizardRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    sessions: ConsoleSessionRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    backend_client = HttpxBackendClient.create(
        base_url=resolved_settings.api_base_url,
        timeout=resolved_settings.request_timeout_seconds,
    )
    session_dir = Path(resolved_settings.session_dir)

    def open_console(token: str) -> ConsoleSession:
        context = SessionContext(
            store=JsonFileSessionStore.for_token(session_dir, token)
        )
        client = backend_client.bind(context.access_token)
        notifications = NotificationCenter(environment=resolved_settings.environment)
        wizards = WizardRegistry(
            idle_timeout_seconds=resolved_settings.draft_idle_timeout_seconds
        )
        return ConsoleSession(
            token=token,
            auth_service=AuthService(
                api=HttpxAuthApi(client), context=context, on_sign_out=wizards.clear
            ),
            notifications=notifications,
            record_services=build_record_services(
                {name: HttpxResourceApi(client, f"/{name}") for name in RESOURCES},
                notifications,
            ),
            prisoner_api=HttpxPrisonerApi(client),
            wizards=wizards,
        )

    async def close_resources() -> None:
        await backend_client.close()

    return AppContainer(
        settings=resolved_settings,
        sessions=ConsoleSessionRegistry(
            factory=open_console,
            idle_timeout_seconds=resolved_settings.session_idle_timeout_seconds,
        ),
        close_resources=close_resources,
    )
