"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prison_console.api.auth import router as auth_router
from prison_console.api.errors import register_error_handlers
from prison_console.api.guards import current_console, current_session
from prison_console.api.records import router as records_router
from prison_console.api.wizards import router as wizards_router
from prison_console.app_logging import configure_logging
from prison_console.config import parse_allowed_origins
from prison_console.containers import AppContainer
from prison_console.domain.navigation import NAVIGATION
from prison_console.domain.session import Session
from prison_console.services.console import ConsoleSession
from prison_console.services.navigation import filter_navigation, serialize_navigation


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)
    allowed_origins = parse_allowed_origins(container.settings.allow_origin)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        logger.info("Closing backend connections")
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    register_error_handlers(app)
    app.include_router(auth_router)
    app.include_router(records_router)
    app.include_router(wizards_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/navigation")
    async def navigation(
        session: Session | None = Depends(current_session),
    ) -> dict[str, object]:
        """Return the sidebar entries the operator may see."""
        items = filter_navigation(NAVIGATION, session)
        return {"success": True, "data": serialize_navigation(items)}

    @app.get("/notifications")
    async def notifications(
        console: ConsoleSession | None = Depends(current_console),
    ) -> dict[str, object]:
        """Return and clear this console's pending notifications."""
        pending = console.notifications.drain() if console is not None else []
        return {
            "success": True,
            "data": [
                {
                    "level": item.level,
                    "message": item.message,
                    "createdAt": item.created_at.isoformat(),
                }
                for item in pending
            ],
        }

    return app
