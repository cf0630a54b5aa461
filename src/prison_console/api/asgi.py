"""ASGI entrypoint for the prison console API."""

from prison_console.api.app import create_app
from prison_console.containers import build_container

app = create_app(build_container())
