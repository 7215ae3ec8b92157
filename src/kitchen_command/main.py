"""ASGI entrypoint for running the record store service."""
from __future__ import annotations

import logging

import uvicorn

from .config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from :class:`Settings`."""

    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def run() -> None:
    """Convenience wrapper used by ``python -m kitchen_command.main``."""

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(
        "kitchen_command.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
