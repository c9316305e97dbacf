"""Module executed when running ``python -m lumiere``."""

from __future__ import annotations

import logging

import uvicorn

from app.config import settings

logger = logging.getLogger("lumiere")


def main() -> None:
    """Serve the suggestion API with uvicorn."""

    if not settings.has_tmdb_credentials:
        logger.warning("Starting without TMDB_API_KEY; suggestions will be unavailable")
    development = settings.environment == "development"
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=development,
        log_level="debug" if development else "info",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
