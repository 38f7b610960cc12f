"""ASGI entrypoint for running the row store service."""
from __future__ import annotations

import uvicorn

from .config import get_settings
from .logger import setup_logger


def run() -> None:
    """Convenience wrapper used by ``python -m inventory_sync.main``."""

    settings = get_settings()
    setup_logger(log_level=settings.log_level, log_file=settings.log_file)
    uvicorn.run(
        "inventory_sync.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    run()
