"""
Marketplace API - main entry point.

    python -m marketplace.main

Reads configuration from the environment (and .env), refuses to start
without JWT_SECRET_KEY and the Google OAuth credentials, then serves the
API with uvicorn.
"""

from __future__ import annotations

import logging
import sys

import uvicorn

from marketplace.api.app import create_app
from marketplace.config import get_settings
from marketplace.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    settings = get_settings()

    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.critical(f"Refusing to start: {e.detail}")
        sys.exit(1)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
