"""
Module runner to start the FastAPI server.

Usage:
    python -m unified_oauth.run
"""
import os

import uvicorn
from dotenv import load_dotenv

from .app import create_app
from .core.logging import get_logger

logger = get_logger(__name__)


# PUBLIC_INTERFACE
def main():
    """Entry point to start the FastAPI server with environment-based configuration."""
    load_dotenv()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3001"))
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    # Fails fast with ConfigurationError when OAuth client credentials are missing
    app = create_app()

    logger.info("server_starting", extra={"host": host, "port": port, "log_level": log_level})
    uvicorn.run(app, host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    main()
