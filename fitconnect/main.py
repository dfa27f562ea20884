"""
Entry point for the FitConnect messaging server.

Run with:
    uvicorn fitconnect.main:app
or:
    python -m fitconnect.main
"""

import uvicorn

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

app = create_app()


def main() -> None:
    """Start uvicorn with the configured host and port."""
    config = get_config()
    logger.info("Starting uvicorn", host=config.server.host, port=config.server.port)
    uvicorn.run(
        "fitconnect.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
