"""
Run the API with uvicorn: ``python -m wismon``.

Exits with status 1 when startup fails (bad configuration, or an essential
database unreachable).
"""
import logging
import sys

import uvicorn

from wismon.config import get_settings
from wismon.errors import ConfigurationError
from wismon.main import configure_logging, create_app

logger = logging.getLogger("wismon")


def run() -> int:
    try:
        settings = get_settings()
    except ConfigurationError as e:
        configure_logging("INFO")
        logger.critical("Invalid configuration: %s", e.message)
        return 1

    configure_logging(settings.log_level)
    config = uvicorn.Config(
        create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        lifespan="on",
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    server.run()
    # Lifespan startup failures leave the server unstarted
    return 0 if server.started else 1


if __name__ == "__main__":
    sys.exit(run())
