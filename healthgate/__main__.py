"""
Run the health gate service.

Exit status: 0 after any shutdown that followed a successful bootstrap
(clean or forced drain), 1 if bootstrap failed.
"""

import sys

from .api.main import create_app
from .api.server import build_server
from .core.config import get_settings
from .core.logging import get_logger

logger = get_logger("cli")


def main() -> int:
    config = get_settings()
    app = create_app(config)
    server = build_server(app, config)

    logger.info("starting_server", host=config.HOST, port=config.PORT)
    try:
        server.run()
    except SystemExit:
        # newer uvicorn exits by itself when the lifespan startup fails
        if server.started:
            raise

    if not server.started:
        logger.error("server_failed_to_start")
        return 1

    logger.info("server_exited")
    return 0


if __name__ == "__main__":
    sys.exit(main())
