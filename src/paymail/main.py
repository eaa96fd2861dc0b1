"""Application entry point for the paymail backend server."""

import structlog

from paymail.app import App
from paymail.config import Config
from paymail.logging import setup_logging
from paymail.web.runner import run_server

logger = structlog.get_logger(__name__)


def main() -> None:
    config = Config()  # type: ignore[call-arg]
    setup_logging(config.debug)
    logger.info(
        "paymail_starting",
        environment="production" if config.production else "local",
        redirect_uri=config.redirect_uri,
        frontend_origin=config.frontend_origin,
    )
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
