"""Uvicorn server runner with custom configuration."""

import copy
import logging

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from paymail.app import App
from paymail.config import Config
from paymail.web.server import create_fastapi_app


class StripQueryFilter(logging.Filter):
    """Drop the query string from access log lines.

    The OAuth callback carries the authorization code in its query string.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn access records: (client_addr, method, full_path, http_version, status_code)
        if isinstance(record.args, tuple) and len(record.args) == 5:
            client_addr, method, full_path, http_version, status_code = record.args
            if isinstance(full_path, str):
                full_path = full_path.split("?", 1)[0]
            record.args = (client_addr, method, full_path, http_version, status_code)
        return True


def build_log_config() -> dict:
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"
    log_config.setdefault("filters", {})["strip_query"] = {"()": StripQueryFilter}
    log_config["handlers"]["access"]["filters"] = ["strip_query"]
    return log_config


def run_server(app: App, config: Config) -> None:
    """Run the Uvicorn server; client addresses are trusted from the configured reverse proxies."""
    fastapi_app = create_fastapi_app(app, config)

    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=build_log_config(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips=config.forwarded_allow_ips,
    )
