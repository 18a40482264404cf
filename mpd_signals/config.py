import logging.config

import zenconfig
from pydantic import BaseModel, Field


class SignalsConfig(BaseModel, zenconfig.Config):
    # Quiet period in seconds before refreshing bursty signals.
    debounce: float = 0.032
    # Maximum number of concurrent requests to the server.
    fetch_concurrency: int = 16
    # Number of seconds before a request to the server is reported as failed.
    request_timeout: float = 5
    logging: dict = Field(
        default_factory=lambda: {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "formatter": {
                    "validate": True,
                    "format": "%(asctime)s %(levelname)-5.5s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "formatter",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "mpd_signals": {"level": "INFO"},
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
        }
    )


def setup_logging(config: SignalsConfig, verbose: bool = False) -> None:
    logging.config.dictConfig(config.logging)
    if verbose:
        logging.getLogger("mpd_signals").setLevel(logging.DEBUG)
