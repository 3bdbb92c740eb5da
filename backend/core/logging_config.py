import logging

from backend.core import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # uvicorn access lines duplicate the webhook logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
