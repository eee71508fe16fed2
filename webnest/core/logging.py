import logging
import os

# Libraries whose INFO/DEBUG chatter drowns the service log.
_NOISY_LOGGERS = ("pymongo", "motor", "httpx")


def configure_logging() -> None:
    """Configure logging defaults for a WebNest service."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))
