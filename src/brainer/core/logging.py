"""
Logging setup for the API process.

Everything goes to stdout in one line format so container log drivers can
collect it. Brainer's own loggers follow LOG_LEVEL; chatty client
libraries are held at WARNING so request logs stay readable.
"""

import sys
from logging.config import dictConfig

from brainer.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers pinned to WARNING regardless of LOG_LEVEL
NOISY_LOGGERS = ("sqlalchemy.engine", "botocore", "boto3", "openai", "httpx", "PIL")


def _logger(level: str) -> dict:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging() -> None:
    """Install the stdout handler. Called once when brainer.main is imported."""
    level = settings.LOG_LEVEL.upper()

    loggers = {
        "brainer": _logger(level),
        "uvicorn": _logger("INFO"),
        "uvicorn.access": _logger("INFO"),
    }
    loggers.update({name: _logger("WARNING") for name in NOISY_LOGGERS})

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": loggers,
        }
    )
