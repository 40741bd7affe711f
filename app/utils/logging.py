"""Logging setup for the server and the scripts."""

import logging
import os
import sys

from pydantic import BaseModel, Field, field_validator

APP_LOGGER_NAME = "app"

# SDK and transport loggers that log every request at INFO
NOISY_LOGGERS = ("anthropic", "httpx", "httpcore", "uvicorn.access")


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: tuple[str, ...] = Field(default=NOISY_LOGGERS)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize the level name and reject unknown ones."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log level: {v}")
        return level


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure the root handler and quiet third-party request logs."""
    config = config or LogConfig()

    logging.basicConfig(
        level=config.level,
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(APP_LOGGER_NAME).setLevel(config.level)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a module logger.

    Args:
        name: Module name (typically __name__)
        level: Explicit level, otherwise LOG_LEVEL from the environment

    Returns:
        Logger with its level set
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger
