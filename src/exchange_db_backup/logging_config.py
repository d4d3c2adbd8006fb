from __future__ import annotations

from logging.config import dictConfig
from typing import Literal
import logging

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

_RESET = "\033[0m"
_LEVEL_COLORS = {
    "DEBUG": "",
    "INFO": "\033[0;32m",
    "WARN": "\033[1;33m",
    "ERROR": "\033[0;31m",
    "CRITICAL": "\033[0;31m",
}
_LEVEL_TAGS = {"WARNING": "WARN"}


class TaggedFormatter(logging.Formatter):
    """Renders records as ``[LEVEL] message`` with an optionally colored tag."""

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, color: bool = False) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        tag = _LEVEL_TAGS.get(record.levelname, record.levelname)
        color = _LEVEL_COLORS.get(tag, "") if self.color else ""
        rendered_tag = f"{color}[{tag}]{_RESET}" if color else f"[{tag}]"
        return f"{rendered_tag} {super().format(record)}"


def configure_logging(level: LogLevel | str = "INFO", *, color: bool = False) -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "tagged": {
                    "()": TaggedFormatter,
                    "fmt": "%(message)s",
                    "color": color,
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "tagged",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"handlers": ["console"], "level": level.upper()},
        }
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
