"""Process-wide logging configured from the environment."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, MutableMapping, TextIO

LOGGER_NAME = "depvet"

_ENV_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


def get_log_level_from_env() -> int:
    """Return the level named by LOG_LEVEL, or WARNING when unset or unknown."""
    return _ENV_LEVELS.get(os.environ.get("LOG_LEVEL", "").lower(), logging.WARNING)


_logger = logging.getLogger(LOGGER_NAME)
_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
_logger.addHandler(_handler)
_logger.propagate = False
_logger.setLevel(get_log_level_from_env())

# A stream opened by log_to_file, closed when output moves elsewhere.
_owned_stream: TextIO | None = None


class _FieldsAdapter(logging.LoggerAdapter):
    """Appends its fields as key=value pairs to every message."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        fields = " ".join(f"{key}={value}" for key, value in (self.extra or {}).items())
        return f"{msg} {fields}", kwargs


def get_logger() -> logging.Logger:
    """Return the package logger."""
    return _logger


def migrate_to(stream: TextIO) -> None:
    """Send all further log output to ``stream``."""
    global _owned_stream
    _handler.setStream(stream)
    if _owned_stream is not None and _owned_stream is not stream:
        _owned_stream.close()
    _owned_stream = None


def log_to_file(path: str | os.PathLike[str]) -> None:
    """Append all further log output to the file at ``path``, creating it private."""
    global _owned_stream
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
    stream = os.fdopen(fd, "a", encoding="utf-8")
    migrate_to(stream)
    _owned_stream = stream


def set_log_level(verbose: bool, debug: bool) -> None:
    """Raise verbosity to INFO when ``verbose`` and to DEBUG when ``debug``."""
    if verbose:
        _logger.setLevel(logging.INFO)
    if debug:
        _logger.setLevel(logging.DEBUG)


def logger_with(key: str, value: Any) -> logging.LoggerAdapter:
    """Return a logger that tags every message with ``key=value``."""
    return _FieldsAdapter(_logger, {key: value})


def logger_with_error(err: BaseException) -> logging.LoggerAdapter:
    """Return a logger that tags every message with the given error."""
    return logger_with("error", str(err))