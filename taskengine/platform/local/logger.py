"""Logger capability backed by the standard library ``logging`` module."""

import logging
from typing import Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class StdLogger:
    """Wraps a stdlib logger; children become dotted sub-loggers.

    Logging must never take down the caller, so every emit swallows
    exceptions raised by handlers or formatting.
    """

    def __init__(self, name: str = "taskengine", logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _emit(self, level: int, message: str, exc: Optional[BaseException] = None) -> None:
        try:
            if exc is not None:
                self._logger.log(level, message, exc_info=(type(exc), exc, exc.__traceback__))
            else:
                self._logger.log(level, message)
        except Exception:  # noqa: BLE001 - logging must never raise
            pass

    def debug(self, message: str) -> None:
        self._emit(logging.DEBUG, message)

    def info(self, message: str) -> None:
        self._emit(logging.INFO, message)

    def warn(self, message: str) -> None:
        self._emit(logging.WARNING, message)

    def error(self, message: str, exc: Optional[BaseException] = None) -> None:
        self._emit(logging.ERROR, message, exc)

    def set_level(self, level: str) -> None:
        if level.lower() not in _LEVELS:
            self.warn(f"Ignoring unknown log level: {level}")
            return
        self._logger.setLevel(_LEVELS[level.lower()])

    def child(self, prefix: str) -> "StdLogger":
        return StdLogger(logger=self._logger.getChild(prefix))
