"""Lookup of assembled loggers by channel name.

The registry is an ordinary object owned by the application context rather
than process-wide state; whoever needs a logger later is handed the registry.
"""

import logging
import threading
from typing import Dict, List

from .constants import LOGGER
from .exceptions import RegistryError


class LoggerRegistry:
    def __init__(self) -> None:
        self._loggers: Dict[str, logging.Logger] = {}
        self._lock = threading.Lock()

    def register(self, channel: str, logger: logging.Logger, overwrite: bool = False) -> None:
        """Publish *logger* under *channel*.

        Raises:
            RegistryError: If *channel* is taken and *overwrite* is false.
        """
        with self._lock:
            if channel in self._loggers and not overwrite:
                raise RegistryError(f"Logger with the given name '{channel}' already exists")
            self._loggers[channel] = logger
        LOGGER.info("Published logger '%s' with %d handler(s)", channel, len(logger.handlers))

    def get(self, channel: str) -> logging.Logger:
        try:
            return self._loggers[channel]
        except KeyError:
            raise RegistryError(f"Requested '{channel}' logger instance is not in the registry") from None

    def has(self, channel: str) -> bool:
        return channel in self._loggers

    __contains__ = has

    def remove(self, channel: str) -> None:
        with self._lock:
            self._loggers.pop(channel, None)

    def clear(self) -> None:
        with self._lock:
            self._loggers.clear()

    def channels(self) -> List[str]:
        return list(self._loggers)

    def __len__(self) -> int:
        return len(self._loggers)
