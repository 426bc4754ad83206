"""Routes otherwise-unhandled exceptions into the application logger."""

import logging
import sys
import threading
from types import TracebackType
from typing import Any, Optional, Type

from .constants import LOGGER


class ErrorBridge:
    """Chains ``sys.excepthook`` and ``threading.excepthook``.

    Uncaught exceptions become ERROR records with the traceback attached;
    the previous hooks still run afterwards when ``call_previous`` is set.
    ``KeyboardInterrupt`` is handed straight to the previous hook.
    """

    def __init__(self, logger: logging.Logger, call_previous: bool = True) -> None:
        self.logger = logger
        self.call_previous = call_previous
        self._previous_excepthook: Any = None
        self._previous_threading_hook: Any = None
        self.installed = False

    def install(self) -> "ErrorBridge":
        if self.installed:
            return self
        self._previous_excepthook = sys.excepthook
        self._previous_threading_hook = threading.excepthook
        sys.excepthook = self.handle_exception
        threading.excepthook = self.handle_thread_exception
        self.installed = True
        LOGGER.debug("Uncaught exceptions are now routed to logger '%s'", self.logger.name)
        return self

    def uninstall(self) -> None:
        if not self.installed:
            return
        if sys.excepthook == self.handle_exception:
            sys.excepthook = self._previous_excepthook
        if threading.excepthook == self.handle_thread_exception:
            threading.excepthook = self._previous_threading_hook
        self.installed = False

    def handle_exception(
        self,
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_tb: Optional[TracebackType],
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            if self._previous_excepthook is not None:
                self._previous_excepthook(exc_type, exc_value, exc_tb)
            return
        self.logger.error(
            "Uncaught exception %s: %s",
            exc_type.__name__,
            exc_value,
            exc_info=(exc_type, exc_value, exc_tb),
        )
        if self.call_previous and self._previous_excepthook is not None:
            self._previous_excepthook(exc_type, exc_value, exc_tb)

    def handle_thread_exception(self, args: Any) -> None:
        if args.exc_type is SystemExit:
            return
        thread_name = args.thread.name if args.thread is not None else "<unknown>"
        self.logger.error(
            "Uncaught exception in thread %s %s: %s",
            thread_name,
            args.exc_type.__name__,
            args.exc_value,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        if self.call_previous and self._previous_threading_hook is not None:
            self._previous_threading_hook(args)


def install_uncaught_handler(logger: logging.Logger, call_previous: bool = True) -> ErrorBridge:
    """Install and return an :class:`ErrorBridge` for *logger*."""
    return ErrorBridge(logger, call_previous=call_previous).install()
