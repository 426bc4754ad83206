"""Assembly of the application logging pipeline from configuration.

The pipeline is registered in the container as a bare ``logger`` service
plus one extension per layer: console, syslog, buffered rotating file and,
last, publication. Only the layers enabled by configuration are added, and
nothing is published unless every earlier layer succeeded.
"""

import logging
import os
from typing import Any, Callable, List, Mapping, Optional, TypeVar

from .config import ConfigSource
from .constants import (
    CONSOLE_DATE_FORMAT,
    FILE_DATE_FORMAT,
    FILE_LINE_FORMAT,
    LOG_FILE_MAX_FILES,
    LOG_FILE_MODE,
    LOG_FILENAME_DATE_FORMAT,
    LOG_FILENAME_FORMAT,
    LOGGER,
    SERVICE_CONFIG,
    SERVICE_DISPLAY,
    SERVICE_LOGGER,
    UID_LENGTH,
)
from .container import Container
from .display import Display
from .error_bridge import ErrorBridge, install_uncaught_handler
from .exceptions import ConfigKeyMissing, ConfigTypeError, HandlerConfigError
from .formatters import LineFormatter
from .handlers import BufferedHandler, ConsoleHandler, DailyRotatingFileHandler, SyslogHandler
from .levels import DEBUG, NOTICE
from .logger import ChannelLogger
from .processors import (
    IntrospectionProcessor,
    MemoryPeakUsageProcessor,
    MemoryUsageProcessor,
    MessageInterpolationProcessor,
    ProcessIdProcessor,
    RequestContextProcessor,
    UidProcessor,
)
from .registry import LoggerRegistry

T = TypeVar("T")


class LoggingPipelineBuilder:
    """Registers and resolves the ``logger`` service.

    Args:
        container: Container holding the ``config`` and ``display`` services.
        registry: Where the finished logger is published.
        environ: Environment used for the console width; defaults to ``os.environ``.
        install_error_bridge: Route uncaught exceptions to the finished logger.

    Example:
        >>> builder = LoggingPipelineBuilder(container, registry=LoggerRegistry())
        >>> logger = builder.build()
    """

    def __init__(
        self,
        container: Container,
        *,
        registry: LoggerRegistry,
        environ: Optional[Mapping[str, str]] = None,
        install_error_bridge: bool = True,
    ) -> None:
        self.container = container
        self.registry = registry
        self.environ = os.environ if environ is None else environ
        self.install_error_bridge = install_error_bridge
        self.error_bridge: Optional[ErrorBridge] = None
        self._interpolation = MessageInterpolationProcessor()
        self._created: List[logging.Handler] = []
        self._installed = False

    @property
    def config(self) -> ConfigSource:
        return self.container.resolve(SERVICE_CONFIG)

    def _read(self, getter: Callable[[str], T], path: str) -> T:
        try:
            return getter(path)
        except ConfigKeyMissing as exc:
            raise HandlerConfigError(path) from exc
        except ConfigTypeError as exc:
            raise HandlerConfigError(path, f"not a valid {exc.expected}") from exc

    def _optional_bool(self, path: str, default: bool = False) -> bool:
        if not self.config.has(path):
            return default
        try:
            return self.config.get_bool(path)
        except ConfigTypeError as exc:
            LOGGER.warning("Ignoring optional setting: %s; using %s", exc, default)
            return default

    def _optional_string(self, path: str) -> Optional[str]:
        if not self.config.has(path):
            return None
        try:
            return self.config.get_string(path)
        except ConfigTypeError as exc:
            LOGGER.warning("Ignoring optional setting: %s", exc)
            return None

    def _base_processors(self) -> List[Any]:
        return [self._interpolation]

    def _track(self, handler: logging.Handler, name: str) -> logging.Handler:
        handler.set_name(name)
        self._created.append(handler)
        return handler

    def install(self) -> None:
        """Register the bare logger and the extensions the configuration enables."""
        if self._installed:
            return
        with_console = self._read(self.config.get_bool, "debug.cli")
        with_syslog = self._read(self.config.get_bool, "debug.system")
        self.container.register(SERVICE_LOGGER, self._create_logger)
        if with_console:
            self.container.extend(SERVICE_LOGGER, self._with_console)
        if with_syslog:
            self.container.extend(SERVICE_LOGGER, self._with_syslog)
        self.container.extend(SERVICE_LOGGER, self._with_rotating_file)
        self.container.extend(SERVICE_LOGGER, self._publish)
        self._installed = True

    def build(self) -> ChannelLogger:
        """Install if needed and resolve the logger; any failure closes what was built."""
        try:
            self.install()
            return self.container.resolve(SERVICE_LOGGER)
        except Exception:
            for handler in reversed(self._created):
                handler.close()
            self._created.clear()
            raise

    def _create_logger(self, c: Container) -> ChannelLogger:
        channel = self._read(self.config.get_string, "logs.primary_channel")
        LOGGER.debug("Creating logger for channel '%s'", channel)
        return ChannelLogger(channel)

    def console_handler(self, display: Display) -> ConsoleHandler:
        width = Display.terminal_width(self.environ)
        fmt = display.color("bold")
        fmt += display.color("green") + "[%datetime%]"
        fmt += display.color("white") + "[%channel%."
        fmt += display.color("yellow") + "%level_name%"
        fmt += display.color("white") + "]"
        fmt += display.color("blue") + "[UID:%extra.uid%]"
        fmt += display.color("purple") + "[PID:%extra.process_id%]"
        fmt += display.color("reset") + ":\n"
        fmt += "%message%\n"
        fmt += display.color("gray") + Display.separator(width) + display.color("reset") + "\n"

        destination = self._optional_string("logs.stream_handler")
        handler = ConsoleHandler(
            destination,
            level=logging.NOTSET,
            processors=self._base_processors() + [UidProcessor(UID_LENGTH), ProcessIdProcessor()],
        )
        self._track(handler, "console")
        handler.setFormatter(
            LineFormatter(
                fmt,
                CONSOLE_DATE_FORMAT,
                allow_inline_line_breaks=self._optional_bool("logs.allow_inline_linebreaks"),
            )
        )
        return handler

    def syslog_handler(self, ident: str) -> SyslogHandler:
        handler = SyslogHandler(
            ident,
            facility="user",
            level=DEBUG,
            processors=self._base_processors()
            + [
                UidProcessor(UID_LENGTH),
                MemoryUsageProcessor(),
                MemoryPeakUsageProcessor(),
                ProcessIdProcessor(),
                RequestContextProcessor(),
                IntrospectionProcessor(),
            ],
        )
        self._track(handler, "syslog")
        return handler

    def rotating_file_handler(self) -> BufferedHandler:
        filename = (
            self._read(self.config.get_string, "directories.root")
            + self._read(self.config.get_string, "directories.log")
            + self._read(self.config.get_string, "logs.default_log")
        )
        file_handler = DailyRotatingFileHandler(
            filename,
            max_files=LOG_FILE_MAX_FILES,
            level=NOTICE,
            file_permission=LOG_FILE_MODE,
            use_locking=True,
            filename_format=LOG_FILENAME_FORMAT,
            date_format=LOG_FILENAME_DATE_FORMAT,
            processors=self._base_processors() + [UidProcessor(UID_LENGTH)],
        )
        self._track(file_handler, "rotating_file_target")
        file_handler.setFormatter(LineFormatter(FILE_LINE_FORMAT, FILE_DATE_FORMAT))
        handler = BufferedHandler(file_handler, level=NOTICE)
        self._track(handler, "rotating_file")
        return handler

    def _with_console(self, logger: ChannelLogger, c: Container) -> ChannelLogger:
        logger.addHandler(self.console_handler(c.resolve(SERVICE_DISPLAY)))
        return logger

    def _with_syslog(self, logger: ChannelLogger, c: Container) -> ChannelLogger:
        logger.addHandler(self.syslog_handler(logger.name))
        return logger

    def _with_rotating_file(self, logger: ChannelLogger, c: Container) -> ChannelLogger:
        logger.addHandler(self.rotating_file_handler())
        return logger

    def _publish(self, logger: ChannelLogger, c: Container) -> ChannelLogger:
        logger.seal()
        self.registry.register(logger.name, logger)
        if self.install_error_bridge:
            self.error_bridge = install_uncaught_handler(logger)
        LOGGER.info("Logging pipeline ready: %s", ", ".join(str(n) for n in logger.handler_names()))
        return logger
