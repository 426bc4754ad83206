"""Process bootstrap: runs before any other subsystem.

:func:`bootstrap` builds the service container, registers the configuration
and utility services, assembles the logging pipeline and returns everything
in an :class:`AppContext`. Any :class:`~kiosk_bootstrap.exceptions.BootstrapError`
it raises is fatal; nothing half-built escapes.
"""

import atexit
import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .config import ConfigSource, load_config
from .constants import (
    LOGGER,
    SERVICE_CONFIG,
    SERVICE_CONFIG_FILE,
    SERVICE_DISPLAY,
    SERVICE_SECURITY,
)
from .container import Container
from .display import Display
from .error_bridge import ErrorBridge
from .exceptions import ConfigFileError
from .logger import ChannelLogger
from .pipeline import LoggingPipelineBuilder
from .registry import LoggerRegistry
from .security import Security


@dataclass
class AppContext:
    """Handles produced by :func:`bootstrap`, passed on to the rest of the process."""

    container: Container
    config: ConfigSource
    logger: ChannelLogger
    registry: LoggerRegistry
    error_bridge: Optional[ErrorBridge] = None
    _closed: bool = field(default=False, repr=False)

    def flush(self) -> None:
        self.logger.flush()

    def shutdown(self) -> None:
        """Flush buffered records, close every handler and restore exception hooks."""
        if self._closed:
            return
        self._closed = True
        atexit.unregister(self.shutdown)
        try:
            self.logger.close()
        finally:
            if self.error_bridge is not None:
                self.error_bridge.uninstall()
            self.registry.remove(self.logger.name)


def prepare_config(
    container: Container,
    config_file: Optional[str],
    config: Union[None, ConfigSource, Mapping[str, Any]] = None,
) -> None:
    container.register_value(SERVICE_CONFIG_FILE, config_file)
    if config is None:
        container.register(SERVICE_CONFIG, lambda c: load_config(c.resolve(SERVICE_CONFIG_FILE)))
    elif isinstance(config, ConfigSource):
        container.register_value(SERVICE_CONFIG, config)
    else:
        container.register(SERVICE_CONFIG, lambda c: ConfigSource.from_mapping(config))


def prepare_dependencies(container: Container, environ: Mapping[str, str]) -> None:
    container.register(SERVICE_DISPLAY, lambda c: Display.from_environ(environ))
    container.register(SERVICE_SECURITY, lambda c: Security())


def bootstrap(
    config_file: Optional[str] = None,
    *,
    config: Union[None, ConfigSource, Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    install_error_bridge: bool = True,
) -> AppContext:
    """Initialise the process.

    Args:
        config_file: Path of a ``.json``, ``.yaml``/``.yml`` or ``.ini`` file.
        config: Already-resolved configuration (a :class:`ConfigSource` or a
            mapping with nested or dotted keys); takes precedence over the file.
        environ: Environment mapping; defaults to ``os.environ``.
        install_error_bridge: Route uncaught exceptions into the logger.

    Raises:
        ConfigFileError: If *config_file* is given but does not exist.
        HandlerConfigError: If the logging pipeline cannot be assembled.
    """
    if config_file is not None and not os.path.isfile(config_file):
        raise ConfigFileError(f"Config file {config_file} does not exist.")
    environ = os.environ if environ is None else environ

    container = Container()
    prepare_config(container, config_file, config)
    prepare_dependencies(container, environ)

    registry = LoggerRegistry()
    builder = LoggingPipelineBuilder(
        container,
        registry=registry,
        environ=environ,
        install_error_bridge=install_error_bridge,
    )
    logger = builder.build()

    ctx = AppContext(
        container=container,
        config=container.resolve(SERVICE_CONFIG),
        logger=logger,
        registry=registry,
        error_bridge=builder.error_bridge,
    )
    atexit.register(ctx.shutdown)
    LOGGER.info("Bootstrap complete for channel '%s'", logger.name)
    return ctx
