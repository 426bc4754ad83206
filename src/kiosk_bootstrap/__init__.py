# kiosk_bootstrap/__init__.py
__version__ = "0.1.0"

from .bootstrap import AppContext, bootstrap
from .config import ConfigSource, load_config
from .config_sources import DictSource, IniTreeSource, JsonTreeSource, TreeSource, YamlTreeSource
from .container import Container
from .display import Display
from .error_bridge import ErrorBridge, install_uncaught_handler
from .exceptions import (
    BootstrapError,
    ConfigError,
    ConfigFileError,
    ConfigKeyMissing,
    ConfigTypeError,
    ContainerError,
    CyclicDependencyError,
    DuplicateServiceError,
    HandlerConfigError,
    LoggerSealedError,
    RegistryError,
    UnknownServiceError,
    UnsupportedOperationError,
)
from .formatters import LineFormatter
from .handlers import BufferedHandler, ConsoleHandler, DailyRotatingFileHandler, SyslogHandler
from .levels import ALERT, EMERGENCY, NOTICE
from .logger import ChannelLogger
from .pipeline import LoggingPipelineBuilder
from .processors import (
    IntrospectionProcessor,
    MemoryPeakUsageProcessor,
    MemoryUsageProcessor,
    MessageInterpolationProcessor,
    ProcessIdProcessor,
    RequestContextProcessor,
    UidProcessor,
    request_context,
)
from .registry import LoggerRegistry
from .security import Security

__all__ = [
    "__version__",
    "AppContext",
    "bootstrap",
    "Container",
    "ConfigSource",
    "load_config",
    "TreeSource",
    "DictSource",
    "JsonTreeSource",
    "YamlTreeSource",
    "IniTreeSource",
    "Display",
    "Security",
    "ChannelLogger",
    "LoggerRegistry",
    "LoggingPipelineBuilder",
    "ErrorBridge",
    "install_uncaught_handler",
    "LineFormatter",
    "ConsoleHandler",
    "SyslogHandler",
    "DailyRotatingFileHandler",
    "BufferedHandler",
    "MessageInterpolationProcessor",
    "UidProcessor",
    "ProcessIdProcessor",
    "MemoryUsageProcessor",
    "MemoryPeakUsageProcessor",
    "RequestContextProcessor",
    "IntrospectionProcessor",
    "request_context",
    "NOTICE",
    "ALERT",
    "EMERGENCY",
    "BootstrapError",
    "ConfigError",
    "ConfigKeyMissing",
    "ConfigTypeError",
    "ConfigFileError",
    "ContainerError",
    "DuplicateServiceError",
    "UnknownServiceError",
    "CyclicDependencyError",
    "UnsupportedOperationError",
    "HandlerConfigError",
    "RegistryError",
    "LoggerSealedError",
]
