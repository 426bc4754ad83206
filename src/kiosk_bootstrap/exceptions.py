"""Exception hierarchy for kiosk-bootstrap.

Every error raised while the process is starting up inherits from
:class:`BootstrapError`, so the entry point can treat the whole family as
fatal with a single ``except BootstrapError`` clause.
"""

from typing import Any, Iterable, Tuple


class BootstrapError(Exception):
    """Base exception for all bootstrap errors."""

    pass


def _key_name(key: Any) -> str:
    return getattr(key, "__name__", str(key))


class ConfigError(BootstrapError):
    """Base class for configuration contract violations."""

    pass


class ConfigKeyMissing(ConfigError):
    """Raised when a dotted configuration path is absent.

    Attributes:
        path: The dotted path that was requested.
    """

    def __init__(self, path: str):
        super().__init__(f"Missing configuration key: '{path}'")
        self.path = path


class ConfigTypeError(ConfigError):
    """Raised when a configuration value cannot be coerced to the requested type.

    Attributes:
        path: The dotted path that was requested.
        expected: Name of the requested type.
        value: The raw value found at ``path``.
    """

    def __init__(self, path: str, expected: str, value: Any):
        super().__init__(
            f"Configuration key '{path}' is not a valid {expected}: {value!r} ({type(value).__name__})"
        )
        self.path = path
        self.expected = expected
        self.value = value


class ConfigFileError(ConfigError):
    """Raised for configuration files that are missing, unreadable or of an unknown kind."""

    def __init__(self, msg: str):
        super().__init__(msg)


class ContainerError(BootstrapError):
    """Base class for service container misuse."""

    pass


class DuplicateServiceError(ContainerError):
    """Raised when a key is registered twice.

    Attributes:
        key: The key that was already registered.
    """

    def __init__(self, key: Any):
        super().__init__(f"Service '{_key_name(key)}' is already registered")
        self.key = key


class UnknownServiceError(ContainerError):
    """Raised when extending or resolving a key that was never registered.

    Attributes:
        key: The unknown key.
        origin: The service being resolved when the lookup happened, if any.
    """

    def __init__(self, key: Any, origin: Any = None):
        origin_name = _key_name(origin) if origin is not None else "caller"
        super().__init__(f"Service '{_key_name(key)}' is not registered (required by: '{origin_name}')")
        self.key = key
        self.origin = origin


class CyclicDependencyError(ContainerError):
    """Raised when a service transitively resolves itself.

    Attributes:
        chain: The keys being resolved, outermost first.
        key: The key that closed the cycle.
    """

    def __init__(self, chain: Iterable[Any], key: Any):
        self.chain: Tuple[Any, ...] = tuple(chain)
        self.key = key
        path = " -> ".join(_key_name(k) for k in self.chain + (key,))
        super().__init__(f"Circular dependency detected: {path}")


class UnsupportedOperationError(ContainerError):
    """Raised when an operation the container does not define is invoked.

    Attributes:
        operation: The name of the attempted operation.
        args: Positional arguments of the call.
        kwargs: Keyword arguments of the call.
    """

    def __init__(self, operation: str, args: Tuple[Any, ...] = (), kwargs: Any = None):
        self.operation = operation
        self.call_args = tuple(args)
        self.call_kwargs = dict(kwargs or {})
        super().__init__(
            f"Method {operation} does not exist: args={self.call_args!r} kwargs={self.call_kwargs!r}"
        )


class HandlerConfigError(BootstrapError):
    """Raised when the logging pipeline cannot be assembled.

    Attributes:
        path: The configuration path that was missing or malformed.
    """

    def __init__(self, path: str, reason: str = "missing"):
        super().__init__(f"Cannot build logging pipeline: configuration key '{path}' is {reason}")
        self.path = path
        self.reason = reason


class RegistryError(BootstrapError):
    """Raised for logger registry misuse (duplicate or unknown channel)."""

    def __init__(self, msg: str):
        super().__init__(msg)


class LoggerSealedError(BootstrapError):
    """Raised when a handler is added to a logger that has already been published."""

    def __init__(self, channel: str):
        super().__init__(f"Logger '{channel}' is sealed; handlers can no longer be added")
        self.channel = channel
