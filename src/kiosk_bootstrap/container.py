# src/kiosk_bootstrap/container.py
import contextvars
import threading
import time
from typing import Any, Callable, Dict, List, Tuple, Type, TypeVar, Union, overload

from .constants import LOGGER
from .exceptions import CyclicDependencyError, UnsupportedOperationError
from .factory import Extension, Factory, ServiceDefinition, ServiceRegistry

KeyT = Union[str, type]
T = TypeVar("T")

_resolve_chain: contextvars.ContextVar[Tuple[KeyT, ...]] = contextvars.ContextVar("kiosk_resolve_chain", default=())
_MISSING = object()


def _name_of(key: KeyT) -> str:
    return getattr(key, "__name__", str(key))


class Container:
    """Lazy service container with ordered extension chains.

    Services are registered as factories receiving the container. Nothing is
    built until the first :meth:`resolve`; at that point the factory runs, its
    result is threaded through every extension registered with :meth:`extend`
    (in registration order) and, for singletons, the final value is cached.

    Singleton construction runs under one re-entrant lock, so threads racing
    on the same unbuilt key observe a single factory invocation and the same
    value, and two threads entering a dependency cycle from opposite ends
    both get :class:`CyclicDependencyError` instead of waiting on each other.

    Example:
        >>> c = Container()
        >>> c.register("greeting", lambda c: "hello")
        >>> c.extend("greeting", lambda value, c: value + " world")
        >>> c.resolve("greeting")
        'hello world'
    """

    class _Stats:
        def __init__(self) -> None:
            self.created_at = time.time()
            self.resolve_count = 0
            self.cache_hit_count = 0

    def __init__(self) -> None:
        self._registry = ServiceRegistry()
        self._cache: Dict[KeyT, Any] = {}
        self._build_lock = threading.RLock()
        self.context = Container._Stats()

    def register(self, key: KeyT, factory: Factory, *, singleton: bool = True) -> None:
        """Register *factory* under *key*.

        Args:
            key: A string token or a type.
            factory: Callable receiving this container and returning the value.
            singleton: Cache the decorated value after the first resolution.

        Raises:
            DuplicateServiceError: If *key* is already registered.
        """
        if not callable(factory):
            raise TypeError(f"Factory for '{_name_of(key)}' must be callable, got {type(factory).__name__}")
        self._registry.add(ServiceDefinition(key=key, factory=factory, singleton=singleton))
        LOGGER.debug("Registered service '%s' (singleton=%s)", _name_of(key), singleton)

    def register_value(self, key: KeyT, value: Any) -> None:
        """Register a plain parameter; resolving *key* returns *value* itself."""
        self.register(key, lambda _c, v=value: v)

    def extend(self, key: KeyT, decorator: Extension) -> None:
        """Append *decorator* to the extension chain of *key*.

        Decorators run in the order they were added, each one receiving the
        previous value and the container. A singleton that was already
        resolved keeps the value it was cached with.

        Raises:
            UnknownServiceError: If *key* was never registered.
        """
        if not callable(decorator):
            raise TypeError(f"Extension for '{_name_of(key)}' must be callable, got {type(decorator).__name__}")
        definition = self._registry.get(key)
        definition.extensions.append(decorator)
        if definition.singleton and key in self._cache:
            LOGGER.warning("Service '%s' is already resolved; the new extension will not be applied", _name_of(key))

    @overload
    def resolve(self, key: Type[T]) -> T: ...
    @overload
    def resolve(self, key: str) -> Any: ...
    def resolve(self, key: KeyT) -> Any:
        """Return the value for *key*, building it on first use.

        Raises:
            UnknownServiceError: If *key* is not registered.
            CyclicDependencyError: If building *key* requires *key* again.
        """
        chain = _resolve_chain.get()
        if key in chain:
            raise CyclicDependencyError(chain, key)

        definition = self._registry.get(key, origin=chain[-1] if chain else None)
        if not definition.singleton:
            return self._build(definition, chain)

        cached = self._cache.get(key, _MISSING)
        if cached is not _MISSING:
            self.context.cache_hit_count += 1
            return cached

        with self._build_lock:
            cached = self._cache.get(key, _MISSING)
            if cached is not _MISSING:
                self.context.cache_hit_count += 1
                return cached
            value = self._build(definition, chain)
            self._cache[key] = value
            return value

    def _build(self, definition: ServiceDefinition, chain: Tuple[KeyT, ...]) -> Any:
        token = _resolve_chain.set(chain + (definition.key,))
        t0 = time.perf_counter()
        try:
            value = definition.build(self)
        finally:
            _resolve_chain.reset(token)
        self.context.resolve_count += 1
        LOGGER.debug(
            "Resolved '%s' through %d extension(s) in %.2fms",
            _name_of(definition.key),
            len(definition.extensions),
            (time.perf_counter() - t0) * 1000,
        )
        return value

    def __getitem__(self, key: KeyT) -> Any:
        return self.resolve(key)

    def __contains__(self, key: object) -> bool:
        return self._registry.has(key)  # type: ignore[arg-type]

    def has(self, key: KeyT) -> bool:
        return self._registry.has(key)

    def keys(self) -> List[KeyT]:
        return list(self._registry.keys())

    def raw(self, key: KeyT) -> Factory:
        """Return the undecorated factory registered for *key*."""
        return self._registry.get(key).factory

    def is_resolved(self, key: KeyT) -> bool:
        return key in self._cache

    def stats(self) -> Dict[str, Any]:
        resolves = self.context.resolve_count
        hits = self.context.cache_hit_count
        total = resolves + hits
        return {
            "uptime_seconds": time.time() - self.context.created_at,
            "total_resolves": resolves,
            "cache_hits": hits,
            "cache_hit_rate": (hits / total) if total > 0 else 0.0,
            "registered_services": len(self._registry),
        }

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)

        def unsupported(*args: Any, **kwargs: Any) -> Any:
            raise UnsupportedOperationError(name, args, kwargs)

        return unsupported
