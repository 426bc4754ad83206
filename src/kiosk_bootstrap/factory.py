"""Service definitions and the key-to-definition registry.

This module defines :class:`ServiceDefinition` (what the container knows about
one service: its factory, its ordered extension chain and its lifetime) and
:class:`ServiceRegistry` (the mapping the container owns).
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Union

from .exceptions import DuplicateServiceError, UnknownServiceError

if TYPE_CHECKING:
    from .container import Container

KeyT = Union[str, type]
Factory = Callable[["Container"], Any]
Extension = Callable[[Any, "Container"], Any]


@dataclass
class ServiceDefinition:
    """Everything the container needs to build one service.

    Attributes:
        key: The resolution key (a string token or a type).
        factory: Callable receiving the container and returning the raw value.
        extensions: Decorators applied to the raw value, in registration order.
            Each one receives the previous value and the container.
        singleton: Whether the final value is cached after first resolution.
    """

    key: KeyT
    factory: Factory
    extensions: List[Extension] = field(default_factory=list)
    singleton: bool = True

    def build(self, container: "Container") -> Any:
        value = self.factory(container)
        for extension in tuple(self.extensions):
            value = extension(value, container)
        return value


class ServiceRegistry:
    """Key-to-definition registry.

    Definitions can only be added once; the extension chain of an existing
    definition is the only part that may grow afterwards.
    """

    def __init__(self) -> None:
        self._definitions: Dict[KeyT, ServiceDefinition] = {}

    def add(self, definition: ServiceDefinition) -> None:
        """Store a new definition.

        Raises:
            DuplicateServiceError: If a definition already exists for the key.
        """
        if definition.key in self._definitions:
            raise DuplicateServiceError(definition.key)
        self._definitions[definition.key] = definition

    def has(self, key: KeyT) -> bool:
        return key in self._definitions

    def get(self, key: KeyT, origin: Optional[KeyT] = None) -> ServiceDefinition:
        """Return the definition for *key*.

        Args:
            key: The resolution key.
            origin: The service being built when *key* was requested, used
                for the error message.

        Raises:
            UnknownServiceError: If nothing is registered under *key*.
        """
        try:
            return self._definitions[key]
        except KeyError:
            raise UnknownServiceError(key, origin) from None

    def keys(self) -> Iterator[KeyT]:
        return iter(tuple(self._definitions))

    def __len__(self) -> int:
        return len(self._definitions)
