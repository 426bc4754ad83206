"""Read-only, typed access to the resolved configuration tree."""

import copy
import os
from typing import Any, Dict, Mapping, Optional

from .config_sources import DictSource, IniTreeSource, JsonTreeSource, TreeSource, YamlTreeSource
from .exceptions import ConfigFileError, ConfigKeyMissing, ConfigTypeError

_MISSING = object()

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


def _deep_merge(a: Any, b: Any) -> Any:
    if isinstance(a, dict) and isinstance(b, dict):
        out = dict(a)
        for k, v in b.items():
            out[k] = _deep_merge(out[k], v) if k in out else v
        return out
    return b


class ConfigSource:
    """Immutable configuration addressed by dotted paths.

    Sources are deep-merged in the order given; later sources win.

    Args:
        *sources: Tree sources to merge.

    Example:
        >>> cfg = ConfigSource(DictSource({"debug.cli": "yes", "logs.primary_channel": "app"}))
        >>> cfg.get_bool("debug.cli"), cfg.get_string("logs.primary_channel")
        (True, 'app')
    """

    def __init__(self, *sources: TreeSource):
        tree: Dict[str, Any] = {}
        for src in sources:
            tree = _deep_merge(tree, dict(src.get_tree()))
        self._tree = tree

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConfigSource":
        return cls(DictSource(data))

    def _lookup(self, path: str) -> Any:
        cur: Any = self._tree
        for part in path.split("."):
            if isinstance(cur, Mapping) and part in cur:
                cur = cur[part]
            else:
                return _MISSING
        return cur

    def has(self, path: str) -> bool:
        return self._lookup(path) is not _MISSING

    def get(self, path: str, default: Any = _MISSING) -> Any:
        """Return the raw value at *path*, or *default* when given and the path is absent.

        Raises:
            ConfigKeyMissing: If the path is absent and no default was given.
        """
        value = self._lookup(path)
        if value is _MISSING:
            if default is _MISSING:
                raise ConfigKeyMissing(path)
            return default
        return copy.deepcopy(value)

    def get_string(self, path: str) -> str:
        value = self.get(path)
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise ConfigTypeError(path, "string", value)

    def get_bool(self, path: str) -> bool:
        value = self.get(path)
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
        raise ConfigTypeError(path, "bool", value)

    def get_int(self, path: str) -> int:
        value = self.get(path)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip(), 10)
            except ValueError:
                pass
        raise ConfigTypeError(path, "int", value)

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._tree)


_SOURCES_BY_SUFFIX = {
    ".json": JsonTreeSource,
    ".yaml": YamlTreeSource,
    ".yml": YamlTreeSource,
    ".ini": IniTreeSource,
}


def load_config(path: Optional[str]) -> ConfigSource:
    """Load a configuration file, choosing the parser from its suffix.

    ``None`` yields an empty configuration.

    Raises:
        ConfigFileError: If the file does not exist or the suffix is unknown.
    """
    if path is None:
        return ConfigSource()
    if not os.path.isfile(path):
        raise ConfigFileError(f"Config file {path} does not exist.")
    suffix = os.path.splitext(path)[1].lower()
    source_cls = _SOURCES_BY_SUFFIX.get(suffix)
    if source_cls is None:
        raise ConfigFileError(f"Unsupported config file type '{suffix}' for {path}")
    return ConfigSource(source_cls(path))
