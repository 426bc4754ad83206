"""Where configuration trees come from.

Every source yields one nested mapping through :meth:`TreeSource.get_tree`;
:class:`~kiosk_bootstrap.config.ConfigSource` merges them. In-memory data
goes through :class:`DictSource`. Files are read by
:class:`JsonTreeSource`, :class:`YamlTreeSource` or :class:`IniTreeSource`.
"""

import configparser
import json
from typing import Any, Dict, IO, Mapping

from .exceptions import ConfigFileError


class TreeSource:
    """A provider of one nested configuration mapping."""

    def get_tree(self) -> Mapping[str, Any]:
        raise NotImplementedError


def expand_dotted(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn ``{"logs.primary_channel": "app"}`` into ``{"logs": {"primary_channel": "app"}}``.

    Nested mappings are expanded too; plain keys are kept as they are.
    """
    out: Dict[str, Any] = {}
    for raw_key, value in data.items():
        if isinstance(value, Mapping):
            value = expand_dotted(value)
        *branch, leaf = str(raw_key).split(".")
        node = out
        for part in branch:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        if isinstance(value, dict) and isinstance(node.get(leaf), dict):
            node[leaf].update(value)
        else:
            node[leaf] = value
    return out


class DictSource(TreeSource):
    """In-memory settings; nested mappings and dotted keys can be mixed.

    Example:
        >>> src = DictSource({"debug.cli": True, "logs": {"primary_channel": "app"}})
        >>> src.get_tree()["debug"]["cli"]
        True
    """

    def __init__(self, data: Mapping[str, Any]):
        self._tree = expand_dotted(data)

    def get_tree(self) -> Mapping[str, Any]:
        return self._tree


class _FileTreeSource(TreeSource):
    kind = "file"

    def __init__(self, path: str):
        self.path = path

    def _parse(self, stream: IO[str]) -> Any:
        raise NotImplementedError

    def get_tree(self) -> Mapping[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as stream:
                tree = self._parse(stream)
        except ConfigFileError:
            raise
        except Exception as exc:
            raise ConfigFileError(f"Failed to load {self.kind} config {self.path}: {exc}") from exc
        if not isinstance(tree, Mapping):
            raise ConfigFileError(f"{self.kind} config {self.path} must hold a mapping at the top level")
        return expand_dotted(tree)


class JsonTreeSource(_FileTreeSource):
    """A JSON document whose top level is an object."""

    kind = "JSON"

    def _parse(self, stream: IO[str]) -> Any:
        return json.load(stream)


class YamlTreeSource(_FileTreeSource):
    """A YAML document; needs the ``yaml`` extra (PyYAML).

    Raises:
        ConfigFileError: From :meth:`get_tree` when PyYAML is missing or the
            document cannot be parsed.
    """

    kind = "YAML"

    def _parse(self, stream: IO[str]) -> Any:
        try:
            import yaml
        except ImportError as exc:
            raise ConfigFileError("PyYAML not installed; install kiosk-bootstrap[yaml]") from exc
        return yaml.safe_load(stream) or {}


class IniTreeSource(_FileTreeSource):
    """An INI file, one top-level key per section.

    Values stay strings; the typed getters of
    :class:`~kiosk_bootstrap.config.ConfigSource` coerce them.
    """

    kind = "INI"

    def _parse(self, stream: IO[str]) -> Any:
        parser = configparser.ConfigParser(interpolation=None)
        parser.read_file(stream)
        return {section: dict(parser.items(section)) for section in parser.sections()}
