"""Terminal presentation helpers, registered as the ``display`` service."""

from typing import Dict, Mapping, Optional

from .constants import DEFAULT_CONSOLE_WIDTH

ANSI_CODES: Dict[str, str] = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "black": "\033[30m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "purple": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "gray": "\033[90m",
}


class Display:
    """ANSI colour codes by name.

    Args:
        enabled: When ``False`` every code is the empty string, so templates
            built with it stay readable in plain files.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "Display":
        """Honour the ``NO_COLOR`` convention."""
        return cls(enabled="NO_COLOR" not in environ)

    def color(self, name: str) -> str:
        try:
            code = ANSI_CODES[name]
        except KeyError:
            raise ValueError(f"Unknown display color: {name!r}") from None
        return code if self.enabled else ""

    def colorize(self, text: str, name: str) -> str:
        return f"{self.color(name)}{text}{self.color('reset')}"

    @staticmethod
    def terminal_width(environ: Mapping[str, str], default: int = DEFAULT_CONSOLE_WIDTH) -> int:
        """Column count from ``COLUMNS``; *default* if absent, non-numeric or not positive."""
        raw: Optional[str] = environ.get("COLUMNS")
        try:
            width = int(str(raw).strip())
        except (TypeError, ValueError):
            return default
        return width if width > 0 else default

    @staticmethod
    def separator(width: int, char: str = "━") -> str:
        return char * width
