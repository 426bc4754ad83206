"""Template-driven line formatting.

Templates use ``%name%`` placeholders rather than the standard library's
``%(name)s`` so that the same template strings work for console, syslog and
file output:

========================  ==============================================
``%datetime%``            record time, rendered with the date format
``%channel%``             logger (channel) name
``%level_name%``          ``INFO``, ``NOTICE``, ...
``%level%``               numeric level
``%message%``             the interpolated message (plus traceback)
``%context%``/``%extra%`` the whole mapping, JSON encoded
``%context.key%``         one context value (removed when absent)
``%extra.key%``           one processor value (removed when absent)
========================  ==============================================

A date format of ``"U"`` renders the unix timestamp.
"""

import json
import logging
import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

from .constants import LOGGER

SIMPLE_FORMAT = "[%datetime%] %channel%.%level_name%: %message% %context% %extra%\n"
SIMPLE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
UNIX_TIMESTAMP = "U"

_PLACEHOLDER = re.compile(r"%(?:(extra|context)\.([A-Za-z0-9_.\-]+)|([a-z_]+))%")
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def stringify(value: Any) -> str:
    """Render a context or extra value the way it should appear in a line."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseException):
        return f"[object] ({type(value).__name__}: {value})"
    if isinstance(value, (Mapping, list, tuple, set)):
        return _to_json(value)
    return str(value)


def _to_json(value: Any) -> str:
    if isinstance(value, set):
        value = sorted(value, key=str)
    return json.dumps(value, default=str, ensure_ascii=False, sort_keys=isinstance(value, Mapping))


class LineFormatter(logging.Formatter):
    """Formats a record into a single line (or block) from a ``%name%`` template.

    Args:
        fmt: The template; defaults to :data:`SIMPLE_FORMAT`.
        datefmt: ``strftime`` format for ``%datetime%``, or ``"U"``.
        allow_inline_line_breaks: Keep line breaks inside the message; when
            ``False`` they are collapsed into spaces.
        ignore_empty_context_and_extra: Render empty ``%context%``/``%extra%``
            as nothing instead of ``{}``.
    """

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        allow_inline_line_breaks: bool = False,
        ignore_empty_context_and_extra: bool = False,
    ) -> None:
        super().__init__(datefmt=datefmt or SIMPLE_DATE_FORMAT)
        self.template = fmt if fmt is not None else SIMPLE_FORMAT
        self.allow_inline_line_breaks = allow_inline_line_breaks
        self.ignore_empty_context_and_extra = ignore_empty_context_and_extra

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        datefmt = datefmt or self.datefmt
        if datefmt == UNIX_TIMESTAMP:
            return str(int(record.created))
        return datetime.fromtimestamp(record.created).strftime(datefmt or SIMPLE_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        try:
            return self._render(record)
        except Exception as exc:
            LOGGER.warning("Formatting a '%s' record failed: %s", record.name, exc)
            return self._render_degraded(record, exc)

    def _message(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"
        if record.stack_info:
            message = f"{message}\n{self.formatStack(record.stack_info)}"
        if not self.allow_inline_line_breaks:
            message = _LINE_BREAKS.sub(" ", message)
        return message

    def _mapping(self, mapping: Mapping[str, Any]) -> str:
        if not mapping and self.ignore_empty_context_and_extra:
            return ""
        return _to_json(dict(mapping))

    def _render(self, record: logging.LogRecord) -> str:
        extra = getattr(record, "extra", None) or {}
        context = getattr(record, "context", None) or {}
        values = {
            "datetime": self.formatTime(record, self.datefmt),
            "channel": record.name,
            "level_name": record.levelname,
            "level": str(record.levelno),
            "message": self._message(record),
        }

        def replace(match: "re.Match[str]") -> str:
            group, key, name = match.groups()
            if group is not None:
                source = extra if group == "extra" else context
                return stringify(source[key]) if key in source else ""
            if name in values:
                return values[name]
            if name == "context":
                return self._mapping(context)
            if name == "extra":
                return self._mapping(extra)
            return match.group(0)

        return _PLACEHOLDER.sub(replace, self.template)

    def _render_degraded(self, record: logging.LogRecord, exc: Exception) -> str:
        return "[{created}][{channel}][{level}][format error: {error}]: {msg}\n".format(
            created=getattr(record, "created", ""),
            channel=getattr(record, "name", ""),
            level=getattr(record, "levelname", ""),
            error=f"{type(exc).__name__}: {exc}",
            msg=getattr(record, "msg", ""),
        )
