"""Record processors: enrichment steps run by a handler before formatting.

A processor is any callable taking a :class:`logging.LogRecord` and returning
it (or a replacement). Processors write into ``record.extra``; when two of
them write the same key the later one wins. Handlers run them on a private
copy of the record, so nothing here leaks into other handlers.
"""

import contextvars
import os
import re
import resource
import secrets
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional

from .formatters import stringify

_PLACEHOLDER = re.compile(r"%([A-Za-z_][A-Za-z0-9_.]*)%")


class Processor:
    """Base class for record processors."""

    def __call__(self, record: Any) -> Any:
        self.process(record)
        return record

    def process(self, record: Any) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _extra(record: Any) -> Dict[str, Any]:
    extra = getattr(record, "extra", None)
    if extra is None:
        extra = record.extra = {}
    return extra


class MessageInterpolationProcessor(Processor):
    """Expands ``%key%`` placeholders in the message.

    Values are looked up in mapping args first, then ``record.context``, then
    ``record.extra``. Unknown placeholders are left as they are. When the
    args were a mapping and the message has no ``%(name)s`` conversions left,
    the args are dropped so ``getMessage`` does not try to apply them again.
    While printf args are still pending, a ``%`` inside an interpolated value
    is escaped so ``getMessage`` keeps it literal.

    Example:
        >>> logger.info("user %user% signed in", {"user": "ada"})
    """

    def process(self, record: Any) -> None:
        msg = record.msg
        if not isinstance(msg, str) or "%" not in msg:
            return
        values: Dict[str, Any] = {}
        values.update(_extra(record))
        values.update(getattr(record, "context", None) or {})
        mapping_args = isinstance(record.args, Mapping)
        if mapping_args:
            values.update(record.args)
        if not values:
            return

        def strip_known(match: "re.Match[str]") -> str:
            return "" if match.group(1) in values else match.group(0)

        conversions_left = "%(" in _PLACEHOLDER.sub(strip_known, msg)
        if mapping_args and not conversions_left:
            record.args = ()
        escape = bool(record.args)

        def replace(match: "re.Match[str]") -> str:
            key = match.group(1)
            if key not in values:
                return match.group(0)
            text = stringify(values[key])
            return text.replace("%", "%%") if escape else text

        record.msg = _PLACEHOLDER.sub(replace, msg)


class UidProcessor(Processor):
    """Adds ``extra["uid"]``: a hex token fixed for the life of the processor.

    Args:
        length: Token length, between 1 and 32.
    """

    def __init__(self, length: int = 7) -> None:
        if not 0 < length <= 32:
            raise ValueError("The uid length must be an integer between 1 and 32")
        self.length = length
        self.uid = self._generate()

    def _generate(self) -> str:
        return secrets.token_hex((self.length + 1) // 2)[: self.length]

    def reset(self) -> None:
        self.uid = self._generate()

    def process(self, record: Any) -> None:
        _extra(record)["uid"] = self.uid

    def __repr__(self) -> str:
        return f"UidProcessor(length={self.length})"


class ProcessIdProcessor(Processor):
    """Adds ``extra["process_id"]``."""

    def process(self, record: Any) -> None:
        _extra(record)["process_id"] = os.getpid()


def format_bytes(size: int) -> str:
    if size > 1024 * 1024:
        return f"{round(size / 1024 / 1024, 2)} MB"
    if size > 1024:
        return f"{round(size / 1024, 2)} KB"
    return f"{size} B"


def peak_rss() -> int:
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    return usage if sys.platform == "darwin" else usage * 1024


def current_rss() -> int:
    try:
        with open("/proc/self/statm", encoding="ascii") as f:
            return int(f.read().split()[1]) * resource.getpagesize()
    except (OSError, IndexError, ValueError):
        return peak_rss()


class MemoryUsageProcessor(Processor):
    """Adds ``extra["memory_usage"]``, the current resident set size."""

    def __init__(self, use_formatting: bool = True) -> None:
        self.use_formatting = use_formatting

    def process(self, record: Any) -> None:
        size = current_rss()
        _extra(record)["memory_usage"] = format_bytes(size) if self.use_formatting else size


class MemoryPeakUsageProcessor(MemoryUsageProcessor):
    """Adds ``extra["memory_peak_usage"]``, the peak resident set size."""

    def process(self, record: Any) -> None:
        size = peak_rss()
        _extra(record)["memory_peak_usage"] = format_bytes(size) if self.use_formatting else size


_request: contextvars.ContextVar[Optional[Mapping[str, Any]]] = contextvars.ContextVar(
    "kiosk_request_context", default=None
)


@contextmanager
def request_context(
    method: Optional[str] = None,
    uri: Optional[str] = None,
    ip: Optional[str] = None,
    server: Optional[str] = None,
    referrer: Optional[str] = None,
) -> Iterator[None]:
    """Mark the current context as serving a request, for :class:`RequestContextProcessor`."""
    token = _request.set(
        {"http_method": method, "url": uri, "ip": ip, "server": server, "referrer": referrer}
    )
    try:
        yield
    finally:
        _request.reset(token)


class RequestContextProcessor(Processor):
    """Adds url, ip, http_method, server and referrer of the current request.

    Outside of :func:`request_context` nothing is added.
    """

    def process(self, record: Any) -> None:
        current = _request.get()
        if not current:
            return
        extra = _extra(record)
        for key, value in current.items():
            if value is not None:
                extra[key] = value


class IntrospectionProcessor(Processor):
    """Adds file, line, class and function of the logging call site.

    The record already knows file, line and function; the class is recovered
    from the matching frame, which is still on the stack because handlers
    run synchronously. When the call site is unknown nothing is added.
    """

    def process(self, record: Any) -> None:
        pathname = getattr(record, "pathname", None)
        if not pathname or pathname == "(unknown file)":
            return
        extra = _extra(record)
        extra["file"] = pathname
        extra["line"] = record.lineno
        extra["class"] = self._find_class(record)
        extra["function"] = record.funcName

    @staticmethod
    def _find_class(record: Any) -> Optional[str]:
        frame = sys._getframe(1)
        while frame is not None:
            code = frame.f_code
            if (
                code.co_filename == record.pathname
                and frame.f_lineno == record.lineno
                and code.co_name == record.funcName
            ):
                owner = frame.f_locals.get("self")
                if owner is not None:
                    return type(owner).__qualname__
                cls = frame.f_locals.get("cls")
                if isinstance(cls, type):
                    return cls.__qualname__
                qualname = getattr(code, "co_qualname", code.co_name)
                parent, _, _ = qualname.rpartition(".")
                if parent and not parent.endswith("<locals>"):
                    return parent
                return None
            frame = frame.f_back
        return None
