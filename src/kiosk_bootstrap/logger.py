"""The application logger: one channel, an ordered handler list."""

import logging
from typing import Any, List, Mapping, Optional

from .exceptions import LoggerSealedError
from .levels import ALERT, EMERGENCY, NOTICE


class ChannelLogger(logging.Logger):
    """A :class:`logging.Logger` that lives outside the global logger tree.

    Instances are never registered with ``logging.getLogger``; the bootstrap
    hands the one it builds to whoever needs it. Records carry two mappings:
    ``context`` (whatever the caller passed as ``extra=``) and ``extra`` (what
    processors add). Once :meth:`seal` has been called the handler list is
    fixed.
    """

    def __init__(self, name: str, level: int = logging.NOTSET) -> None:
        super().__init__(name, level)
        self.propagate = False
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        self._sealed = True

    def addHandler(self, hdlr: logging.Handler) -> None:
        if self._sealed:
            raise LoggerSealedError(self.name)
        super().addHandler(hdlr)

    def removeHandler(self, hdlr: logging.Handler) -> None:
        if self._sealed:
            raise LoggerSealedError(self.name)
        super().removeHandler(hdlr)

    def setLevel(self, level: Any) -> None:
        super().setLevel(level)
        self._cache.clear()

    def makeRecord(
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: Any,
        args: Any,
        exc_info: Any,
        func: Optional[str] = None,
        extra: Optional[Mapping[str, Any]] = None,
        sinfo: Optional[str] = None,
    ) -> logging.LogRecord:
        record = super().makeRecord(name, level, fn, lno, msg, args, exc_info, func, None, sinfo)
        record.context = dict(extra) if extra else {}
        record.extra = {}
        return record

    def notice(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self._log_above(NOTICE, msg, args, kwargs)

    def alert(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self._log_above(ALERT, msg, args, kwargs)

    def emergency(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self._log_above(EMERGENCY, msg, args, kwargs)

    def _log_above(self, level: int, msg: Any, args: Any, kwargs: dict) -> None:
        if self.isEnabledFor(level):
            # skip this helper's own frame when locating the call site
            kwargs["stacklevel"] = kwargs.get("stacklevel", 1) + 2
            self._log(level, msg, args, **kwargs)

    def flush(self) -> None:
        for handler in list(self.handlers):
            handler.flush()

    def close(self) -> None:
        """Flush and close every handler, in handler order."""
        for handler in list(self.handlers):
            try:
                handler.flush()
            finally:
                handler.close()

    def handler_names(self) -> List[Optional[str]]:
        return [h.get_name() for h in self.handlers]
