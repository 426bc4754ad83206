"""Sink-bound handlers of the application pipeline.

Every handler here mixes in :class:`ProcessingHandlerMixin`: it rejects
records below its level, copies accepted records, runs its processors in
attachment order and only then formats and writes. Failures inside a
processor are recorded on the record and never reach the caller.
"""

import copy
import fcntl
import glob
import logging
import logging.handlers
import os
import sys
import syslog
from datetime import date, datetime
from typing import Any, Callable, Dict, IO, Iterable, List, Optional, Tuple, Union

from .constants import (
    LOG_FILE_MAX_FILES,
    LOG_FILE_MODE,
    LOG_FILENAME_DATE_FORMAT,
    LOG_FILENAME_FORMAT,
    LOGGER,
)
from .formatters import LineFormatter
from .levels import ALERT, CRITICAL, DEBUG, EMERGENCY, ERROR, INFO, NOTICE, WARNING

Processor = Callable[[logging.LogRecord], Any]


class ProcessingHandlerMixin:
    """Threshold check, per-handler record copy and ordered processors.

    Must come before the :class:`logging.Handler` base in the class bases.
    """

    def __init__(self, *args: Any, processors: Optional[Iterable[Processor]] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.processors: List[Processor] = list(processors or ())

    def push_processor(self, processor: Processor) -> "ProcessingHandlerMixin":
        self.processors.append(processor)
        return self

    def process_record(self, record: logging.LogRecord) -> logging.LogRecord:
        record = copy.copy(record)
        record.extra = dict(getattr(record, "extra", None) or {})
        record.context = dict(getattr(record, "context", None) or {})
        for processor in self.processors:
            try:
                result = processor(record)
            except Exception as exc:
                record.extra.setdefault("processor_errors", []).append(f"{type(processor).__name__}: {exc}")
                LOGGER.warning("Processor %r failed on a '%s' record: %s", processor, record.name, exc)
                continue
            if isinstance(result, logging.LogRecord):
                record = result
        return record

    def handle(self, record: logging.LogRecord) -> Any:
        if record.levelno < self.level:
            return False
        try:
            record = self.process_record(record)
        except Exception:
            self.handleError(record)
            return False
        return super().handle(record)


def _open_destination(destination: Union[None, str, IO[str]]) -> Tuple[IO[str], bool]:
    if destination is None or destination in ("stderr", "php://stderr"):
        return sys.stderr, False
    if destination in ("stdout", "php://stdout", "php://output"):
        return sys.stdout, False
    if isinstance(destination, str):
        directory = os.path.dirname(os.path.abspath(destination))
        os.makedirs(directory, exist_ok=True)
        return open(destination, "a", encoding="utf-8"), True
    return destination, False


class ConsoleHandler(ProcessingHandlerMixin, logging.StreamHandler):
    """Writes formatted records to a stream.

    Args:
        destination: ``"stderr"`` (default), ``"stdout"``, the ``php://``
            spellings of both, a file path, or an open text stream.
        level: Minimum level; ``NOTSET`` accepts everything.
        processors: Processors run before formatting.
    """

    terminator = ""

    def __init__(
        self,
        destination: Union[None, str, IO[str]] = None,
        level: int = logging.NOTSET,
        processors: Optional[Iterable[Processor]] = None,
    ) -> None:
        stream, self._owns_stream = _open_destination(destination)
        super().__init__(stream, processors=processors)
        self.setLevel(level)

    def close(self) -> None:
        self.acquire()
        try:
            if self._owns_stream and self.stream is not None and not self.stream.closed:
                self.stream.close()
        finally:
            self.release()
        super().close()


SYSLOG_FACILITIES: Dict[str, int] = {
    "auth": syslog.LOG_AUTH,
    "cron": syslog.LOG_CRON,
    "daemon": syslog.LOG_DAEMON,
    "kern": syslog.LOG_KERN,
    "lpr": syslog.LOG_LPR,
    "mail": syslog.LOG_MAIL,
    "news": syslog.LOG_NEWS,
    "syslog": syslog.LOG_SYSLOG,
    "user": syslog.LOG_USER,
    "uucp": syslog.LOG_UUCP,
    "local0": syslog.LOG_LOCAL0,
    "local1": syslog.LOG_LOCAL1,
    "local2": syslog.LOG_LOCAL2,
    "local3": syslog.LOG_LOCAL3,
    "local4": syslog.LOG_LOCAL4,
    "local5": syslog.LOG_LOCAL5,
    "local6": syslog.LOG_LOCAL6,
    "local7": syslog.LOG_LOCAL7,
}

# highest level first
SYSLOG_PRIORITIES: Tuple[Tuple[int, int], ...] = (
    (EMERGENCY, syslog.LOG_EMERG),
    (ALERT, syslog.LOG_ALERT),
    (CRITICAL, syslog.LOG_CRIT),
    (ERROR, syslog.LOG_ERR),
    (WARNING, syslog.LOG_WARNING),
    (NOTICE, syslog.LOG_NOTICE),
    (INFO, syslog.LOG_INFO),
    (DEBUG, syslog.LOG_DEBUG),
)

DEFAULT_SYSLOG_OPTIONS = syslog.LOG_PID | syslog.LOG_CONS | syslog.LOG_ODELAY
SYSLOG_FORMAT = "%channel%.%level_name%: %message% %context% %extra%"


class SyslogHandler(ProcessingHandlerMixin, logging.Handler):
    """Writes to the local syslog daemon through :mod:`syslog`.

    The connection is opened on the first record, with the handler's ident,
    facility and options.

    Args:
        ident: Program identity prefixed to every message.
        facility: Facility name (``"user"``, ``"local0"``, ...) or constant.
        level: Minimum level.
        options: ``openlog`` option flags.
    """

    def __init__(
        self,
        ident: str,
        facility: Union[str, int] = "user",
        level: int = DEBUG,
        options: int = DEFAULT_SYSLOG_OPTIONS,
        processors: Optional[Iterable[Processor]] = None,
    ) -> None:
        super().__init__(level, processors=processors)
        if isinstance(facility, str):
            try:
                facility = SYSLOG_FACILITIES[facility.lower()]
            except KeyError:
                raise ValueError(f"Unknown syslog facility: {facility!r}") from None
        self.ident = ident
        self.facility = facility
        self.options = options
        self._opened = False
        self.setFormatter(LineFormatter(SYSLOG_FORMAT))

    @staticmethod
    def priority_for(levelno: int) -> int:
        for threshold, priority in SYSLOG_PRIORITIES:
            if levelno >= threshold:
                return priority
        return syslog.LOG_DEBUG

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record).rstrip("\n")
            if not self._opened:
                syslog.openlog(self.ident, self.options, self.facility)
                self._opened = True
            syslog.syslog(self.priority_for(record.levelno), msg)
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            if self._opened:
                syslog.closelog()
                self._opened = False
        finally:
            self.release()
        super().close()


class DailyRotatingFileHandler(ProcessingHandlerMixin, logging.handlers.BaseRotatingHandler):
    """Writes to a file whose name carries the current date.

    ``/var/app/logs/app.log`` is written as ``/var/app/logs/app-2024-05-01.log``;
    when the date changes the next file is started and the oldest files beyond
    ``max_files`` are deleted (``0`` keeps everything). The file is opened on
    the first write, created with ``file_permission``, and, with
    ``use_locking``, every write holds an exclusive ``flock`` so several
    processes can append safely.
    """

    terminator = ""

    def __init__(
        self,
        filename: str,
        max_files: int = LOG_FILE_MAX_FILES,
        level: int = logging.NOTSET,
        file_permission: Optional[int] = LOG_FILE_MODE,
        use_locking: bool = False,
        filename_format: str = LOG_FILENAME_FORMAT,
        date_format: str = LOG_FILENAME_DATE_FORMAT,
        processors: Optional[Iterable[Processor]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if "{date}" not in filename_format:
            raise ValueError("Invalid filename format - format must contain at least `{date}`")
        self.template_filename = os.path.abspath(filename)
        self.max_files = max_files
        self.file_permission = file_permission
        self.use_locking = use_locking
        self.filename_format = filename_format
        self.date_format = date_format
        self._clock = clock
        self._current_date = self._today()
        self._must_prune = True
        super().__init__(
            self.dated_filename(self._current_date), "a", encoding="utf-8", delay=True, processors=processors
        )
        self.setLevel(level)

    def _today(self) -> date:
        return self._clock().date()

    def _name_parts(self) -> Tuple[str, str, str]:
        directory, base = os.path.split(self.template_filename)
        stem, ext = os.path.splitext(base)
        return directory, stem, ext

    def dated_filename(self, day: date) -> str:
        directory, stem, ext = self._name_parts()
        name = self.filename_format.replace("{filename}", stem).replace("{date}", day.strftime(self.date_format))
        return os.path.join(directory, name + ext)

    def _glob_pattern(self) -> str:
        directory, stem, ext = self._name_parts()
        name = self.filename_format.replace("{filename}", glob.escape(stem)).replace("{date}", "*")
        return os.path.join(glob.escape(directory), name + glob.escape(ext))

    def shouldRollover(self, record: logging.LogRecord) -> bool:
        return self._today() != self._current_date

    def doRollover(self) -> None:
        if self.stream is not None:
            self.stream.close()
            self.stream = None
        self._current_date = self._today()
        self.baseFilename = self.dated_filename(self._current_date)
        self._must_prune = True

    def _open(self) -> IO[str]:
        os.makedirs(os.path.dirname(self.baseFilename), exist_ok=True)
        existed = os.path.exists(self.baseFilename)
        stream = super()._open()
        if not existed and self.file_permission is not None:
            try:
                os.chmod(self.baseFilename, self.file_permission)
            except OSError as exc:
                LOGGER.warning("Cannot set mode %o on %s: %s", self.file_permission, self.baseFilename, exc)
        if self._must_prune:
            self._must_prune = False
            self.prune()
        return stream

    def prune(self) -> List[str]:
        """Delete the oldest dated files beyond ``max_files``; return what was removed."""
        if self.max_files <= 0:
            return []
        files = sorted(glob.glob(self._glob_pattern()), reverse=True)
        removed: List[str] = []
        for path in files[self.max_files:]:
            try:
                os.unlink(path)
                removed.append(path)
            except OSError as exc:
                LOGGER.warning("Cannot remove rotated log file %s: %s", path, exc)
        return removed

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if self.shouldRollover(record):
                self.doRollover()
            if self.stream is None:
                self.stream = self._open()
            if not self.use_locking:
                logging.StreamHandler.emit(self, record)
                return
            fcntl.flock(self.stream.fileno(), fcntl.LOCK_EX)
            try:
                logging.StreamHandler.emit(self, record)
            finally:
                fcntl.flock(self.stream.fileno(), fcntl.LOCK_UN)
        except Exception:
            self.handleError(record)


class BufferedHandler(ProcessingHandlerMixin, logging.handlers.MemoryHandler):
    """Holds accepted records in memory until :meth:`flush` (or :meth:`close`).

    Flushing hands the records to ``target`` in acceptance order and empties
    the buffer. With ``capacity`` set, reaching it also flushes; the default
    of ``0`` means the buffer is unbounded. Closing flushes and then closes
    the target.

    Records arriving after :meth:`close` are dropped; the first one is
    reported on the framework logger.
    """

    def __init__(
        self,
        target: logging.Handler,
        capacity: int = 0,
        level: int = logging.NOTSET,
        flush_on_close: bool = True,
        processors: Optional[Iterable[Processor]] = None,
    ) -> None:
        super().__init__(capacity, flushLevel=EMERGENCY + 1, target=target, flushOnClose=flush_on_close, processors=processors)
        self.setLevel(level)
        self._accepting = True
        self.dropped = 0

    def shouldFlush(self, record: logging.LogRecord) -> bool:
        return self.capacity > 0 and len(self.buffer) >= self.capacity

    def emit(self, record: logging.LogRecord) -> None:
        if self._accepting:
            super().emit(record)
            return
        self.dropped += 1
        if self.dropped == 1:
            LOGGER.warning("Dropping '%s' records logged after the buffered handler was closed", record.name)

    def close(self) -> None:
        target = self.target
        try:
            super().close()
        finally:
            self._accepting = False
            self.buffer.clear()
            if target is not None:
                target.close()
