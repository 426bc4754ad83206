"""Constants used throughout kiosk-bootstrap.

This module defines the framework logger, the well-known service keys the
bootstrap registers, and the defaults the logging pipeline falls back to.
"""

import logging

LOGGER_NAME: str = "kiosk_bootstrap"
"""Logger name for kiosk-bootstrap internal diagnostics."""

LOGGER: logging.Logger = logging.getLogger(LOGGER_NAME)
"""Framework logger instance; never part of the application pipeline."""

SERVICE_CONFIG_FILE: str = "config_file"
SERVICE_CONFIG: str = "config"
SERVICE_DISPLAY: str = "display"
SERVICE_SECURITY: str = "security"
SERVICE_LOGGER: str = "logger"

DEFAULT_CONSOLE_WIDTH: int = 60
"""Separator width used when ``COLUMNS`` is absent or not a number."""

UID_LENGTH: int = 24
"""Length of the unique-id token added by every handler."""

LOG_FILE_MAX_FILES: int = 24
LOG_FILE_MODE: int = 0o644
LOG_FILENAME_FORMAT: str = "{filename}-{date}"
LOG_FILENAME_DATE_FORMAT: str = "%Y-%m-%d"

FILE_LINE_FORMAT: str = "[%datetime%][%channel%][%level_name%][%extra.uid%]: %message%\n"
FILE_DATE_FORMAT: str = "U"
CONSOLE_DATE_FORMAT: str = "%H:%M:%S"
