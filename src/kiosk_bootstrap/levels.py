"""Severity scale of the application pipeline.

The standard library levels are kept and the three syslog severities it lacks
are slotted in around them.
"""

import logging
from typing import Union

DEBUG = logging.DEBUG
INFO = logging.INFO
NOTICE = 25
WARNING = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL
ALERT = 60
EMERGENCY = 70

logging.addLevelName(NOTICE, "NOTICE")
logging.addLevelName(ALERT, "ALERT")
logging.addLevelName(EMERGENCY, "EMERGENCY")


def to_level(level: Union[int, str]) -> int:
    """Accept ``"notice"``, ``"NOTICE"`` or ``25`` and return the numeric level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value
