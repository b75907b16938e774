"""
Severity and facility tables for RFC5424 priority values.
"""

import logging
from enum import Enum
from typing import Any


class Severity(Enum):
    """Syslog severity levels with their RFC5424 numeric codes."""
    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7

    @property
    def label(self) -> str:
        """Lowercase name used in message templates."""
        return self.name.lower()


class Facility(Enum):
    """The eight local-use syslog facilities."""
    LOCAL0 = 16
    LOCAL1 = 17
    LOCAL2 = 18
    LOCAL3 = 19
    LOCAL4 = 20
    LOCAL5 = 21
    LOCAL6 = 22
    LOCAL7 = 23


DEFAULT_SEVERITY = Severity.ERROR
DEFAULT_FACILITY = Facility.LOCAL1

SEVERITY_ALIASES = {
    "debug": Severity.DEBUG,
    "info": Severity.INFO,
    "notice": Severity.NOTICE,
    "warn": Severity.WARNING,
    "warning": Severity.WARNING,
    "err": Severity.ERROR,
    "error": Severity.ERROR,
    "crit": Severity.CRITICAL,
    "critical": Severity.CRITICAL,
    "alert": Severity.ALERT,
    "emerg": Severity.EMERGENCY,
    "emergency": Severity.EMERGENCY,
    "panic": Severity.EMERGENCY,
}


def to_severity(value: Any) -> Severity:
    """
    Resolve a severity given as a member, a name or a raw 0-7 code.

    Args:
        value: Severity member, name (case-insensitive, aliases allowed) or int

    Returns:
        The matching Severity, or Severity.ERROR when nothing matches
    """
    if isinstance(value, Severity):
        return value
    if isinstance(value, str):
        return SEVERITY_ALIASES.get(value.strip().lower(), DEFAULT_SEVERITY)
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 7:
        return Severity(value)
    return DEFAULT_SEVERITY


def severity_code(value: Any) -> int:
    """Return the 0-7 code for any severity input; unknown input yields 3."""
    return to_severity(value).value


def to_facility(value: Any) -> Facility:
    """
    Resolve a facility given as a member, a name like "local3" or a raw 16-23 number.

    Unrecognized input falls back to local1.
    """
    if isinstance(value, Facility):
        return value
    if isinstance(value, str):
        try:
            return Facility[value.strip().upper()]
        except KeyError:
            return DEFAULT_FACILITY
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return Facility(value)
        except ValueError:
            return DEFAULT_FACILITY
    return DEFAULT_FACILITY


def facility_code(value: Any) -> int:
    """Return the facility number shifted into the PRI high bits (a multiple of 8)."""
    return to_facility(value).value << 3


def severity_from_levelno(levelno: int) -> Severity:
    """
    Map a Python logging level number onto the nearest syslog severity.

    Custom levels between the standard ones round down to the lower level.
    """
    if levelno >= logging.CRITICAL:
        return Severity.CRITICAL
    if levelno >= logging.ERROR:
        return Severity.ERROR
    if levelno >= logging.WARNING:
        return Severity.WARNING
    if levelno >= logging.INFO:
        return Severity.INFO
    return Severity.DEBUG
