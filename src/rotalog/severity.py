"""Severity levels and level-token parsing.

Severities are totally ordered from the most urgent (`FATAL`) to the least
urgent (`DEBUG`). A logger configured at a given level emits every message
whose severity value is less than or equal to that level.
"""

from __future__ import annotations

from enum import IntEnum

from rotalog.errors import UnknownLevelError


class Severity(IntEnum):
    """Log urgency; lower values are more urgent."""

    FATAL = 0
    ERROR = 1
    WARN = 2
    NOTICE = 3
    INFO = 4
    DEBUG = 5

    @property
    def label(self) -> str:
        return self.name

    def allows(self, severity: Severity) -> bool:
        """Return True when a logger at this level should emit `severity`."""
        return severity <= self


_ALIASES = {"warning": Severity.WARN}


def parse_level(value: str | Severity) -> Severity:
    """Parse a case-insensitive level token into a `Severity`.

    Args:
        value (str | Severity): One of ``debug|info|notice|warn|error|fatal``
            (``warning`` is accepted for ``warn``) or an existing `Severity`.

    Returns:
        Severity: The matching severity.

    Raises:
        UnknownLevelError: When the token does not name a known severity.

    """
    if isinstance(value, Severity):
        return value
    if not isinstance(value, str):
        raise UnknownLevelError(f"Unknown log level: {value!r}")
    token = value.strip().lower()
    if token in _ALIASES:
        return _ALIASES[token]
    try:
        return Severity[token.upper()]
    except KeyError:
        raise UnknownLevelError(f"Unknown log level: {value!r}") from None
