"""Update policy for ``latest``-versioned tools."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import timedelta

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(days=7)
DEFAULT_WINDOW_TEXT = "7 days"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([a-zA-Z]+)\s*$")

_UNITS = {
    "minute": "minutes",
    "minutes": "minutes",
    "hour": "hours",
    "hours": "hours",
    "day": "days",
    "days": "days",
}


def parse_duration(value: str) -> timedelta | None:
    """Parse ``"<N> <unit>"`` where unit is minute(s), hour(s) or day(s)."""
    match = _DURATION_RE.match(value)
    if not match:
        return None
    amount, unit = int(match.group(1)), match.group(2).lower()
    kwarg = _UNITS.get(unit)
    if kwarg is None:
        return None
    return timedelta(**{kwarg: amount})


@dataclass(frozen=True)
class UpdatePolicy:
    """Minimum age of a ``latest`` install before it is refreshed."""

    window: timedelta = DEFAULT_WINDOW

    @classmethod
    def from_config(cls, value: str | None) -> UpdatePolicy:
        if not value:
            logger.warning(
                "update_latest_only_after is not set, defaulting to 7 days"
            )
            return cls()
        window = parse_duration(value)
        if window is None:
            logger.warning(
                "Cannot parse update_latest_only_after '%s', defaulting to 7 days",
                value,
            )
            return cls()
        return cls(window=window)
