"""Expiry date parsing and freshness classification."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date

from shelfscan.core.models import ExpiryStatus

DEFAULT_SOON_THRESHOLD_DAYS = 90

# GS1 dates carry a two-digit year; every year is read as 20yy.
CENTURY = 2000


@dataclass(frozen=True)
class ExpiryInfo:
    """Resolved expiry date with display forms and classification."""

    iso: str
    display: str
    ddmmyy: str
    status: ExpiryStatus
    days_until: int | None = None


UNKNOWN_EXPIRY = ExpiryInfo(iso="", display="", ddmmyy="", status=ExpiryStatus.UNKNOWN)


def parse_expiry(yymmdd: str) -> date | None:
    """Parse a GS1 ``yymmdd`` date field.

    Day ``00`` stands for the last day of the month.

    Examples:
        >>> parse_expiry("250131")
        datetime.date(2025, 1, 31)
        >>> parse_expiry("250200")
        datetime.date(2025, 2, 28)
    """
    if not isinstance(yymmdd, str) or len(yymmdd) != 6 or not yymmdd.isascii() or not yymmdd.isdigit():
        return None

    year = CENTURY + int(yymmdd[0:2])
    month = int(yymmdd[2:4])
    day = int(yymmdd[4:6])

    if not 1 <= month <= 12:
        return None

    last_day = calendar.monthrange(year, month)[1]
    if day == 0:
        day = last_day
    if day > last_day:
        return None

    return date(year, month, day)


def expiry_from_iso(value: str | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` date entered by hand, or None if invalid."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def classify_expiry(
    expiry: date | None,
    today: date | None = None,
    threshold_days: int = DEFAULT_SOON_THRESHOLD_DAYS,
) -> ExpiryStatus:
    """Classify an expiry date relative to today."""
    if expiry is None:
        return ExpiryStatus.UNKNOWN

    days_until = (expiry - (today or date.today())).days
    if days_until < 0:
        return ExpiryStatus.EXPIRED
    if days_until <= threshold_days:
        return ExpiryStatus.EXPIRING
    return ExpiryStatus.OK


def resolve_expiry(
    expiry: date | None,
    today: date | None = None,
    threshold_days: int = DEFAULT_SOON_THRESHOLD_DAYS,
) -> ExpiryInfo:
    """Build display forms and the freshness status for an expiry date.

    Args:
        expiry: Calendar date to resolve, or None when the scan carried none
        today: Reference date, defaults to the local date
        threshold_days: Days ahead at which a date counts as expiring

    Returns:
        ExpiryInfo; status is UNKNOWN when no date was given
    """
    if expiry is None:
        return UNKNOWN_EXPIRY

    today = today or date.today()
    return ExpiryInfo(
        iso=expiry.isoformat(),
        display=expiry.strftime("%d/%m/%Y"),
        ddmmyy=expiry.strftime("%d%m%y"),
        status=classify_expiry(expiry, today, threshold_days),
        days_until=(expiry - today).days,
    )
