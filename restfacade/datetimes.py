"""
Conversion between wire (RFC 3339, UTC) and storage (``YYYY-MM-DD HH:MM:SS``) datetimes.

Malformed input never raises: it falls back to the Unix epoch.
"""

import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Union

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

STORAGE_FORMAT = "%Y-%m-%d %H:%M:%S"
WIRE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_FRACTION_RE = re.compile(r"\.\d+")
_ZULU_RE = re.compile(r"(?<=\d)[zZ]$")
_COMPACT_OFFSET_RE = re.compile(r"(?<=\d)([+-])(\d{2}):?(\d{2})$")
_FIXED_OFFSET_RE = re.compile(r"^(?:UTC)?([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


def resolve_timezone(name: str) -> tzinfo:
    """Resolve a timezone setting to a tzinfo.

    Accepts ``UTC``, IANA zone names (``Europe/Paris``) and fixed offsets
    (``+05:30``, ``-0300``, ``UTC+8``).

    Raises:
        ValueError: If the name is not a known timezone
    """
    name = (name or "UTC").strip()
    if name.upper() in ("UTC", "Z", "GMT"):
        return timezone.utc

    match = _FIXED_OFFSET_RE.match(name)
    if match:
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
        return timezone(-offset if sign == "-" else offset)

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def _parse(value: str, default_tz: tzinfo) -> datetime:
    text = value.strip()
    if not text:
        raise ValueError("Empty datetime")

    text = _ZULU_RE.sub("+00:00", text)
    if ":" in text:
        text = _COMPACT_OFFSET_RE.sub(r"\1\2:\3", text)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def parse_datetime(value: Any) -> str:
    """Parse a wire datetime into a storage datetime in UTC.

    Sub-second precision is dropped and any UTC offset is applied, so the
    result is always expressed at ``+00:00``.

    Args:
        value: RFC 3339 datetime, e.g. ``2024-01-15T10:30:00.123+05:00``

    Returns:
        Storage datetime, e.g. ``2024-01-15 05:30:00``; the epoch when the input is invalid
    """
    if not isinstance(value, str):
        return EPOCH.strftime(STORAGE_FORMAT)

    # Strip millisecond precision (a full stop followed by one or more digits)
    if "." in value:
        value = _FRACTION_RE.sub("", value)

    try:
        parsed = _parse(value, timezone.utc).astimezone(timezone.utc)
    except (ValueError, OverflowError):
        logger.debug(f"Invalid datetime {value!r}, falling back to epoch")
        parsed = EPOCH

    return parsed.strftime(STORAGE_FORMAT)


def format_datetime(
    timestamp: Union[int, float, str, None],
    convert_to_utc: bool = False,
    site_timezone: Union[str, tzinfo] = "UTC",
) -> str:
    """Format a Unix timestamp or storage datetime as an RFC 3339 UTC datetime.

    Args:
        timestamp: Unix timestamp or storage datetime
        convert_to_utc: Interpret a storage datetime in the site timezone and shift it to UTC
        site_timezone: The site timezone, as a name or tzinfo

    Returns:
        Wire datetime, e.g. ``2024-01-15T10:30:00Z``
    """
    zone: tzinfo = timezone.utc
    if convert_to_utc:
        zone = site_timezone if isinstance(site_timezone, tzinfo) else resolve_timezone(site_timezone)

    try:
        if _is_numeric(timestamp):
            date = datetime.fromtimestamp(float(timestamp), tz=timezone.utc)  # type: ignore[arg-type]
        elif isinstance(timestamp, str):
            date = _parse(timestamp, zone)
        else:
            raise ValueError(f"Unsupported datetime value: {timestamp!r}")
        date = date.astimezone(timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.debug(f"Invalid datetime {timestamp!r}, falling back to epoch")
        date = EPOCH

    return date.strftime(WIRE_FORMAT)
