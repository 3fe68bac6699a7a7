"""Timestamp helpers resolving persisted instants to canonical UTC datetimes."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from ..errors import InvalidTimestampFormat

_TIMESTAMP_RE = re.compile(
    r"""
    ^(?P<date>\d{4}-\d{2}-\d{2})
    [ T]
    (?P<time>\d{2}:\d{2}(?::\d{2})?)
    (?:\.(?P<fraction>\d{1,9}))?
    \s*
    (?P<zone>[Zz]|[+-]\d{2}(?::?\d{2})?)?$
    """,
    re.VERBOSE,
)


def _normalize_zone(zone: str) -> str:
    if zone in ("Z", "z"):
        return "+00:00"
    sign, digits = zone[0], zone[1:].replace(":", "")
    if len(digits) == 2:
        digits += "00"
    return f"{sign}{digits[:2]}:{digits[2:]}"


def resolve_instant(raw: str | datetime) -> datetime:
    """Resolve a persisted timestamp to an aware UTC datetime.

    Accepts the shapes produced by the persistence layer, e.g.
    ``2025-06-21 14:21:44.615+00``, ``2025-06-21T14:21:44.615+00`` and
    ``2025-06-21T14:21:44.615Z``. Values without a zone designator are
    rejected rather than interpreted in the host's local time.
    """
    if isinstance(raw, datetime):
        if raw.tzinfo is None or raw.utcoffset() is None:
            raise InvalidTimestampFormat("timestamp must include timezone information")
        return raw.astimezone(timezone.utc)
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidTimestampFormat("timestamp missing")
    match = _TIMESTAMP_RE.match(raw.strip())
    if match is None:
        raise InvalidTimestampFormat(f"unrecognised timestamp {raw!r}")
    zone = match.group("zone")
    if zone is None:
        raise InvalidTimestampFormat(f"timestamp {raw!r} has no zone designator")
    clock = match.group("time")
    if clock.count(":") == 1:
        clock += ":00"
    fraction = (match.group("fraction") or "").ljust(6, "0")[:6]
    literal = f"{match.group('date')}T{clock}.{fraction}{_normalize_zone(zone)}"
    try:
        dt = datetime.fromisoformat(literal)
    except ValueError as exc:
        raise InvalidTimestampFormat(f"timestamp {raw!r} is out of range") from exc
    return dt.astimezone(timezone.utc)


def window_elapsed(ends_at: datetime, now: datetime) -> bool:
    """Return True once ``now`` is strictly past ``ends_at``."""
    for value in (ends_at, now):
        if value.tzinfo is None or value.utcoffset() is None:
            raise InvalidTimestampFormat("window comparison requires aware instants")
    return now > ends_at


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
