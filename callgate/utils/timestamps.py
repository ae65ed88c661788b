"""Timestamp normalization for loosely-typed call timestamps."""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Below this magnitude an epoch value is read as seconds, otherwise milliseconds.
EPOCH_MS_THRESHOLD = 1e12

_DATE_ONLY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
# Epoch-length digit strings only; 4 and 8 digit forms are ISO years and basic dates.
_NUMERIC = re.compile(r"^[+-]?\d{9,}(\.\d+)?$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_epoch(value: float) -> datetime:
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"not a finite epoch: {value!r}")
    if abs(value) < EPOCH_MS_THRESHOLD:
        return EPOCH + timedelta(seconds=value)
    return EPOCH + timedelta(milliseconds=value)


def _parse_string(raw: str, now: datetime) -> datetime:
    if _NUMERIC.match(raw):
        return _from_epoch(float(raw))

    match = _DATE_ONLY.match(raw)
    if match:
        year, month, day = (int(part) for part in match.groups())
        # Keep the caller's date but use the current time of day, not midnight.
        return datetime(
            year, month, day, now.hour, now.minute, now.second, tzinfo=timezone.utc
        )

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        parsed = date_parser.parse(raw)
    return as_utc(parsed)


def normalize_timestamp(raw: Any, now: datetime | None = None) -> datetime:
    """
    Convert a raw timestamp into an aware UTC datetime.

    Accepts epoch seconds or milliseconds (numbers or numeric strings),
    ``YYYY-MM-DD`` dates, ISO-8601 and other common date strings. Never raises:
    anything missing or unparseable resolves to ``now``.
    """
    now = as_utc(now) if now is not None else utcnow()
    try:
        if raw is None or raw is False or raw == "":
            return now
        if isinstance(raw, datetime):
            return as_utc(raw)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            if raw == 0:
                return now
            return _from_epoch(float(raw))
        if isinstance(raw, str):
            text = raw.strip()
            if not text:
                return now
            return _parse_string(text, now)
    except Exception as exc:
        logger.debug("Unparseable timestamp %r, using current time: %s", raw, exc)
        return now
    logger.debug("Unsupported timestamp type %s, using current time", type(raw).__name__)
    return now
