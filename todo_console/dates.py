from __future__ import annotations

import datetime as dt
import re
from typing import Optional

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_RELATIVE_RE = re.compile(r"^([+-])(\d+)\s*([dw]?)$")


def today() -> dt.date:
    return dt.date.today()


def now_local() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).astimezone()


def now_iso() -> str:
    return now_local().isoformat(timespec="seconds")


def parse_date(text: Optional[str], base: Optional[dt.date] = None) -> Optional[dt.date]:
    """Parse user date input.

    Accepts ISO dates, ``today``/``tomorrow``/``yesterday``, relative offsets
    (``+3``, ``+2d``, ``+1w``, ``-4d``) and weekday names (next occurrence,
    never today). Empty input returns None; anything else raises ValueError.
    """
    raw = (text or "").strip().lower()
    if not raw:
        return None
    base = base or today()
    if raw == "today":
        return base
    if raw == "tomorrow":
        return base + dt.timedelta(days=1)
    if raw == "yesterday":
        return base - dt.timedelta(days=1)
    match = _RELATIVE_RE.match(raw)
    if match:
        sign, amount, unit = match.groups()
        days = int(amount) * (7 if unit == "w" else 1)
        return base + dt.timedelta(days=days if sign == "+" else -days)
    for idx, name in enumerate(WEEKDAYS):
        if raw in (name, name[:3]):
            ahead = (idx - base.weekday()) % 7 or 7
            return base + dt.timedelta(days=ahead)
    try:
        return dt.date.fromisoformat(raw)
    except ValueError:
        raise ValueError(f"Unrecognized date: {text!r}") from None


def safe_date(s: Optional[str]) -> Optional[dt.date]:
    try:
        return dt.date.fromisoformat(s) if s else None
    except ValueError:
        return None


def due_status(due: Optional[str], on: Optional[dt.date] = None, soon_days: int = 3) -> Optional[str]:
    """Return ``Overdue``, ``DueSoon`` or None for an ISO due date."""
    due_date = safe_date(due)
    if due_date is None:
        return None
    on = on or today()
    if due_date < on:
        return "Overdue"
    if (due_date - on).days <= soon_days:
        return "DueSoon"
    return None


def parse_timestamp(raw: Optional[str]) -> Optional[dt.datetime]:
    if not raw:
        return None
    try:
        value = dt.datetime.fromisoformat(raw)
    except ValueError:
        try:
            value = dt.datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    if value.tzinfo is None:
        local_tz = now_local().tzinfo
        if local_tz is not None:
            value = value.replace(tzinfo=local_tz)
    return value.astimezone()


def format_duration(seconds: int) -> str:
    s = int(max(0, seconds))
    h, r = divmod(s, 3600)
    m, s = divmod(r, 60)
    return f"{h:d}:{m:02d}:{s:02d}" if h else f"{m:02d}:{s:02d}"
