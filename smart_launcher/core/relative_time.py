"""Relative date parser: "2 days ago", "3 hours from now", "next friday"."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from smart_launcher.core.numbers import words_to_number
from smart_launcher.models.schemas import ExecutableCommand

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
# Calendar-naive on purpose: every month is 30 days, every year 365
MONTH = 30 * DAY
YEAR = 365 * DAY

UNIT_SECONDS = {
    "minute": MINUTE,
    "min": MINUTE,
    "hour": HOUR,
    "hr": HOUR,
    "day": DAY,
    "week": WEEK,
    "month": MONTH,
    "year": YEAR,
}

# Units fine enough to show a time of day in the label
TIME_OF_DAY_UNITS = {MINUTE, HOUR}

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

UNIT = r"(?P<unit>minutes?|mins?|hours?|hrs?|days?|weeks?|months?|years?)"
OFFSET_PATTERN = re.compile(
    rf"^(?P<amount>.+?)\s+{UNIT}\s+"
    r"(?P<direction>ago|from now|later|before|after)(?:\s+(?P<anchor>.+))?$"
)
IN_PATTERN = re.compile(rf"^in\s+(?P<amount>.+?)\s+{UNIT}$")
NEXT_LAST_PATTERN = re.compile(
    r"^(?P<which>next|last)\s+(?P<target>week|month|year|" + "|".join(WEEKDAYS) + r")$"
)
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _unit_seconds(unit: str) -> int:
    return UNIT_SECONDS[unit[:-1] if unit.endswith("s") else unit]


def _amount(text: str) -> float:
    if text in ("a", "an"):
        return 1
    amount = words_to_number(text)
    if amount < 0:
        raise ValueError("Negative offsets read as the opposite direction")
    return amount


def _resolve_anchor(anchor: Optional[str], now: datetime) -> datetime:
    """Reference point of "<offset> after/before <anchor>"; unknown means now."""
    if anchor is None or anchor in ("now", "today"):
        return now
    if anchor == "tomorrow":
        return now + timedelta(days=1)
    if anchor == "yesterday":
        return now - timedelta(days=1)
    if ISO_DATE_PATTERN.match(anchor):
        try:
            return datetime.strptime(anchor, "%Y-%m-%d").astimezone()
        except ValueError:
            pass
    logger.debug(f"Unknown anchor {anchor!r}, falling back to now")
    return now


def _format_label(moment: datetime, with_time: bool) -> str:
    local = moment.astimezone()
    label = f"{local:%B} {local.day}, {local.year}"
    if not with_time:
        return label
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{label} {hour}:{local.minute:02d} {meridiem}"


def to_iso(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _result(moment: datetime, with_time: bool) -> List[ExecutableCommand]:
    return [
        ExecutableCommand.formula_result(
            to_iso(moment), label=_format_label(moment, with_time)
        )
    ]


def _next_or_last(which: str, target: str, now: datetime) -> datetime:
    sign = 1 if which == "next" else -1
    if target in WEEKDAYS:
        index = WEEKDAYS.index(target)
        if which == "next":
            days = (index - now.weekday()) % 7 or 7
        else:
            days = (now.weekday() - index) % 7 or 7
        return now + timedelta(days=sign * days)
    return now + timedelta(seconds=sign * UNIT_SECONDS[target])


def parse_relative_time(
    query: str, now: Optional[datetime] = None
) -> List[ExecutableCommand]:
    """Resolve a relative date phrase into an instant.

    The value is an ISO-8601 instant; the label is a readable local date,
    with the time of day for minute and hour offsets.
    """
    now = (now or datetime.now()).astimezone()
    text = re.sub(r"\s+", " ", query.strip().lower())

    try:
        match = OFFSET_PATTERN.match(text)
        if match:
            seconds = _unit_seconds(match.group("unit"))
            offset = timedelta(seconds=_amount(match.group("amount")) * seconds)
            direction = match.group("direction")
            anchor = match.group("anchor")
            if direction in ("ago", "from now", "later") and anchor:
                return []
            reference = _resolve_anchor(anchor, now)
            moment = reference - offset if direction in ("ago", "before") else reference + offset
            return _result(moment, seconds in TIME_OF_DAY_UNITS)

        match = IN_PATTERN.match(text)
        if match:
            seconds = _unit_seconds(match.group("unit"))
            moment = now + timedelta(seconds=_amount(match.group("amount")) * seconds)
            return _result(moment, seconds in TIME_OF_DAY_UNITS)

        match = NEXT_LAST_PATTERN.match(text)
        if match:
            moment = _next_or_last(match.group("which"), match.group("target"), now)
            return _result(moment, False)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Not a relative time {query!r}: {e}")

    return []
