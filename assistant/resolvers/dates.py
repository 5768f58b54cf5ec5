"""Natural-language date and time resolution.

Turns the relative expressions teachers type ("next Friday", "in 3 weeks",
"5 PM") into absolute ``YYYY-MM-DD`` dates and 24-hour ``HH:MM`` times.

Every function here is pure: the reference ``now`` is always passed in and
its *local* calendar fields are used as-is (no UTC conversion), so a due
date typed late in the evening never slips to the following day.
Unrecognised expressions resolve to ``None`` rather than raising; callers
treat that as a value that is still missing.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

WEEKDAYS = {
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
    "saturday": SA,
    "sunday": SU,
}

WEEKDAY_ALIASES = {
    "mon": "monday",
    "tue": "tuesday",
    "tues": "tuesday",
    "wed": "wednesday",
    "thu": "thursday",
    "thur": "thursday",
    "thurs": "thursday",
    "fri": "friday",
    "sat": "saturday",
    "sun": "sunday",
}

NUMBER_WORDS = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

DATE_FORMAT = "%Y-%m-%d"

_IN_WEEKS = re.compile(r"^in\s+(\d+|[a-z]+)\s+weeks?$")
_NEXT_DAY = re.compile(r"^next\s+([a-z]+)$")
_TWELVE_HOUR = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s*m\.?$")
_TWENTY_FOUR_HOUR = re.compile(r"^(\d{1,2}):(\d{2})$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def resolve_date(expression: str, now: datetime | date) -> Optional[str]:
    """Return ``expression`` as a ``YYYY-MM-DD`` string, or ``None``.

    Recognised forms: ``today``, ``tomorrow``, ``next week``,
    ``next <weekday>``, ``in N weeks`` and ``end of month``. An expression
    that is already an ISO date is returned unchanged.

    ``next <weekday>`` is strictly forward: when that weekday is today or has
    already passed this week, the occurrence in the following week is used.
    """

    if not expression:
        return None

    text = _normalise(expression)
    today = now.date() if isinstance(now, datetime) else now

    if text == "today":
        return _format(today)
    if text == "tomorrow":
        return _format(today + relativedelta(days=1))
    if text == "next week":
        return _format(today + relativedelta(weeks=1))
    if text in {"end of month", "end of the month", "end of this month"}:
        return _format(today + relativedelta(day=31))

    match = _IN_WEEKS.match(text)
    if match:
        weeks = _parse_count(match.group(1))
        if weeks is None:
            return None
        return _format(today + relativedelta(weeks=weeks))

    match = _NEXT_DAY.match(text)
    if match:
        weekday = _weekday(match.group(1))
        if weekday is None:
            return None
        # Starting from tomorrow makes today's weekday roll over a full week.
        return _format(today + relativedelta(days=1, weekday=weekday(+1)))

    if _ISO_DATE.match(text):
        try:
            return _format(datetime.strptime(text, DATE_FORMAT).date())
        except ValueError:
            return None

    return None


def resolve_time(expression: str) -> Optional[str]:
    """Return ``expression`` as a 24-hour ``HH:MM`` string, or ``None``.

    Recognised forms: ``noon``, ``midnight``, ``<H> am|pm`` and
    ``<H>:<MM> am|pm``. 12 PM stays 12, 12 AM becomes 0 and other PM hours
    gain 12. Canonical ``HH:MM`` input is accepted as-is.
    """

    if not expression:
        return None

    text = _normalise(expression)

    if text == "noon":
        return "12:00"
    if text == "midnight":
        return "00:00"

    match = _TWELVE_HOUR.match(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        meridiem = match.group(3)
        if meridiem == "p" and hour != 12:
            hour += 12
        elif meridiem == "a" and hour == 12:
            hour = 0
        return f"{hour:02d}:{minute:02d}"

    match = _TWENTY_FOUR_HOUR.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return f"{hour:02d}:{minute:02d}"

    return None


def _normalise(expression: str) -> str:
    return " ".join(expression.lower().strip().rstrip(".!?").split())


def _format(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def _parse_count(token: str) -> Optional[int]:
    if token.isdigit():
        return int(token)
    return NUMBER_WORDS.get(token)


def _weekday(token: str):
    name = WEEKDAY_ALIASES.get(token, token)
    return WEEKDAYS.get(name)
