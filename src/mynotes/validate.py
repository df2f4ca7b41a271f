"""
Field checks shared by every record codec and by the importer.

Each check takes the field label used in messages plus the raw text and
either returns the typed value or raises ``ValidationError`` naming the
field and what it accepts.
"""

import math
import re
from datetime import date, datetime, time
from typing import Optional, TypeVar

from .errors import ValidationError
from .records import Recurrence, RecurrenceKind
from .shared import DATE_FMT, EPOCH, TIME_FMT, latest_allowed, today

T = TypeVar("T")

# ─── Limits ─────────────────────────────────────────────────

TITLE_MAX = 200
NAME_MAX = 100
CATEGORY_MAX = 100
MEAL_MAX = 200
CARD_SIDE_MAX = 1_000
COLLECTION_MAX = 100
TAG_MAX = 50
REMINDER_TEXT_MAX = 200
BODY_MAX = 10_000
JOURNAL_MAX = 50_000
PAGE_MAX = 100_000

AMOUNT_MAX = 999_999_999.99
CALORIES_MAX = 50_000

RANGE_HELP = "range YYYY-MM-DD to YYYY-MM-DD at HH:MM"
RANGE_FORMAT_MSG = f"Invalid range format. Use: {RANGE_HELP}"

# typed in an optional field to empty it
CLEAR_SENTINELS = {"none", "not set"}

RANGE_REGEX = re.compile(
    r"^(?:range|from)\s+(\S+)\s+to\s+(\S+)(?:\s+(?:at|@)\s+(\S+))?$", re.IGNORECASE
)


def strip_hint(value: str, hint: str) -> str:
    """Drop ``hint`` from the end of ``value`` when it is exactly there."""
    value = value.strip()
    if hint and value.endswith(hint):
        return value[: -len(hint)].strip()
    return value


def is_clear(value: str) -> bool:
    return value.strip().lower() in CLEAR_SENTINELS


def bounded_string(field: str, value: str, max_len: int) -> str:
    if len(value) > max_len:
        raise ValidationError(
            f"{field} is too long: {len(value)} characters (max {max_len})", field
        )
    return value


def enum_token(field: str, value: str, aliases: dict[str, T], options: str) -> T:
    """
    Map ``value`` onto one of ``aliases`` ignoring case.

    ``options`` is the ``A|B|C`` string shown to the user on failure.
    """
    key = " ".join(value.strip().lower().split())
    if key in aliases:
        return aliases[key]
    raise ValidationError(f"Invalid {field}. Valid options: {options}", field)


def date_value(
    field: str,
    value: str,
    earliest: Optional[date] = None,
    latest: Optional[date] = None,
) -> date:
    earliest = earliest or EPOCH
    latest = latest or latest_allowed()
    try:
        parsed = datetime.strptime(value.strip(), DATE_FMT).date()
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value.strip()!r}. Use YYYY-MM-DD", field
        ) from None
    if not earliest <= parsed <= latest:
        raise ValidationError(
            f"Invalid {field}: {parsed.isoformat()} is outside "
            f"{earliest.isoformat()} to {latest.isoformat()}",
            field,
        )
    return parsed


def time_value(field: str, value: str) -> time:
    try:
        return datetime.strptime(value.strip(), TIME_FMT).time()
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value.strip()!r}. Use HH:MM", field
        ) from None


def amount(field: str, value: str) -> float:
    text = value.strip().replace(",", "")
    try:
        number = float(text)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value.strip()!r} is not a number", field
        ) from None
    if not math.isfinite(number) or number < 0 or number > AMOUNT_MAX:
        raise ValidationError(
            f"Invalid {field}: must be between 0 and {AMOUNT_MAX:,.2f}", field
        )
    return round(number, 2)


def count(field: str, value: str, max_value: int = CALORIES_MAX) -> int:
    text = value.strip().replace(",", "")
    try:
        number = int(text)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value.strip()!r} is not a whole number", field
        ) from None
    if number < 0 or number > max_value:
        raise ValidationError(
            f"Invalid {field}: must be between 0 and {max_value:,}", field
        )
    return number


def recurrence(field: str, value: str, allow_none: bool = True) -> Recurrence:
    """
    Accepts none|daily|weekly|monthly or ``range A to B [at HH:MM]``
    (``from`` is a synonym for ``range``). Habit frequencies pass
    ``allow_none=False``.
    """
    text = " ".join(value.strip().split())
    lowered = text.lower()
    simple = {
        "daily": RecurrenceKind.DAILY,
        "weekly": RecurrenceKind.WEEKLY,
        "monthly": RecurrenceKind.MONTHLY,
    }
    if allow_none:
        simple["none"] = RecurrenceKind.NONE
    if lowered in simple:
        return Recurrence(kind=simple[lowered])

    if lowered.startswith(("range", "from")):
        m = RANGE_REGEX.match(text)
        if not m:
            raise ValidationError(RANGE_FORMAT_MSG, field)
        start_text, end_text, at_text = m.groups()
        try:
            start = datetime.strptime(start_text, DATE_FMT).date()
            end = datetime.strptime(end_text, DATE_FMT).date()
            at = datetime.strptime(at_text, TIME_FMT).time() if at_text else None
        except ValueError:
            raise ValidationError(RANGE_FORMAT_MSG, field) from None
        start = date_value(field, start_text)
        end = date_value(field, end_text)
        if end < start:
            raise ValidationError(
                f"Invalid {field}: range ends before it starts", field
            )
        return Recurrence(kind=RecurrenceKind.RANGE, start=start, end=end, at=at)

    options = ("none|" if allow_none else "") + "daily|weekly|monthly|" + RANGE_HELP
    raise ValidationError(f"Invalid {field}. Valid options: {options}", field)


def reminder(
    value: str, unchanged: Optional[date] = None
) -> tuple[Optional[str], Optional[date], Optional[time]]:
    """
    Split a reminder into (text, date, time).

    A value starting with YYYY-MM-DD must be a date between today and ten
    years ahead, optionally followed by HH:MM. A stored reminder date equal
    to ``unchanged`` is accepted even when it has since passed. Anything
    else is kept as free text.
    """
    text = value.strip()
    parts = text.split()
    if parts and re.fullmatch(r"\d{4}-\d{2}-\d{2}", parts[0]):
        if unchanged is not None and parts[0] == unchanged.strftime(DATE_FMT):
            day = unchanged
        else:
            day = date_value("Reminder", parts[0], earliest=today())
        at = None
        if len(parts) > 2:
            raise ValidationError(
                "Invalid Reminder. Use YYYY-MM-DD HH:MM or free text", "Reminder"
            )
        if len(parts) == 2:
            at = time_value("Reminder", parts[1])
        return None, day, at
    return bounded_string("Reminder", text, REMINDER_TEXT_MAX), None, None
