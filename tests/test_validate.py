from datetime import date, time

import pytest

from mynotes import validate as v
from mynotes.errors import ValidationError
from mynotes.records import RecurrenceKind


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, hint, expected",
    [
        ("Medium (options: High|Medium|Low)", "(options: High|Medium|Low)", "Medium"),
        ("None (e.g. 2025-12-25 09:30)", "(e.g. 2025-12-25 09:30)", "None"),
        ("plain", "(options: a|b)", "plain"),
        ("High (options: a|b)", "(options: High|Medium|Low)", "High (options: a|b)"),
        ("keep (this)", "", "keep (this)"),
    ],
)
def test_strip_hint_removes_only_the_given_hint(raw, hint, expected):
    assert v.strip_hint(raw, hint) == expected


@pytest.mark.unit
def test_clear_sentinels():
    assert v.is_clear(" None ")
    assert v.is_clear("NOT SET")
    assert not v.is_clear("")
    assert not v.is_clear("nothing")


@pytest.mark.unit
def test_bounded_string_message_names_field_and_limit():
    assert v.bounded_string("Title", "x" * 200, v.TITLE_MAX) == "x" * 200
    with pytest.raises(ValidationError) as exc:
        v.bounded_string("Title", "x" * 201, v.TITLE_MAX)
    assert exc.value.message == "Title is too long: 201 characters (max 200)"
    assert exc.value.field == "Title"


@pytest.mark.unit
def test_enum_token_is_case_insensitive():
    aliases = {"high": 3, "medium": 2, "low": 1}
    assert v.enum_token("Priority", "HIGH", aliases, "High|Medium|Low") == 3
    with pytest.raises(ValidationError) as exc:
        v.enum_token("Priority", "Extreme", aliases, "High|Medium|Low")
    assert exc.value.message == "Invalid Priority. Valid options: High|Medium|Low"


@pytest.mark.unit
def test_date_bounds(frozen_time):
    assert v.date_value("Due", "1970-01-01") == date(1970, 1, 1)
    assert v.date_value("Due", "2035-01-01") == date(2035, 1, 1)
    with pytest.raises(ValidationError):
        v.date_value("Due", "1899-01-01")
    with pytest.raises(ValidationError):
        v.date_value("Due", "2035-01-02")
    with pytest.raises(ValidationError, match="Use YYYY-MM-DD"):
        v.date_value("Due", "01/05/2025")


@pytest.mark.unit
def test_time_value():
    assert v.time_value("At", "09:30") == time(9, 30)
    with pytest.raises(ValidationError, match="HH:MM"):
        v.time_value("At", "9.30am")


@pytest.mark.unit
def test_amount():
    assert v.amount("Amount", "1,234.5") == 1234.5
    assert v.amount("Amount", "0.125") == 0.12
    assert v.amount("Amount", "0") == 0.0
    for bad in ("-5", "nan", "inf", "1000000000", "ten"):
        with pytest.raises(ValidationError):
            v.amount("Amount", bad)


@pytest.mark.unit
def test_count():
    assert v.count("Calories", "50000") == 50000
    for bad in ("999999", "-1", "12.5", "lots"):
        with pytest.raises(ValidationError):
            v.count("Calories", bad)


@pytest.mark.unit
def test_recurrence_simple_values():
    assert v.recurrence("Repeat", "Weekly").kind == RecurrenceKind.WEEKLY
    assert v.recurrence("Repeat", "none").kind == RecurrenceKind.NONE
    with pytest.raises(ValidationError) as exc:
        v.recurrence("Frequency", "none", allow_none=False)
    assert "none|" not in exc.value.message
    assert "daily|weekly|monthly" in exc.value.message


@pytest.mark.unit
def test_recurrence_range():
    r = v.recurrence("Repeat", "range 2025-01-01 to 2025-03-31 at 08:00")
    assert r.kind == RecurrenceKind.RANGE
    assert (r.start, r.end, r.at) == (date(2025, 1, 1), date(2025, 3, 31), time(8))
    assert r.label() == "range 2025-01-01 to 2025-03-31 at 08:00"

    r = v.recurrence("Repeat", "from 2025-01-01 to 2025-01-02")
    assert r.at is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw",
    [
        "range 2025-01-01",
        "range 2025-13-01 to 2025-12-31",
        "range 2025-01-01 to 2025-01-31 at 25:00",
    ],
)
def test_recurrence_bad_range(raw):
    with pytest.raises(ValidationError) as exc:
        v.recurrence("Repeat", raw)
    assert exc.value.message == v.RANGE_FORMAT_MSG


@pytest.mark.unit
def test_recurrence_range_must_not_end_before_start():
    with pytest.raises(ValidationError, match="ends before"):
        v.recurrence("Repeat", "range 2025-02-01 to 2025-01-01")


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, bad",
    [
        ("range 0001-01-01 to 9999-12-31", "0001-01-01"),
        ("range 1969-12-31 to 2025-01-01", "1969-12-31"),
        ("from 2025-01-01 to 2035-01-02 at 07:00", "2035-01-02"),
    ],
)
def test_recurrence_range_dates_are_bounded(frozen_time, raw, bad):
    with pytest.raises(ValidationError, match=f"{bad} is outside") as exc:
        v.recurrence("Repeat", raw)
    assert exc.value.field == "Repeat"
    assert v.recurrence("Repeat", "range 1970-01-01 to 2035-01-01").end == date(2035, 1, 1)


@pytest.mark.unit
def test_reminder(frozen_time):
    assert v.reminder("call mom") == ("call mom", None, None)
    assert v.reminder("2025-01-02 09:30") == (None, date(2025, 1, 2), time(9, 30))
    assert v.reminder("2025-01-02") == (None, date(2025, 1, 2), None)
    with pytest.raises(ValidationError):
        v.reminder("2024-12-31")
    with pytest.raises(ValidationError):
        v.reminder("2025-01-02 09:30 extra")


@pytest.mark.unit
def test_reminder_keeps_unchanged_past_date(frozen_time):
    past = date(2024, 12, 1)
    assert v.reminder("2024-12-01 07:00", unchanged=past) == (None, past, time(7))
