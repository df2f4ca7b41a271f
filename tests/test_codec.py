from datetime import date, time

import pytest

from mynotes.codec import CODECS, FlashcardCodec, TaskCodec, codec_for
from mynotes.errors import ParseStructureError, ValidationError
from mynotes.records import (
    CardType,
    HabitStatus,
    KanbanStage,
    RecordKind,
    RecurrenceKind,
    TaskPriority,
)

PAY_RENT = (
    "Title: Pay rent\n"
    "Status: Pending\n"
    "Priority: High\n"
    "Due: 2025-01-05\n"
    "\n"
    "Description:\n"
    "Monthly"
)


@pytest.mark.unit
def test_every_kind_has_a_codec():
    assert set(CODECS) == set(RecordKind)


@pytest.mark.unit
def test_pay_rent_scenario(frozen_time):
    codec = codec_for(RecordKind.TASK)
    task = codec.parse(PAY_RENT)
    assert task.title == "Pay rent"
    assert task.completed is False
    assert task.priority == TaskPriority.HIGH
    assert task.due_date == date(2025, 1, 5)
    assert task.description == "Monthly"
    assert task.created_at == date(2025, 1, 1)

    assert codec.parse(codec.format(task)) == task


@pytest.mark.unit
@pytest.mark.parametrize("kind", list(RecordKind))
def test_format_then_parse_reproduces_record(frozen_time, sample_text, kind):
    codec = codec_for(kind)
    record = codec.parse(sample_text[kind.value])
    text = codec.format(record)
    assert codec.parse(text) == record
    assert codec.parse(text, existing=record) == record


@pytest.mark.unit
def test_task_format_layout(frozen_time):
    codec = TaskCodec()
    text = codec.format(codec.parse(PAY_RENT))
    assert text == (
        "Title: Pay rent\n"
        "Status: Pending\n"
        "Priority: High\n"
        "Created: 2025-01-01\n"
        "Due: 2025-01-05\n"
        "Reminder: None\n"
        "Repeat: none\n"
        "\n"
        "Description:\n"
        "Monthly\n"
    )


@pytest.mark.unit
@pytest.mark.parametrize("kind", list(RecordKind))
def test_template_hints_are_ignored(frozen_time, kind):
    codec = codec_for(kind)
    text = codec.template()
    first_label = text.split(":", 1)[0]
    text = text.replace(f"{first_label}: \n", f"{first_label}: Something\n", 1)
    if kind == RecordKind.FINANCE:
        text = text.replace("Amount: \n", "Amount: 12\n")
    if kind == RecordKind.CALORIE:
        text = text.replace("Calories: \n", "Calories: 300\n")
    if kind == RecordKind.FLASHCARD:
        text += "the answer\n"
    record = codec.parse(text)
    assert codec.format(record).startswith(f"{first_label}: Something\n")


@pytest.mark.unit
def test_task_template_defaults(frozen_time):
    task = TaskCodec().parse(TaskCodec().template().replace("Title: \n", "Title: Walk\n"))
    assert task.completed is False
    assert task.priority == TaskPriority.MEDIUM
    assert task.due_date is None
    assert task.reminder_date is None and task.reminder_text is None
    assert task.recurrence.kind == RecurrenceKind.NONE
    assert task.created_at == date(2025, 1, 1)


@pytest.mark.unit
@pytest.mark.parametrize(
    "kind, text, needle",
    [
        ("task", "Title: x\nPriority: Extreme", "High|Medium|Low"),
        ("task", "Title: x\nDue: 1899-01-01", "Due"),
        ("task", "Title: x\nRepeat: fortnightly", "none|daily|weekly|monthly"),
        ("finance", "Category: Rent\nAmount: -5", "Amount"),
        ("calorie", "Meal: Feast\nCalories: 999999", "Calories"),
        ("habit", "Name: Run\nFrequency: none", "daily|weekly|monthly"),
        ("habit", "Name: Run\nStart Date: 2025-06-01", "Start Date"),
        ("kanban", "Title: x\nStage: Blocked", "To Do|In Progress|Done"),
        ("flashcard", "Front: q\nType: essay\nBack:\na", "basic|cloze|mc"),
    ],
)
def test_out_of_domain_values_are_rejected(frozen_time, kind, text, needle):
    with pytest.raises(ValidationError) as exc:
        codec_for(RecordKind(kind)).parse(text)
    assert needle in exc.value.message


@pytest.mark.unit
def test_too_long_title_is_rejected():
    with pytest.raises(ValidationError) as exc:
        TaskCodec().parse("Title: " + "x" * 201)
    assert exc.value.message == "Title is too long: 201 characters (max 200)"


@pytest.mark.unit
@pytest.mark.parametrize(
    "kind, text, field",
    [
        ("task", "Priority: High\nDescription:\nno title", "Title"),
        ("finance", "Category: Rent", "Amount"),
        ("calorie", "Calories: 200", "Meal"),
        ("flashcard", "Front: q\nBack:\n   ", "Back"),
        ("flashcard", "Front: q", "Back"),
    ],
)
def test_missing_required_field(kind, text, field):
    with pytest.raises(ParseStructureError) as exc:
        codec_for(RecordKind(kind)).parse(text)
    assert exc.value.message == f"Missing required field: {field}"


@pytest.mark.unit
def test_unlabeled_first_line_is_the_title():
    task = TaskCodec().parse("Buy milk\nPriority: Low")
    assert task.title == "Buy milk"
    assert task.priority == TaskPriority.LOW


@pytest.mark.unit
def test_first_occurrence_of_a_label_wins():
    task = TaskCodec().parse("Title: first\nPriority: Low\nTitle: second\nPriority: High")
    assert task.title == "first"
    assert task.priority == TaskPriority.LOW


@pytest.mark.unit
def test_labels_are_case_insensitive_and_status_has_aliases():
    task = TaskCodec().parse("title: Shop\nSTATUS: done\npriority: high")
    assert task.title == "Shop"
    assert task.completed is True
    assert task.priority == TaskPriority.HIGH


@pytest.mark.unit
def test_body_text_after_label_and_following_lines():
    task = TaskCodec().parse("Title: x\nDescription: first\nsecond\n\nTitle: not a label")
    assert task.description == "first\nsecond\n\nTitle: not a label"


@pytest.mark.unit
def test_existing_record_inherits_missing_values(frozen_time):
    codec = TaskCodec()
    task = codec.parse(PAY_RENT)
    edited = codec.parse("Priority: Low", existing=task)
    assert edited.title == "Pay rent"
    assert edited.priority == TaskPriority.LOW
    assert edited.due_date == date(2025, 1, 5)
    assert edited.description == "Monthly"
    # the stored record is untouched
    assert task.priority == TaskPriority.HIGH


@pytest.mark.unit
def test_clear_sentinels_reset_optional_fields(frozen_time):
    codec = TaskCodec()
    task = codec.parse(PAY_RENT + "\n", existing=None)
    task = codec.parse("Reminder: 2025-01-03 08:15", existing=task)
    assert (task.reminder_date, task.reminder_time) == (date(2025, 1, 3), time(8, 15))
    cleared = codec.parse("Due: Not set\nReminder: None", existing=task)
    assert cleared.due_date is None
    assert cleared.reminder_date is None and cleared.reminder_time is None


@pytest.mark.unit
def test_past_reminder_survives_reedit(freeze_at):
    codec = TaskCodec()
    with freeze_at("2025-01-01 12:00:00"):
        task = codec.parse("Title: x\nReminder: 2025-01-03 08:15")
    with freeze_at("2025-02-01 12:00:00"):
        text = codec.format(task)
        assert codec.parse(text, existing=task).reminder_date == date(2025, 1, 3)
        with pytest.raises(ValidationError):
            codec.parse(text)


@pytest.mark.unit
def test_task_range_repeat_round_trips(frozen_time):
    codec = TaskCodec()
    task = codec.parse("Title: x\nRepeat: range 2025-01-01 to 2025-02-01 at 07:30")
    assert "Repeat: range 2025-01-01 to 2025-02-01 at 07:30\n" in codec.format(task)
    assert codec.parse(codec.format(task)) == task


@pytest.mark.unit
def test_editing_keeps_fields_the_text_does_not_show(frozen_time, sample_text):
    codec = FlashcardCodec()
    card = codec.parse(sample_text["flashcard"])
    card.review(5)
    edited = codec.parse(codec.format(card).replace("hello", "hi"), existing=card)
    assert edited.back == "hi"
    assert edited.repetitions == 1
    assert edited.next_review == card.next_review


@pytest.mark.unit
def test_habit_codec(frozen_time, sample_text):
    habit = codec_for(RecordKind.HABIT).parse(sample_text["habit"])
    assert habit.name == "Drink water"
    assert habit.frequency.kind == RecurrenceKind.DAILY
    assert habit.status == HabitStatus.ACTIVE
    assert habit.start_date == date(2024, 12, 1)
    assert habit.notes == "Eight glasses"

    paused = codec_for(RecordKind.HABIT).parse("Status: paused", existing=habit)
    assert paused.status == HabitStatus.PAUSED


@pytest.mark.unit
def test_finance_amount_rounds_to_cents(frozen_time):
    codec = codec_for(RecordKind.FINANCE)
    entry = codec.parse("Category: Coffee\nAmount: 19.999")
    assert entry.amount == 20.0
    assert entry.date == date(2025, 1, 1)
    assert "Amount: 20.00\n" in codec.format(entry)


@pytest.mark.unit
def test_kanban_stage_aliases():
    card = codec_for(RecordKind.KANBAN).parse("Title: Ship\nStage: doing")
    assert card.stage == KanbanStage.DOING


@pytest.mark.unit
def test_flashcard_codec(sample_text):
    codec = FlashcardCodec()
    card = codec.parse(sample_text["flashcard"])
    assert card.front == "hola"
    assert card.back == "hello"
    assert card.card_type == CardType.BASIC
    assert card.collection == "Spanish"
    assert card.tags == ["greetings", "basics"]

    cleared = codec.parse("Collection: None\nTags: None", existing=card)
    assert cleared.collection is None
    assert cleared.tags == []
    assert cleared.back == "hello"

    mc = codec.parse("Front: 2+2\nType: Multiple Choice\nBack:\n4")
    assert mc.card_type == CardType.MULTIPLE_CHOICE


@pytest.mark.unit
def test_parse_tags_rejects_long_tag():
    assert FlashcardCodec.parse_tags(" a, ,b ") == ["a", "b"]
    with pytest.raises(ValidationError, match="Tag is too long"):
        FlashcardCodec.parse_tags("x" * 51)


@pytest.mark.unit
@pytest.mark.parametrize(
    "kind, text, attr, expected",
    [
        ("task", "Title: Compare phones (options: iPhone or Pixel)", "title",
         "Compare phones (options: iPhone or Pixel)"),
        ("task", "Buy paint (e.g. blue)\nPriority: Low", "title", "Buy paint (e.g. blue)"),
        ("habit", "Name: Stretch (options: yoga)", "name", "Stretch (options: yoga)"),
        ("finance", "Category: Gifts (e.g. birthdays)\nAmount: 10", "category",
         "Gifts (e.g. birthdays)"),
        ("flashcard", "Front: casa (e.g. house)\nBack:\nhome", "front", "casa (e.g. house)"),
    ],
)
def test_free_text_keeps_hint_like_suffix(frozen_time, kind, text, attr, expected):
    codec = codec_for(RecordKind(kind))
    record = codec.parse(text)
    assert getattr(record, attr) == expected
    assert codec.parse(codec.format(record)) == record


@pytest.mark.unit
def test_only_the_template_hint_is_stripped(frozen_time):
    codec = TaskCodec()
    task = codec.parse("Title: x\nPriority: High (options: High|Medium|Low)")
    assert task.priority == TaskPriority.HIGH
    with pytest.raises(ValidationError, match="Invalid Priority"):
        codec.parse("Title: x\nPriority: High (options: whatever)")

    reminded = codec.parse("Title: x\nReminder: call (options: later)")
    assert reminded.reminder_text == "call (options: later)"


@pytest.mark.unit
def test_habit_template_start_date_is_never_in_the_future(frozen_time):
    codec = codec_for(RecordKind.HABIT)
    text = codec.template(date(2025, 3, 1)).replace("Name: \n", "Name: Read\n")
    assert "Start Date: 2025-01-01\n" in text
    assert codec.parse(text).start_date == date(2025, 1, 1)
    assert "Start Date: 2024-12-30\n" in codec.template(date(2024, 12, 30))
