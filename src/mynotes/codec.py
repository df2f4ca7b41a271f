"""
Text codecs: one per record kind.

A record is edited as a block of ``Label: value`` lines followed by a body
label and free text::

    Title: Pay rent
    Status: Pending
    Priority: High
    Due: 2025-01-05

    Description:
    Monthly

``format`` renders a record in this shape and ``parse`` turns edited text
back into a validated record. Codecs are pure: they never look at or change
a collection.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from . import validate as v
from .errors import ParseStructureError
from .records import (
    CARD_TYPE_ALIASES,
    CalorieEntry,
    FinanceEntry,
    Flashcard,
    Habit,
    HabitStatus,
    KanbanCard,
    KanbanStage,
    Recurrence,
    RecordKind,
    Task,
    TaskPriority,
)
from .shared import EPOCH, fmt_date, split_text, today

STATUS_ALIASES = {
    "pending": False,
    "todo": False,
    "open": False,
    "completed": True,
    "complete": True,
    "done": True,
}
PRIORITY_ALIASES = {
    "high": TaskPriority.HIGH,
    "medium": TaskPriority.MEDIUM,
    "low": TaskPriority.LOW,
}
HABIT_STATUS_ALIASES = {
    "active": HabitStatus.ACTIVE,
    "paused": HabitStatus.PAUSED,
}
STAGE_ALIASES = {
    "to do": KanbanStage.TODO,
    "todo": KanbanStage.TODO,
    "in progress": KanbanStage.DOING,
    "doing": KanbanStage.DOING,
    "done": KanbanStage.DONE,
}

REPEAT_OPTIONS = f"none|daily|weekly|monthly|{v.RANGE_HELP}"
FREQUENCY_OPTIONS = f"daily|weekly|monthly|{v.RANGE_HELP}"


class Scan:
    """Result of splitting editor text into header values and a body."""

    def __init__(
        self,
        values: dict[str, str],
        fallback: Optional[str],
        body,
        hints: Optional[dict[str, str]] = None,
    ):
        self.values = values
        self.hints = hints or {}
        self.fallback = fallback
        # None when the body label never appeared
        self.body: Optional[str] = body

    def get(self, label: str) -> str:
        key = label.lower()
        return v.strip_hint(self.values.get(key, ""), self.hints.get(key, ""))


class RecordCodec:
    kind: RecordKind
    labels: tuple[str, ...] = ()
    body_label: str = "Notes"
    # header field that an unlabeled first line fills in
    fallback_label: Optional[str] = None
    # template hint per typed field; only this exact text is stripped
    hints: dict[str, str] = {}

    # ─── text → fields ──────────────────────────────────

    def scan(self, text: str) -> Scan:
        keys = {label.lower() for label in self.labels}
        body_key = self.body_label.lower()
        values: dict[str, str] = {}
        fallback = None
        body_lines = None
        seen_label = False

        for line in split_text(text):
            if body_lines is not None:
                body_lines.append(line)
                continue
            stripped = line.strip()
            if not stripped:
                continue
            head, sep, rest = stripped.partition(":")
            key = head.strip().lower()
            if sep and key == body_key:
                body_lines = []
                if rest.strip():
                    body_lines.append(rest.lstrip())
                continue
            if sep and key in keys:
                seen_label = True
                # first occurrence wins
                values.setdefault(key, rest.strip())
                continue
            if not seen_label and fallback is None:
                fallback = stripped

        body = None
        if body_lines is not None:
            body = "\n".join(body_lines)
            if body.endswith("\n"):
                body = body[:-1]
        hints = {label.lower(): hint for label, hint in self.hints.items()}
        return Scan(values, fallback, body, hints)

    # ─── helpers shared by the concrete codecs ──────────

    def _title(self, scan: Scan) -> str:
        value = scan.get(self.fallback_label) if self.fallback_label else ""
        if not value and scan.fallback:
            value = scan.fallback
        return value

    @staticmethod
    def _missing(label: str) -> ParseStructureError:
        return ParseStructureError(f"Missing required field: {label}", label)

    def _required(
        self, label: str, raw: str, existing_value, check: Callable[[str], object]
    ):
        if raw:
            return check(raw)
        if existing_value is not None:
            return existing_value
        raise self._missing(label)

    @staticmethod
    def _optional(raw: str, existing_value, default, check: Callable[[str], object]):
        """Empty keeps ``existing_value`` (or ``default`` for a new record)."""
        if raw:
            return check(raw)
        return existing_value if existing_value is not None else default

    @staticmethod
    def _clearable(raw: str, existing, existing_value, check: Callable[[str], object]):
        """Like ``_optional`` but ``None``/``Not set`` clears the field."""
        if v.is_clear(raw):
            return None
        if raw:
            return check(raw)
        return existing_value if existing is not None else None

    def _body(self, scan: Scan, existing_value: Optional[str], max_len: int) -> str:
        if scan.body is None:
            return existing_value if existing_value is not None else ""
        return v.bounded_string(self.body_label, scan.body, max_len)

    def _render(self, pairs: list[tuple[str, str]], body: str, gap: bool = False):
        lines = [f"{label}: {value}" for label, value in pairs]
        if gap:
            lines.append("")
        lines.append(f"{self.body_label}:")
        return "\n".join(lines) + "\n" + body + "\n"

    # ─── interface ──────────────────────────────────────

    def template(self, day: Optional[date] = None) -> str:
        raise NotImplementedError

    def format(self, record) -> str:
        raise NotImplementedError

    def parse(self, text: str, existing=None):
        raise NotImplementedError


class TaskCodec(RecordCodec):
    kind = RecordKind.TASK
    labels = ("Title", "Status", "Priority", "Created", "Due", "Reminder", "Repeat")
    body_label = "Description"
    fallback_label = "Title"
    hints = {
        "Status": "(options: Pending|Completed)",
        "Priority": "(options: High|Medium|Low)",
        "Reminder": "(e.g. 2025-12-25 09:30)",
        "Repeat": f"(options: {REPEAT_OPTIONS})",
    }

    def template(self, day: Optional[date] = None) -> str:
        return (
            "Title: \n"
            f"Status: Pending {self.hints['Status']}\n"
            f"Priority: Medium {self.hints['Priority']}\n"
            f"Created: {fmt_date(day or today())}\n"
            "Due: Not set\n"
            f"Reminder: None {self.hints['Reminder']}\n"
            f"Repeat: none {self.hints['Repeat']}\n"
            "\n"
            "Description:\n"
        )

    def format(self, task: Task) -> str:
        if task.reminder_date is not None:
            reminder = fmt_date(task.reminder_date)
            if task.reminder_time is not None:
                reminder += f" {task.reminder_time.strftime('%H:%M')}"
        else:
            reminder = task.reminder_text or "None"
        pairs = [
            ("Title", task.title),
            ("Status", "Completed" if task.completed else "Pending"),
            ("Priority", task.priority.value),
            ("Created", fmt_date(task.created_at)),
            ("Due", fmt_date(task.due_date)),
            ("Reminder", reminder),
            ("Repeat", task.recurrence.label()),
        ]
        return self._render(pairs, task.description, gap=True)

    def parse(self, text: str, existing: Optional[Task] = None) -> Task:
        scan = self.scan(text)
        old = existing

        title = self._required(
            "Title",
            self._title(scan),
            old.title if old else None,
            lambda s: v.bounded_string("Title", s, v.TITLE_MAX),
        )
        completed = self._optional(
            scan.get("Status"),
            old.completed if old else None,
            False,
            lambda s: v.enum_token("Status", s, STATUS_ALIASES, "Pending|Completed"),
        )
        priority = self._optional(
            scan.get("Priority"),
            old.priority if old else None,
            TaskPriority.MEDIUM,
            lambda s: v.enum_token("Priority", s, PRIORITY_ALIASES, "High|Medium|Low"),
        )
        created_at = self._optional(
            scan.get("Created"),
            old.created_at if old else None,
            today(),
            lambda s: v.date_value("Created", s),
        )
        due_date = self._clearable(
            scan.get("Due"),
            old,
            old.due_date if old else None,
            lambda s: v.date_value("Due", s),
        )

        raw = scan.get("Reminder")
        if v.is_clear(raw):
            reminder = (None, None, None)
        elif raw:
            reminder = v.reminder(raw, unchanged=old.reminder_date if old else None)
        elif old is not None:
            reminder = (old.reminder_text, old.reminder_date, old.reminder_time)
        else:
            reminder = (None, None, None)

        recurrence = self._optional(
            scan.get("Repeat"),
            old.recurrence if old else None,
            Recurrence(),
            lambda s: v.recurrence("Repeat", s),
        )
        description = self._body(scan, old.description if old else None, v.BODY_MAX)

        base = old.model_copy(deep=True) if old else Task(title=title)
        return base.model_copy(
            update=dict(
                title=title,
                completed=completed,
                priority=priority,
                created_at=created_at,
                due_date=due_date,
                reminder_text=reminder[0],
                reminder_date=reminder[1],
                reminder_time=reminder[2],
                recurrence=recurrence,
                description=description,
            )
        )


class HabitCodec(RecordCodec):
    kind = RecordKind.HABIT
    labels = ("Name", "Frequency", "Status", "Start Date")
    body_label = "Notes"
    fallback_label = "Name"
    hints = {
        "Frequency": f"(options: {FREQUENCY_OPTIONS})",
        "Status": "(options: Active|Paused)",
    }

    def template(self, day: Optional[date] = None) -> str:
        return (
            "Name: \n"
            f"Frequency: daily {self.hints['Frequency']}\n"
            f"Status: Active {self.hints['Status']}\n"
            f"Start Date: {fmt_date(min(day or today(), today()))}\n"
            "Notes:\n"
        )

    def format(self, habit: Habit) -> str:
        pairs = [
            ("Name", habit.name),
            ("Frequency", habit.frequency.label()),
            ("Status", habit.status.value),
            ("Start Date", fmt_date(habit.start_date)),
        ]
        return self._render(pairs, habit.notes)

    def parse(self, text: str, existing: Optional[Habit] = None) -> Habit:
        scan = self.scan(text)
        old = existing

        name = self._required(
            "Name",
            self._title(scan),
            old.name if old else None,
            lambda s: v.bounded_string("Name", s, v.NAME_MAX),
        )
        frequency = self._optional(
            scan.get("Frequency"),
            old.frequency if old else None,
            Recurrence.daily(),
            lambda s: v.recurrence("Frequency", s, allow_none=False),
        )
        status = self._optional(
            scan.get("Status"),
            old.status if old else None,
            HabitStatus.ACTIVE,
            lambda s: v.enum_token("Status", s, HABIT_STATUS_ALIASES, "Active|Paused"),
        )
        start_date = self._optional(
            scan.get("Start Date"),
            old.start_date if old else None,
            today(),
            lambda s: v.date_value("Start Date", s, earliest=EPOCH, latest=today()),
        )
        notes = self._body(scan, old.notes if old else None, v.BODY_MAX)

        base = old.model_copy(deep=True) if old else Habit(name=name)
        return base.model_copy(
            update=dict(
                name=name,
                frequency=frequency,
                status=status,
                start_date=start_date,
                notes=notes,
            )
        )


class FinanceCodec(RecordCodec):
    kind = RecordKind.FINANCE
    labels = ("Category", "Amount", "Date")
    body_label = "Notes"
    fallback_label = "Category"

    def template(self, day: Optional[date] = None) -> str:
        return f"Category: \nAmount: \nDate: {fmt_date(day or today())}\nNotes:\n"

    def format(self, entry: FinanceEntry) -> str:
        pairs = [
            ("Category", entry.category),
            ("Amount", f"{entry.amount:.2f}"),
            ("Date", fmt_date(entry.date)),
        ]
        return self._render(pairs, entry.note)

    def parse(self, text: str, existing: Optional[FinanceEntry] = None) -> FinanceEntry:
        scan = self.scan(text)
        old = existing

        category = self._required(
            "Category",
            self._title(scan),
            old.category if old else None,
            lambda s: v.bounded_string("Category", s, v.CATEGORY_MAX),
        )
        amount = self._required(
            "Amount",
            scan.get("Amount"),
            old.amount if old else None,
            lambda s: v.amount("Amount", s),
        )
        day = self._optional(
            scan.get("Date"),
            old.date if old else None,
            today(),
            lambda s: v.date_value("Date", s),
        )
        note = self._body(scan, old.note if old else None, v.BODY_MAX)
        return FinanceEntry(date=day, category=category, note=note, amount=amount)


class CalorieCodec(RecordCodec):
    kind = RecordKind.CALORIE
    labels = ("Meal", "Calories", "Date")
    body_label = "Notes"
    fallback_label = "Meal"

    def template(self, day: Optional[date] = None) -> str:
        return f"Meal: \nCalories: \nDate: {fmt_date(day or today())}\nNotes:\n"

    def format(self, entry: CalorieEntry) -> str:
        pairs = [
            ("Meal", entry.meal),
            ("Calories", str(entry.calories)),
            ("Date", fmt_date(entry.date)),
        ]
        return self._render(pairs, entry.note)

    def parse(self, text: str, existing: Optional[CalorieEntry] = None) -> CalorieEntry:
        scan = self.scan(text)
        old = existing

        meal = self._required(
            "Meal",
            self._title(scan),
            old.meal if old else None,
            lambda s: v.bounded_string("Meal", s, v.MEAL_MAX),
        )
        calories = self._required(
            "Calories",
            scan.get("Calories"),
            old.calories if old else None,
            lambda s: v.count("Calories", s, v.CALORIES_MAX),
        )
        day = self._optional(
            scan.get("Date"),
            old.date if old else None,
            today(),
            lambda s: v.date_value("Date", s),
        )
        note = self._body(scan, old.note if old else None, v.BODY_MAX)
        return CalorieEntry(date=day, meal=meal, note=note, calories=calories)


class KanbanCodec(RecordCodec):
    kind = RecordKind.KANBAN
    labels = ("Title", "Stage")
    body_label = "Note"
    fallback_label = "Title"
    hints = {"Stage": "(options: To Do|In Progress|Done)"}

    def template(self, day: Optional[date] = None) -> str:
        return f"Title: \nStage: To Do {self.hints['Stage']}\nNote:\n"

    def format(self, card: KanbanCard) -> str:
        pairs = [("Title", card.title), ("Stage", card.stage.value)]
        return self._render(pairs, card.note)

    def parse(self, text: str, existing: Optional[KanbanCard] = None) -> KanbanCard:
        scan = self.scan(text)
        old = existing

        title = self._required(
            "Title",
            self._title(scan),
            old.title if old else None,
            lambda s: v.bounded_string("Title", s, v.TITLE_MAX),
        )
        stage = self._optional(
            scan.get("Stage"),
            old.stage if old else None,
            KanbanStage.TODO,
            lambda s: v.enum_token("Stage", s, STAGE_ALIASES, "To Do|In Progress|Done"),
        )
        note = self._body(scan, old.note if old else None, v.BODY_MAX)

        base = old.model_copy(deep=True) if old else KanbanCard(title=title)
        return base.model_copy(update=dict(title=title, stage=stage, note=note))


class FlashcardCodec(RecordCodec):
    kind = RecordKind.FLASHCARD
    labels = ("Front", "Type", "Collection", "Tags")
    body_label = "Back"
    fallback_label = "Front"
    hints = {
        "Type": "(options: basic|cloze|mc)",
        "Tags": "(e.g. spanish, verbs)",
    }

    def template(self, day: Optional[date] = None) -> str:
        return (
            "Front: \n"
            f"Type: basic {self.hints['Type']}\n"
            "Collection: None\n"
            f"Tags: None {self.hints['Tags']}\n"
            "Back:\n"
        )

    def format(self, card: Flashcard) -> str:
        pairs = [
            ("Front", card.front),
            ("Type", card.card_type.value),
            ("Collection", card.collection or "None"),
            ("Tags", ", ".join(card.tags) or "None"),
        ]
        return self._render(pairs, card.back)

    @staticmethod
    def parse_tags(raw: str) -> list[str]:
        tags = [t.strip() for t in raw.split(",") if t.strip()]
        return [v.bounded_string("Tag", t, v.TAG_MAX) for t in tags]

    def parse(self, text: str, existing: Optional[Flashcard] = None) -> Flashcard:
        scan = self.scan(text)
        old = existing

        front = self._required(
            "Front",
            self._title(scan),
            old.front if old else None,
            lambda s: v.bounded_string("Front", s, v.CARD_SIDE_MAX),
        )
        card_type = self._optional(
            scan.get("Type"),
            old.card_type if old else None,
            CARD_TYPE_ALIASES["basic"],
            lambda s: v.enum_token("Type", s, CARD_TYPE_ALIASES, "basic|cloze|mc"),
        )
        collection = self._clearable(
            scan.get("Collection"),
            old,
            old.collection if old else None,
            lambda s: v.bounded_string("Collection", s, v.COLLECTION_MAX),
        )
        tags = self._clearable(
            scan.get("Tags"),
            old,
            list(old.tags) if old else None,
            self.parse_tags,
        )

        if scan.body is None and old is not None:
            back = old.back
        else:
            back = scan.body or ""
            if not back.strip():
                raise self._missing("Back")
            back = v.bounded_string("Back", back, v.CARD_SIDE_MAX)

        base = old.model_copy(deep=True) if old else Flashcard(front=front, back=back)
        return base.model_copy(
            update=dict(
                front=front,
                back=back,
                card_type=card_type,
                collection=collection,
                tags=tags or [],
            )
        )


CODECS: dict[RecordKind, RecordCodec] = {
    codec.kind: codec
    for codec in (
        TaskCodec(),
        HabitCodec(),
        FinanceCodec(),
        CalorieCodec(),
        KanbanCodec(),
        FlashcardCodec(),
    )
}


def codec_for(kind: RecordKind) -> RecordCodec:
    return CODECS[kind]
