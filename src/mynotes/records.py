import datetime as dt
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .shared import today

IMAGE_EXTENSIONS = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".bmp",
    ".webp",
    ".tiff",
    ".tif",
    ".svg",
)

URL_REGEX = re.compile(r"https?://\S+", re.IGNORECASE)
# [alt](path) and [alt][path]
MARKDOWN_LINK_REGEX = re.compile(r"\[[^\]]*\][(\[]([^)\]]+)[)\]]")
PATH_REGEX = re.compile(r"""(?:^|\s)["']?((?:~|/)[^"'\s]*(?:\s[^"'\s/]+)*\.\w+)""")


class RecordKind(str, Enum):
    TASK = "task"
    HABIT = "habit"
    FINANCE = "finance"
    CALORIE = "calorie"
    KANBAN = "kanban"
    FLASHCARD = "flashcard"

    @property
    def label(self) -> str:
        return {
            RecordKind.TASK: "Task",
            RecordKind.HABIT: "Habit",
            RecordKind.FINANCE: "Finance",
            RecordKind.CALORIE: "Calories",
            RecordKind.KANBAN: "Kanban",
            RecordKind.FLASHCARD: "Flashcard",
        }[self]


class ViewMode(str, Enum):
    NOTES = "notes"
    PLANNER = "planner"
    JOURNAL = "journal"
    HABITS = "habits"
    FINANCE = "finance"
    CALORIES = "calories"
    KANBAN = "kanban"
    FLASHCARDS = "flashcards"

    @property
    def kind(self) -> Optional[RecordKind]:
        """The record kind listed by this view, if any."""
        return {
            ViewMode.PLANNER: RecordKind.TASK,
            ViewMode.HABITS: RecordKind.HABIT,
            ViewMode.FINANCE: RecordKind.FINANCE,
            ViewMode.CALORIES: RecordKind.CALORIE,
            ViewMode.KANBAN: RecordKind.KANBAN,
            ViewMode.FLASHCARDS: RecordKind.FLASHCARD,
        }.get(self)


class Record(BaseModel):
    # unknown keys from older or newer snapshots are dropped
    model_config = ConfigDict(extra="ignore")


# ─── Recurrence ─────────────────────────────────────────────


class RecurrenceKind(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    RANGE = "range"


class Recurrence(Record):
    kind: RecurrenceKind = RecurrenceKind.NONE
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None
    at: Optional[dt.time] = None

    @classmethod
    def daily(cls) -> "Recurrence":
        return cls(kind=RecurrenceKind.DAILY)

    def label(self) -> str:
        """Text form accepted back by the recurrence validator."""
        if self.kind != RecurrenceKind.RANGE:
            return self.kind.value
        text = f"range {self.start.isoformat()} to {self.end.isoformat()}"
        if self.at is not None:
            text += f" at {self.at.strftime('%H:%M')}"
        return text


# ─── Tasks ──────────────────────────────────────────────────


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Task(Record):
    title: str
    description: str = ""
    completed: bool = False
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[dt.date] = None
    reminder_text: Optional[str] = None
    reminder_date: Optional[dt.date] = None
    reminder_time: Optional[dt.time] = None
    recurrence: Recurrence = Field(default_factory=Recurrence)
    created_at: dt.date = Field(default_factory=today)


# ─── Habits ─────────────────────────────────────────────────


class HabitStatus(str, Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"


class Habit(Record):
    name: str
    frequency: Recurrence = Field(default_factory=Recurrence.daily)
    streak: int = 0
    marks: set[dt.date] = Field(default_factory=set)
    status: HabitStatus = HabitStatus.ACTIVE
    start_date: dt.date = Field(default_factory=today)
    notes: str = ""

    def toggle_mark(self, day: dt.date) -> bool:
        """Mark or unmark ``day``; returns True when the day is now marked."""
        if day in self.marks:
            self.marks.discard(day)
        else:
            self.marks.add(day)
        self.recompute_streak()
        return day in self.marks

    def recompute_streak(self) -> int:
        # consecutive marked days ending at the most recent mark
        if not self.marks:
            self.streak = 0
            return 0
        day = max(self.marks)
        streak = 0
        while day in self.marks:
            streak += 1
            if day == dt.date.min:
                break
            day -= dt.timedelta(days=1)
        self.streak = streak
        return streak


# ─── Finance & calories ─────────────────────────────────────


class FinanceEntry(Record):
    date: dt.date
    category: str
    note: str = ""
    amount: float


class CalorieEntry(Record):
    date: dt.date
    meal: str
    note: str = ""
    calories: int


# ─── Kanban ─────────────────────────────────────────────────


class KanbanStage(str, Enum):
    TODO = "To Do"
    DOING = "In Progress"
    DONE = "Done"

    def move_left(self) -> "KanbanStage":
        if self == KanbanStage.DONE:
            return KanbanStage.DOING
        return KanbanStage.TODO

    def move_right(self) -> "KanbanStage":
        if self == KanbanStage.TODO:
            return KanbanStage.DOING
        return KanbanStage.DONE


class KanbanCard(Record):
    title: str
    note: str = ""
    stage: KanbanStage = KanbanStage.TODO
    created_at: dt.date = Field(default_factory=today)


# ─── Flashcards ─────────────────────────────────────────────


class CardType(str, Enum):
    BASIC = "basic"
    CLOZE = "cloze"
    MULTIPLE_CHOICE = "mc"


CARD_TYPE_ALIASES = {
    "basic": CardType.BASIC,
    "frontback": CardType.BASIC,
    "front_back": CardType.BASIC,
    "cloze": CardType.CLOZE,
    "mc": CardType.MULTIPLE_CHOICE,
    "multiplechoice": CardType.MULTIPLE_CHOICE,
    "multiple choice": CardType.MULTIPLE_CHOICE,
    "multiple_choice": CardType.MULTIPLE_CHOICE,
}


class CardFilter(str, Enum):
    ALL = "All"
    NEW = "New"
    DUE = "Due"
    BLACKOUT = "Blackout"
    HARD = "Hard"
    MEDIUM = "Medium"
    EASY = "Easy"
    PERFECT = "Perfect"
    MASTERED = "Mastered"
    COLLECTION = "Collection"


# ease factor ranges, lower bound inclusive
EASE_BUCKETS = {
    CardFilter.BLACKOUT: (0.0, 1.3),
    CardFilter.HARD: (1.3, 1.8),
    CardFilter.MEDIUM: (1.8, 2.3),
    CardFilter.EASY: (2.3, 2.8),
    CardFilter.PERFECT: (2.8, float("inf")),
}


class Flashcard(Record):
    front: str
    back: str
    card_type: CardType = CardType.BASIC
    created_at: dt.date = Field(default_factory=today)
    last_reviewed: Optional[dt.date] = None
    next_review: dt.date = Field(default_factory=today)
    ease_factor: float = 2.5
    interval: int = 0
    repetitions: int = 0
    tags: list[str] = Field(default_factory=list)
    collection: Optional[str] = None

    @field_validator("card_type", mode="before")
    @classmethod
    def _normalize_card_type(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            if key in CARD_TYPE_ALIASES:
                return CARD_TYPE_ALIASES[key]
        return value

    def review(self, quality: int, on: Optional[dt.date] = None) -> None:
        """
        Apply one SM-2 review.

        quality: 0 (total blackout) .. 5 (perfect response); values above 5
        are treated as 5.
        """
        on = on or today()
        q = float(max(0, min(quality, 5)))
        if q < 3.0:
            self.repetitions = 0
            self.interval = 1
        else:
            if self.repetitions == 0:
                self.interval = 1
            elif self.repetitions == 1:
                self.interval = 6
            else:
                self.interval = round(self.interval * self.ease_factor)
            self.repetitions += 1

        self.ease_factor = max(
            1.3, self.ease_factor + (0.1 - (5.0 - q) * (0.08 + (5.0 - q) * 0.02))
        )
        self.last_reviewed = on
        self.next_review = on + dt.timedelta(days=self.interval)

    def is_due(self, on: Optional[dt.date] = None) -> bool:
        return self.next_review <= (on or today())

    def matches(
        self,
        card_filter: CardFilter,
        collection: Optional[str] = None,
        on: Optional[dt.date] = None,
    ) -> bool:
        if card_filter == CardFilter.ALL:
            return True
        if card_filter == CardFilter.NEW:
            return self.last_reviewed is None
        if card_filter == CardFilter.DUE:
            return self.is_due(on)
        if card_filter == CardFilter.MASTERED:
            return self.repetitions >= 5 and self.ease_factor >= 2.5
        if card_filter == CardFilter.COLLECTION:
            return collection is not None and self.collection == collection
        low, high = EASE_BUCKETS[card_filter]
        return low <= self.ease_factor < high


# ─── Notes & journal ────────────────────────────────────────


def extract_path(line: str) -> Optional[str]:
    """Return the first local file path mentioned on ``line``, if any."""
    m = MARKDOWN_LINK_REGEX.search(line)
    if m:
        candidate = m.group(1).strip().strip("\"'")
        if candidate.startswith(("~", "/")):
            return candidate
    m = PATH_REGEX.search(line)
    if m:
        return m.group(1).strip()
    return None


class Page(Record):
    title: str
    content: str = ""
    modified_at: dt.date = Field(default_factory=today)
    links: list[str] = Field(default_factory=list)  # URLs
    images: list[str] = Field(default_factory=list)  # image file paths

    def extract_links_and_images(self) -> None:
        self.links = []
        self.images = []
        for line in self.content.splitlines():
            for url in URL_REGEX.findall(line):
                if url not in self.links:
                    self.links.append(url)
            token = extract_path(line)
            if (
                token
                and token.lower().endswith(IMAGE_EXTENSIONS)
                and token not in self.images
            ):
                self.images.append(token)

    def update_title_from_content(self) -> None:
        # first six words of the first line, at most 50 characters
        lines = self.content.splitlines()
        if not lines:
            return
        words = lines[0].split()[:6]
        if not words:
            return
        title = " ".join(words)
        if len(title) > 50:
            title = title[:47] + "..."
        self.title = title


class Section(Record):
    title: str
    pages: list[Page] = Field(default_factory=list)
    created_at: dt.date = Field(default_factory=today)


class Notebook(Record):
    title: str
    sections: list[Section] = Field(default_factory=list)
    created_at: dt.date = Field(default_factory=today)


class JournalEntry(Record):
    date: dt.date
    content: str = ""
    mood: Optional[str] = None
