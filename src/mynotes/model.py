from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field

from .records import (
    CalorieEntry,
    FinanceEntry,
    Flashcard,
    Habit,
    JournalEntry,
    KanbanCard,
    Notebook,
    Page,
    Record,
    RecordKind,
    Section,
    Task,
    ViewMode,
)
from .shared import today

# kind -> (collection attribute, current index attribute, record class)
KIND_COLLECTIONS = {
    RecordKind.TASK: ("tasks", "current_task_idx", Task),
    RecordKind.HABIT: ("habits", "current_habit_idx", Habit),
    RecordKind.FINANCE: ("finances", "current_finance_idx", FinanceEntry),
    RecordKind.CALORIE: ("calories", "current_calorie_idx", CalorieEntry),
    RecordKind.KANBAN: ("kanban_cards", "current_kanban_card_idx", KanbanCard),
    RecordKind.FLASHCARD: ("cards", "current_card_idx", Flashcard),
}

WELCOME_TEXT = """\
Welcome to mynotes

Every record is edited as plain text: one "Label: value" line per field,
followed by a free-text body. Hints in parentheses list accepted values.

ctrl+s saves the edit, escape cancels, ctrl+z / ctrl+y undo and redo.
"""


class HierarchyLevel(str, Enum):
    NOTEBOOK = "notebook"
    SECTION = "section"
    PAGE = "page"


def delete_and_adjust_index(items: list, current: int) -> int:
    """
    Remove ``items[current]`` and return the index that should be current
    afterwards. Out-of-range indices remove nothing.
    """
    if 0 <= current < len(items):
        items.pop(current)
        if current >= len(items) and current > 0:
            current -= 1
    return current


class ApplicationSnapshot(Record):
    """
    Every collection plus the navigation state. This is both the live,
    in-memory state mutated by the controller and the model written to disk.
    """

    notebooks: list[Notebook] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    habits: list[Habit] = Field(default_factory=list)
    finances: list[FinanceEntry] = Field(default_factory=list)
    calories: list[CalorieEntry] = Field(default_factory=list)
    kanban_cards: list[KanbanCard] = Field(default_factory=list)
    cards: list[Flashcard] = Field(default_factory=list)
    journal_entries: list[JournalEntry] = Field(default_factory=list)

    current_notebook_idx: int = 0
    current_section_idx: int = 0
    current_page_idx: int = 0
    current_task_idx: int = 0
    current_habit_idx: int = 0
    current_finance_idx: int = 0
    current_calorie_idx: int = 0
    current_kanban_card_idx: int = 0
    current_card_idx: int = 0
    current_journal_date: date = Field(default_factory=today)
    view_mode: ViewMode = ViewMode.NOTES

    @classmethod
    def default(cls) -> "ApplicationSnapshot":
        notebook = Notebook(title="My Notes")
        section = Section(title="Getting Started")
        page = Page(title="Welcome", content=WELCOME_TEXT)
        page.extract_links_and_images()
        section.pages.append(page)
        notebook.sections.append(section)
        return cls(notebooks=[notebook])

    # ─── typed collections ──────────────────────────────

    def collection(self, kind: RecordKind) -> list:
        return getattr(self, KIND_COLLECTIONS[kind][0])

    def current_index(self, kind: RecordKind) -> int:
        return getattr(self, KIND_COLLECTIONS[kind][1])

    def set_current_index(self, kind: RecordKind, idx: int) -> None:
        setattr(self, KIND_COLLECTIONS[kind][1], idx)

    def current_record(self, kind: RecordKind):
        items = self.collection(kind)
        idx = self.current_index(kind)
        if 0 <= idx < len(items):
            return items[idx]
        return None

    def delete_record(self, kind: RecordKind, idx: Optional[int] = None) -> bool:
        """Delete the record at ``idx`` (default: the current one)."""
        items = self.collection(kind)
        if idx is None:
            idx = self.current_index(kind)
        if not 0 <= idx < len(items):
            return False
        current = self.current_index(kind)
        items.pop(idx)
        if idx < current:
            current -= 1
        if current >= len(items):
            current = max(len(items) - 1, 0)
        self.set_current_index(kind, current)
        return True

    # ─── notes hierarchy ────────────────────────────────

    def current_notebook(self) -> Optional[Notebook]:
        if 0 <= self.current_notebook_idx < len(self.notebooks):
            return self.notebooks[self.current_notebook_idx]
        return None

    def current_section(self) -> Optional[Section]:
        notebook = self.current_notebook()
        if notebook and 0 <= self.current_section_idx < len(notebook.sections):
            return notebook.sections[self.current_section_idx]
        return None

    def current_page(self) -> Optional[Page]:
        section = self.current_section()
        if section and 0 <= self.current_page_idx < len(section.pages):
            return section.pages[self.current_page_idx]
        return None

    def hierarchy_item(self, level: HierarchyLevel):
        if level == HierarchyLevel.NOTEBOOK:
            return self.current_notebook()
        if level == HierarchyLevel.SECTION:
            return self.current_section()
        return self.current_page()

    def add_notebook(self, title: str) -> Notebook:
        notebook = Notebook(title=title)
        self.notebooks.append(notebook)
        self.current_notebook_idx = len(self.notebooks) - 1
        self.current_section_idx = 0
        self.current_page_idx = 0
        return notebook

    def add_section(self, title: str) -> Optional[Section]:
        notebook = self.current_notebook()
        if notebook is None:
            return None
        section = Section(title=title)
        notebook.sections.append(section)
        self.current_section_idx = len(notebook.sections) - 1
        self.current_page_idx = 0
        return section

    def add_page(self, title: str) -> Optional[Page]:
        section = self.current_section()
        if section is None:
            return None
        page = Page(title=title)
        section.pages.append(page)
        self.current_page_idx = len(section.pages) - 1
        return page

    def delete_current(self, level: HierarchyLevel) -> bool:
        if level == HierarchyLevel.NOTEBOOK:
            if not self.current_notebook():
                return False
            self.current_notebook_idx = delete_and_adjust_index(
                self.notebooks, self.current_notebook_idx
            )
            self.current_section_idx = 0
            self.current_page_idx = 0
            return True
        if level == HierarchyLevel.SECTION:
            notebook = self.current_notebook()
            if not self.current_section():
                return False
            self.current_section_idx = delete_and_adjust_index(
                notebook.sections, self.current_section_idx
            )
            self.current_page_idx = 0
            return True
        section = self.current_section()
        if not self.current_page():
            return False
        self.current_page_idx = delete_and_adjust_index(
            section.pages, self.current_page_idx
        )
        return True

    # ─── journal ────────────────────────────────────────

    def journal_entry(self, day: date) -> Optional[JournalEntry]:
        for entry in self.journal_entries:
            if entry.date == day:
                return entry
        return None

    def journal_entry_or_new(self, day: date) -> JournalEntry:
        entry = self.journal_entry(day)
        if entry is None:
            entry = JournalEntry(date=day)
            self.journal_entries.append(entry)
            self.journal_entries.sort(key=lambda e: e.date)
        return entry
