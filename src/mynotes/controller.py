from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from .codec import codec_for
from .errors import ImportFormatError, PersistenceError, ValidationError
from .model import ApplicationSnapshot, HierarchyLevel
from .mynotes_env import MynotesEnvironment
from .records import (
    CalorieEntry,
    CardFilter,
    FinanceEntry,
    Flashcard,
    Habit,
    KanbanCard,
    RecordKind,
    Task,
    ViewMode,
)
from .session import (
    EditJournal,
    EditPage,
    EditPageLine,
    EditRecord,
    EditSession,
    ImportPath,
    NewRecord,
    RenameField,
)
from .importer import import_cards
from .shared import fmt_date, log_msg, truncate_string
from .storage import PersistenceEngine

ALL_CATEGORIES = "All"


@dataclass(frozen=True)
class FinanceSummary:
    category: str
    year: int
    month: int
    month_total: float
    year_total: float
    # Jan..Dec totals for ``year``
    by_month: list[float]

    def label(self) -> str:
        return (
            f"{self.category}: {self.month:02d}/{self.year} {self.month_total:.2f}"
            f"  year {self.year_total:.2f}"
        )


def summarize(record, width: int = 60) -> str:
    """One line describing ``record`` for list views."""
    if isinstance(record, Task):
        mark = "x" if record.completed else " "
        due = f", due {fmt_date(record.due_date)}" if record.due_date else ""
        return f"[{mark}] {truncate_string(record.title, width)}  ({record.priority.value}{due})"
    if isinstance(record, Habit):
        return (
            f"{truncate_string(record.name, width)}  {record.frequency.label()}  "
            f"streak {record.streak}  {record.status.value}"
        )
    if isinstance(record, FinanceEntry):
        return f"{fmt_date(record.date)}  {truncate_string(record.category, width)}  {record.amount:.2f}"
    if isinstance(record, CalorieEntry):
        return f"{fmt_date(record.date)}  {truncate_string(record.meal, width)}  {record.calories} kcal"
    if isinstance(record, KanbanCard):
        return f"[{record.stage.value}] {truncate_string(record.title, width)}"
    if isinstance(record, Flashcard):
        return f"{truncate_string(record.front, width)}  (next {fmt_date(record.next_review)})"
    return str(record)


class Controller:
    """
    Holds the live snapshot, the edit session and the persistence engine.
    Every successful change is saved; a failed save is logged, kept in
    ``save_error`` and retried with the next change.
    """

    def __init__(self, env: MynotesEnvironment, load: bool = True):
        self.env = env
        config = env.config
        self.engine = PersistenceEngine(env.data_dir, env.max_file_size)
        self.snapshot = ApplicationSnapshot.default()
        self.session = EditSession(
            self.snapshot,
            persist=self.save,
            undo_limit=config.editor.undo_limit,
            tab_width=config.editor.tab_width,
        )
        self.status_message: Optional[str] = None
        self.save_error: Optional[str] = None
        self.save_blocked: Optional[str] = None
        if load:
            self.load()
        try:
            self.snapshot.view_mode = ViewMode(config.ui.start_view)
        except ValueError:
            pass

    # ─── persistence ────────────────────────────────────

    def load(self) -> ApplicationSnapshot:
        try:
            snapshot = self.engine.load()
        except PersistenceError as e:
            log_msg(f"load failed for {self.engine.path_for_year()}: {e}")
            self.status_message = f"Could not load saved data: {e}\nStarting empty."
            try:
                moved = self.engine.move_aside()
            except PersistenceError as move_error:
                # saving now would overwrite the unread file
                log_msg(str(move_error))
                self.save_blocked = f"Saving disabled: {move_error}"
                self.save_error = self.save_blocked
                moved = None
            if moved is not None:
                self.status_message += f"\nThe unreadable file was kept as {moved}."
            snapshot = ApplicationSnapshot.default()
        self.snapshot = snapshot
        self.session.snapshot = snapshot
        return snapshot

    def save(self) -> bool:
        if self.save_blocked:
            self.save_error = self.save_blocked
            return False
        try:
            self.engine.save(self.snapshot)
        except PersistenceError as e:
            log_msg(f"save failed: {e}")
            self.save_error = str(e)
            return False
        self.save_error = None
        return True

    @property
    def data_path(self) -> Path:
        return self.engine.path_for_year()

    # ─── editing ────────────────────────────────────────

    def start_new(self, kind: RecordKind) -> None:
        self.session.start(NewRecord(kind))

    def start_edit(self, kind: RecordKind, index: Optional[int] = None) -> bool:
        if index is None:
            index = self.snapshot.current_index(kind)
        if not 0 <= index < len(self.snapshot.collection(kind)):
            return False
        self.snapshot.set_current_index(kind, index)
        self.session.start(EditRecord(kind, index))
        return True

    def start_rename(self, level: HierarchyLevel) -> bool:
        if self.snapshot.hierarchy_item(level) is None:
            return False
        self.session.start(RenameField(level))
        return True

    def start_page_edit(self) -> bool:
        if self.snapshot.current_page() is None:
            return False
        self.session.start(EditPage())
        return True

    def start_page_line(self, line: int) -> bool:
        page = self.snapshot.current_page()
        if page is None:
            return False
        count = len(page.content.split("\n")) if page.content else 0
        self.session.start(EditPageLine(max(0, min(line, count))))
        return True

    def start_journal(self, day: Optional[date] = None) -> None:
        day = day or self.snapshot.current_journal_date
        self.snapshot.current_journal_date = day
        self.session.start(EditJournal(day))

    def start_import(self) -> None:
        self.session.start(ImportPath())

    def commit(self) -> bool:
        return self.session.commit()

    def cancel(self) -> None:
        self.session.cancel()

    # ─── direct actions ─────────────────────────────────

    def add_from_text(self, kind: RecordKind, text: str):
        """Parse ``text`` as a new record, append it and save."""
        record = codec_for(kind).parse(text)
        items = self.snapshot.collection(kind)
        items.append(record)
        self.snapshot.set_current_index(kind, len(items) - 1)
        self.save()
        return record

    def delete(self, kind: RecordKind, index: Optional[int] = None) -> bool:
        if not self.snapshot.delete_record(kind, index):
            return False
        self.save()
        return True

    def delete_hierarchy(self, level: HierarchyLevel) -> bool:
        if not self.snapshot.delete_current(level):
            return False
        self.save()
        return True

    def add_hierarchy(self, level: HierarchyLevel, title: str = "Untitled") -> bool:
        if level == HierarchyLevel.NOTEBOOK:
            added = self.snapshot.add_notebook(title)
        elif level == HierarchyLevel.SECTION:
            added = self.snapshot.add_section(title)
        else:
            added = self.snapshot.add_page(title)
        if added is None:
            return False
        self.save()
        return True

    def toggle_task(self, index: Optional[int] = None) -> Optional[Task]:
        task = self._pick(RecordKind.TASK, index)
        if task is None:
            return None
        task.completed = not task.completed
        self.save()
        return task

    def toggle_habit_mark(
        self, index: Optional[int] = None, day: Optional[date] = None
    ) -> Optional[Habit]:
        habit = self._pick(RecordKind.HABIT, index)
        if habit is None:
            return None
        habit.toggle_mark(day or self.snapshot.current_journal_date)
        self.save()
        return habit

    def review_card(self, quality: int, index: Optional[int] = None) -> Optional[Flashcard]:
        card = self._pick(RecordKind.FLASHCARD, index)
        if card is None:
            return None
        card.review(quality)
        self.save()
        return card

    def due_cards(self, on: Optional[date] = None) -> list[Flashcard]:
        return [card for card in self.snapshot.cards if card.is_due(on)]

    def move_kanban(self, direction: str, index: Optional[int] = None) -> Optional[KanbanCard]:
        card = self._pick(RecordKind.KANBAN, index)
        if card is None:
            return None
        if direction == "left":
            card.stage = card.stage.move_left()
        elif direction == "right":
            card.stage = card.stage.move_right()
        else:
            raise ValueError(f"direction must be 'left' or 'right', not {direction!r}")
        self.save()
        return card

    # ─── flashcard filters and bulk actions ─────────────

    def collections(self) -> list[str]:
        return sorted({c.collection for c in self.snapshot.cards if c.collection})

    def cards_matching(
        self,
        card_filter: CardFilter = CardFilter.ALL,
        collection: Optional[str] = None,
        on: Optional[date] = None,
    ) -> list[int]:
        """Indices of the cards that pass ``card_filter``."""
        return [
            idx
            for idx, card in enumerate(self.snapshot.cards)
            if card.matches(card_filter, collection, on)
        ]

    def next_filter(
        self, card_filter: CardFilter, collection: Optional[str] = None
    ) -> tuple[CardFilter, Optional[str]]:
        """
        All, New, Due, the ease buckets and Mastered in turn, then each
        collection by name, then back to All.
        """
        names = self.collections()
        if card_filter == CardFilter.COLLECTION:
            if collection in names and names.index(collection) + 1 < len(names):
                return CardFilter.COLLECTION, names[names.index(collection) + 1]
            return CardFilter.ALL, None
        if card_filter == CardFilter.MASTERED:
            if names:
                return CardFilter.COLLECTION, names[0]
            return CardFilter.ALL, None
        order = list(CardFilter)
        return order[order.index(card_filter) + 1], None

    def next_card_in_filter(
        self,
        card_filter: CardFilter,
        collection: Optional[str] = None,
        step: int = 1,
    ) -> int:
        """
        Move the current card to the next (``step=-1``: previous) card that
        passes the filter, wrapping around. Stays put when none does.
        """
        cards = self.snapshot.cards
        current = self.snapshot.current_card_idx
        if not cards:
            return 0
        total = len(cards)
        for n in range(1, total + 1):
            idx = (current + n * step) % total
            if cards[idx].matches(card_filter, collection):
                self.snapshot.current_card_idx = idx
                return idx
        return current

    def delete_cards(self, indices) -> int:
        """Remove the cards at ``indices``; returns how many went."""
        targets = {i for i in indices if 0 <= i < len(self.snapshot.cards)}
        if not targets:
            return 0
        self.snapshot.cards = [
            card for idx, card in enumerate(self.snapshot.cards) if idx not in targets
        ]
        self.snapshot.current_card_idx = max(
            0, min(self.snapshot.current_card_idx, len(self.snapshot.cards) - 1)
        )
        self.save()
        return len(targets)

    def disassociate_cards(self, indices) -> int:
        """Clear the collection of the cards at ``indices``."""
        changed = 0
        for idx in set(indices):
            if 0 <= idx < len(self.snapshot.cards) and self.snapshot.cards[idx].collection:
                self.snapshot.cards[idx].collection = None
                changed += 1
        if changed:
            self.save()
        return changed

    # ─── finance summary ────────────────────────────────

    def finance_categories(self) -> list[str]:
        return [ALL_CATEGORIES] + sorted({e.category for e in self.snapshot.finances})

    def finance_totals(
        self,
        category: str = ALL_CATEGORIES,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> FinanceSummary:
        """
        Spending for ``category`` (``"All"`` for every category) in the given
        month and year, which default to those of the current journal date.
        """
        anchor = self.snapshot.current_journal_date
        year = year or anchor.year
        month = month or anchor.month
        by_month = [0.0] * 12
        for entry in self.snapshot.finances:
            if category != ALL_CATEGORIES and entry.category != category:
                continue
            if entry.date.year == year:
                by_month[entry.date.month - 1] += entry.amount
        by_month = [round(total, 2) for total in by_month]
        return FinanceSummary(
            category=category,
            year=year,
            month=month,
            month_total=by_month[month - 1],
            year_total=round(sum(by_month), 2),
            by_month=by_month,
        )

    def run_import(self, path: Optional[str] = None) -> Optional[int]:
        """
        Import flashcards from ``path`` (default: the path entered in an
        import edit). Returns the number of cards added, or None when the
        import failed; either way ``status_message`` describes the outcome.
        """
        path = path or self.session.pending_import_path
        if not path:
            self.status_message = "No import file given"
            return None
        try:
            cards = import_cards(path)
        except (ImportFormatError, ValidationError) as e:
            log_msg(f"import from {path} failed: {e}")
            self.status_message = f"Import failed: {e}"
            return None
        self.snapshot.cards.extend(cards)
        self.session.pending_import_path = None
        if isinstance(self.session.target, ImportPath):
            self.session.cancel()
        self.status_message = f"Imported {len(cards)} card{'' if len(cards) == 1 else 's'}"
        self.save()
        return len(cards)

    # ─── views ──────────────────────────────────────────

    def set_view(self, mode: ViewMode) -> None:
        self.snapshot.view_mode = mode

    def rows(self, kind: RecordKind) -> list[str]:
        return [summarize(record) for record in self.snapshot.collection(kind)]

    def _pick(self, kind: RecordKind, index: Optional[int]):
        if index is not None:
            if not 0 <= index < len(self.snapshot.collection(kind)):
                return None
            self.snapshot.set_current_index(kind, index)
        return self.snapshot.current_record(kind)
