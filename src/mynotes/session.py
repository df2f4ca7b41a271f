"""
The single edit in progress: which thing is being edited, the buffer
holding its text, and the commit/cancel lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional, Union

from .buffer import DEFAULT_UNDO_LIMIT, TextBuffer
from .codec import codec_for
from .errors import ValidationError
from .model import ApplicationSnapshot, HierarchyLevel
from .records import RecordKind
from . import validate as v
from .shared import log_msg, split_text, today


class SessionState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"


class EditMode(str, Enum):
    FULL = "full"
    INLINE = "inline"


# ─── Edit targets ───────────────────────────────────────────


@dataclass(frozen=True)
class NoTarget:
    pass


@dataclass(frozen=True)
class RenameField:
    level: HierarchyLevel


@dataclass(frozen=True)
class NewRecord:
    kind: RecordKind


@dataclass(frozen=True)
class EditRecord:
    kind: RecordKind
    index: int


@dataclass(frozen=True)
class EditPage:
    pass


@dataclass(frozen=True)
class EditPageLine:
    line: int


@dataclass(frozen=True)
class EditJournal:
    day: date


@dataclass(frozen=True)
class ImportPath:
    pass


EditTarget = Union[
    NoTarget,
    RenameField,
    NewRecord,
    EditRecord,
    EditPage,
    EditPageLine,
    EditJournal,
    ImportPath,
]


def target_label(target: EditTarget) -> str:
    """Prefix used in error messages, e.g. ``Task Error: ...``."""
    if isinstance(target, (NewRecord, EditRecord)):
        return target.kind.label
    if isinstance(target, RenameField):
        return "Rename"
    if isinstance(target, (EditPage, EditPageLine)):
        return "Page"
    if isinstance(target, EditJournal):
        return "Journal"
    if isinstance(target, ImportPath):
        return "Import"
    return "Edit"


class EditSession:
    """
    Owns the TextBuffer and the lifecycle IDLE -> EDITING -> IDLE.

    ``persist`` is called after every successful commit; it is expected to
    deal with its own failures.
    """

    def __init__(
        self,
        snapshot: ApplicationSnapshot,
        persist: Optional[Callable[[], None]] = None,
        undo_limit: int = DEFAULT_UNDO_LIMIT,
        tab_width: int = 4,
    ):
        self.snapshot = snapshot
        self.persist = persist
        self.buffer = TextBuffer(undo_limit=undo_limit, tab_width=tab_width)
        self.state = SessionState.IDLE
        self.mode = EditMode.FULL
        self.target: EditTarget = NoTarget()
        self.error: Optional[str] = None
        self.pending_import_path: Optional[str] = None

    @property
    def editing(self) -> bool:
        return self.state == SessionState.EDITING

    # ─── lifecycle ──────────────────────────────────────

    def start(self, target: EditTarget, initial_text: Optional[str] = None) -> None:
        if isinstance(target, NoTarget):
            self.cancel()
            return
        if initial_text is None:
            initial_text = self.initial_text(target)
        self.target = target
        self.mode = EditMode.INLINE if isinstance(target, EditPageLine) else EditMode.FULL
        self.error = None
        self.buffer.set_content(initial_text)
        self.buffer.clear_history()
        self.buffer.move_to_end()
        self.state = SessionState.EDITING

    def cancel(self) -> None:
        self.buffer.set_content([""])
        self.buffer.clear_history()
        self.target = NoTarget()
        self.mode = EditMode.FULL
        self.error = None
        self.state = SessionState.IDLE

    def dismiss_error(self) -> None:
        self.error = None

    def commit(self) -> bool:
        """
        Parse the buffer into the target. Returns True when the edit was
        applied and the session went back to IDLE; on failure ``error`` holds
        the message and the buffer is left exactly as it was.
        """
        if not self.editing:
            return False
        target = self.target
        text = self.buffer.to_text()

        if isinstance(target, ImportPath):
            # running the import is a separate, explicit step
            self.pending_import_path = text.strip() or None
            self.error = None
            return False

        try:
            if isinstance(target, (NewRecord, EditRecord)):
                self._commit_record(target, text)
            elif isinstance(target, RenameField):
                self._commit_rename(target, text)
            elif isinstance(target, EditPage):
                self._commit_page(text)
            elif isinstance(target, EditPageLine):
                self._commit_page_line(target, text)
            elif isinstance(target, EditJournal):
                self._commit_journal(target, text)
        except ValidationError as e:
            self.error = (
                f"{target_label(target)} Error: {e.message}\n\n"
                "Please correct and try again."
            )
            log_msg(f"commit rejected: {e.message}")
            return False

        self.cancel()
        if self.persist is not None:
            self.persist()
        return True

    # ─── initial text ───────────────────────────────────

    def initial_text(self, target: EditTarget) -> str:
        snap = self.snapshot
        if isinstance(target, NewRecord):
            day = None if target.kind == RecordKind.TASK else snap.current_journal_date
            return codec_for(target.kind).template(day)
        if isinstance(target, EditRecord):
            items = snap.collection(target.kind)
            if 0 <= target.index < len(items):
                return codec_for(target.kind).format(items[target.index])
            return ""
        if isinstance(target, RenameField):
            item = snap.hierarchy_item(target.level)
            return item.title if item else ""
        if isinstance(target, EditPage):
            page = snap.current_page()
            return page.content if page else ""
        if isinstance(target, EditPageLine):
            page = snap.current_page()
            lines = split_text(page.content) if page and page.content else []
            if 0 <= target.line < len(lines):
                return lines[target.line]
            return ""
        if isinstance(target, EditJournal):
            entry = snap.journal_entry(target.day)
            return entry.content if entry else ""
        if isinstance(target, ImportPath):
            return self.pending_import_path or ""
        return ""

    # ─── per-target commits ─────────────────────────────

    def _commit_record(self, target, text: str) -> None:
        codec = codec_for(target.kind)
        items = self.snapshot.collection(target.kind)
        if isinstance(target, NewRecord):
            record = codec.parse(text)
            items.append(record)
            self.snapshot.set_current_index(target.kind, len(items) - 1)
            return
        if not 0 <= target.index < len(items):
            raise ValidationError(f"{target.kind.label} no longer exists")
        items[target.index] = codec.parse(text, items[target.index])

    def _commit_rename(self, target: RenameField, text: str) -> None:
        item = self.snapshot.hierarchy_item(target.level)
        if item is None:
            raise ValidationError(f"No {target.level.value} selected")
        title = " ".join(text.split())
        if not title:
            raise ValidationError("Title cannot be empty", "Title")
        item.title = v.bounded_string("Title", title, v.TITLE_MAX)

    def _current_page(self):
        page = self.snapshot.current_page()
        if page is None:
            raise ValidationError("No page selected")
        return page

    def _store_page(self, page, content: str) -> None:
        page.content = v.bounded_string("Content", content, v.PAGE_MAX)
        page.update_title_from_content()
        page.extract_links_and_images()
        page.modified_at = today()

    def _commit_page(self, text: str) -> None:
        self._store_page(self._current_page(), text)

    def _commit_page_line(self, target: EditPageLine, text: str) -> None:
        page = self._current_page()
        lines = split_text(page.content) if page.content else []
        new_lines = split_text(text)
        if 0 <= target.line < len(lines):
            lines[target.line : target.line + 1] = new_lines
        else:
            lines.extend(new_lines)
        self._store_page(page, "\n".join(lines))

    def _commit_journal(self, target: EditJournal, text: str) -> None:
        content = v.bounded_string("Journal", text, v.JOURNAL_MAX)
        self.snapshot.journal_entry_or_new(target.day).content = content
