from __future__ import annotations

import math
from datetime import timedelta

from rich.markup import escape
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Static

from .model import HierarchyLevel
from .controller import summarize
from .records import CardFilter, ViewMode
from .session import EditMode, ImportPath
from .shared import (
    ACTIVE_COLOR,
    DONE_COLOR,
    ERROR_COLOR,
    FRAME_COLOR,
    HEADER_COLOR,
    LABEL_COLOR,
    fmt_date,
    log_msg,
    split_text,
)

VIEW_ORDER = list(ViewMode)
FOOTER = "#FF8C00"

# keys the editor handles itself instead of passing to the buffer
EDITOR_BINDING_KEYS = {"ctrl+s", "escape", "ctrl+z", "ctrl+y", "ctrl+a"}


def _footer(*pairs: tuple[str, str]) -> str:
    return "  ".join(f"[bold {FOOTER}]{k}[/bold {FOOTER}] {label}" for k, label in pairs)


class EditorScreen(Screen):
    """
    Full screen editor for the session's buffer. All text keys are passed
    to the buffer; ctrl+s commits and escape cancels.
    """

    BINDINGS = [
        ("ctrl+s", "commit", "Save"),
        ("escape", "cancel", "Cancel"),
        ("ctrl+z", "undo", "Undo"),
        ("ctrl+y", "redo", "Redo"),
        ("ctrl+a", "select_all", "Select all"),
    ]

    def __init__(self, controller, title: str = "Edit"):
        super().__init__()
        self.controller = controller
        self._title = title

    @staticmethod
    def compute_editor_entry_height(
        text: str, usable_width: int, available_height: int
    ) -> int:
        """Rows for the editor pane: wrapped text plus a margin, capped at half the screen."""
        width = max(usable_width, 1)
        rows = sum(max(1, math.ceil(len(line) / width)) for line in split_text(text))
        return max(4, min(rows + 2, available_height // 2))

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static(self._title, id="editor_title", classes="title-class"),
            Static("", id="editor_body"),
            Static("", id="editor_message"),
            Static(
                _footer(
                    ("ctrl+s", "Save"),
                    ("esc", "Cancel"),
                    ("ctrl+z/y", "Undo/Redo"),
                    ("ctrl+a", "Select all"),
                    ("ctrl+k", "Delete line"),
                ),
                id="custom_footer",
            ),
            id="editor_layout",
        )

    def on_mount(self) -> None:
        self.refresh_body()

    def render_buffer(self) -> Text:
        buffer = self.controller.session.buffer
        text = Text()
        for row, line in enumerate(buffer.lines):
            if row:
                text.append("\n")
            if buffer.select_all_active:
                text.append(line or " ", style="reverse")
                continue
            if row != buffer.row:
                text.append(line)
                continue
            col = buffer.col
            text.append(line[:col])
            text.append(line[col : col + 1] or " ", style="reverse")
            text.append(line[col + 1 :])
        return text

    def refresh_body(self) -> None:
        session = self.controller.session
        body = self.query_one("#editor_body", Static)
        body.update(self.render_buffer())
        height = self.compute_editor_entry_height(
            session.buffer.to_text(), max(self.size.width - 2, 20), self.size.height
        )
        if session.mode == EditMode.FULL:
            body.styles.height = "1fr"
        else:
            body.styles.height = height
        message = session.error or ""
        self.query_one("#editor_message", Static).update(
            Text(message, style=ERROR_COLOR) if message else ""
        )

    def on_key(self, event: events.Key) -> None:
        if event.key in EDITOR_BINDING_KEYS:
            return
        session = self.controller.session
        if session.error:
            # any key dismisses the message first
            session.dismiss_error()
        if session.buffer.apply_key(event.key, event.character):
            event.stop()
        self.refresh_body()

    def action_commit(self) -> None:
        controller = self.controller
        session = controller.session
        importing = isinstance(session.target, ImportPath)
        committed = controller.commit()
        if importing and session.pending_import_path:
            count = controller.run_import()
            self.app.notify(controller.status_message or "")
            if count is not None:
                self.app.pop_screen()
                return
        elif committed:
            if controller.save_error:
                self.app.notify(
                    f"Not saved: {controller.save_error}", severity="warning"
                )
            self.app.pop_screen()
            return
        self.refresh_body()

    def action_cancel(self) -> None:
        self.controller.cancel()
        self.app.pop_screen()

    def action_undo(self) -> None:
        self.controller.session.buffer.undo()
        self.refresh_body()

    def action_redo(self) -> None:
        self.controller.session.buffer.redo()
        self.refresh_body()

    def action_select_all(self) -> None:
        self.controller.session.buffer.select_all()
        self.refresh_body()

    def on_screen_resume(self) -> None:
        self.refresh_body()


class ListScreen(Screen):
    """One view mode: a title line, a list of rows and a footer."""

    BINDINGS = [
        ("tab", "next_view", "Next view"),
        ("shift+tab", "previous_view", "Previous view"),
        ("up", "cursor_up", "Up"),
        ("down", "cursor_down", "Down"),
        ("n", "new", "New"),
        ("enter", "edit", "Edit"),
        ("d", "delete", "Delete"),
        ("r", "rename", "Rename"),
        ("x", "toggle", "Toggle"),
        ("m", "mark", "Mark habit"),
        ("left", "move_left", "Move left"),
        ("right", "move_right", "Move right"),
        ("[", "previous_day", "Previous day"),
        ("]", "next_day", "Next day"),
        ("i", "import", "Import"),
        ("f", "filter", "Filter"),
        ("D", "bulk_delete", "Delete filtered cards"),
        ("u", "disassociate", "Clear collection"),
        ("q", "app.quit", "Quit"),
    ]

    def __init__(self, controller):
        super().__init__()
        self.controller = controller
        self.card_filter = CardFilter.ALL
        self.card_collection: str | None = None
        self.finance_category_idx = 0

    @property
    def mode(self) -> ViewMode:
        return self.controller.snapshot.view_mode

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static("", id="list_title", classes="title-class"),
            Static("", id="list_body"),
            Static("", id="custom_footer"),
            id="list_layout",
        )

    def on_mount(self) -> None:
        self.refresh_list()

    def on_screen_resume(self) -> None:
        self.refresh_list()

    # ─── rendering ──────────────────────────────────────

    def _rows(self) -> tuple[list[str], int]:
        snap = self.controller.snapshot
        kind = self.mode.kind
        if self.mode == ViewMode.FLASHCARDS:
            shown = self._filtered_cards()
            current = snap.current_card_idx
            rows = [summarize(snap.cards[idx]) for idx in shown]
            return rows, shown.index(current) if current in shown else -1
        if kind is not None:
            return self.controller.rows(kind), snap.current_index(kind)
        if self.mode == ViewMode.NOTES:
            section = snap.current_section()
            pages = section.pages if section else []
            return [page.title for page in pages], snap.current_page_idx
        entry = snap.journal_entry(snap.current_journal_date)
        lines = split_text(entry.content) if entry and entry.content else []
        return lines, -1

    def _title(self) -> str:
        snap = self.controller.snapshot
        if self.mode == ViewMode.NOTES:
            notebook = snap.current_notebook()
            section = snap.current_section()
            parts = [x.title for x in (notebook, section) if x is not None]
            return " / ".join(parts) or "Notes"
        if self.mode == ViewMode.JOURNAL:
            return f"Journal {fmt_date(snap.current_journal_date)}"
        if self.mode == ViewMode.FINANCE:
            return f"Finance  {self._finance_summary().label()}"
        if self.mode == ViewMode.FLASHCARDS:
            name = self.card_collection or self.card_filter.value
            due = len(self.controller.due_cards())
            return f"Flashcards  Filter: {name}  ({due} due / {len(snap.cards)})"
        return self.mode.value.title()

    def _filtered_cards(self) -> list[int]:
        return self.controller.cards_matching(self.card_filter, self.card_collection)

    def _card_hidden(self) -> bool:
        """True in the flashcard view when the current card is filtered out."""
        if self.mode != ViewMode.FLASHCARDS:
            return False
        return self.controller.snapshot.current_card_idx not in self._filtered_cards()

    def _finance_summary(self):
        categories = self.controller.finance_categories()
        self.finance_category_idx %= len(categories)
        return self.controller.finance_totals(categories[self.finance_category_idx])

    def refresh_list(self) -> None:
        if self.mode == ViewMode.FLASHCARDS:
            shown = self._filtered_cards()
            if shown and self.controller.snapshot.current_card_idx not in shown:
                self.controller.snapshot.current_card_idx = shown[0]
        rows, current = self._rows()
        body = Text()
        if not rows:
            body.append("(empty)", style=DONE_COLOR)
        for idx, row in enumerate(rows):
            if idx:
                body.append("\n")
            style = f"bold {ACTIVE_COLOR}" if idx == current else ""
            body.append(row, style=style)
        self.query_one("#list_title", Static).update(
            Text(self._title(), style=f"bold {HEADER_COLOR}")
        )
        self.query_one("#list_body", Static).update(body)
        keys = [("n", "New"), ("enter", "Edit"), ("d", "Delete")]
        if self.mode == ViewMode.FINANCE:
            keys.append(("f", "Category"))
        elif self.mode == ViewMode.FLASHCARDS:
            keys += [
                ("0-5", "Review"),
                ("f", "Filter"),
                ("D", "Delete filtered"),
                ("u", "Clear collection"),
            ]
        footer = _footer(*keys, ("tab", "View"), ("q", "Quit"))
        message = self.controller.status_message
        if message:
            footer = f"[{LABEL_COLOR}]{escape(message)}[/{LABEL_COLOR}]\n{footer}"
        self.query_one("#custom_footer", Static).update(footer)

    # ─── actions ────────────────────────────────────────

    def _open_editor(self, title: str) -> None:
        self.app.push_screen(EditorScreen(self.controller, title))

    def _switch_view(self, step: int) -> None:
        idx = VIEW_ORDER.index(self.mode)
        self.controller.set_view(VIEW_ORDER[(idx + step) % len(VIEW_ORDER)])
        self.refresh_list()

    def action_next_view(self) -> None:
        self._switch_view(1)

    def action_previous_view(self) -> None:
        self._switch_view(-1)

    def _move(self, step: int) -> None:
        snap = self.controller.snapshot
        kind = self.mode.kind
        rows, current = self._rows()
        if not rows or current < 0:
            return
        if self.mode == ViewMode.FLASHCARDS:
            self.controller.next_card_in_filter(self.card_filter, self.card_collection, step)
            self.refresh_list()
            return
        target = max(0, min(current + step, len(rows) - 1))
        if kind is not None:
            snap.set_current_index(kind, target)
        elif self.mode == ViewMode.NOTES:
            snap.current_page_idx = target
        self.refresh_list()

    def action_cursor_up(self) -> None:
        self._move(-1)

    def action_cursor_down(self) -> None:
        self._move(1)

    def action_new(self) -> None:
        kind = self.mode.kind
        if kind is not None:
            self.controller.start_new(kind)
            self._open_editor(f"New {kind.label}")
        elif self.mode == ViewMode.NOTES:
            self.controller.add_hierarchy(HierarchyLevel.PAGE)
            self.refresh_list()

    def action_edit(self) -> None:
        if self._card_hidden():
            return
        kind = self.mode.kind
        if kind is not None:
            if self.controller.start_edit(kind):
                self._open_editor(f"Edit {kind.label}")
        elif self.mode == ViewMode.NOTES:
            if self.controller.start_page_edit():
                self._open_editor("Edit page")
        else:
            self.controller.start_journal()
            self._open_editor(self._title())

    def action_delete(self) -> None:
        if self._card_hidden():
            return
        kind = self.mode.kind
        if kind is not None:
            self.controller.delete(kind)
        elif self.mode == ViewMode.NOTES:
            self.controller.delete_hierarchy(HierarchyLevel.PAGE)
        self.refresh_list()

    def action_rename(self) -> None:
        if self.mode == ViewMode.NOTES and self.controller.start_rename(
            HierarchyLevel.PAGE
        ):
            self._open_editor("Rename page")

    def action_toggle(self) -> None:
        if self.mode == ViewMode.PLANNER:
            self.controller.toggle_task()
            self.refresh_list()

    def action_mark(self) -> None:
        if self.mode == ViewMode.HABITS:
            self.controller.toggle_habit_mark()
            self.refresh_list()

    def action_move_left(self) -> None:
        if self.mode == ViewMode.KANBAN:
            self.controller.move_kanban("left")
            self.refresh_list()

    def action_move_right(self) -> None:
        if self.mode == ViewMode.KANBAN:
            self.controller.move_kanban("right")
            self.refresh_list()

    def _shift_day(self, days: int) -> None:
        snap = self.controller.snapshot
        snap.current_journal_date += timedelta(days=days)
        self.refresh_list()

    def action_previous_day(self) -> None:
        self._shift_day(-1)

    def action_next_day(self) -> None:
        self._shift_day(1)

    def action_import(self) -> None:
        if self.mode == ViewMode.FLASHCARDS:
            self.controller.start_import()
            self._open_editor("Import cards from (.json or .csv)")

    def action_filter(self) -> None:
        if self.mode == ViewMode.FINANCE:
            self.finance_category_idx += 1
        elif self.mode == ViewMode.FLASHCARDS:
            self.card_filter, self.card_collection = self.controller.next_filter(
                self.card_filter, self.card_collection
            )
        self.refresh_list()

    def action_bulk_delete(self) -> None:
        # the unfiltered deck is never bulk deleted
        if self.mode != ViewMode.FLASHCARDS or self.card_filter == CardFilter.ALL:
            return
        count = self.controller.delete_cards(self._filtered_cards())
        self.controller.status_message = f"Deleted {count} card(s)"
        self.refresh_list()

    def action_disassociate(self) -> None:
        if self.mode != ViewMode.FLASHCARDS:
            return
        if self.card_filter == CardFilter.ALL:
            targets = [self.controller.snapshot.current_card_idx]
        else:
            targets = self._filtered_cards()
        count = self.controller.disassociate_cards(targets)
        self.controller.status_message = f"Removed {count} card(s) from their collection"
        if self.card_filter == CardFilter.COLLECTION:
            self.card_filter, self.card_collection = CardFilter.ALL, None
        self.refresh_list()

    def on_key(self, event: events.Key) -> None:
        # 0-5 grade the current flashcard
        key = event.key
        if self.mode == ViewMode.FLASHCARDS and len(key) == 1 and key in "012345":
            card = None if self._card_hidden() else self.controller.review_card(int(key))
            if card is not None:
                log_msg(f"reviewed {card.front!r}: next {fmt_date(card.next_review)}")
            self.refresh_list()
            event.stop()


class MynotesApp(App):
    """Textual front end over a Controller."""

    CSS = f"""
    .title-class {{
        color: {HEADER_COLOR};
        text-style: bold;
        height: 1;
    }}
    #list_body {{
        height: 1fr;
    }}
    #editor_body {{
        border: round {FRAME_COLOR};
    }}
    #editor_message {{
        height: auto;
    }}
    #custom_footer {{
        height: auto;
    }}
    """

    def __init__(self, controller) -> None:
        super().__init__()
        self.controller = controller
        self.title = "mynotes"
        self.theme = (
            "textual-dark" if controller.env.config.ui.theme == "dark" else "textual-light"
        )

    def on_mount(self) -> None:
        self.push_screen(ListScreen(self.controller))
        if self.controller.status_message:
            self.notify(self.controller.status_message, severity="warning")

    def on_unmount(self) -> None:
        # final save on exit
        if not self.controller.save():
            log_msg(f"final save failed: {self.controller.save_error}")

