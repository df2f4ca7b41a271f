from typing import Optional

from .shared import split_text

PAGE_SIZE = 10
DEFAULT_UNDO_LIMIT = 200

NAVIGATION_KEYS = (
    "left",
    "right",
    "up",
    "down",
    "home",
    "end",
    "pageup",
    "pagedown",
)
EDIT_KEYS = ("enter", "backspace", "delete", "tab", "space", "ctrl+k")


class TextBuffer:
    """
    Editable lines with a cursor and bounded undo/redo history.

    Keys use Textual's names ("left", "enter", "ctrl+k", ...); printable
    input arrives either as a one-character key or through ``character``.
    The buffer always holds at least one line.
    """

    def __init__(self, undo_limit: int = DEFAULT_UNDO_LIMIT, tab_width: int = 4):
        self.lines: list[str] = [""]
        self.row = 0
        self.col = 0
        self.select_all_active = False
        self.undo_limit = max(1, undo_limit)
        self.tab_width = tab_width
        # (lines, row, col) snapshots
        self.undo_stack: list[tuple[list[str], int, int]] = []
        self.redo_stack: list[tuple[list[str], int, int]] = []

    @property
    def cursor(self) -> tuple[int, int]:
        return self.row, self.col

    def to_text(self) -> str:
        return "\n".join(self.lines)

    def set_content(self, lines) -> None:
        """Replace the lines (a list, or text to split) and home the cursor."""
        if isinstance(lines, str):
            lines = split_text(lines)
        self.lines = list(lines) or [""]
        self.row = 0
        self.col = 0
        self.select_all_active = False

    def clear_history(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()

    def move_cursor(self, position: tuple[int, int]) -> None:
        row, col = position
        self.row = max(0, min(row, len(self.lines) - 1))
        self.col = max(0, min(col, len(self.lines[self.row])))

    def move_to_end(self) -> None:
        self.row = len(self.lines) - 1
        self.col = len(self.lines[self.row])

    def select_all(self) -> None:
        self.select_all_active = True

    def clear_selection(self) -> None:
        self.select_all_active = False

    # ─── history ────────────────────────────────────────

    def _snapshot(self) -> tuple[list[str], int, int]:
        return self.lines[:], self.row, self.col

    def _push(self, stack: list, snapshot) -> None:
        stack.append(snapshot)
        if len(stack) > self.undo_limit:
            stack.pop(0)

    def _save_undo(self) -> None:
        self._push(self.undo_stack, self._snapshot())
        # a new edit invalidates anything that was undone
        self.redo_stack.clear()

    def undo(self) -> bool:
        if not self.undo_stack:
            return False
        self._push(self.redo_stack, self._snapshot())
        self.lines = self.undo_stack.pop()[0]
        self.clear_selection()
        self.move_to_end()
        return True

    def redo(self) -> bool:
        if not self.redo_stack:
            return False
        self._push(self.undo_stack, self._snapshot())
        self.lines = self.redo_stack.pop()[0]
        self.clear_selection()
        self.move_to_end()
        return True

    # ─── keys ───────────────────────────────────────────

    def _text_for(self, key: str, character: Optional[str]) -> Optional[str]:
        if key == "space":
            return " "
        if key == "tab":
            return " " * self.tab_width
        if len(key) == 1 and key.isprintable():
            return key
        if character and len(character) == 1 and character.isprintable():
            if key not in NAVIGATION_KEYS and key not in EDIT_KEYS:
                return character
        return None

    def apply_key(self, key: str, character: Optional[str] = None) -> bool:
        """
        Apply one key press. Returns True when the key was understood,
        whether or not it changed the text.
        """
        if self.select_all_active:
            self.select_all_active = False
            if key in ("delete", "backspace"):
                self._save_undo()
                self.lines = [""]
                self.row = 0
                self.col = 0
                return True

        if key in NAVIGATION_KEYS:
            self._navigate(key)
            return True

        text = self._text_for(key, character)
        if text is not None:
            self._save_undo()
            self._insert(text)
            return True

        if key == "enter":
            self._save_undo()
            line = self.lines[self.row]
            self.lines[self.row] = line[: self.col]
            self.lines.insert(self.row + 1, line[self.col :])
            self.row += 1
            self.col = 0
            return True

        if key == "backspace":
            self._save_undo()
            if self.col > 0:
                line = self.lines[self.row]
                self.lines[self.row] = line[: self.col - 1] + line[self.col :]
                self.col -= 1
            elif self.row > 0:
                prev = self.lines[self.row - 1]
                self.lines[self.row - 1] = prev + self.lines.pop(self.row)
                self.row -= 1
                self.col = len(prev)
            return True

        if key == "delete":
            self._save_undo()
            line = self.lines[self.row]
            if self.col < len(line):
                self.lines[self.row] = line[: self.col] + line[self.col + 1 :]
            elif self.row < len(self.lines) - 1:
                self.lines[self.row] = line + self.lines.pop(self.row + 1)
            return True

        if key == "ctrl+k":
            self._save_undo()
            if len(self.lines) > 1:
                self.lines.pop(self.row)
                self.row = min(self.row, len(self.lines) - 1)
            else:
                self.lines = [""]
            self.col = 0
            return True

        return False

    def _insert(self, text: str) -> None:
        line = self.lines[self.row]
        self.lines[self.row] = line[: self.col] + text + line[self.col :]
        self.col += len(text)

    def _navigate(self, key: str) -> None:
        if key == "left":
            if self.col > 0:
                self.col -= 1
            elif self.row > 0:
                self.row -= 1
                self.col = len(self.lines[self.row])
        elif key == "right":
            if self.col < len(self.lines[self.row]):
                self.col += 1
            elif self.row < len(self.lines) - 1:
                self.row += 1
                self.col = 0
        elif key == "up":
            self.move_cursor((self.row - 1, self.col))
        elif key == "down":
            self.move_cursor((self.row + 1, self.col))
        elif key == "home":
            self.col = 0
        elif key == "end":
            self.col = len(self.lines[self.row])
        elif key == "pageup":
            self.move_cursor((self.row - PAGE_SIZE, self.col))
        elif key == "pagedown":
            self.move_cursor((self.row + PAGE_SIZE, self.col))
