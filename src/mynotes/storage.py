"""
Snapshot persistence: one file per calendar year under the data directory.

File layout::

    b"MYNT"          4-byte magic
    version          1 byte, currently 1
    payload          zlib-compressed JSON of ApplicationSnapshot

Saves go to ``<year>.bin.tmp`` first and are moved over ``<year>.bin`` with
``os.replace`` so an interrupted save leaves the previous file untouched.
A file that cannot be loaded is moved aside before anything is saved over it.
"""

import os
import struct
import zlib
from datetime import datetime
from pathlib import Path
from typing import Optional

import pydantic

from .errors import PersistenceDecodeError, PersistenceError, PersistenceSizeError
from .model import ApplicationSnapshot
from .shared import log_msg, today

MAGIC = b"MYNT"
FORMAT_VERSION = 1
HEADER = struct.Struct(">4sB")
MAX_FILE_SIZE = 50 * 1024 * 1024


def _clamp(idx: int, length: int) -> int:
    return idx if 0 <= idx < length else 0


def validate_indices(snapshot: ApplicationSnapshot) -> ApplicationSnapshot:
    """
    Reset every current index that does not point into its collection.
    The section index is checked against the current notebook and the page
    index against the current section.
    """
    s = snapshot
    s.current_notebook_idx = _clamp(s.current_notebook_idx, len(s.notebooks))
    notebook = s.current_notebook()
    s.current_section_idx = _clamp(
        s.current_section_idx, len(notebook.sections) if notebook else 0
    )
    section = s.current_section()
    s.current_page_idx = _clamp(s.current_page_idx, len(section.pages) if section else 0)
    s.current_task_idx = _clamp(s.current_task_idx, len(s.tasks))
    s.current_habit_idx = _clamp(s.current_habit_idx, len(s.habits))
    s.current_finance_idx = _clamp(s.current_finance_idx, len(s.finances))
    s.current_calorie_idx = _clamp(s.current_calorie_idx, len(s.calories))
    s.current_kanban_card_idx = _clamp(s.current_kanban_card_idx, len(s.kanban_cards))
    s.current_card_idx = _clamp(s.current_card_idx, len(s.cards))
    return s


class PersistenceEngine:
    def __init__(self, data_dir: Path, max_size: int = MAX_FILE_SIZE):
        self.data_dir = Path(data_dir)
        self.max_size = min(max_size, MAX_FILE_SIZE)

    def path_for_year(self, year: Optional[int] = None) -> Path:
        return self.data_dir / f"{year or today().year}.bin"

    # ─── encoding ───────────────────────────────────────

    def encode(self, snapshot: ApplicationSnapshot) -> bytes:
        payload = zlib.compress(snapshot.model_dump_json().encode("utf-8"))
        data = HEADER.pack(MAGIC, FORMAT_VERSION) + payload
        if len(data) > self.max_size:
            raise PersistenceSizeError(
                f"Serialized data exceeds maximum size limit "
                f"({len(data):,} > {self.max_size:,} bytes)"
            )
        return data

    def decode(self, data: bytes) -> ApplicationSnapshot:
        if len(data) < HEADER.size:
            raise PersistenceDecodeError("Data file is truncated")
        magic, version = HEADER.unpack_from(data)
        if magic != MAGIC:
            raise PersistenceDecodeError("Data file is not a mynotes snapshot")
        if version > FORMAT_VERSION:
            raise PersistenceDecodeError(
                f"Data file format {version} is newer than supported ({FORMAT_VERSION})"
            )
        inflater = zlib.decompressobj()
        try:
            raw = inflater.decompress(data[HEADER.size :], self.max_size + 1)
        except zlib.error as e:
            raise PersistenceDecodeError(f"Failed to decompress data file: {e}") from e
        if len(raw) > self.max_size or inflater.unconsumed_tail:
            raise PersistenceSizeError(
                f"Decompressed data exceeds maximum size limit ({self.max_size:,} bytes)"
            )
        if not inflater.eof:
            raise PersistenceDecodeError("Failed to decompress data file: stream is incomplete")
        try:
            snapshot = ApplicationSnapshot.model_validate_json(raw)
        except pydantic.ValidationError as e:
            raise PersistenceDecodeError(f"Failed to decode data file: {e}") from e
        return snapshot

    # ─── file i/o ───────────────────────────────────────

    def save(self, snapshot: ApplicationSnapshot) -> Path:
        data = self.encode(snapshot)
        path = self.path_for_year()
        tmp = path.with_name(path.name + ".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {path}: {e}") from e
        log_msg(f"saved {len(data):,} bytes to {path}")
        return path

    def load(self) -> ApplicationSnapshot:
        path = self.path_for_year()
        try:
            if not path.exists():
                return ApplicationSnapshot.default()
            size = path.stat().st_size
            if size > self.max_size:
                raise PersistenceSizeError(
                    f"Data file exceeds maximum size limit - possible corruption or attack "
                    f"({size:,} bytes)"
                )
            data = path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e
        return validate_indices(self.decode(data))

    def move_aside(self, path: Optional[Path] = None) -> Optional[Path]:
        """
        Rename an unreadable snapshot to ``<name>.corrupt-<YYYYmmdd-HHMMSS>``
        so that the next save cannot replace it. Returns the new path, or
        None when there was nothing to move.
        """
        path = path or self.path_for_year()
        if not path.exists():
            return None
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        n = 1
        while target.exists():
            target = path.with_name(f"{path.name}.corrupt-{stamp}-{n}")
            n += 1
        try:
            os.replace(path, target)
        except OSError as e:
            raise PersistenceError(f"Failed to move {path} aside: {e}") from e
        log_msg(f"moved unreadable {path} to {target}")
        return target
