"""Error taxonomy shared by the editing, validation and storage layers."""

from __future__ import annotations


class MynotesError(Exception):
    """Base class for every error raised by mynotes."""


class ValidationError(MynotesError, ValueError):
    """A field value is outside its accepted domain.

    The message names the field and what it accepts, e.g.
    ``Invalid Priority. Valid options: High|Medium|Low``.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ParseStructureError(ValidationError):
    """The text as a whole is malformed, e.g. a required value is missing."""


class ImportFormatError(MynotesError):
    """An import file has an unsupported extension or cannot be decoded."""


class PersistenceError(MynotesError):
    """Base class for snapshot save/load failures."""


class PersistenceSizeError(PersistenceError):
    """Snapshot payload or file is above the size ceiling."""


class PersistenceDecodeError(PersistenceError):
    """Snapshot file is corrupt, foreign, or written by a newer format."""
