"""
Bulk flashcard import from .json or .csv files.

Every row goes through the same checks as interactive entry. The first bad
row aborts the import so nothing is appended from a partially valid file.
"""

import csv
import json
from pathlib import Path
from typing import Iterable, Optional

from . import validate as v
from .errors import ImportFormatError, ValidationError
from .records import CARD_TYPE_ALIASES, Flashcard


def card_from_fields(
    front,
    back,
    card_type: Optional[str] = None,
    collection: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
) -> Flashcard:
    front = str(front or "").strip()
    back = str(back or "").strip()
    if not front:
        raise ValidationError("Missing required field: Front", "Front")
    if not back:
        raise ValidationError("Missing required field: Back", "Back")
    kind = v.enum_token(
        "Type", str(card_type or "basic"), CARD_TYPE_ALIASES, "basic|cloze|mc"
    )
    # "None" and "Not set" mean empty, as they do in the editor
    collection = str(collection or "").strip()
    if v.is_clear(collection):
        collection = None
    cleaned = [
        str(t).strip()
        for t in (tags or [])
        if str(t).strip() and not v.is_clear(str(t))
    ]
    return Flashcard(
        front=v.bounded_string("Front", front, v.CARD_SIDE_MAX),
        back=v.bounded_string("Back", back, v.CARD_SIDE_MAX),
        card_type=kind,
        collection=(
            v.bounded_string("Collection", collection, v.COLLECTION_MAX)
            if collection
            else None
        ),
        tags=[v.bounded_string("Tag", t, v.TAG_MAX) for t in cleaned],
    )


def _row_error(row: int, e: ValidationError) -> ValidationError:
    return ValidationError(f"Row {row}: {e.message}", e.field)


def import_json(path: Path) -> list[Flashcard]:
    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImportFormatError(f"Could not read {path}: {e}") from e
    if not isinstance(entries, list):
        raise ImportFormatError(f"{path} must contain a JSON array of cards")

    cards = []
    for row, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f"Row {row}: expected an object with front and back")
        tags = entry.get("tags") or []
        if isinstance(tags, str):
            tags = tags.split(",")
        try:
            cards.append(
                card_from_fields(
                    entry.get("front"),
                    entry.get("back"),
                    entry.get("card_type"),
                    entry.get("collection"),
                    tags,
                )
            )
        except ValidationError as e:
            raise _row_error(row, e) from e
    return cards


def import_csv(path: Path) -> list[Flashcard]:
    """
    Columns: front, back, type, collection. A row that arrived as one quoted
    field ("front,back,basic,Deck") is split on commas.
    """
    try:
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ImportFormatError(f"Could not read {path}: {e}") from e

    cards = []
    for row, fields in enumerate(rows[1:], start=1):
        if not any(field.strip() for field in fields):
            continue
        if len(fields) == 1:
            fields = fields[0].strip().strip('"').split(",")
        if len(fields) < 2:
            raise ValidationError(f"Row {row}: expected at least front and back")
        fields = [field.strip() for field in fields] + ["", ""]
        try:
            cards.append(
                card_from_fields(fields[0], fields[1], fields[2] or None, fields[3])
            )
        except ValidationError as e:
            raise _row_error(row, e) from e
    return cards


def import_cards(path) -> list[Flashcard]:
    """Read cards from ``path``; nothing is returned unless every row is valid."""
    path = Path(path).expanduser()
    suffix = path.suffix.lower()
    if suffix == ".json":
        return import_json(path)
    if suffix == ".csv":
        return import_csv(path)
    raise ImportFormatError("Unsupported file format. Use .json or .csv")
