"""
ipuz interchange format (http://ipuz.org/crossword).
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from crossgen.exceptions import SerializationValidationError
from crossgen.grid import Direction
from crossgen.record import PuzzleRecord, build_record


IPUZ_VERSION = "http://ipuz.org/v2"
IPUZ_KIND = "http://ipuz.org/crossword#1"
BLOCK = "#"
EMPTY = 0

_SECTIONS = {"Across": Direction.ACROSS, "Down": Direction.DOWN}


def _ipuz_date(created_at: Optional[str]) -> Optional[str]:
    if not created_at:
        return None
    try:
        return datetime.fromisoformat(created_at).strftime('%m/%d/%Y')
    except ValueError:
        return None


def _puzzle_cell(cell) -> Any:
    if cell.is_block:
        return BLOCK
    number = cell.number if cell.number is not None else EMPTY
    if cell.is_circled:
        return {"cell": number, "style": {"shapebg": "circle"}}
    return number


def to_ipuz(record: PuzzleRecord) -> Dict[str, Any]:
    """ipuz document for a record."""
    document: Dict[str, Any] = {
        "version": IPUZ_VERSION,
        "kind": [IPUZ_KIND],
        "title": record.title,
        "author": record.author,
        "copyright": record.copyright or f"© {record.author}",
        "dimensions": {"width": record.width, "height": record.height},
        "block": BLOCK,
        "empty": EMPTY,
        "puzzle": [[_puzzle_cell(cell) for cell in row] for row in record.grid],
        "solution": [
            [BLOCK if cell.is_block else (cell.rebus or cell.letter) for cell in row]
            for row in record.grid
        ],
        "clues": {
            "Across": [[clue.number, clue.text] for clue in record.clues_across],
            "Down": [[clue.number, clue.text] for clue in record.clues_down],
        },
    }
    if record.id:
        document["uniqueid"] = record.id
    if record.difficulty:
        document["difficulty"] = record.difficulty
    date = _ipuz_date(record.created_at)
    if date:
        document["date"] = date
    if record.notes:
        document["notes"] = record.notes
    return document


def encode_ipuz(record: PuzzleRecord) -> bytes:
    """ipuz JSON bytes of a validated record."""
    record.validate()
    return json.dumps(to_ipuz(record), indent=2, ensure_ascii=False).encode('utf-8')


def _solution_value(value: Any, block: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("value")
    if value is None or value == block:
        return None
    if not isinstance(value, str) or not value:
        raise SerializationValidationError([f"invalid solution cell {value!r}"])
    return value


def _is_circled(cell: Any) -> bool:
    if not isinstance(cell, dict):
        return False
    style = cell.get("style")
    if isinstance(style, dict) and style.get("shapebg") == "circle":
        return True
    return bool(cell.get("isCircled", False))


def _parse_clues(clues: Any) -> Dict[Tuple[int, Direction], str]:
    if not isinstance(clues, dict):
        raise SerializationValidationError(["clues must be an object"])

    texts = {}
    for section, direction in _SECTIONS.items():
        for item in clues.get(section, []):
            if (not isinstance(item, list) or len(item) != 2
                    or not isinstance(item[0], int) or isinstance(item[0], bool)
                    or not isinstance(item[1], str)):
                raise SerializationValidationError(
                    [f"{section} clue {item!r} must be a [number, text] pair"]
                )
            texts[(item[0], direction)] = item[1]
    return texts


def parse_ipuz(data: bytes) -> PuzzleRecord:
    """Parse an ipuz crossword into a canonical record.

    Raises:
        SerializationValidationError: If the document is not a usable crossword
    """
    try:
        document = json.loads(data)
    except ValueError as e:
        raise SerializationValidationError([f"invalid JSON: {e}"]) from e
    if not isinstance(document, dict):
        raise SerializationValidationError(["ipuz document must be an object"])

    kinds = document.get("kind") or []
    if not any(isinstance(k, str) and k.startswith("http://ipuz.org/crossword") for k in kinds):
        raise SerializationValidationError(["document is not an ipuz crossword"])

    dimensions = document.get("dimensions") or {}
    width, height = dimensions.get("width"), dimensions.get("height")
    if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
        raise SerializationValidationError([f"invalid dimensions {dimensions!r}"])

    solution_rows = document.get("solution")
    if not isinstance(solution_rows, list) or len(solution_rows) != height:
        raise SerializationValidationError([f"solution must have {height} rows"])
    puzzle_rows = document.get("puzzle") or []

    block = document.get("block", BLOCK)
    solution: List[List[Optional[str]]] = []
    circled: Set[Tuple[int, int]] = set()
    for r, row in enumerate(solution_rows):
        if not isinstance(row, list) or len(row) != width:
            raise SerializationValidationError([f"solution row {r} must have {width} cells"])
        solution.append([_solution_value(value, block) for value in row])
        if r < len(puzzle_rows) and isinstance(puzzle_rows[r], list):
            circled.update((r, c) for c, cell in enumerate(puzzle_rows[r]) if _is_circled(cell))

    created_at = None
    if document.get("date"):
        try:
            created_at = datetime.strptime(document["date"], '%m/%d/%Y').date().isoformat()
        except (TypeError, ValueError):
            created_at = None

    return build_record(
        solution,
        _parse_clues(document.get("clues", {})),
        circled,
        id=str(document.get("uniqueid", "")),
        title=document.get("title", ""),
        author=document.get("author", ""),
        difficulty=document.get("difficulty", ""),
        copyright=document.get("copyright"),
        notes=document.get("notes"),
        created_at=created_at,
    )
