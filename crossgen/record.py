"""
Canonical puzzle record shared by all serializers.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from crossgen.exceptions import SerializationValidationError
from crossgen.grid import Direction, scan_entries


@dataclass
class RecordCell:
    """One square; a block has no letter."""
    letter: Optional[str] = None
    number: Optional[int] = None
    is_circled: bool = False
    rebus: Optional[str] = None

    @property
    def is_block(self) -> bool:
        return self.letter is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'letter': self.letter}
        if self.number is not None:
            data['number'] = self.number
        if self.is_circled:
            data['isCircled'] = True
        if self.rebus:
            data['rebus'] = self.rebus
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecordCell':
        return cls(
            letter=data.get('letter'),
            number=data.get('number'),
            is_circled=bool(data.get('isCircled', False)),
            rebus=data.get('rebus'),
        )


@dataclass
class RecordClue:
    number: int
    text: str
    answer: str
    start_row: int
    start_col: int
    length: int
    direction: Direction

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'text': self.text,
            'answer': self.answer,
            'startRow': self.start_row,
            'startCol': self.start_col,
            'length': self.length,
            'direction': self.direction.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecordClue':
        return cls(
            number=int(data['number']),
            text=str(data['text']),
            answer=str(data['answer']),
            start_row=int(data['startRow']),
            start_col=int(data['startCol']),
            length=int(data['length']),
            direction=Direction.from_string(data['direction']),
        )


@dataclass
class PuzzleRecord:
    """Format-neutral description of a solved puzzle."""
    id: str
    title: str
    author: str
    difficulty: str
    width: int
    height: int
    grid: List[List[RecordCell]]
    clues_across: List[RecordClue] = field(default_factory=list)
    clues_down: List[RecordClue] = field(default_factory=list)
    theme: Optional[str] = None
    created_at: Optional[str] = None
    copyright: Optional[str] = None
    notes: Optional[str] = None

    def validate(self):
        """Check the record can be emitted.

        Raises:
            SerializationValidationError: Listing every problem found
        """
        problems = []
        if not self.title or not self.title.strip():
            problems.append("title is required")
        if not self.author or not self.author.strip():
            problems.append("author is required")
        if self.width <= 0 or self.height <= 0:
            problems.append(f"invalid dimensions {self.width}x{self.height}")
        if len(self.grid) != self.height:
            problems.append(f"grid has {len(self.grid)} rows, expected {self.height}")
        for r, row in enumerate(self.grid):
            if len(row) != self.width:
                problems.append(f"grid row {r} has {len(row)} cells, expected {self.width}")
        if not self.clues_across and not self.clues_down:
            problems.append("at least one clue is required")

        if problems:
            raise SerializationValidationError(problems)

    def blocks(self) -> List[List[bool]]:
        return [[cell.is_block for cell in row] for row in self.grid]

    def solution_rows(self, block: str = '.') -> List[str]:
        """Rows of letters with ``block`` for block squares."""
        return [''.join(block if cell.is_block else cell.letter for cell in row) for row in self.grid]

    def circled(self) -> Set[Tuple[int, int]]:
        return {
            (r, c) for r, row in enumerate(self.grid) for c, cell in enumerate(row) if cell.is_circled
        }

    def ordered_clues(self) -> List[RecordClue]:
        """All clues by number, across before down at equal numbers."""
        rank = {Direction.ACROSS: 0, Direction.DOWN: 1}
        return sorted(self.clues_across + self.clues_down,
                      key=lambda clue: (clue.number, rank[clue.direction]))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'title': self.title,
            'author': self.author,
            'difficulty': self.difficulty,
            'gridWidth': self.width,
            'gridHeight': self.height,
            'grid': [[cell.to_dict() for cell in row] for row in self.grid],
            'cluesAcross': [clue.to_dict() for clue in self.clues_across],
            'cluesDown': [clue.to_dict() for clue in self.clues_down],
            'theme': self.theme,
            'createdAt': self.created_at,
        }
        if self.copyright:
            data['copyright'] = self.copyright
        if self.notes:
            data['notes'] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PuzzleRecord':
        return cls(
            id=str(data.get('id', '')),
            title=data.get('title', ''),
            author=data.get('author', ''),
            difficulty=data.get('difficulty', ''),
            width=int(data['gridWidth']),
            height=int(data['gridHeight']),
            grid=[[RecordCell.from_dict(cell) for cell in row] for row in data['grid']],
            clues_across=[RecordClue.from_dict(c) for c in data.get('cluesAcross', [])],
            clues_down=[RecordClue.from_dict(c) for c in data.get('cluesDown', [])],
            theme=data.get('theme'),
            created_at=data.get('createdAt'),
            copyright=data.get('copyright'),
            notes=data.get('notes'),
        )


def record_from_puzzle(puzzle) -> PuzzleRecord:
    """Canonical record of an assembled Puzzle."""
    grid = puzzle.grid
    cells = [
        [RecordCell() if cell.is_black else RecordCell(letter=cell.letter, number=cell.number)
         for cell in row]
        for row in grid.cells
    ]

    clues: Dict[Direction, List[RecordClue]] = {Direction.ACROSS: [], Direction.DOWN: []}
    for entry in grid.entries:
        clues[entry.direction].append(RecordClue(
            number=entry.number,
            text=puzzle.clue_for(entry),
            answer=puzzle.answer_for(entry),
            start_row=entry.start_row,
            start_col=entry.start_col,
            length=entry.length,
            direction=entry.direction,
        ))

    meta = puzzle.metadata
    return PuzzleRecord(
        id=meta.id,
        title=meta.title,
        author=meta.author,
        difficulty=meta.difficulty.value,
        width=grid.size,
        height=grid.size,
        grid=cells,
        clues_across=clues[Direction.ACROSS],
        clues_down=clues[Direction.DOWN],
        theme=meta.theme,
        created_at=meta.created_at.isoformat(),
        copyright=f"© {meta.author}",
        notes=meta.theme,
    )


def build_record(solution: Sequence[Sequence[Optional[str]]],
                 clue_texts: Dict[Tuple[int, Direction], str],
                 circled: Optional[Set[Tuple[int, int]]] = None,
                 **fields) -> PuzzleRecord:
    """Rebuild a record from a solution grid and numbered clue texts.

    Numbering, answers and clue positions are derived from the block layout.

    Args:
        solution: Rows of cell solutions; None marks a block, strings longer
            than one character are rebus answers
        clue_texts: Clue text by (number, direction)
        circled: Coordinates of circled squares
        **fields: Remaining PuzzleRecord fields (id, title, author...)

    Raises:
        SerializationValidationError: If a clue has no matching entry
    """
    circled = circled or set()
    blocks = [[value is None for value in row] for row in solution]
    numbers, entries = scan_entries(blocks)

    grid = []
    for r, row in enumerate(solution):
        cells = []
        for c, value in enumerate(row):
            if value is None:
                cells.append(RecordCell())
                continue
            cells.append(RecordCell(
                letter=value[0].upper(),
                number=numbers[r][c],
                is_circled=(r, c) in circled,
                rebus=value.upper() if len(value) > 1 else None,
            ))
        grid.append(cells)

    by_key = {(entry.number, entry.direction): entry for entry in entries}
    unknown = [f"{n}-{d.value}" for n, d in clue_texts if (n, d) not in by_key]
    if unknown:
        raise SerializationValidationError([f"clue {key} has no matching entry" for key in unknown])

    clues: Dict[Direction, List[RecordClue]] = {Direction.ACROSS: [], Direction.DOWN: []}
    for entry in entries:
        text = clue_texts.get((entry.number, entry.direction))
        if text is None:
            continue
        answer = ''.join(grid[r][c].letter for r, c in entry.cells)
        clues[entry.direction].append(RecordClue(
            entry.number, text, answer, entry.start_row, entry.start_col, entry.length, entry.direction
        ))

    height = len(solution)
    width = len(solution[0]) if height else 0
    return PuzzleRecord(
        width=width,
        height=height,
        grid=grid,
        clues_across=clues[Direction.ACROSS],
        clues_down=clues[Direction.DOWN],
        **fields,
    )


def encode_json(record: PuzzleRecord) -> bytes:
    """Canonical JSON bytes of a validated record."""
    record.validate()
    return json.dumps(record.to_dict(), indent=2, ensure_ascii=False).encode('utf-8')


def record_from_json(data: bytes) -> PuzzleRecord:
    """Parse canonical JSON back into a record.

    Raises:
        SerializationValidationError: If the document is malformed
    """
    try:
        document = json.loads(data)
        return PuzzleRecord.from_dict(document)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise SerializationValidationError([f"invalid canonical JSON: {e}"]) from e
