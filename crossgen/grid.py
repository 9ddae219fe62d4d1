"""
Grid module for crossword puzzle generation.
Handles the block layout, entry extraction and numbering.
"""

import copy
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from crossgen.exceptions import ConfigurationError
from crossgen.lexicon import WILDCARD


BLOCK = '#'
OPEN = '.'


class Direction(Enum):
    """Word direction in the grid."""
    ACROSS = "across"
    DOWN = "down"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, s: str) -> 'Direction':
        """Create Direction from string."""
        for direction in cls:
            if direction.value == s.lower():
                return direction
        raise ValueError(f"Invalid direction: {s}")


@dataclass
class Cell:
    """A single grid square."""
    is_black: bool = False
    letter: Optional[str] = None
    number: Optional[int] = None


@dataclass(frozen=True)
class Entry:
    """A maximal run of open cells, clued as one answer."""
    number: int
    direction: Direction
    start_row: int
    start_col: int
    length: int
    cells: Tuple[Tuple[int, int], ...]

    @property
    def key(self) -> str:
        """Clue key, e.g. ``1-across``."""
        return f"{self.number}-{self.direction.value}"

    def position_of(self, row: int, col: int) -> Optional[int]:
        """Index of (row, col) within this entry, or None."""
        if self.direction == Direction.ACROSS:
            offset = col - self.start_col
            inside = row == self.start_row
        else:
            offset = row - self.start_row
            inside = col == self.start_col
        if inside and 0 <= offset < self.length:
            return offset
        return None


def scan_entries(blocks: Sequence[Sequence[bool]]) -> Tuple[List[List[Optional[int]]], List[Entry]]:
    """Number a block matrix and extract its entries.

    Cells are scanned in row-major order; a cell starting an across or down
    run of two or more open cells gets the next number. Across entries come
    first, then down entries, each in row-major order of their start cell.

    Args:
        blocks: Matrix of booleans, True for block squares

    Returns:
        Tuple of (cell numbers matrix, entries)
    """
    height = len(blocks)
    width = len(blocks[0]) if height else 0

    numbers: List[List[Optional[int]]] = [[None] * width for _ in range(height)]
    across: List[Entry] = []
    down: List[Entry] = []
    next_number = 1

    for row in range(height):
        for col in range(width):
            if blocks[row][col]:
                continue

            starts_across = ((col == 0 or blocks[row][col - 1])
                             and col + 1 < width and not blocks[row][col + 1])
            starts_down = ((row == 0 or blocks[row - 1][col])
                           and row + 1 < height and not blocks[row + 1][col])
            if not (starts_across or starts_down):
                continue

            numbers[row][col] = next_number

            if starts_across:
                end = col
                while end < width and not blocks[row][end]:
                    end += 1
                cells = tuple((row, c) for c in range(col, end))
                across.append(Entry(next_number, Direction.ACROSS, row, col, len(cells), cells))

            if starts_down:
                end = row
                while end < height and not blocks[end][col]:
                    end += 1
                cells = tuple((r, col) for r in range(row, end))
                down.append(Entry(next_number, Direction.DOWN, row, col, len(cells), cells))

            next_number += 1

    return numbers, across + down


def is_rotationally_symmetric(blocks: Sequence[Sequence[bool]]) -> bool:
    """True if the block layout survives a 180 degree rotation."""
    height = len(blocks)
    width = len(blocks[0]) if height else 0
    return all(
        blocks[r][c] == blocks[height - 1 - r][width - 1 - c]
        for r in range(height) for c in range(width)
    )


def is_connected(blocks: Sequence[Sequence[bool]]) -> bool:
    """True if all open cells form a single orthogonally connected region."""
    height = len(blocks)
    width = len(blocks[0]) if height else 0
    open_cells = [(r, c) for r in range(height) for c in range(width) if not blocks[r][c]]
    if not open_cells:
        return False

    seen = {open_cells[0]}
    queue = deque([open_cells[0]])
    while queue:
        row, col = queue.popleft()
        for nr, nc in ((row - 1, col), (row + 1, col), (row, col - 1), (row, col + 1)):
            if 0 <= nr < height and 0 <= nc < width and not blocks[nr][nc] and (nr, nc) not in seen:
                seen.add((nr, nc))
                queue.append((nr, nc))

    return len(seen) == len(open_cells)


def short_runs(blocks: Sequence[Sequence[bool]], min_length: int = 3) -> List[Tuple[Direction, int, int, int]]:
    """Runs of open cells longer than one but shorter than min_length.

    Returns:
        List of (direction, start row, start col, length)
    """
    height = len(blocks)
    width = len(blocks[0]) if height else 0
    found = []

    for row in range(height):
        col = 0
        while col < width:
            if blocks[row][col]:
                col += 1
                continue
            start = col
            while col < width and not blocks[row][col]:
                col += 1
            if 1 < col - start < min_length:
                found.append((Direction.ACROSS, row, start, col - start))

    for col in range(width):
        row = 0
        while row < height:
            if blocks[row][col]:
                row += 1
                continue
            start = row
            while row < height and not blocks[row][col]:
                row += 1
            if 1 < row - start < min_length:
                found.append((Direction.DOWN, start, col, row - start))

    return found


class Grid:
    """A square crossword grid of block and letter cells."""

    def __init__(self, size: int, blocks: Optional[Iterable[Tuple[int, int]]] = None):
        """Initialize a grid.

        Args:
            size: Number of rows and columns
            blocks: Coordinates of block squares
        """
        if size < 1:
            raise ConfigurationError(f"grid size must be positive, got {size}")

        self.size = size
        self.cells = [[Cell() for _ in range(size)] for _ in range(size)]
        for row, col in blocks or ():
            if not (0 <= row < size and 0 <= col < size):
                raise ConfigurationError(f"block ({row}, {col}) outside {size}x{size} grid")
            self.cells[row][col].is_black = True

        self.entries: List[Entry] = []
        self.derive_entries()

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> 'Grid':
        """Build a grid from text rows.

        ``#`` is a block, ``.`` or ``_`` an empty cell, any other
        character a pre-filled letter.
        """
        size = len(rows)
        if any(len(row) != size for row in rows):
            raise ConfigurationError("grid rows must form a square")

        blocks = [(r, c) for r, row in enumerate(rows) for c, ch in enumerate(row) if ch == BLOCK]
        grid = cls(size, blocks)
        for r, row in enumerate(rows):
            for c, ch in enumerate(row):
                if ch not in (BLOCK, OPEN, WILDCARD):
                    grid.cells[r][c].letter = ch.upper()
        return grid

    def derive_entries(self) -> List[Entry]:
        """Recompute numbering and entries from the block layout."""
        numbers, entries = scan_entries(self.block_matrix())
        for row in range(self.size):
            for col in range(self.size):
                self.cells[row][col].number = numbers[row][col]
        self.entries = entries
        return entries

    def set_block(self, row: int, col: int, is_black: bool = True):
        """Change one square and renumber the grid."""
        cell = self.cells[row][col]
        cell.is_black = is_black
        if is_black:
            cell.letter = None
        self.derive_entries()

    def block_matrix(self) -> List[List[bool]]:
        return [[cell.is_black for cell in row] for row in self.cells]

    def cell(self, row: int, col: int) -> Cell:
        return self.cells[row][col]

    def letters_of(self, entry: Entry) -> List[Optional[str]]:
        return [self.cells[r][c].letter for r, c in entry.cells]

    def pattern_of(self, entry: Entry) -> str:
        """Current letters of an entry with wildcards for empty cells."""
        return ''.join(letter or WILDCARD for letter in self.letters_of(entry))

    def word_of(self, entry: Entry) -> Optional[str]:
        """The entry's word if every cell is lettered."""
        letters = self.letters_of(entry)
        if None in letters:
            return None
        return ''.join(letters)

    def is_complete(self) -> bool:
        """True if every open cell holds a letter."""
        return all(cell.is_black or cell.letter for row in self.cells for cell in row)

    def clear_letters(self):
        for row in self.cells:
            for cell in row:
                cell.letter = None

    def block_count(self) -> int:
        return sum(cell.is_black for row in self.cells for cell in row)

    def clone(self) -> 'Grid':
        """Create a deep copy of the grid."""
        return copy.deepcopy(self)

    def to_rows(self) -> List[str]:
        """Text rows: ``#`` for blocks, letters, ``.`` for empty cells."""
        return [
            ''.join(BLOCK if cell.is_black else (cell.letter or OPEN) for cell in row)
            for row in self.cells
        ]

    def __str__(self) -> str:
        return '\n'.join(' '.join(row) for row in self.to_rows())


def empty_grid(size: int, blocks: Optional[Iterable[Tuple[int, int]]] = None,
               symmetric: bool = True) -> Grid:
    """Create an unlettered grid.

    Args:
        size: Grid dimension
        blocks: Block coordinates; all squares are open when omitted
        symmetric: Add the 180 degree partner of every block

    Returns:
        A grid with its entries derived
    """
    coords = set(blocks or ())
    if symmetric:
        coords |= {(size - 1 - r, size - 1 - c) for r, c in coords}
    return Grid(size, sorted(coords))
