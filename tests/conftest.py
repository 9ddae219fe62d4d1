"""Shared fixtures: a 5x5 lattice grid and the words that fill it."""

import pytest

from crossgen.grid import Direction, Grid
from crossgen.lexicon import Word, WordIndex
from crossgen.record import build_record


# Blocks at (1,1), (1,3), (3,1), (3,3): three across and three down entries of length 5.
LATTICE = [
    ".....",
    ".#.#.",
    ".....",
    ".#.#.",
    ".....",
]

LATTICE_SOLUTION = [
    "SMART",
    "H#E#H",
    "AGREE",
    "F#I#G",
    "TWEEN",
]

LATTICE_WORDS = [
    Word("SMART", 90),
    Word("AGREE", 80),
    Word("TWEEN", 70),
    Word("SHAFT", 60),
    Word("AERIE", 50),
    Word("THEGN", 40),
]

LATTICE_CLUES = {
    (1, Direction.ACROSS): "Clever",
    (4, Direction.ACROSS): "Go along with",
    (5, Direction.ACROSS): "Preteen",
    (1, Direction.DOWN): "Elevator passage",
    (2, Direction.DOWN): "Eagle's nest",
    (3, Direction.DOWN): "Anglo-Saxon noble",
}


@pytest.fixture
def lattice_index():
    return WordIndex(LATTICE_WORDS)


@pytest.fixture
def lattice_skeleton():
    return Grid.from_rows(LATTICE)


@pytest.fixture
def solved_grid():
    return Grid.from_rows(LATTICE_SOLUTION)


@pytest.fixture
def lattice_record():
    solution = [[None if ch == '#' else ch for ch in row] for row in LATTICE_SOLUTION]
    return build_record(
        solution,
        dict(LATTICE_CLUES),
        id="0f1e2d3c-aaaa-bbbb-cccc-000000000001",
        title="Lattice",
        author="Tester",
        difficulty="medium",
        created_at="2024-03-05T10:00:00",
        copyright="© Tester",
    )


@pytest.fixture
def corpus_file(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("".join(f"{w.text};{w.score}\n" for w in LATTICE_WORDS), encoding="utf-8")
    return str(path)
