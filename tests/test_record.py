"""Tests for the canonical puzzle record and its JSON form."""

import json
from datetime import datetime

import pytest

from crossgen.config import Difficulty
from crossgen.exceptions import SerializationValidationError
from crossgen.grid import Direction
from crossgen.puzzle import Metadata, assemble
from crossgen.record import (
    PuzzleRecord, RecordCell, build_record, encode_json, record_from_json, record_from_puzzle,
)


class TestValidate:
    def test_collects_every_problem(self):
        record = PuzzleRecord(
            id="", title=" ", author="", difficulty="", width=2, height=2,
            grid=[[RecordCell("A")]],
        )
        with pytest.raises(SerializationValidationError) as exc:
            record.validate()
        assert exc.value.problems == [
            "title is required",
            "author is required",
            "grid has 1 rows, expected 2",
            "grid row 0 has 1 cells, expected 2",
            "at least one clue is required",
        ]

    def test_valid_record(self, lattice_record):
        lattice_record.validate()


class TestBuildRecord:
    def test_numbers_and_answers(self, lattice_record):
        assert lattice_record.grid[0][2].number == 2
        assert lattice_record.grid[1][1].is_block
        assert [c.answer for c in lattice_record.clues_across] == ["SMART", "AGREE", "TWEEN"]
        assert [c.answer for c in lattice_record.clues_down] == ["SHAFT", "AERIE", "THEGN"]
        down = lattice_record.clues_down[2]
        assert (down.number, down.start_row, down.start_col, down.length) == (3, 0, 4, 5)

    def test_ordered_clues(self, lattice_record):
        keys = [(c.number, c.direction) for c in lattice_record.ordered_clues()]
        assert keys == [
            (1, Direction.ACROSS), (1, Direction.DOWN), (2, Direction.DOWN),
            (3, Direction.DOWN), (4, Direction.ACROSS), (5, Direction.ACROSS),
        ]

    def test_clue_without_entry(self):
        with pytest.raises(SerializationValidationError, match="clue 7-down has no matching entry"):
            build_record([["A", "B", "C"]], {(7, Direction.DOWN): "Nope"},
                         id="", title="t", author="a", difficulty="")

    def test_rebus_and_circles(self):
        record = build_record(
            [["ST", "A", "R"]], {(1, Direction.ACROSS): "Sky light"}, {(0, 1)},
            id="", title="t", author="a", difficulty="",
        )
        assert record.grid[0][0].letter == "S"
        assert record.grid[0][0].rebus == "ST"
        assert record.circled() == {(0, 1)}
        assert record.clues_across[0].answer == "SAR"


class TestJson:
    def test_document_keys(self, lattice_record):
        document = json.loads(encode_json(lattice_record))
        assert document["gridWidth"] == 5
        assert document["gridHeight"] == 5
        assert document["createdAt"] == "2024-03-05T10:00:00"
        assert document["grid"][1][1] == {"letter": None}
        assert document["grid"][0][0] == {"letter": "S", "number": 1}
        assert document["cluesDown"][1] == {
            "number": 2, "text": "Eagle's nest", "answer": "AERIE",
            "startRow": 0, "startCol": 2, "length": 5, "direction": "down",
        }
        assert "notes" not in document

    def test_parse_back(self, lattice_record):
        parsed = record_from_json(encode_json(lattice_record))
        assert parsed.to_dict() == lattice_record.to_dict()

    def test_invalid_record_not_encoded(self, lattice_record):
        lattice_record.author = ""
        with pytest.raises(SerializationValidationError, match="author is required"):
            encode_json(lattice_record)

    def test_malformed_json(self):
        with pytest.raises(SerializationValidationError, match="invalid canonical JSON"):
            record_from_json(b'{"title": "x"}')


class TestFromPuzzle:
    def test_record_from_assembled_puzzle(self, solved_grid):
        meta = Metadata(
            id="abc", title="Lattice", author="Tester", difficulty=Difficulty.HARD,
            theme="Words", created_at=datetime(2024, 3, 5, 9, 30),
        )
        record = record_from_puzzle(assemble(solved_grid, None, meta))
        assert record.difficulty == "hard"
        assert record.created_at == "2024-03-05T09:30:00"
        assert record.copyright == "© Tester"
        assert record.notes == "Words"
        assert record.solution_rows() == ["SMART", "H.E.H", "AGREE", "F.I.G", "TWEEN"]
        assert len(record.clues_across) == 3
        assert all(c.text == "Missing clue" for c in record.clues_down)
        record.validate()
