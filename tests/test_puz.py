"""Tests for the Across Lite binary format."""

import struct

import pytest

from crossgen.exceptions import SerializationValidationError
from crossgen.grid import Direction
from crossgen.puz import (
    HEADER_SIZE, PuzStrings, checksum_region, cib_checksum, decode_puz, encode_puz,
)


class TestChecksums:
    def test_checksum_region(self):
        assert checksum_region(b"") == 0
        assert checksum_region(b"\x01") == 1
        assert checksum_region(b"AB") == 0x8062

    def test_checksum_chains(self):
        assert checksum_region(b"B", checksum_region(b"A")) == checksum_region(b"AB")

    def test_cib_checksum(self):
        assert cib_checksum(3, 3, 6) == 0x6200

    def test_strings_checksum_skips_empty_header_strings(self):
        with_empty = PuzStrings(b"T", b"", b"", [b"Clue"], b"")
        expected = checksum_region(b"Clue", checksum_region(b"T\x00"))
        assert with_empty.checksum() == expected


class TestEncode:
    def test_header_layout(self, lattice_record):
        data = encode_puz(lattice_record)
        assert HEADER_SIZE == 0x34
        assert data[0x02:0x0E] == b"ACROSS&DOWN\x00"
        assert data[0x18:0x1C] == b"1.3\x00"
        assert data[0x2C] == 5
        assert data[0x2D] == 5
        assert struct.unpack_from("<HHH", data, 0x2E) == (6, 1, 0)
        assert struct.unpack_from("<H", data, 0x0E)[0] == cib_checksum(5, 5, 6)

    def test_solution_and_state(self, lattice_record):
        data = encode_puz(lattice_record)
        assert data[0x34:0x34 + 25] == b"SMART" + b"H.E.H" + b"AGREE" + b"F.I.G" + b"TWEEN"
        assert data[0x34 + 25:0x34 + 50] == b"-----" + b"-.-.-" + b"-----" + b"-.-.-" + b"-----"

    def test_strings_in_clue_order(self, lattice_record):
        data = encode_puz(lattice_record)
        strings = data[0x34 + 50:].split(b"\x00")
        assert strings[:3] == [b"Lattice", b"Tester", "© Tester".encode("iso-8859-1")]
        assert strings[3:9] == [
            b"Clever", b"Elevator passage", b"Eagle's nest",
            b"Anglo-Saxon noble", b"Go along with", b"Preteen",
        ]

    def test_every_entry_needs_a_clue(self, lattice_record):
        lattice_record.clues_down.pop()
        with pytest.raises(SerializationValidationError, match="missing: 3-down"):
            encode_puz(lattice_record)

    def test_unencodable_text(self, lattice_record):
        lattice_record.clues_across[0].text = "Clever ☃"
        with pytest.raises(SerializationValidationError, match="clue 1-across cannot be encoded"):
            encode_puz(lattice_record)

    def test_invalid_record(self, lattice_record):
        lattice_record.title = ""
        with pytest.raises(SerializationValidationError, match="title is required"):
            encode_puz(lattice_record)


class TestDecode:
    def test_round_trip(self, lattice_record):
        decoded = decode_puz(encode_puz(lattice_record))
        assert decoded.title == "Lattice"
        assert decoded.author == "Tester"
        assert decoded.copyright == "© Tester"
        assert decoded.solution_rows() == lattice_record.solution_rows()
        texts = {(c.number, c.direction): c.text for c in decoded.ordered_clues()}
        assert texts[(2, Direction.DOWN)] == "Eagle's nest"
        assert texts[(5, Direction.ACROSS)] == "Preteen"
        assert [c.answer for c in decoded.clues_down] == ["SHAFT", "AERIE", "THEGN"]

    def test_notes_survive(self, lattice_record):
        lattice_record.notes = "Theme: words"
        assert decode_puz(encode_puz(lattice_record)).notes == "Theme: words"

    def test_tampered_solution(self, lattice_record):
        data = bytearray(encode_puz(lattice_record))
        data[0x34] = ord("X")
        with pytest.raises(SerializationValidationError, match="global checksum mismatch"):
            decode_puz(bytes(data))
        assert decode_puz(bytes(data), verify=False).grid[0][0].letter == "X"

    def test_tampered_clue(self, lattice_record):
        data = encode_puz(lattice_record).replace(b"Preteen", b"Pretean")
        with pytest.raises(SerializationValidationError, match="checksum mismatch"):
            decode_puz(data)

    def test_circles_in_gext(self, lattice_record):
        lattice_record.grid[2][2].is_circled = True
        data = encode_puz(lattice_record)
        assert b"GEXT" in data
        assert decode_puz(data).circled() == {(2, 2)}

    def test_not_a_puz_file(self):
        with pytest.raises(SerializationValidationError, match="magic"):
            decode_puz(b"hello world")

    def test_truncated(self, lattice_record):
        data = encode_puz(lattice_record)
        with pytest.raises(SerializationValidationError):
            decode_puz(data[:0x40])
