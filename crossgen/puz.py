"""
Across Lite (.puz) binary format.

Layout, all integers little-endian::

    0x00  global checksum          (2)
    0x02  "ACROSS&DOWN\\0"          (12)
    0x0E  board info checksum      (2)
    0x10  masked checksums, low    (4)
    0x14  masked checksums, high   (4)
    0x18  version "1.3\\0"          (4)
    0x1C  reserved                 (2)
    0x1E  scrambled checksum       (2)
    0x20  reserved                 (12)
    0x2C  width, height            (1 + 1)
    0x2E  clue count               (2)
    0x30  puzzle type              (2)
    0x32  scrambled state          (2)
    0x34  solution, state, strings, extra sections
"""

import logging
import struct
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from crossgen.exceptions import SerializationValidationError
from crossgen.grid import Direction, scan_entries
from crossgen.record import PuzzleRecord, build_record


FILE_MAGIC = b'ACROSS&DOWN\x00'
VERSION = b'1.3\x00'
MASK_STRING = b'ICHEATED'
HEADER_FORMAT = '<H12sH4s4s4sHH12sBBHHH'
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
BOARD_INFO_OFFSET = 0x2C

BLOCK = b'.'
EMPTY = b'-'
PUZZLE_TYPE_NORMAL = 0x0001
SCRAMBLED_NONE = 0x0000
ENCODING = 'iso-8859-1'

GEXT_CIRCLED = 0x80

logger = logging.getLogger(__name__)


def checksum_region(data: bytes, cksum: int = 0) -> int:
    """Rotate the 16-bit sum right one bit, then add each byte."""
    for byte in data:
        if cksum & 0x0001:
            cksum = (cksum >> 1) + 0x8000
        else:
            cksum = cksum >> 1
        cksum = (cksum + byte) & 0xFFFF
    return cksum


def board_info(width: int, height: int, clue_count: int,
               puzzle_type: int = PUZZLE_TYPE_NORMAL,
               scrambled: int = SCRAMBLED_NONE) -> bytes:
    """The eight header bytes covered by the board info checksum."""
    return struct.pack('<BBHHH', width, height, clue_count, puzzle_type, scrambled)


def cib_checksum(width: int, height: int, clue_count: int) -> int:
    return checksum_region(board_info(width, height, clue_count))


@dataclass
class PuzStrings:
    """The string section of a .puz file, already encoded."""
    title: bytes
    author: bytes
    copyright: bytes
    clues: List[bytes]
    notes: bytes

    def checksum(self, cksum: int = 0) -> int:
        """Text checksum: header strings and notes with their terminators."""
        for value in (self.title, self.author, self.copyright):
            if value:
                cksum = checksum_region(value + b'\x00', cksum)
        for clue in self.clues:
            cksum = checksum_region(clue, cksum)
        if self.notes:
            cksum = checksum_region(self.notes + b'\x00', cksum)
        return cksum

    def to_bytes(self) -> bytes:
        parts = [self.title, self.author, self.copyright] + self.clues + [self.notes]
        return b''.join(part + b'\x00' for part in parts)


@dataclass
class PuzChecksums:
    global_checksum: int
    cib: int
    masked_low: bytes
    masked_high: bytes


def compute_checksums(info: bytes, solution: bytes, state: bytes, strings: PuzStrings) -> PuzChecksums:
    """All header checksums for the given file sections."""
    cib = checksum_region(info)

    cksum = checksum_region(solution, cib)
    cksum = checksum_region(state, cksum)
    global_checksum = strings.checksum(cksum)

    parts = [cib, checksum_region(solution), checksum_region(state), strings.checksum()]
    masked_low = bytes(MASK_STRING[i] ^ (value & 0xFF) for i, value in enumerate(parts))
    masked_high = bytes(MASK_STRING[i + 4] ^ (value >> 8) for i, value in enumerate(parts))

    return PuzChecksums(global_checksum, cib, masked_low, masked_high)


def _encode_text(value: Optional[str], field: str, problems: List[str]) -> bytes:
    try:
        return (value or '').encode(ENCODING)
    except UnicodeEncodeError:
        problems.append(f"{field} cannot be encoded as {ENCODING}")
        return b''


def _extra_section(name: bytes, payload: bytes) -> bytes:
    return (name + struct.pack('<HH', len(payload), checksum_region(payload))
            + payload + b'\x00')


def encode_puz(record: PuzzleRecord) -> bytes:
    """Encode a record as Across Lite bytes.

    Raises:
        SerializationValidationError: If the record cannot be represented
    """
    record.validate()
    problems = []

    if record.width > 255 or record.height > 255:
        problems.append(f"grid {record.width}x{record.height} exceeds 255x255")

    _, entries = scan_entries(record.blocks())
    clued = {(clue.number, clue.direction) for clue in record.ordered_clues()}
    missing = [f"{e.number}-{e.direction.value}" for e in entries if (e.number, e.direction) not in clued]
    if missing:
        problems.append(f"every entry needs a clue, missing: {', '.join(missing)}")

    ordered = record.ordered_clues()
    strings = PuzStrings(
        title=_encode_text(record.title, 'title', problems),
        author=_encode_text(record.author, 'author', problems),
        copyright=_encode_text(record.copyright, 'copyright', problems),
        clues=[_encode_text(clue.text, f"clue {clue.number}-{clue.direction.value}", problems)
               for clue in ordered],
        notes=_encode_text(record.notes, 'notes', problems),
    )
    solution = _encode_text(''.join(record.solution_rows('.')), 'solution', problems)

    if problems:
        raise SerializationValidationError(problems)

    state = b''.join(BLOCK if cell.is_block else EMPTY for row in record.grid for cell in row)
    info = board_info(record.width, record.height, len(ordered))
    sums = compute_checksums(info, solution, state, strings)

    header = struct.pack(
        HEADER_FORMAT,
        sums.global_checksum,
        FILE_MAGIC,
        sums.cib,
        sums.masked_low,
        sums.masked_high,
        VERSION,
        0,
        0,
        b'\x00' * 12,
        record.width,
        record.height,
        len(ordered),
        PUZZLE_TYPE_NORMAL,
        SCRAMBLED_NONE,
    )

    body = header + solution + state + strings.to_bytes()

    circled = record.circled()
    if circled:
        markup = bytes(
            GEXT_CIRCLED if (r, c) in circled else 0
            for r in range(record.height) for c in range(record.width)
        )
        body += _extra_section(b'GEXT', markup)

    return body


def _read_string(data: bytes, pos: int) -> Tuple[bytes, int]:
    end = data.find(b'\x00', pos)
    if end < 0:
        raise SerializationValidationError([f"unterminated string at offset {pos}"])
    return data[pos:end], end + 1


def decode_puz(data: bytes, verify: bool = True) -> PuzzleRecord:
    """Decode Across Lite bytes into a canonical record.

    Args:
        data: File contents
        verify: Reject files whose checksums do not match

    Raises:
        SerializationValidationError: If the file is malformed
    """
    start = data.find(FILE_MAGIC)
    if start < 2:
        raise SerializationValidationError(["not an Across Lite file: magic string missing"])
    data = data[start - 2:]
    if len(data) < HEADER_SIZE:
        raise SerializationValidationError(["file too short for header"])

    (global_checksum, _, cib, masked_low, masked_high, _, _, _, _,
     width, height, clue_count, puzzle_type, scrambled) = struct.unpack_from(HEADER_FORMAT, data)

    if scrambled != SCRAMBLED_NONE:
        raise SerializationValidationError(["scrambled puzzles are not supported"])

    size = width * height
    pos = HEADER_SIZE
    solution = data[pos:pos + size]
    state = data[pos + size:pos + 2 * size]
    if len(state) != size:
        raise SerializationValidationError(["file too short for grid"])
    pos += 2 * size

    title, pos = _read_string(data, pos)
    author, pos = _read_string(data, pos)
    copyright_text, pos = _read_string(data, pos)
    clues = []
    for _ in range(clue_count):
        clue, pos = _read_string(data, pos)
        clues.append(clue)
    notes = b''
    if pos < len(data):
        notes, pos = _read_string(data, pos)

    strings = PuzStrings(title, author, copyright_text, clues, notes)
    extras = _read_extras(data, pos)

    if verify:
        info = data[BOARD_INFO_OFFSET:HEADER_SIZE]
        expected = compute_checksums(info, solution, state, strings)
        problems = []
        if expected.cib != cib:
            problems.append("board info checksum mismatch")
        if expected.global_checksum != global_checksum:
            problems.append("global checksum mismatch")
        if expected.masked_low != masked_low or expected.masked_high != masked_high:
            problems.append("masked checksum mismatch")
        if problems:
            raise SerializationValidationError(problems)

    text = solution.decode(ENCODING)
    grid: List[List[Optional[str]]] = [
        [None if ch == '.' else ch for ch in text[r * width:(r + 1) * width]]
        for r in range(height)
    ]

    circled: Set[Tuple[int, int]] = set()
    markup = extras.get(b'GEXT')
    if markup:
        circled = {(i // width, i % width) for i, flags in enumerate(markup[:size]) if flags & GEXT_CIRCLED}

    _, entries = scan_entries([[value is None for value in row] for row in grid])
    if len(entries) != clue_count:
        raise SerializationValidationError(
            [f"file declares {clue_count} clues but its grid has {len(entries)} entries"]
        )
    rank = {Direction.ACROSS: 0, Direction.DOWN: 1}
    ordered = sorted(entries, key=lambda e: (e.number, rank[e.direction]))
    clue_texts = {
        (entry.number, entry.direction): clue.decode(ENCODING)
        for entry, clue in zip(ordered, clues)
    }

    if puzzle_type != PUZZLE_TYPE_NORMAL:
        logger.warning(f"Unexpected puzzle type 0x{puzzle_type:04x}")

    return build_record(
        grid,
        clue_texts,
        circled,
        id='',
        title=title.decode(ENCODING),
        author=author.decode(ENCODING),
        difficulty='',
        copyright=copyright_text.decode(ENCODING) or None,
        notes=notes.decode(ENCODING) or None,
    )


def _read_extras(data: bytes, pos: int) -> Dict[bytes, bytes]:
    """Extra sections (GEXT, GRBS...) keyed by name; bad checksums are skipped."""
    extras = {}
    while pos + 8 <= len(data):
        name = data[pos:pos + 4]
        length, cksum = struct.unpack_from('<HH', data, pos + 4)
        payload = data[pos + 8:pos + 8 + length]
        pos += 8 + length + 1
        if len(payload) != length:
            break
        if checksum_region(payload) != cksum:
            logger.warning(f"Ignoring {name!r} section with bad checksum")
            continue
        extras[name] = payload
    return extras
