"""
Export module for crossword puzzles.
Writes and reads the canonical JSON, Across Lite and ipuz formats.
"""

import logging
import os
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from crossgen.ipuz import encode_ipuz, parse_ipuz
from crossgen.puz import decode_puz, encode_puz
from crossgen.puzzle import Puzzle
from crossgen.record import PuzzleRecord, encode_json, record_from_json, record_from_puzzle


ENCODERS: Dict[str, Callable[[PuzzleRecord], bytes]] = {
    'json': encode_json,
    'puz': encode_puz,
    'ipuz': encode_ipuz,
}

DECODERS: Dict[str, Callable[[bytes], PuzzleRecord]] = {
    'json': record_from_json,
    'puz': decode_puz,
    'ipuz': parse_ipuz,
}

SUPPORTED_FORMATS = tuple(ENCODERS)


def detect_format(path: str) -> str:
    """Format name from a file extension."""
    extension = os.path.splitext(path)[1].lstrip('.').lower()
    if extension not in DECODERS:
        raise ValueError(f"Unsupported format: {extension or path}")
    return extension


def encode(record: PuzzleRecord, format_type: str) -> bytes:
    format_type = format_type.lower()
    if format_type not in ENCODERS:
        raise ValueError(f"Unsupported format: {format_type}")
    return ENCODERS[format_type](record)


def read_record(path: str, format_type: Optional[str] = None) -> PuzzleRecord:
    """Load a puzzle file in any supported format."""
    format_type = (format_type or detect_format(path)).lower()
    if format_type not in DECODERS:
        raise ValueError(f"Unsupported format: {format_type}")
    with open(path, 'rb') as f:
        return DECODERS[format_type](f.read())


class ExportManager:
    """Manages export of crossword puzzles to various formats."""

    def __init__(self, output_dir: str = "output"):
        """Initialize export manager.

        Args:
            output_dir: Directory to save exported files
        """
        self.output_dir = output_dir
        self.logger = logging.getLogger(__name__)
        os.makedirs(output_dir, exist_ok=True)

    def export(self, puzzle: Union[Puzzle, PuzzleRecord], format_type: str,
               filename: Optional[str] = None) -> str:
        """Export puzzle to specified format.

        Args:
            puzzle: Assembled puzzle or canonical record
            format_type: Export format (json, puz, ipuz)
            filename: Optional filename (auto-generated if not provided)

        Returns:
            Path to exported file

        Raises:
            SerializationValidationError: If the puzzle fails validation;
                nothing is written
        """
        format_type = format_type.lower()
        record = puzzle if isinstance(puzzle, PuzzleRecord) else record_from_puzzle(puzzle)

        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            stem = f"crossword_{timestamp}_{record.id[:8]}" if record.id else f"crossword_{timestamp}"
            filename = f"{stem}.{format_type}"

        data = encode(record, format_type)

        output_path = os.path.join(self.output_dir, filename)
        with open(output_path, 'wb') as f:
            f.write(data)

        self.logger.info(f"Exported {format_type.upper()} to {output_path}")
        return output_path

    def export_all(self, puzzle: Union[Puzzle, PuzzleRecord],
                   formats: Optional[List[str]] = None,
                   basename: Optional[str] = None) -> Dict[str, str]:
        """Export to several formats sharing one file stem."""
        record = puzzle if isinstance(puzzle, PuzzleRecord) else record_from_puzzle(puzzle)
        if basename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            basename = f"crossword_{timestamp}_{record.id[:8]}" if record.id else f"crossword_{timestamp}"

        return {
            format_type: self.export(record, format_type, f"{basename}.{format_type}")
            for format_type in (formats or SUPPORTED_FORMATS)
        }
