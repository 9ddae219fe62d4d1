"""
Error types raised by the crossword generation engine.
"""

from typing import List, Optional


class CrosswordError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(CrosswordError):
    """Invalid generation request (bad size, difficulty, budget...)."""


class CorpusFormatError(CrosswordError):
    """The word corpus could not be read or contains a malformed line."""

    def __init__(self, message: str, line_number: Optional[int] = None,
                 line: Optional[str] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number
        self.line = line


class GridGenerationError(CrosswordError):
    """No acceptable block pattern could be produced."""


class NoSolutionError(CrosswordError):
    """The fill solver exhausted its retry budget."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class ClueProviderError(CrosswordError):
    """Clue generation failed. Never fatal for puzzle assembly."""


class SerializationValidationError(CrosswordError):
    """A puzzle record is missing required fields or is inconsistent."""

    def __init__(self, problems: List[str]):
        super().__init__("; ".join(problems))
        self.problems = list(problems)
