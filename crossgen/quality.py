"""
Quality analysis module for crossword puzzles.
Structural checks and fill metrics over a canonical record.
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from crossgen.grid import is_connected, is_rotationally_symmetric, scan_entries, short_runs
from crossgen.lexicon import WordIndex
from crossgen.puzzle import PLACEHOLDER_CLUE
from crossgen.record import PuzzleRecord


@dataclass
class QualityThresholds:
    """Limits beyond which a metric produces a warning."""
    max_three_letter_percent: float = 20.0
    max_black_square_percent: float = 17.0
    min_average_word_length: float = 4.5
    min_average_word_score: float = 40.0


@dataclass
class QualityMetrics:
    total_words: int = 0
    average_word_length: float = 0.0
    three_letter_word_percent: float = 0.0
    black_square_percent: float = 0.0
    longest_word: int = 0
    shortest_word: int = 0
    unique_letters: int = 0
    unchecked_cells: int = 0
    average_word_score: Optional[float] = None


@dataclass
class QualityReport:
    """Result of analysing a puzzle."""
    overall_score: float = 0.0
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    metrics: QualityMetrics = field(default_factory=QualityMetrics)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'overall_score': self.overall_score,
            'valid': self.valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'metrics': asdict(self.metrics),
        }


class QualityAnalyzer:
    """Analyzer for crossword puzzle structure and fill."""

    def __init__(self, index: Optional[WordIndex] = None,
                 thresholds: Optional[QualityThresholds] = None):
        self.index = index
        self.thresholds = thresholds or QualityThresholds()
        self.logger = logging.getLogger(__name__)

    def analyze(self, record: PuzzleRecord) -> QualityReport:
        """Check structure and clues, compute metrics and an overall score."""
        report = QualityReport()
        blocks = record.blocks()
        _, entries = scan_entries(blocks)

        if not is_rotationally_symmetric(blocks):
            report.errors.append("Grid lacks 180° rotational symmetry")
        if not is_connected(blocks):
            report.errors.append("Grid has isolated sections")
        for direction, row, col, length in short_runs(blocks):
            report.errors.append(f"{length}-letter {direction} run at ({row}, {col})")

        answers = {}
        for entry in entries:
            answers[(entry.number, entry.direction)] = ''.join(
                record.grid[r][c].letter for r, c in entry.cells
            )

        duplicates = sorted(word for word, n in Counter(answers.values()).items() if n > 1)
        if duplicates:
            report.errors.append(f"Duplicate answers found: {', '.join(duplicates)}")

        self._check_clues(record, answers, report)
        report.metrics = self._calculate_metrics(record, entries, answers)
        self._check_thresholds(report)

        report.valid = not report.errors
        report.overall_score = self._overall_score(report)
        self.logger.info(
            f"Quality analysis complete. Overall score: {report.overall_score:.1f}, "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report

    def _check_clues(self, record: PuzzleRecord, answers: Dict, report: QualityReport):
        clues = {(clue.number, clue.direction): clue for clue in record.clues_across + record.clues_down}

        for key, answer in answers.items():
            label = f"{key[0]}-{key[1].value}"
            clue = clues.get(key)
            if clue is None:
                report.errors.append(f"Entry {label} has no clue")
            elif clue.answer != answer:
                report.errors.append(f"Clue {label} answer {clue.answer} does not match grid {answer}")
            elif not clue.text.strip() or clue.text == PLACEHOLDER_CLUE:
                report.warnings.append(f"Entry {label} has a placeholder clue")

        for key in clues:
            if key not in answers:
                report.errors.append(f"Clue {key[0]}-{key[1].value} has no matching entry")

    def _calculate_metrics(self, record: PuzzleRecord, entries, answers: Dict) -> QualityMetrics:
        metrics = QualityMetrics()
        lengths = [entry.length for entry in entries]
        cells = record.width * record.height
        block_count = sum(cell.is_block for row in record.grid for cell in row)

        metrics.total_words = len(entries)
        metrics.black_square_percent = 100.0 * block_count / cells if cells else 0.0
        if lengths:
            metrics.average_word_length = sum(lengths) / len(lengths)
            metrics.three_letter_word_percent = 100.0 * lengths.count(3) / len(lengths)
            metrics.longest_word = max(lengths)
            metrics.shortest_word = min(lengths)

        metrics.unique_letters = len({
            cell.letter for row in record.grid for cell in row if not cell.is_block
        })

        covered = Counter(coord for entry in entries for coord in entry.cells)
        metrics.unchecked_cells = sum(
            1 for r, row in enumerate(record.grid) for c, cell in enumerate(row)
            if not cell.is_block and covered[(r, c)] < 2
        )

        if self.index is not None and answers:
            scores = [self.index.score_of(word) for word in answers.values()]
            known = [score for score in scores if score is not None]
            if known:
                metrics.average_word_score = sum(known) / len(known)
        return metrics

    def _check_thresholds(self, report: QualityReport):
        metrics = report.metrics
        limits = self.thresholds

        if metrics.three_letter_word_percent > limits.max_three_letter_percent:
            report.warnings.append(
                f"High 3-letter word percentage: {metrics.three_letter_word_percent:.1f}% "
                f"(max: {limits.max_three_letter_percent:.1f}%)"
            )
        if metrics.black_square_percent > limits.max_black_square_percent:
            report.warnings.append(
                f"High black square density: {metrics.black_square_percent:.1f}% "
                f"(max: {limits.max_black_square_percent:.1f}%)"
            )
        if metrics.total_words and metrics.average_word_length < limits.min_average_word_length:
            report.warnings.append(
                f"Low average word length: {metrics.average_word_length:.1f} "
                f"(min: {limits.min_average_word_length:.1f})"
            )
        if metrics.average_word_score is not None and metrics.average_word_score < limits.min_average_word_score:
            report.warnings.append(
                f"Low average word score: {metrics.average_word_score:.1f} "
                f"(min: {limits.min_average_word_score:.1f})"
            )
        if metrics.unchecked_cells:
            report.warnings.append(f"{metrics.unchecked_cells} cells are not crossed by two entries")

    @staticmethod
    def _overall_score(report: QualityReport) -> float:
        score = 100.0 - 20.0 * len(report.errors) - 5.0 * len(report.warnings)
        if report.metrics.average_word_score is not None:
            score = 0.7 * score + 0.3 * min(100.0, report.metrics.average_word_score)
        return max(0.0, min(100.0, score))


def analyze_record(record: PuzzleRecord, index: Optional[WordIndex] = None) -> QualityReport:
    """Convenience wrapper around QualityAnalyzer."""
    return QualityAnalyzer(index).analyze(record)
