"""
Word index for crossword generation.
Loads a scored corpus and answers masked pattern queries ranked by score.
"""

import logging
import re
from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from crossgen.exceptions import CorpusFormatError


WILDCARD = '_'

_SCORE_RE = re.compile(r'^[+-]?\d+$')


@dataclass(frozen=True)
class Word:
    """A corpus word with its quality score."""
    text: str
    score: int


def _bitmask(indices: Iterable[int], size: int) -> int:
    bits = bytearray((size + 7) // 8)
    for i in indices:
        bits[i >> 3] |= 1 << (i & 7)
    return int.from_bytes(bytes(bits), 'little')


def _set_bits(mask: int) -> List[int]:
    """Positions of the set bits of mask, lowest first."""
    bits = bin(mask)[:1:-1]
    return [i for i, bit in enumerate(bits) if bit == '1']


class WordIndex:
    """Length-bucketed word index with positional letter bitmasks.

    Each bucket is sorted by score, highest first, keeping corpus order for
    equal scores. For every (position, letter) pair of a bucket the index keeps
    an integer bitmask of the words carrying that letter there, so a pattern
    query is an AND over its fixed letters. The index is never modified after
    construction and can be shared between solver runs.
    """

    def __init__(self, words: Iterable[Word] = ()):
        self.logger = logging.getLogger(__name__)

        grouped: Dict[int, List[Word]] = defaultdict(list)
        for word in words:
            text = word.text.strip().upper()
            if not text:
                continue
            grouped[len(text)].append(Word(text, int(word.score)))

        self._buckets: Dict[int, Tuple[Word, ...]] = {}
        self._neg_scores: Dict[int, List[int]] = {}
        self._letter_masks: Dict[int, Dict[Tuple[int, str], int]] = {}
        self._scores: Dict[str, int] = {}

        for length, bucket in grouped.items():
            ordered = tuple(sorted(bucket, key=lambda w: -w.score))
            self._buckets[length] = ordered
            self._neg_scores[length] = [-w.score for w in ordered]

            positions: Dict[Tuple[int, str], List[int]] = defaultdict(list)
            for i, word in enumerate(ordered):
                for pos, letter in enumerate(word.text):
                    positions[(pos, letter)].append(i)
                if word.score > self._scores.get(word.text, word.score - 1):
                    self._scores[word.text] = word.score
            self._letter_masks[length] = {
                key: _bitmask(indices, len(ordered))
                for key, indices in positions.items()
            }

        self._size = sum(len(bucket) for bucket in self._buckets.values())

    @classmethod
    def load(cls, corpus_path: str) -> 'WordIndex':
        """Load a ``WORD;SCORE`` corpus file.

        Args:
            corpus_path: Path to a UTF-8 corpus file

        Returns:
            The populated index

        Raises:
            CorpusFormatError: If the file cannot be read or a line is malformed
        """
        logger = logging.getLogger(__name__)
        try:
            with open(corpus_path, 'r', encoding='utf-8') as f:
                words = parse_corpus(f)
        except OSError as e:
            raise CorpusFormatError(f"failed to open corpus {corpus_path}: {e}") from e

        index = cls(words)
        logger.info(f"Loaded {len(index)} words from {corpus_path}")
        return index

    def words_of_length(self, length: int) -> List[Word]:
        """All words of the given length, best score first."""
        return list(self._buckets.get(length, ()))

    def match(self, pattern: str) -> List[str]:
        """Words matching pattern, where ``_`` matches any single letter."""
        return [word.text for word in self.match_scored(pattern, None)]

    def match_scored(self, pattern: str, min_score: Optional[int]) -> List[Word]:
        """Words matching pattern with ``score >= min_score``, best first."""
        bucket = self._buckets.get(len(pattern))
        if not bucket:
            return []
        mask = self._candidate_mask(pattern.upper(), min_score)
        return [bucket[i] for i in _set_bits(mask)]

    def count_matches(self, pattern: str, min_score: Optional[int] = None) -> int:
        """Number of words match_scored would return."""
        if len(pattern) not in self._buckets:
            return 0
        return bin(self._candidate_mask(pattern.upper(), min_score)).count('1')

    def _candidate_mask(self, pattern: str, min_score: Optional[int]) -> int:
        length = len(pattern)
        if min_score is None:
            limit = len(self._buckets[length])
        else:
            limit = bisect_right(self._neg_scores[length], -min_score)
        mask = (1 << limit) - 1
        masks = self._letter_masks[length]
        for pos, letter in enumerate(pattern):
            if letter == WILDCARD:
                continue
            mask &= masks.get((pos, letter), 0)
            if not mask:
                break
        return mask

    def score_of(self, word: str) -> Optional[int]:
        """Best score recorded for word, or None if absent."""
        return self._scores.get(word.upper())

    def lengths(self) -> List[int]:
        return sorted(self._buckets)

    def get_statistics(self) -> Dict[str, Any]:
        """Get index statistics."""
        scores = [w.score for bucket in self._buckets.values() for w in bucket]
        return {
            'total_words': self._size,
            'unique_words': len(self._scores),
            'by_length': {length: len(self._buckets[length]) for length in self.lengths()},
            'score_range': (min(scores), max(scores)) if scores else (0, 0),
        }

    def __len__(self) -> int:
        return self._size

    def __contains__(self, word: str) -> bool:
        return word.upper() in self._scores


def parse_corpus(lines: Iterable[str]) -> List[Word]:
    """Parse ``WORD;SCORE`` lines into words.

    Blank lines are skipped. Any malformed line aborts the whole parse.
    """
    words = []
    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue

        parts = line.split(';')
        if len(parts) != 2:
            raise CorpusFormatError(
                f"expected format 'WORD;SCORE', got '{line}'", line_number, line
            )

        text = parts[0].strip().upper()
        if not text:
            raise CorpusFormatError(f"empty word in '{line}'", line_number, line)

        score = parts[1].strip()
        if not _SCORE_RE.match(score):
            raise CorpusFormatError(f"invalid score '{score}'", line_number, line)

        words.append(Word(text, int(score)))
    return words


def save_corpus(words: Iterable[Word], file_path: str):
    """Write words in corpus format."""
    with open(file_path, 'w', encoding='utf-8') as f:
        for word in words:
            f.write(f"{word.text};{word.score}\n")


def create_sample_corpus() -> List[Word]:
    """Small built-in corpus used by sample files and benchmarks."""
    sample = {
        'AREA': 70, 'ERA': 65, 'ARE': 75, 'EAR': 72, 'ART': 78, 'RAT': 68,
        'TAR': 60, 'TEA': 74, 'EAT': 80, 'ATE': 66, 'ETA': 40, 'ONE': 82,
        'EON': 45, 'NOR': 55, 'ORE': 58, 'ROE': 42, 'TOE': 64, 'TEN': 76,
        'NET': 71, 'SET': 77, 'SEA': 73, 'ACE': 69, 'ICE': 75, 'IRE': 48,
        'ODE': 52, 'OAT': 57, 'RAN': 67, 'SAT': 63, 'STAR': 84, 'RATE': 79,
        'TEAR': 74, 'NOTE': 81, 'TONE': 77, 'STONE': 86, 'ALERT': 79,
        'ALTER': 72, 'LATER': 83, 'ARENA': 75, 'ASTER': 61, 'RATES': 70,
        'STARE': 76, 'TEARS': 73, 'NOTES': 74, 'ONSET': 68, 'SETON': 35,
    }
    return [Word(text, score) for text, score in sample.items()]
