"""
Constraint satisfaction solver for crossword filling.
Backtracking search with most-constrained-first ordering, forward checking
and seeded restarts.
"""

import json
import logging
import random
import time
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from itertools import groupby
from typing import Any, Dict, List, Optional, Tuple

from crossgen.config import Difficulty, GenerationConfig
from crossgen.exceptions import ConfigurationError, NoSolutionError
from crossgen.grid import Entry, Grid
from crossgen.lexicon import Word, WordIndex


# Score floor added on top of min_score: (entries up to short_length, longer entries)
DEFAULT_FLOOR_BONUS: Dict[Difficulty, Tuple[int, int]] = {
    Difficulty.EASY: (20, 10),
    Difficulty.MEDIUM: (0, 0),
    Difficulty.HARD: (0, 0),
    Difficulty.EXPERT: (0, 0),
}

_DIFFICULTY_ORDER = [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD, Difficulty.EXPERT]


@dataclass
class DifficultyPolicy:
    """Maps difficulty to the effective score floor of an entry.

    Easier puzzles raise the floor, short entries more than long ones. The
    bonuses never increase from Easy towards Expert, so a harder difficulty
    always sees a superset of the words an easier one sees.
    """
    short_length: int = 4
    bonuses: Dict[Difficulty, Tuple[int, int]] = field(
        default_factory=lambda: dict(DEFAULT_FLOOR_BONUS)
    )

    def __post_init__(self):
        for easier, harder in zip(_DIFFICULTY_ORDER, _DIFFICULTY_ORDER[1:]):
            for a, b in zip(self.bonuses[easier], self.bonuses[harder]):
                if a < b:
                    raise ConfigurationError(
                        f"floor bonus for {harder} exceeds {easier}; pools must widen with difficulty"
                    )

    def floor(self, difficulty: Difficulty, min_score: int, length: int) -> int:
        short_bonus, long_bonus = self.bonuses[difficulty]
        return min_score + (short_bonus if length <= self.short_length else long_bonus)


@dataclass
class SolverConfig:
    """Configuration for the fill solver."""
    min_score: int = 50
    max_retries: int = 100              # full restarts
    backtrack_limit: int = 20000        # backtracks allowed per attempt
    seed: int = 0
    difficulty: Difficulty = Difficulty.MEDIUM
    unique_words: bool = False
    use_forward_checking: bool = True
    record_log: bool = False

    @classmethod
    def from_generation_config(cls, config: GenerationConfig) -> 'SolverConfig':
        return cls(
            min_score=config.min_score,
            max_retries=config.max_retries,
            backtrack_limit=config.backtrack_limit,
            seed=config.seed or 0,
            difficulty=config.difficulty,
            unique_words=config.unique_words,
        )


@dataclass
class SolverState:
    """Counters for the current solve."""
    attempts: int = 0
    placements: int = 0
    backtracks: int = 0
    attempt_backtracks: int = 0
    forward_checks: int = 0
    start_time: float = 0.0


class _BudgetExhausted(Exception):
    """Raised inside the search when an attempt runs out of backtracks."""


class FillSolver:
    """Fills a grid skeleton with words from a WordIndex."""

    def __init__(self, index: WordIndex, config: Optional[SolverConfig] = None,
                 policy: Optional[DifficultyPolicy] = None):
        self.index = index
        self.config = config or SolverConfig()
        self.policy = policy or DifficultyPolicy()
        self.logger = logging.getLogger(__name__)

        if self.config.max_retries < 1:
            raise ConfigurationError(f"max_retries must be at least 1, got {self.config.max_retries}")
        if self.config.backtrack_limit < 1:
            raise ConfigurationError(
                f"backtrack_limit must be at least 1, got {self.config.backtrack_limit}"
            )

        self.state = SolverState()
        self.construction_log: List[Dict[str, Any]] = []
        self.trace_file: Optional[str] = None

        self._grid: Optional[Grid] = None
        self._entries: List[Entry] = []
        self._crossings: List[List[int]] = []
        self._floors: List[int] = []
        self._assigned: Dict[int, str] = {}
        self._used: Counter = Counter()
        self._counts: Dict[Tuple[str, int], int] = {}
        self._rng = random.Random(self.config.seed)

    def solve(self, skeleton: Grid) -> Grid:
        """Fill a copy of the skeleton.

        Args:
            skeleton: Grid with its block layout fixed; letters already present
                are kept as given

        Returns:
            A fully lettered grid

        Raises:
            NoSolutionError: If every restart fails
            ConfigurationError: If an open cell belongs to no entry
        """
        self._prepare(skeleton)
        self.state = SolverState(start_time=time.time())
        self.construction_log = []

        self.logger.info(
            f"Filling {skeleton.size}x{skeleton.size} grid with {len(self._entries)} entries "
            f"(min score {self.config.min_score}, difficulty {self.config.difficulty})"
        )

        for attempt in range(self.config.max_retries):
            self.state.attempts = attempt + 1
            self.state.attempt_backtracks = 0
            self._grid = skeleton.clone()
            self._assigned = {}
            self._used = Counter()
            self._rng = random.Random(self.config.seed + attempt)

            try:
                if self._search():
                    self._log_construction_step('SOLVED', {'attempt': self.state.attempts})
                    self.logger.info(
                        f"Grid filled on attempt {self.state.attempts} "
                        f"({self.state.placements} placements, {self.state.backtracks} backtracks)"
                    )
                    return self._grid
                reason = 'search exhausted'
            except _BudgetExhausted:
                reason = 'backtrack limit reached'

            self._log_construction_step('RESTART', {'attempt': self.state.attempts, 'reason': reason})
            self.logger.info(f"Attempt {self.state.attempts}/{self.config.max_retries} failed: {reason}")

        raise NoSolutionError(
            f"no solution found within retry budget of {self.config.max_retries} attempts",
            attempts=self.state.attempts,
        )

    def _prepare(self, skeleton: Grid):
        """Compute entries, crossings and score floors once per skeleton."""
        self._entries = list(skeleton.entries)

        cell_entries: Dict[Tuple[int, int], List[int]] = defaultdict(list)
        for i, entry in enumerate(self._entries):
            for coord in entry.cells:
                cell_entries[coord].append(i)

        for row in range(skeleton.size):
            for col in range(skeleton.size):
                if not skeleton.cells[row][col].is_black and (row, col) not in cell_entries:
                    raise ConfigurationError(f"open cell ({row}, {col}) belongs to no entry")

        self._crossings = []
        for i, entry in enumerate(self._entries):
            crossing = sorted({j for coord in entry.cells for j in cell_entries[coord] if j != i})
            self._crossings.append(crossing)

        self._floors = [
            self.policy.floor(self.config.difficulty, self.config.min_score, entry.length)
            for entry in self._entries
        ]
        self._counts = {}

    def _search(self) -> bool:
        choice = self._select_entry()
        if choice is None:
            return True

        i, candidates = choice
        entry = self._entries[i]
        for word in self._order_candidates(candidates):
            if self.config.unique_words and self._used[word.text]:
                continue

            changed = self._place(i, word.text)
            self.state.placements += 1
            if self.config.record_log:
                self._log_construction_step('ASSIGN', {'entry': entry.key, 'word': word.text})

            if self._forward_check(i) and self._search():
                return True

            self._unplace(i, changed)
            self.state.backtracks += 1
            self.state.attempt_backtracks += 1
            if self.config.record_log:
                self._log_construction_step('BACKTRACK', {'entry': entry.key, 'word': word.text})
            if self.state.attempt_backtracks >= self.config.backtrack_limit:
                raise _BudgetExhausted()

        return False

    def _select_entry(self) -> Optional[Tuple[int, List[Word]]]:
        """Most constrained unassigned entry, longer first on ties."""
        best = None
        best_key = None
        for i, entry in enumerate(self._entries):
            if i in self._assigned:
                continue
            count = self._count(i)
            key = (count, -entry.length, i)
            if best_key is None or key < best_key:
                best, best_key = i, key
            if count == 0:
                break

        if best is None:
            return None
        pattern = self._grid.pattern_of(self._entries[best])
        return best, self.index.match_scored(pattern, self._floors[best])

    def _count(self, i: int) -> int:
        key = (self._grid.pattern_of(self._entries[i]), self._floors[i])
        count = self._counts.get(key)
        if count is None:
            count = self.index.count_matches(*key)
            self._counts[key] = count
        return count

    def _order_candidates(self, candidates: List[Word]) -> List[Word]:
        """Keep score order, shuffle each run of equal scores."""
        ordered = []
        for _, group in groupby(candidates, key=lambda w: w.score):
            tied = list(group)
            self._rng.shuffle(tied)
            ordered.extend(tied)
        return ordered

    def _forward_check(self, i: int) -> bool:
        """Every crossing entry still has at least one candidate."""
        if not self.config.use_forward_checking:
            return True
        self.state.forward_checks += 1
        return all(
            self._count(j) > 0 for j in self._crossings[i] if j not in self._assigned
        )

    def _place(self, i: int, word: str) -> List[Tuple[int, int]]:
        changed = []
        for pos, (row, col) in enumerate(self._entries[i].cells):
            cell = self._grid.cells[row][col]
            if cell.letter is None:
                cell.letter = word[pos]
                changed.append((row, col))
        self._assigned[i] = word
        self._used[word] += 1
        return changed

    def _unplace(self, i: int, changed: List[Tuple[int, int]]):
        for row, col in changed:
            self._grid.cells[row][col].letter = None
        word = self._assigned.pop(i)
        self._used[word] -= 1

    def _log_construction_step(self, action: str, details: Dict[str, Any]):
        """Log a construction step."""
        step = {
            'attempt': self.state.attempts,
            'placements': self.state.placements,
            'action': action,
            'timestamp': time.time() - self.state.start_time,
            'details': details,
        }
        self.construction_log.append(step)

        if self.trace_file:
            with open(self.trace_file, 'a', encoding='utf-8') as f:
                f.write(json.dumps(step) + '\n')

    def enable_tracing(self, trace_file: str):
        """Write every construction step to a JSON-lines file."""
        self.trace_file = trace_file
        self.config.record_log = True

        with open(trace_file, 'w', encoding='utf-8') as f:
            metadata = {
                'min_score': self.config.min_score,
                'max_retries': self.config.max_retries,
                'backtrack_limit': self.config.backtrack_limit,
                'seed': self.config.seed,
                'difficulty': self.config.difficulty.value,
                'index_size': len(self.index),
            }
            f.write(json.dumps({'type': 'METADATA', 'data': metadata}) + '\n')

    def get_construction_log(self) -> List[Dict[str, Any]]:
        """Get the construction log."""
        return self.construction_log

    def get_solver_statistics(self) -> Dict[str, Any]:
        """Get solver performance statistics."""
        elapsed_time = time.time() - self.state.start_time if self.state.start_time else 0.0

        return {
            'attempts': self.state.attempts,
            'placements': self.state.placements,
            'backtracks': self.state.backtracks,
            'forward_checks': self.state.forward_checks,
            'elapsed_time': elapsed_time,
            'placements_per_second': self.state.placements / max(elapsed_time, 0.001),
            'is_complete': self._grid is not None and self._grid.is_complete(),
        }


def fill_grid(skeleton: Grid, index: WordIndex, **kwargs) -> Grid:
    """Fill a skeleton with a solver built from keyword settings."""
    return FillSolver(index, SolverConfig(**kwargs)).solve(skeleton)


def find_dead_entries(skeleton: Grid, index: WordIndex, config: Optional[SolverConfig] = None,
                      policy: Optional[DifficultyPolicy] = None) -> List[Dict[str, Any]]:
    """Entries with no candidate at all, before any search."""
    config = config or SolverConfig()
    policy = policy or DifficultyPolicy()

    dead = []
    for entry in skeleton.entries:
        floor = policy.floor(config.difficulty, config.min_score, entry.length)
        pattern = skeleton.pattern_of(entry)
        if index.count_matches(pattern, floor) == 0:
            dead.append({'entry': entry.key, 'pattern': pattern, 'min_score': floor})
    return dead
