"""
Block pattern generation.
Produces 180 degree symmetric, connected layouts with no two-letter runs.
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from crossgen.config import Difficulty
from crossgen.exceptions import GridGenerationError
from crossgen.grid import Grid, is_connected, short_runs


BLOCK_DENSITY: Dict[Difficulty, float] = {
    Difficulty.EASY: 0.06,
    Difficulty.MEDIUM: 0.08,
    Difficulty.HARD: 0.10,
    Difficulty.EXPERT: 0.12,
}

MIN_WORD_LENGTH = 3
MAX_PATTERN_ATTEMPTS = 1000


class PatternGenerator:
    """Random symmetric block layouts for a square grid."""

    def __init__(self, size: int, difficulty: Difficulty = Difficulty.MEDIUM,
                 min_word_length: int = MIN_WORD_LENGTH,
                 max_attempts: int = MAX_PATTERN_ATTEMPTS):
        self.size = size
        self.density = BLOCK_DENSITY[difficulty]
        self.min_word_length = min_word_length
        self.max_attempts = max_attempts
        self.logger = logging.getLogger(__name__)

    def generate(self, seed: int) -> Grid:
        """Generate an empty grid with a valid block layout.

        Args:
            seed: Base seed; attempt ``i`` uses ``seed + i``

        Returns:
            Unlettered grid with entries derived

        Raises:
            GridGenerationError: If no layout passes the checks
        """
        for attempt in range(self.max_attempts):
            rng = np.random.default_rng((seed + attempt) & 0xFFFFFFFFFFFFFFFF)
            mask = self._seed_blocks(rng)
            if mask is not None and self._is_acceptable(mask):
                self.logger.debug(f"Block pattern accepted on attempt {attempt + 1}")
                return Grid(self.size, self._coordinates(mask))

        raise GridGenerationError(
            f"no valid {self.size}x{self.size} block pattern after {self.max_attempts} attempts"
        )

    def _seed_blocks(self, rng: np.random.Generator) -> Optional[np.ndarray]:
        """Place mirrored block pairs from the top-left quadrant.

        Quadrant squares are tried in random order; a pair that would leave a
        run shorter than min_word_length is skipped. Returns None if the
        quadrant runs out before the target count is reached.
        """
        n = self.size
        half = n // 2
        mask = np.zeros((n, n), dtype=bool)

        # at least one pair once the density asks for a block
        count = max(int(n * n * self.density) // 2, int(n * n * self.density >= 1))
        if not count or not half:
            return mask

        centre = n // 2
        placed = 0
        for position in rng.permutation(half * half):
            row, col = divmod(int(position), half)
            partner = (n - 1 - row, n - 1 - col)
            # the centre square and its partner stay open
            if (row, col) == (centre, centre) or partner == (centre, centre):
                continue

            mask[row, col] = mask[partner] = True
            if short_runs(mask.tolist(), self.min_word_length):
                mask[row, col] = mask[partner] = False
                continue

            placed += 1
            if placed == count:
                return mask
        return None

    def _is_acceptable(self, mask: np.ndarray) -> bool:
        blocks = mask.tolist()
        return is_connected(blocks) and not short_runs(blocks, self.min_word_length)

    @staticmethod
    def _coordinates(mask: np.ndarray) -> List[Tuple[int, int]]:
        return [(int(r), int(c)) for r, c in zip(*np.nonzero(mask))]


def generate_pattern(size: int, difficulty: Difficulty, seed: int) -> Grid:
    """Convenience wrapper around PatternGenerator."""
    return PatternGenerator(size, difficulty).generate(seed)
