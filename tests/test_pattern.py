"""Tests for block pattern generation."""

import pytest

from crossgen.config import Difficulty
from crossgen.exceptions import GridGenerationError
from crossgen.grid import is_connected, is_rotationally_symmetric, short_runs
from crossgen.pattern import PatternGenerator, generate_pattern


class TestPatternGenerator:
    @pytest.mark.parametrize("size", [5, 6, 9, 15])
    @pytest.mark.parametrize("difficulty", list(Difficulty))
    def test_layout_is_valid(self, size, difficulty):
        grid = PatternGenerator(size, difficulty).generate(42)
        blocks = grid.block_matrix()
        assert is_rotationally_symmetric(blocks)
        assert is_connected(blocks)
        assert short_runs(blocks) == []

    def test_same_seed_same_layout(self):
        first = generate_pattern(11, Difficulty.HARD, 7)
        second = generate_pattern(11, Difficulty.HARD, 7)
        assert first.to_rows() == second.to_rows()

    def test_block_count_follows_density(self):
        grid = PatternGenerator(15, Difficulty.MEDIUM).generate(3)
        assert grid.block_count() == 18

    def test_small_easy_grid_gets_a_block_pair(self):
        for seed in range(5):
            grid = PatternGenerator(5, Difficulty.EASY).generate(seed)
            assert grid.block_count() == 2
            assert grid.cell(0, 0).is_black and grid.cell(4, 4).is_black

    def test_centre_stays_open(self):
        for seed in range(20):
            grid = PatternGenerator(6, Difficulty.EXPERT).generate(seed)
            assert not grid.cell(3, 3).is_black
            assert not grid.cell(2, 2).is_black

    def test_entries_are_derived(self):
        grid = PatternGenerator(9, Difficulty.EASY).generate(1)
        assert grid.entries
        assert all(entry.length >= 3 for entry in grid.entries)

    def test_impossible_constraints(self):
        generator = PatternGenerator(5, Difficulty.EASY, min_word_length=6, max_attempts=5)
        with pytest.raises(GridGenerationError, match="after 5 attempts"):
            generator.generate(0)
