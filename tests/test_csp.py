"""Tests for the fill solver and difficulty policy."""

import json

import pytest

from conftest import LATTICE_WORDS
from crossgen.config import Difficulty, GenerationConfig
from crossgen.csp import (
    DifficultyPolicy, FillSolver, SolverConfig, fill_grid, find_dead_entries,
)
from crossgen.exceptions import ConfigurationError, NoSolutionError
from crossgen.grid import Grid
from crossgen.lexicon import Word, WordIndex


def answers(grid):
    return [grid.word_of(entry) for entry in grid.entries]


class TestDifficultyPolicy:
    def test_default_floors(self):
        policy = DifficultyPolicy()
        assert policy.floor(Difficulty.EASY, 50, 3) == 70
        assert policy.floor(Difficulty.EASY, 50, 5) == 60
        assert policy.floor(Difficulty.MEDIUM, 50, 4) == 50
        assert policy.floor(Difficulty.MEDIUM, 50, 5) == 50
        assert policy.floor(Difficulty.HARD, 50, 3) == 50
        assert policy.floor(Difficulty.EXPERT, 0, 3) == 0

    def test_harder_pools_are_supersets(self):
        index = WordIndex([Word(f"{chr(65 + i)}{chr(65 + j)}E", 10 * i + j)
                           for i in range(10) for j in range(10)])
        policy = DifficultyPolicy()
        order = [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD, Difficulty.EXPERT]
        for easier, harder in zip(order, order[1:]):
            easy_pool = set(index.match_scored("__E", policy.floor(easier, 40, 3)))
            hard_pool = set(index.match_scored("__E", policy.floor(harder, 40, 3)))
            assert easy_pool <= hard_pool

    def test_narrowing_bonuses_rejected(self):
        bonuses = {
            Difficulty.EASY: (0, 0),
            Difficulty.MEDIUM: (5, 0),
            Difficulty.HARD: (0, 0),
            Difficulty.EXPERT: (0, 0),
        }
        with pytest.raises(ConfigurationError, match="pools must widen"):
            DifficultyPolicy(bonuses=bonuses)


class TestFillSolver:
    def test_fills_lattice(self, lattice_index, lattice_skeleton):
        filled = FillSolver(lattice_index, SolverConfig(min_score=0, seed=1)).solve(lattice_skeleton)
        assert filled.is_complete()
        assert all(word in lattice_index for word in answers(filled))

    def test_skeleton_untouched(self, lattice_index, lattice_skeleton):
        FillSolver(lattice_index, SolverConfig(min_score=0)).solve(lattice_skeleton)
        assert all(cell.letter is None for row in lattice_skeleton.cells for cell in row)

    def test_respects_score_floor(self, lattice_index, lattice_skeleton):
        filled = fill_grid(lattice_skeleton, lattice_index, min_score=65, seed=3)
        assert filled.to_rows() == ["SMART", "M#G#W", "AGREE", "R#E#E", "TWEEN"]
        assert all(lattice_index.score_of(word) >= 65 for word in answers(filled))

    def test_easy_raises_floor(self, lattice_index, lattice_skeleton):
        # EASY adds 10 to five-letter entries: 60 + 10 leaves only SMART, AGREE, TWEEN
        config = SolverConfig(min_score=60, difficulty=Difficulty.EASY, max_retries=2)
        filled = FillSolver(lattice_index, config).solve(lattice_skeleton)
        assert set(answers(filled)) == {"SMART", "AGREE", "TWEEN"}

    def test_same_seed_same_fill(self, lattice_skeleton):
        index = WordIndex(LATTICE_WORDS + [Word("SMART", 90), Word("AGREE", 90), Word("TWEEN", 90)])
        first = fill_grid(lattice_skeleton, index, min_score=0, seed=11)
        second = fill_grid(lattice_skeleton, index, min_score=0, seed=11)
        assert first.to_rows() == second.to_rows()

    def test_unique_words(self, lattice_index, lattice_skeleton):
        filled = fill_grid(lattice_skeleton, lattice_index, min_score=0, unique_words=True)
        words = answers(filled)
        assert len(set(words)) == len(words) == 6

    def test_unique_words_unsatisfiable(self, lattice_skeleton):
        index = WordIndex(LATTICE_WORDS[:3])
        with pytest.raises(NoSolutionError):
            fill_grid(lattice_skeleton, index, min_score=0, unique_words=True, max_retries=2)

    def test_no_solution_after_exact_retries(self, lattice_skeleton):
        index = WordIndex([Word("SMART", 90), Word("SHAFT", 80)])
        solver = FillSolver(index, SolverConfig(min_score=0, max_retries=3))
        with pytest.raises(NoSolutionError, match="retry budget of 3 attempts") as exc:
            solver.solve(lattice_skeleton)
        assert exc.value.attempts == 3
        assert solver.get_solver_statistics()["attempts"] == 3

    def test_backtrack_limit_ends_attempt(self, lattice_skeleton):
        index = WordIndex([Word(w, 50) for w in ("SMART", "SHAFT", "STAIR", "SPEAR", "SNORT")])
        solver = FillSolver(index, SolverConfig(min_score=0, max_retries=2, backtrack_limit=1,
                                                record_log=True))
        with pytest.raises(NoSolutionError):
            solver.solve(lattice_skeleton)
        restarts = [s for s in solver.get_construction_log() if s["action"] == "RESTART"]
        assert [s["details"]["reason"] for s in restarts] == ["backtrack limit reached"] * 2

    def test_prefilled_letters_kept(self, lattice_index):
        skeleton = Grid.from_rows(["SMART", ".#.#.", ".....", ".#.#.", "....."])
        filled = fill_grid(skeleton, lattice_index, min_score=0)
        assert filled.to_rows()[0] == "SMART"

    def test_orphan_cell_rejected(self, lattice_index):
        skeleton = Grid.from_rows(["#.#", "###", "#.#"])
        with pytest.raises(ConfigurationError, match="belongs to no entry"):
            FillSolver(lattice_index).solve(skeleton)

    def test_invalid_budget(self, lattice_index):
        with pytest.raises(ConfigurationError):
            FillSolver(lattice_index, SolverConfig(max_retries=0))

    def test_from_generation_config(self):
        config = SolverConfig.from_generation_config(
            GenerationConfig(min_score=10, max_retries=7, seed=5, difficulty=Difficulty.HARD)
        )
        assert (config.min_score, config.max_retries, config.seed) == (10, 7, 5)
        assert config.difficulty == Difficulty.HARD


class TestTracing:
    def test_statistics_after_solve(self, lattice_index, lattice_skeleton):
        solver = FillSolver(lattice_index, SolverConfig(min_score=0))
        solver.solve(lattice_skeleton)
        stats = solver.get_solver_statistics()
        assert stats["attempts"] == 1
        assert stats["placements"] >= 6
        assert stats["is_complete"]

    def test_trace_file(self, lattice_index, lattice_skeleton, tmp_path):
        path = tmp_path / "trace.jsonl"
        solver = FillSolver(lattice_index, SolverConfig(min_score=0))
        solver.enable_tracing(str(path))
        solver.solve(lattice_skeleton)

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert lines[0]["type"] == "METADATA"
        assert lines[0]["data"]["index_size"] == 6
        actions = [line["action"] for line in lines[1:]]
        assert actions.count("ASSIGN") >= 6
        assert actions[-1] == "SOLVED"


class TestDeadEntries:
    def test_reports_entries_without_candidates(self, lattice_index):
        skeleton = Grid.from_rows(["Q....", ".#.#.", ".....", ".#.#.", "....."])
        dead = find_dead_entries(skeleton, lattice_index, SolverConfig(min_score=0))
        assert [d["entry"] for d in dead] == ["1-across", "1-down"]
        assert dead[0]["pattern"] == "Q____"

    def test_none_when_fillable(self, lattice_index, lattice_skeleton):
        assert find_dead_entries(lattice_skeleton, lattice_index, SolverConfig(min_score=0)) == []
