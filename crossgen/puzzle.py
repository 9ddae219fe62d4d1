"""
Puzzle assembly and generation orchestration.
"""

import logging
import time
import uuid
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from datetime import datetime
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence

from crossgen.clue import ClueProvider, ClueRequest, clue_key
from crossgen.config import Difficulty, GenerationConfig
from crossgen.csp import DifficultyPolicy, FillSolver, SolverConfig
from crossgen.exceptions import CrosswordError, NoSolutionError
from crossgen.grid import Entry, Grid
from crossgen.lexicon import WordIndex
from crossgen.pattern import PatternGenerator


PLACEHOLDER_CLUE = "Missing clue"


@dataclass(frozen=True)
class Metadata:
    """Descriptive fields of a generated puzzle."""
    id: str
    title: str
    author: str
    difficulty: Difficulty
    theme: Optional[str]
    created_at: datetime
    seed: Optional[int] = None


@dataclass(frozen=True)
class Puzzle:
    """A filled grid with its clues. Not modified after assembly."""
    grid: Grid
    clues: Mapping[str, str]
    metadata: Metadata

    @property
    def entries(self) -> List[Entry]:
        return self.grid.entries

    def clue_for(self, entry: Entry) -> str:
        return self.clues.get(entry.key, PLACEHOLDER_CLUE)

    def answer_for(self, entry: Entry) -> str:
        return self.grid.word_of(entry) or ''


def clue_requests(grid: Grid) -> List[ClueRequest]:
    """One request per entry, in entry order."""
    requests = []
    for entry in grid.entries:
        answer = grid.word_of(entry)
        if answer is None:
            raise ValueError(f"entry {entry.key} is not fully lettered")
        requests.append(ClueRequest(
            key=clue_key(entry.number, entry.direction),
            number=entry.number,
            direction=entry.direction,
            answer=answer,
            length=entry.length,
        ))
    return requests


def assemble(grid: Grid, clue_provider: Optional[ClueProvider], metadata: Metadata) -> Puzzle:
    """Combine a solved grid with clue text.

    The provider is called once with every entry. Entries it leaves out, or
    all entries if it fails, get the placeholder clue.

    Args:
        grid: Fully lettered grid
        clue_provider: Source of clue text, or None for placeholders only
        metadata: Puzzle metadata

    Returns:
        The assembled puzzle, holding its own copy of the grid
    """
    logger = logging.getLogger(__name__)
    grid = grid.clone()
    requests = clue_requests(grid)

    provided: Dict[str, str] = {}
    if clue_provider is not None:
        try:
            provided = dict(clue_provider.generate_clues(requests) or {})
        except Exception as e:
            logger.warning(f"Clue generation failed, using placeholders: {e}")

    clues = {}
    missing = []
    for request in requests:
        text = provided.get(request.key)
        if not isinstance(text, str) or not text.strip():
            text = PLACEHOLDER_CLUE
            missing.append(request.key)
        clues[request.key] = text.strip()

    if missing:
        logger.warning(f"{len(missing)} of {len(requests)} entries have no clue")

    return Puzzle(grid=grid, clues=MappingProxyType(clues), metadata=metadata)


class PuzzleGenerator:
    """Runs a generation request end to end: layout, fill, clues."""

    def __init__(self, index: WordIndex, clue_provider: Optional[ClueProvider] = None,
                 policy: Optional[DifficultyPolicy] = None):
        self.index = index
        self.clue_provider = clue_provider
        self.policy = policy
        self.logger = logging.getLogger(__name__)

    def generate(self, config: GenerationConfig, trace_file: Optional[str] = None) -> Puzzle:
        """Generate one puzzle.

        Raises:
            ConfigurationError: Before any work if the request is invalid
            GridGenerationError: If no block layout could be built
            NoSolutionError: If the fill exhausts its retry budget
        """
        config.validate()
        now = datetime.now()
        config = config.with_defaults(now)

        skeleton = self.build_skeleton(config)
        self.logger.info(
            f"Generating {config.size}x{config.size} {config.difficulty} puzzle (seed {config.seed})"
        )

        solver = FillSolver(self.index, SolverConfig.from_generation_config(config), self.policy)
        if trace_file:
            solver.enable_tracing(trace_file)
        filled = solver.solve(skeleton)

        metadata = Metadata(
            id=str(uuid.uuid4()),
            title=config.title,
            author=config.author,
            difficulty=config.difficulty,
            theme=config.theme,
            created_at=now,
            seed=config.seed,
        )
        return assemble(filled, self.clue_provider, metadata)

    def build_skeleton(self, config: GenerationConfig) -> Grid:
        """Caller-supplied block pattern, or a generated symmetric one."""
        if config.block_pattern:
            return Grid.from_rows(config.block_pattern)
        return PatternGenerator(config.size, config.difficulty).generate(config.seed)


@dataclass
class BatchResult:
    """Outcome of one request in a batch."""
    config: GenerationConfig
    puzzle: Optional[Puzzle] = None
    error: Optional[CrosswordError] = None

    @property
    def ok(self) -> bool:
        return self.puzzle is not None


def generate_batch(generator: PuzzleGenerator, configs: Sequence[GenerationConfig],
                   max_workers: int = 4, timeout: Optional[float] = None,
                   base_seed: Optional[int] = None) -> List[BatchResult]:
    """Generate several puzzles on a thread pool.

    Each request is independent; a failure is recorded in its result and
    never stops the others. Requests without a seed get ``base_seed + i``.
    ``timeout`` bounds each request's running time, counted from when a
    worker picks it up, and a timed-out request is reported as
    NoSolutionError.
    """
    logger = logging.getLogger(__name__)
    if base_seed is None:
        base_seed = int(time.time() * 1000)
    configs = [
        config if config.seed is not None else replace(config, seed=base_seed + i)
        for i, config in enumerate(configs)
    ]
    results = [BatchResult(config) for config in configs]
    started: Dict[int, float] = {}

    def run(i: int, config: GenerationConfig):
        started[i] = time.monotonic()
        puzzle = generator.generate(config)
        return puzzle, time.monotonic() - started[i]

    def timed_out() -> NoSolutionError:
        return NoSolutionError(f"generation timed out after {timeout}s")

    def report(i: int):
        if results[i].error:
            logger.error(f"Batch item {i + 1}/{len(configs)} failed: {results[i].error}")
        else:
            logger.info(f"Batch item {i + 1}/{len(configs)} generated")

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = {executor.submit(run, i, config): i for i, config in enumerate(configs)}
        pending = set(futures)
        while pending:
            wait_for = None
            if timeout is not None:
                now = time.monotonic()
                deadlines = [started[futures[f]] + timeout - now
                             for f in pending if futures[f] in started]
                wait_for = max(0.0, min(deadlines, default=0.05))
            done, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)

            for future in done:
                i = futures[future]
                try:
                    puzzle, elapsed = future.result()
                except CrosswordError as e:
                    results[i].error = e
                except Exception as e:
                    error = CrosswordError(f"{type(e).__name__}: {e}")
                    error.__cause__ = e
                    results[i].error = error
                else:
                    if timeout is not None and elapsed > timeout:
                        results[i].error = timed_out()
                    else:
                        results[i].puzzle = puzzle
                report(i)

            if timeout is None:
                continue
            now = time.monotonic()
            for future in list(pending):
                i = futures[future]
                if i in started and now - started[i] >= timeout:
                    # the worker thread runs on until the solver's own budget ends
                    pending.discard(future)
                    future.cancel()
                    results[i].error = timed_out()
                    report(i)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return results
