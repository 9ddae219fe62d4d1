#!/usr/bin/env python3
"""
Crossgen - Main Entry Point
Generates filled, clued crossword puzzles and exports them.
"""

import sys
import os
import argparse
import logging
from dataclasses import replace
from typing import Dict, Any, List, Optional

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from crossgen.clue import ClueDatabase, DatabaseClueProvider
from crossgen.config import Difficulty, GenerationConfig, load_config
from crossgen.exceptions import CrosswordError
from crossgen.export import ExportManager, SUPPORTED_FORMATS
from crossgen.lexicon import WordIndex
from crossgen.puzzle import Puzzle, PuzzleGenerator, generate_batch
from crossgen.quality import QualityAnalyzer
from crossgen.record import record_from_puzzle


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure structured logging."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    # Root logger
    logger = logging.getLogger()
    logger.setLevel(log_level)
    logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def build_generator(config: Dict[str, Any]) -> PuzzleGenerator:
    """Load the word index and clue source named in the settings."""
    index = WordIndex.load(config['wordlists']['primary'])

    clue_provider = None
    database_path = config['clues'].get('database')
    if database_path:
        database = ClueDatabase()
        database.load_from_file(database_path)
        difficulty = Difficulty.from_string(config['generation']['difficulty'])
        clue_provider = DatabaseClueProvider(database, difficulty)

    return PuzzleGenerator(index, clue_provider)


def export_puzzle(puzzle: Puzzle, generator: PuzzleGenerator, config: Dict[str, Any]) -> List[str]:
    """Log a quality summary and write every configured format."""
    logger = logging.getLogger(__name__)
    record = record_from_puzzle(puzzle)

    report = QualityAnalyzer(generator.index).analyze(record)
    logger.info(f"Puzzle quality score: {report.overall_score:.2f}")
    for warning in report.warnings:
        logger.warning(f"Quality: {warning}")

    export_manager = ExportManager(config['export']['output_dir'])
    paths = export_manager.export_all(record, config['export']['formats'])
    return list(paths.values())


def create_crossword(config: Dict[str, Any]) -> bool:
    """Generate one or more crossword puzzles based on configuration."""
    logger = logging.getLogger(__name__)

    try:
        generation = GenerationConfig.from_dict(config['generation'])
        generation.validate()

        generator = build_generator(config)
        count = int(config['batch']['count'])

        if count <= 1:
            puzzle = generator.generate(generation, config['logging'].get('trace_file'))
            results = [puzzle]
            failures = 0
        else:
            logger.info(f"Generating batch of {count} puzzles...")
            batch = generate_batch(
                generator,
                [replace(generation, seed=None) for _ in range(count)],
                max_workers=config['batch']['workers'],
                timeout=config['batch']['timeout_seconds'],
                base_seed=generation.seed,
            )
            results = [result.puzzle for result in batch if result.ok]
            failures = count - len(results)

        for puzzle in results:
            for path in export_puzzle(puzzle, generator, config):
                logger.info(f"Wrote {path}")

        if failures:
            logger.error(f"{failures} of {count} puzzles could not be generated")
        return failures == 0

    except Exception as e:
        logger.error(f"Error generating crossword: {e}", exc_info=True)
        return False


def main():
    """Main entry point for the crossword generator."""
    parser = argparse.ArgumentParser(
        description="Generate filled and clued crossword puzzles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --config config.yaml
  python main.py --wordlist data/wordlist.txt --size 15 --difficulty hard
  python main.py --wordlist data/wordlist.txt --count 4 --workers 4 --timeout 120
  python main.py --wordlist data/wordlist.txt --formats puz ipuz --seed 42
        """
    )

    parser.add_argument('--config', help='Configuration file (YAML or JSON)')
    parser.add_argument('--wordlist', help='Corpus file (WORD;SCORE per line)')
    parser.add_argument('--clues', help='Clue database file (JSON or YAML)')
    parser.add_argument('--size', type=int, help='Grid size (5-25)')
    parser.add_argument('--difficulty', choices=[d.value for d in Difficulty],
                        help='Puzzle difficulty')
    parser.add_argument('--seed', type=int, help='Random seed for reproducible puzzles')
    parser.add_argument('--min-score', type=int, help='Minimum word score')
    parser.add_argument('--max-retries', type=int, help='Maximum solver restarts')
    parser.add_argument('--title', help='Puzzle title')
    parser.add_argument('--author', help='Puzzle author')
    parser.add_argument('--theme', help='Puzzle theme')
    parser.add_argument('--count', type=int, help='Number of puzzles to generate')
    parser.add_argument('--workers', type=int, help='Worker threads for batch generation')
    parser.add_argument('--timeout', type=float, help='Seconds to wait for each puzzle')
    parser.add_argument('--formats', nargs='*', choices=list(SUPPORTED_FORMATS),
                        help='Export formats')
    parser.add_argument('--output-dir', help='Output directory')
    parser.add_argument('--trace-file', help='Write solver steps to a JSON-lines file')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')
    parser.add_argument('--log-file', help='Log file path')

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except CrosswordError as e:
        print(f"Configuration error: {e}")
        return 1

    # Override config with command line arguments
    overrides = {
        'size': args.size,
        'difficulty': args.difficulty,
        'seed': args.seed,
        'min_score': args.min_score,
        'max_retries': args.max_retries,
        'title': args.title,
        'author': args.author,
        'theme': args.theme,
    }
    for key, value in overrides.items():
        if value is not None:
            config['generation'][key] = value

    if args.wordlist:
        config['wordlists']['primary'] = args.wordlist

    if args.clues:
        config['clues']['database'] = args.clues

    if args.count is not None:
        config['batch']['count'] = args.count

    if args.workers is not None:
        config['batch']['workers'] = args.workers

    if args.timeout is not None:
        config['batch']['timeout_seconds'] = args.timeout

    if args.formats:
        config['export']['formats'] = args.formats

    if args.output_dir:
        config['export']['output_dir'] = args.output_dir

    if args.trace_file:
        config['logging']['trace_file'] = args.trace_file

    config['logging']['level'] = args.log_level
    if args.log_file:
        config['logging']['file'] = args.log_file

    # Setup logging
    setup_logging(config['logging']['level'], config['logging']['file'])

    # Create output directory
    os.makedirs(config['export']['output_dir'], exist_ok=True)

    if create_crossword(config):
        print("Puzzle generation completed successfully!")
        return 0
    else:
        print("Puzzle generation failed!")
        return 1


if __name__ == '__main__':
    sys.exit(main())
