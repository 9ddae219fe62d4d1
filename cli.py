"""
Utility commands: sample data, corpus and puzzle checks, format conversion
and a solver benchmark.
"""

import sys
import argparse
import os
import json
import logging
from typing import Dict, Any, Optional

import yaml

from crossgen.clue import create_sample_clue_database
from crossgen.config import DEFAULT_SETTINGS, Difficulty
from crossgen.csp import FillSolver, SolverConfig
from crossgen.exceptions import CrosswordError, NoSolutionError
from crossgen.export import ENCODERS, detect_format, encode, read_record
from crossgen.lexicon import WordIndex, create_sample_corpus, save_corpus
from crossgen.pattern import PatternGenerator
from crossgen.quality import QualityAnalyzer


MIN_SHORT_FILL_WORDS = 500


class CrosswordCLI:
    """Puzzle and corpus utilities behind the cli.py subcommands."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def create_sample_files(self, output_dir: str = "data"):
        """Write a small config, corpus and clue database that work together."""
        os.makedirs(output_dir, exist_ok=True)

        wordlist_path = os.path.join(output_dir, 'wordlist.txt')
        clues_path = os.path.join(output_dir, 'clues.json')

        sample_config = json.loads(json.dumps(DEFAULT_SETTINGS))
        sample_config['generation'].update({
            'size': 5,
            'min_score': 30,
            'max_retries': 20,
            'author': 'Sample Author',
        })
        sample_config['wordlists']['primary'] = wordlist_path
        sample_config['clues']['database'] = clues_path

        config_path = os.path.join(output_dir, 'config.yaml')
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(sample_config, f, default_flow_style=False, sort_keys=False)

        save_corpus(create_sample_corpus(), wordlist_path)
        create_sample_clue_database().save_to_file(clues_path)

        print(f"Sample files created in {output_dir}/:")
        for path in (config_path, wordlist_path, clues_path):
            print(f"  - {os.path.basename(path)}")

    def validate_wordlist(self, wordlist_path: str) -> bool:
        """Validate a corpus file."""
        try:
            index = WordIndex.load(wordlist_path)
        except CrosswordError as e:
            print(f"Cannot load corpus: {e}")
            return False

        stats = index.get_statistics()
        low, high = stats['score_range']

        print(f"Corpus: {wordlist_path}")
        print(f"  {stats['total_words']} entries, {stats['unique_words']} distinct words")
        print(f"  Scores {low} to {high}")
        for length, count in stats['by_length'].items():
            print(f"  {length:>2} letters: {count}")

        issues = []
        short_fill = sum(stats['by_length'].get(n, 0) for n in (3, 4, 5))
        if short_fill < MIN_SHORT_FILL_WORDS:
            issues.append(f"only {short_fill} words of 3-5 letters, small grids may not fill")

        duplicates = stats['total_words'] - stats['unique_words']
        if duplicates:
            issues.append(f"{duplicates} repeated words (the best score is used)")

        odd = [length for length in index.lengths()
               if any(not word.text.isalpha() for word in index.words_of_length(length))]
        if odd:
            issues.append(f"non-letter characters in words of length {', '.join(map(str, odd))}")

        for issue in issues:
            print(f"  ! {issue}")
        return not issues

    def convert_puzzle(self, input_file: str, output_file: str,
                       input_format: Optional[str] = None,
                       output_format: Optional[str] = None) -> bool:
        """Convert a puzzle file between json, puz and ipuz."""
        try:
            input_format = input_format or detect_format(input_file)
            output_format = output_format or detect_format(output_file)

            record = read_record(input_file, input_format)
            data = encode(record, output_format)

            with open(output_file, 'wb') as f:
                f.write(data)

            print(f"Converted {input_file} ({input_format}) -> {output_file} ({output_format})")
            return True

        except (CrosswordError, ValueError, OSError) as e:
            print(f"Error converting puzzle: {e}")
            return False

    def validate_puzzle(self, puzzle_file: str, wordlist_file: Optional[str] = None,
                        report_file: Optional[str] = None) -> bool:
        """Check a puzzle file's structure and clues."""
        try:
            record = read_record(puzzle_file)
            index = WordIndex.load(wordlist_file) if wordlist_file else None
        except (CrosswordError, ValueError, OSError) as e:
            print(f"Error validating puzzle: {e}")
            return False

        report = QualityAnalyzer(index).analyze(record)

        print(f"Puzzle Validation Report: {puzzle_file}")
        print(f"Title: {record.title}")
        print(f"Size: {record.width}x{record.height}")
        print(f"Overall score: {report.overall_score:.1f}")

        if report.errors:
            print("\nErrors:")
            for error in report.errors:
                print(f"  - {error}")
        if report.warnings:
            print("\nWarnings:")
            for warning in report.warnings:
                print(f"  - {warning}")
        if report.valid and not report.warnings:
            print("\nPuzzle passes all checks.")

        if report_file:
            with open(report_file, 'w', encoding='utf-8') as f:
                json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
            print(f"\nDetailed report saved to: {report_file}")

        return report.valid

    def benchmark_solver(self, wordlist_file: Optional[str] = None, size: int = 5,
                         difficulty: str = 'medium', min_score: int = 0,
                         iterations: int = 10) -> Dict[str, Any]:
        """Fill generated layouts with seeds 0..iterations-1 and time the solver."""
        index = WordIndex.load(wordlist_file) if wordlist_file else WordIndex(create_sample_corpus())
        level = Difficulty.from_string(difficulty)
        print(f"Filling {iterations} {size}x{size} {level} grids from {len(index)} words")

        filled = []
        failures = 0
        for seed in range(iterations):
            skeleton = PatternGenerator(size, level).generate(seed)
            solver = FillSolver(index, SolverConfig(
                min_score=min_score, max_retries=5, backtrack_limit=5000,
                seed=seed, difficulty=level,
            ))
            try:
                solver.solve(skeleton)
            except NoSolutionError as e:
                failures += 1
                print(f"  seed {seed}: {e}")
                continue

            stats = solver.get_solver_statistics()
            filled.append(stats)
            print(f"  seed {seed}: filled in {stats['elapsed_time']:.2f}s, "
                  f"attempt {stats['attempts']}, {stats['backtracks']} backtracks")

        runs = len(filled) or 1
        results = {
            'successful_runs': len(filled),
            'failed_runs': failures,
            'total_time': sum(s['elapsed_time'] for s in filled),
            'average_time': sum(s['elapsed_time'] for s in filled) / runs,
            'average_attempts': sum(s['attempts'] for s in filled) / runs,
            'average_backtracks': sum(s['backtracks'] for s in filled) / runs,
        }

        print(f"{len(filled)}/{iterations} filled, "
              f"{results['average_time']:.2f}s and {results['average_backtracks']:.0f} backtracks on average")
        return results


def main(argv=None):
    """Run one utility subcommand and return the exit status."""
    parser = argparse.ArgumentParser(
        description="Crossgen CLI Utilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Available commands:
  sample-files        Create sample configuration and data files
  validate-wordlist   Validate a corpus file
  convert             Convert a puzzle between json, puz and ipuz
  validate            Check a puzzle file's structure and clues
  benchmark           Benchmark solver performance

Examples:
  python cli.py sample-files
  python cli.py validate-wordlist data/wordlist.txt
  python cli.py convert puzzle.json puzzle.puz
  python cli.py validate puzzle.ipuz --wordlist data/wordlist.txt
  python cli.py benchmark --size 7 --iterations 5
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Sample files command
    sample_parser = subparsers.add_parser('sample-files', help='Create sample files')
    sample_parser.add_argument('--output-dir', default='data', help='Output directory')

    # Validate wordlist command
    wordlist_parser = subparsers.add_parser('validate-wordlist', help='Validate corpus file')
    wordlist_parser.add_argument('wordlist', help='Corpus file to validate')

    # Convert command
    formats = list(ENCODERS)
    convert_parser = subparsers.add_parser('convert', help='Convert puzzle format')
    convert_parser.add_argument('input', help='Input puzzle file')
    convert_parser.add_argument('output', help='Output puzzle file')
    convert_parser.add_argument('--input-format', choices=formats, help='Input format')
    convert_parser.add_argument('--output-format', choices=formats, help='Output format')

    # Validate puzzle command
    validate_parser = subparsers.add_parser('validate', help='Validate puzzle file')
    validate_parser.add_argument('puzzle', help='Puzzle file (json, puz or ipuz)')
    validate_parser.add_argument('--wordlist', help='Corpus for word scores')
    validate_parser.add_argument('--report', help='Write the report as JSON')

    # Benchmark command
    benchmark_parser = subparsers.add_parser('benchmark', help='Benchmark solver')
    benchmark_parser.add_argument('--wordlist', help='Corpus file')
    benchmark_parser.add_argument('--size', type=int, default=5, help='Grid size')
    benchmark_parser.add_argument('--difficulty', default='medium',
                                  choices=[d.value for d in Difficulty], help='Difficulty')
    benchmark_parser.add_argument('--min-score', type=int, default=0, help='Minimum word score')
    benchmark_parser.add_argument('--iterations', type=int, default=10, help='Number of test runs')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Setup logging
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    cli = CrosswordCLI()

    try:
        if args.command == 'sample-files':
            cli.create_sample_files(args.output_dir)

        elif args.command == 'validate-wordlist':
            success = cli.validate_wordlist(args.wordlist)
            return 0 if success else 1

        elif args.command == 'convert':
            success = cli.convert_puzzle(
                args.input, args.output,
                args.input_format, args.output_format
            )
            return 0 if success else 1

        elif args.command == 'validate':
            success = cli.validate_puzzle(args.puzzle, args.wordlist, args.report)
            return 0 if success else 1

        elif args.command == 'benchmark':
            cli.benchmark_solver(args.wordlist, args.size, args.difficulty,
                                 args.min_score, args.iterations)

        return 0

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1
    except CrosswordError as e:
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
