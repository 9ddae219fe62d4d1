"""Tests for the command-line entry points."""

import os

import pytest

import cli
import main
from conftest import LATTICE
from crossgen.config import load_config
from crossgen.export import ExportManager, read_record


@pytest.fixture
def puzzle_json(lattice_record, tmp_path):
    return ExportManager(str(tmp_path)).export(lattice_record, "json", "lattice.json")


class TestCrosswordCLI:
    def test_sample_files(self, tmp_path):
        out = tmp_path / "data"
        assert cli.main(["sample-files", "--output-dir", str(out)]) == 0
        assert sorted(os.listdir(out)) == ["clues.json", "config.yaml", "wordlist.txt"]
        config = load_config(str(out / "config.yaml"))
        assert config["generation"]["size"] == 5
        assert config["wordlists"]["primary"] == str(out / "wordlist.txt")

    def test_validate_small_wordlist(self, corpus_file):
        assert cli.main(["validate-wordlist", corpus_file]) == 1

    def test_validate_missing_wordlist(self, tmp_path):
        assert cli.main(["validate-wordlist", str(tmp_path / "none.txt")]) == 1

    def test_convert(self, puzzle_json, tmp_path):
        target = str(tmp_path / "lattice.puz")
        assert cli.main(["convert", puzzle_json, target]) == 0
        assert read_record(target).solution_rows() == read_record(puzzle_json).solution_rows()

    def test_convert_unknown_format(self, puzzle_json, tmp_path):
        assert cli.main(["convert", puzzle_json, str(tmp_path / "lattice.pdf")]) == 1

    def test_validate_puzzle(self, puzzle_json, corpus_file, tmp_path):
        report = tmp_path / "report.json"
        assert cli.main(["validate", puzzle_json, "--wordlist", corpus_file,
                         "--report", str(report)]) == 0
        assert report.exists()

    def test_no_command(self):
        assert cli.main([]) == 1


class TestCreateCrossword:
    def test_generates_and_exports(self, corpus_file, tmp_path):
        config = load_config()
        config["generation"].update({
            "size": 5, "block_pattern": LATTICE, "min_score": 0, "seed": 42, "max_retries": 5,
        })
        config["wordlists"]["primary"] = corpus_file
        config["export"]["output_dir"] = str(tmp_path / "out")

        assert main.create_crossword(config)
        written = sorted(os.path.splitext(name)[1] for name in os.listdir(tmp_path / "out"))
        assert written == [".ipuz", ".json", ".puz"]

    def test_batch(self, corpus_file, tmp_path):
        config = load_config()
        config["generation"].update({"size": 5, "block_pattern": LATTICE, "min_score": 0})
        config["wordlists"]["primary"] = corpus_file
        config["export"].update({"output_dir": str(tmp_path / "out"), "formats": ["json"]})
        config["batch"].update({"count": 2, "workers": 2})

        assert main.create_crossword(config)
        assert len(os.listdir(tmp_path / "out")) == 2

    def test_bad_settings(self, corpus_file):
        config = load_config()
        config["generation"]["size"] = 30
        config["wordlists"]["primary"] = corpus_file
        assert not main.create_crossword(config)

    def test_export_failure_is_reported(self, corpus_file, tmp_path, caplog):
        blocker = tmp_path / "taken"
        blocker.write_text("not a directory")
        config = load_config()
        config["generation"].update({"size": 5, "block_pattern": LATTICE, "min_score": 0, "seed": 1})
        config["wordlists"]["primary"] = corpus_file
        config["export"]["output_dir"] = str(blocker)

        assert not main.create_crossword(config)
        assert "Error generating crossword" in caplog.text
