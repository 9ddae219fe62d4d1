"""Tests for the corpus parser and word index."""

import pytest

from crossgen.exceptions import CorpusFormatError
from crossgen.lexicon import Word, WordIndex, parse_corpus, save_corpus


@pytest.fixture
def small_index():
    return WordIndex(parse_corpus(["JAZZ;95", "PUZZLE;85", "CAT;70", "QUIZ;92"]))


class TestParseCorpus:
    def test_parses_words_and_scores(self):
        words = parse_corpus(["cat;70", "  DOG ; 65 ", "EMU;-3"])
        assert words == [Word("CAT", 70), Word("DOG", 65), Word("EMU", -3)]

    def test_blank_lines_skipped(self):
        words = parse_corpus(["CAT;70", "", "   ", "DOG;65"])
        assert [w.text for w in words] == ["CAT", "DOG"]

    def test_missing_separator_reports_line(self):
        with pytest.raises(CorpusFormatError, match="line 3") as exc:
            parse_corpus(["CAT;70", "", "DOG"])
        assert exc.value.line_number == 3
        assert exc.value.line == "DOG"

    def test_too_many_fields(self):
        with pytest.raises(CorpusFormatError, match="expected format"):
            parse_corpus(["CAT;70;1"])

    def test_non_numeric_score(self):
        with pytest.raises(CorpusFormatError, match="invalid score 'high'"):
            parse_corpus(["CAT;high"])

    def test_fractional_score_rejected(self):
        with pytest.raises(CorpusFormatError, match="invalid score"):
            parse_corpus(["CAT;7.5"])

    def test_empty_word(self):
        with pytest.raises(CorpusFormatError, match="empty word"):
            parse_corpus([";50"])


class TestLoad:
    def test_load_file(self, corpus_file):
        index = WordIndex.load(corpus_file)
        assert len(index) == 6
        assert "smart" in index
        assert index.score_of("THEGN") == 40

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(CorpusFormatError, match="failed to open corpus"):
            WordIndex.load(str(tmp_path / "nope.txt"))

    def test_malformed_file_fails_whole_load(self, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_text("CAT;70\nDOG;x\n", encoding="utf-8")
        with pytest.raises(CorpusFormatError, match="line 2"):
            WordIndex.load(str(path))

    def test_save_then_load(self, tmp_path):
        path = str(tmp_path / "out.txt")
        save_corpus([Word("ONE", 1), Word("TWO", 2)], path)
        assert WordIndex.load(path).words_of_length(3) == [Word("TWO", 2), Word("ONE", 1)]


class TestMatching:
    def test_fixed_letter_and_floor(self, small_index):
        assert small_index.match_scored("J___", 90) == [Word("JAZZ", 95)]

    def test_wildcards_ranked_by_score(self, small_index):
        assert small_index.match_scored("____", 90) == [Word("JAZZ", 95), Word("QUIZ", 92)]

    def test_floor_is_inclusive(self, small_index):
        assert small_index.match_scored("____", 92) == [Word("JAZZ", 95), Word("QUIZ", 92)]
        assert small_index.match_scored("____", 96) == []

    def test_no_floor_returns_everything(self, small_index):
        assert small_index.match("____") == ["JAZZ", "QUIZ"]
        assert small_index.match_scored("______", None) == [Word("PUZZLE", 85)]

    def test_pattern_case_insensitive(self, small_index):
        assert small_index.match("q__z") == ["QUIZ"]

    def test_unknown_length(self, small_index):
        assert small_index.match("_______") == []
        assert small_index.count_matches("_______", 0) == 0

    def test_letter_absent_at_position(self, small_index):
        assert small_index.match("X___") == []

    def test_equal_scores_keep_corpus_order(self):
        index = WordIndex([Word("AAA", 50), Word("BBB", 60), Word("CCC", 50)])
        assert index.words_of_length(3) == [Word("BBB", 60), Word("AAA", 50), Word("CCC", 50)]

    def test_large_bucket(self):
        words = [Word(f"{chr(65 + i)}AT", 100 - i) for i in range(20)]
        index = WordIndex(words)
        result = index.match_scored("_AT", 90)
        assert result == words[:11]
        assert index.match("C__") == ["CAT"]
        assert index.match("__T") == [w.text for w in words]

    def test_count_matches_agrees_with_match(self, small_index):
        for pattern, floor in [("____", None), ("____", 93), ("_U__", 0), ("___", 71)]:
            assert small_index.count_matches(pattern, floor) == len(small_index.match_scored(pattern, floor))

    def test_duplicate_word_keeps_best_score(self):
        index = WordIndex([Word("CAT", 40), Word("CAT", 70)])
        assert index.score_of("cat") == 70
        assert len(index) == 2
        assert index.get_statistics()["unique_words"] == 1


class TestStatistics:
    def test_statistics(self, small_index):
        stats = small_index.get_statistics()
        assert stats["total_words"] == 4
        assert stats["by_length"] == {3: 1, 4: 2, 6: 1}
        assert stats["score_range"] == (70, 95)
        assert small_index.lengths() == [3, 4, 6]

    def test_empty_index(self):
        index = WordIndex([])
        assert len(index) == 0
        assert index.match("___") == []
        assert index.get_statistics()["score_range"] == (0, 0)
