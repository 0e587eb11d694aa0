"""Tests for the TextLocator."""

import pytest

from apply_edits.editing.locator import (
    Found, MODE_ALL, MODE_ANCHOR, MODE_FIRST, NotFound, TextLocator,
    find_spans, line_of_offset, window_similarity,
)


SAMPLE_FILE = """\
import os

def greet(name):
    message = "Hello, " + name
    return message

def helper():
    return 42
"""


class TestFindSpans:
    def test_single_occurrence_lines(self):
        spans = find_spans(SAMPLE_FILE, "def helper():")
        assert len(spans) == 1
        assert spans[0].line_start == 7
        assert spans[0].line_end == 7
        assert SAMPLE_FILE[spans[0].start:spans[0].end] == "def helper():"

    def test_multiline_target(self):
        spans = find_spans(SAMPLE_FILE, "def greet(name):\n    message")
        assert spans[0].line_start == 3
        assert spans[0].line_end == 4

    def test_trailing_newline_does_not_extend_end_line(self):
        spans = find_spans(SAMPLE_FILE, "import os\n")
        assert spans[0].line_start == 1
        assert spans[0].line_end == 1

    def test_non_overlapping_left_to_right(self):
        spans = find_spans("aaaa", "aa")
        assert [s.start for s in spans] == [0, 2]

    def test_limit(self):
        spans = find_spans("x x x", "x", limit=1)
        assert len(spans) == 1
        assert spans[0].start == 0

    def test_empty_target_finds_nothing(self):
        assert find_spans(SAMPLE_FILE, "") == []

    def test_line_of_offset(self):
        assert line_of_offset("a\nb\nc", 0) == 1
        assert line_of_offset("a\nb\nc", 2) == 2
        assert line_of_offset("a\nb\nc", 4) == 3


class TestLocateExact:
    def test_first_mode_returns_first_span(self):
        text = "foo\nbar\nfoo\n"
        result = TextLocator().locate(text, "foo", MODE_FIRST)
        assert isinstance(result, Found)
        assert len(result.spans) == 1
        assert result.first.line_start == 1

    def test_all_mode_returns_every_span(self):
        text = "foo\nbar\nfoo\n"
        result = TextLocator().locate(text, "foo", MODE_ALL)
        assert isinstance(result, Found)
        assert [s.line_start for s in result.spans] == [1, 3]

    def test_anchor_mode_is_exact(self):
        result = TextLocator().locate(SAMPLE_FILE, "def greet(name):", MODE_ANCHOR)
        assert isinstance(result, Found)
        assert result.first.line_start == 3

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            TextLocator().locate(SAMPLE_FILE, "import", "fuzzy")

    def test_exact_match_skips_fuzzy_ranking(self, monkeypatch):
        locator = TextLocator()

        def _boom(*args, **kwargs):
            raise AssertionError("closest_matches must not run on an exact hit")

        monkeypatch.setattr(locator, "closest_matches", _boom)
        result = locator.locate(SAMPLE_FILE, "return 42", MODE_FIRST)
        assert isinstance(result, Found)

    def test_count(self):
        assert TextLocator().count(SAMPLE_FILE, "return") == 2
        assert TextLocator().count(SAMPLE_FILE, "missing") == 0


class TestClosestMatches:
    def test_not_found_carries_candidates(self):
        result = TextLocator().locate(
            SAMPLE_FILE, 'def greet(nme):\n    message = "Hello, " + nme', MODE_FIRST,
        )
        assert isinstance(result, NotFound)
        assert result.candidates
        best = result.candidates[0]
        assert best.line == 3
        assert 0.5 <= best.similarity < 1.0
        assert best.content.startswith("def greet(name):")

    def test_indentation_difference_scores_perfectly(self):
        result = TextLocator().locate(SAMPLE_FILE, "        return 42", MODE_FIRST)
        assert isinstance(result, NotFound)
        best = result.candidates[0]
        assert best.line == 8
        assert best.similarity == pytest.approx(1.0)
        # Original, non-normalized text is reported
        assert best.content == "    return 42"

    def test_ranked_descending_and_capped(self):
        text = "value = 1\nvalue = 12\nvalue = 123\nvalue = 1234\n"
        locator = TextLocator(max_candidates=2)
        candidates = locator.closest_matches(text, "value = 12345")
        assert len(candidates) == 2
        assert candidates[0].similarity >= candidates[1].similarity
        assert candidates[0].line == 4

    def test_ties_prefer_lower_line(self):
        text = "x = 1\nfoo\nx = 1\n"
        candidates = TextLocator().closest_matches(text, "x = 9")
        assert [c.line for c in candidates] == [1, 3]
        assert candidates[0].similarity == candidates[1].similarity

    def test_threshold_filters_unrelated_text(self):
        assert TextLocator().closest_matches(SAMPLE_FILE, "qqqqqqqq") == []

    def test_context_lines(self):
        text = "one\ntwo\nthree\nfour = 4\nfive\nsix\n"
        candidates = TextLocator().closest_matches(text, "four = 5")
        best = candidates[0]
        assert best.line == 4
        assert best.context_before == ["two", "three"]
        assert best.context_after == ["five", "six"]

    def test_blank_target_has_no_candidates(self):
        assert TextLocator().closest_matches(SAMPLE_FILE, "   \n  ") == []


class TestWindowSimilarity:
    def test_identical(self):
        assert window_similarity(["a", "b"], ["a", "b"]) == 1.0

    def test_disjoint(self):
        assert window_similarity(["xyz"], ["abc"]) == 0.0

    def test_empty_target(self):
        assert window_similarity(["a"], []) == 0.0
