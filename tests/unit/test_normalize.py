"""
tests/unit/test_normalize.py — Unit tests for tools/normalize.py

Covers: each whitespace rule, rule ordering, idempotence, determinism,
        empty / None input.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest
from tools.normalize import normalize


# ── Individual rules ──────────────────────────────────────────────────────────

class TestNormalizeRules:
    def test_tab_becomes_single_space(self):
        assert normalize("Math\tWorksheet") == "Math Worksheet"

    def test_multiple_tabs_collapse(self):
        assert normalize("Math\t\t\tWorksheet") == "Math Worksheet"

    def test_two_spaces_collapse(self):
        assert normalize("due  Friday") == "due Friday"

    def test_long_space_run_collapses(self):
        assert normalize("due" + " " * 12 + "Friday") == "due Friday"

    def test_mixed_tabs_and_spaces_collapse(self):
        assert normalize("a \t \t b") == "a b"

    def test_three_newlines_become_two(self):
        assert normalize("Math\n\n\nScience") == "Math\n\nScience"

    def test_many_newlines_become_two(self):
        assert normalize("Math" + "\n" * 8 + "Science") == "Math\n\nScience"

    def test_two_newlines_kept(self):
        assert normalize("Math\n\nScience") == "Math\n\nScience"

    def test_single_newline_kept(self):
        assert normalize("Math\nScience") == "Math\nScience"

    def test_trims_edges(self):
        assert normalize("  \n\n Math homework \n\n ") == "Math homework"

    def test_single_space_untouched(self):
        assert normalize("a b c") == "a b c"


# ── Edge cases ────────────────────────────────────────────────────────────────

class TestNormalizeEdgeCases:
    def test_empty_string(self):
        assert normalize("") == ""

    def test_none_returns_empty(self):
        assert normalize(None) == ""

    def test_whitespace_only_returns_empty(self):
        assert normalize(" \t\n\n\n\t ") == ""

    def test_returns_str(self):
        assert isinstance(normalize("x"), str)

    def test_does_not_touch_content_characters(self):
        text = "Math: p. 42 #1-10 (due Fri) — see {handout}"
        assert normalize(text) == text


# ── Properties ────────────────────────────────────────────────────────────────

SAMPLES = [
    "",
    "plain",
    "\t\tindented\t\n\n\n\nblock   text  ",
    "  Language Arts\n\n\n\n  Read ch. 4  \n\tMath\t\tp. 12",
    "\n \n \n \n",
    " \n\n\n ",
    "a\t \tb\n\n\n\n\nc  \t  d",
    "Science\r\n\r\n\r\nLab report",
]


class TestNormalizeProperties:
    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once

    @pytest.mark.parametrize("text", SAMPLES)
    def test_deterministic(self, text):
        assert normalize(text) == normalize(text)

    @pytest.mark.parametrize("text", SAMPLES)
    def test_no_tabs_or_double_spaces_remain(self, text):
        result = normalize(text)
        assert "\t" not in result
        assert "  " not in result
        assert "\n\n\n" not in result

    def test_input_not_mutated(self):
        text = "a\t\tb"
        normalize(text)
        assert text == "a\t\tb"
