"""Tests for sanitize.py -- filename cleanup and chapter numbering."""

import pytest

from audiobook_splitter.sanitize import chapter_number, sanitize_filename, zero_pad


class TestSanitizeFilename:
    def test_plain_title_unchanged(self):
        assert sanitize_filename("The Hobbit") == "The Hobbit"

    def test_replaces_unsafe_characters(self):
        assert sanitize_filename("Dune: Part/One?") == "Dune Part One"

    def test_keeps_parens_apostrophes_hyphens(self):
        assert sanitize_filename("Ender's Game (Book 1) - Remastered") == (
            "Ender's Game (Book 1) - Remastered"
        )

    def test_repairs_mojibake_apostrophe(self):
        assert sanitize_filename("Enderâ€™s Game") == "Ender's Game"

    def test_curly_apostrophe(self):
        assert sanitize_filename("Ender’s Game") == "Ender's Game"

    def test_collapses_whitespace(self):
        assert sanitize_filename("  A   B  ") == "A B"

    def test_all_unsafe_becomes_empty(self):
        assert sanitize_filename("???") == ""


class TestZeroPad:
    @pytest.mark.parametrize(
        "number,width,expected",
        [(1, 1, "1"), (1, 2, "01"), (1, 3, "001"), (12, 2, "12"), (123, 2, "123")],
    )
    def test_padding(self, number, width, expected):
        assert zero_pad(number, width) == expected

    def test_accepts_strings(self):
        assert zero_pad("7", 3) == "007"


class TestChapterNumber:
    def test_three_chapters_one_digit(self):
        assert chapter_number(1, 3) == "1"

    def test_twelve_chapters_two_digits(self):
        assert chapter_number(1, 12) == "01"
        assert chapter_number(12, 12) == "12"

    def test_hundred_fifty_chapters_three_digits(self):
        assert chapter_number(1, 150) == "001"
