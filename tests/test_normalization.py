"""Tests for answer text normalization."""

import pytest

from vocab_card_tracker.analysis.normalization import (
    compare_strict,
    normalize_loose,
)


class TestNormalizeLoose:
    def test_spelled_out_letters_collapse(self):
        assert normalize_loose("t h r e e") == "three"
        assert normalize_loose("three") == "three"

    def test_lowercases(self):
        assert normalize_loose("Apple") == "apple"

    def test_strips_punctuation(self):
        assert normalize_loose("Hello, world!") == "helloworld"
        assert normalize_loose("don't") == "dont"

    def test_standalone_digit_becomes_word(self):
        assert normalize_loose("3") == "three"
        assert normalize_loose("0") == "zero"
        assert normalize_loose("10") == "ten"

    def test_tens_lexicon(self):
        assert normalize_loose("20") == "twenty"
        assert normalize_loose("90") == "ninety"
        assert normalize_loose("100") == "onehundred"
        assert normalize_loose("one hundred") == "onehundred"

    def test_digit_with_trailing_punctuation(self):
        assert normalize_loose("3.") == "three"

    def test_digits_inside_tokens_untouched(self):
        assert normalize_loose("a3") == "a3"
        assert normalize_loose("15") == "15"

    def test_empty_and_whitespace(self):
        assert normalize_loose("") == ""
        assert normalize_loose("   \t\n ") == ""

    @pytest.mark.parametrize(
        "text",
        ["t h r e e", "3", "100", "Hello, World!", "a3 b 7", " 1 0 ", "twenty-one", "ÉCOLE 5"],
    )
    def test_idempotent(self, text):
        once = normalize_loose(text)
        assert normalize_loose(once) == once



class TestCompareStrict:
    def test_case_sensitive(self):
        assert compare_strict("Apple", "apple") is False

    def test_exact_match(self):
        assert compare_strict("apple", "apple") is True

    def test_outer_whitespace_ignored(self):
        assert compare_strict("  apple \n", "apple") is True

    def test_punctuation_sensitive(self):
        assert compare_strict("apple.", "apple") is False

    def test_inner_whitespace_kept(self):
        assert compare_strict("ice cream", "icecream") is False
