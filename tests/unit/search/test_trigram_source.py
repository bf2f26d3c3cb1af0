"""Unit tests for trigram normalization and decomposition.

Index-time and query-time decompositions must agree, so these tests pin the
normalized form and the exact trigram windows.
"""

import pytest

from trigram_search.domain import TRIGRAM_LENGTH
from trigram_search.search.trigrams import ScoredTrigramSource, TrigramSource, normalize, trigrams


pytestmark = pytest.mark.unit


class TestNormalize:
    """Tests for normalize function."""

    def test_pads_and_lowercases(self):
        """Test that values are lowercased and padded with boundary markers."""
        assert normalize("Anderson") == "**anderson*"

    def test_word_boundaries_become_markers(self):
        """Test that whitespace runs collapse into one boundary marker."""
        assert normalize("Van  Dyke") == "**van*dyke*"

    def test_strips_accents(self):
        """Test that accented characters fold to ASCII."""
        assert normalize("Åström") == "**astrom*"

    def test_digits_and_punctuation_are_separators(self):
        """Test that characters outside a-z act as word separators."""
        assert normalize("o'neil-2") == "**o*neil**"

    def test_empty_string(self):
        """Test normalizing the empty string."""
        assert normalize("") == "***"


class TestTrigrams:
    """Tests for trigrams function."""

    def test_windows_in_order(self):
        """Test that windows come out in order of first appearance."""
        assert trigrams("Anderson") == ["**a", "*an", "and", "nde", "der", "ers", "rso", "son", "on*"]

    def test_duplicates_removed(self):
        """Test that repeated windows are kept once."""
        result = trigrams("nanana")
        assert len(result) == len(set(result))
        assert result[:3] == ["**n", "*na", "nan"]

    def test_empty_and_blank_strings_have_no_trigrams(self):
        """Test that values without letters produce no trigrams."""
        assert trigrams("") == []
        assert trigrams("   ") == []
        assert trigrams("123") == []

    def test_single_letter(self):
        """Test the windows of a one-letter value."""
        assert trigrams("a") == ["**a", "*a*"]

    def test_windows_match_stored_token_length(self):
        """Test that every window has the length the index accepts."""
        assert all(len(trigram) == TRIGRAM_LENGTH for trigram in trigrams("Johansson van der Berg"))


class TestScoredTrigramSource:
    """Tests for the default trigram source."""

    def test_scores_with_source_length(self):
        """Test that every trigram is scored with the source text length."""
        scored = ScoredTrigramSource().decompose("Andersson")
        assert set(scored.values()) == {9.0}
        assert "rss" in scored

    def test_empty_string_decomposes_to_empty_mapping(self):
        """Test that the empty string has nothing to index."""
        assert ScoredTrigramSource().decompose("") == {}

    def test_deterministic(self):
        """Test that repeated decompositions are identical."""
        source = ScoredTrigramSource()
        assert source.decompose("Johansson") == source.decompose("Johansson")

    def test_index_and_query_symmetry(self):
        """Test that a value and the same pattern share every trigram."""
        source = ScoredTrigramSource()
        indexed = source.decompose("Marie-Claire Lefèvre")
        queried = source.decompose("Marie-Claire Lefèvre")
        assert set(indexed) == set(queried)

    def test_satisfies_protocol(self):
        """Test that the default source implements TrigramSource."""
        assert isinstance(ScoredTrigramSource(), TrigramSource)
