"""Tests for the query optimizer: abbreviations, category matching, suggestions."""

import pytest

from jobcache.pipeline.optimizer import (
    expand_abbreviations,
    matches_phrase,
    optimize,
    suggest,
)


class TestExpandAbbreviations:
    def test_no_abbreviation(self) -> None:
        assert expand_abbreviations("Python Engineer") == ["python engineer"]

    def test_single_word(self) -> None:
        assert expand_abbreviations("swe") == ["swe", "software engineer"]

    def test_one_variant_per_word(self) -> None:
        assert expand_abbreviations("sr dev") == ["sr dev", "senior dev", "sr developer"]

    def test_whitespace_collapsed(self) -> None:
        assert expand_abbreviations("  Frontend   DEV ") == ["frontend dev", "frontend developer"]

    def test_custom_table(self) -> None:
        assert expand_abbreviations("k8s", {"k8s": "kubernetes"}) == ["k8s", "kubernetes"]


class TestMatchesPhrase:
    def test_substring(self) -> None:
        assert matches_phrase("front", "frontend developer") is True

    def test_word_prefixes(self) -> None:
        assert matches_phrase("front dev", "frontend developer") is True

    def test_every_word_must_match(self) -> None:
        assert matches_phrase("front manager", "frontend developer") is False

    def test_short_words_do_not_prefix_match(self) -> None:
        assert matches_phrase("f d", "frontend developer") is False


class TestOptimize:
    def test_swe(self) -> None:
        assert optimize("swe") == "software engineer"

    def test_frontend_dev(self) -> None:
        assert optimize("frontend dev") == "frontend developer"

    def test_case_insensitive(self) -> None:
        assert optimize("Frontend Dev") == "frontend developer"

    def test_dev_expands_to_developer_phrase(self) -> None:
        assert "developer" in optimize("dev")

    @pytest.mark.parametrize(
        "query", ["backend engineer OR pm", "python OR java", "react AND node", "", "   "],
    )
    def test_passthrough(self, query: str) -> None:
        assert optimize(query) == query

    def test_lowercase_or_is_not_an_operator(self) -> None:
        assert optimize("swe or sde") == "swe or sde"

    def test_no_match_returns_query(self) -> None:
        assert optimize("astronaut") == "astronaut"

    def test_never_shorter_than_query(self) -> None:
        query = "data scientist with python"
        assert len(optimize(query)) >= len(query)

    def test_deterministic(self) -> None:
        assert {optimize("ml eng") for _ in range(20)} == {optimize("ml eng")}

    def test_tie_goes_to_first_phrase(self) -> None:
        categories = {"x": ("alpha one", "alpha two")}
        assert optimize("alpha", categories=categories, abbreviations={}) == "alpha one"

    def test_longest_wins(self) -> None:
        categories = {"x": ("alpha", "alpha beta gamma", "alpha beta")}
        result = optimize("alp", categories=categories, abbreviations={})
        assert result == "alpha beta gamma"


class TestSuggest:
    def test_swe(self) -> None:
        suggestions = suggest("swe")
        assert "software engineer" in suggestions
        assert "swe" not in suggestions

    def test_limit(self) -> None:
        assert len(suggest("developer")) == 5
        assert len(suggest("developer", limit=2)) == 2

    def test_distinct(self) -> None:
        suggestions = suggest("web")
        assert len(suggestions) == len(set(suggestions))

    def test_excludes_query_itself(self) -> None:
        assert "frontend developer" not in suggest("frontend developer")

    def test_shorter_phrases_allowed(self) -> None:
        """Suggestions only drop the query itself, not shorter related phrases."""
        categories = {"x": ("developer",)}
        query = "develop developer"
        assert suggest(query, categories=categories, abbreviations={}) == ["developer"]
        assert optimize(query, categories=categories, abbreviations={}) == query

    def test_empty(self) -> None:
        assert suggest("") == []
        assert suggest("python OR java") == []

    def test_no_match(self) -> None:
        assert suggest("astronaut") == []
