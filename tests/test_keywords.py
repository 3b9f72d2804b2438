"""Unit tests for tiered keyword scoring."""

import pytest

from intelfilter.keywords import KeywordScore, KeywordScorer, saturate
from intelfilter.tables import default_tables


def _score(text: str) -> KeywordScore:
    return KeywordScorer(default_tables()).score(text)


class TestKeywordScorer:
    def test_no_keywords(self) -> None:
        result = _score("Local council approves new bicycle lanes")
        assert result.score == 0.0
        assert result.top_tier is None
        assert result.matches == []

    def test_critical_match_with_bonus(self) -> None:
        result = _score("Reports of a nuclear weapon test")
        assert result.top_tier == "CRITICAL"
        assert result.raw_total == pytest.approx(10.0)
        assert result.score == pytest.approx(25.0)

    def test_case_insensitive_counts(self) -> None:
        result = _score("Sanctions, more SANCTIONS and sanctions again")
        [match] = result.matches
        assert match.keyword == "SANCTIONS"
        assert match.count == 3
        assert result.score == pytest.approx(3 * 8 + 10)

    def test_word_boundaries(self) -> None:
        assert _score("The couple visited a coupon store").score == 0.0
        assert "COUP" in _score("An attempted coup failed").keywords

    def test_saturates_at_100(self) -> None:
        text = " ".join(["invasion", "coup", "icbm", "assassination", "bioweapon"] * 6)
        result = _score(text)
        assert result.raw_total > 80
        assert result.score == 100.0

    def test_bonus_comes_from_top_tier_only(self) -> None:
        result = _score("summit talks on missile test")
        assert result.top_tier == "HIGH"
        assert result.tier_bonus == 10.0


class TestSaturate:
    def test_identity_below_knee(self) -> None:
        assert saturate(0) == 0
        assert saturate(80) == 80

    def test_monotonic_above_knee(self) -> None:
        values = [saturate(x) for x in (80, 80.5, 81, 85, 100, 200, 1000)]
        assert values == sorted(values)
        assert saturate(1000) < 160
