"""Unit tests for source credibility scoring."""

from intelfilter.credibility import SourceCredibilityScorer, match_tier, source_domain
from intelfilter.models import Document, SourceInfo
from intelfilter.tables import default_tables


def _assess(source: dict[str, object], url: str = "") -> float:
    doc = Document.model_validate({"id": "c", "source": source, "url": url})
    return SourceCredibilityScorer(default_tables()).assess(doc).score


class TestSourceCredibilityScorer:
    def test_premium_wire_service(self) -> None:
        doc = Document.model_validate({"id": "c", "source": {"domain": "reuters.com", "credibilityScore": 95}})
        result = SourceCredibilityScorer(default_tables()).assess(doc)
        assert result.tier == "TIER_1_PREMIUM"
        assert result.domain_pattern == "NEWS_WIRE"
        assert result.score == 100.0

    def test_unknown_source_is_neutral(self) -> None:
        assert _assess({"domain": "example.net"}) == 70.0

    def test_questionable_subdomain(self) -> None:
        assert _assess({"domain": "someone.blogspot.com", "credibility": 40}) == 40.0

    def test_government_bonus(self) -> None:
        assert _assess({"domain": "state.gov"}) == 85.0

    def test_warning_penalty(self) -> None:
        doc = Document.model_validate(
            {"id": "c", "source": {"domain": "daily.example", "name": "State-Controlled Daily"}}
        )
        result = SourceCredibilityScorer(default_tables()).assess(doc)
        assert result.warnings == ["PROPAGANDA"]
        assert result.score == 40.0

    def test_clamped(self) -> None:
        assert _assess({"name": "Fake News Satire Conspiracy Hub", "credibility": 0}) == 0.0


class TestMatchTier:
    def test_domain_from_url(self) -> None:
        source = SourceInfo()
        assert source_domain(source, "https://www.bbc.co.uk/news/world-1") == "bbc.co.uk"
        assert match_tier(default_tables(), source, "https://www.bbc.co.uk/news/world-1").name == "TIER_1_PREMIUM"

    def test_display_name(self) -> None:
        assert match_tier(default_tables(), SourceInfo(name="Bloomberg")).name == "TIER_2_RELIABLE"

    def test_lookalike_domain_not_matched(self) -> None:
        assert match_tier(default_tables(), SourceInfo(domain="notreuters.com")).name == "TIER_3_STANDARD"
