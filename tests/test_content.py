"""Unit tests for content quality analysis."""

from intelfilter.content import (
    ContentQuality,
    ContentQualityAnalyzer,
    assess_depth,
    assess_readability,
    assess_technical_detail,
    content_level,
)
from intelfilter.models import Document
from intelfilter.tables import default_tables

from samples import S500_BODY, S500_TITLE


def _analyze(title: str, body: str) -> ContentQuality:
    return ContentQualityAnalyzer(default_tables()).analyze(Document(id="c", title=title, body=body))


class TestContentQualityAnalyzer:
    def test_detailed_report(self) -> None:
        result = _analyze(S500_TITLE, S500_BODY)
        assert result.score >= 80
        assert result.level in ("EXCELLENT", "GOOD")
        assert result.depth == 100.0

    def test_thin_text(self) -> None:
        result = _analyze("Update", "Something happened. Maybe.")
        assert result.score < 40
        assert "Increase content depth with more detailed information" in result.recommendations

    def test_advertising_language_penalized(self) -> None:
        plain = _analyze("Notice", "The ministry published its annual plan.")
        promo = _analyze("Notice", "The ministry published its annual plan. Sponsored content.")
        assert plain.quality_indicators == 50.0
        assert promo.quality_indicators < plain.quality_indicators

    def test_sub_scores_exposed(self) -> None:
        result = _analyze(S500_TITLE, S500_BODY)
        assert set(result.sub_scores()) == {
            "depth", "quality_indicators", "technical_detail", "language", "structure", "readability",
        }


class TestHelpers:
    def test_technical_detail(self) -> None:
        # dates 10 + times 10 + numbers (6 hits, capped) 30 + units 10 + four kinds 20
        assert assess_technical_detail("On 2026-10-18 at 09:30 UTC, 400 km") == 80.0

    def test_no_technical_detail(self) -> None:
        assert assess_technical_detail("nothing measurable here") == 0.0

    def test_depth_counts_paragraphs(self) -> None:
        one = "Word " * 120 + "."
        assert assess_depth(one) == 10.0
        assert assess_depth("\n\n".join([one] * 4)) == 30 + 5 + 20

    def test_readability_empty(self) -> None:
        assert assess_readability("") == 0.0

    def test_levels(self) -> None:
        assert content_level(85) == "EXCELLENT"
        assert content_level(55) == "ACCEPTABLE"
        assert content_level(39.9) == "INADEQUATE"
