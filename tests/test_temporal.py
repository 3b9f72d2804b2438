"""Unit tests for age-based scoring."""

from datetime import timedelta

import pytest

from intelfilter.models import Document
from intelfilter.temporal import score_age, score_document

from samples import NOW


class TestScoreAge:
    @pytest.mark.parametrize(
        ("hours", "score", "category"),
        [
            (0.0, 100.0, "BREAKING"),
            (0.75, 100.0, "BREAKING"),
            (3.0, 95.0, "RECENT"),
            (24.0, 85.0, "CURRENT"),
            (24.1, 70.0, "DAILY"),
            (168.0, 50.0, "WEEKLY"),
            (200.0, 30.0, "HISTORICAL"),
        ],
    )
    def test_steps(self, hours: float, score: float, category: str) -> None:
        result = score_age(hours)
        assert result.score == score
        assert result.category == category

    def test_negative_age_treated_as_fresh(self) -> None:
        assert score_age(-5).score == 100.0


class TestScoreDocument:
    def test_recent_publication(self) -> None:
        doc = Document(id="t", published_at=NOW - timedelta(minutes=45))
        assert score_document(doc, NOW).score >= 95

    def test_missing_timestamps_use_now(self) -> None:
        result = score_document(Document(id="t"), NOW)
        assert result.age_hours == 0.0
        assert result.score == 100.0
