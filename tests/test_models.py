"""Unit tests for document normalization and the ingest boundary."""

from datetime import UTC, datetime

import pytest

from intelfilter.ingest import ingest
from intelfilter.models import Disposition, Document, Priority, clamp_score


def _make(**fields: object) -> Document:
    base: dict[str, object] = {"id": "d1", "title": "Title", "content": "Body text", "url": "https://a.example/1"}
    base.update(fields)
    return Document.model_validate(base)


class TestClampScore:
    def test_bounds(self) -> None:
        assert clamp_score(-5) == 0.0
        assert clamp_score(150) == 100.0
        assert clamp_score(42.5) == 42.5

    def test_junk_becomes_floor(self) -> None:
        assert clamp_score("n/a") == 0.0
        assert clamp_score(float("nan")) == 0.0
        assert clamp_score(None, low=30.0) == 30.0


class TestDocument:
    def test_content_and_summary_fold_into_body(self) -> None:
        assert _make(content="from content").body == "from content"
        assert _make(content=None, summary="from summary").body == "from summary"

    def test_camel_case_annotator_fields(self) -> None:
        doc = _make(
            publishedAt="2026-10-18T09:30:00Z",
            source={"domain": "https://www.Reuters.com/world", "credibilityScore": "95"},
            intelligence={"relevanceScore": 88, "threatAssessment": "high", "isAdvertisement": "no"},
        )
        assert doc.published_at == datetime(2026, 10, 18, 9, 30, tzinfo=UTC)
        assert doc.source.domain == "reuters.com"
        assert doc.source.credibility == 95.0
        assert doc.annotation.relevance_score == 88.0
        assert doc.annotation.threat_assessment is not None
        assert doc.annotation.is_advertisement is False

    def test_entities_normalized(self) -> None:
        doc = _make(entities={"countries": ["russia", "Russia ", "", None, "Ukraine"], "weapons": "S-500"})
        assert doc.entities.countries == ["RUSSIA", "UKRAINE"]
        assert doc.entities.weapons == ["S-500"]
        assert doc.entities.organizations == []

    def test_entities_nested_in_annotation(self) -> None:
        doc = _make(intelligence={"entities": {"countries": ["China"]}})
        assert doc.entities.countries == ["CHINA"]

    def test_malformed_fields_recovered(self) -> None:
        doc = _make(
            published_at="not a date",
            entities="garbage",
            annotation={"relevance_score": "high", "confidence": 250, "priority": "URGENT"},
        )
        assert doc.published_at is None
        assert doc.entities.all() == []
        assert doc.annotation.relevance_score is None
        assert doc.annotation.confidence == 100.0
        assert doc.annotation.priority is None

    def test_string_source_becomes_name(self) -> None:
        assert _make(source="Reuters").source.name == "Reuters"

    def test_rfc2822_timestamp(self) -> None:
        doc = _make(published_at="Sun, 18 Oct 2026 09:30:00 GMT")
        assert doc.published_at == datetime(2026, 10, 18, 9, 30, tzinfo=UTC)

    def test_missing_id_is_stable(self) -> None:
        a = _make(id=None)
        b = _make(id="")
        assert a.id.startswith("doc-")
        assert a.id == b.id

    def test_timestamp_fallbacks(self) -> None:
        now = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
        fetched = datetime(2026, 10, 18, 10, 0, tzinfo=UTC)
        assert _make(fetched_at=fetched).timestamp(now) == fetched
        assert _make().timestamp(now) == now
        assert _make(fetched_at=fetched).age_hours(now) == 2.0

    def test_future_timestamp_has_zero_age(self) -> None:
        now = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
        assert _make(published_at="2026-10-19T12:00:00Z").age_hours(now) == 0.0


class TestPriority:
    def test_escalate_one_band(self) -> None:
        assert Priority.LOW.escalate() is Priority.MEDIUM
        assert Priority.HIGH.escalate() is Priority.CRITICAL
        assert Priority.CRITICAL.escalate() is Priority.CRITICAL

    def test_rank_order(self) -> None:
        assert Priority.CRITICAL.rank > Priority.HIGH.rank > Priority.MEDIUM.rank > Priority.LOW.rank


class TestIngest:
    def test_copies_documents(self) -> None:
        original = _make()
        original.status = Disposition.REJECTED
        [copy] = ingest([original])
        assert copy is not original
        assert copy.status is Disposition.PENDING
        copy.title = "changed"
        assert original.title == "Title"

    def test_clears_state_on_mappings(self) -> None:
        record = {
            "id": "x",
            "status": "REJECTED",
            "verdicts": [{"stage": "CONTENT_ANALYSIS", "score": 12}],
            "rejection": {"stage": "CONTENT_ANALYSIS", "reason": "Content quality too low: 12/100"},
            "final_quality_score": 91,
            "quality_level": "PREMIUM",
        }
        [doc] = ingest([record])
        assert doc.status is Disposition.PENDING
        assert doc.verdicts == []
        assert doc.rejection is None
        assert doc.final_quality_score is None
        assert doc.quality_level is None

    def test_accepts_mappings(self) -> None:
        docs = ingest([{"id": "x", "title": "T", "summary": "S"}])
        assert docs[0].body == "S"

    def test_duplicate_ids_renamed(self) -> None:
        docs = ingest([{"id": "x"}, {"id": "x"}, {"id": "x"}])
        assert [d.id for d in docs] == ["x", "x~2", "x~3"]

    def test_rejects_non_records(self) -> None:
        with pytest.raises(TypeError):
            ingest(["just a string"])  # type: ignore[list-item]

    def test_empty(self) -> None:
        assert ingest([]) == []
