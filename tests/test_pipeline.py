"""End-to-end tests for the seven-stage quality filter."""

from datetime import datetime, timedelta

import pytest

from intelfilter.models import Disposition, Document, QualityLevel, Rejection, Stage
from intelfilter.pipeline import (
    PipelineInvariantError,
    PipelineResult,
    QualityFilterPipeline,
    _StageOutcome,
    run_pipeline,
)
from intelfilter.tables import Thresholds, default_tables

from samples import NOW, S500_BODY, s500_record


def _short() -> dict[str, object]:
    return {"id": "short", "title": "Brief", "content": "Too short.", "url": "https://x.example/1"}


def _rejection(result: PipelineResult, doc_id: str) -> Rejection:
    rejection = next(d.rejection for d in result.rejected if d.id == doc_id)
    assert rejection is not None
    return rejection


class TestApprovedSignal:
    def test_s500_passes_every_stage(self) -> None:
        result = QualityFilterPipeline().run([s500_record()], now=NOW)
        [doc] = result.passed
        assert doc.status is Disposition.APPROVED
        assert doc.rejection is None
        assert doc.quality_level in (QualityLevel.PREMIUM, QualityLevel.HIGH)
        assert doc.final_quality_score is not None and doc.final_quality_score >= 70
        assert [v.stage for v in doc.verdicts] == [
            Stage.CONTENT_ANALYSIS,
            Stage.SOURCE_VERIFICATION,
            Stage.QUALITY_SCORING,
            Stage.INTELLIGENCE_ASSESSMENT,
            Stage.FINAL_VALIDATION,
        ]
        assert all(v.passed for v in doc.verdicts)
        assert doc.score is not None
        assert doc.score.factors.temporal >= 95
        assert ("RUSSIA", "UKRAINE") in doc.score.tension_pairs

    def test_every_stage_reported(self) -> None:
        report = QualityFilterPipeline().run([s500_record()], now=NOW).report
        assert [s.stage for s in report.stages] == list(Stage)
        assert all(s.input_count == 1 and s.passed_count == 1 for s in report.stages)
        assert report.pass_rate == 1.0
        assert report.reference_time == NOW


class TestScreening:
    @pytest.mark.parametrize(
        ("record", "reason"),
        [
            (_short(), "Insufficient content length"),
            (s500_record(content=S500_BODY + " Click here to subscribe."), "Advertisement detected"),
            (s500_record(publishedAt=(NOW - timedelta(hours=200)).isoformat()), "Content too old"),
            (s500_record(intelligence={"relevanceScore": 20}), "Below minimum relevance threshold"),
            (s500_record(url=""), "Missing required fields"),
        ],
    )
    def test_rejections(self, record: dict[str, object], reason: str) -> None:
        result = QualityFilterPipeline().run([record], now=NOW)
        assert result.passed == []
        [doc] = result.rejected
        assert doc.rejection is not None
        assert doc.rejection.stage is Stage.INITIAL_SCREENING
        assert doc.rejection.reason == reason

    def test_advertisement_needs_whole_phrase(self) -> None:
        record = s500_record(content=S500_BODY + " Analysts urged readers to buy nowhere.")
        assert QualityFilterPipeline().run([record], now=NOW).passed

    def test_state_sponsored_is_not_advertising(self) -> None:
        record = s500_record(content=S500_BODY + " Analysts tied the intrusion to state-sponsored hackers.")
        result = QualityFilterPipeline().run([record], now=NOW)
        assert [d.id for d in result.passed] == ["s500"]


class TestLaterStages:
    def test_flagged_source(self) -> None:
        record = s500_record(source={"domain": "reuters.com", "name": "Reuters Propaganda Desk", "credibilityScore": 95})
        result = QualityFilterPipeline().run([record], now=NOW)
        rejection = _rejection(result, "s500")
        assert rejection.stage is Stage.SOURCE_VERIFICATION
        assert rejection.reason == "Source flagged: CRITICAL warning detected"

    def test_duplicate_rejected_with_primary(self) -> None:
        copy = s500_record(
            id="s500-copy",
            url="https://www.reuters.com/world/europe/russia-s500-ukraine-border?utm_source=feed",
            publishedAt=(NOW - timedelta(minutes=50)).isoformat(),
        )
        result = QualityFilterPipeline().run([s500_record(), copy], now=NOW)
        assert [d.id for d in result.passed] == ["s500"]
        [dup] = result.rejected
        assert dup.rejection.stage is Stage.DUPLICATE_DETECTION
        assert dup.rejection.reason == "Duplicate of signal s500"
        assert dup.rejection.duplicate_of == "s500"
        assert dup.annotation.is_duplicate
        [cluster] = result.report.duplicate_clusters
        assert cluster.primary_id == "s500"

    def test_same_story_from_weaker_outlet(self) -> None:
        body = S500_BODY.replace(
            "Satellite images obtained by analysts revealed the mission area.",
            "Commercial imagery reviewed by analysts showed the mission area.",
            1,
        )
        weaker = s500_record(
            id="smallnews",
            content=body,
            url="https://smallnews.example/2026/10/russia-s500-border",
            source={"domain": "smallnews.example", "name": "Small News", "credibilityScore": 40},
            publishedAt=(NOW - timedelta(minutes=55)).isoformat(),
        )
        result = QualityFilterPipeline().run([weaker, s500_record()], now=NOW)
        assert [d.id for d in result.passed] == ["s500"]
        rejection = _rejection(result, "smallnews")
        assert rejection.stage is Stage.DUPLICATE_DETECTION
        assert rejection.duplicate_of == "s500"

    def test_final_threshold(self) -> None:
        tables = default_tables().model_copy(update={"thresholds": Thresholds(final_validation=99)})
        result = QualityFilterPipeline(tables=tables).run([s500_record()], now=NOW)
        rejection = _rejection(result, "s500")
        assert rejection.stage is Stage.FINAL_VALIDATION
        assert rejection.reason.startswith("Final validation score too low")


class TestInvariants:
    def _batch(self) -> list[dict[str, object]]:
        return [
            s500_record(),
            _short(),
            s500_record(id="ad", content=S500_BODY + " Sponsored content."),
            s500_record(id="old", publishedAt=(NOW - timedelta(days=30)).isoformat()),
            s500_record(id="copy", url="https://reuters.com/world/europe/russia-s500-ukraine-border/"),
            s500_record(id="blog", source={"domain": "someone.blogspot.com", "credibilityScore": 20}),
        ]

    def test_partition(self) -> None:
        result = QualityFilterPipeline().run(self._batch(), now=NOW)
        report = result.report
        assert report.input_count == 6
        assert len(result.passed) + len(result.rejected) == 6
        assert report.output_count == len(result.passed)

        expected_input = report.input_count
        for stage in report.stages:
            assert stage.input_count == expected_input
            assert stage.passed_count + stage.rejected_count == stage.input_count
            expected_input = stage.passed_count
        assert sum(s.rejected_count for s in report.stages) == len(result.rejected)

        for doc in result.rejected:
            assert doc.status is Disposition.REJECTED
            assert doc.rejection is not None and doc.rejection.reason
        for doc in result.passed:
            assert doc.status is Disposition.APPROVED
            assert doc.rejection is None

    def test_idempotent(self) -> None:
        first = QualityFilterPipeline().run(self._batch(), now=NOW)
        second = QualityFilterPipeline().run(self._batch(), now=NOW)
        assert [d.model_dump() for d in first.passed] == [d.model_dump() for d in second.passed]
        assert [d.model_dump() for d in first.rejected] == [d.model_dump() for d in second.rejected]
        assert [(s.passed_count, s.rejection_reasons) for s in first.report.stages] == [
            (s.passed_count, s.rejection_reasons) for s in second.report.stages
        ]

    def test_caller_documents_untouched(self) -> None:
        docs = [Document.model_validate(s500_record()), Document.model_validate(_short())]
        QualityFilterPipeline().run(docs, now=NOW)
        for doc in docs:
            assert doc.status is Disposition.PENDING
            assert doc.verdicts == []
            assert doc.score is None
            assert doc.rejection is None

    def test_broken_stage_detected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pipeline = QualityFilterPipeline()

        def lose_everything(docs: list[Document], now: datetime) -> _StageOutcome:
            return _StageOutcome()

        monkeypatch.setattr(pipeline, "_content_analysis", lose_everything)
        with pytest.raises(PipelineInvariantError):
            pipeline.run([s500_record()], now=NOW)

    def test_clusters_scoped_to_their_batch(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pipeline = QualityFilterPipeline()
        quality_scoring = pipeline._quality_scoring
        calls: list[int] = []
        inner: list[PipelineResult] = []

        def with_second_batch(docs: list[Document], now: datetime) -> _StageOutcome:
            # another batch runs on the same pipeline between dedupe and the report
            calls.append(len(docs))
            if len(calls) == 1:
                inner.append(pipeline.run([s500_record(id="solo")], now=now))
            return quality_scoring(docs, now)

        monkeypatch.setattr(pipeline, "_quality_scoring", with_second_batch)
        copy = s500_record(id="s500-copy")
        result = pipeline.run([s500_record(), copy], now=NOW)
        assert [c.primary_id for c in result.report.duplicate_clusters] == ["s500"]
        assert inner[0].report.duplicate_clusters == ()

    def test_rerun_of_serialized_output(self) -> None:
        first = QualityFilterPipeline().run([s500_record()], now=NOW)
        records = [doc.model_dump(mode="json") for doc in first.passed]
        second = QualityFilterPipeline().run(records, now=NOW)
        [doc] = second.passed
        assert len(doc.verdicts) == 5
        assert doc.final_quality_score == first.passed[0].final_quality_score

    def test_empty_batch(self) -> None:
        result = QualityFilterPipeline().run([], now=NOW)
        assert result.passed == []
        assert result.report.pass_rate == 0.0
        assert result.report.recommendations == ()
        assert len(result.report.stages) == 7


class TestReport:
    def test_low_pass_rate_recommendation(self) -> None:
        short_b = {**_short(), "id": "short-b"}
        report = run_pipeline([s500_record(), _short(), short_b], now=NOW).report
        assert report.output_count == 1
        assert "Consider reviewing source selection criteria" in report.recommendations
        assert sum(report.quality_distribution.values()) == 1
        assert set(report.quality_distribution) == {level.value for level in QualityLevel}

    def test_screening_metrics(self) -> None:
        report = run_pipeline([_short()], now=NOW).report
        screening = report.stage(Stage.INITIAL_SCREENING)
        assert screening is not None
        assert screening.metrics == {"rejected:Insufficient content length": 1.0}
        assert screening.rejection_reasons == {"short": "Insufficient content length"}

    def test_signals_ranked(self) -> None:
        other = s500_record(
            id="other",
            title="China and USA hold hypersonic missile talks",
            url="https://www.reuters.com/world/asia/china-usa-talks",
        )
        result = run_pipeline([other, s500_record()], now=NOW)
        signals = result.signals
        keys = [(d.score.priority.rank, d.score.overall_score) for d in signals]
        assert keys == sorted(keys, reverse=True)
