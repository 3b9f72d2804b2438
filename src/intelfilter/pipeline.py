"""Pipeline orchestration: screening, content, source, dedupe, quality, intelligence and final validation."""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from intelfilter.combiner import MultiFactorScorer
from intelfilter.content import ContentQualityAnalyzer
from intelfilter.context import ContextStrategy
from intelfilter.dedupe import DuplicateDetector
from intelfilter.ingest import ingest
from intelfilter.keywords import word_pattern
from intelfilter.models import (
    Disposition,
    Document,
    DuplicateCluster,
    PipelineReport,
    Priority,
    QualityLevel,
    QualityVerdict,
    Rejection,
    Stage,
    StageReport,
    ThreatLevel,
)
from intelfilter.rank import rank
from intelfilter.tables import ScoringTables, default_tables
from intelfilter.temporal import score_document
from intelfilter.verify import SourceVerifier

logger = logging.getLogger(__name__)

# ── Quality-scoring blend ──────────────────────────────────────────────────
_W_Q_INTELLIGENCE = 0.3
_W_Q_CONFIDENCE = 0.2
_W_Q_SOURCE = 0.2
_W_Q_CONTENT = 0.2
_W_Q_TEMPORAL = 0.1

# ── Intelligence-value bonuses ─────────────────────────────────────────────
_PRIORITY_BONUS = {Priority.CRITICAL: 20, Priority.HIGH: 15, Priority.MEDIUM: 5, Priority.LOW: 0}
_THREAT_BONUS = {ThreatLevel.CRITICAL: 15, ThreatLevel.HIGH: 10}
_RICH_ENTITY_COUNT = 5
_RICH_ENTITY_BONUS = 10
_STRATEGIC_BONUS = 10
_VALUE_LEVELS = ((90, "EXCEPTIONAL"), (80, "HIGH"), (70, "MODERATE"), (60, "LIMITED"))

# ── Final-validation blend ─────────────────────────────────────────────────
_W_F_QUALITY = 0.3
_W_F_INTELLIGENCE = 0.3
_W_F_CONTENT = 0.2
_W_F_SOURCE = 0.2
_QUALITY_LEVELS = ((90, QualityLevel.PREMIUM), (80, QualityLevel.HIGH), (70, QualityLevel.STANDARD))

_NEUTRAL = 50.0


class PipelineInvariantError(RuntimeError):
    """A stage produced an inconsistent pass/reject partition."""


class PipelineResult(BaseModel):
    passed: list[Document] = Field(default_factory=list)
    rejected: list[Document] = Field(default_factory=list)
    report: PipelineReport

    @property
    def signals(self) -> list[Document]:
        """Approved documents, most important first."""
        return rank(self.passed)


class _StageOutcome(BaseModel):
    passed: list[Document] = Field(default_factory=list)
    rejected: list[tuple[Document, str, str | None]] = Field(default_factory=list)
    metrics: dict[str, float] = Field(default_factory=dict)
    clusters: list[DuplicateCluster] = Field(default_factory=list)

    def reject(self, doc: Document, reason: str, duplicate_of: str | None = None) -> None:
        self.rejected.append((doc, reason, duplicate_of))


def _average(values: Iterable[float]) -> float:
    values = list(values)
    return round(sum(values) / len(values), 2) if values else 0.0


def _verdict_score(doc: Document, stage: Stage) -> float:
    verdict = doc.verdict(stage)
    return verdict.score if verdict else _NEUTRAL


class QualityFilterPipeline:
    """Seven-stage quality filter over one batch of annotated documents."""

    def __init__(
        self,
        tables: ScoringTables | None = None,
        context: ContextStrategy | None = None,
    ) -> None:
        self.tables = tables or default_tables()
        self.thresholds = self.tables.thresholds
        self.scorer = MultiFactorScorer(self.tables, context)
        self.content = ContentQualityAnalyzer(self.tables)
        self.verifier = SourceVerifier(self.tables)
        self.detector = DuplicateDetector(
            threshold=self.thresholds.duplicate_similarity,
            window_hours=self.thresholds.duplicate_window_hours,
        )
        self._ad_patterns = [word_pattern(p.upper()) for p in self.tables.advertisement_phrases]

    # ── Driver ─────────────────────────────────────────────────────────────
    def run(
        self,
        records: Iterable[Document | Mapping[str, Any]],
        now: datetime | None = None,
    ) -> PipelineResult:
        started_at = datetime.now(UTC)
        now = now or started_at
        started = time.perf_counter()

        docs = ingest(records)
        logger.info("=== quality filter start [%d documents] ===", len(docs))

        stages: list[tuple[Stage, Callable[[list[Document], datetime], _StageOutcome]]] = [
            (Stage.INITIAL_SCREENING, self._initial_screening),
            (Stage.CONTENT_ANALYSIS, self._content_analysis),
            (Stage.SOURCE_VERIFICATION, self._source_verification),
            (Stage.DUPLICATE_DETECTION, self._duplicate_detection),
            (Stage.QUALITY_SCORING, self._quality_scoring),
            (Stage.INTELLIGENCE_ASSESSMENT, self._intelligence_assessment),
            (Stage.FINAL_VALIDATION, self._final_validation),
        ]

        reports: list[StageReport] = []
        clusters: list[DuplicateCluster] = []
        survivors = docs
        for stage, handler in stages:
            outcome = self._run_stage(stage, handler, survivors, now, reports)
            survivors = outcome.passed
            clusters.extend(outcome.clusters)

        for doc in survivors:
            doc.status = Disposition.APPROVED
        rejected = [doc for doc in docs if doc.status is Disposition.REJECTED]
        if len(survivors) + len(rejected) != len(docs):
            raise PipelineInvariantError("documents lost between stages")

        report = self._build_report(docs, survivors, reports, clusters, now, started_at, started)
        logger.info(
            "=== quality filter done: %d/%d approved (%.0f%%) in %.0f ms ===",
            report.output_count, report.input_count, report.pass_rate * 100, report.duration_ms,
        )
        return PipelineResult(passed=survivors, rejected=rejected, report=report)

    def _run_stage(
        self,
        stage: Stage,
        handler: Callable[[list[Document], datetime], _StageOutcome],
        docs: list[Document],
        now: datetime,
        reports: list[StageReport],
    ) -> _StageOutcome:
        started = time.perf_counter()
        outcome = handler(docs, now)
        duration_ms = (time.perf_counter() - started) * 1000

        _check_partition(stage, docs, outcome)
        for doc, reason, duplicate_of in outcome.rejected:
            doc.status = Disposition.REJECTED
            doc.rejection = Rejection(stage=stage, reason=reason, duplicate_of=duplicate_of)

        reports.append(
            StageReport(
                stage=stage,
                input_count=len(docs),
                passed_count=len(outcome.passed),
                rejected_count=len(outcome.rejected),
                rejection_reasons={doc.id: reason for doc, reason, _ in outcome.rejected},
                metrics=outcome.metrics,
                duration_ms=round(duration_ms, 3),
            )
        )
        logger.info(
            "  [%s] %d → %d passed (%d rejected)",
            stage.value, len(docs), len(outcome.passed), len(outcome.rejected),
        )
        return outcome

    # ── 1. Initial screening ───────────────────────────────────────────────
    def _screening_reason(self, doc: Document, now: datetime) -> str | None:
        th = self.thresholds
        if len(doc.text) < th.min_content_length:
            return "Insufficient content length"
        upper = doc.text.upper()
        if any(p.search(upper) for p in self._ad_patterns):
            return "Advertisement detected"
        relevance = doc.annotation.relevance_score
        if relevance is not None and relevance < th.min_relevance:
            return "Below minimum relevance threshold"
        if doc.age_hours(now) > th.max_age_hours:
            return "Content too old"
        if not doc.title or not doc.url:
            return "Missing required fields"
        return None

    def _initial_screening(self, docs: list[Document], now: datetime) -> _StageOutcome:
        outcome = _StageOutcome()
        for doc in docs:
            reason = self._screening_reason(doc, now)
            if reason:
                outcome.reject(doc, reason)
            else:
                outcome.passed.append(doc)
        reasons = Counter(reason for _, reason, _ in outcome.rejected)
        outcome.metrics = {f"rejected:{reason}": float(n) for reason, n in sorted(reasons.items())}
        return outcome

    # ── 2. Content analysis ────────────────────────────────────────────────
    def _content_analysis(self, docs: list[Document], now: datetime) -> _StageOutcome:
        outcome = _StageOutcome()
        scores = []
        for doc in docs:
            analysis = self.content.analyze(doc)
            scores.append(analysis.score)
            passed = analysis.score >= self.thresholds.content_quality
            reason = None if passed else f"Content quality too low: {analysis.score:.0f}/100"
            doc.verdicts.append(
                QualityVerdict(
                    stage=Stage.CONTENT_ANALYSIS,
                    score=analysis.score,
                    level=analysis.level,
                    passed=passed,
                    reason=reason,
                    sub_scores=analysis.sub_scores(),
                    notes=analysis.recommendations,
                )
            )
            if passed:
                outcome.passed.append(doc)
            else:
                outcome.reject(doc, reason)
        outcome.metrics = {"average_content_quality": _average(scores)}
        return outcome

    # ── 3. Source verification ─────────────────────────────────────────────
    def _source_verification(self, docs: list[Document], now: datetime) -> _StageOutcome:
        outcome = _StageOutcome()
        scores = []
        tiers: Counter[str] = Counter()
        flagged = 0
        for doc in docs:
            result = self.verifier.verify(doc)
            scores.append(result.score)
            tiers[result.tier] += 1
            flagged += result.flagged
            doc.verdicts.append(
                QualityVerdict(
                    stage=Stage.SOURCE_VERIFICATION,
                    score=result.score,
                    level=result.level,
                    passed=result.passed,
                    reason=result.reason,
                    sub_scores={"attribution": result.attribution.score},
                    notes=[result.status, result.tier, *result.warnings],
                )
            )
            if result.passed:
                outcome.passed.append(doc)
            else:
                outcome.reject(doc, result.reason or "Source verification failed")
        outcome.metrics = {
            "average_credibility": _average(scores),
            "flagged_sources": float(flagged),
            **{f"tier:{name}": float(n) for name, n in sorted(tiers.items())},
        }
        return outcome

    # ── 4. Duplicate detection ─────────────────────────────────────────────
    def _duplicate_detection(self, docs: list[Document], now: datetime) -> _StageOutcome:
        result = self.detector.detect(docs, now)
        outcome = _StageOutcome(passed=list(result.retained))
        for doc, primary_id, _ in result.duplicates:
            doc.annotation.is_duplicate = True
            outcome.reject(doc, f"Duplicate of signal {primary_id}", primary_id)
        outcome.clusters = list(result.clusters)
        outcome.metrics = {"clusters": float(len(result.clusters))}
        return outcome

    # ── 5. Quality scoring ─────────────────────────────────────────────────
    def _quality_scoring(self, docs: list[Document], now: datetime) -> _StageOutcome:
        outcome = _StageOutcome()
        window = self.thresholds.cross_reference_window
        scores = []
        for doc in docs:
            siblings = [d for d in docs if d.id != doc.id][:window]
            breakdown = self.scorer.score(doc, siblings, now)
            doc.score = breakdown
            sub_scores = {
                "intelligence": breakdown.overall_score,
                "confidence": breakdown.confidence,
                "source": _verdict_score(doc, Stage.SOURCE_VERIFICATION),
                "content": _verdict_score(doc, Stage.CONTENT_ANALYSIS),
                "temporal": score_document(doc, now).score,
            }
            quality = float(
                round(
                    sub_scores["intelligence"] * _W_Q_INTELLIGENCE
                    + sub_scores["confidence"] * _W_Q_CONFIDENCE
                    + sub_scores["source"] * _W_Q_SOURCE
                    + sub_scores["content"] * _W_Q_CONTENT
                    + sub_scores["temporal"] * _W_Q_TEMPORAL
                )
            )
            scores.append(quality)
            passed = quality >= self.thresholds.quality_score
            reason = None if passed else f"Overall quality too low: {quality:.0f}/100"
            doc.verdicts.append(
                QualityVerdict(
                    stage=Stage.QUALITY_SCORING,
                    score=quality,
                    level=breakdown.priority.value,
                    passed=passed,
                    reason=reason,
                    sub_scores=sub_scores,
                    notes=[breakdown.reasoning],
                )
            )
            if passed:
                outcome.passed.append(doc)
            else:
                outcome.reject(doc, reason)
        outcome.metrics = {"average_quality": _average(scores)}
        return outcome

    # ── 6. Intelligence assessment ─────────────────────────────────────────
    def intelligence_value(self, doc: Document) -> tuple[float, list[str]]:
        """Scored relevance plus bonuses for priority, entity richness, threat and strategic weight."""
        breakdown = doc.score
        if breakdown is None:
            breakdown = self.scorer.score(doc)
        value = breakdown.overall_score + _PRIORITY_BONUS[breakdown.priority]
        factors = [f"Priority: {breakdown.priority.value}"]
        if doc.entities.count >= _RICH_ENTITY_COUNT:
            value += _RICH_ENTITY_BONUS
            factors.append("Rich entity content")
        if breakdown.threat_level in _THREAT_BONUS:
            value += _THREAT_BONUS[breakdown.threat_level]
            factors.append(f"{breakdown.threat_level.value.title()} threat level")
        if "significant" in doc.annotation.strategic_implications.lower():
            value += _STRATEGIC_BONUS
            factors.append("Strategic significance")
        return min(value, 100.0), factors

    def _intelligence_assessment(self, docs: list[Document], now: datetime) -> _StageOutcome:
        outcome = _StageOutcome()
        values = []
        for doc in docs:
            value, factors = self.intelligence_value(doc)
            values.append(value)
            passed = value >= self.thresholds.intelligence_value
            reason = None if passed else f"Intelligence value too low: {value:.0f}/100"
            doc.verdicts.append(
                QualityVerdict(
                    stage=Stage.INTELLIGENCE_ASSESSMENT,
                    score=value,
                    level=next((label for floor, label in _VALUE_LEVELS if value >= floor), "MINIMAL"),
                    passed=passed,
                    reason=reason,
                    notes=factors,
                )
            )
            if passed:
                outcome.passed.append(doc)
            else:
                outcome.reject(doc, reason)
        outcome.metrics = {"average_intelligence_value": _average(values)}
        return outcome

    # ── 7. Final validation ────────────────────────────────────────────────
    def _final_validation(self, docs: list[Document], now: datetime) -> _StageOutcome:
        outcome = _StageOutcome()
        scores = []
        for doc in docs:
            final = float(
                round(
                    _verdict_score(doc, Stage.QUALITY_SCORING) * _W_F_QUALITY
                    + _verdict_score(doc, Stage.INTELLIGENCE_ASSESSMENT) * _W_F_INTELLIGENCE
                    + _verdict_score(doc, Stage.CONTENT_ANALYSIS) * _W_F_CONTENT
                    + _verdict_score(doc, Stage.SOURCE_VERIFICATION) * _W_F_SOURCE
                )
            )
            scores.append(final)
            level = next((lvl for floor, lvl in _QUALITY_LEVELS if final >= floor), QualityLevel.BASIC)
            passed = final >= self.thresholds.final_validation
            reason = None if passed else f"Final validation score too low: {final:.0f}/100"
            doc.verdicts.append(
                QualityVerdict(
                    stage=Stage.FINAL_VALIDATION,
                    score=final,
                    level=level.value,
                    passed=passed,
                    reason=reason,
                )
            )
            if passed:
                doc.final_quality_score = final
                doc.quality_level = level
                outcome.passed.append(doc)
            else:
                outcome.reject(doc, reason)
        outcome.metrics = {"average_final_score": _average(scores)}
        return outcome

    # ── Report ─────────────────────────────────────────────────────────────
    def _build_report(
        self,
        docs: list[Document],
        approved: list[Document],
        stages: list[StageReport],
        clusters: list[DuplicateCluster],
        now: datetime,
        started_at: datetime,
        started: float,
    ) -> PipelineReport:
        duration_ms = (time.perf_counter() - started) * 1000
        distribution = {level.value: 0 for level in QualityLevel}
        for doc in approved:
            distribution[(doc.quality_level or QualityLevel.BASIC).value] += 1

        pass_rate = len(approved) / len(docs) if docs else 0.0
        recommendations = []
        if docs and pass_rate < 0.5:
            recommendations.append("Consider reviewing source selection criteria")
        if approved and distribution["PREMIUM"] + distribution["HIGH"] < len(approved) * 0.3:
            recommendations.append("Focus on higher-quality sources for better intelligence value")

        return PipelineReport(
            reference_time=now,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            duration_ms=round(duration_ms, 3),
            input_count=len(docs),
            output_count=len(approved),
            pass_rate=round(pass_rate, 4),
            stages=tuple(stages),
            quality_distribution=distribution,
            duplicate_clusters=tuple(clusters),
            recommendations=tuple(recommendations),
            thresholds={k: float(v) for k, v in self.thresholds.model_dump().items()},
        )


def _check_partition(stage: Stage, docs: list[Document], outcome: _StageOutcome) -> None:
    incoming = [doc.id for doc in docs]
    passed = [doc.id for doc in outcome.passed]
    rejected = [doc.id for doc, _, _ in outcome.rejected]
    if len(passed) + len(rejected) != len(incoming):
        raise PipelineInvariantError(
            f"{stage.value}: {len(incoming)} in but {len(passed)} passed + {len(rejected)} rejected"
        )
    if set(passed) & set(rejected):
        raise PipelineInvariantError(f"{stage.value}: documents both passed and rejected")
    if set(passed) | set(rejected) != set(incoming):
        raise PipelineInvariantError(f"{stage.value}: partition does not match stage input")
    if any(not reason for _, reason, _ in outcome.rejected):
        raise PipelineInvariantError(f"{stage.value}: rejection without a reason")


def run_pipeline(
    records: Iterable[Document | Mapping[str, Any]],
    tables: ScoringTables | None = None,
    now: datetime | None = None,
) -> PipelineResult:
    """Convenience wrapper around :class:`QualityFilterPipeline`."""
    return QualityFilterPipeline(tables=tables).run(records, now=now)
