"""Source verification for the quality filter."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from intelfilter.credibility import detect_warnings, match_domain_pattern, match_tier, source_domain
from intelfilter.models import Document, clamp_score
from intelfilter.tables import ScoringTables, WarningLevel

logger = logging.getLogger(__name__)

_DEFAULT_PROVIDED = 70.0
_MIN_CREDIBILITY = 50.0

# (minimum provided credibility, adjustment); first satisfied step wins
_ACCURACY_STEPS = ((95.0, 10.0), (85.0, 5.0), (70.0, 0.0))
_POOR_ACCURACY = -10.0
_INDEPENDENCE_BONUS = 8.0

_ATTRIBUTION_BASE = 40.0
_ATTRIBUTION: tuple[tuple[str, float, tuple[str, ...]], ...] = (
    ("STRONG", 20.0, ("according to", "sources said", "officials confirmed", "documents show")),
    ("MEDIUM", 10.0, ("reported", "sources say", "officials indicate")),
    ("WEAK", -10.0, ("alleged", "rumored", "claims", "speculation")),
)
_ATTRIBUTION_WEIGHT = 0.1

_LEVELS = ((90, "EXCELLENT"), (75, "GOOD"), (60, "ACCEPTABLE"), (45, "POOR"))
_WARNING_ORDER = (WarningLevel.CRITICAL, WarningLevel.HIGH, WarningLevel.MEDIUM)


class Attribution(BaseModel):
    level: str = "NONE"
    score: float = _ATTRIBUTION_BASE
    indicators: list[str] = Field(default_factory=list)


class SourceVerification(BaseModel):
    score: float
    level: str
    status: str
    trust: str
    tier: str
    flagged: bool = False
    warnings: list[str] = Field(default_factory=list)
    max_warning_level: WarningLevel | None = None
    attribution: Attribution = Field(default_factory=Attribution)
    reason: str | None = None

    @property
    def passed(self) -> bool:
        return self.status != "REJECTED"


def track_record_adjustment(provided: float) -> float:
    accuracy = next((adj for floor, adj in _ACCURACY_STEPS if provided >= floor), _POOR_ACCURACY)
    return accuracy + _INDEPENDENCE_BONUS


def check_attribution(text: str) -> Attribution:
    lower = text.lower()
    score = _ATTRIBUTION_BASE
    level = "NONE"
    found: list[str] = []
    for label, delta, phrases in _ATTRIBUTION:
        for phrase in phrases:
            if phrase in lower:
                score += delta
                found.append(phrase)
                if level == "NONE":
                    level = label
    return Attribution(level=level, score=clamp_score(score), indicators=found)


def credibility_level(score: float) -> str:
    return next((label for floor, label in _LEVELS if score >= floor), "INADEQUATE")


class SourceVerifier:
    def __init__(self, tables: ScoringTables, min_credibility: float | None = None) -> None:
        self._tables = tables
        self._min = tables.thresholds.source_credibility if min_credibility is None else min_credibility

    def verify(self, doc: Document) -> SourceVerification:
        t = self._tables
        tier = match_tier(t, doc.source, doc.url)
        pattern = match_domain_pattern(t, source_domain(doc.source, doc.url))
        warnings = detect_warnings(t, doc.source, doc.url)
        provided = doc.source.credibility if doc.source.credibility is not None else _DEFAULT_PROVIDED
        attribution = check_attribution(doc.text)

        raw = (
            tier.score
            + (pattern.bonus if pattern else 0.0)
            + sum(w.penalty for w in warnings)
            + track_record_adjustment(provided)
            + (attribution.score - 50) * _ATTRIBUTION_WEIGHT
        )
        score = float(round(clamp_score(raw)))

        flagged = any(w.flags_source for w in warnings)
        levels = {w.level for w in warnings}
        max_level = next((lvl for lvl in _WARNING_ORDER if lvl in levels), None)

        reason = None
        if flagged:
            status, trust = "REJECTED", "QUESTIONABLE"
            reason = f"Source flagged: {max_level.value} warning detected"
        elif score < self._min:
            status, trust = "REJECTED", "VERY_LOW"
            reason = f"Source credibility too low: {score:.0f}/100 ({tier.name})"
        else:
            status = "VERIFIED" if score >= 85 else "VALIDATED" if score >= 70 else "ACCEPTED"
            trust = "HIGH" if score >= 85 else "MEDIUM" if score >= 70 else "LOW"

        return SourceVerification(
            score=score,
            level=credibility_level(score),
            status=status,
            trust=trust,
            tier=tier.name,
            flagged=flagged,
            warnings=[w.name for w in warnings],
            max_warning_level=max_level,
            attribution=attribution,
            reason=reason,
        )
