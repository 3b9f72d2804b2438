"""Threat assessment across nuclear, military, cyber, economic and diplomatic categories."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from intelfilter.keywords import word_pattern
from intelfilter.models import ThreatLevel
from intelfilter.tables import ScoringTables

logger = logging.getLogger(__name__)

_POINTS_PER_HIT = 20.0

_LEVELS: tuple[tuple[float, ThreatLevel], ...] = (
    (80.0, ThreatLevel.CRITICAL),
    (60.0, ThreatLevel.HIGH),
    (40.0, ThreatLevel.MEDIUM),
)


class CategoryHit(BaseModel):
    category: str
    keywords: list[str]
    score: float


class ThreatAssessment(BaseModel):
    score: float
    level: ThreatLevel
    primary_category: str | None = None
    escalation: str | None = None
    escalation_multiplier: float = 1.0
    categories: list[CategoryHit] = Field(default_factory=list)


def threat_level(score: float) -> ThreatLevel:
    for floor, level in _LEVELS:
        if score >= floor:
            return level
    return ThreatLevel.LOW


class ThreatAssessor:
    def __init__(self, tables: ScoringTables) -> None:
        self._categories = [
            (cat.name, cat.escalation_risk, [(kw, word_pattern(kw)) for kw in cat.keywords])
            for cat in tables.threat_categories
        ]
        self._escalation = [
            (ind.name, ind.multiplier, [word_pattern(kw) for kw in ind.keywords])
            for ind in tables.escalation_indicators
        ]

    def assess(self, text: str) -> ThreatAssessment:
        upper = text.upper()

        hits: list[CategoryHit] = []
        for name, risk, keywords in self._categories:
            found = [kw for kw, pattern in keywords if pattern.search(upper)]
            if found:
                hits.append(CategoryHit(category=name, keywords=found, score=len(found) * risk * _POINTS_PER_HIT))

        primary = max(hits, key=lambda h: h.score, default=None)
        base = primary.score if primary else 0.0

        escalation, multiplier = None, 1.0
        for name, factor, patterns in self._escalation:
            if factor > multiplier and any(p.search(upper) for p in patterns):
                escalation, multiplier = name, factor

        score = min(100.0, base * multiplier)
        return ThreatAssessment(
            score=score,
            level=threat_level(score),
            primary_category=primary.category if primary else None,
            escalation=escalation,
            escalation_multiplier=multiplier,
            categories=hits,
        )
