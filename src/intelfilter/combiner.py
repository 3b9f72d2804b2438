"""Multi-factor signal scoring.

Six primary factors (keywords, entities, source credibility, recency,
geopolitical context, threat) and five secondary factors (content depth,
linguistic cues, cross-reference, operational relevance, strategic importance)
are blended 70/30, adjusted by the context strategy and clamped to 0-100.
Confidence and priority are derived from the same inputs.
"""

from __future__ import annotations

import logging
import re
import statistics
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from intelfilter.context import ContextStrategy
from intelfilter.credibility import SourceCredibilityScorer
from intelfilter.entities import EntityScorer
from intelfilter.geopolitics import GeopoliticalScorer
from intelfilter.keywords import KeywordScorer
from intelfilter.models import (
    Document,
    Entities,
    FactorScores,
    Priority,
    ScoreBreakdown,
    ThreatLevel,
    clamp_score,
)
from intelfilter.tables import ScoringTables
from intelfilter.temporal import score_document
from intelfilter.threat import ThreatAssessor

logger = logging.getLogger(__name__)

# ── Weights (contract, not configuration) ──────────────────────────────────
PRIMARY_WEIGHTS: dict[str, float] = {
    "keyword": 0.30,
    "entity": 0.25,
    "source_credibility": 0.20,
    "temporal": 0.10,
    "geopolitical": 0.08,
    "threat": 0.07,
}
SECONDARY_WEIGHTS: dict[str, float] = {
    "content_depth": 0.15,
    "linguistic": 0.20,
    "cross_reference": 0.25,
    "operational": 0.25,
    "strategic": 0.15,
}
_PRIMARY_SHARE = 0.7
_SECONDARY_SHARE = 0.3

_PRIORITY_FLOORS: tuple[tuple[float, Priority], ...] = (
    (85.0, Priority.CRITICAL),
    (70.0, Priority.HIGH),
    (50.0, Priority.MEDIUM),
)
_ESCALATION_PAIR_COUNT = 2

_MIN_CONFIDENCE = 30.0
_CONSISTENCY_SPREAD_PENALTY = 2.0
_W_CONSISTENCY = 0.6
_W_SOURCE = 0.4

# ── Secondary-factor lexicons ──────────────────────────────────────────────
_DETAIL_RE = re.compile(
    r"\d{1,2}/\d{1,2}/\d{4}|\d{1,2}:\d{2}|specific|according to|reported|confirmed|sources",
    re.IGNORECASE,
)
_QUOTE_RE = re.compile(r"\"[^\"]*\"|'[^']*'|“[^”]*”")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

_URGENCY_WORDS = ("breaking", "urgent", "immediate", "alert", "emergency", "critical")
_AUTHORITY_WORDS = ("official", "confirmed", "verified", "authenticated", "disclosed")
_EXCLUSIVITY_WORDS = ("exclusive", "first reported", "obtained", "leaked", "revealed")
_UNCERTAINTY_WORDS = ("alleged", "rumored", "unconfirmed", "speculation", "possibly")

_WATCHLIST: tuple[str, ...] = (
    "CHINA", "RUSSIA", "USA", "IRAN", "NORTH KOREA", "UKRAINE", "TAIWAN",
    "NUCLEAR", "MISSILE", "CYBER", "MILITARY", "INTELLIGENCE",
)
_CROSS_REFERENCE_DAYS = 7

_OPERATIONAL_WORDS = (
    "deployment", "operation", "exercise", "patrol", "mission", "task force",
    "readiness", "alert", "response", "capability", "threat", "security",
)
_IMMEDIACY_WORDS = ("now", "today", "immediate", "urgent", "emergency", "rapid", "breaking")
_HIGH_VALUE_ENTITIES = frozenset({"USA", "CHINA", "RUSSIA", "NATO", "NUCLEAR"})

_STRATEGIC_WORDS = (
    "strategy", "doctrine", "policy", "alliance", "treaty", "agreement",
    "balance", "power", "influence", "regional", "global", "international",
)
_FUTURE_WORDS = (
    "future", "plan", "develop", "program", "project", "initiative",
    "next", "upcoming", "long-term", "strategic",
)
_MAJOR_POWERS = ("USA", "CHINA", "RUSSIA")


class MultiFactorScorer:
    """Produces a :class:`ScoreBreakdown` for a document."""

    def __init__(self, tables: ScoringTables, context: ContextStrategy | None = None) -> None:
        self.keywords = KeywordScorer(tables)
        self.entities = EntityScorer(tables)
        self.credibility = SourceCredibilityScorer(tables)
        self.threat = ThreatAssessor(tables)
        self.geopolitics = GeopoliticalScorer(tables)
        self.context = context or ContextStrategy()

    def score(
        self,
        doc: Document,
        siblings: Sequence[Document] = (),
        now: datetime | None = None,
    ) -> ScoreBreakdown:
        now = now or datetime.now(UTC)
        text = doc.text

        keyword = self.keywords.score(text)
        entity = self.entities.score(doc.entities)
        credibility = self.credibility.assess(doc)
        temporal = score_document(doc, now)
        geo = self.geopolitics.score(doc.entities)
        threat = self.threat.assess(text)

        factors = FactorScores(
            keyword=keyword.score,
            entity=entity.score,
            source_credibility=credibility.score,
            temporal=temporal.score,
            geopolitical=geo.score,
            threat=threat.score,
            content_depth=content_depth(doc),
            linguistic=linguistic_indicators(text),
            cross_reference=cross_reference(doc, siblings, now),
            operational=operational_relevance(text, doc.entities),
            strategic=strategic_importance(text, doc.entities),
        )

        primary = sum(getattr(factors, name) * w for name, w in PRIMARY_WEIGHTS.items())
        secondary = sum(getattr(factors, name) * w for name, w in SECONDARY_WEIGHTS.items())
        adjustment = self.context.adjust(doc, siblings)
        overall = round(
            clamp_score((primary * _PRIMARY_SHARE + secondary * _SECONDARY_SHARE) * adjustment.multiplier),
            2,
        )

        primary_scores = [getattr(factors, name) for name in PRIMARY_WEIGHTS]
        priority, escalated, reasoning = classify_priority(overall, threat.level, geo.pair_count)

        breakdown = ScoreBreakdown(
            factors=factors,
            primary_score=round(primary, 2),
            secondary_score=round(secondary, 2),
            context_multiplier=adjustment.multiplier,
            overall_score=overall,
            confidence=round(confidence(primary_scores, credibility.score), 2),
            priority=priority,
            escalated=escalated,
            threat_level=threat.level,
            tension_pairs=[(r.first, r.second) for r in geo.relationships],
            matched_keywords=keyword.keywords,
            reasoning=reasoning,
        )
        logger.debug(
            "Scored %s: overall=%.1f confidence=%.1f priority=%s",
            doc.id, breakdown.overall_score, breakdown.confidence, breakdown.priority.value,
        )
        return breakdown


def priority_for(score: float) -> Priority:
    for floor, priority in _PRIORITY_FLOORS:
        if score >= floor:
            return priority
    return Priority.LOW


def classify_priority(
    overall: float,
    threat_level: ThreatLevel,
    tension_pair_count: int,
) -> tuple[Priority, bool, str]:
    """Band the score, escalating once for a critical threat or multiple tension pairs."""
    base = priority_for(overall)
    triggers = []
    if threat_level is ThreatLevel.CRITICAL:
        triggers.append("critical threat assessment")
    if tension_pair_count >= _ESCALATION_PAIR_COUNT:
        triggers.append(f"{tension_pair_count} geopolitical tension pairs")

    reasoning = f"overall score {overall:.1f} maps to {base.value}"
    if triggers and base is not Priority.CRITICAL:
        escalated = base.escalate()
        return escalated, True, f"{reasoning}; escalated to {escalated.value} ({', '.join(triggers)})"
    return base, False, reasoning


def confidence(primary_scores: Sequence[float], source_score: float) -> float:
    """Consistency of the primary factors blended with source credibility, floored at 30."""
    spread = statistics.pstdev(primary_scores) if len(primary_scores) > 1 else 0.0
    consistency = max(0.0, 100.0 - _CONSISTENCY_SPREAD_PENALTY * spread)
    return clamp_score(_W_CONSISTENCY * consistency + _W_SOURCE * source_score, _MIN_CONFIDENCE, 100.0)


# ── Secondary factors ──────────────────────────────────────────────────────
def content_depth(doc: Document) -> float:
    body = doc.body
    words = len(body.split())
    sentences = len([s for s in _SENTENCE_SPLIT_RE.split(body) if s.strip()])

    score = 0.0
    if words > 500:
        score += 30
    elif words > 300:
        score += 20
    elif words > 150:
        score += 10

    if sentences > 10:
        score += 20
    elif sentences > 5:
        score += 10

    if _DETAIL_RE.search(body):
        score += 25
    if _QUOTE_RE.search(body):
        score += 15
    if len(doc.title) > 60:
        score += 10
    return min(score, 100.0)


def linguistic_indicators(text: str) -> float:
    lower = text.lower()
    score = 50.0
    score += 10 * sum(1 for w in _URGENCY_WORDS if w in lower)
    score += 8 * sum(1 for w in _AUTHORITY_WORDS if w in lower)
    score += 12 * sum(1 for w in _EXCLUSIVITY_WORDS if w in lower)
    score -= 5 * sum(1 for w in _UNCERTAINTY_WORDS if w in lower)
    return clamp_score(score)


def _watchlist_entities(doc: Document) -> set[str]:
    upper = doc.text.upper()
    return {name for name in _WATCHLIST if name in upper}


def cross_reference(doc: Document, siblings: Sequence[Document], now: datetime) -> float:
    """Corroboration by recent sibling documents; neutral 50 when there are none."""
    others = [s for s in siblings if s.id != doc.id]
    if not others:
        return 50.0

    window = timedelta(days=_CROSS_REFERENCE_DAYS)
    anchor = doc.timestamp(now)
    mine = _watchlist_entities(doc)
    correlation = 0.0
    for sibling in others:
        if abs(anchor - sibling.timestamp(now)) > window:
            continue
        correlation += 5 * len(mine & _watchlist_entities(sibling))

    if correlation > 50:
        correlation += 20
    return min(correlation + 30, 100.0)


def operational_relevance(text: str, entities: Entities) -> float:
    lower = text.lower()
    score = 8.0 * sum(1 for w in _OPERATIONAL_WORDS if w in lower)
    score += 10 * sum(1 for w in _IMMEDIACY_WORDS if w in lower)
    if _HIGH_VALUE_ENTITIES & (set(entities.countries) | set(entities.technologies)):
        score += 20
    return min(score, 100.0)


def strategic_importance(text: str, entities: Entities) -> float:
    lower = text.lower()
    score = 6.0 * sum(1 for w in _STRATEGIC_WORDS if w in lower)
    score += 5 * sum(1 for w in _FUTURE_WORDS if w in lower)
    powers = sum(1 for p in _MAJOR_POWERS if p in entities.countries)
    if powers >= 2:
        score += 30
    elif powers == 1:
        score += 15
    return min(score, 100.0)
