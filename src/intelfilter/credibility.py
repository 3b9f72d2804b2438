"""Source credibility: tier matrix, domain bonuses and warning penalties."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from intelfilter.models import Document, SourceInfo, clamp_score
from intelfilter.tables import CredibilityTier, DomainPattern, ScoringTables, WarningFlag

logger = logging.getLogger(__name__)

_DEFAULT_PROVIDED = 70.0


def source_domain(source: SourceInfo, url: str = "") -> str:
    """Declared domain, else the host of *url*."""
    if source.domain:
        return source.domain
    host = urlsplit(url).hostname or ""
    return host.removeprefix("www.")


def match_tier(tables: ScoringTables, source: SourceInfo, url: str = "") -> CredibilityTier:
    domain = source_domain(source, url)
    name = source.name.lower()
    for tier in tables.credibility_tiers:
        if domain and any(domain == d or domain.endswith("." + d) for d in tier.domains):
            return tier
        if name and name in tier.sources:
            return tier
    return tables.tier(tables.default_tier)


def match_domain_pattern(tables: ScoringTables, domain: str) -> DomainPattern | None:
    """Strongest domain pattern found in *domain*, if any."""
    hits = [p for p in tables.domain_patterns if domain and any(x in domain for x in p.patterns)]
    return max(hits, key=lambda p: p.bonus, default=None)


def detect_warnings(tables: ScoringTables, source: SourceInfo, url: str = "") -> list[WarningFlag]:
    descriptor = " ".join(
        part for part in (source_domain(source, url), source.name.lower(), source.category.lower()) if part
    )
    return [flag for flag in tables.warning_flags if any(ind in descriptor for ind in flag.indicators)]


class CredibilityAssessment(BaseModel):
    score: float
    tier: str
    tier_score: float
    provided: float
    domain_pattern: str | None = None
    domain_bonus: float = 0.0
    warnings: list[str] = Field(default_factory=list)
    warning_penalty: float = 0.0


class SourceCredibilityScorer:
    def __init__(self, tables: ScoringTables) -> None:
        self._tables = tables

    def assess(self, doc: Document) -> CredibilityAssessment:
        t = self._tables
        tier = match_tier(t, doc.source, doc.url)
        provided = doc.source.credibility if doc.source.credibility is not None else _DEFAULT_PROVIDED
        pattern = match_domain_pattern(t, source_domain(doc.source, doc.url))
        warnings = detect_warnings(t, doc.source, doc.url)

        bonus = pattern.bonus if pattern else 0.0
        penalty = sum(w.penalty for w in warnings)
        score = clamp_score((provided + tier.score) / 2 + bonus + penalty)

        return CredibilityAssessment(
            score=score,
            tier=tier.name,
            tier_score=tier.score,
            provided=provided,
            domain_pattern=pattern.name if pattern else None,
            domain_bonus=bonus,
            warnings=[w.name for w in warnings],
            warning_penalty=penalty,
        )
