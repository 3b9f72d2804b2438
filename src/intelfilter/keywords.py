"""Tiered keyword scoring with logarithmic saturation."""

from __future__ import annotations

import logging
import math
import re

from pydantic import BaseModel, Field

from intelfilter.tables import ScoringTables

logger = logging.getLogger(__name__)

_MATCH_FACTOR = 0.1
_SATURATION_POINT = 80.0
_SATURATION_SCALE = 10.0


class KeywordMatch(BaseModel):
    keyword: str
    tier: str
    count: int


class KeywordScore(BaseModel):
    score: float
    raw_total: float = 0.0
    tier_bonus: float = 0.0
    top_tier: str | None = None
    matches: list[KeywordMatch] = Field(default_factory=list)

    @property
    def keywords(self) -> list[str]:
        return [m.keyword for m in self.matches]


def saturate(total: float) -> float:
    """Identity up to 80, logarithmic growth beyond it."""
    if total <= _SATURATION_POINT:
        return total
    return _SATURATION_POINT + math.log(max(total - _SATURATION_POINT, 1.0)) * _SATURATION_SCALE


class KeywordScorer:
    """Scores text against the configured keyword tiers."""

    def __init__(self, tables: ScoringTables) -> None:
        self._tiers = tables.keyword_tiers
        self._patterns: list[tuple[str, str, float, re.Pattern[str]]] = [
            (tier.name, keyword, tier.weight, word_pattern(keyword))
            for tier in self._tiers
            for keyword in tier.keywords
        ]

    def score(self, text: str) -> KeywordScore:
        upper = text.upper()
        total = 0.0
        matches: list[KeywordMatch] = []
        tiers_hit: set[str] = set()

        for tier_name, keyword, weight, pattern in self._patterns:
            count = len(pattern.findall(upper))
            if not count:
                continue
            total += count * weight * _MATCH_FACTOR
            matches.append(KeywordMatch(keyword=keyword, tier=tier_name, count=count))
            tiers_hit.add(tier_name)

        # tiers are ordered most to least important
        top = next((tier for tier in self._tiers if tier.name in tiers_hit), None)
        bonus = top.bonus if top else 0.0
        final = min(100.0, saturate(total) + bonus)

        logger.debug("Keyword score %.1f (raw %.1f, %d matches)", final, total, len(matches))
        return KeywordScore(
            score=final,
            raw_total=total,
            tier_bonus=bonus,
            top_tier=top.name if top else None,
            matches=matches,
        )


def word_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)")
