"""Entity significance scoring and tension-pair detection."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from intelfilter.models import Entities
from intelfilter.tables import EntityKindTable, ScoringTables, TensionPair

logger = logging.getLogger(__name__)

_KIND_CAP = 100.0
_TENSION_BONUS = 15.0


class EntityScore(BaseModel):
    score: float
    by_kind: dict[str, float] = Field(default_factory=dict)
    classifications: dict[str, str] = Field(default_factory=dict)
    tension_pairs: list[tuple[str, str]] = Field(default_factory=list)


def detect_tension_pairs(tables: ScoringTables, entities: Entities) -> list[TensionPair]:
    """Known rivalries whose two sides both appear among countries or organizations."""
    present = set(entities.countries) | set(entities.organizations)
    return [pair for pair in tables.tension_pairs if pair.first in present and pair.second in present]


class EntityScorer:
    def __init__(self, tables: ScoringTables) -> None:
        self._tables = tables

    def score(self, entities: Entities) -> EntityScore:
        t = self._tables
        weights = t.entity_weights
        classifications: dict[str, str] = {}

        def kind_score(names: list[str], table: EntityKindTable) -> float:
            total = 0.0
            for name in names:
                label, value = table.classify(name)
                classifications[name] = label
                total += value
            return total

        pairs = detect_tension_pairs(t, entities)
        countries = kind_score(entities.countries, t.countries) + len(pairs) * _TENSION_BONUS
        by_kind = {
            "countries": min(countries, _KIND_CAP),
            "organizations": min(kind_score(entities.organizations, t.organizations), _KIND_CAP),
            "technologies": min(kind_score(entities.technologies, t.technologies), _KIND_CAP),
            "weapons": min(kind_score(entities.weapons, t.weapons), _KIND_CAP),
        }
        total = (
            by_kind["countries"] * weights.countries
            + by_kind["organizations"] * weights.organizations
            + by_kind["technologies"] * weights.technologies
            + by_kind["weapons"] * weights.weapons
        )
        return EntityScore(
            score=min(total, 100.0),
            by_kind=by_kind,
            classifications=classifications,
            tension_pairs=[(p.first, p.second) for p in pairs],
        )
