"""Geopolitical context from known tension pairs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from intelfilter.entities import detect_tension_pairs
from intelfilter.models import Entities
from intelfilter.tables import ScoringTables

_PAIR_SCALE = 50.0


class Relationship(BaseModel):
    first: str
    second: str
    tension: float
    importance: float
    score: float


class GeopoliticalContext(BaseModel):
    score: float
    relationships: list[Relationship] = Field(default_factory=list)

    @property
    def pair_count(self) -> int:
        return len(self.relationships)


class GeopoliticalScorer:
    def __init__(self, tables: ScoringTables) -> None:
        self._tables = tables

    def score(self, entities: Entities) -> GeopoliticalContext:
        relationships = [
            Relationship(
                first=pair.first,
                second=pair.second,
                tension=pair.tension,
                importance=pair.importance,
                score=pair.tension * pair.importance * _PAIR_SCALE,
            )
            for pair in detect_tension_pairs(self._tables, entities)
        ]
        total = sum(r.score for r in relationships)
        return GeopoliticalContext(score=min(total, 100.0), relationships=relationships)
