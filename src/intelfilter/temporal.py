"""Age-based relevance decay."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from intelfilter.models import Document

# (max age in hours, category, score, urgency factor); first match wins
_DECAY_STEPS: tuple[tuple[float, str, float, float], ...] = (
    (1.0, "BREAKING", 100.0, 1.0),
    (6.0, "RECENT", 95.0, 0.95),
    (24.0, "CURRENT", 85.0, 0.85),
    (72.0, "DAILY", 70.0, 0.7),
    (168.0, "WEEKLY", 50.0, 0.5),
)
_HISTORICAL = ("HISTORICAL", 30.0, 0.3)


class TemporalScore(BaseModel):
    score: float
    age_hours: float
    category: str
    urgency: float


def score_age(age_hours: float) -> TemporalScore:
    age = max(0.0, age_hours)
    for limit, category, value, urgency in _DECAY_STEPS:
        if age <= limit:
            return TemporalScore(score=value, age_hours=age, category=category, urgency=urgency)
    category, value, urgency = _HISTORICAL
    return TemporalScore(score=value, age_hours=age, category=category, urgency=urgency)


def score_document(doc: Document, now: datetime) -> TemporalScore:
    return score_age(doc.age_hours(now))
