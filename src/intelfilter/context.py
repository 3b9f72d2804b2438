"""Context-adjustment hook applied to the combined score.

Subclass :class:`ContextStrategy` to feed trend, novelty or confirmation
signals into scoring.  The base class is neutral: every factor is 1.0.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from pydantic import BaseModel

from intelfilter.models import Document

_MIN_FACTOR = 0.5
_MAX_FACTOR = 1.5


class ContextAdjustment(BaseModel):
    trend: float = 1.0
    novelty: float = 1.0
    confirmation: float = 1.0

    @property
    def multiplier(self) -> float:
        return (self.trend + self.novelty + self.confirmation) / 3


class ContextStrategy:
    def trend(self, doc: Document, siblings: Sequence[Document]) -> float:
        return 1.0

    def novelty(self, doc: Document, siblings: Sequence[Document]) -> float:
        return 1.0

    def confirmation(self, doc: Document, siblings: Sequence[Document]) -> float:
        return 1.0

    def adjust(self, doc: Document, siblings: Sequence[Document]) -> ContextAdjustment:
        return ContextAdjustment(
            trend=_bounded(self.trend(doc, siblings)),
            novelty=_bounded(self.novelty(doc, siblings)),
            confirmation=_bounded(self.confirmation(doc, siblings)),
        )


def _bounded(value: float) -> float:
    try:
        factor = float(value)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(factor):
        return 1.0
    return max(_MIN_FACTOR, min(_MAX_FACTOR, factor))
