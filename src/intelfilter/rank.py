"""Ordering of approved signals for downstream consumers."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from intelfilter.models import Document

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def sort_key(doc: Document) -> tuple[int, float, float, datetime]:
    """Priority band, then overall score, then final quality, then recency."""
    score = doc.score
    return (
        score.priority.rank if score else -1,
        score.overall_score if score else 0.0,
        doc.final_quality_score or 0.0,
        doc.published_at or doc.fetched_at or _EPOCH,
    )


def rank(docs: list[Document]) -> list[Document]:
    """Sort documents most important first; input order breaks remaining ties."""
    ranked = sorted(docs, key=sort_key, reverse=True)
    if ranked:
        top = ranked[0]
        logger.debug(
            "Ranked %d signals; top=%s (%s)",
            len(ranked), top.id, top.score.priority.value if top.score else "unscored",
        )
    return ranked
