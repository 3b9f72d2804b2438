"""Deduplication within a batch.

Every pair of documents is compared once.  The link term is 1.0 for a
shared canonical URL and otherwise the entity overlap of the pair.  Pairs at
or above the similarity threshold are merged into clusters (union-find), and
each cluster keeps the member with the best internal quality; the rest are
reported as duplicates of it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field

from intelfilter.models import Document, DuplicateCluster, DuplicateMember
from intelfilter.similarity import entity_overlap, temporal_proximity, token_similarity, tokenize

logger = logging.getLogger(__name__)

# ── Pair weights ───────────────────────────────────────────────────────────
_W_TITLE = 0.4
_W_CONTENT = 0.3
_W_LINK = 0.2
_W_TEMPORAL = 0.1

_CATEGORIES = (
    (0.95, "EXACT_DUPLICATE"),
    (0.85, "NEAR_DUPLICATE"),
    (0.70, "SIMILAR"),
    (0.50, "RELATED"),
)

_TRACKING_PARAMS = frozenset({"fbclid", "gclid", "mc_cid", "mc_eid", "ref", "cmpid", "ncid"})

_DEFAULT_CREDIBILITY = 70.0
_DEFAULT_RELEVANCE = 50.0


class PairSimilarity(BaseModel):
    title: float
    content: float
    url: float
    entities: float
    link: float
    temporal: float
    overall: float
    category: str


class DedupeResult(BaseModel):
    retained: list[Document] = Field(default_factory=list)
    duplicates: list[tuple[Document, str, float]] = Field(default_factory=list)
    clusters: list[DuplicateCluster] = Field(default_factory=list)


class _Prepared(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: list[str]
    body: list[str]
    url: str
    timestamp: datetime


def canonical_url(url: str) -> str:
    """Strip scheme, ``www.``, fragment, trailing slash and tracking parameters."""
    if not url:
        return ""
    parts = urlsplit(url.strip())
    host = (parts.hostname or "").removeprefix("www.")
    query = urlencode(
        sorted(
            (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
            if not k.lower().startswith("utm_") and k.lower() not in _TRACKING_PARAMS
        )
    )
    return urlunsplit(("", host, parts.path.rstrip("/"), query, "")).lstrip("/")


def similarity_category(value: float) -> str:
    return next((label for floor, label in _CATEGORIES if value >= floor), "UNIQUE")


def internal_quality(doc: Document) -> float:
    """Cluster tie-breaker: credibility, body length and annotator relevance."""
    credibility = doc.source.credibility if doc.source.credibility is not None else _DEFAULT_CREDIBILITY
    relevance = (
        doc.annotation.relevance_score if doc.annotation.relevance_score is not None else _DEFAULT_RELEVANCE
    )
    return 0.3 * credibility + min(len(doc.body) / 10, 30.0) + 0.4 * relevance


class _DisjointSet:
    def __init__(self, size: int) -> None:
        self.parent = list(range(size))

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, i: int, j: int) -> None:
        root_i, root_j = self.find(i), self.find(j)
        if root_i != root_j:
            # lower index stays root so cluster order follows feed order
            self.parent[max(root_i, root_j)] = min(root_i, root_j)


class DuplicateDetector:
    def __init__(self, threshold: float = 0.85, window_hours: float = 24.0) -> None:
        self.threshold = threshold
        self.window_hours = window_hours

    def _prepare(self, doc: Document, now: datetime) -> _Prepared:
        return _Prepared(
            title=tokenize(doc.title),
            body=tokenize(doc.body),
            url=canonical_url(doc.url),
            timestamp=doc.timestamp(now),
        )

    def _compare(self, a: _Prepared, b: _Prepared, doc_a: Document, doc_b: Document) -> PairSimilarity:
        title = token_similarity(a.title, b.title)
        content = token_similarity(a.body, b.body)
        url = 1.0 if a.url and a.url == b.url else 0.0
        entities = entity_overlap(doc_a.entities, doc_b.entities)
        link = url or entities
        temporal = temporal_proximity(a.timestamp, b.timestamp, self.window_hours)
        overall = title * _W_TITLE + content * _W_CONTENT + link * _W_LINK + temporal * _W_TEMPORAL
        return PairSimilarity(
            title=title,
            content=content,
            url=url,
            entities=entities,
            link=link,
            temporal=temporal,
            overall=overall,
            category=similarity_category(overall),
        )

    def similarity(self, a: Document, b: Document, now: datetime | None = None) -> PairSimilarity:
        now = now or datetime.now(UTC)
        return self._compare(self._prepare(a, now), self._prepare(b, now), a, b)

    def detect(self, docs: Sequence[Document], now: datetime | None = None) -> DedupeResult:
        now = now or datetime.now(UTC)
        prepared = [self._prepare(doc, now) for doc in docs]
        n = len(docs)

        sets = _DisjointSet(n)
        scores: dict[tuple[int, int], float] = {}
        for i in range(n):
            for j in range(i + 1, n):
                pair = self._compare(prepared[i], prepared[j], docs[i], docs[j])
                scores[(i, j)] = pair.overall
                if pair.overall >= self.threshold:
                    sets.union(i, j)

        members: dict[int, list[int]] = {}
        for i in range(n):
            members.setdefault(sets.find(i), []).append(i)

        result = DedupeResult()
        dropped: dict[int, tuple[str, float]] = {}
        for group in members.values():
            if len(group) == 1:
                continue
            # highest quality wins; earliest position breaks ties
            primary = max(group, key=lambda k: (internal_quality(docs[k]), -k))
            cluster = DuplicateCluster(
                primary_id=docs[primary].id,
                primary_quality=round(internal_quality(docs[primary]), 2),
            )
            for k in group:
                if k == primary:
                    continue
                sim = scores[(min(k, primary), max(k, primary))]
                cluster.duplicates.append(DuplicateMember(id=docs[k].id, similarity=round(sim, 4)))
                dropped[k] = (docs[primary].id, sim)
            result.clusters.append(cluster)

        for i, doc in enumerate(docs):
            if i in dropped:
                primary_id, sim = dropped[i]
                result.duplicates.append((doc, primary_id, sim))
            else:
                result.retained.append(doc)

        logger.info(
            "Dedupe: %d total → %d retained (%d duplicates in %d clusters)",
            n, len(result.retained), len(result.duplicates), len(result.clusters),
        )
        return result
