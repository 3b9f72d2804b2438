"""Text, entity and time similarity primitives.

Every function here is pure and symmetric: ``f(a, b) == f(b, a)`` exactly.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from intelfilter.models import Entities

_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")

# ── Blend weights for text similarity ──────────────────────────────────────
_W_JACCARD = 0.4
_W_COSINE = 0.4
_W_LCS = 0.2


def normalize(text: str) -> str:
    """Lower-case, strip punctuation, collapse whitespace."""
    return _SPACE_RE.sub(" ", _PUNCT_RE.sub(" ", text.lower())).strip()


def tokenize(text: str) -> list[str]:
    normalized = normalize(text)
    return normalized.split(" ") if normalized else []


def jaccard(a: Sequence[str], b: Sequence[str]) -> float:
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def cosine(a: Sequence[str], b: Sequence[str]) -> float:
    """Cosine similarity over raw term-frequency vectors."""
    tf_a, tf_b = Counter(a), Counter(b)
    if not tf_a or not tf_b:
        return 0.0
    # sorted iteration keeps float summation order independent of argument order
    dot = sum(tf_a[term] * tf_b[term] for term in sorted(tf_a.keys() & tf_b.keys()))
    if not dot:
        return 0.0
    return dot / (_norm(tf_a) * _norm(tf_b))


def _norm(tf: Counter[str]) -> float:
    return math.sqrt(sum(tf[term] ** 2 for term in sorted(tf)))


def lcs_length(a: Sequence[str], b: Sequence[str]) -> int:
    """Length of the longest common subsequence (two-row dynamic programme)."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return 0
    previous = [0] * (len(b) + 1)
    for token_a in a:
        current = [0]
        for j, token_b in enumerate(b, start=1):
            if token_a == token_b:
                current.append(previous[j - 1] + 1)
            else:
                current.append(max(previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def lcs_ratio(a: Sequence[str], b: Sequence[str]) -> float:
    longest = max(len(a), len(b))
    if not longest:
        return 0.0
    return lcs_length(a, b) / longest


def token_similarity(a: Sequence[str], b: Sequence[str]) -> float:
    """Blend of Jaccard, cosine and LCS ratio over pre-tokenized text."""
    if not a or not b:
        return 0.0
    return _W_JACCARD * jaccard(a, b) + _W_COSINE * cosine(a, b) + _W_LCS * lcs_ratio(a, b)


def text_similarity(a: str, b: str) -> float:
    """Similarity of two raw strings in ``[0, 1]``; empty input scores 0."""
    return token_similarity(tokenize(a), tokenize(b))


def entity_overlap(a: Entities, b: Entities) -> float:
    """Jaccard overlap of all named entities; two empty sets count as identical."""
    set_a, set_b = set(a.all()), set(b.all())
    if not set_a and not set_b:
        return 1.0
    return len(set_a & set_b) / len(set_a | set_b)


def temporal_proximity(a: datetime, b: datetime, window_hours: float = 24.0) -> float:
    """1.0 for simultaneous timestamps, falling linearly to 0 at *window_hours*."""
    gap_hours = abs((a - b).total_seconds()) / 3600
    if gap_hours >= window_hours:
        return 0.0
    return 1.0 - gap_hours / window_hours
