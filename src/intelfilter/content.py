"""Content quality analysis: depth, sourcing cues, specificity, register, structure, readability."""

from __future__ import annotations

import logging
import math
import re

from pydantic import BaseModel, Field

from intelfilter.models import Document, clamp_score
from intelfilter.tables import ScoringTables

logger = logging.getLogger(__name__)

# ── Sub-score weights ──────────────────────────────────────────────────────
_W_DEPTH = 0.25
_W_QUALITY = 0.25
_W_TECHNICAL = 0.20
_W_LANGUAGE = 0.15
_W_STRUCTURE = 0.10
_W_READABILITY = 0.05

# (minimum, points); first satisfied step wins
_WORD_STEPS = ((800, 40), (400, 30), (200, 20), (100, 10))
_SENTENCE_STEPS = ((20, 30), (10, 20), (5, 15), (2, 5))
_PARAGRAPH_STEPS = ((6, 30), (4, 20), (2, 10))

_LEVELS = ((85, "EXCELLENT"), (70, "GOOD"), (55, "ACCEPTABLE"), (40, "POOR"))

# ── Lexicons ───────────────────────────────────────────────────────────────
_HIGH_QUALITY_PHRASES = (
    "according to", "confirmed by", "verified", "official statement",
    "intelligence sources", "classified document", "leaked", "exclusive",
    "first reported", "investigation reveals", "analysis shows",
    "multiple sources", "corroborated", "authenticated",
)
_MEDIUM_QUALITY_PHRASES = (
    "reported", "sources say", "officials indicate", "appears to",
    "analysis suggests", "evidence indicates", "documents show",
    "according to reports", "informed sources", "reliable sources",
)
_LOW_QUALITY_PHRASES = (
    "rumored", "alleged", "speculation", "unconfirmed", "claims",
    "reportedly", "possibly", "might", "could be",
    "social media reports", "unverified claims",
)
_PHRASE_POINTS = 5
_W_HIGH, _W_MEDIUM, _W_LOW, _W_DISQUALIFYING = 3, 2, -1, -10

_FORMAL_WORDS = (
    "furthermore", "however", "nevertheless", "consequently", "therefore",
    "moreover", "additionally", "specifically", "particularly", "notably",
)
_ANALYTICAL_WORDS = (
    "analysis", "assessment", "evaluation", "examination", "investigation",
    "indicates", "suggests", "demonstrates", "reveals", "confirms",
)
_UNCERTAIN_WORDS = (
    "might", "could", "possibly", "perhaps", "maybe", "likely",
    "appears", "seems", "suggests", "indicates",
)

_TECHNICAL_PATTERNS: dict[str, re.Pattern[str]] = {
    "dates": re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b|\b\d{4}-\d{2}-\d{2}\b"),
    "times": re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\s*(?:AM|PM|UTC|GMT)?\b", re.IGNORECASE),
    "numbers": re.compile(r"\b\d+(?:,\d{3})*(?:\.\d+)?\b"),
    "coordinates": re.compile(r"\b\d+(?:\.\d+)?°?\s*[NS],?\s*\d+(?:\.\d+)?°?\s*[EW]\b", re.IGNORECASE),
    "units": re.compile(r"\b(?:MHz|GHz|km|miles|meters|feet|tons|degrees|celsius|fahrenheit)\b", re.IGNORECASE),
    "currencies": re.compile(r"\$\d+(?:,\d{3})*(?:\.\d{2})?|\b\d+(?:,\d{3})*\s*(?:USD|EUR|GBP|JPY|CNY)\b", re.IGNORECASE),
}

_STRUCTURE_PATTERNS: dict[str, re.Pattern[str]] = {
    "quotes": re.compile(r"\"[^\"]*\"|“[^”]*”"),
    "citations": re.compile(r"\[[^\]]*\]"),
    "references": re.compile(r"ref|reference|source|according to|citing", re.IGNORECASE),
    "headings": re.compile(r"^#{1,6}\s+.+$", re.MULTILINE),
    "lists": re.compile(r"^\s*[-*+]\s+.+$", re.MULTILINE),
}

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


class ContentQuality(BaseModel):
    score: float
    level: str
    depth: float
    quality_indicators: float
    technical_detail: float
    language: float
    structure: float
    readability: float
    recommendations: list[str] = Field(default_factory=list)

    def sub_scores(self) -> dict[str, float]:
        return {
            "depth": self.depth,
            "quality_indicators": self.quality_indicators,
            "technical_detail": self.technical_detail,
            "language": self.language,
            "structure": self.structure,
            "readability": self.readability,
        }


def content_level(score: float) -> str:
    for floor, label in _LEVELS:
        if score >= floor:
            return label
    return "INADEQUATE"


class ContentQualityAnalyzer:
    def __init__(self, tables: ScoringTables) -> None:
        self._disqualifying = tables.advertisement_phrases

    def analyze(self, doc: Document) -> ContentQuality:
        original = f"{doc.title} {doc.body}"
        lower = original.lower()

        depth = assess_depth(original)
        quality = self._quality_indicators(lower)
        technical = assess_technical_detail(original)
        language = assess_language(lower)
        structure = assess_structure(original)
        readability = assess_readability(original)

        score = round(
            depth * _W_DEPTH
            + quality * _W_QUALITY
            + technical * _W_TECHNICAL
            + language * _W_LANGUAGE
            + structure * _W_STRUCTURE
            + readability * _W_READABILITY
        )
        result = ContentQuality(
            score=score,
            level=content_level(score),
            depth=depth,
            quality_indicators=quality,
            technical_detail=technical,
            language=language,
            structure=structure,
            readability=readability,
        )
        result.recommendations = recommendations(result)
        return result

    def _quality_indicators(self, lower: str) -> float:
        score = 50.0
        for phrases, weight in (
            (_HIGH_QUALITY_PHRASES, _W_HIGH),
            (_MEDIUM_QUALITY_PHRASES, _W_MEDIUM),
            (_LOW_QUALITY_PHRASES, _W_LOW),
            (self._disqualifying, _W_DISQUALIFYING),
        ):
            score += weight * _PHRASE_POINTS * sum(1 for p in phrases if p in lower)
        if score > 100:
            # diminishing returns past the ceiling
            score = 100 - math.log(max(score - 100, 1.0)) * 5
        return clamp_score(score)


def _stepped(value: int, steps: tuple[tuple[int, int], ...]) -> int:
    return next((points for floor, points in steps if value >= floor), 0)


def _sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def assess_depth(text: str) -> float:
    words = len(text.split())
    sentences = len(_sentences(text))
    paragraphs = len([p for p in _PARAGRAPH_SPLIT_RE.split(text) if p.strip()])
    total = (
        _stepped(words, _WORD_STEPS)
        + _stepped(sentences, _SENTENCE_STEPS)
        + _stepped(paragraphs, _PARAGRAPH_STEPS)
    )
    return float(min(total, 100))


def assess_technical_detail(text: str) -> float:
    score = 0.0
    kinds = 0
    for pattern in _TECHNICAL_PATTERNS.values():
        hits = len(pattern.findall(text))
        if hits:
            kinds += 1
            score += min(hits * 10, 30)
    if kinds >= 3:
        score += 20
    elif kinds >= 2:
        score += 10
    return min(score, 100.0)


def assess_language(lower: str) -> float:
    score = 50.0
    score += min(sum(1 for w in _FORMAL_WORDS if w in lower) * 5, 20)
    score += min(sum(1 for w in _ANALYTICAL_WORDS if w in lower) * 4, 15)
    uncertain = sum(1 for w in _UNCERTAIN_WORDS if w in lower)
    if uncertain > 5:
        score -= (uncertain - 5) * 2
    return clamp_score(score)


def average_sentence_length(text: str) -> float:
    sentences = _sentences(text)
    return len(text.split()) / len(sentences) if sentences else 0.0


def assess_structure(text: str) -> float:
    score = 40.0 + 10 * sum(1 for p in _STRUCTURE_PATTERNS.values() if p.search(text))
    if 10 <= average_sentence_length(text) <= 25:
        score += 10
    return min(score, 100.0)


def assess_readability(text: str) -> float:
    words = text.split()
    sentences = _sentences(text)
    if not words or not sentences:
        return 0.0
    per_sentence = len(words) / len(sentences)
    per_word = sum(len(w) for w in words) / len(words)

    score = 100.0
    if per_sentence > 30:
        score -= 20
    elif per_sentence > 20:
        score -= 10
    if per_word > 7:
        score -= 15
    elif per_word > 6:
        score -= 5
    return score


def recommendations(quality: ContentQuality) -> list[str]:
    out = []
    if quality.depth < 50:
        out.append("Increase content depth with more detailed information")
    if quality.quality_indicators < 60:
        out.append("Add more authoritative sources and verification indicators")
    if quality.technical_detail < 40:
        out.append("Include specific technical details, dates, and numbers")
    if quality.language < 50:
        out.append("Use more formal and analytical language")
    if quality.structure < 60:
        out.append("Improve content structure with better formatting")
    return out
