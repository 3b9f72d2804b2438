"""Domain models used across the pipeline."""

from __future__ import annotations

import hashlib
import logging
import math
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


def clamp_score(value: Any, low: float = 0.0, high: float = 100.0) -> float:
    """Coerce *value* to a float inside ``[low, high]``; junk and NaN become *low*."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if math.isnan(number):
        return low
    return max(low, min(high, number))


def parse_timestamp(value: Any) -> datetime | None:
    """Best-effort timestamp parsing. Naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError, IndexError):
                logger.warning("Unparseable timestamp %r; treating as missing", value)
                return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


# ── Enums ──────────────────────────────────────────────────────────────────
class Priority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _PRIORITY_ORDER.index(self)

    def escalate(self) -> Priority:
        """Return the next band up (CRITICAL stays CRITICAL)."""
        return _PRIORITY_ORDER[min(self.rank + 1, len(_PRIORITY_ORDER) - 1)]


_PRIORITY_ORDER: tuple[Priority, ...] = (
    Priority.LOW,
    Priority.MEDIUM,
    Priority.HIGH,
    Priority.CRITICAL,
)


class ThreatLevel(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Stage(str, Enum):
    INITIAL_SCREENING = "INITIAL_SCREENING"
    CONTENT_ANALYSIS = "CONTENT_ANALYSIS"
    SOURCE_VERIFICATION = "SOURCE_VERIFICATION"
    DUPLICATE_DETECTION = "DUPLICATE_DETECTION"
    QUALITY_SCORING = "QUALITY_SCORING"
    INTELLIGENCE_ASSESSMENT = "INTELLIGENCE_ASSESSMENT"
    FINAL_VALIDATION = "FINAL_VALIDATION"


class QualityLevel(str, Enum):
    PREMIUM = "PREMIUM"
    HIGH = "HIGH"
    STANDARD = "STANDARD"
    BASIC = "BASIC"


class Disposition(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# ── Inputs ─────────────────────────────────────────────────────────────────
class SourceInfo(BaseModel):
    domain: str = ""
    name: str = ""
    credibility: float | None = Field(
        default=None, validation_alias=AliasChoices("credibility", "credibilityScore")
    )  # feed supplied, 0-100
    category: str = ""

    @field_validator("domain", mode="before")
    @classmethod
    def _normalize_domain(cls, value: Any) -> str:
        domain = _as_text(value).strip().lower()
        if "://" in domain:
            domain = domain.split("://", 1)[1]
        domain = domain.split("/", 1)[0].split(":", 1)[0]
        return domain.removeprefix("www.")

    @field_validator("name", "category", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value).strip()

    @field_validator("credibility", mode="before")
    @classmethod
    def _clamp_credibility(cls, value: Any) -> float | None:
        return _optional_score(value)


class Entities(BaseModel):
    countries: list[str] = Field(default_factory=list)
    organizations: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    weapons: list[str] = Field(default_factory=list)

    @field_validator("countries", "organizations", "technologies", "weapons", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple, set)):
            return []
        seen: list[str] = []
        for raw in value:
            name = _as_text(raw).strip().upper()
            if name and name not in seen:
                seen.append(name)
        return seen

    def all(self) -> list[str]:
        return [*self.countries, *self.organizations, *self.technologies, *self.weapons]

    @property
    def count(self) -> int:
        return len(set(self.all()))


class Annotation(BaseModel):
    """Advisory output of the upstream annotator."""

    relevance_score: float | None = Field(
        default=None, validation_alias=AliasChoices("relevance_score", "relevanceScore")
    )
    confidence: float | None = None
    priority: Priority | None = None
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    is_advertisement: bool = Field(
        default=False, validation_alias=AliasChoices("is_advertisement", "isAdvertisement")
    )
    is_duplicate: bool = Field(default=False, validation_alias=AliasChoices("is_duplicate", "isDuplicate"))
    threat_assessment: ThreatLevel | None = Field(
        default=None, validation_alias=AliasChoices("threat_assessment", "threatAssessment")
    )
    strategic_implications: str = Field(
        default="", validation_alias=AliasChoices("strategic_implications", "strategicImplications")
    )

    @field_validator("relevance_score", "confidence", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float | None:
        return _optional_score(value)

    @field_validator("priority", "threat_assessment", mode="before")
    @classmethod
    def _label(cls, value: Any) -> str | None:
        label = _as_text(value).strip().upper()
        valid = {member.value for member in Priority}
        return label if label in valid else None

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _labels(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple, set)):
            return []
        return [_as_text(v).strip() for v in value if _as_text(v).strip()]

    @field_validator("strategic_implications", mode="before")
    @classmethod
    def _implications(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("is_advertisement", "is_duplicate", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in {"true", "yes", "1"}
        return bool(value)


def _optional_score(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return clamp_score(number)


# ── Scoring output ─────────────────────────────────────────────────────────
class FactorScores(BaseModel):
    # primary
    keyword: float = 0.0
    entity: float = 0.0
    source_credibility: float = 0.0
    temporal: float = 0.0
    geopolitical: float = 0.0
    threat: float = 0.0
    # secondary
    content_depth: float = 0.0
    linguistic: float = 0.0
    cross_reference: float = 0.0
    operational: float = 0.0
    strategic: float = 0.0


class ScoreBreakdown(BaseModel):
    factors: FactorScores
    primary_score: float
    secondary_score: float
    context_multiplier: float = 1.0
    overall_score: float
    confidence: float
    priority: Priority
    escalated: bool = False
    threat_level: ThreatLevel = ThreatLevel.LOW
    tension_pairs: list[tuple[str, str]] = Field(default_factory=list)
    matched_keywords: list[str] = Field(default_factory=list)
    reasoning: str = ""


class QualityVerdict(BaseModel):
    stage: Stage
    score: float
    level: str = ""
    passed: bool = True
    reason: str | None = None
    sub_scores: dict[str, float] = Field(default_factory=dict)
    notes: list[str] = Field(default_factory=list)


class Rejection(BaseModel):
    stage: Stage
    reason: str
    duplicate_of: str | None = None


# ── Document ───────────────────────────────────────────────────────────────
class Document(BaseModel):
    id: str = ""
    title: str = ""
    body: str = ""
    url: str = ""
    published_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("published_at", "publishedAt")
    )
    fetched_at: datetime | None = Field(default=None, validation_alias=AliasChoices("fetched_at", "fetchedAt"))
    source: SourceInfo = Field(default_factory=SourceInfo)
    entities: Entities = Field(default_factory=Entities)
    annotation: Annotation = Field(default_factory=Annotation)

    # attached by the pipeline
    status: Disposition = Disposition.PENDING
    verdicts: list[QualityVerdict] = Field(default_factory=list)
    score: ScoreBreakdown | None = None
    rejection: Rejection | None = None
    final_quality_score: float | None = None
    quality_level: QualityLevel | None = None

    @model_validator(mode="before")
    @classmethod
    def _fold_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("body"):
            data["body"] = data.get("content") or data.get("summary") or ""
        data.pop("content", None)
        data.pop("summary", None)
        if not data.get("url") and data.get("link"):
            data["url"] = data["link"]
        data.pop("link", None)
        if "annotation" not in data and isinstance(data.get("intelligence"), dict):
            data["annotation"] = data["intelligence"]
        data.pop("intelligence", None)
        if isinstance(data.get("annotation"), dict) and "entities" in data["annotation"]:
            annotation = dict(data["annotation"])
            data.setdefault("entities", annotation.pop("entities"))
            data["annotation"] = annotation
        if isinstance(data.get("source"), str):
            data["source"] = {"name": data["source"]}
        for key in ("source", "entities", "annotation"):
            if not isinstance(data.get(key), (dict, BaseModel)):
                data.pop(key, None)
        return data

    @field_validator("id", "title", "body", "url", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value).strip()

    @field_validator("published_at", "fetched_at", mode="before")
    @classmethod
    def _timestamp(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @model_validator(mode="after")
    def _stable_id(self) -> Document:
        if not self.id:
            digest = hashlib.sha1(f"{self.url}\n{self.title}".encode()).hexdigest()
            self.id = f"doc-{digest[:12]}"
        return self

    @property
    def text(self) -> str:
        return f"{self.title} {self.body}".strip()

    def timestamp(self, now: datetime) -> datetime:
        """Publication time, else fetch time, else *now*."""
        return self.published_at or self.fetched_at or now

    def age_hours(self, now: datetime) -> float:
        return max(0.0, (now - self.timestamp(now)).total_seconds() / 3600)

    def verdict(self, stage: Stage) -> QualityVerdict | None:
        return next((v for v in self.verdicts if v.stage == stage), None)


# ── Reporting ──────────────────────────────────────────────────────────────
class DuplicateMember(BaseModel):
    id: str
    similarity: float


class DuplicateCluster(BaseModel):
    primary_id: str
    primary_quality: float
    duplicates: list[DuplicateMember] = Field(default_factory=list)


class StageReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: Stage
    input_count: int
    passed_count: int
    rejected_count: int
    rejection_reasons: dict[str, str] = Field(default_factory=dict)
    metrics: dict[str, float] = Field(default_factory=dict)
    duration_ms: float = 0.0

    @property
    def pass_rate(self) -> float:
        return self.passed_count / self.input_count if self.input_count else 0.0


class PipelineReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference_time: datetime
    started_at: datetime
    finished_at: datetime
    duration_ms: float
    input_count: int
    output_count: int
    pass_rate: float
    stages: tuple[StageReport, ...] = ()
    quality_distribution: dict[str, int] = Field(default_factory=dict)
    duplicate_clusters: tuple[DuplicateCluster, ...] = ()
    recommendations: tuple[str, ...] = ()
    thresholds: dict[str, float] = Field(default_factory=dict)

    def stage(self, stage: Stage) -> StageReport | None:
        return next((s for s in self.stages if s.stage == stage), None)
