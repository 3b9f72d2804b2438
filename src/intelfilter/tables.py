"""Immutable scoring tables: keyword tiers, entity classes, credibility matrix.

The built-in tables are returned by :func:`default_tables`.  A YAML file may
replace any top-level section (``keyword_tiers``, ``thresholds`` …) via
:func:`load_tables`; everything is validated up front and a bad table raises
:class:`ConfigError` before a single document is scored.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when scoring tables are missing, malformed or inconsistent."""


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


def _upper_unique(values: Any) -> tuple[str, ...]:
    if isinstance(values, str):
        values = [values]
    out: list[str] = []
    for value in values or ():
        name = str(value).strip().upper()
        if name and name not in out:
            out.append(name)
    return tuple(out)


def _lower_unique(values: Any) -> tuple[str, ...]:
    return tuple(v.lower() for v in _upper_unique(values))


# ── Table entries ──────────────────────────────────────────────────────────
class KeywordTier(_Frozen):
    name: str
    weight: float
    bonus: float = 0.0
    keywords: tuple[str, ...]

    @field_validator("keywords", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> tuple[str, ...]:
        return _upper_unique(value)

    @model_validator(mode="after")
    def _check(self) -> KeywordTier:
        if self.weight <= 0:
            raise ValueError(f"keyword tier {self.name!r} must have a positive weight")
        if not self.keywords:
            raise ValueError(f"keyword tier {self.name!r} has no keywords")
        return self


class EntityClass(_Frozen):
    name: str
    score: float
    members: tuple[str, ...] = ()

    @field_validator("members", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> tuple[str, ...]:
        return _upper_unique(value)


class EntityKindTable(_Frozen):
    default_score: float
    classes: tuple[EntityClass, ...] = ()

    def classify(self, name: str) -> tuple[str, float]:
        for entity_class in self.classes:
            if name in entity_class.members:
                return entity_class.name, entity_class.score
        return "STANDARD", self.default_score


class EntityWeights(_Frozen):
    countries: float = 0.4
    organizations: float = 0.3
    technologies: float = 0.2
    weapons: float = 0.1

    @model_validator(mode="after")
    def _sums_to_one(self) -> EntityWeights:
        total = self.countries + self.organizations + self.technologies + self.weapons
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"entity weights must sum to 1.0, got {total:.3f}")
        return self


class TensionPair(_Frozen):
    first: str
    second: str
    tension: float = 0.8
    importance: float = 0.8

    @field_validator("first", "second", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> str:
        return str(value).strip().upper()

    @field_validator("tension", "importance")
    @classmethod
    def _unit(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("tension and importance must lie in [0, 1]")
        return value


class CredibilityTier(_Frozen):
    name: str
    score: float
    trust: str
    domains: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()

    @field_validator("domains", "sources", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> tuple[str, ...]:
        return _lower_unique(value)


class DomainPattern(_Frozen):
    name: str
    bonus: float
    trust: str = ""
    patterns: tuple[str, ...]

    @field_validator("patterns", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> tuple[str, ...]:
        return _lower_unique(value)


class WarningLevel(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class WarningFlag(_Frozen):
    name: str
    level: WarningLevel
    penalty: float
    indicators: tuple[str, ...]

    @field_validator("indicators", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> tuple[str, ...]:
        return _lower_unique(value)

    @field_validator("penalty")
    @classmethod
    def _non_positive(cls, value: float) -> float:
        if value > 0:
            raise ValueError("warning penalties must be zero or negative")
        return value

    @property
    def flags_source(self) -> bool:
        return self.level in (WarningLevel.CRITICAL, WarningLevel.HIGH)


class ThreatCategory(_Frozen):
    name: str
    escalation_risk: float
    keywords: tuple[str, ...]

    @field_validator("keywords", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> tuple[str, ...]:
        return _upper_unique(value)


class EscalationIndicator(_Frozen):
    name: str
    multiplier: float
    keywords: tuple[str, ...]

    @field_validator("keywords", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> tuple[str, ...]:
        return _upper_unique(value)


class Thresholds(_Frozen):
    min_content_length: int = 100
    max_age_hours: float = 168.0
    min_relevance: float = 40.0
    content_quality: float = 40.0
    source_credibility: float = 50.0
    duplicate_similarity: float = 0.85
    duplicate_window_hours: float = 24.0
    quality_score: float = 65.0
    intelligence_value: float = 70.0
    final_validation: float = 70.0
    cross_reference_window: int = 25

    @model_validator(mode="after")
    def _ranges(self) -> Thresholds:
        for name in (
            "min_relevance", "content_quality", "source_credibility",
            "quality_score", "intelligence_value", "final_validation",
        ):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"threshold {name} must lie in [0, 100], got {value}")
        if not 0 < self.duplicate_similarity <= 1:
            raise ValueError("duplicate_similarity must lie in (0, 1]")
        if self.duplicate_window_hours <= 0 or self.max_age_hours <= 0:
            raise ValueError("time windows must be positive")
        if self.min_content_length < 0 or self.cross_reference_window < 0:
            raise ValueError("lengths and windows must not be negative")
        return self


# ── Aggregate ──────────────────────────────────────────────────────────────
class ScoringTables(_Frozen):
    keyword_tiers: tuple[KeywordTier, ...]
    entity_weights: EntityWeights = EntityWeights()
    countries: EntityKindTable
    organizations: EntityKindTable
    technologies: EntityKindTable
    weapons: EntityKindTable
    tension_pairs: tuple[TensionPair, ...] = ()
    credibility_tiers: tuple[CredibilityTier, ...]
    default_tier: str = "TIER_3_STANDARD"
    domain_patterns: tuple[DomainPattern, ...] = ()
    warning_flags: tuple[WarningFlag, ...] = ()
    threat_categories: tuple[ThreatCategory, ...]
    escalation_indicators: tuple[EscalationIndicator, ...] = ()
    advertisement_phrases: tuple[str, ...] = ()
    thresholds: Thresholds = Thresholds()

    @field_validator("advertisement_phrases", mode="before")
    @classmethod
    def _phrases(cls, value: Any) -> tuple[str, ...]:
        return _lower_unique(value)

    @model_validator(mode="after")
    def _consistency(self) -> ScoringTables:
        if not self.keyword_tiers:
            raise ValueError("at least one keyword tier is required")
        for label, entries in (
            ("keyword tier", self.keyword_tiers),
            ("credibility tier", self.credibility_tiers),
            ("threat category", self.threat_categories),
        ):
            names = [entry.name for entry in entries]
            if len(names) != len(set(names)):
                raise ValueError(f"duplicate {label} names: {names}")
        if self.default_tier not in {tier.name for tier in self.credibility_tiers}:
            raise ValueError(f"default tier {self.default_tier!r} is not a credibility tier")
        return self

    def tier(self, name: str) -> CredibilityTier:
        return next(tier for tier in self.credibility_tiers if tier.name == name)


# ── Built-in tables ────────────────────────────────────────────────────────
_DEFAULTS: dict[str, Any] = {
    "keyword_tiers": [
        {
            "name": "CRITICAL", "weight": 100, "bonus": 15,
            "keywords": [
                "NUCLEAR WEAPON", "ICBM", "TERRORIST ATTACK", "CYBER ATTACK",
                "BIOWEAPON", "CHEMICAL WEAPON", "ASSASSINATION", "COUP",
                "INVASION", "WAR DECLARATION",
            ],
        },
        {
            "name": "HIGH", "weight": 80, "bonus": 10,
            "keywords": [
                "MILITARY DEPLOYMENT", "DEPLOYMENT", "DEPLOYS", "DEPLOYED",
                "AIR DEFENSE", "AIR DEFENCE", "MISSILE TEST", "SANCTIONS",
                "ESPIONAGE", "SURVEILLANCE", "HYPERSONIC", "QUANTUM COMPUTER",
                "AI WEAPON", "DRONE STRIKE", "SUBMARINE",
            ],
        },
        {
            "name": "MEDIUM", "weight": 60, "bonus": 5,
            "keywords": [
                "DIPLOMATIC CRISIS", "TRADE WAR", "ALLIANCE", "DEFENSE PACT",
                "TECHNOLOGY TRANSFER", "EMBARGO", "SUMMIT", "NEGOTIATION",
                "TREATY", "COOPERATION",
            ],
        },
        {
            "name": "LOW", "weight": 40, "bonus": 0,
            "keywords": [
                "EXERCISE", "PATROL", "VISIT", "MEETING", "STATEMENT",
                "ANNOUNCEMENT", "DEVELOPMENT", "RESEARCH", "STUDY", "ANALYSIS",
            ],
        },
    ],
    "countries": {
        "default_score": 10,
        "classes": [
            {"name": "MAJOR_POWERS", "score": 30, "members": ["USA", "CHINA", "RUSSIA", "UNITED STATES"]},
            {
                "name": "CONFLICT_ZONES", "score": 25,
                "members": ["UKRAINE", "TAIWAN", "SYRIA", "IRAN", "ISRAEL", "NORTH KOREA"],
            },
            {
                "name": "REGIONAL_POWERS", "score": 20,
                "members": ["INDIA", "PAKISTAN", "TURKEY", "SAUDI ARABIA", "JAPAN"],
            },
        ],
    },
    "organizations": {
        "default_score": 5,
        "classes": [
            {"name": "TERRORIST", "score": 30, "members": ["ISIS", "AL-QAEDA", "TALIBAN", "HEZBOLLAH", "HAMAS"]},
            {"name": "INTELLIGENCE", "score": 25, "members": ["CIA", "FSB", "MSS", "MOSSAD", "MI6", "BND"]},
            {
                "name": "MILITARY", "score": 20,
                "members": ["NATO", "PENTAGON", "PLA", "IRANIAN REVOLUTIONARY GUARD"],
            },
            {"name": "INTERNATIONAL", "score": 15, "members": ["UN", "IAEA", "WHO"]},
        ],
    },
    "technologies": {
        "default_score": 5,
        "classes": [
            {"name": "STRATEGIC", "score": 25, "members": ["NUCLEAR", "QUANTUM", "HYPERSONIC", "AI", "SATELLITE"]},
            {"name": "CYBER", "score": 20, "members": ["CYBER", "MALWARE", "ENCRYPTION", "ZERO-DAY", "RANSOMWARE"]},
            {"name": "MILITARY", "score": 15, "members": ["STEALTH", "RADAR", "DRONE", "UAV", "MISSILE"]},
        ],
    },
    "weapons": {
        "default_score": 5,
        "classes": [
            {"name": "STRATEGIC", "score": 30, "members": ["NUCLEAR WEAPON", "ICBM", "SLBM", "HYPERSONIC MISSILE"]},
            {"name": "ADVANCED", "score": 20, "members": ["F-35", "F-22", "SU-57", "J-20", "B-21", "S-500", "S-400"]},
            {"name": "CONVENTIONAL", "score": 10, "members": ["MISSILE", "TANK", "SUBMARINE", "AIRCRAFT CARRIER"]},
        ],
    },
    "tension_pairs": [
        {"first": "CHINA", "second": "USA", "tension": 0.9, "importance": 1.0},
        {"first": "CHINA", "second": "TAIWAN", "tension": 0.9, "importance": 0.9},
        {"first": "RUSSIA", "second": "NATO", "tension": 0.95, "importance": 1.0},
        {"first": "RUSSIA", "second": "UKRAINE", "tension": 0.95, "importance": 0.9},
        {"first": "IRAN", "second": "ISRAEL", "tension": 0.9, "importance": 0.8},
        {"first": "INDIA", "second": "PAKISTAN", "tension": 0.85, "importance": 0.7},
        {"first": "NORTH KOREA", "second": "USA", "tension": 0.8, "importance": 0.9},
        {"first": "NORTH KOREA", "second": "SOUTH KOREA", "tension": 0.8, "importance": 0.7},
    ],
    "credibility_tiers": [
        {
            "name": "TIER_1_PREMIUM", "score": 95, "trust": "HIGHEST",
            "domains": [
                "reuters.com", "bbc.com", "bbc.co.uk", "apnews.com", "defensenews.com",
                "janes.com", "technologyreview.com", "foreignaffairs.com",
            ],
            "sources": ["reuters", "bbc news", "associated press", "defense news", "janes"],
        },
        {
            "name": "TIER_2_RELIABLE", "score": 85, "trust": "HIGH",
            "domains": [
                "cnn.com", "bloomberg.com", "wsj.com", "ft.com", "foreignpolicy.com",
                "breakingdefense.com", "theguardian.com",
            ],
            "sources": ["bloomberg", "financial times", "the guardian", "foreign policy"],
        },
        {"name": "TIER_3_STANDARD", "score": 70, "trust": "MEDIUM"},
        {
            "name": "TIER_4_QUESTIONABLE", "score": 40, "trust": "LOW",
            "domains": [
                "blogspot.com", "wordpress.com", "medium.com", "substack.com",
                "twitter.com", "x.com", "facebook.com", "t.me", "reddit.com",
            ],
        },
    ],
    "domain_patterns": [
        {
            "name": "GOVERNMENT", "bonus": 15, "trust": "OFFICIAL",
            "patterns": [".gov", ".mil", "state.gov", "defense.gov", "whitehouse.gov"],
        },
        {
            "name": "INTERNATIONAL_ORG", "bonus": 12, "trust": "INSTITUTIONAL",
            "patterns": ["un.org", "nato.int", "who.int", "iaea.org", "worldbank.org"],
        },
        {
            "name": "ACADEMIC", "bonus": 10, "trust": "SCHOLARLY",
            "patterns": [".edu", "university", "institute", "research", "academic"],
        },
        {
            "name": "THINK_TANK", "bonus": 8, "trust": "ANALYTICAL",
            "patterns": ["brookings", "rand.org", "csis.org", "cfr.org", "heritage.org"],
        },
        {
            "name": "NEWS_WIRE", "bonus": 5, "trust": "WIRE_SERVICE",
            "patterns": ["reuters", "ap.org", "apnews", "bloomberg", "afp.com"],
        },
    ],
    "warning_flags": [
        {
            "name": "PROPAGANDA", "level": "CRITICAL", "penalty": -30,
            "indicators": ["state-controlled", "propaganda", "disinformation"],
        },
        {
            "name": "UNRELIABLE", "level": "CRITICAL", "penalty": -40,
            "indicators": ["fake news", "conspiracy", "satire", "parody", "fabricated"],
        },
        {
            "name": "BIAS", "level": "HIGH", "penalty": -15,
            "indicators": ["extreme bias", "partisan", "advocacy site"],
        },
        {
            "name": "COMMERCIAL", "level": "HIGH", "penalty": -20,
            "indicators": ["sponsored content", "native advertising", "promotional"],
        },
    ],
    "threat_categories": [
        {
            "name": "NUCLEAR", "escalation_risk": 1.0,
            "keywords": ["NUCLEAR", "URANIUM", "PLUTONIUM", "ENRICHMENT", "REACTOR", "WARHEAD"],
        },
        {
            "name": "MILITARY", "escalation_risk": 0.8,
            "keywords": [
                "DEPLOYMENT", "DEPLOYS", "DEPLOYED", "MOBILIZATION", "EXERCISES",
                "BUILDUP", "READINESS", "TROOPS",
            ],
        },
        {
            "name": "CYBER", "escalation_risk": 0.7,
            "keywords": ["CYBER ATTACK", "MALWARE", "BREACH", "HACK", "RANSOMWARE", "BOTNET"],
        },
        {
            "name": "ECONOMIC", "escalation_risk": 0.6,
            "keywords": ["SANCTIONS", "EMBARGO", "TRADE WAR", "TARIFFS", "FINANCIAL WARFARE"],
        },
        {
            "name": "DIPLOMATIC", "escalation_risk": 0.4,
            "keywords": ["CRISIS", "WITHDRAWAL", "EXPULSION", "PROTEST", "CONDEMNATION"],
        },
    ],
    "escalation_indicators": [
        {"name": "IMMEDIATE", "multiplier": 1.5, "keywords": ["IMMINENT", "IMMEDIATE", "URGENT", "EMERGENCY"]},
        {"name": "SHORT_TERM", "multiplier": 1.3, "keywords": ["PLANNED", "SCHEDULED", "PREPARATION", "MOBILIZING"]},
        {"name": "MEDIUM_TERM", "multiplier": 1.1, "keywords": ["DEVELOPING", "BUILDING", "INCREASING", "GROWING"]},
    ],
    "advertisement_phrases": [
        "sponsored content", "advertisement", "promotional", "paid promotion",
        "affiliate link", "buy now", "click here", "subscribe now", "limited time offer",
        "discount code",
    ],
}

_SECTIONS: frozenset[str] = frozenset(ScoringTables.model_fields)


def _build(data: dict[str, Any], origin: str) -> ScoringTables:
    try:
        return ScoringTables.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid scoring tables ({origin}): {exc}") from exc


@lru_cache(maxsize=1)
def default_tables() -> ScoringTables:
    """Return the built-in tables (validated once, shared, immutable)."""
    return _build(_DEFAULTS, "built-in")


def load_tables(path: Path | str | None = None) -> ScoringTables:
    """Load tables from *path*, layering its sections over the defaults.

    ``thresholds`` and ``entity_weights`` are merged key by key; every other
    section present in the file replaces the default section wholesale.
    """
    if path is None:
        return default_tables()

    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read scoring tables {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"malformed YAML in {path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping of table sections")

    unknown = set(raw) - _SECTIONS
    if unknown:
        raise ConfigError(f"{path}: unknown table sections {sorted(unknown)}")

    merged = default_tables().model_dump(mode="python")
    for section, value in raw.items():
        if section in ("thresholds", "entity_weights") and isinstance(value, dict):
            merged[section] = {**merged[section], **value}
        else:
            merged[section] = value

    tables = _build(merged, str(path))
    logger.info("Loaded scoring tables from %s (%d sections overridden)", path, len(raw))
    return tables
