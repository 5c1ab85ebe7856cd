"""Shared domain types for the psyche assessment engine.

This package is the single source of truth for domain enums used across
the engine, its item-bank tooling, and (indirectly via serialized
insights) report generation.

Usage:
    from libs.domain_types import Trait, Sensitivity, AssessmentTier
"""

import enum


class Trait(str, enum.Enum):
    """Latent traits tracked by the belief network."""

    # Personality (Big Five)
    OPENNESS = "openness"
    CONSCIENTIOUSNESS = "conscientiousness"
    EXTRAVERSION = "extraversion"
    AGREEABLENESS = "agreeableness"
    NEUROTICISM = "neuroticism"

    # Clinical
    DEPRESSION = "depression"
    ANXIETY = "anxiety"
    MANIA = "mania"
    PSYCHOSIS = "psychosis"
    BORDERLINE = "borderline"
    SOMATIC = "somatic"

    # Neurodiversity
    ADHD_INATTENTION = "adhd_inattention"
    ADHD_HYPERACTIVITY = "adhd_hyperactivity"
    AUTISM = "autism"

    # Attachment
    ATTACHMENT_ANXIETY = "attachment_anxiety"
    ATTACHMENT_AVOIDANCE = "attachment_avoidance"

    # Wellbeing composite
    RESILIENCE = "resilience"


class TraitDomain(str, enum.Enum):
    """Broad family a trait belongs to."""

    PERSONALITY = "personality"
    CLINICAL = "clinical"
    NEURODIVERSITY = "neurodiversity"
    ATTACHMENT = "attachment"
    WELLBEING = "wellbeing"


class TopicCategory(str, enum.Enum):
    """Topic buckets used for context diversity and topic-run limits."""

    PERSONALITY = "personality"
    CLINICAL = "clinical"
    NEURODIVERSITY = "neurodiversity"
    INTERPERSONAL = "interpersonal"
    WELLBEING = "wellbeing"
    SUBSTANCE = "substance"
    TRAUMA = "trauma"
    VALIDITY = "validity"
    OTHER = "other"


class Sensitivity(str, enum.Enum):
    """How emotionally sensitive an item is; gates how late it may appear."""

    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"


class AssessmentTier(str, enum.Enum):
    """Product access tier governing which items are reachable at all."""

    CORE = "core"
    COMPREHENSIVE = "comprehensive"
    CLINICAL_ADDON = "clinical_addon"


class ResponseType(str, enum.Enum):
    """Answer format of an item."""

    LIKERT = "likert"
    FREQUENCY = "frequency"
    BINARY = "binary"
    MULTIPLE_CHOICE = "multiple_choice"
    MULTI_SELECT = "multi_select"


class AssessmentPhase(str, enum.Enum):
    """Pacing phase of a session, keyed off cumulative answer count."""

    WARMUP = "warmup"
    EXPLORATION = "exploration"
    DEEPENING = "deepening"
    PRECISION = "precision"
    COMPLETION = "completion"


class ValidityLevel(str, enum.Enum):
    """Overall validity rating of a session's response pattern."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    QUESTIONABLE = "questionable"


__all__ = [
    "Trait",
    "TraitDomain",
    "TopicCategory",
    "Sensitivity",
    "AssessmentTier",
    "ResponseType",
    "AssessmentPhase",
    "ValidityLevel",
]
