"""
Pydantic schemas for item-bank records consumed by the adaptive engine.

Item banks are supplied by an external repository as already-materialized
records. Keys may arrive in camelCase (itemId, reverseScored, ...) or
snake_case. Trait, topic and domain are resolved once here, at validation
time, so scoring never re-parses metadata strings.
"""

from typing import Any, List, Optional, Self

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from libs.domain_types import (
    AssessmentPhase,
    AssessmentTier,
    ResponseType,
    Sensitivity,
    TopicCategory,
    Trait,
    TraitDomain,
)
from psyche.core.traits import resolve_topic, resolve_trait, trait_domain

# Phase "focus" names used by older item banks for requiredPhase
_PHASE_FOCUS_ALIASES = {
    "broad_screening": AssessmentPhase.WARMUP,
    "trait_building": AssessmentPhase.EXPLORATION,
    "clinical_validation": AssessmentPhase.DEEPENING,
    "uncertainty_reduction": AssessmentPhase.PRECISION,
    "gap_filling": AssessmentPhase.COMPLETION,
}

SEVERITY_LEVELS = ("minimal", "mild", "moderate", "severe", "extreme")


def _lower_snake(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower().replace("-", "_").replace(" ", "_")
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TriggerCondition(_CamelModel):
    """A threshold on one trait's current belief (0-100 scale)."""

    dimension: Trait = Field(..., description="Trait whose belief is tested")
    min_score: Optional[float] = Field(
        None, ge=0.0, le=100.0, description="Belief mean must be at least this"
    )
    max_score: Optional[float] = Field(
        None, ge=0.0, le=100.0, description="Belief mean must be at most this"
    )
    min_level: Optional[str] = Field(
        None, description="Minimum severity band (minimal, mild, moderate, severe, extreme)"
    )

    @field_validator("dimension", mode="before")
    @classmethod
    def resolve_dimension(cls, value: Any) -> Any:
        if isinstance(value, str):
            resolved = resolve_trait(value)
            if resolved is not None:
                return resolved
        return value

    @field_validator("min_level", mode="before")
    @classmethod
    def validate_min_level(cls, value: Any) -> Any:
        value = _lower_snake(value)
        if value is not None and value not in SEVERITY_LEVELS:
            raise ValueError(
                f"min_level must be one of {list(SEVERITY_LEVELS)}, got {value!r}"
            )
        return value


class RequiredSignals(_CamelModel):
    """Conditions that must hold before a gated item may be selected."""

    min_question_count: Optional[int] = Field(
        None, ge=0, description="Answers required before the item is eligible"
    )
    required_phase: Optional[AssessmentPhase] = Field(
        None, description="Pacing phase the session must be in"
    )
    trigger_conditions: List[TriggerCondition] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "trigger_conditions", "triggerConditions", "conditions"
        ),
        description="Trait-threshold conditions against current beliefs",
    )
    any_of: bool = Field(
        False, description="True: any condition suffices. False: all must hold"
    )

    @field_validator("required_phase", mode="before")
    @classmethod
    def resolve_phase(cls, value: Any) -> Any:
        value = _lower_snake(value)
        return _PHASE_FOCUS_ALIASES.get(value, value)


class AdaptiveMetadata(_CamelModel):
    """Psychometric metadata used by item scoring."""

    discrimination_index: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="How well the item separates respondents"
    )
    is_baseline: bool = Field(False, description="Part of the baseline item set")
    required_signals: Optional[RequiredSignals] = Field(
        None, description="Gating conditions; None means always eligible"
    )


class Item(_CamelModel):
    """One item from the bank, with trait/topic resolved at load time."""

    item_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("item_id", "itemId", "questionId"),
        description="Unique item identifier",
    )
    text: str = Field("", description="Item stem shown to the respondent")
    category: Optional[str] = Field(None, description="Bank category")
    subcategory: Optional[str] = Field(None, description="Bank subcategory")
    trait: Optional[str] = Field(None, description="Trait label as stored in the bank")
    facet: Optional[str] = Field(None, description="Trait facet, if any")
    instrument: Optional[str] = Field(None, description="Source instrument (e.g. PHQ-9)")
    response_type: ResponseType = Field(ResponseType.LIKERT, description="Answer format")
    sensitivity: Sensitivity = Field(Sensitivity.NONE, description="Sensitivity tier")
    assessment_tiers: List[AssessmentTier] = Field(
        default_factory=list, description="Product tiers the item belongs to"
    )
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    reverse_scored: bool = Field(False, description="Keyed against its trait")
    active: bool = Field(True, description="Inactive items are never selected")
    adaptive: AdaptiveMetadata = Field(default_factory=AdaptiveMetadata)

    # Resolved at validation time; any supplied value is overwritten
    belief_trait: Optional[Trait] = Field(None, description="Resolved trait")
    domain: Optional[TraitDomain] = Field(None, description="Resolved trait domain")
    topic: TopicCategory = Field(TopicCategory.OTHER, description="Resolved topic")

    @model_validator(mode="before")
    @classmethod
    def lift_required_signals(cls, data: Any) -> Any:
        """Accept requiredSignals at the top level as well as under adaptive."""
        if not isinstance(data, dict):
            return data
        for key in ("requiredSignals", "required_signals"):
            if key in data:
                data = dict(data)
                signals = data.pop(key)
                adaptive = data.get("adaptive")
                if isinstance(adaptive, AdaptiveMetadata):
                    adaptive = adaptive.model_dump()
                adaptive = dict(adaptive or {})
                if not {"required_signals", "requiredSignals"} & adaptive.keys():
                    adaptive["required_signals"] = signals
                data["adaptive"] = adaptive
        return data

    @field_validator("response_type", "sensitivity", mode="before")
    @classmethod
    def normalize_enum_strings(cls, value: Any) -> Any:
        return _lower_snake(value)

    @field_validator("assessment_tiers", mode="before")
    @classmethod
    def normalize_tiers(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set)):
            return [_lower_snake(v) for v in value]
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    @model_validator(mode="after")
    def resolve_metadata(self) -> Self:
        """Resolve belief trait, domain and topic from the raw metadata."""
        self.belief_trait = resolve_trait(self.trait, self.subcategory, self.category)
        self.domain = trait_domain(self.belief_trait)
        self.topic = resolve_topic(
            self.category, self.subcategory, self.trait, self.tags
        )
        return self

    @property
    def discrimination_index(self) -> Optional[float]:
        return self.adaptive.discrimination_index

    @property
    def required_signals(self) -> Optional[RequiredSignals]:
        return self.adaptive.required_signals

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags
