"""
Trait and topic resolution for item metadata.

Item banks describe what an item measures with loosely-structured strings
(trait, subcategory, category, tags). These helpers resolve them once, when
an item is loaded, into the Trait and TopicCategory enums that every engine
component works with.
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from libs.domain_types import TopicCategory, Trait, TraitDomain

TRAIT_DOMAINS: Mapping[Trait, TraitDomain] = MappingProxyType(
    {
        Trait.OPENNESS: TraitDomain.PERSONALITY,
        Trait.CONSCIENTIOUSNESS: TraitDomain.PERSONALITY,
        Trait.EXTRAVERSION: TraitDomain.PERSONALITY,
        Trait.AGREEABLENESS: TraitDomain.PERSONALITY,
        Trait.NEUROTICISM: TraitDomain.PERSONALITY,
        Trait.DEPRESSION: TraitDomain.CLINICAL,
        Trait.ANXIETY: TraitDomain.CLINICAL,
        Trait.MANIA: TraitDomain.CLINICAL,
        Trait.PSYCHOSIS: TraitDomain.CLINICAL,
        Trait.BORDERLINE: TraitDomain.CLINICAL,
        Trait.SOMATIC: TraitDomain.CLINICAL,
        Trait.ADHD_INATTENTION: TraitDomain.NEURODIVERSITY,
        Trait.ADHD_HYPERACTIVITY: TraitDomain.NEURODIVERSITY,
        Trait.AUTISM: TraitDomain.NEURODIVERSITY,
        Trait.ATTACHMENT_ANXIETY: TraitDomain.ATTACHMENT,
        Trait.ATTACHMENT_AVOIDANCE: TraitDomain.ATTACHMENT,
        Trait.RESILIENCE: TraitDomain.WELLBEING,
    }
)

BIG_FIVE: Tuple[Trait, ...] = (
    Trait.OPENNESS,
    Trait.CONSCIENTIOUSNESS,
    Trait.EXTRAVERSION,
    Trait.AGREEABLENESS,
    Trait.NEUROTICISM,
)

# Bank vocabulary that does not match a Trait value one-to-one
_TRAIT_ALIASES: Mapping[str, Trait] = MappingProxyType(
    {
        "adhd": Trait.ADHD_INATTENTION,
        "inattention": Trait.ADHD_INATTENTION,
        "hyperactivity": Trait.ADHD_HYPERACTIVITY,
        "life_satisfaction": Trait.RESILIENCE,
        "wellbeing": Trait.RESILIENCE,
        "bipolar": Trait.MANIA,
        "bpd": Trait.BORDERLINE,
    }
)

# Ordered: the first topic whose identifiers match wins
_TOPIC_IDENTIFIERS: Tuple[Tuple[TopicCategory, frozenset], ...] = (
    (
        TopicCategory.PERSONALITY,
        frozenset(
            {"openness", "conscientiousness", "extraversion", "agreeableness", "neuroticism"}
        ),
    ),
    (
        TopicCategory.CLINICAL,
        frozenset(
            {"depression", "anxiety", "mania", "psychosis", "somatic", "borderline"}
        ),
    ),
    (
        TopicCategory.NEURODIVERSITY,
        frozenset(
            {
                "adhd",
                "adhd_inattention",
                "adhd_hyperactivity",
                "autism",
                "executive_function",
                "sensory",
            }
        ),
    ),
    (
        TopicCategory.INTERPERSONAL,
        frozenset(
            {
                "attachment",
                "attachment_anxiety",
                "attachment_avoidance",
                "relationships",
                "social",
            }
        ),
    ),
    (
        TopicCategory.WELLBEING,
        frozenset({"resilience", "stress", "coping", "life_satisfaction"}),
    ),
    (TopicCategory.SUBSTANCE, frozenset({"alcohol", "drugs"})),
    (TopicCategory.TRAUMA, frozenset({"aces", "ptsd"})),
    (
        TopicCategory.VALIDITY,
        frozenset({"inconsistency", "infrequency", "positive_impression"}),
    ),
)


def _normalize(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def _lookup_trait(key: str, subcategory: Optional[str]) -> Optional[Trait]:
    if key == "attachment":
        if subcategory and "anx" in subcategory:
            return Trait.ATTACHMENT_ANXIETY
        return Trait.ATTACHMENT_AVOIDANCE
    if key in _TRAIT_ALIASES:
        return _TRAIT_ALIASES[key]
    try:
        return Trait(key)
    except ValueError:
        return None


def resolve_trait(
    trait: Optional[str],
    subcategory: Optional[str] = None,
    category: Optional[str] = None,
) -> Optional[Trait]:
    """
    Resolve the belief-network trait an item measures.

    The trait field is tried first, then subcategory, then category. Items
    whose metadata maps to no tracked trait return None; they still get
    selected and answered, they just carry no direct belief evidence.

    Args:
        trait: Item's trait field (e.g. "neuroticism", "adhd").
        subcategory: Item's subcategory (e.g. "anxious" for attachment items).
        category: Item's category.

    Returns:
        The resolved Trait, or None.
    """
    sub = _normalize(subcategory)
    for raw in (trait, subcategory, category):
        key = _normalize(raw)
        if key is None:
            continue
        resolved = _lookup_trait(key, sub)
        if resolved is not None:
            return resolved
    return None


def resolve_topic(
    category: Optional[str],
    subcategory: Optional[str] = None,
    trait: Optional[str] = None,
    tags: Iterable[str] = (),
) -> TopicCategory:
    """Resolve the high-level topic an item belongs to, defaulting to OTHER."""
    category_key = _normalize(category)
    trait_key = _normalize(trait)
    sub_key = _normalize(subcategory)
    tag_keys = {t for t in (_normalize(tag) for tag in tags) if t}

    for topic, identifiers in _TOPIC_IDENTIFIERS:
        if category_key == topic.value:
            return topic
        if trait_key in identifiers or sub_key in identifiers:
            return topic
        if tag_keys & identifiers:
            return topic
    return TopicCategory.OTHER


def trait_domain(trait: Optional[Trait]) -> Optional[TraitDomain]:
    """Domain of a resolved trait, or None for unmapped items."""
    if trait is None:
        return None
    return TRAIT_DOMAINS[trait]


__all__ = [
    "BIG_FIVE",
    "TRAIT_DOMAINS",
    "Trait",
    "resolve_topic",
    "resolve_trait",
    "trait_domain",
]
