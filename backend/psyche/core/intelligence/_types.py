"""
Shared record types for the adaptive engine.

Response is the single normalized answer record: the engine's ingestion
boundary builds one from an Item and a raw value, and every component reads
the same fields from it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from libs.domain_types import ResponseType, Sensitivity, TopicCategory, Trait
from psyche.core.datetime_utils import answer_timestamp
from psyche.core.scales import ordinal_to_percent, validate_ordinal
from psyche.schemas.items import Item


@dataclass(frozen=True)
class Response:
    """One answered item. Immutable once recorded."""

    item_id: str
    raw_value: int  # ordinal 1-5
    trait: Optional[Trait]  # resolved belief trait, None if unmapped
    category: Optional[str]
    subcategory: Optional[str]
    instrument: Optional[str]
    reverse_scored: bool
    sensitivity: Sensitivity
    response_time_ms: Optional[float]
    timestamp: datetime
    topic: TopicCategory = TopicCategory.OTHER
    trait_label: Optional[str] = None  # trait string as stored in the bank
    text: str = ""
    tags: Tuple[str, ...] = ()
    response_type: ResponseType = ResponseType.LIKERT
    facet: Optional[str] = None

    @classmethod
    def from_item(
        cls,
        item: Item,
        value: int,
        response_time_ms: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> "Response":
        """
        Record an answer to an item.

        Raises:
            ValueError: If value is off the 1-5 scale or the response time
                is negative.
        """
        validate_ordinal(value)
        if response_time_ms is not None and response_time_ms < 0:
            raise ValueError(
                f"response_time_ms must be non-negative, got {response_time_ms}"
            )
        return cls(
            item_id=item.item_id,
            raw_value=value,
            trait=item.belief_trait,
            category=item.category,
            subcategory=item.subcategory,
            instrument=item.instrument,
            reverse_scored=item.reverse_scored,
            sensitivity=item.sensitivity,
            response_time_ms=response_time_ms,
            timestamp=answer_timestamp(timestamp),
            topic=item.topic,
            trait_label=item.trait,
            text=item.text,
            tags=tuple(item.tags),
            response_type=item.response_type,
            facet=item.facet,
        )

    @property
    def percent(self) -> float:
        """Answer on the 0-100 trait scale, keyed toward the trait."""
        return ordinal_to_percent(self.raw_value, self.reverse_scored)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


@dataclass(frozen=True)
class Contradiction:
    """A logical conflict between two specific answers."""

    trait: str
    pair_description: str
    first: Response
    second: Response
    severity: str  # HIGH | MEDIUM
    confidence: float
    source: str = "pair_table"  # pair_table | same_trait


@dataclass
class SelectionResult:
    """Outcome of one select_next call."""

    item: Optional[Item]
    score: float
    breakdown: dict = field(default_factory=dict)
    interventions: list = field(default_factory=list)
    progress_message: str = ""
    phase: Optional[str] = None
    candidates_considered: int = 0
