"""
Pydantic schemas for interventions raised by the real-time monitors.

An intervention is a suggestion to the surrounding session layer (insert an
attention-check item, ask the respondent to clarify two conflicting answers,
offer a break). The engine never acts on one itself.
"""

import enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class InterventionType(str, enum.Enum):
    """Kinds of intervention the monitors can raise."""

    ATTENTION_CHECK = "attention_check"
    CLARIFICATION = "clarification"
    META_QUESTION = "meta_question"
    PACE_ADJUSTMENT = "pace_adjustment"


class InterventionOption(BaseModel):
    """One answer option offered with an intervention prompt."""

    value: str = Field(..., description="Machine-readable option value")
    label: str = Field(..., description="Option text shown to the respondent")


class Intervention(BaseModel):
    """A structured suggestion for the session layer to act on."""

    type: InterventionType = Field(..., description="Intervention kind")
    source: str = Field(..., description="Component that raised the intervention")
    priority: Literal["critical", "high", "medium", "low"] = Field(
        "medium", description="How urgently the session layer should act"
    )
    message: str = Field(..., description="Respondent-facing message")
    question: Optional[str] = Field(
        None, description="Follow-up question to ask, if any"
    )
    options: List[InterventionOption] = Field(
        default_factory=list, description="Answer options for the follow-up question"
    )
    insert_item_id: Optional[str] = Field(
        None, description="Item the session layer may insert next"
    )
    trait: Optional[str] = Field(None, description="Trait the intervention concerns")
    details: Dict[str, Any] = Field(
        default_factory=dict, description="Supporting evidence for the intervention"
    )


def options_from_labels(labels: List[str]) -> List[InterventionOption]:
    """Build options whose value is the snake_case form of each label."""
    return [
        InterventionOption(value=label.lower().replace(" ", "_").replace("-", "_"), label=label)
        for label in labels
    ]
