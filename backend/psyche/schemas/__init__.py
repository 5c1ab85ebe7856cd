"""
Pydantic schemas for the adaptive engine's inputs and outputs.
"""
from .interventions import Intervention, InterventionOption, InterventionType
from .items import AdaptiveMetadata, Item, RequiredSignals, TriggerCondition

__all__ = [
    "AdaptiveMetadata",
    "Intervention",
    "InterventionOption",
    "InterventionType",
    "Item",
    "RequiredSignals",
    "TriggerCondition",
]
