"""
Core module for engine configuration and utilities.

The adaptive engine itself lives in psyche.core.intelligence and is not
imported at package level; import it directly:
from psyche.core.intelligence import QuestionSelector
"""
from .config import settings

__all__ = ["settings"]
