"""
Adaptive assessment intelligence.

The QuestionSelector orchestrates one session; the other components can be
used on their own.
"""

from ._types import Contradiction, Response, SelectionResult
from .belief_network import Belief, BeliefNetwork, BeliefNetworkConfig, CrossPrediction
from .contradictions import (
    DEFAULT_CONTRADICTION_RULES,
    ContradictionRule,
    OpposedPair,
    SemanticContradictionDetector,
)
from .influence_table import (
    DEFAULT_INFLUENCE_TABLE,
    Direction,
    Predictor,
    build_influence_table,
)
from .item_priority import (
    InvalidTierError,
    SelectorConfig,
    accessible_tiers,
    determine_phase,
)
from .pattern_detector import (
    SCREENING_CAVEAT,
    NeurodivergencePatternDetector,
    PatternThresholds,
)
from .response_style import ResponseStyleClassifier, ResponseStyleThresholds
from .response_time import ResponseTimeAnalyzer, ResponseTimeThresholds
from .selector import QuestionSelector
from .validity_monitor import (
    DEFAULT_CONSISTENCY_PAIRS,
    ConsistencyPair,
    RealTimeValidityMonitor,
    ValidityThresholds,
)

__all__ = [
    "QuestionSelector",
    "SelectionResult",
    "SelectorConfig",
    "InvalidTierError",
    "accessible_tiers",
    "determine_phase",
    "Response",
    "Contradiction",
    "Belief",
    "BeliefNetwork",
    "BeliefNetworkConfig",
    "CrossPrediction",
    "DEFAULT_INFLUENCE_TABLE",
    "Direction",
    "Predictor",
    "build_influence_table",
    "RealTimeValidityMonitor",
    "ValidityThresholds",
    "ConsistencyPair",
    "DEFAULT_CONSISTENCY_PAIRS",
    "ResponseTimeAnalyzer",
    "ResponseTimeThresholds",
    "NeurodivergencePatternDetector",
    "PatternThresholds",
    "SCREENING_CAVEAT",
    "SemanticContradictionDetector",
    "ContradictionRule",
    "OpposedPair",
    "DEFAULT_CONTRADICTION_RULES",
    "ResponseStyleClassifier",
    "ResponseStyleThresholds",
]
