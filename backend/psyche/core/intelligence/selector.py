"""
QuestionSelector: orchestrator for one adaptive assessment session.

Called twice per turn:

    insights = selector.process_response(item, value, response_time_ms)
    result = selector.select_next(candidate_pool, tier=AssessmentTier.CORE)

process_response() folds the answer into every component (belief network,
validity monitor, contradiction detector, response-style classifier, and
periodically the neurodivergence pattern detector). select_next() filters
and scores the candidate pool and hands back the winning item together with
any interventions raised since the previous selection.

Each instance is one session and owns all of its state. Component failures
are logged and skipped so the assessment never blocks; caller contract
violations (an invalid tier, an out-of-scale answer value) raise.
"""

import logging
import statistics
import uuid
from datetime import datetime
from functools import partial
from typing import Any, Dict, Iterable, List, Optional, Sequence

from libs.domain_types import AssessmentTier
from psyche.core.graceful_failure import graceful_failure, graceful_failure_decorator
from psyche.core.intelligence._types import Contradiction, Response, SelectionResult
from psyche.core.intelligence.belief_network import BeliefNetwork
from psyche.core.intelligence.contradictions import SemanticContradictionDetector
from psyche.core.intelligence.item_priority import (
    SelectorConfig,
    ScoredCandidate,
    accessible_tiers,
    apply_topic_run_cap,
    determine_phase,
    facet_answer_counts,
    meets_trigger_conditions,
    passes_sensitivity_gate,
    progress_message,
    score_candidate,
)
from psyche.core.intelligence.pattern_detector import NeurodivergencePatternDetector
from psyche.core.intelligence.response_style import (
    INSUFFICIENT_DATA,
    NEUTRAL_MATCH_SCORE,
    ResponseStyleClassifier,
)
from psyche.core.intelligence.validity_monitor import RealTimeValidityMonitor
from psyche.core.logging_config import session_logging
from psyche.schemas.interventions import Intervention
from psyche.schemas.items import Item

logger = logging.getLogger(__name__)

ENGINE_VERSION = "2.0"


class QuestionSelector:
    """
    Per-session adaptive item selector.

    Manages:
    - The append-only answer history
    - Belief updates and cross-trait prediction
    - Real-time validity monitoring and contradiction detection
    - Periodic neurodivergence pattern screening
    - Response-style classification for item matching
    - Candidate filtering, scoring and selection
    """

    def __init__(
        self,
        config: Optional[SelectorConfig] = None,
        *,
        belief_network: Optional[BeliefNetwork] = None,
        validity_monitor: Optional[RealTimeValidityMonitor] = None,
        pattern_detector: Optional[NeurodivergencePatternDetector] = None,
        contradiction_detector: Optional[SemanticContradictionDetector] = None,
        style_classifier: Optional[ResponseStyleClassifier] = None,
        session_id: Optional[str] = None,
    ):
        self.config = config or SelectorConfig()
        self.belief_network = belief_network or BeliefNetwork()
        self.validity_monitor = validity_monitor or RealTimeValidityMonitor()
        self.pattern_detector = pattern_detector or NeurodivergencePatternDetector()
        self.contradiction_detector = (
            contradiction_detector or SemanticContradictionDetector()
        )
        self.style_classifier = style_classifier or ResponseStyleClassifier()
        self.session_id = session_id or uuid.uuid4().hex

        self.history: List[Response] = []
        self.contradictions: List[Contradiction] = []
        self.validity_flags: List[str] = []
        self.patterns: Dict[str, Any] = {}
        self.response_style: Dict[str, Any] = {}
        self._pending_interventions: List[Intervention] = []

    # ------------------------------------------------------------------
    # Per-answer processing
    # ------------------------------------------------------------------

    def process_response(
        self,
        item: Item,
        value: int,
        response_time_ms: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Record one answer and run it through every component.

        Args:
            item: The item that was answered.
            value: Ordinal answer (1-5).
            response_time_ms: Answer latency, or None if not measured.
            timestamp: When the answer was given. Defaults to now (UTC).

        Returns:
            Dictionary containing:
            {
                "response": Response,
                "beliefs": Dict | None,        # snapshot after the update
                "discrepancies": List[Dict],
                "validity": Dict | None,       # RealTimeValidityMonitor.monitor()
                "contradictions": List[Contradiction],
                "patterns": Dict | None,       # only on pattern-analysis turns
                "response_style": Dict | None,
                "interventions": List[Intervention],
                "flags": List[str],
                "skipped": List[str],          # components that failed this turn
            }

        Raises:
            ValueError: If value is off the 1-5 scale.
        """
        response = Response.from_item(item, value, response_time_ms, timestamp)
        prior = list(self.history)
        self.history.append(response)

        insights: Dict[str, Any] = {
            "response": response,
            "beliefs": None,
            "discrepancies": [],
            "validity": None,
            "contradictions": [],
            "patterns": None,
            "response_style": None,
            "interventions": [],
            "flags": [],
            "skipped": [],
        }
        guarded = partial(
            graceful_failure,
            logger=logger,
            context={"item_id": response.item_id, "response_count": len(self.history)},
            failures=insights["skipped"],
        )

        with session_logging(self.session_id):
            with guarded("update beliefs"):
                insights["beliefs"] = self.belief_network.update_beliefs(
                    response, self.history
                )
                insights["discrepancies"] = self.belief_network.detect_discrepancies()
                if insights["discrepancies"]:
                    insights["flags"].append("CROSS_PREDICTION_DISCREPANCY")
                    logger.debug(
                        f"Cross-prediction discrepancies: "
                        f"{[d['trait'] for d in insights['discrepancies']]}"
                    )

            with guarded("run validity checks"):
                validity = self.validity_monitor.monitor(
                    item, value, response_time_ms, prior, response=response
                )
                insights["validity"] = validity
                if validity["flags"]:
                    self.validity_flags.extend(validity["flags"])
                    insights["flags"].extend(validity["flags"])
                    insights["interventions"].extend(validity["interventions"])

            with guarded("detect contradictions"):
                found = self.contradiction_detector.detect(response, prior)
                insights["contradictions"] = found
                self.contradictions.extend(found)
                for contradiction in found:
                    if contradiction.severity == "HIGH":
                        insights["interventions"].append(
                            self.contradiction_detector.generate_clarification(
                                contradiction
                            )
                        )

            if self._is_pattern_turn():
                patterns = self._run_pattern_analysis()
                if patterns is None:
                    insights["skipped"].append("analyze response patterns")
                else:
                    self.patterns = patterns
                    insights["patterns"] = patterns

            with guarded("classify response style"):
                style = self.style_classifier.classify(self.history)
                self.response_style = style
                insights["response_style"] = style

        self._pending_interventions.extend(insights["interventions"])
        return insights

    def _is_pattern_turn(self) -> bool:
        count = len(self.history)
        return (
            count >= self.config.pattern_analysis_min_responses
            and count % self.config.pattern_analysis_interval == 0
        )

    @graceful_failure_decorator("analyze response patterns")
    def _run_pattern_analysis(self) -> Dict[str, Any]:
        response_times = [
            r.response_time_ms for r in self.history if r.response_time_ms
        ]
        patterns = self.pattern_detector.analyze(
            self.history, self.belief_network.measured_traits(), response_times
        )
        for screen in ("autism", "adhd"):
            likelihood = patterns[screen]["likelihood"]
            if likelihood != "LOW":
                logger.info(f"Pattern screen {screen}: likelihood {likelihood}")
        return patterns

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_next(
        self,
        candidate_pool: Iterable[Item],
        history: Optional[Sequence[Response]] = None,
        asked_ids: Optional[Iterable[str]] = None,
        tier: AssessmentTier | str = AssessmentTier.COMPREHENSIVE,
        addon_enabled: bool = False,
    ) -> SelectionResult:
        """
        Pick the next item to present.

        Args:
            candidate_pool: Items the repository offers for this session.
            history: Answers so far. Defaults to this session's history.
            asked_ids: Item IDs already shown. Always includes the IDs in
                history.
            tier: Session tier, CORE or COMPREHENSIVE.
            addon_enabled: Whether the respondent opted into clinical add-on
                items (COMPREHENSIVE sessions only).

        Returns:
            SelectionResult. item is None when no candidate is eligible,
            including when the topic-run cap excludes every candidate left.

        Raises:
            InvalidTierError: If tier is not CORE or COMPREHENSIVE.
        """
        tiers = accessible_tiers(tier, addon_enabled)
        history = list(self.history if history is None else history)
        asked = {r.item_id for r in history}
        if asked_ids is not None:
            asked.update(asked_ids)

        answer_count = len(history)
        phase = determine_phase(answer_count)
        beliefs = self.belief_network.beliefs
        pool = list(candidate_pool)

        eligible = [
            item
            for item in pool
            if item.item_id not in asked
            and item.active
            and tiers.intersection(item.assessment_tiers)
            and passes_sensitivity_gate(item, answer_count)
            and meets_trigger_conditions(
                item.required_signals, answer_count, phase, beliefs
            )
        ]
        uncapped = len(eligible)
        eligible = apply_topic_run_cap(eligible, history, self.config.max_topic_run)

        interventions = self.drain_interventions()
        message = self.get_progress_message(answer_count)

        if not eligible:
            if uncapped:
                logger.warning(
                    f"Topic run cap reached for {history[-1].topic.value}: "
                    f"{uncapped} eligible items share the topic and none remain "
                    f"elsewhere. Answered: {answer_count}"
                )
            else:
                logger.warning(
                    f"No eligible items after filtering. Pool size: {len(pool)}, "
                    f"answered: {answer_count}, tiers: {sorted(t.value for t in tiers)}"
                )
            return SelectionResult(
                item=None,
                score=0.0,
                interventions=interventions,
                progress_message=message,
                phase=phase.value,
                candidates_considered=0,
            )

        discrepant = frozenset(
            d["trait"] for d in self.belief_network.detect_discrepancies()
        )
        adaptive_style = self._preferred_item_type()
        facet_counts = facet_answer_counts(history)

        best: Optional[ScoredCandidate] = None
        for item in eligible:
            match = (
                self.style_classifier.score_item_match(item, adaptive_style)
                if adaptive_style
                else NEUTRAL_MATCH_SCORE
            )
            scored = score_candidate(
                item,
                history=history,
                beliefs=beliefs,
                phase=phase,
                adaptive_match=match,
                discrepant_traits=discrepant,
                config=self.config,
                facet_counts=facet_counts,
            )
            # Strict comparison keeps the earliest candidate on ties
            if best is None or scored.total > best.total:
                best = scored

        assert best is not None
        logger.debug(
            f"Selected {best.item.item_id} (score={best.total:.2f}, "
            f"phase={phase.value}, eligible={len(eligible)}, "
            f"breakdown={best.breakdown})"
        )
        return SelectionResult(
            item=best.item,
            score=best.total,
            breakdown=best.breakdown,
            interventions=interventions,
            progress_message=message,
            phase=phase.value,
            candidates_considered=len(eligible),
        )

    def _preferred_item_type(self) -> Optional[str]:
        style = self.response_style
        if not style or style.get("pattern") == INSUFFICIENT_DATA:
            return None
        return style.get("preferred_item_type")

    def drain_interventions(self) -> List[Intervention]:
        drained = self._pending_interventions
        self._pending_interventions = []
        return drained

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_progress_message(self, answer_count: Optional[int] = None) -> str:
        if answer_count is None:
            answer_count = len(self.history)
        measured = [
            b.confidence for b in self.belief_network.beliefs.values() if b.sample_size > 0
        ]
        average_confidence = statistics.fmean(measured) if measured else 0.0
        return progress_message(
            answer_count,
            determine_phase(answer_count),
            average_confidence,
            self.config.assessment_length,
        )

    def get_intelligence_insights(self) -> Dict[str, Any]:
        """
        End-of-session view of everything the engine inferred.

        Returns:
            {
                "cross_predictions": Dict,   # BeliefNetwork.get_all_beliefs()
                "discrepancies": List[Dict],
                "validity": Dict,            # validity report
                "patterns": Dict,            # latest pattern analysis, or {}
                "contradictions": Dict,      # contradiction summary
                "response_style": Dict,      # latest classification, or {}
                "summary": Dict,
            }
        """
        validity = self.validity_monitor.get_validity_report()
        return {
            "cross_predictions": self.belief_network.get_all_beliefs(),
            "discrepancies": self.belief_network.detect_discrepancies(),
            "validity": validity,
            "patterns": self.patterns,
            "contradictions": self.contradiction_detector.get_summary(
                self.contradictions
            ),
            "response_style": self.response_style,
            "summary": {
                "session_id": self.session_id,
                "responses": len(self.history),
                "total_flags": len(self.validity_flags),
                "total_contradictions": len(self.contradictions),
                "overall_validity": validity["overall_validity"],
                "engine_version": ENGINE_VERSION,
            },
        }

    def reset(self) -> None:
        """Discard all session state; the selector can start a new session."""
        self.belief_network.reset()
        self.validity_monitor.reset()
        self.style_classifier.reset()
        self.history = []
        self.contradictions = []
        self.validity_flags = []
        self.patterns = {}
        self.response_style = {}
        self._pending_interventions = []
