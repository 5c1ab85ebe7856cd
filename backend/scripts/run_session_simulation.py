"""
Run simulated respondents through a full adaptive assessment session.

Builds a synthetic item bank, drives a QuestionSelector with one simulated
respondent per requested style, and prints a per-session summary (responses,
phases reached, interventions, overall validity, response style, pattern
screening likelihoods).

Usage:
    python scripts/run_session_simulation.py [--style STYLE ...] [--responses N]
        [--tier {core,comprehensive}] [--addon] [--seed SEED] [--json]

Exit codes:
    0 - Success
    2 - Simulation error
    3 - Configuration/import error
"""
import argparse
import json
import logging
import os
import sys
from typing import List, Optional

# Add backend/ and the repository root to path to import psyche and libs
_BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.dirname(_BACKEND_DIR))
sys.path.insert(0, _BACKEND_DIR)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("session_simulation")

STYLES = ("consistent", "random", "fence_sitting", "extreme")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate adaptive assessment sessions"
    )
    parser.add_argument(
        "--style",
        action="append",
        choices=STYLES,
        help="Respondent style to simulate (repeatable; default: all styles)",
    )
    parser.add_argument(
        "--responses", type=int, default=70, help="Maximum answers per session"
    )
    parser.add_argument(
        "--items-per-trait", type=int, default=6, help="Synthetic items per trait"
    )
    parser.add_argument(
        "--tier",
        choices=("core", "comprehensive"),
        default="comprehensive",
        help="Session tier",
    )
    parser.add_argument(
        "--addon", action="store_true", help="Enable clinical add-on items"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--json", action="store_true", help="Print one JSON summary per session"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # Defer imports so config/import failures produce exit code 3
    try:
        from libs.domain_types import AssessmentTier
        from psyche.core.intelligence.simulation import (
            SimulationConfig,
            generate_item_bank,
            run_session,
        )
    except Exception as exc:
        logger.error("Failed to import required modules: %s", exc)
        return 3

    styles = args.style or list(STYLES)
    try:
        bank = generate_item_bank(args.items_per_trait, args.seed)
    except Exception as exc:
        logger.error("Failed to generate item bank: %s", exc)
        return 2

    logger.info("Generated synthetic bank with %d items", len(bank))

    for style in styles:
        config = SimulationConfig(
            respondent_style=style,
            n_items_per_trait=args.items_per_trait,
            max_responses=args.responses,
            tier=AssessmentTier(args.tier),
            addon_enabled=args.addon,
            seed=args.seed,
        )
        try:
            transcript = run_session(config, bank=bank)
        except Exception as exc:
            logger.error("Simulation failed for style %s: %s", style, exc)
            return 2

        insights = transcript.insights
        summary = {
            "style": style,
            "responses": transcript.responses,
            "stop_reason": transcript.stop_reason,
            "final_phase": transcript.phases[-1] if transcript.phases else None,
            "interventions": transcript.intervention_counts(),
            "overall_validity": insights["summary"]["overall_validity"],
            "contradictions": insights["contradictions"]["count"],
            "response_style": insights["response_style"].get("pattern"),
            "autism_likelihood": insights["patterns"].get("autism", {}).get("likelihood"),
            "adhd_likelihood": insights["patterns"].get("adhd", {}).get("likelihood"),
        }

        if args.json:
            print(json.dumps(summary), flush=True)
        else:
            logger.info(
                "  %-14s responses=%d  validity=%s  style=%s  contradictions=%d  "
                "interventions=%s",
                style,
                summary["responses"],
                summary["overall_validity"],
                summary["response_style"],
                summary["contradictions"],
                summary["interventions"],
            )

    return 0


if __name__ == "__main__":
    sys.exit(main())
