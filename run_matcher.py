#!/usr/bin/env python3
"""
Matcher CLI - Filter, score and rank OEMs for a buyer's criteria

Loads an OEM export (list, or an API envelope with data/oems/matches),
applies the chosen view preset and prints or saves the ranked results.
With --ai-query the LLM ranker picks the top OEMs first and its ranks
override local scores.

Usage:
    # Listing view: category + MOQ + certifications
    python run_matcher.py \\
        --input data/oems.json \\
        --categories Skincare --moq-max 1000 --certifications GMP

    # Results view sorted by fastest delivery, saved to JSON
    python run_matcher.py \\
        --input data/oems.json --view results \\
        --moq-min 500 --moq-max 2000 --lead-max 30 --locations Bangkok \\
        --sort fastest --output output/matches.json

    # AI-ranked search (requires OPENROUTER_API_KEY)
    python run_matcher.py \\
        --input data/oems.json \\
        --ai-query "organic shampoo, 1000 bottles, export to Japan"

    # Score OEMs for a quote request
    python run_matcher.py \\
        --input data/oems.json \\
        --request-industry Cosmetics --moq-min 500 --moq-max 2000 --cross-border
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from core.constants import (
    CAPABILITY_LABELS,
    CERT_POLICY_ALL,
    CERT_POLICY_ANY,
    DEFAULT_LEAD_TIME_RANGE,
    DEFAULT_MOQ_RANGE,
    DEFAULT_REQUEST_MATCH_LIMIT,
    SORT_BEST_MATCH,
    SORT_MODES,
    SUBSCRIPTION_TIERS,
)
from core.data_io import load_candidates_from_json
from core.models import Criteria, RequestCriteria
from oem_matcher import DEFAULT_VIEW, VIEW_PRESETS, OEMMatcher, print_results, save_results_json
from oem_scoring import SCORING_STRATEGIES, find_request_matches


def build_range(
    low: Optional[int],
    high: Optional[int],
    default: Tuple[int, int],
) -> Optional[Tuple[int, int]]:
    """Build a range from optional bounds; None when neither bound is given."""
    if low is None and high is None:
        return None
    return (default[0] if low is None else low, default[1] if high is None else high)


def build_criteria(args: argparse.Namespace) -> Criteria:
    return Criteria(
        search=args.search or "",
        tiers=args.tiers or (),
        categories=args.categories or (),
        certifications=args.certifications or (),
        locations=args.locations or (),
        capabilities=args.capabilities or (),
        tags=args.tags or (),
        moq_range=build_range(args.moq_min, args.moq_max, DEFAULT_MOQ_RANGE),
        lead_time_range=build_range(args.lead_min, args.lead_max, DEFAULT_LEAD_TIME_RANGE),
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Filter, score and rank OEM candidates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--input",
        type=Path,
        default=Path("data/oems.json"),
        help="Path to OEM records JSON (default: data/oems.json)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Save results to this JSON file",
    )

    # View / strategy
    parser.add_argument(
        "--view",
        choices=sorted(VIEW_PRESETS),
        default=DEFAULT_VIEW,
        help=f"View preset selecting scorer and certification policy (default: {DEFAULT_VIEW})",
    )
    parser.add_argument(
        "--strategy",
        choices=sorted(SCORING_STRATEGIES),
        help="Override the view's scoring strategy",
    )
    parser.add_argument(
        "--cert-policy",
        choices=[CERT_POLICY_ANY, CERT_POLICY_ALL],
        help="Override the view's certification policy",
    )
    parser.add_argument(
        "--sort",
        choices=list(SORT_MODES),
        default=SORT_BEST_MATCH,
        help=f"Sort mode (default: {SORT_BEST_MATCH})",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of results to show",
    )

    # Criteria
    parser.add_argument("--search", type=str, help="Free-text search")
    parser.add_argument("--tiers", nargs="+", choices=list(SUBSCRIPTION_TIERS), help="Allowed tiers")
    parser.add_argument("--categories", nargs="+", help="Allowed product categories")
    parser.add_argument("--certifications", nargs="+", help="Required certifications")
    parser.add_argument("--locations", nargs="+", help="Allowed locations")
    parser.add_argument("--capabilities", nargs="+", choices=list(CAPABILITY_LABELS), help="Required capabilities")
    parser.add_argument("--tags", nargs="+", help="Required highlight tags (any of)")
    parser.add_argument("--moq-min", type=int, help="MOQ lower bound")
    parser.add_argument("--moq-max", type=int, help="MOQ upper bound")
    parser.add_argument("--lead-min", type=int, help="Lead time lower bound (days)")
    parser.add_argument("--lead-max", type=int, help="Lead time upper bound (days)")

    # AI ranking
    parser.add_argument(
        "--ai-query",
        type=str,
        help="Free-text requirement for the LLM ranker (requires OPENROUTER_API_KEY)",
    )
    parser.add_argument(
        "--ai-model",
        type=str,
        help="Model for the LLM ranker (default: AI_RANKING_MODEL or google/gemini-2.5-flash-lite)",
    )

    # Request matching
    parser.add_argument(
        "--request-industry",
        type=str,
        help="Score OEMs for a quote request in this industry instead of the view",
    )
    parser.add_argument("--request-location", type=str, help="Preferred OEM location for the request")
    parser.add_argument("--cross-border", action="store_true", help="Request needs international shipping")
    parser.add_argument("--prototype", action="store_true", help="Request needs prototype development")

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    return parser.parse_args()


def run_request_matching(args: argparse.Namespace, candidates) -> int:
    request = RequestCriteria(
        industry=args.request_industry,
        moq_min=args.moq_min,
        moq_max=args.moq_max,
        location=args.request_location,
        cross_border=args.cross_border,
        prototype_needed=args.prototype,
        certifications=tuple(args.certifications or ()),
    )
    matches = find_request_matches(candidates, request, limit=args.limit or DEFAULT_REQUEST_MATCH_LIMIT)

    print(f"\n{'='*60}")
    print(f"REQUEST MATCHES: {request.industry}")
    print(f"{'='*60}")
    if not matches:
        print("No OEMs found in this industry.")
        return 0
    for i, (candidate, score) in enumerate(matches, 1):
        print(f"\n{i}. {candidate.name} - score {score.value}")
        for reason in score.reasons:
            print(f"   - {reason}")
    return 0


def main():
    load_dotenv()
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")

    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    print(f"Loading OEMs from {args.input}...")
    try:
        candidates = load_candidates_from_json(args.input)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Loaded {len(candidates)} OEMs")

    if args.request_industry:
        return run_request_matching(args, candidates)

    criteria = build_criteria(args)
    matcher = OEMMatcher(candidates, view=args.view).with_strategy(args.strategy, args.cert_policy)

    overrides = None
    if args.ai_query:
        if not os.getenv("OPENROUTER_API_KEY"):
            print("Error: OPENROUTER_API_KEY environment variable is required for --ai-query", file=sys.stderr)
            return 1

        from ai_ranking import LLMRanker, to_overrides

        ranker = LLMRanker(model=args.ai_model)
        try:
            ranking = ranker.rank(args.ai_query, candidates)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if ranking.error:
            print(f"Warning: AI ranking failed ({ranking.error}), using local scores")
        else:
            print(f"AI ranked {len(ranking.recommendations)} OEMs with {ranking.model}")
            overrides = to_overrides(ranking)

    matches = matcher.match(criteria, overrides=overrides, sort_by=args.sort, limit=args.limit)
    print_results(matches)

    if args.output:
        save_results_json(matches, args.output)
        print(f"\nSaved {len(matches.results)} results to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
