"""
OEM Matcher Module - Filter, score, tag and rank manufacturer candidates.

This module ties the engine together:
1. Filter candidates against hard constraints (oem_filtering)
2. Score survivors, or take the LLM ranker's score when one is supplied
3. Attach highlight tags (oem_tagging)
4. Rank: AI-ranked results first by rank, then by score with a tier tie-break

Design Philosophy:
- score_and_filter is a pure function of (candidates, criteria); callers own state
- The two views (listing / results) differ only in which named scorer and
  certification policy they select, see VIEW_PRESETS
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.constants import (
    CERT_POLICY_ALL,
    CERT_POLICY_ANY,
    MISSING_LEAD_TIME_SORT_VALUE,
    SORT_BEST_MATCH,
    SORT_FASTEST,
    SORT_LOWEST_MOQ,
    SORT_MODES,
    SORT_RATING,
)
from core.data_io import candidate_to_dict
from core.models import Candidate, Criteria, ExternalScore, ScoredResult
from oem_filtering import filter_candidates, get_certification_policy
from oem_scoring import Scorer, get_scorer, resolve_score, score_by_capability_weights
from oem_tagging import candidate_tags


# ============================================================================
# View Presets
# ============================================================================

# view name -> (scoring strategy, certification policy)
VIEW_PRESETS = {
    "listing": ("capability_weights", CERT_POLICY_ALL),
    "results": ("moq_lead_location", CERT_POLICY_ANY),
}

DEFAULT_VIEW = "listing"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class MatchResults:
    """Ranked results for one criteria snapshot."""
    results: List[ScoredResult] = field(default_factory=list)
    total_matches: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Ranking
# ============================================================================

def _rank_key(result: ScoredResult):
    if isinstance(result.score, ExternalScore):
        return (0, result.score.rank, 0)
    return (1, -result.score.value, -result.candidate.tier_rank)


def rank_results(results: List[ScoredResult]) -> List[ScoredResult]:
    """Order results for display.

    Externally ranked results come first in ascending rank order and ignore
    local scores. Local results follow by score descending, then tier
    descending (VERIFIED_PARTNER > INSIGHTS > FREE). Python's sort is
    stable, so remaining ties keep input order.
    """
    return sorted(results, key=_rank_key)


def sort_results(results: List[ScoredResult], sort_by: str = SORT_BEST_MATCH) -> List[ScoredResult]:
    """Re-sort ranked results by one of the user-selectable sort modes."""
    ranked = rank_results(results)
    if sort_by == SORT_BEST_MATCH:
        return ranked
    if sort_by == SORT_FASTEST:
        def key(r):
            lead_time = r.candidate.display_lead_time
            return MISSING_LEAD_TIME_SORT_VALUE if lead_time is None else lead_time
        return sorted(ranked, key=key)
    if sort_by == SORT_LOWEST_MOQ:
        return sorted(ranked, key=lambda r: (r.candidate.display_moq is None, r.candidate.display_moq or 0))
    if sort_by == SORT_RATING:
        return sorted(ranked, key=lambda r: -(r.candidate.rating or 0.0))
    raise ValueError(f"Unknown sort mode: {sort_by!r} (expected one of {list(SORT_MODES)})")


# ============================================================================
# Pipeline
# ============================================================================

def score_and_filter(
    candidates: List[Candidate],
    criteria: Criteria,
    scorer: Scorer = score_by_capability_weights,
    certification_policy: str = CERT_POLICY_ANY,
    overrides: Optional[Dict[str, ExternalScore]] = None,
) -> List[ScoredResult]:
    """Filter, score, tag and rank candidates against one criteria snapshot.

    Args:
        candidates: Normalized candidates (see core.data_io)
        criteria: Immutable buyer criteria
        scorer: One of the SCORING_STRATEGIES functions
        certification_policy: "any" or "all"
        overrides: Optional organization_id -> ExternalScore from the LLM ranker

    Returns:
        New list of ScoredResult in final ranked order
    """
    overrides = overrides or {}
    survivors = filter_candidates(candidates, criteria, certification_policy)

    results = []
    for candidate in survivors:
        score = resolve_score(candidate, criteria, scorer, overrides.get(candidate.organization_id))
        results.append(ScoredResult(candidate=candidate, score=score, tags=candidate_tags(candidate)))

    return rank_results(results)


class OEMMatcher:
    """Matcher bound to a candidate pool and a view preset.

    Example:
        matcher = OEMMatcher(candidates, view="results")
        criteria = Criteria(moq_range=(0, 1000), locations={"Bangkok"})
        matches = matcher.match(criteria, sort_by="fastest", limit=20)
    """

    def __init__(self, candidates: List[Candidate], view: str = DEFAULT_VIEW):
        if view not in VIEW_PRESETS:
            raise ValueError(f"Unknown view: {view!r} (expected one of {sorted(VIEW_PRESETS)})")
        self.candidates = list(candidates)
        self.view = view
        strategy, policy = VIEW_PRESETS[view]
        self.strategy = strategy
        self.scorer = get_scorer(strategy)
        self.certification_policy = policy

    def with_strategy(self, strategy: Optional[str] = None, certification_policy: Optional[str] = None) -> "OEMMatcher":
        """Return a copy using a different scorer and/or certification policy."""
        matcher = OEMMatcher(self.candidates, self.view)
        if strategy is not None:
            matcher.strategy = strategy
            matcher.scorer = get_scorer(strategy)
        if certification_policy is not None:
            get_certification_policy(certification_policy)
            matcher.certification_policy = certification_policy
        return matcher

    def match(
        self,
        criteria: Criteria,
        overrides: Optional[Dict[str, ExternalScore]] = None,
        sort_by: str = SORT_BEST_MATCH,
        limit: Optional[int] = None,
    ) -> MatchResults:
        ranked = score_and_filter(
            self.candidates,
            criteria,
            scorer=self.scorer,
            certification_policy=self.certification_policy,
            overrides=overrides,
        )
        ordered = sort_results(ranked, sort_by)
        total = len(ordered)
        if limit is not None:
            ordered = ordered[:limit]

        ai_ranked = sum(1 for r in ordered if r.ai_rank is not None)
        logging.debug(f"Matched {total}/{len(self.candidates)} candidates ({ai_ranked} AI-ranked)")

        return MatchResults(
            results=ordered,
            total_matches=total,
            metadata={
                "view": self.view,
                "scoring_strategy": self.strategy,
                "certification_policy": self.certification_policy,
                "sort_by": sort_by,
                "total_candidates": len(self.candidates),
                "ai_ranked": ai_ranked,
                "criteria_empty": criteria.is_empty(),
            },
        )


# ============================================================================
# Utility Functions
# ============================================================================

def result_to_dict(result: ScoredResult) -> Dict[str, Any]:
    """Convert one ScoredResult into the card payload."""
    data = candidate_to_dict(result.candidate)
    data["matchScore"] = result.match_score
    data["matchReasons"] = result.match_reasons
    data["tags"] = list(result.tags)
    data["aiRank"] = result.ai_rank
    return data


def results_to_dict(matches: MatchResults) -> Dict[str, Any]:
    """Convert MatchResults to dictionary."""
    return {
        "results": [result_to_dict(r) for r in matches.results],
        "totalMatches": matches.total_matches,
        "metadata": matches.metadata,
    }


def save_results_json(matches: MatchResults, output_path: Path) -> None:
    """Save match results to JSON file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(results_to_dict(matches), f, ensure_ascii=False, indent=2)


def print_results(matches: MatchResults) -> None:
    """Print match results in a human-readable format."""
    meta = matches.metadata
    print("\n" + "=" * 70)
    print(f"Matches: {matches.total_matches} (view: {meta.get('view')}, sort: {meta.get('sort_by')})")
    print("=" * 70)

    for i, r in enumerate(matches.results, 1):
        c = r.candidate
        rank_marker = f" [AI #{r.ai_rank}]" if r.ai_rank is not None else ""
        print(f"\n{i}. {c.name} ({c.tier}){rank_marker} - score {r.match_score}")
        if c.location:
            print(f"   Location: {c.location}")
        moq = c.display_moq if c.display_moq is not None else "-"
        lead_time = f"{c.display_lead_time} days" if c.display_lead_time is not None else "-"
        print(f"   MOQ: {moq} | Lead time: {lead_time}")
        if r.match_reasons:
            print(f"   Reasons: {', '.join(r.match_reasons)}")
        if r.tags:
            print(f"   Tags: {', '.join(r.tags)}")

    print("\n" + "-" * 70)
    print(f"Scoring: {meta.get('scoring_strategy')} | Certifications: {meta.get('certification_policy')}")
