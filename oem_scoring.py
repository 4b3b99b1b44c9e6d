"""
OEM Scoring Module - Weighted match scores with human-readable reasons.

Two independent formulas are provided, one per view. They produce
different numbers for the same candidate:

1. score_by_capability_weights (listing view):
   category 40, MOQ 25, lead time 15, certifications 10,
   tier bonus 5/3/0, +2 per requested capability held. Clamped to 100.

2. score_by_moq_lead_location (results view):
   MOQ 40%, lead time 40%, location 20%, with half credit for near misses,
   normalized by the weight that was actually achievable.

A third scorer, score_for_request, rates OEMs against a submitted quote or
prototype request.

Every scorer is a pure function of its inputs. An ExternalScore supplied by
the LLM ranker replaces local computation entirely (see resolve_score).
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

from core.constants import (
    CAPABILITY_BONUS,
    CAPABILITY_LABELS,
    CATEGORY_WEIGHT,
    CERTIFICATION_WEIGHT,
    DEFAULT_REQUEST_MATCH_LIMIT,
    DOMESTIC_COUNTRY,
    GOOD_RATING_THRESHOLD,
    HIGH_RATING_THRESHOLD,
    LEAD_TIME_PARTIAL_FACTOR,
    LEAD_TIME_WEIGHT,
    MAX_MATCH_SCORE,
    MOQ_PARTIAL_FACTOR,
    MOQ_WEIGHT,
    PARTIAL_CREDIT,
    REASON_CATEGORY,
    REASON_CERTIFICATIONS,
    REASON_LEAD_TIME,
    REASON_LEAD_TIME_FIT,
    REASON_LEAD_TIME_PARTIAL,
    REASON_LOCATION,
    REASON_MOQ,
    REASON_MOQ_OVERLAP,
    REASON_MOQ_PARTIAL,
    REQUEST_CROSS_BORDER_WEIGHT,
    REQUEST_DOMESTIC_WEIGHT,
    REQUEST_GOOD_RATING_WEIGHT,
    REQUEST_HIGH_RATING_WEIGHT,
    REQUEST_INDUSTRY_WEIGHT,
    REQUEST_LOCATION_WEIGHT,
    REQUEST_MOQ_OPEN_ENDED_WEIGHT,
    REQUEST_MOQ_OVERLAP_WEIGHT,
    REQUEST_PROTOTYPE_WEIGHT,
    REQUEST_SCALE_WEIGHT,
    RESULTS_LEAD_TIME_WEIGHT,
    RESULTS_LOCATION_WEIGHT,
    RESULTS_MOQ_WEIGHT,
    TIER_BONUS,
    TIER_LABELS,
)
from core.models import Candidate, Criteria, ExternalScore, LocalScore, RequestCriteria, Score
from oem_filtering import matches_certifications_any, matches_locations


Scorer = Callable[[Candidate, Criteria], LocalScore]


def _in_range(value: Optional[int], bounds: Tuple[int, int]) -> bool:
    return value is not None and bounds[0] <= value <= bounds[1]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ============================================================================
# Listing View: Capability Weights
# ============================================================================

def score_by_capability_weights(candidate: Candidate, criteria: Criteria) -> LocalScore:
    """Score a candidate for the OEM listing view.

    Only criteria the buyer actually stated can earn points; the tier bonus
    is always applied. Reasons follow evaluation order:
    category -> MOQ -> lead time -> certifications -> tier -> capabilities.

    Args:
        candidate: Normalized OEM candidate
        criteria: Current buyer criteria

    Returns:
        LocalScore with value in [0, 100]
    """
    score = 0
    reasons = []

    if criteria.categories:
        wanted = {c.lower() for c in criteria.categories}
        if any(p.category.lower() in wanted for p in candidate.products if p.category):
            score += CATEGORY_WEIGHT
            reasons.append(REASON_CATEGORY)

    if criteria.moq_range is not None:
        moqs = [p.moq for p in candidate.products]
        if any(_in_range(moq, criteria.moq_range) for moq in moqs):
            score += MOQ_WEIGHT
            reasons.append(REASON_MOQ)

    if criteria.lead_time_range is not None:
        lead_times = [p.lead_time_days for p in candidate.products]
        if any(_in_range(days, criteria.lead_time_range) for days in lead_times):
            score += LEAD_TIME_WEIGHT
            reasons.append(REASON_LEAD_TIME)

    if criteria.certifications and matches_certifications_any(candidate, criteria.certifications):
        score += CERTIFICATION_WEIGHT
        reasons.append(REASON_CERTIFICATIONS)

    bonus = TIER_BONUS.get(candidate.tier, 0)
    if bonus:
        score += bonus
        reasons.append(f"{TIER_LABELS[candidate.tier]} tier")

    for key, label in CAPABILITY_LABELS.items():
        if key in criteria.capabilities and key in candidate.capabilities:
            score += CAPABILITY_BONUS
            reasons.append(label)

    return LocalScore(value=min(score, MAX_MATCH_SCORE), reasons=tuple(reasons))


# ============================================================================
# Results View: MOQ / Lead Time / Location
# ============================================================================

def score_by_moq_lead_location(candidate: Candidate, criteria: Criteria) -> LocalScore:
    """Score a candidate for the results view.

    Score = round(100 * earned / achievable), where achievable only counts
    the criteria present in ``criteria``. Missing candidate data earns 0.
    """
    earned = 0.0
    achievable = 0
    reasons = []

    if criteria.moq_range is not None:
        achievable += RESULTS_MOQ_WEIGHT
        low, high = criteria.moq_range
        moq = candidate.display_moq
        if moq is not None:
            upper = candidate.profile_moq_max if candidate.profile_moq_max is not None else math.inf
            if moq <= high and upper >= low:
                earned += RESULTS_MOQ_WEIGHT
                reasons.append(REASON_MOQ_OVERLAP)
            elif moq <= MOQ_PARTIAL_FACTOR * high:
                earned += RESULTS_MOQ_WEIGHT * PARTIAL_CREDIT
                reasons.append(REASON_MOQ_PARTIAL)

    if criteria.lead_time_range is not None:
        achievable += RESULTS_LEAD_TIME_WEIGHT
        lead_time = candidate.display_lead_time
        if lead_time is not None:
            if _in_range(lead_time, criteria.lead_time_range):
                earned += RESULTS_LEAD_TIME_WEIGHT
                reasons.append(REASON_LEAD_TIME_FIT)
            elif lead_time <= LEAD_TIME_PARTIAL_FACTOR * criteria.lead_time_range[1]:
                earned += RESULTS_LEAD_TIME_WEIGHT * PARTIAL_CREDIT
                reasons.append(REASON_LEAD_TIME_PARTIAL)

    if criteria.locations:
        achievable += RESULTS_LOCATION_WEIGHT
        if candidate.location and matches_locations(candidate, criteria.locations):
            earned += RESULTS_LOCATION_WEIGHT
            reasons.append(REASON_LOCATION)

    if achievable == 0:
        return LocalScore(value=0, reasons=())

    value = _round_half_up(100 * earned / achievable)
    return LocalScore(value=min(value, MAX_MATCH_SCORE), reasons=tuple(reasons))


SCORING_STRATEGIES: Dict[str, Scorer] = {
    "capability_weights": score_by_capability_weights,
    "moq_lead_location": score_by_moq_lead_location,
}


def get_scorer(name: str) -> Scorer:
    try:
        return SCORING_STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown scoring strategy: {name!r} (expected one of {sorted(SCORING_STRATEGIES)})"
        ) from None


def resolve_score(
    candidate: Candidate,
    criteria: Criteria,
    scorer: Scorer = score_by_capability_weights,
    override: Optional[ExternalScore] = None,
) -> Score:
    """Return the external override untouched, or compute a local score."""
    if override is not None:
        return override
    return scorer(candidate, criteria)


# ============================================================================
# Request Matching
# ============================================================================

def score_for_request(candidate: Candidate, request: RequestCriteria) -> LocalScore:
    """Score an OEM against a quote or prototype request.

    Unlike the view scorers, mismatches also leave a reason behind so the
    request owner can see why an OEM ranked low.
    """
    score = 0
    reasons = []

    if candidate.industry.lower() == request.industry.lower():
        score += REQUEST_INDUSTRY_WEIGHT
        reasons.append(f"Industry expertise in {request.industry}")
    else:
        reasons.append(
            f"Industry mismatch: OEM specializes in {candidate.industry or 'unknown'}, not {request.industry}"
        )
        logging.warning(
            f"Request scoring for OEM {candidate.organization_id} with non-matching industry "
            f"'{candidate.industry}' (requested '{request.industry}')"
        )

    if request.moq_min is not None and request.moq_max is not None:
        oem_min = candidate.profile_moq or 0
        oem_max = candidate.profile_moq_max
        if oem_max is not None and request.moq_max >= oem_min and request.moq_min <= oem_max:
            score += REQUEST_MOQ_OVERLAP_WEIGHT
            reasons.append(f"MOQ range compatible ({oem_min:,}-{oem_max:,} units)")
        elif oem_max is None and request.moq_min >= oem_min:
            score += REQUEST_MOQ_OPEN_ENDED_WEIGHT
            reasons.append(f"Can handle quantities starting from {request.moq_min:,} units")
        elif request.moq_max < oem_min:
            reasons.append(f"Order size too small (max {request.moq_max:,}) for their minimum ({oem_min:,})")
        elif oem_max is not None and request.moq_min > oem_max:
            reasons.append(f"Order size too large (min {request.moq_min:,}) for their capacity (max {oem_max:,})")

    if request.location and candidate.location:
        wanted = request.location.lower()
        location = candidate.location.lower()
        if wanted in location or location in wanted:
            score += REQUEST_LOCATION_WEIGHT
            reasons.append(f"Located in {candidate.location}")
        elif DOMESTIC_COUNTRY in wanted and DOMESTIC_COUNTRY in location:
            score += REQUEST_DOMESTIC_WEIGHT
            reasons.append(f"Domestic manufacturer in {DOMESTIC_COUNTRY.title()}")

    if candidate.scale:
        score += REQUEST_SCALE_WEIGHT
        reasons.append(f"{candidate.scale.title()}-scale manufacturer with proven capacity")

    if request.cross_border and candidate.cross_border:
        score += REQUEST_CROSS_BORDER_WEIGHT
        reasons.append("Supports international shipping")

    if request.prototype_needed and candidate.prototype_support:
        score += REQUEST_PROTOTYPE_WEIGHT
        reasons.append("Offers prototype development services")

    rating = candidate.rating
    if rating is not None and rating >= HIGH_RATING_THRESHOLD:
        score += REQUEST_HIGH_RATING_WEIGHT
        reasons.append(f"Highly rated ({rating} from {candidate.review_count} reviews)")
    elif rating is not None and rating >= GOOD_RATING_THRESHOLD:
        score += REQUEST_GOOD_RATING_WEIGHT
        reasons.append(f"Good ratings ({rating})")

    return LocalScore(value=min(score, MAX_MATCH_SCORE), reasons=tuple(reasons))


def find_request_matches(
    candidates: List[Candidate],
    request: RequestCriteria,
    limit: int = DEFAULT_REQUEST_MATCH_LIMIT,
) -> List[Tuple[Candidate, LocalScore]]:
    """Score OEMs in the requested industry, best first.

    Example:
        request = RequestCriteria(industry="Cosmetics", moq_min=500, moq_max=2000)
        for candidate, score in find_request_matches(candidates, request, limit=10):
            print(f"{candidate.name}: {score.value}")
    """
    industry = request.industry.lower()
    pool = [c for c in candidates if c.industry.lower() == industry]
    logging.info(f"Request matching: {len(pool)}/{len(candidates)} OEMs in industry '{request.industry}'")

    scored = [(c, score_for_request(c, request)) for c in pool]
    scored.sort(key=lambda pair: pair[1].value, reverse=True)
    return scored[:limit]
