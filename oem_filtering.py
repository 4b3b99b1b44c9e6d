"""
OEM Filter Engine - Hard constraints over manufacturer candidates.

Each predicate answers one question about one candidate and passes
vacuously when the buyer left that constraint empty. ``candidate_passes``
combines them with logical AND.

Certification matching comes in two named policies:
- "any" (matches_certifications_any): holds at least one required cert.
  Used by the results/browse view.
- "all" (matches_certifications_all): holds every required cert.
  Used as the gate of the listing view.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from core.constants import CERT_POLICY_ALL, CERT_POLICY_ANY
from core.models import Candidate, Criteria
from oem_tagging import candidate_tags


def _in_range(value: Optional[int], bounds: Tuple[int, int]) -> bool:
    if value is None:
        return False
    low, high = bounds
    return low <= value <= high


def _normalized(values: Iterable[str]) -> set:
    return {v.strip().lower() for v in values if v and v.strip()}


# ============================================================================
# Predicates
# ============================================================================

def matches_search(candidate: Candidate, search: str) -> bool:
    """Case-insensitive substring match on name, description or any product category."""
    needle = (search or "").strip().lower()
    if not needle:
        return True
    haystacks = [candidate.name, candidate.description] + [p.category for p in candidate.products]
    return any(needle in (text or "").lower() for text in haystacks)


def matches_tiers(candidate: Candidate, tiers: Iterable[str]) -> bool:
    allowed = set(tiers)
    if not allowed:
        return True
    return candidate.tier in allowed


def matches_categories(candidate: Candidate, categories: Iterable[str]) -> bool:
    allowed = _normalized(categories)
    if not allowed:
        return True
    return any(p.category.lower() in allowed for p in candidate.products if p.category)


def matches_certifications_any(candidate: Candidate, required: Iterable[str]) -> bool:
    """Policy A: at least one required certification is held."""
    wanted = _normalized(required)
    if not wanted:
        return True
    return bool(wanted & _normalized(candidate.certifications))


def matches_certifications_all(candidate: Candidate, required: Iterable[str]) -> bool:
    """Policy B: every required certification is held."""
    wanted = _normalized(required)
    if not wanted:
        return True
    return wanted <= _normalized(candidate.certifications)


def matches_moq_range(candidate: Candidate, moq_range: Optional[Tuple[int, int]]) -> bool:
    """Profile MOQ and product MOQs are alternative evidence (OR).

    A candidate with no MOQ data at all passes; absence of data is not a
    disqualifying signal.
    """
    if moq_range is None:
        return True
    product_moqs = [p.moq for p in candidate.products if p.moq is not None]
    if candidate.profile_moq is None and not product_moqs:
        return True
    if _in_range(candidate.profile_moq, moq_range):
        return True
    return any(_in_range(moq, moq_range) for moq in product_moqs)


def matches_lead_time_range(candidate: Candidate, lead_time_range: Optional[Tuple[int, int]]) -> bool:
    if lead_time_range is None:
        return True
    lead_times = [p.lead_time_days for p in candidate.products if p.lead_time_days is not None]
    if not lead_times:
        return True
    return any(_in_range(days, lead_time_range) for days in lead_times)


def matches_locations(candidate: Candidate, locations: Iterable[str]) -> bool:
    allowed = _normalized(locations)
    if not allowed:
        return True
    location = (candidate.location or "").lower()
    return any(loc in location for loc in allowed)


def matches_capabilities(candidate: Candidate, capabilities: Iterable[str]) -> bool:
    """Every requested capability must be held; unrequested ones impose nothing."""
    return set(capabilities) <= candidate.capabilities


def matches_tags(candidate: Candidate, tags: Iterable[str]) -> bool:
    wanted = _normalized(tags)
    if not wanted:
        return True
    return bool(wanted & _normalized(candidate_tags(candidate)))


CERTIFICATION_POLICIES: Dict[str, Callable[[Candidate, Iterable[str]], bool]] = {
    CERT_POLICY_ANY: matches_certifications_any,
    CERT_POLICY_ALL: matches_certifications_all,
}


def get_certification_policy(name: str) -> Callable[[Candidate, Iterable[str]], bool]:
    try:
        return CERTIFICATION_POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown certification policy: {name!r} (expected one of {sorted(CERTIFICATION_POLICIES)})"
        ) from None


# ============================================================================
# Composition
# ============================================================================

def candidate_passes(
    candidate: Candidate,
    criteria: Criteria,
    certification_policy: str = CERT_POLICY_ANY,
) -> bool:
    """Check one candidate against every active constraint."""
    certs_match = get_certification_policy(certification_policy)
    return (
        matches_search(candidate, criteria.search)
        and matches_tiers(candidate, criteria.tiers)
        and matches_categories(candidate, criteria.categories)
        and certs_match(candidate, criteria.certifications)
        and matches_moq_range(candidate, criteria.moq_range)
        and matches_lead_time_range(candidate, criteria.lead_time_range)
        and matches_locations(candidate, criteria.locations)
        and matches_capabilities(candidate, criteria.capabilities)
        and matches_tags(candidate, criteria.tags)
    )


def filter_candidates(
    candidates: List[Candidate],
    criteria: Criteria,
    certification_policy: str = CERT_POLICY_ANY,
) -> List[Candidate]:
    """Return the candidates satisfying every active constraint, in input order."""
    get_certification_policy(certification_policy)
    return [c for c in candidates if candidate_passes(c, criteria, certification_policy)]
