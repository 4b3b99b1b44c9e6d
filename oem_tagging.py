"""
OEM Tagging Module - Highlight tags for manufacturer cards.

Tags come from the OEM's declared service list when it has one. Otherwise
they are synthesized from profile attributes with fixed thresholds:

1. Low MOQ Friendly: display MOQ <= 100
2. Fast Delivery: lead time <= 14 days
3. Eco Packaging: a certification name contains an eco keyword
4. Top Rated: rating >= 4.5
5. High Capacity: scale is large

Checks are independent; the order above is the tag order.
"""

from typing import List

from core.constants import (
    ECO_KEYWORDS,
    FAST_DELIVERY_DAYS,
    HIGH_CAPACITY_SCALE,
    LOW_MOQ_THRESHOLD,
    TAG_ECO_PACKAGING,
    TAG_FAST_DELIVERY,
    TAG_HIGH_CAPACITY,
    TAG_LOW_MOQ,
    TAG_TOP_RATED,
    TOP_RATED_THRESHOLD,
)
from core.models import Candidate


def has_eco_certification(candidate: Candidate) -> bool:
    """Check whether any certification name contains an eco keyword."""
    for cert in candidate.certifications:
        lowered = cert.lower()
        if any(keyword in lowered for keyword in ECO_KEYWORDS):
            return True
    return False


def synthesize_tags(candidate: Candidate) -> List[str]:
    """Derive highlight tags from candidate attributes.

    Missing numbers never fire a tag.
    """
    tags = []

    moq = candidate.display_moq
    if moq is not None and moq <= LOW_MOQ_THRESHOLD:
        tags.append(TAG_LOW_MOQ)

    lead_time = candidate.display_lead_time
    if lead_time is not None and lead_time <= FAST_DELIVERY_DAYS:
        tags.append(TAG_FAST_DELIVERY)

    if has_eco_certification(candidate):
        tags.append(TAG_ECO_PACKAGING)

    if candidate.rating is not None and candidate.rating >= TOP_RATED_THRESHOLD:
        tags.append(TAG_TOP_RATED)

    if (candidate.scale or "").lower() == HIGH_CAPACITY_SCALE:
        tags.append(TAG_HIGH_CAPACITY)

    return tags


def candidate_tags(candidate: Candidate) -> List[str]:
    """Declared services if the OEM lists any, else synthesized tags."""
    if candidate.services:
        return list(candidate.services)
    return synthesize_tags(candidate)
