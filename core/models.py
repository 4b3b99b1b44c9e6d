"""
Shared data models for the OEM matching engine.

This module contains the core data classes used throughout filtering,
scoring and ranking. Candidates are built by ``core.data_io`` from raw
store records; everything downstream works on these strict types.
"""

import math
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple, Union

from .constants import TIER_FREE, TIER_RANK


@dataclass
class Product:
    """One catalog entry of a manufacturer."""
    name: str = ""
    category: str = ""
    moq: Optional[int] = None
    lead_time_days: Optional[int] = None
    price_min: Optional[float] = None


@dataclass
class Candidate:
    """Manufacturer record being filtered and scored.

    Profile-level numbers (``profile_moq`` etc.) come from the OEM profile
    row; product-level numbers come from the catalog. Either may be absent.
    """
    organization_id: str
    name: str
    slug: str = ""
    location: str = ""
    description: str = ""
    industry: str = ""
    tier: str = TIER_FREE
    products: List[Product] = field(default_factory=list)
    certifications: List[str] = field(default_factory=list)
    capabilities: Set[str] = field(default_factory=set)
    services: List[str] = field(default_factory=list)
    profile_moq: Optional[int] = None
    profile_moq_max: Optional[int] = None
    profile_lead_time_days: Optional[int] = None
    rating: Optional[float] = None
    review_count: int = 0
    scale: Optional[str] = None
    cross_border: bool = False
    prototype_support: bool = False

    @property
    def categories(self) -> List[str]:
        """Distinct product categories in catalog order."""
        seen = []
        for product in self.products:
            if product.category and product.category not in seen:
                seen.append(product.category)
        return seen

    @property
    def min_product_moq(self) -> Optional[int]:
        moqs = [p.moq for p in self.products if p.moq is not None]
        return min(moqs) if moqs else None

    @property
    def max_product_lead_time(self) -> Optional[int]:
        lead_times = [p.lead_time_days for p in self.products if p.lead_time_days is not None]
        return max(lead_times) if lead_times else None

    @property
    def display_moq(self) -> Optional[int]:
        """MOQ shown on cards: explicit profile MOQ wins over the catalog minimum."""
        if self.profile_moq is not None:
            return self.profile_moq
        return self.min_product_moq

    @property
    def display_lead_time(self) -> Optional[int]:
        if self.profile_lead_time_days is not None:
            return self.profile_lead_time_days
        return self.max_product_lead_time

    @property
    def tier_rank(self) -> int:
        return TIER_RANK.get(self.tier, TIER_RANK[TIER_FREE])


def _frozen(values: Optional[Iterable[str]]) -> FrozenSet[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset([values]) if values else frozenset()
    return frozenset(v for v in values if v)


def _bounds(value) -> Optional[Tuple[int, Union[int, float]]]:
    # A missing bound is open: 0 below, math.inf above.
    if value is None:
        return None
    low, high = value
    if low is None and high is None:
        return None
    high = math.inf if high is None or high == math.inf else int(high)
    return (0 if low is None else int(low), high)


@dataclass(frozen=True)
class Criteria:
    """Buyer's current filter/preference state.

    Collections are coerced to frozensets so a Criteria can be shared
    between calls. A ``None`` range means the buyer set no constraint; a
    ``None`` bound inside a range is open (0 below, ``math.inf`` above).
    """
    search: str = ""
    tiers: FrozenSet[str] = frozenset()
    categories: FrozenSet[str] = frozenset()
    certifications: FrozenSet[str] = frozenset()
    locations: FrozenSet[str] = frozenset()
    capabilities: FrozenSet[str] = frozenset()
    tags: FrozenSet[str] = frozenset()
    moq_range: Optional[Tuple[int, int]] = None
    lead_time_range: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        for name in ("tiers", "categories", "certifications", "locations", "capabilities", "tags"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))
        object.__setattr__(self, "search", (self.search or "").strip())
        for name in ("moq_range", "lead_time_range"):
            object.__setattr__(self, name, _bounds(getattr(self, name)))

    def is_empty(self) -> bool:
        """True when no constraint is active."""
        return not (
            self.search
            or self.tiers
            or self.categories
            or self.certifications
            or self.locations
            or self.capabilities
            or self.tags
            or self.moq_range is not None
            or self.lead_time_range is not None
        )


@dataclass(frozen=True)
class RequestCriteria:
    """Requirements attached to a quote or prototype request."""
    industry: str
    moq_min: Optional[int] = None
    moq_max: Optional[int] = None
    location: Optional[str] = None
    cross_border: bool = False
    prototype_needed: bool = False
    certifications: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LocalScore:
    """Score computed by one of the local scoring strategies."""
    value: int
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExternalScore:
    """Score and rank supplied by the LLM ranker; replaces local scoring."""
    rank: int
    score: int
    reasons: Tuple[str, ...] = ()


Score = Union[LocalScore, ExternalScore]


@dataclass
class ScoredResult:
    """A candidate with its score, reasons and highlight tags."""
    candidate: Candidate
    score: Score
    tags: List[str] = field(default_factory=list)

    @property
    def match_score(self) -> int:
        if isinstance(self.score, ExternalScore):
            return self.score.score
        return self.score.value

    @property
    def match_reasons(self) -> List[str]:
        return list(self.score.reasons)

    @property
    def ai_rank(self) -> Optional[int]:
        if isinstance(self.score, ExternalScore):
            return self.score.rank
        return None
