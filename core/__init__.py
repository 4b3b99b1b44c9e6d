"""
Core shared utilities for the OEM matching engine.

This package provides the shared data models, constants, and I/O utilities
used across the filtering, scoring and ranking modules.

Usage:
    from core import Candidate, Criteria, LocalScore, ExternalScore
    from core import load_candidates_from_json, normalize_candidate
    from core import TIER_RANK, CAPABILITY_LABELS
"""

from .models import (
    Product,
    Candidate,
    Criteria,
    RequestCriteria,
    LocalScore,
    ExternalScore,
    Score,
    ScoredResult,
)
from .data_io import (
    normalize_candidate,
    normalize_candidates,
    normalize_product,
    normalize_tier,
    extract_records,
    load_candidates_from_json,
    candidate_to_dict,
)
from .constants import (
    SUBSCRIPTION_TIERS,
    TIER_RANK,
    TIER_BONUS,
    TIER_LABELS,
    CAPABILITY_LABELS,
    CERT_POLICY_ANY,
    CERT_POLICY_ALL,
    SORT_MODES,
    MAX_MATCH_SCORE,
)

__all__ = [
    # Models
    "Product",
    "Candidate",
    "Criteria",
    "RequestCriteria",
    "LocalScore",
    "ExternalScore",
    "Score",
    "ScoredResult",
    # Data I/O
    "normalize_candidate",
    "normalize_candidates",
    "normalize_product",
    "normalize_tier",
    "extract_records",
    "load_candidates_from_json",
    "candidate_to_dict",
    # Constants
    "SUBSCRIPTION_TIERS",
    "TIER_RANK",
    "TIER_BONUS",
    "TIER_LABELS",
    "CAPABILITY_LABELS",
    "CERT_POLICY_ANY",
    "CERT_POLICY_ALL",
    "SORT_MODES",
    "MAX_MATCH_SCORE",
]
