"""
Shared constants for the OEM matching engine.

This module contains all tunables used across filtering, scoring, tagging
and ranking, kept in one place so the two scoring views stay comparable.
"""

# ============================================================================
# Subscription Tiers
# ============================================================================

TIER_FREE = "FREE"
TIER_INSIGHTS = "INSIGHTS"
TIER_VERIFIED_PARTNER = "VERIFIED_PARTNER"

SUBSCRIPTION_TIERS = (TIER_FREE, TIER_INSIGHTS, TIER_VERIFIED_PARTNER)

# Ordinal used for the tie-break (higher sorts first)
TIER_RANK = {
    TIER_VERIFIED_PARTNER: 3,
    TIER_INSIGHTS: 2,
    TIER_FREE: 1,
}

# Points added by the listing-view scorer
TIER_BONUS = {
    TIER_VERIFIED_PARTNER: 5,
    TIER_INSIGHTS: 3,
    TIER_FREE: 0,
}

TIER_LABELS = {
    TIER_VERIFIED_PARTNER: "Verified Partner",
    TIER_INSIGHTS: "Insights",
    TIER_FREE: "Free",
}


# ============================================================================
# Capabilities
# ============================================================================

# Capability key -> display label (order is the scoring/reason order)
CAPABILITY_LABELS = {
    "rd_support": "R&D Support",
    "packaging_design": "Packaging Design",
    "formula_library": "Formula Library",
    "white_label": "White Label",
    "export_support": "Export Support",
}

# Store column names (oem_capabilities row) -> capability key
CAPABILITY_COLUMNS = {
    "has_rd_support": "rd_support",
    "has_packaging_design": "packaging_design",
    "has_formula_library": "formula_library",
    "has_white_label": "white_label",
    "has_export_support": "export_support",
    # camelCase filter-state names
    "hasRnD": "rd_support",
    "hasPackaging": "packaging_design",
    "hasFormulaLibrary": "formula_library",
    "hasWhiteLabel": "white_label",
    "canExport": "export_support",
}


# ============================================================================
# Listing View Scoring (capability weights)
# ============================================================================

CATEGORY_WEIGHT = 40
MOQ_WEIGHT = 25
LEAD_TIME_WEIGHT = 15
CERTIFICATION_WEIGHT = 10
CAPABILITY_BONUS = 2

MAX_MATCH_SCORE = 100

REASON_CATEGORY = "Category match"
REASON_MOQ = "MOQ within range"
REASON_LEAD_TIME = "Lead time suitable"
REASON_CERTIFICATIONS = "Has required certifications"


# ============================================================================
# Results View Scoring (MOQ / lead time / location)
# ============================================================================

RESULTS_MOQ_WEIGHT = 40
RESULTS_LEAD_TIME_WEIGHT = 40
RESULTS_LOCATION_WEIGHT = 20

PARTIAL_CREDIT = 0.5
MOQ_PARTIAL_FACTOR = 1.5  # min MOQ within 1.5x of the buyer's upper bound
LEAD_TIME_PARTIAL_FACTOR = 1.2  # lead time within 1.2x of the buyer's upper bound

REASON_MOQ_OVERLAP = "MOQ range overlap"
REASON_MOQ_PARTIAL = "MOQ close to range"
REASON_LEAD_TIME_FIT = "Lead time within range"
REASON_LEAD_TIME_PARTIAL = "Lead time close to range"
REASON_LOCATION = "Location match"


# ============================================================================
# Request Matching (quote / prototype requests)
# ============================================================================

REQUEST_INDUSTRY_WEIGHT = 40
REQUEST_MOQ_OVERLAP_WEIGHT = 25
REQUEST_MOQ_OPEN_ENDED_WEIGHT = 20
REQUEST_LOCATION_WEIGHT = 15
REQUEST_DOMESTIC_WEIGHT = 10
REQUEST_SCALE_WEIGHT = 10
REQUEST_CROSS_BORDER_WEIGHT = 10
REQUEST_PROTOTYPE_WEIGHT = 10
REQUEST_HIGH_RATING_WEIGHT = 10
REQUEST_GOOD_RATING_WEIGHT = 5

HIGH_RATING_THRESHOLD = 4.5
GOOD_RATING_THRESHOLD = 4.0
DOMESTIC_COUNTRY = "thailand"

DEFAULT_REQUEST_MATCH_LIMIT = 20


# ============================================================================
# Tag Synthesis
# ============================================================================

LOW_MOQ_THRESHOLD = 100
FAST_DELIVERY_DAYS = 14
TOP_RATED_THRESHOLD = 4.5
HIGH_CAPACITY_SCALE = "large"

# Substrings of certification names that signal eco packaging
ECO_KEYWORDS = (
    "eco",
    "organic",
    "green",
    "sustainab",
    "recycl",
    "biodegradable",
    "fsc",
)

TAG_LOW_MOQ = "Low MOQ Friendly"
TAG_FAST_DELIVERY = "Fast Delivery"
TAG_ECO_PACKAGING = "Eco Packaging"
TAG_TOP_RATED = "Top Rated"
TAG_HIGH_CAPACITY = "High Capacity"


# ============================================================================
# Filtering / Sorting
# ============================================================================

CERT_POLICY_ANY = "any"
CERT_POLICY_ALL = "all"

SORT_BEST_MATCH = "best-match"
SORT_FASTEST = "fastest"
SORT_LOWEST_MOQ = "lowest-moq"
SORT_RATING = "rating"
SORT_MODES = (SORT_BEST_MATCH, SORT_FASTEST, SORT_LOWEST_MOQ, SORT_RATING)

MISSING_LEAD_TIME_SORT_VALUE = 999

# Defaults offered by the CLI when a range flag is given without a bound
DEFAULT_MOQ_RANGE = (0, 100000)
DEFAULT_LEAD_TIME_RANGE = (0, 90)


# ============================================================================
# LLM Ranking
# ============================================================================

DEFAULT_AI_MODEL = "google/gemini-2.5-flash-lite"
AI_MAX_CANDIDATES = 100  # keeps the prompt within token limits
AI_TOP_K = 5
AI_MAX_REASONS = 3
AI_MIN_QUERY_LENGTH = 5
