"""
Shared data I/O utilities for the OEM matching engine.

Records from the external store arrive loosely typed: the same OEM can be a
snake_case ``oem_profiles`` row with nested joins, or a camelCase card payload.
This module maps either shape onto the strict ``Candidate`` type, defaulting
absent or malformed fields so the engine never sees raw records.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import CAPABILITY_COLUMNS, CAPABILITY_LABELS, SUBSCRIPTION_TIERS, TIER_FREE
from .models import Candidate, Product


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-None value among ``keys``."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return int(number)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "yes", "y", "1")
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_list(value: Any, field_name: str, record_id: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    logging.warning(
        f"Malformed '{field_name}' for OEM {record_id}: expected a list, "
        f"got {type(value).__name__}; using empty list"
    )
    return []


def _name_of(entry: Any, *nested_keys: str) -> str:
    """Extract a name from a plain string or a (possibly nested) join row."""
    if isinstance(entry, str):
        return entry.strip()
    if not isinstance(entry, dict):
        return ""
    for key in nested_keys:
        nested = entry.get(key)
        if isinstance(nested, dict) and nested.get("name"):
            return _to_str(nested["name"])
    return _to_str(_first(entry, "name", "certification_type"))


def normalize_tier(value: Any) -> str:
    """Map any tier spelling onto one of SUBSCRIPTION_TIERS, defaulting to FREE."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("tier")
    tier = _to_str(value).upper().replace(" ", "_")
    if tier in SUBSCRIPTION_TIERS:
        return tier
    if tier:
        logging.warning(f"Unknown subscription tier '{value}', treating as {TIER_FREE}")
    return TIER_FREE


def normalize_product(raw: Any) -> Optional[Product]:
    """Build a Product from a store row; returns None for non-dict entries."""
    if not isinstance(raw, dict):
        return None
    return Product(
        name=_to_str(raw.get("name")),
        category=_to_str(raw.get("category")),
        moq=_to_int(raw.get("moq")),
        lead_time_days=_to_int(_first(raw, "lead_time_days", "leadTimeDays", "lead_time", "leadTime")),
        price_min=_to_float(_first(raw, "price_range_min", "price_min", "priceMin")),
    )


def _normalize_capabilities(raw: Dict[str, Any], record_id: str) -> set:
    capabilities = set()

    source = raw.get("oem_capabilities")
    if isinstance(source, list):
        source = source[0] if source else None
    if isinstance(source, dict):
        for column, key in CAPABILITY_COLUMNS.items():
            if _to_bool(source.get(column)):
                capabilities.add(key)

    for column, key in CAPABILITY_COLUMNS.items():
        if _to_bool(raw.get(column)):
            capabilities.add(key)

    listed = raw.get("capabilities")
    if listed is not None:
        labels_to_keys = {label.lower(): key for key, label in CAPABILITY_LABELS.items()}
        for item in _as_list(listed, "capabilities", record_id):
            text = _to_str(item)
            if text in CAPABILITY_LABELS:
                capabilities.add(text)
            elif text.lower() in labels_to_keys:
                capabilities.add(labels_to_keys[text.lower()])

    return capabilities


def normalize_candidate(raw: Dict[str, Any]) -> Candidate:
    """Normalize one external OEM record into a Candidate.

    Accepts both the snake_case store rows (with nested ``organizations``,
    ``products``, ``oem_certifications``, ``oem_services``,
    ``oem_capabilities`` and ``subscriptions``) and the camelCase card
    payload. Missing numbers become None, malformed lists become empty.

    Args:
        raw: Decoded JSON object for a single OEM

    Returns:
        Candidate with every field defaulted per the no-data rules

    Example:
        candidate = normalize_candidate({"organization_id": "o1", "company_name": "Acme"})
        assert candidate.products == []
    """
    org = raw.get("organizations")
    if isinstance(org, list):
        org = org[0] if org else None
    if not isinstance(org, dict):
        org = {}

    organization_id = _to_str(_first(
        raw, "organization_id", "organizationId", "oem_org_id", "id", "oemId",
    ) or org.get("id"))
    record_id = organization_id or "<unknown>"

    name = _to_str(_first(raw, "company_name", "companyName", "name", "display_name")
                   or org.get("display_name"))

    products = []
    for item in _as_list(raw.get("products"), "products", record_id):
        product = normalize_product(item)
        if product is not None:
            products.append(product)

    certifications = []
    for entry in _as_list(_first(raw, "certifications", "oem_certifications"), "certifications", record_id):
        cert_name = _name_of(entry, "certifications")
        if cert_name and cert_name not in certifications:
            certifications.append(cert_name)

    services = []
    for entry in _as_list(_first(raw, "services", "oem_services"), "services", record_id):
        service_name = _name_of(entry, "services")
        if service_name and service_name not in services:
            services.append(service_name)

    rating = _to_float(raw.get("rating"))
    if rating is not None:
        rating = min(max(rating, 0.0), 5.0)

    scale = _to_str(raw.get("scale")).lower() or None

    return Candidate(
        organization_id=organization_id,
        name=name,
        slug=_to_str(raw.get("slug") or org.get("slug")),
        location=_to_str(raw.get("location") or org.get("location")),
        description=_to_str(raw.get("description") or org.get("description")),
        industry=_to_str(raw.get("industry") or org.get("industry")),
        tier=normalize_tier(_first(raw, "tier", "subscription_tier", "subscriptions")),
        products=products,
        certifications=certifications,
        capabilities=_normalize_capabilities(raw, record_id),
        services=services,
        profile_moq=_to_int(_first(raw, "moq", "moq_min", "moqMin", "moq_minimum")),
        profile_moq_max=_to_int(_first(raw, "moq_max", "moqMax")),
        profile_lead_time_days=_to_int(_first(raw, "lead_time_days", "leadTimeDays", "lead_time", "leadTime")),
        rating=rating,
        review_count=_to_int(_first(raw, "review_count", "reviewCount", "total_reviews", "totalReviews")) or 0,
        scale=scale,
        cross_border=_to_bool(_first(raw, "cross_border", "crossBorder")),
        prototype_support=_to_bool(_first(raw, "prototype_support", "prototypeSupport")),
    )


def normalize_candidates(records: List[Any]) -> List[Candidate]:
    """Normalize a list of raw records, skipping entries that are not objects."""
    candidates = []
    for i, raw in enumerate(records):
        if not isinstance(raw, dict):
            logging.warning(f"Skipping OEM record #{i}: expected an object, got {type(raw).__name__}")
            continue
        candidates.append(normalize_candidate(raw))
    return candidates


def extract_records(data: Any) -> List[Any]:
    """Pull the OEM list out of a decoded JSON payload.

    Accepts a bare list, or an API envelope with a ``data``, ``oems`` or
    ``matches`` list.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("data", "oems", "matches"):
            if isinstance(data.get(key), list):
                return data[key]
    raise ValueError("Invalid JSON format. Expected a list or an object with 'data', 'oems' or 'matches'.")


def load_candidates_from_json(json_path: Path) -> List[Candidate]:
    """Load and normalize candidates from a JSON file.

    Args:
        json_path: Path to a JSON export of OEM records

    Returns:
        List of Candidate objects

    Example:
        candidates = load_candidates_from_json(Path("data/oems.json"))
        for c in candidates:
            print(f"{c.name}: {c.location}")
    """
    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return normalize_candidates(extract_records(data))


def candidate_to_dict(candidate: Candidate) -> Dict[str, Any]:
    """Convert a Candidate into a JSON-friendly dict (camelCase, like the cards)."""
    return {
        "organizationId": candidate.organization_id,
        "name": candidate.name,
        "slug": candidate.slug,
        "industry": candidate.industry,
        "location": candidate.location,
        "description": candidate.description,
        "tier": candidate.tier,
        "scale": candidate.scale,
        "categories": candidate.categories,
        "moq": candidate.display_moq,
        "moqMax": candidate.profile_moq_max,
        "leadTimeDays": candidate.display_lead_time,
        "certifications": list(candidate.certifications),
        "capabilities": [CAPABILITY_LABELS[k] for k in CAPABILITY_LABELS if k in candidate.capabilities],
        "services": list(candidate.services),
        "crossBorder": candidate.cross_border,
        "prototypeSupport": candidate.prototype_support,
        "rating": candidate.rating,
        "reviewCount": candidate.review_count,
        "products": [
            {
                "name": p.name,
                "category": p.category,
                "moq": p.moq,
                "leadTimeDays": p.lead_time_days,
                "priceMin": p.price_min,
            }
            for p in candidate.products
        ],
    }
