#!/usr/bin/env python3
"""
Data Normalization Test Suite

Tests for mapping loosely typed store records onto Candidate:
1. snake_case rows with nested joins
2. camelCase card payloads
3. Defaults for missing and malformed fields
4. JSON loading envelopes
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.data_io import (
    candidate_to_dict,
    extract_records,
    load_candidates_from_json,
    normalize_candidate,
    normalize_candidates,
    normalize_tier,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store_row():
    """An oem_profiles row with its joins, as returned by the store."""
    return {
        "organization_id": "org_100",
        "scale": "Large",
        "moq_min": 500,
        "moq_max": 20000,
        "lead_time_days": 25,
        "cross_border": True,
        "prototype_support": False,
        "rating": 4.6,
        "total_reviews": 12,
        "organizations": {
            "id": "org_100",
            "display_name": "Siam Beauty Lab",
            "slug": "siam-beauty-lab",
            "industry": "Cosmetics",
            "location": "Bangkok, Thailand",
        },
        "oem_services": [{"services": {"name": "Private Label"}}, {"services": {"name": "Formulation"}}],
        "oem_certifications": [{"certifications": {"name": "GMP"}, "verification_tier": "verified"}],
        "oem_capabilities": [{"has_rd_support": True, "has_white_label": True, "has_export_support": False}],
        "subscriptions": [{"tier": "verified_partner"}],
        "products": [
            {"name": "Serum", "category": "Skincare", "moq": 500, "lead_time_days": 21, "price_range_min": 35.5},
        ],
    }


@pytest.fixture
def card_payload():
    """A camelCase card as produced by the listing API."""
    return {
        "organizationId": "org_200",
        "companyName": "Chiang Mai Naturals",
        "slug": "chiang-mai-naturals",
        "location": "Chiang Mai, Thailand",
        "tier": "INSIGHTS",
        "moqMin": 100,
        "leadTime": 14,
        "certifications": ["Organic", "Halal"],
        "hasRnD": True,
        "canExport": True,
        "reviewCount": 3,
    }


# =============================================================================
# Unit Tests: Record Shapes
# =============================================================================


class TestNormalizeCandidate:

    def test_store_row(self, store_row):
        c = normalize_candidate(store_row)
        assert c.organization_id == "org_100"
        assert c.name == "Siam Beauty Lab"
        assert c.slug == "siam-beauty-lab"
        assert c.industry == "Cosmetics"
        assert c.location == "Bangkok, Thailand"
        assert c.tier == "VERIFIED_PARTNER"
        assert c.scale == "large"
        assert c.profile_moq == 500
        assert c.profile_moq_max == 20000
        assert c.profile_lead_time_days == 25
        assert c.review_count == 12
        assert c.certifications == ["GMP"]
        assert c.services == ["Private Label", "Formulation"]
        assert c.capabilities == {"rd_support", "white_label"}
        assert c.products[0].price_min == 35.5
        assert c.cross_border is True

    def test_card_payload(self, card_payload):
        c = normalize_candidate(card_payload)
        assert c.organization_id == "org_200"
        assert c.name == "Chiang Mai Naturals"
        assert c.tier == "INSIGHTS"
        assert c.profile_moq == 100
        assert c.profile_lead_time_days == 14
        assert c.capabilities == {"rd_support", "export_support"}
        assert c.products == []

    def test_capability_labels_accepted(self):
        c = normalize_candidate({"id": "o", "name": "x", "capabilities": ["R&D Support", "white_label", "Teleport"]})
        assert c.capabilities == {"rd_support", "white_label"}


class TestMalformedFields:

    def test_non_list_collections_become_empty(self):
        c = normalize_candidate({
            "organization_id": "o",
            "name": "Broken",
            "certifications": "GMP",
            "products": {"moq": 5},
            "services": 42,
        })
        assert c.certifications == []
        assert c.products == []
        assert c.services == []

    def test_bad_numbers_become_none(self):
        c = normalize_candidate({
            "organization_id": "o",
            "name": "Numbers",
            "moq": "lots",
            "moq_max": -5,
            "lead_time_days": True,
            "rating": "n/a",
        })
        assert c.profile_moq is None
        assert c.profile_moq_max is None
        assert c.profile_lead_time_days is None
        assert c.rating is None

    def test_numeric_strings_parsed(self):
        c = normalize_candidate({"organization_id": "o", "name": "Strings", "moq": "250", "rating": "4.5"})
        assert c.profile_moq == 250
        assert c.rating == 4.5

    def test_string_booleans_parsed(self):
        c = normalize_candidate({
            "organization_id": "o",
            "name": "Flags",
            "cross_border": "false",
            "prototypeSupport": "TRUE",
            "has_rd_support": "false",
            "oem_capabilities": {"has_white_label": "yes"},
        })
        assert c.cross_border is False
        assert c.prototype_support is True
        assert "rd_support" not in c.capabilities
        assert "white_label" in c.capabilities

    def test_rating_clamped(self):
        assert normalize_candidate({"organization_id": "o", "rating": 7}).rating == 5.0
        assert normalize_candidate({"organization_id": "o", "rating": -1}).rating == 0.0

    def test_non_dict_products_skipped(self):
        c = normalize_candidate({"organization_id": "o", "products": ["Serum", {"category": "Skincare", "moq": 10}]})
        assert len(c.products) == 1
        assert c.products[0].category == "Skincare"

    @pytest.mark.parametrize("raw,expected", [
        ("VERIFIED_PARTNER", "VERIFIED_PARTNER"),
        ("verified partner", "VERIFIED_PARTNER"),
        ({"tier": "insights"}, "INSIGHTS"),
        ([], "FREE"),
        (None, "FREE"),
        ("PLATINUM", "FREE"),
    ])
    def test_normalize_tier(self, raw, expected):
        assert normalize_tier(raw) == expected

    def test_non_dict_records_skipped(self):
        candidates = normalize_candidates([{"organization_id": "o1"}, "junk", None, {"organization_id": "o2"}])
        assert [c.organization_id for c in candidates] == ["o1", "o2"]


# =============================================================================
# Unit Tests: JSON I/O
# =============================================================================


class TestJsonLoading:

    @pytest.mark.parametrize("key", ["data", "oems", "matches"])
    def test_envelopes(self, key):
        assert extract_records({key: [{"organization_id": "o"}]}) == [{"organization_id": "o"}]

    def test_invalid_envelope_raises(self):
        with pytest.raises(ValueError):
            extract_records({"items": []})

    def test_load_from_file(self, tmp_path, store_row, card_payload):
        path = tmp_path / "oems.json"
        path.write_text(json.dumps({"data": [store_row, card_payload]}), encoding="utf-8")
        candidates = load_candidates_from_json(path)
        assert [c.organization_id for c in candidates] == ["org_100", "org_200"]

    def test_candidate_to_dict(self, store_row):
        data = candidate_to_dict(normalize_candidate(store_row))
        assert data["organizationId"] == "org_100"
        assert data["moq"] == 500
        assert data["leadTimeDays"] == 25
        assert data["capabilities"] == ["R&D Support", "White Label"]
        assert data["products"][0]["leadTimeDays"] == 21
        json.dumps(data)
