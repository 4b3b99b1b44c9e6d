#!/usr/bin/env python3
"""
Candidate Index Test Suite

Tests for loading OEM exports from disk and serving paginated matches.
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.data_loader import CandidateIndex
from api.schemas import MatchListResponse, ScoredOEMResponse
from core.models import Candidate, Criteria, ExternalScore, LocalScore, Product, ScoredResult


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def records():
    return [
        {
            "organization_id": "org_1",
            "company_name": "Siam Beauty Lab",
            "slug": "siam-beauty-lab",
            "location": "Bangkok, Thailand",
            "tier": "VERIFIED_PARTNER",
            "products": [{"name": "Serum", "category": "Skincare", "moq": 500, "lead_time_days": 21}],
            "certifications": ["GMP"],
        },
        {
            "organization_id": "org_2",
            "company_name": "Chonburi Foods",
            "slug": "chonburi-foods",
            "location": "Chonburi, Thailand",
            "tier": "FREE",
            "products": [{"name": "Sauce", "category": "Food", "moq": 2000, "lead_time_days": 40}],
        },
        {
            "organization_id": "org_3",
            "company_name": "Hair Lab",
            "location": "Bangkok, Thailand",
            "tier": "INSIGHTS",
            "products": [{"name": "Shampoo", "category": "Haircare", "moq": 300, "lead_time_days": 14}],
        },
    ]


@pytest.fixture
def data_file(tmp_path, records):
    path = tmp_path / "oems.json"
    path.write_text(json.dumps({"data": records}), encoding="utf-8")
    return path


@pytest.fixture
def data_dir(tmp_path, records):
    directory = tmp_path / "exports"
    directory.mkdir()
    (directory / "a.json").write_text(json.dumps(records[:2]), encoding="utf-8")
    (directory / "b.json").write_text(json.dumps({"oems": records[2:]}), encoding="utf-8")
    (directory / "broken.json").write_text("{oops", encoding="utf-8")
    return directory


@pytest.fixture
def index(data_file):
    idx = CandidateIndex(data_file)
    idx.load()
    return idx


# =============================================================================
# Unit Tests: Loading
# =============================================================================


class TestLoading:

    def test_load_file(self, index):
        assert index.is_loaded
        assert index.total_candidates == 3
        assert [c.organization_id for c in index.candidates] == ["org_1", "org_2", "org_3"]

    def test_load_directory_skips_broken_files(self, data_dir):
        idx = CandidateIndex(data_dir)
        idx.load()
        assert idx.total_candidates == 3

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CandidateIndex(tmp_path / "nope.json").load()

    def test_not_loaded_until_load(self, data_file):
        assert not CandidateIndex(data_file).is_loaded

    def test_reload_picks_up_changes(self, index, data_file, records):
        data_file.write_text(json.dumps(records[:1]), encoding="utf-8")
        index.reload()
        assert index.total_candidates == 1


class TestLookups:

    def test_get_by_id_or_slug(self, index):
        assert index.get("org_2").name == "Chonburi Foods"
        assert index.get("siam-beauty-lab").organization_id == "org_1"
        assert index.get("unknown") is None

    def test_available_values(self, index):
        assert index.available_categories() == ["Food", "Haircare", "Skincare"]
        assert index.available_locations() == ["Bangkok, Thailand", "Chonburi, Thailand"]

    def test_stats(self, index):
        stats = index.stats()
        assert stats.candidates_loaded == 3
        assert stats.status == "healthy"


# =============================================================================
# Integration Tests: Matching
# =============================================================================


class TestListMatches:

    def test_paginates(self, index):
        page_1 = index.list_matches(Criteria(), page=1, page_size=2)
        page_2 = index.list_matches(Criteria(), page=2, page_size=2)
        assert isinstance(page_1, MatchListResponse)
        assert page_1.total == 3
        assert len(page_1.results) == 2
        assert len(page_2.results) == 1

    @pytest.mark.parametrize("page,page_size", [(0, 20), (-1, 20), (1, 0)])
    def test_rejects_out_of_range_page(self, index, page, page_size):
        with pytest.raises(ValueError):
            index.list_matches(Criteria(), page=page, page_size=page_size)

    def test_listing_order_uses_tier_tie_break(self, index):
        response = index.list_matches(Criteria())
        assert [r.organization_id for r in response.results] == ["org_1", "org_3", "org_2"]

    def test_ai_overrides(self, index):
        overrides = {"org_2": ExternalScore(rank=1, score=77, reasons=("Sauce expert",))}
        response = index.list_matches(Criteria(), overrides=overrides)
        top = response.results[0]
        assert top.organization_id == "org_2"
        assert top.ai_rank == 1
        assert top.match_score == 77

    def test_serializes_camel_case(self, index):
        response = index.list_matches(Criteria(locations={"Bangkok"}), view="results", sort_by="fastest")
        data = response.model_dump(by_alias=True)
        assert data["pageSize"] == 20
        first = data["results"][0]
        assert first["organizationId"] == "org_3"
        assert first["leadTimeDays"] == 14
        assert first["matchScore"] == 100
        assert first["matchReasons"] == ["Location match"]
        assert first["tags"] == ["Fast Delivery"]


class TestSchemas:

    def test_from_result(self):
        candidate = Candidate(
            organization_id="org_9",
            name="Schema Co",
            tier="INSIGHTS",
            products=[Product(name="Soap", category="Body Care", moq=50)],
            capabilities={"white_label"},
        )
        response = ScoredOEMResponse.from_result(
            ScoredResult(candidate=candidate, score=LocalScore(42, ("Insights tier",)), tags=["Low MOQ Friendly"])
        )
        assert response.match_score == 42
        assert response.moq == 50
        assert response.capabilities == ["White Label"]
        assert response.products[0].category == "Body Care"
        assert response.ai_rank is None
