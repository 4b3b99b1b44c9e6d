#!/usr/bin/env python3
"""
AI Ranker Test Suite

Tests for the LLM ranker with a mocked OpenAI client:
1. Prompt construction
2. Response parsing and validation
3. Failure handling
4. Batch ranking with cache
5. Conversion to score overrides
"""

import json
import shutil
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ai_ranking import AIRankingResult, AIRecommendation, LLMRanker, load_ranking_cache, to_overrides
from ai_ranking.models import AIRecommendationPayload
from core.models import Candidate, ExternalScore, Product


# =============================================================================
# Fixtures
# =============================================================================


def mock_completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def candidates():
    return [
        Candidate(
            organization_id=f"org_{i}",
            name=f"Factory {i}",
            location="Bangkok",
            products=[Product(name="Shampoo", category="Haircare", moq=100 * (i + 1))],
        )
        for i in range(6)
    ]


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def ranker(client):
    return LLMRanker(model="test/model", client=client)


@pytest.fixture
def temp_cache_dir():
    temp_dir = tempfile.mkdtemp(prefix="ai_ranking_test_")
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


SAMPLE_REPLY = """Here are my picks:
```json
[
  {"oemId": "org_3", "rank": 2, "relevanceScore": 81, "matchReasons": ["Haircare", "Low MOQ"]},
  {"oemId": "org_1", "rank": 1, "relevanceScore": 93.6, "matchReasons": ["a", "b", "c", "d"]},
  {"oemId": "org_99", "rank": 3, "relevanceScore": 70, "matchReasons": []}
]
```"""


# =============================================================================
# Unit Tests: Construction
# =============================================================================


class TestConstruction:

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        with pytest.raises(ValueError):
            LLMRanker()

    def test_model_from_env(self, monkeypatch, client):
        monkeypatch.setenv("AI_RANKING_MODEL", "env/model")
        assert LLMRanker(client=client).model == "env/model"

    def test_default_model(self, monkeypatch, client):
        monkeypatch.delenv("AI_RANKING_MODEL", raising=False)
        assert LLMRanker(client=client).model == "google/gemini-2.5-flash-lite"


# =============================================================================
# Unit Tests: Ranking
# =============================================================================


class TestRank:

    def test_parses_sorts_and_drops_unknown_ids(self, ranker, client, candidates):
        client.chat.completions.create.return_value = mock_completion(SAMPLE_REPLY)

        result = ranker.rank("shampoo for salons, 500 bottles", candidates)

        assert result.is_valid
        assert result.error is None
        assert [r.organization_id for r in result.recommendations] == ["org_1", "org_3"]
        assert result.recommendations[0].relevance_score == 94
        assert result.recommendations[0].match_reasons == ["a", "b", "c"]
        assert result.candidate_count == 6

    def test_prompt_lists_candidates(self, ranker, client, candidates):
        client.chat.completions.create.return_value = mock_completion("[]")
        ranker.rank("shampoo for salons", candidates, top_k=3)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test/model"
        prompt = kwargs["messages"][0]["content"]
        assert "shampoo for salons" in prompt
        assert "TOP 3" in prompt
        assert '"id": "org_5"' in prompt

    def test_truncates_candidate_pool(self, ranker, client):
        many = [Candidate(organization_id=f"org_{i}", name=f"F{i}") for i in range(150)]
        client.chat.completions.create.return_value = mock_completion("[]")
        result = ranker.rank("anything goes here", many)
        assert result.candidate_count == 100
        prompt = client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert '"id": "org_99"' in prompt
        assert '"id": "org_100"' not in prompt

    def test_short_query_rejected(self, ranker, candidates):
        with pytest.raises(ValueError):
            ranker.rank(" abc ", candidates)

    def test_reply_without_array_sets_error(self, ranker, client, candidates):
        client.chat.completions.create.return_value = mock_completion("I cannot help with that.")
        result = ranker.rank("shampoo for salons", candidates)
        assert result.error is not None
        assert result.recommendations == []
        assert not result.is_valid

    def test_api_failure_sets_error(self, ranker, client, candidates):
        client.chat.completions.create.side_effect = RuntimeError("rate limited")
        result = ranker.rank("shampoo for salons", candidates)
        assert result.error == "rate limited"

    def test_malformed_items_skipped(self, ranker, client, candidates):
        reply = json.dumps([{"rank": 1}, {"oemId": "org_2", "rank": 0}, {"oemId": "org_4", "rank": 1}])
        client.chat.completions.create.return_value = mock_completion(reply)
        result = ranker.rank("shampoo for salons", candidates)
        assert [r.organization_id for r in result.recommendations] == ["org_4"]


class TestPayload:

    def test_aliases_and_coercion(self):
        payload = AIRecommendationPayload.model_validate(
            {"oemId": 42, "rank": 1, "relevanceScore": 140, "matchReasons": "Great fit"}
        )
        assert payload.oem_id == "42"
        assert payload.relevance_score == 100
        assert payload.match_reasons == ["Great fit"]


# =============================================================================
# Unit Tests: Overrides and Cache
# =============================================================================


class TestOverrides:

    def test_to_overrides(self):
        result = AIRankingResult(
            query="q",
            model="m",
            recommendations=[AIRecommendation("org_1", 1, 90, ["fit"]), AIRecommendation("org_2", 2, 75)],
        )
        overrides = to_overrides(result)
        assert overrides == {
            "org_1": ExternalScore(rank=1, score=90, reasons=("fit",)),
            "org_2": ExternalScore(rank=2, score=75, reasons=()),
        }

    def test_failed_result_gives_no_overrides(self):
        assert to_overrides(AIRankingResult(query="q", model="m", error="boom")) == {}


class TestBatchRank:

    def test_batch_writes_and_reuses_cache(self, ranker, client, candidates, temp_cache_dir):
        client.chat.completions.create.return_value = mock_completion(SAMPLE_REPLY)
        queries = ["shampoo for salons", "hair mask private label"]

        with patch("ai_ranking.ranker.time.sleep"):
            first = ranker.batch_rank(queries, candidates, cache_dir=temp_cache_dir, show_progress=False)
        assert len(first) == 2
        assert client.chat.completions.create.call_count == 2
        assert len(list(temp_cache_dir.glob("*.json"))) == 2

        second = ranker.batch_rank(queries, candidates, cache_dir=temp_cache_dir, show_progress=False,
                                   skip_existing=True, delay_seconds=0)
        assert client.chat.completions.create.call_count == 2
        assert [r.query for r in second] == queries
        assert second[0].recommendations[0].organization_id == "org_1"

    def test_short_queries_skipped(self, ranker, client, candidates):
        client.chat.completions.create.return_value = mock_completion("[]")
        results = ranker.batch_rank(["hi", "shampoo for salons"], candidates, show_progress=False, delay_seconds=0)
        assert [r.query for r in results] == ["shampoo for salons"]

    def test_failed_results_not_cached(self, ranker, client, candidates, temp_cache_dir):
        client.chat.completions.create.side_effect = RuntimeError("down")
        results = ranker.batch_rank(["shampoo for salons"], candidates, cache_dir=temp_cache_dir,
                                    show_progress=False, delay_seconds=0)
        assert results[0].error == "down"
        assert list(temp_cache_dir.glob("*.json")) == []

    def test_load_ranking_cache(self, ranker, client, candidates, temp_cache_dir):
        client.chat.completions.create.return_value = mock_completion(SAMPLE_REPLY)
        ranker.batch_rank(["shampoo for salons"], candidates, cache_dir=temp_cache_dir,
                          show_progress=False, delay_seconds=0)
        (temp_cache_dir / "run_metadata.json").write_text("{}", encoding="utf-8")
        (temp_cache_dir / "broken.json").write_text("{not json", encoding="utf-8")

        cache = load_ranking_cache(temp_cache_dir)
        assert list(cache) == ["shampoo for salons"]
        assert cache["shampoo for salons"].recommendations[1].organization_id == "org_3"

    def test_load_missing_cache_dir(self, temp_cache_dir):
        assert load_ranking_cache(temp_cache_dir / "missing") == {}
