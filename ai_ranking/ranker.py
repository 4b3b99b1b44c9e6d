"""
LLM Ranker

Asks an OpenAI-compatible chat model (via OpenRouter) to pick the most
relevant OEMs for a free-text buyer requirement. The returned ranks and
scores replace local scoring for the picked OEMs (see to_overrides).

Input: buyer query + normalized candidates
Output: ranking_cache/{query_hash}.json
"""

import hashlib
import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from openai import OpenAI
from pydantic import ValidationError

from core.constants import AI_MAX_CANDIDATES, AI_MAX_REASONS, AI_MIN_QUERY_LENGTH, AI_TOP_K, DEFAULT_AI_MODEL
from core.models import Candidate, ExternalScore

from .models import AIRankingResult, AIRecommendation, AIRecommendationPayload


JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


def _candidate_for_prompt(candidate: Candidate) -> Dict[str, Any]:
    """Compact view of a candidate; drops empty fields to save tokens."""
    data = {
        "id": candidate.organization_id,
        "name": candidate.name or "Unknown",
        "slug": candidate.slug,
        "industry": candidate.industry,
        "location": candidate.location,
        "scale": candidate.scale,
        "moqMin": candidate.profile_moq,
        "moqMax": candidate.profile_moq_max,
        "leadTimeDays": candidate.display_lead_time,
        "crossBorder": candidate.cross_border,
        "prototypeSupport": candidate.prototype_support,
        "rating": candidate.rating,
        "totalReviews": candidate.review_count,
        "tier": candidate.tier,
        "services": candidate.services,
        "certifications": candidate.certifications,
        "products": [
            {"name": p.name, "category": p.category, "moq": p.moq}
            for p in candidate.products
        ],
    }
    return {k: v for k, v in data.items() if v not in (None, "", [])}


def _cache_key(query: str) -> str:
    return hashlib.sha1(query.strip().lower().encode("utf-8")).hexdigest()[:16]


def ranking_result_to_dict(result: AIRankingResult) -> Dict[str, Any]:
    return {
        "query": result.query,
        "model": result.model,
        "candidate_count": result.candidate_count,
        "error": result.error,
        "ranked_at": result.ranked_at,
        "recommendations": [
            {
                "organization_id": r.organization_id,
                "rank": r.rank,
                "relevance_score": r.relevance_score,
                "match_reasons": r.match_reasons,
            }
            for r in result.recommendations
        ],
    }


def ranking_result_from_dict(data: Dict[str, Any]) -> AIRankingResult:
    return AIRankingResult(
        query=data["query"],
        model=data.get("model", ""),
        candidate_count=data.get("candidate_count", 0),
        error=data.get("error"),
        ranked_at=data.get("ranked_at", ""),
        recommendations=[AIRecommendation(**r) for r in data.get("recommendations", [])],
    )


class LLMRanker:
    """LLM ranker for free-text OEM search.

    Example:
        ranker = LLMRanker()
        result = ranker.rank("organic face cream, 500 units, Bangkok", candidates)
        overrides = to_overrides(result)
    """

    DEFAULT_MODEL = DEFAULT_AI_MODEL

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[OpenAI] = None,
    ):
        """Initialize the ranker.

        Args:
            api_key: OpenRouter API key (defaults to OPENROUTER_API_KEY)
            model: Model name (defaults to AI_RANKING_MODEL, then DEFAULT_MODEL)
            client: Pre-built OpenAI-compatible client, mainly for tests
        """
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if client is None and not self.api_key:
            raise ValueError("OPENROUTER_API_KEY is required")

        self.client = client or OpenAI(
            base_url="https://openrouter.ai/api/v1",
            api_key=self.api_key,
        )
        self.model = model or os.getenv("AI_RANKING_MODEL") or self.DEFAULT_MODEL

    def _build_prompt(self, query: str, candidates: List[Candidate], top_k: int) -> str:
        oems = [_candidate_for_prompt(c) for c in candidates]

        return f"""You are an expert OEM (Original Equipment Manufacturer) matchmaking assistant.

User's requirement:
"{query}"

Available OEMs ({len(oems)} total):
{json.dumps(oems, ensure_ascii=False, indent=2)}

Task: Analyze the user's requirement and recommend the TOP {top_k} most relevant OEMs from the list above.

Consider these factors in your ranking:
1. Industry match
2. Product catalog match (does the OEM make what the user needs?)
3. Location/cross-border capability match
4. MOQ (Minimum Order Quantity) match
5. Certifications match
6. Services offered
7. Prototype support (if mentioned)
8. Company scale
9. Rating and reviews

Return ONLY a valid JSON array with exactly {top_k} OEMs, ranked by relevance (most relevant first). Each object should have:
{{
  "oemId": "the id",
  "rank": 1-{top_k},
  "relevanceScore": 0-100,
  "matchReasons": ["reason 1", "reason 2", "reason 3"]
}}

IMPORTANT:
- Return ONLY the JSON array, no additional text
- Use actual OEM ids from the provided list
- Keep matchReasons concise (max {AI_MAX_REASONS} reasons per OEM)
"""

    def _parse_response(
        self,
        response_text: str,
        candidates: List[Candidate],
        top_k: int,
    ) -> List[AIRecommendation]:
        """Extract recommendations from the model reply.

        Raises:
            ValueError: If no JSON array can be found or decoded
        """
        match = JSON_ARRAY_PATTERN.search(response_text or "")
        if not match:
            raise ValueError("No JSON array found in response")
        try:
            items = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ValueError(f"AI returned invalid JSON: {e}") from e
        if not isinstance(items, list):
            raise ValueError("AI returned unexpected recommendations format")

        known_ids = {c.organization_id for c in candidates}
        recommendations = []
        seen = set()
        for item in items:
            try:
                payload = AIRecommendationPayload.model_validate(item)
            except ValidationError as e:
                logging.warning(f"Skipping malformed AI recommendation {item!r}: {e}")
                continue
            if payload.oem_id not in known_ids:
                logging.warning(f"AI recommended unknown OEM id '{payload.oem_id}', dropping")
                continue
            if payload.oem_id in seen:
                continue
            seen.add(payload.oem_id)
            recommendations.append(AIRecommendation(
                organization_id=payload.oem_id,
                rank=payload.rank,
                relevance_score=payload.relevance_score,
                match_reasons=payload.match_reasons[:AI_MAX_REASONS],
            ))

        recommendations.sort(key=lambda r: r.rank)
        return recommendations[:top_k]

    def rank(
        self,
        query: str,
        candidates: List[Candidate],
        top_k: int = AI_TOP_K,
    ) -> AIRankingResult:
        """Rank candidates for a free-text requirement.

        Only the first AI_MAX_CANDIDATES candidates are sent to keep the
        prompt within token limits.

        Raises:
            ValueError: If the query is shorter than AI_MIN_QUERY_LENGTH
        """
        query = (query or "").strip()
        if len(query) < AI_MIN_QUERY_LENGTH:
            raise ValueError(
                f"Please provide a more detailed search query (at least {AI_MIN_QUERY_LENGTH} characters)"
            )

        pool = candidates[:AI_MAX_CANDIDATES]
        if len(candidates) > AI_MAX_CANDIDATES:
            logging.info(f"Truncating AI ranking pool from {len(candidates)} to {AI_MAX_CANDIDATES} candidates")

        prompt = self._build_prompt(query, pool, top_k)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
            )
            response_text = response.choices[0].message.content or ""
            if not response_text:
                raise ValueError("Empty response from model")
            recommendations = self._parse_response(response_text, pool, top_k)
        except Exception as e:
            logging.error(f"AI ranking failed for query '{query}': {e}")
            return AIRankingResult(
                query=query,
                model=self.model,
                candidate_count=len(pool),
                error=str(e),
            )

        return AIRankingResult(
            query=query,
            model=self.model,
            candidate_count=len(pool),
            recommendations=recommendations,
        )

    def batch_rank(
        self,
        queries: List[str],
        candidates: List[Candidate],
        top_k: int = AI_TOP_K,
        delay_seconds: float = 0.5,
        skip_existing: bool = True,
        cache_dir: Optional[Path] = None,
        show_progress: bool = True,
    ) -> List[AIRankingResult]:
        """Rank candidates for many queries.

        Args:
            queries: Buyer requirements
            candidates: Candidate pool shared by all queries
            top_k: Number of OEMs to pick per query
            delay_seconds: Pause between requests
            skip_existing: Reuse cached results when present
            cache_dir: Cache directory (one JSON file per query)
            show_progress: Show a tqdm progress bar

        Returns:
            AIRankingResult list, in query order (short queries are skipped)
        """
        from tqdm import tqdm

        results = []

        iterator = queries
        if show_progress:
            iterator = tqdm(queries, desc="AI ranking")

        for query in iterator:
            cache_file = cache_dir / f"{_cache_key(query)}.json" if cache_dir else None

            if skip_existing and cache_file is not None and cache_file.exists():
                try:
                    with open(cache_file, "r", encoding="utf-8") as f:
                        results.append(ranking_result_from_dict(json.load(f)))
                    continue
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    logging.warning(f"Ignoring unreadable cache file {cache_file}: {e}")

            try:
                result = self.rank(query, candidates, top_k=top_k)
            except ValueError as e:
                logging.warning(f"Skipping query '{query}': {e}")
                continue
            results.append(result)

            if cache_file is not None and result.error is None:
                cache_dir.mkdir(parents=True, exist_ok=True)
                with open(cache_file, "w", encoding="utf-8") as f:
                    json.dump(ranking_result_to_dict(result), f, ensure_ascii=False, indent=2)

            if delay_seconds > 0:
                time.sleep(delay_seconds)

        return results


def to_overrides(result: AIRankingResult) -> Dict[str, ExternalScore]:
    """Convert an AI ranking into score overrides keyed by organization id."""
    return {
        r.organization_id: ExternalScore(
            rank=r.rank,
            score=r.relevance_score,
            reasons=tuple(r.match_reasons),
        )
        for r in result.recommendations
    }


def load_ranking_cache(cache_dir: Path) -> Dict[str, AIRankingResult]:
    """Load cached rankings.

    Args:
        cache_dir: Cache directory written by batch_rank

    Returns:
        {query: AIRankingResult}
    """
    results = {}

    if not cache_dir.exists():
        return results

    for cache_file in sorted(cache_dir.glob("*.json")):
        if cache_file.name == "run_metadata.json":
            continue
        try:
            with open(cache_file, "r", encoding="utf-8") as f:
                result = ranking_result_from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logging.warning(f"Error loading {cache_file}: {e}")
            continue
        results[result.query] = result

    return results
