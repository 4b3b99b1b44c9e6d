"""
AI Ranking Package

LLM-based OEM ranking for free-text buyer requirements:
- LLMRanker: OpenRouter chat model picks and ranks the top OEMs
- to_overrides: turns a ranking into ExternalScore overrides for the matcher
"""

from .models import (
    AIRecommendation,
    AIRankingResult,
    AIRecommendationPayload,
)
from .ranker import LLMRanker, load_ranking_cache, to_overrides

__all__ = [
    # Models
    "AIRecommendation",
    "AIRankingResult",
    "AIRecommendationPayload",
    # Core classes
    "LLMRanker",
    # Helpers
    "to_overrides",
    "load_ranking_cache",
]
