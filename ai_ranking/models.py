"""
AI Ranking Data Models

Data structures for LLM-ranked OEM recommendations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass
class AIRecommendation:
    """One OEM picked by the LLM ranker."""
    organization_id: str
    rank: int                           # 1 = best
    relevance_score: int                # 0-100
    match_reasons: List[str] = field(default_factory=list)


@dataclass
class AIRankingResult:
    """LLM ranking for one buyer query.

    ``error`` is set (and ``recommendations`` empty) when the request or
    response parsing failed; callers fall back to local scoring.
    """
    query: str
    model: str
    recommendations: List[AIRecommendation] = field(default_factory=list)
    candidate_count: int = 0
    error: Optional[str] = None
    ranked_at: str = ""

    def __post_init__(self):
        if not self.ranked_at:
            self.ranked_at = datetime.now().isoformat()

    @property
    def is_valid(self) -> bool:
        return self.error is None and bool(self.recommendations)


class AIRecommendationPayload(BaseModel):
    """One item of the JSON array the model is asked to return."""

    model_config = ConfigDict(populate_by_name=True)

    oem_id: str = Field(..., alias="oemId")
    rank: int = Field(..., ge=1)
    relevance_score: int = Field(0, alias="relevanceScore")
    match_reasons: list[str] = Field(default_factory=list, alias="matchReasons")

    @field_validator("oem_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value).strip()

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        if value is None:
            return 0
        return max(0, min(100, int(round(float(value)))))

    @field_validator("match_reasons", mode="before")
    @classmethod
    def _coerce_reasons(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(v) for v in value if v]
