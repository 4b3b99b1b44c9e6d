"""Pydantic models for API request/response schemas."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.data_io import candidate_to_dict
from core.models import ScoredResult


class ProductInfo(BaseModel):
    """Catalog entry as shown on an OEM card."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    category: str = ""
    moq: Optional[int] = None
    lead_time_days: Optional[int] = Field(None, alias="leadTimeDays")
    price_min: Optional[float] = Field(None, alias="priceMin")


class ScoredOEMResponse(BaseModel):
    """Response model for a single scored OEM."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "organizationId": "org_42",
                "name": "Siam Beauty Lab",
                "slug": "siam-beauty-lab",
                "location": "Bangkok, Thailand",
                "tier": "VERIFIED_PARTNER",
                "moq": 500,
                "leadTimeDays": 21,
                "certifications": ["GMP", "ISO 22716"],
                "matchScore": 90,
                "matchReasons": ["Category match", "MOQ within range", "Verified Partner tier"],
                "tags": ["Fast Delivery", "Top Rated"],
                "aiRank": None,
            }
        },
    )

    organization_id: str = Field(..., alias="organizationId", description="OEM organization ID")
    name: str = Field(..., description="Company display name")
    slug: str = ""
    industry: str = ""
    location: str = ""
    description: str = ""
    tier: str = Field(..., description="Subscription tier (FREE, INSIGHTS, VERIFIED_PARTNER)")
    scale: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    moq: Optional[int] = Field(None, description="Display MOQ (profile MOQ, else lowest product MOQ)")
    moq_max: Optional[int] = Field(None, alias="moqMax")
    lead_time_days: Optional[int] = Field(None, alias="leadTimeDays")
    certifications: list[str] = Field(default_factory=list)
    capabilities: list[str] = Field(default_factory=list, description="Capability labels")
    services: list[str] = Field(default_factory=list)
    cross_border: bool = Field(False, alias="crossBorder")
    prototype_support: bool = Field(False, alias="prototypeSupport")
    rating: Optional[float] = None
    review_count: int = Field(0, alias="reviewCount")
    products: list[ProductInfo] = Field(default_factory=list)
    match_score: int = Field(..., alias="matchScore", ge=0, le=100, description="Match score 0-100")
    match_reasons: list[str] = Field(default_factory=list, alias="matchReasons")
    tags: list[str] = Field(default_factory=list, description="Declared services or synthesized highlights")
    ai_rank: Optional[int] = Field(None, alias="aiRank", description="Rank from the LLM ranker, if any")

    @classmethod
    def from_result(cls, result: ScoredResult) -> "ScoredOEMResponse":
        data = candidate_to_dict(result.candidate)
        data.update(
            matchScore=result.match_score,
            matchReasons=result.match_reasons,
            tags=list(result.tags),
            aiRank=result.ai_rank,
        )
        return cls.model_validate(data)


class MatchListResponse(BaseModel):
    """Response model for a paginated list of matches."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(..., description="Total number of OEMs passing the filters")
    page: int = Field(1, description="Current page number (1-indexed)")
    page_size: int = Field(..., alias="pageSize", description="Number of items per page")
    results: list[ScoredOEMResponse] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class IndexStats(BaseModel):
    """Summary of the loaded candidate index."""

    status: str = Field(default="healthy")
    candidates_loaded: int = Field(..., description="Number of OEMs loaded")
    categories: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str = Field(..., description="Error message")
