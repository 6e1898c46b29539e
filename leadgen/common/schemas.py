"""
Pydantic schemas for text-generation replies.

The model is asked for strict JSON; replies are parsed with parse_llm_json and
then validated here, so "the call succeeded" and "the payload is well-formed"
are checked separately.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchIntentPayload(BaseModel):
    """Reply schema for query interpretation."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    query: str = Field(..., min_length=1, description="Cleaned search query")
    industry: str = Field(..., min_length=1, description="Concise industry / business type label")
    target_roles: List[str] = Field(
        ...,
        alias="roles",
        min_length=1,
        description="Decision-maker job titles, most relevant first",
    )
    location: str = Field(..., min_length=1, description="City, region or country")

    @field_validator("target_roles")
    @classmethod
    def strip_roles(cls, v):
        roles = [r.strip() for r in v if isinstance(r, str) and r.strip()]
        if not roles:
            raise ValueError("target_roles must contain at least one non-empty title")
        return roles


class AnalysisPayload(BaseModel):
    """Reply schema for lead analysis."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str = Field(..., min_length=1)
    pain_points: List[str] = Field(default_factory=list, alias="painPoints")
    icebreaker: str = Field(..., min_length=1)
    full_message: str = Field(..., min_length=20, alias="fullMessage")
    psychological_profile: Optional[str] = Field(default=None, alias="psychologicalProfile")
    business_moment: Optional[str] = Field(default=None, alias="businessMoment")
    sales_angle: Optional[str] = Field(default=None, alias="salesAngle")
    main_obstacle: Optional[str] = Field(default=None, alias="mainObstacle")

    @field_validator("pain_points", mode="before")
    @classmethod
    def coerce_pain_points(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return [str(p).strip() for p in v if str(p).strip()]
