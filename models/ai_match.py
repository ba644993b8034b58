from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


AIMatchType = Literal["current_employee", "alumni", "competitor", "industry_relevant"]


class AIMatch(BaseModel):
    """LLM structured output: one proposed intro contact for a prospect."""

    name: str = Field(min_length=1)
    match_type: AIMatchType = Field(validation_alias=AliasChoices("match_type", "matchType"))
    relevance_score: float = Field(ge=0, le=100, validation_alias=AliasChoices("relevance_score", "relevanceScore"))
    reasoning: str = ""

    model_config = ConfigDict(extra="forbid")


class AIMatchResponse(BaseModel):
    matches: list[AIMatch] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")
