from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


MatchType = Literal["email", "profile_url", "name_company"]

MATCH_CONFIDENCE: dict[str, float] = {
    "email": 1.0,
    "profile_url": 0.95,
    "name_company": 0.7,
}


class MergeCandidate(BaseModel):
    """An existing contact that an incoming sighting may be folded into."""

    existing_id: int
    match_type: MatchType
    confidence: float = Field(ge=0, le=1)
    # Other ids that matched at the same tier and lost the tie-break
    tied_ids: list[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")
