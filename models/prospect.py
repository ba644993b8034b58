from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from models.connection_path import ConnectionPath
from models.contact import UtcDatetime


class Prospect(BaseModel):
    """A target company under evaluation, plus its last computed connection snapshot."""

    id: int | None = None
    team_id: str
    company_name: str
    company_domain: str
    industry: str | None = None
    description: str | None = None
    # Title keywords that narrow the graph search to relevant roles
    target_titles: list[str] = Field(default_factory=list)

    connection_score: int = Field(default=0, ge=0, le=100)
    best_connector: str | None = None
    connection_path_count: int = 0
    has_warm_intro: bool = False
    best_path: ConnectionPath | None = None
    top_paths: list[ConnectionPath] = Field(default_factory=list)
    matched_at: UtcDatetime | None = None
    created_at: UtcDatetime | None = None

    model_config = ConfigDict(extra="ignore")
