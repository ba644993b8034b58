from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ConnectionPath(BaseModel):
    """A route from an owned contact (connector) to a person at the target company."""

    connector_name: str
    connector_contact_id: int | None = None
    target_name: str | None = None
    target_title: str | None = None
    target_profile_url: str | None = None
    target_company: str | None = None
    connection_type: str = "unknown"
    strength: float = Field(ge=0, le=1)
    shared_context: str = ""

    model_config = ConfigDict(extra="ignore")


class ConnectionScore(BaseModel):
    score: int = Field(ge=0, le=100)
    best_path: ConnectionPath | None = None
    path_count: int = 0

    model_config = ConfigDict(extra="ignore")
