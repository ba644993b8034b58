from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from models.contact import WorkHistoryEntry


class PersonRecord(BaseModel):
    """Person data returned by the enrichment provider, already mapped to our field names."""

    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    profile_url: str | None = None
    title: str | None = None
    company_name: str | None = None
    company_domain: str | None = None
    phone: str | None = None
    location: str | None = None
    work_history: list[WorkHistoryEntry] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
