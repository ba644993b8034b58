from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


SourceName = Literal["network_graph", "csv_export", "mailbox"]


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so every comparison is tz-aware."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class WorkHistoryEntry(BaseModel):
    company_name: str | None = None
    company_domain: str | None = None
    title: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current: bool = False

    model_config = ConfigDict(extra="ignore")


class RawContact(BaseModel):
    """Ephemeral source snapshot of a person; never persisted directly."""

    full_name: str
    email: str | None = None
    profile_url: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    company_name: str | None = None
    company_domain: str | None = None
    phone: str | None = None
    location: str | None = None

    source: SourceName
    source_id: str | None = None
    # 0-100, network-graph sightings only
    connection_strength: float | None = Field(default=None, ge=0, le=100)
    best_connector: str | None = None
    interaction_count: int | None = Field(default=None, ge=0)
    last_interaction_at: UtcDatetime | None = None

    model_config = ConfigDict(extra="ignore")

    def has_identifier(self) -> bool:
        return bool((self.email or "").strip() or (self.profile_url or "").strip())


class Contact(BaseModel):
    """App/DB record shape for a person known to a team."""

    id: int | None = None
    team_id: str
    owner_id: str | None = None

    full_name: str
    email: str | None = None
    profile_url: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    company_name: str | None = None
    company_domain: str | None = None
    phone: str | None = None
    location: str | None = None

    source: SourceName
    source_id: str | None = None
    connection_strength: float | None = Field(default=None, ge=0, le=100)
    best_connector: str | None = None
    interaction_count: int = Field(default=0, ge=0)
    last_interaction_at: UtcDatetime | None = None
    last_sync_at: UtcDatetime | None = None

    work_history: list[WorkHistoryEntry] = Field(default_factory=list)
    enriched_at: UtcDatetime | None = None
    created_at: UtcDatetime | None = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_raw(
        cls,
        raw: RawContact,
        *,
        team_id: str,
        owner_id: str | None,
        synced_at: datetime,
    ) -> "Contact":
        """Shape an incoming sighting as a Contact so it can be inserted or merged."""
        return cls(
            team_id=team_id,
            owner_id=owner_id,
            full_name=raw.full_name.strip(),
            email=(raw.email or "").strip() or None,
            profile_url=(raw.profile_url or "").strip() or None,
            first_name=raw.first_name,
            last_name=raw.last_name,
            title=raw.title,
            company_name=raw.company_name,
            company_domain=raw.company_domain,
            phone=raw.phone,
            location=raw.location,
            source=raw.source,
            source_id=raw.source_id,
            connection_strength=raw.connection_strength,
            best_connector=raw.best_connector,
            interaction_count=raw.interaction_count or 0,
            last_interaction_at=raw.last_interaction_at,
            last_sync_at=synced_at,
        )
