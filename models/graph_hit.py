from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class GraphProfile(BaseModel):
    full_name: str
    first_name: str | None = None
    last_name: str | None = None
    linkedin_url: str | None = None
    current_title: str | None = None
    current_company: str | None = None
    current_company_website: str | None = None
    location: str | None = None
    headline: str | None = None

    model_config = ConfigDict(extra="ignore")


class GraphConnectionSource(BaseModel):
    """Why the connector knows the target (shared employer, school, inbox, ...)."""

    origin: str
    company_name: str | None = None
    company_domain: str | None = None
    school_name: str | None = None
    relationship_type: str | None = None
    overlap_start: str | None = None
    overlap_end: str | None = None

    model_config = ConfigDict(extra="ignore")


class GraphConnection(BaseModel):
    connector_name: str = Field(validation_alias=AliasChoices("connector_name", "connectorName", "team_member_name"))
    connector_id: str | None = Field(default=None, validation_alias=AliasChoices("connector_id", "team_member_id"))
    # Provider scale is [0,1]; anything else is a malformed hit
    strength: float = Field(ge=0, le=1, validation_alias=AliasChoices("strength", "connection_strength"))
    sources: list[GraphConnectionSource] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class GraphHit(BaseModel):
    """One network-graph search hit: a target profile and the team's routes to it."""

    profile_id: str | None = None
    profile: GraphProfile = Field(validation_alias=AliasChoices("profile", "profile_info"))
    connections: list[GraphConnection] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_source(cls, source: dict) -> "GraphHit":
        """Accept both the nested ``connections`` shape and the flat single-connection shape."""
        if "connections" in source:
            return cls.model_validate(source)
        data = dict(source)
        data["connections"] = [
            {
                "team_member_name": source.get("team_member_name"),
                "team_member_id": source.get("team_member_id"),
                "connection_strength": source.get("connection_strength"),
                "sources": source.get("sources") or [],
            }
        ]
        return cls.model_validate(data)

    def max_strength(self) -> float:
        return max((c.strength for c in self.connections), default=0.0)

    def best_connection(self) -> GraphConnection | None:
        # Stable: earliest connection wins a strength tie
        best: GraphConnection | None = None
        for conn in self.connections:
            if best is None or conn.strength > best.strength:
                best = conn
        return best
