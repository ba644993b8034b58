from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from models.connection_path import ConnectionPath
from models.graph_hit import GraphConnection, GraphConnectionSource, GraphHit
from ports.providers import NetworkGraphPort
from services.domain_utils import normalize_company_domain


logger = logging.getLogger(__name__)


def describe_source(source: GraphConnectionSource) -> str:
    """Human-readable reason a connector knows the target."""
    origin = source.origin
    if origin == "work_history" and source.company_name:
        period = ""
        if source.overlap_start and source.overlap_end:
            period = f" ({source.overlap_start[:4]}-{source.overlap_end[:4]})"
        return f"Worked together at {source.company_name}{period}"
    if origin == "education" and source.school_name:
        return f"Attended {source.school_name} together"
    if origin == "linkedin":
        return "LinkedIn connection"
    if origin == "email":
        return "Email correspondence"
    if origin == "calendar":
        return "Met in meetings"
    return origin


def path_from_hit(hit: GraphHit, connection: GraphConnection) -> ConnectionPath:
    profile = hit.profile
    return ConnectionPath(
        connector_name=connection.connector_name,
        target_name=profile.full_name,
        target_title=profile.current_title,
        target_profile_url=profile.linkedin_url,
        target_company=profile.current_company,
        connection_type=connection.sources[0].origin if connection.sources else "unknown",
        strength=connection.strength,
        shared_context="; ".join(describe_source(s) for s in connection.sources),
    )


def sort_paths(paths: Sequence[ConnectionPath]) -> List[ConnectionPath]:
    """Strongest first; equal strengths ordered by connector then target name."""
    return sorted(
        paths,
        key=lambda p: (-p.strength, p.connector_name.lower(), (p.target_name or "").lower()),
    )


class ConnectionPathFinder:
    def __init__(self, graph_client: NetworkGraphPort) -> None:
        self.graph_client = graph_client

    def find_paths(self, company_domain: str, target_titles: Optional[List[str]] = None) -> List[ConnectionPath]:
        """All known intro paths into a company, strongest first. No paths is a normal result."""
        domain = normalize_company_domain(company_domain)
        if not domain:
            return []
        hits = self.graph_client.search(domain, target_titles=target_titles or None)
        paths = [path_from_hit(hit, conn) for hit in hits for conn in hit.connections]
        logger.info(
            "found %d paths into %s",
            len(paths),
            domain,
            extra={"step": "find_paths", "status": "ok", "provider": "network_graph"},
        )
        return sort_paths(paths)
