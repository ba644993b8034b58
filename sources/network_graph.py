from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List

from models.contact import RawContact
from models.graph_hit import GraphHit
from services.domain_utils import extract_apex_domain
from services.network_graph_client import extract_raw_hits, parse_hits
from services.strength import graph_to_contact
from sources.base import read_text
from sources.registry import register


logger = logging.getLogger(__name__)


def raw_contact_from_hit(hit: GraphHit) -> RawContact:
    """One graph profile as a sighting; strength is the strongest route to them, on the 0-100 scale."""
    profile = hit.profile
    best = hit.best_connection()
    return RawContact(
        full_name=profile.full_name,
        first_name=profile.first_name,
        last_name=profile.last_name,
        profile_url=profile.linkedin_url,
        title=profile.current_title,
        company_name=profile.current_company,
        company_domain=extract_apex_domain(profile.current_company_website),
        location=profile.location,
        source="network_graph",
        source_id=hit.profile_id,
        connection_strength=graph_to_contact(best.strength) if best else None,
        best_connector=best.connector_name if best else None,
    )


class NetworkGraphSource:
    """Profiles from a saved network-graph export (the JSON body of one or more search calls)."""

    source_name = "network_graph"

    def from_hits(self, hits: Iterable[GraphHit]) -> List[RawContact]:
        return [raw_contact_from_hit(h) for h in hits if h.profile.full_name.strip()]

    def load(self, path: str) -> List[RawContact]:
        data: Any = json.loads(read_text(path))
        if isinstance(data, dict):
            raw_hits = extract_raw_hits(data)
        elif isinstance(data, list):
            raw_hits = data
        else:
            raw_hits = []
        hits = parse_hits(raw_hits)
        logger.info(
            "loaded %d of %d graph hits from %s",
            len(hits),
            len(raw_hits),
            path,
            extra={"step": "ingest", "provider": "network_graph", "status": "ok"},
        )
        return self.from_hits(hits)


def _register():
    register(NetworkGraphSource.source_name, NetworkGraphSource)


_register()
