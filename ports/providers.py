from __future__ import annotations

from typing import List, Optional, Protocol

from models.graph_hit import GraphHit
from models.person_record import PersonRecord


class NetworkGraphPort(Protocol):
    def search(self, company_domain: str, target_titles: Optional[List[str]] = None) -> List[GraphHit]:
        ...


class PersonEnrichmentPort(Protocol):
    def enrich(
        self,
        *,
        profile_url: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        company: Optional[str] = None,
    ) -> Optional[PersonRecord]:
        ...
