from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from models.connection_path import ConnectionPath
from models.contact import Contact
from models.prospect import Prospect


class ContactsRepoPort(Protocol):
    def find_by_email_key(self, team_id: str, email_key: str) -> List[Contact]:
        ...

    def find_by_profile_url_key(self, team_id: str, profile_url_key: str) -> List[Contact]:
        ...

    def find_by_name_company(self, team_id: str, full_name: str, company_name: str) -> List[Contact]:
        ...

    def get(self, team_id: str, contact_id: int) -> Optional[Contact]:
        ...

    def insert(self, contact: Contact) -> int:
        ...

    def update(self, contact: Contact) -> None:
        ...


class ProspectsRepoPort(Protocol):
    def list_for_team(self, team_id: str, ids: Optional[Sequence[int]] = None) -> List[Prospect]:
        ...

    def save_score(
        self,
        team_id: str,
        prospect_id: int,
        *,
        score: int,
        best_connector: Optional[str],
        path_count: int,
        has_warm_intro: bool,
        best_path: Optional[ConnectionPath],
        top_paths: Sequence[ConnectionPath],
    ) -> None:
        ...
