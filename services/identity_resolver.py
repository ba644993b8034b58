from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from models.contact import Contact, RawContact
from models.merge_candidate import MATCH_CONFIDENCE, MatchType, MergeCandidate
from ports.repos import ContactsRepoPort
from services.domain_utils import normalize_email, normalize_profile_url, normalize_text_key


logger = logging.getLogger(__name__)

EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)

# Evaluated in order; the first tier with any match wins
TIERS: tuple[MatchType, ...] = ("email", "profile_url", "name_company")


def _matches(match_type: MatchType, raw: RawContact, contact: Contact) -> bool:
    if match_type == "email":
        key = normalize_email(raw.email)
        return key is not None and key == normalize_email(contact.email)
    if match_type == "profile_url":
        key = normalize_profile_url(raw.profile_url)
        return key is not None and key == normalize_profile_url(contact.profile_url)
    name_key = normalize_text_key(raw.full_name)
    company_key = normalize_text_key(raw.company_name)
    if not name_key or not company_key:
        return False
    return (
        name_key == normalize_text_key(contact.full_name)
        and company_key == normalize_text_key(contact.company_name)
    )


def _pick(match_type: MatchType, matches: List[Contact], team_id: Optional[str] = None) -> MergeCandidate:
    """Choose one record from a tier, oldest first, then lowest id."""
    ordered = sorted(matches, key=lambda c: (c.created_at or EPOCH_MIN, c.id))
    winner, losers = ordered[0], ordered[1:]
    tied_ids = [int(c.id) for c in losers]
    if tied_ids:
        logger.warning(
            "ambiguous %s match: picked contact %s over %s",
            match_type,
            winner.id,
            tied_ids,
            extra={"step": "resolve", "status": "ambiguous", "team_id": team_id or "-"},
        )
    return MergeCandidate(
        existing_id=int(winner.id),
        match_type=match_type,
        confidence=MATCH_CONFIDENCE[match_type],
        tied_ids=tied_ids,
    )


def resolve(raw: RawContact, existing: Iterable[Contact]) -> List[MergeCandidate]:
    """Find the existing contact an incoming sighting should merge into.

    Returns at most one candidate, from the highest-priority tier that has a
    match. A lower tier is never consulted once a higher one matched. An
    empty list means the sighting is a new contact.
    """
    pool = [c for c in existing if c.id is not None]
    for match_type in TIERS:
        matches = [c for c in pool if _matches(match_type, raw, c)]
        if matches:
            return [_pick(match_type, matches, matches[0].team_id)]
    return []


class IdentityResolver:
    """Same tiers as ``resolve`` but backed by indexed point lookups in the contact store."""

    def __init__(self, contacts_repo: ContactsRepoPort) -> None:
        self.contacts_repo = contacts_repo

    def _lookup(self, match_type: MatchType, raw: RawContact, team_id: str) -> List[Contact]:
        if match_type == "email":
            key = normalize_email(raw.email)
            return self.contacts_repo.find_by_email_key(team_id, key) if key else []
        if match_type == "profile_url":
            key = normalize_profile_url(raw.profile_url)
            return self.contacts_repo.find_by_profile_url_key(team_id, key) if key else []
        name_key = normalize_text_key(raw.full_name)
        company_key = normalize_text_key(raw.company_name)
        if not name_key or not company_key:
            return []
        return self.contacts_repo.find_by_name_company(team_id, name_key, company_key)

    def resolve(self, raw: RawContact, *, team_id: str) -> List[MergeCandidate]:
        for match_type in TIERS:
            matches = self._lookup(match_type, raw, team_id)
            if matches:
                return [_pick(match_type, matches, team_id)]
        return []
