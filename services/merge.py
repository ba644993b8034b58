from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from models.contact import Contact, as_utc


# Identity/profile text: incoming only fills a blank, never overwrites
FILL_IF_EMPTY_FIELDS = (
    "full_name",
    "email",
    "profile_url",
    "first_name",
    "last_name",
    "title",
    "company_name",
    "company_domain",
    "phone",
    "location",
    "source_id",
)

# More recent wins; missing counts as the oldest possible instant
LATEST_FIELDS = ("last_interaction_at", "last_sync_at", "enriched_at")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _latest(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    a, b = as_utc(a), as_utc(b)
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _max_strength(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_contact(existing: Contact, incoming: Contact) -> Contact:
    """Fold a new sighting into an existing contact. Pure; never raises.

    Repeating the same merge changes nothing except ``interaction_count``,
    which accumulates once per call. Record identity (id, team, owner,
    source, created_at) always stays with ``existing``.
    """
    update: Dict[str, Any] = {}

    for name in FILL_IF_EMPTY_FIELDS:
        current = getattr(existing, name)
        candidate = getattr(incoming, name)
        if _is_empty(current) and not _is_empty(candidate):
            update[name] = candidate.strip() if isinstance(candidate, str) else candidate

    strength = _max_strength(existing.connection_strength, incoming.connection_strength)
    update["connection_strength"] = strength

    incoming_stronger = (
        incoming.connection_strength is not None
        and (existing.connection_strength is None or incoming.connection_strength > existing.connection_strength)
    )
    if not _is_empty(incoming.best_connector) and (incoming_stronger or _is_empty(existing.best_connector)):
        update["best_connector"] = incoming.best_connector

    update["interaction_count"] = (existing.interaction_count or 0) + (incoming.interaction_count or 0)

    for name in LATEST_FIELDS:
        update[name] = _latest(getattr(existing, name), getattr(incoming, name))

    if not existing.work_history and incoming.work_history:
        update["work_history"] = list(incoming.work_history)

    return existing.model_copy(update=update)
