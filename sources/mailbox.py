from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from models.contact import RawContact
from sources.base import read_text
from sources.registry import register


logger = logging.getLogger(__name__)


def _first(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def raw_contact_from_correspondent(record: Dict[str, Any]) -> Optional[RawContact]:
    """Map one correspondent summary ({email, name, message_count, last_message_at}) to a sighting."""
    email = _first(record, "email", "address")
    if not email:
        return None
    name = _first(record, "name", "display_name", "full_name")
    # Without a display name the address is the only label we have
    full_name = str(name).strip() if name else str(email).split("@", 1)[0]
    return RawContact.model_validate(
        {
            "full_name": full_name,
            "email": email,
            "company_name": _first(record, "company", "company_name"),
            "source": "mailbox",
            "source_id": _first(record, "thread_id", "id"),
            "interaction_count": _first(record, "message_count", "interaction_count") or 0,
            "last_interaction_at": _first(record, "last_message_at", "last_interaction_at"),
        }
    )


class MailboxSource:
    """Correspondent summaries exported from a mailbox sync (JSON list or ``{"correspondents": [...]}``)."""

    source_name = "mailbox"

    def load(self, path: str) -> List[RawContact]:
        data = json.loads(read_text(path))
        records = data.get("correspondents", []) if isinstance(data, dict) else data
        contacts: List[RawContact] = []
        for index, record in enumerate(records or []):
            if not isinstance(record, dict):
                continue
            try:
                contact = raw_contact_from_correspondent(record)
            except ValidationError as e:
                logger.warning(
                    "skipping invalid correspondent %d",
                    index,
                    extra={"step": "ingest", "status": "malformed", "error": str(e.errors()[:1])},
                )
                continue
            if contact is not None:
                contacts.append(contact)
        return contacts


def _register():
    register(MailboxSource.source_name, MailboxSource)


_register()
