from __future__ import annotations

import csv
import io
import logging
from typing import Dict, List, Optional

from models.contact import RawContact
from sources.base import read_text
from sources.registry import register


logger = logging.getLogger(__name__)

# Header spellings seen across professional-network exports and hand-edited sheets
FIRST_NAME_KEYS = ("First Name", "FirstName", "first_name")
LAST_NAME_KEYS = ("Last Name", "LastName", "last_name")
EMAIL_KEYS = ("Email Address", "Email", "email")
PROFILE_URL_KEYS = ("Profile URL", "URL", "linkedin_url")
TITLE_KEYS = ("Position", "Title", "position")
COMPANY_KEYS = ("Company", "company")


def _pick(row: Dict[str, Optional[str]], keys: tuple) -> Optional[str]:
    for key in keys:
        value = (row.get(key) or "").strip()
        if value:
            return value
    return None


def _strip_preamble(text: str) -> str:
    """Drop the free-text notes some exports put above the header row."""
    lines = text.splitlines()
    for i, line in enumerate(lines):
        low = line.lower()
        if ("first name" in low or "firstname" in low or "first_name" in low) and "last" in low:
            return "\n".join(lines[i:])
    return text


def raw_contact_from_row(row: Dict[str, Optional[str]]) -> Optional[RawContact]:
    first = _pick(row, FIRST_NAME_KEYS)
    last = _pick(row, LAST_NAME_KEYS)
    full_name = " ".join(p for p in (first, last) if p)
    if not full_name:
        return None
    return RawContact(
        full_name=full_name,
        first_name=first,
        last_name=last,
        email=_pick(row, EMAIL_KEYS),
        profile_url=_pick(row, PROFILE_URL_KEYS),
        title=_pick(row, TITLE_KEYS),
        company_name=_pick(row, COMPANY_KEYS),
        source="csv_export",
    )


class CsvExportSource:
    source_name = "csv_export"

    def load(self, path: str) -> List[RawContact]:
        reader = csv.DictReader(io.StringIO(_strip_preamble(read_text(path))))
        contacts: List[RawContact] = []
        skipped = 0
        for row in reader:
            contact = raw_contact_from_row(row)
            if contact is None:
                skipped += 1
                continue
            contacts.append(contact)
        if skipped:
            logger.info(
                "skipped %d rows without a name", skipped, extra={"step": "ingest", "status": "skipped"}
            )
        return contacts


def _register():
    register(CsvExportSource.source_name, CsvExportSource)


_register()
