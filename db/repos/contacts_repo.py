from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.contact import Contact, WorkHistoryEntry
from services.domain_utils import normalize_email, normalize_profile_url, normalize_text_key
from services.errors import StoreWriteFailure


logger = logging.getLogger(__name__)

_TEXT_COLUMNS = (
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
    "best_connector",
)

_SELECT = (
    "SELECT id, team_id, owner_id, full_name, email, profile_url, first_name, last_name, title, "
    "company_name, company_domain, phone, location, source, source_id, connection_strength, "
    "best_connector, interaction_count, last_interaction_at, last_sync_at, work_history_json, "
    "enriched_at, created_at FROM contacts "
)

# Oldest record first, then lowest id: the resolver's tie-break relies on this
_ORDER = " ORDER BY created_at, id"


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ContactsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _query(self, sql: str, params: tuple) -> List[Contact]:
        cur = self.conn.cursor()
        cur.row_factory = sqlite3.Row
        cur.execute(sql, params)
        return [self._to_contact(row) for row in cur.fetchall()]

    @staticmethod
    def _to_contact(row: sqlite3.Row) -> Contact:
        history = json.loads(row["work_history_json"]) if row["work_history_json"] else []
        return Contact(
            id=row["id"],
            team_id=row["team_id"],
            owner_id=row["owner_id"],
            full_name=row["full_name"],
            email=row["email"],
            profile_url=row["profile_url"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            title=row["title"],
            company_name=row["company_name"],
            company_domain=row["company_domain"],
            phone=row["phone"],
            location=row["location"],
            source=row["source"],
            source_id=row["source_id"],
            connection_strength=row["connection_strength"],
            best_connector=row["best_connector"],
            interaction_count=row["interaction_count"] or 0,
            last_interaction_at=_parse_ts(row["last_interaction_at"]),
            last_sync_at=_parse_ts(row["last_sync_at"]),
            work_history=[WorkHistoryEntry.model_validate(h) for h in history],
            enriched_at=_parse_ts(row["enriched_at"]),
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _fields(contact: Contact) -> Dict[str, Any]:
        fields: Dict[str, Any] = {name: _clean(getattr(contact, name)) for name in _TEXT_COLUMNS}
        fields["full_name"] = fields["full_name"] or contact.full_name
        fields["email_key"] = normalize_email(contact.email)
        fields["profile_url_key"] = normalize_profile_url(contact.profile_url)
        fields["name_key"] = normalize_text_key(contact.full_name)
        fields["company_key"] = normalize_text_key(contact.company_name)
        fields["connection_strength"] = contact.connection_strength
        fields["interaction_count"] = contact.interaction_count or 0
        fields["last_interaction_at"] = _iso(contact.last_interaction_at)
        fields["last_sync_at"] = _iso(contact.last_sync_at)
        fields["work_history_json"] = (
            json.dumps([h.model_dump() for h in contact.work_history], ensure_ascii=False)
            if contact.work_history
            else None
        )
        fields["enriched_at"] = _iso(contact.enriched_at)
        return fields

    # --- Point lookups ---
    def find_by_email_key(self, team_id: str, email_key: str) -> List[Contact]:
        return self._query(_SELECT + "WHERE team_id = ? AND email_key = ?" + _ORDER, (team_id, email_key))

    def find_by_profile_url_key(self, team_id: str, profile_url_key: str) -> List[Contact]:
        return self._query(
            _SELECT + "WHERE team_id = ? AND profile_url_key = ?" + _ORDER, (team_id, profile_url_key)
        )

    def find_by_name_company(self, team_id: str, full_name: str, company_name: str) -> List[Contact]:
        """Case-insensitive exact match on both full name and company.

        Compares the stored casefolded keys, so accented names fold the same way
        they do in ``services.identity_resolver.resolve``.
        """
        name_key = normalize_text_key(full_name)
        company_key = normalize_text_key(company_name)
        if not name_key or not company_key:
            return []
        sql = _SELECT + "WHERE team_id = ? AND name_key = ? AND company_key = ?" + _ORDER
        return self._query(sql, (team_id, name_key, company_key))

    def get(self, team_id: str, contact_id: int) -> Optional[Contact]:
        rows = self._query(_SELECT + "WHERE team_id = ? AND id = ?", (team_id, contact_id))
        return rows[0] if rows else None

    # --- Listings ---
    def list_for_team(self, team_id: str, limit: Optional[int] = None) -> List[Contact]:
        sql = _SELECT + "WHERE team_id = ? ORDER BY id"
        if limit is not None:
            return self._query(sql + " LIMIT ?", (team_id, limit))
        return self._query(sql, (team_id,))

    def list_candidates_for_matching(self, team_id: str, limit: int) -> List[Contact]:
        """Strongest-connected contacts first, for bounded AI matching prompts."""
        sql = (
            _SELECT
            + "WHERE team_id = ? ORDER BY COALESCE(connection_strength, -1) DESC, interaction_count DESC, id LIMIT ?"
        )
        return self._query(sql, (team_id, limit))

    def list_pending_enrichment(self, team_id: str, limit: int = 50) -> List[Contact]:
        """Contacts never sent to enrichment that have something to look them up by."""
        sql = (
            _SELECT
            + "WHERE team_id = ? AND enriched_at IS NULL "
            "AND (profile_url_key IS NOT NULL OR email_key IS NOT NULL "
            "     OR (company_name IS NOT NULL AND company_name != '')) "
            "ORDER BY id LIMIT ?"
        )
        return self._query(sql, (team_id, limit))

    def find_by_email(self, team_id: str, email: str) -> Optional[Contact]:
        key = normalize_email(email)
        rows = self.find_by_email_key(team_id, key) if key else []
        return rows[0] if rows else None

    def find_by_profile_url(self, team_id: str, profile_url: str) -> Optional[Contact]:
        key = normalize_profile_url(profile_url)
        rows = self.find_by_profile_url_key(team_id, key) if key else []
        return rows[0] if rows else None

    # --- Writes ---
    def insert(self, contact: Contact) -> int:
        fields = self._fields(contact)
        fields["team_id"] = contact.team_id
        fields["owner_id"] = contact.owner_id
        fields["source"] = contact.source
        fields["created_at"] = _iso(contact.created_at) or datetime.now(timezone.utc).isoformat()
        columns = list(fields.keys())
        sql = (
            f"INSERT INTO contacts ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        try:
            cur = self.conn.cursor()
            cur.execute(sql, tuple(fields[c] for c in columns))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreWriteFailure(f"insert contact failed: {e}") from e
        return int(cur.lastrowid)

    def _key_owner(self, team_id: str, column: str, key: Optional[str]) -> Optional[int]:
        if not key:
            return None
        cur = self.conn.cursor()
        cur.execute(f"SELECT id FROM contacts WHERE team_id = ? AND {column} = ?", (team_id, key))
        row = cur.fetchone()
        return int(row[0]) if row else None

    def update(self, contact: Contact) -> None:
        """Write every mutable field of ``contact`` back to its row (matched by team and id)."""
        if contact.id is None:
            raise StoreWriteFailure("cannot update a contact without id")
        fields = self._fields(contact)
        # Avoid UNIQUE conflicts by skipping identifier updates that collide with another row
        for column, raw_column in (("email_key", "email"), ("profile_url_key", "profile_url")):
            owner = self._key_owner(contact.team_id, column, fields[column])
            if owner is not None and owner != int(contact.id):
                logger.warning(
                    "%s already belongs to contact %s; keeping stored value on %s",
                    raw_column,
                    owner,
                    contact.id,
                    extra={"step": "store", "status": "key_conflict", "team_id": contact.team_id},
                )
                fields.pop(column)
                fields.pop(raw_column)
        assignments = ", ".join(f"{c} = ?" for c in fields)
        sql = f"UPDATE contacts SET {assignments} WHERE team_id = ? AND id = ?"
        try:
            cur = self.conn.cursor()
            cur.execute(sql, (*fields.values(), contact.team_id, contact.id))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreWriteFailure(f"update contact {contact.id} failed: {e}") from e
        if cur.rowcount == 0:
            raise StoreWriteFailure(f"contact {contact.id} not found for team {contact.team_id}")

    def mark_enrichment_attempted(self, team_id: str, contact_id: int, at: Optional[datetime] = None) -> None:
        """Record a lookup that returned no data so the contact is not retried every run."""
        stamp = _iso(at) or datetime.now(timezone.utc).isoformat()
        try:
            self.conn.execute(
                "UPDATE contacts SET enriched_at = ? WHERE team_id = ? AND id = ?",
                (stamp, team_id, contact_id),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreWriteFailure(f"mark enrichment failed for contact {contact_id}: {e}") from e
