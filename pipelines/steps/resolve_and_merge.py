from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Callable, Optional

from db.repos.contacts_repo import ContactsRepo
from models.contact import Contact, RawContact
from pipelines.runner import RunContext
from services.errors import StoreWriteFailure
from services.identity_resolver import IdentityResolver
from services.merge import merge_contact


logger = logging.getLogger(__name__)


class ResolveAndMergeContacts:
    """Fold each incoming sighting into the team's contacts, in source order.

    Outcomes per sighting: ``inserted`` (no candidate), ``updated`` (email or
    profile-URL match), ``merged`` (name+company match), ``skipped`` (filtered
    out before processing) or a counted failure.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        require_identifier: bool = False,
        on_processed: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.contacts_repo = ContactsRepo(conn)
        self.resolver = IdentityResolver(self.contacts_repo)
        self.require_identifier = require_identifier
        self.on_processed = on_processed

    def _apply(self, ctx: RunContext, raw: RawContact, synced_at: datetime) -> str:
        incoming = Contact.from_raw(raw, team_id=ctx.team_id, owner_id=ctx.owner_id, synced_at=synced_at)
        candidates = self.resolver.resolve(raw, team_id=ctx.team_id)
        if not candidates:
            self.contacts_repo.insert(incoming)
            return "inserted"
        candidate = candidates[0]
        existing = self.contacts_repo.get(ctx.team_id, candidate.existing_id)
        if existing is None:
            raise StoreWriteFailure(f"contact {candidate.existing_id} vanished during merge")
        self.contacts_repo.update(merge_contact(existing, incoming))
        return "merged" if candidate.match_type == "name_company" else "updated"

    def run(self, ctx: RunContext) -> RunContext:
        synced_at = datetime.now(timezone.utc)
        summary = ctx.summary
        for index, raw in enumerate(ctx.raw_contacts or []):
            if self.require_identifier and not raw.has_identifier():
                summary.bump("skipped")
                continue
            try:
                outcome = self._apply(ctx, raw, synced_at)
            except StoreWriteFailure as e:
                logger.error(
                    "contact write failed at item %d",
                    index,
                    extra={"step": "resolve_merge", "status": "error", "team_id": ctx.team_id, "error": str(e)},
                )
                summary.record_failure(f"item {index}: {e}")
                continue
            summary.record_success(outcome)
            if self.on_processed:
                self.on_processed(summary.attempted)

        logger.info(
            "resolved %d sightings: %s",
            summary.attempted,
            summary.counts,
            extra={"step": "resolve_merge", "status": "ok", "team_id": ctx.team_id},
        )
        return ctx
