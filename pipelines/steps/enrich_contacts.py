from __future__ import annotations

import logging
import sqlite3
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from config.settings import Settings, get_settings
from db.repos.contacts_repo import ContactsRepo
from models.contact import Contact
from models.person_record import PersonRecord
from pipelines.runner import RunContext
from pipelines.steps.score_prospects import ITEM_ERRORS, RUN_ERRORS
from ports.providers import PersonEnrichmentPort
from services.merge import merge_contact
from utils.rate_limit import call_with_backoff


logger = logging.getLogger(__name__)


def contact_from_record(existing: Contact, record: PersonRecord, enriched_at: datetime) -> Contact:
    """Shape enrichment data as an incoming sighting of ``existing`` so it goes through merge."""
    return Contact(
        team_id=existing.team_id,
        owner_id=existing.owner_id,
        full_name=record.full_name or existing.full_name,
        email=record.email,
        profile_url=record.profile_url,
        first_name=record.first_name,
        last_name=record.last_name,
        title=record.title,
        company_name=record.company_name,
        company_domain=record.company_domain,
        phone=record.phone,
        location=record.location,
        source=existing.source,
        work_history=record.work_history,
        enriched_at=enriched_at,
    )


class LoadContactsPendingEnrichment:
    def __init__(self, conn: sqlite3.Connection, limit: int = 50) -> None:
        self.repo = ContactsRepo(conn)
        self.limit = limit

    def run(self, ctx: RunContext) -> RunContext:
        ctx.contacts = self.repo.list_pending_enrichment(ctx.team_id, limit=self.limit)
        ctx.meta["pending_contacts_total"] = len(ctx.contacts)
        return ctx


class EnrichContacts:
    def __init__(
        self,
        conn: sqlite3.Connection,
        client: PersonEnrichmentPort,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[Callable[[int, int, int, str], None]] = None,
    ) -> None:
        self.repo = ContactsRepo(conn)
        self.client = client
        self.settings = settings or get_settings()
        self.sleep = sleep
        self.on_progress = on_progress

    def _enrich_one(self, contact: Contact) -> str:
        record = call_with_backoff(
            self.client.enrich,
            profile_url=contact.profile_url,
            email=contact.email,
            name=contact.full_name,
            company=contact.company_name,
            max_retries=self.settings.max_rate_limit_retries,
            backoff_seconds=self.settings.rate_limit_backoff_seconds,
            sleep=self.sleep,
        )
        now = datetime.now(timezone.utc)
        if record is None:
            # No data is not an error; remember the attempt
            self.repo.mark_enrichment_attempted(contact.team_id, int(contact.id), now)
            return "not_found"
        self.repo.update(merge_contact(contact, contact_from_record(contact, record, now)))
        return "enriched"

    def run(self, ctx: RunContext) -> RunContext:
        summary = ctx.summary
        contacts = ctx.contacts or []
        total = len(contacts)
        for index, contact in enumerate(contacts):
            if index > 0:
                self.sleep(self.settings.item_delay_seconds)
            if self.on_progress:
                self.on_progress(index + 1, total, int(contact.id), contact.full_name)
            log_extra = {"step": "enrich", "team_id": ctx.team_id, "provider": "person_enrichment"}
            try:
                outcome = self._enrich_one(contact)
            except RUN_ERRORS as e:
                logger.error("halting run: %s", e, extra={**log_extra, "status": "halted", "error": str(e)})
                summary.halt(f"{type(e).__name__}: {e}")
                break
            except ITEM_ERRORS as e:
                logger.error(
                    "contact %s failed", contact.id, extra={**log_extra, "status": "error", "error": str(e)}
                )
                summary.record_failure(f"contact {contact.id}: {e}")
                continue
            summary.record_success(outcome)
        return ctx
