from __future__ import annotations

import logging
import sqlite3
import time
from typing import Callable, Dict, List, Optional, Sequence

from config.settings import Settings, get_settings
from db.repos.contacts_repo import ContactsRepo
from db.repos.prospects_repo import ProspectsRepo
from models.ai_match import AIMatch
from models.connection_path import ConnectionPath
from models.contact import Contact
from models.prospect import Prospect
from pipelines.runner import RunContext
from pipelines.steps.score_prospects import ITEM_ERRORS, RUN_ERRORS, save_connection_snapshot
from services.connection_paths import sort_paths
from services.errors import MalformedUpstreamResponse
from services.relevance_matcher import RelevanceMatcher
from services.scoring import ai_match_to_path, has_warm_intro
from utils.rate_limit import call_with_backoff


logger = logging.getLogger(__name__)


def _name_key(name: Optional[str]) -> str:
    return " ".join((name or "").split()).casefold()


def paths_from_matches(
    matches: Sequence[AIMatch],
    candidates: Sequence[Contact],
    prospect: Prospect,
    team_id: Optional[str] = None,
) -> List[ConnectionPath]:
    """Resolve matched names against the candidates sent in the prompt, never the wider store."""
    by_name: Dict[str, Contact] = {}
    for contact in candidates:
        # First candidate wins a duplicate name; candidates arrive in a stable order
        by_name.setdefault(_name_key(contact.full_name), contact)
    paths: List[ConnectionPath] = []
    for match in matches:
        contact = by_name.get(_name_key(match.name))
        if contact is None:
            logger.warning(
                "model proposed unknown contact %r for %s",
                match.name,
                prospect.company_domain,
                extra={"step": "ai_match", "status": "unmatched", "team_id": team_id or "-"},
            )
            continue
        paths.append(ai_match_to_path(match, contact, prospect.company_name))
    return sort_paths(paths)


class MatchProspectsWithAI:
    """AI-assisted alternative to graph path finding; scored with the same scorer."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        matcher: RelevanceMatcher,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.contacts_repo = ContactsRepo(conn)
        self.prospects_repo = ProspectsRepo(conn)
        self.matcher = matcher
        self.settings = settings or get_settings()
        self.sleep = sleep

    def run(self, ctx: RunContext) -> RunContext:
        summary = ctx.summary
        candidates = self.contacts_repo.list_candidates_for_matching(ctx.team_id, self.settings.ai_max_candidates)
        ctx.meta["ai_candidates"] = len(candidates)
        for index, prospect in enumerate(ctx.prospects or []):
            if index > 0:
                self.sleep(self.settings.item_delay_seconds)
            log_extra = {"step": "ai_match", "team_id": ctx.team_id, "provider": "openai"}
            try:
                try:
                    matches = call_with_backoff(
                        self.matcher.match,
                        prospect,
                        candidates,
                        team_id=ctx.team_id,
                        max_retries=self.settings.max_rate_limit_retries,
                        backoff_seconds=self.settings.rate_limit_backoff_seconds,
                        sleep=self.sleep,
                    )
                except MalformedUpstreamResponse as e:
                    logger.warning(
                        "unparseable matcher output for %s; treating as no matches",
                        prospect.company_domain,
                        extra={**log_extra, "status": "malformed", "error": str(e)},
                    )
                    summary.bump("malformed_responses")
                    matches = []
                paths = paths_from_matches(matches, candidates, prospect, ctx.team_id)
                result = save_connection_snapshot(self.prospects_repo, ctx.team_id, prospect, paths, self.settings)
            except RUN_ERRORS as e:
                logger.error("halting run: %s", e, extra={**log_extra, "status": "halted", "error": str(e)})
                summary.halt(f"{type(e).__name__}: {e}")
                break
            except ITEM_ERRORS as e:
                logger.error(
                    "prospect %s failed", prospect.company_domain, extra={**log_extra, "status": "error", "error": str(e)}
                )
                summary.record_failure(f"{prospect.company_domain}: {e}")
                continue
            summary.record_success("scored")
            if has_warm_intro(result.score, self.settings.warm_intro_threshold):
                summary.bump("warm_intros")
        return ctx
