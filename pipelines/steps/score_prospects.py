from __future__ import annotations

import logging
import sqlite3
import time
from typing import Callable, List, Optional, Sequence

from config.settings import Settings, get_settings
from db.repos.prospects_repo import ProspectsRepo
from models.connection_path import ConnectionPath, ConnectionScore
from models.prospect import Prospect
from pipelines.runner import RunContext
from ports.repos import ProspectsRepoPort
from services.connection_paths import ConnectionPathFinder
from services.errors import (
    ConfigurationError,
    MalformedUpstreamResponse,
    QuotaExhausted,
    RetryBudgetExhausted,
    StoreWriteFailure,
    UpstreamError,
)
from services.scoring import has_warm_intro, score_paths
from utils.rate_limit import call_with_backoff


logger = logging.getLogger(__name__)

# Failures that cost one prospect but leave the run going
ITEM_ERRORS = (RetryBudgetExhausted, UpstreamError, MalformedUpstreamResponse, StoreWriteFailure)
# Failures that stop the whole run
RUN_ERRORS = (QuotaExhausted, ConfigurationError)


def save_connection_snapshot(
    repo: ProspectsRepoPort,
    team_id: str,
    prospect: Prospect,
    paths: Sequence[ConnectionPath],
    settings: Settings,
) -> ConnectionScore:
    """Score strength-sorted paths and persist score, best path and top-N on the prospect."""
    result = score_paths(paths)
    best = result.best_path
    repo.save_score(
        team_id,
        int(prospect.id),
        score=result.score,
        best_connector=best.connector_name if best else None,
        path_count=result.path_count,
        has_warm_intro=has_warm_intro(result.score, settings.warm_intro_threshold),
        best_path=best,
        top_paths=list(paths[: settings.top_paths_limit]),
    )
    return result


class LoadProspects:
    def __init__(self, conn: sqlite3.Connection, ids: Optional[List[int]] = None) -> None:
        self.repo = ProspectsRepo(conn)
        self.ids = ids

    def run(self, ctx: RunContext) -> RunContext:
        ctx.prospects = self.repo.list_for_team(ctx.team_id, self.ids)
        ctx.meta["prospects_total"] = len(ctx.prospects)
        return ctx


class FindAndScoreProspects:
    """Graph-backed scoring: finder -> scorer -> store, one prospect at a time."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        finder: ConnectionPathFinder,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
        target_titles: Optional[List[str]] = None,
    ) -> None:
        self.repo = ProspectsRepo(conn)
        self.finder = finder
        self.settings = settings or get_settings()
        self.sleep = sleep
        # Overrides each prospect's own title keywords for this run
        self.target_titles = target_titles

    def run(self, ctx: RunContext) -> RunContext:
        summary = ctx.summary
        for index, prospect in enumerate(ctx.prospects or []):
            if index > 0:
                self.sleep(self.settings.item_delay_seconds)
            log_extra = {"step": "score_prospects", "team_id": ctx.team_id, "provider": "network_graph"}
            try:
                paths = call_with_backoff(
                    self.finder.find_paths,
                    prospect.company_domain,
                    self.target_titles or prospect.target_titles or None,
                    max_retries=self.settings.max_rate_limit_retries,
                    backoff_seconds=self.settings.rate_limit_backoff_seconds,
                    sleep=self.sleep,
                )
                result = save_connection_snapshot(self.repo, ctx.team_id, prospect, paths, self.settings)
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
            logger.info(
                "scored %s: %d (%d paths)",
                prospect.company_domain,
                result.score,
                result.path_count,
                extra={**log_extra, "status": "ok"},
            )
        return ctx
