from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import List, Optional

from config.settings import Settings, get_settings
from db.repos.sync_leases_repo import SyncLeasesRepo
from db.repos.sync_runs_repo import SyncRunsRepo
from pipelines.runner import Pipeline, RunContext, Step
from services.errors import ConfigurationError, QuotaExhausted
from utils.logging_setup import bind_run, clear_run


logger = logging.getLogger(__name__)

LEASE_UNAVAILABLE = "lease_unavailable"


def run_sync(
    conn: sqlite3.Connection,
    ctx: RunContext,
    steps: List[Step],
    *,
    kind: str,
    settings: Optional[Settings] = None,
) -> RunContext:
    """Run ``steps`` for one team while holding that team's sync lease.

    A second run for the same team is refused while the lease is live. The
    run is recorded in ``sync_runs`` with its final counts. Fatal conditions
    end up on ``ctx.summary`` as a halt reason; nothing is raised.
    """
    settings = settings or get_settings()
    ctx.run_id = ctx.run_id or uuid.uuid4().hex
    leases = SyncLeasesRepo(conn)
    runs = SyncRunsRepo(conn)
    log_extra = {"step": kind, "team_id": ctx.team_id, "run_id": ctx.run_id}

    if not leases.acquire(ctx.team_id, ctx.run_id, settings.sync_lease_ttl_seconds):
        logger.warning(
            "another sync holds the lease for this team; not starting",
            extra={**log_extra, "status": LEASE_UNAVAILABLE},
        )
        ctx.summary.halt(f"{LEASE_UNAVAILABLE}: a sync is already running for team {ctx.team_id}")
        return ctx

    runs.start(ctx.run_id, ctx.team_id, kind)
    bind_run(ctx.run_id, ctx.team_id)
    try:
        ctx = Pipeline(steps).run(ctx)
    except (QuotaExhausted, ConfigurationError) as e:
        logger.error("halting run: %s", e, extra={**log_extra, "status": "halted", "error": str(e)})
        ctx.summary.halt(f"{type(e).__name__}: {e}")
    finally:
        summary = ctx.summary
        runs.finish(
            ctx.run_id,
            status=summary.status,
            attempted=summary.attempted,
            succeeded=summary.succeeded,
            failed=summary.failed,
            summary=summary.to_dict(),
            halt_reason=summary.halt_reason,
        )
        leases.release(ctx.team_id, ctx.run_id)
        clear_run()

    logger.info(
        "run finished: attempted=%d succeeded=%d failed=%d",
        ctx.summary.attempted,
        ctx.summary.succeeded,
        ctx.summary.failed,
        extra={**log_extra, "status": ctx.summary.status},
    )
    return ctx
