import argparse
import json
import os
import sys
import uuid as _uuid
from typing import List

from config.settings import get_settings
from db import schema
from db.connection import get_connection
from db.repos.contacts_repo import ContactsRepo
from db.repos.prospects_repo import ProspectsRepo
from pipelines.runner import RunContext, Step
from pipelines.steps import (
    EnrichContacts,
    FindAndScoreProspects,
    LoadContactsPendingEnrichment,
    LoadProspects,
    MatchProspectsWithAI,
    ResolveAndMergeContacts,
)
from pipelines.sync import run_sync
from services.connection_paths import ConnectionPathFinder
from services.enrichment_service import PersonEnrichmentClient
from services.errors import ConfigurationError
from services.llm_client import LLMClient
from services.network_graph_client import NetworkGraphClient
from services.relevance_matcher import RelevanceMatcher
from services.reporting import contact_row, print_summary, prospect_rows
from services.scoring import rank_prospects
from sources.registry import get_source, source_names
from utils.logging_setup import init_logging
import sources  # noqa: F401  (registers built-in sources)


# Exit code when a run halts on a run-level condition (quota, config, lease)
EXIT_HALTED = 2


def _new_run_id() -> str:
    # Exported so LLM trace lines carry the same id as the sync_runs row
    run_id = _uuid.uuid4().hex
    os.environ["RUN_ID"] = run_id
    return run_id


def _open(args):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    return conn


def _run_batch(conn, args, steps: List[Step], kind: str, title: str, **ctx_fields) -> None:
    ctx = RunContext(team_id=args.team, run_id=_new_run_id(), **ctx_fields)
    ctx = run_sync(conn, ctx, steps, kind=kind)
    print_summary(title, ctx.summary, ctx.run_id)
    if ctx.summary.halted:
        raise SystemExit(EXIT_HALTED)


def _config_error(e: Exception) -> None:
    print(f"Configuration error: {e}")
    raise SystemExit(EXIT_HALTED)


def cmd_bootstrap(args):
    conn = _open(args)
    conn.close()
    print("Schema ready")


def cmd_ingest(args):
    src = get_source(args.source)
    try:
        raw_contacts = src.load(args.input)
    except (OSError, ValueError) as e:
        print(f"Cannot read {args.source} input {args.input}: {e}")
        raise SystemExit(EXIT_HALTED)
    conn = _open(args)
    try:
        step = ResolveAndMergeContacts(conn, require_identifier=args.require_identifier)
        _run_batch(
            conn,
            args,
            [step],
            f"ingest:{args.source}",
            f"Contact ingest ({args.source})",
            owner_id=args.owner,
            raw_contacts=raw_contacts,
        )
    finally:
        conn.close()


def cmd_enrich(args):
    try:
        client = PersonEnrichmentClient(get_settings())
    except ConfigurationError as e:
        _config_error(e)

    def _progress(cur, total, contact_id, name):
        print(f"[{cur}/{total}] Enriching contact_id={contact_id} name={name}")

    conn = _open(args)
    try:
        steps = [
            LoadContactsPendingEnrichment(conn, limit=args.limit),
            EnrichContacts(conn, client, on_progress=_progress if args.progress else None),
        ]
        _run_batch(conn, args, steps, "enrich", "Contact enrichment")
    finally:
        conn.close()


def cmd_add_prospect(args):
    conn = _open(args)
    try:
        prospect_id = ProspectsRepo(conn).upsert_by_domain(
            args.team,
            args.name,
            args.domain,
            industry=args.industry,
            description=args.description,
            target_titles=args.target_title,
        )
    finally:
        conn.close()
    print(f"Prospect {prospect_id} ready: {args.name} ({args.domain})")


def cmd_score_prospects(args):
    settings = get_settings()
    conn = _open(args)
    try:
        try:
            if args.mode == "ai":
                if not settings.ai_enabled:
                    raise ConfigurationError("AI matching requires AI_ENABLED=true")
                matcher = RelevanceMatcher(LLMClient(settings), max_candidates=settings.ai_max_candidates)
                scorer: Step = MatchProspectsWithAI(conn, matcher, settings)
            else:
                finder = ConnectionPathFinder(NetworkGraphClient(settings))
                scorer = FindAndScoreProspects(conn, finder, settings, target_titles=args.target_title)
        except ConfigurationError as e:
            _config_error(e)
        steps = [LoadProspects(conn, ids=args.prospect_id), scorer]
        _run_batch(conn, args, steps, f"score:{args.mode}", f"Prospect scoring ({args.mode})")
    finally:
        conn.close()


def cmd_report_prospects(args):
    conn = _open(args)
    try:
        prospects = ProspectsRepo(conn).list_ranked(args.team, limit=args.limit, warm_only=args.warm_only)
    finally:
        conn.close()
    print(json.dumps(prospect_rows(rank_prospects(prospects)), indent=2, ensure_ascii=False))


def cmd_report_contact(args):
    conn = _open(args)
    try:
        repo = ContactsRepo(conn)
        if args.email:
            contact = repo.find_by_email(args.team, args.email)
        else:
            contact = repo.find_by_profile_url(args.team, args.profile)
    finally:
        conn.close()
    if not contact:
        print("No record found for contact")
        return
    print(json.dumps(contact_row(contact), indent=2, ensure_ascii=False))


def main():
    try:
        settings = get_settings()
    except ConfigurationError as e:
        _config_error(e)
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Warm-intro contact and prospect CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite DB (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def _team(p):
        p.add_argument("--team", required=True, help="Team id every read and write is scoped to")

    p_boot = sub.add_parser("bootstrap", help="Create tables and indexes")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_ing = sub.add_parser("ingest", help="Resolve and merge contacts from a source export")
    _team(p_ing)
    p_ing.add_argument("--owner", default=None, help="Owner id recorded on newly created contacts")
    p_ing.add_argument("--source", required=True, choices=source_names(), help="Contact source")
    p_ing.add_argument("--input", required=True, help="Path to the source export file")
    p_ing.add_argument("--require-identifier", action="store_true", help="Skip rows with neither email nor profile URL")
    p_ing.set_defaults(func=cmd_ingest)

    p_enr = sub.add_parser("enrich", help="Enrich contacts that were never looked up")
    _team(p_enr)
    p_enr.add_argument("--limit", type=int, default=50, help="Max contacts to enrich in this run (default: 50)")
    p_enr.add_argument("--progress", action="store_true", help="Print progress for each contact")
    p_enr.set_defaults(func=cmd_enrich)

    p_add = sub.add_parser("add-prospect", help="Create or update a target company")
    _team(p_add)
    p_add.add_argument("--name", required=True)
    p_add.add_argument("--domain", required=True)
    p_add.add_argument("--industry", default=None)
    p_add.add_argument("--description", default=None)
    p_add.add_argument("--target-title", action="append", default=None, help="Title keyword (repeatable)")
    p_add.set_defaults(func=cmd_add_prospect)

    p_score = sub.add_parser("score-prospects", help="Find intro paths and score prospects")
    _team(p_score)
    p_score.add_argument("--mode", choices=["graph", "ai"], default="graph", help="Path source (default: graph)")
    p_score.add_argument("--prospect-id", type=int, action="append", default=None, help="Limit to id (repeatable)")
    p_score.add_argument("--target-title", action="append", default=None, help="Title keyword for this run (repeatable)")
    p_score.set_defaults(func=cmd_score_prospects)

    p_rp = sub.add_parser("report-prospects", help="List prospects by connection score")
    _team(p_rp)
    p_rp.add_argument("--limit", type=int, default=20)
    p_rp.add_argument("--warm-only", action="store_true", help="Only prospects with a warm intro")
    p_rp.set_defaults(func=cmd_report_prospects)

    p_rc = sub.add_parser("report-contact", help="Show one contact by email or profile URL")
    _team(p_rc)
    who = p_rc.add_mutually_exclusive_group(required=True)
    who.add_argument("--email")
    who.add_argument("--profile")
    p_rc.set_defaults(func=cmd_report_contact)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    sys.exit(main())
