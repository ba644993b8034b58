from __future__ import annotations

import sqlite3

from services.domain_utils import normalize_text_key


def _backfill_name_company_keys(cur: sqlite3.Cursor) -> None:
    # Tables created before the casefolded keys existed get the columns and values added
    columns = {row[1] for row in cur.execute("PRAGMA table_info(contacts);").fetchall()}
    for column in ("name_key", "company_key"):
        if column not in columns:
            cur.execute(f"ALTER TABLE contacts ADD COLUMN {column} TEXT;")
    rows = cur.execute(
        "SELECT id, full_name, company_name FROM contacts WHERE name_key IS NULL AND full_name IS NOT NULL"
    ).fetchall()
    for contact_id, full_name, company_name in rows:
        cur.execute(
            "UPDATE contacts SET name_key = ?, company_key = ? WHERE id = ?",
            (normalize_text_key(full_name), normalize_text_key(company_name), contact_id),
        )


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create contacts/prospects/sync tables and indexes (idempotent)."""
    cur = conn.cursor()

    # Contacts: one row per person known to a team
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS contacts (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  team_id TEXT NOT NULL,\n"
            "  owner_id TEXT,\n"
            "  full_name TEXT NOT NULL,\n"
            "  email TEXT,\n"
            "  email_key TEXT,\n"
            "  profile_url TEXT,\n"
            "  profile_url_key TEXT,\n"
            "  name_key TEXT,\n"
            "  company_key TEXT,\n"
            "  first_name TEXT,\n"
            "  last_name TEXT,\n"
            "  title TEXT,\n"
            "  company_name TEXT,\n"
            "  company_domain TEXT,\n"
            "  phone TEXT,\n"
            "  location TEXT,\n"
            "  source TEXT NOT NULL,\n"
            "  source_id TEXT,\n"
            "  connection_strength REAL,\n"
            "  best_connector TEXT,\n"
            "  interaction_count INTEGER NOT NULL DEFAULT 0,\n"
            "  last_interaction_at TEXT,\n"
            "  last_sync_at TEXT,\n"
            "  work_history_json TEXT,\n"
            "  enriched_at TEXT,\n"
            "  created_at TEXT NOT NULL\n"
            ")"
        )
    )
    # At most one contact per normalized identifier within a team
    cur.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS ux_contacts_team_email_key "
        "ON contacts(team_id, email_key) WHERE email_key IS NOT NULL;"
    )
    cur.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS ux_contacts_team_profile_url_key "
        "ON contacts(team_id, profile_url_key) WHERE profile_url_key IS NOT NULL;"
    )
    _backfill_name_company_keys(cur)
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_contacts_team_name_company_key "
        "ON contacts(team_id, name_key, company_key);"
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_contacts_team_domain ON contacts(team_id, company_domain);")

    # Prospects: target companies and their last connection snapshot
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS prospects (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  team_id TEXT NOT NULL,\n"
            "  company_name TEXT NOT NULL,\n"
            "  company_domain TEXT NOT NULL,\n"
            "  industry TEXT,\n"
            "  description TEXT,\n"
            "  target_titles_json TEXT,\n"
            "  connection_score INTEGER NOT NULL DEFAULT 0,\n"
            "  best_connector TEXT,\n"
            "  connection_path_count INTEGER NOT NULL DEFAULT 0,\n"
            "  has_warm_intro INTEGER NOT NULL DEFAULT 0,\n"
            "  best_path_json TEXT,\n"
            "  top_paths_json TEXT,\n"
            "  matched_at TEXT,\n"
            "  created_at TEXT NOT NULL,\n"
            "  UNIQUE(team_id, company_domain)\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_prospects_team_score ON prospects(team_id, connection_score);")

    # One live lease per team guards against overlapping sync runs
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS sync_leases (\n"
            "  team_id TEXT PRIMARY KEY,\n"
            "  holder TEXT NOT NULL,\n"
            "  acquired_at TEXT NOT NULL,\n"
            "  expires_at TEXT NOT NULL\n"
            ")"
        )
    )

    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS sync_runs (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  run_id TEXT NOT NULL UNIQUE,\n"
            "  team_id TEXT NOT NULL,\n"
            "  kind TEXT NOT NULL,\n"
            "  status TEXT NOT NULL,\n"
            "  attempted INTEGER NOT NULL DEFAULT 0,\n"
            "  succeeded INTEGER NOT NULL DEFAULT 0,\n"
            "  failed INTEGER NOT NULL DEFAULT 0,\n"
            "  summary_json TEXT,\n"
            "  halt_reason TEXT,\n"
            "  started_at TEXT NOT NULL,\n"
            "  finished_at TEXT\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_sync_runs_team ON sync_runs(team_id, started_at);")

    conn.commit()
