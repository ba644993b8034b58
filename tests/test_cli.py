from __future__ import annotations

import json
import sys
from typing import List

import pytest

from config.settings import get_settings
from services.network_graph_client import parse_hits


def _run_cli_with_args(args_list: List[str]) -> None:
    argv_backup = sys.argv[:]
    try:
        sys.argv = ["cli.py"] + args_list
        if "cli" in sys.modules:
            del sys.modules["cli"]
        import cli  # type: ignore
        try:
            cli.main()  # type: ignore[attr-defined]
        except SystemExit as e:
            code = int(getattr(e, "code", 0) or 0)
            if code not in (0, None):
                raise
    finally:
        sys.argv = argv_backup


class FakeGraphClient:
    def __init__(self, settings=None, session=None):
        self.settings = settings

    def search(self, company_domain, target_titles=None):
        if company_domain != "acme.com":
            return []
        return parse_hits(
            [
                {
                    "profile_info": {"full_name": "Tia Target", "current_title": "CTO", "current_company": "Acme"},
                    "connections": [
                        {"connector_name": "Jane Doe", "strength": 0.8, "sources": [{"origin": "linkedin"}]},
                        {"connector_name": "Max Muster", "strength": 0.6, "sources": [{"origin": "email"}]},
                    ],
                }
            ]
        )


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("RUN_ID", "pre-existing")
    monkeypatch.setenv("LLM_TRACE", "false")
    get_settings.cache_clear()
    return str(tmp_path / "cli.db")


def _write_csv(tmp_path):
    path = tmp_path / "connections.csv"
    path.write_text(
        "First Name,Last Name,URL,Email Address,Company,Position\n"
        "Jane,Doe,https://www.linkedin.com/in/janedoe/,jane@acme.com,Acme,CTO\n"
        "Max,Muster,linkedin.com/in/max,,Initech,VP Sales\n",
        encoding="utf-8",
    )
    return str(path)


def test_ingest_score_and_report(tmp_path, cli_env, monkeypatch, capsys):
    import services.network_graph_client as ngc

    monkeypatch.setattr(ngc, "NetworkGraphClient", FakeGraphClient)
    db = cli_env
    csv_path = _write_csv(tmp_path)

    _run_cli_with_args(["--db", db, "bootstrap"])
    _run_cli_with_args(["--db", db, "ingest", "--team", "t1", "--owner", "u1", "--source", "csv_export", "--input", csv_path])
    # Re-importing the same export updates rather than duplicates
    _run_cli_with_args(["--db", db, "ingest", "--team", "t1", "--source", "csv_export", "--input", csv_path])
    out = capsys.readouterr().out
    assert "CONTACT INGEST (CSV_EXPORT)" in out
    assert "inserted: 2" in out
    assert "updated: 2" in out

    _run_cli_with_args(["--db", db, "add-prospect", "--team", "t1", "--name", "Acme", "--domain", "https://acme.com"])
    _run_cli_with_args(["--db", db, "add-prospect", "--team", "t1", "--name", "Globex", "--domain", "globex.com"])
    _run_cli_with_args(["--db", db, "score-prospects", "--team", "t1"])
    out = capsys.readouterr().out
    assert "Status: completed" in out
    assert "scored: 2" in out

    _run_cli_with_args(["--db", db, "report-prospects", "--team", "t1"])
    out = capsys.readouterr().out
    rows = json.loads(out[out.index("[") :])
    assert [r["company_domain"] for r in rows] == ["acme.com", "globex.com"]
    assert rows[0]["connection_score"] == 59
    assert rows[0]["best_connector"] == "Jane Doe"
    assert rows[0]["has_warm_intro"] is True
    assert rows[1]["connection_score"] == 0

    _run_cli_with_args(["--db", db, "report-contact", "--team", "t1", "--profile", "linkedin.com/in/JaneDoe"])
    out = capsys.readouterr().out
    contact = json.loads(out[out.index("{") :])
    assert contact["email"] == "jane@acme.com"
    assert contact["owner_id"] == "u1"

    # Team scoping: nothing leaks into another team's view
    _run_cli_with_args(["--db", db, "report-contact", "--team", "t2", "--email", "jane@acme.com"])
    assert "No record found" in capsys.readouterr().out


def test_missing_provider_key_is_reported_not_raised(cli_env, monkeypatch, capsys):
    monkeypatch.delenv("NETWORK_GRAPH_API_KEY", raising=False)
    get_settings.cache_clear()
    db = cli_env
    _run_cli_with_args(["--db", db, "add-prospect", "--team", "t1", "--name", "Acme", "--domain", "acme.com"])
    with pytest.raises(SystemExit) as info:
        _run_cli_with_args(["--db", db, "score-prospects", "--team", "t1"])
    assert info.value.code == 2
    assert "Configuration error" in capsys.readouterr().out


def test_busy_team_lease_halts_command(tmp_path, cli_env, capsys):
    from db import schema
    from db.connection import get_connection
    from db.repos.sync_leases_repo import SyncLeasesRepo

    db = cli_env
    conn = get_connection(db)
    schema.bootstrap(conn)
    SyncLeasesRepo(conn).acquire("t1", "someone-else", ttl_seconds=600)
    conn.close()

    with pytest.raises(SystemExit) as info:
        _run_cli_with_args(["--db", db, "ingest", "--team", "t1", "--source", "csv_export", "--input", _write_csv(tmp_path)])
    assert info.value.code == 2
    out = capsys.readouterr().out
    assert "HALTED: lease_unavailable" in out


def test_invalid_settings_exit_cleanly_for_every_command(cli_env, monkeypatch, capsys):
    monkeypatch.setenv("AI_ENABLED", "true")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    get_settings.cache_clear()
    with pytest.raises(SystemExit) as info:
        _run_cli_with_args(["--db", cli_env, "bootstrap"])
    assert info.value.code == 2
    assert "Configuration error: OPENAI_API_KEY required" in capsys.readouterr().out


def test_missing_input_file_is_reported(tmp_path, cli_env, capsys):
    missing = str(tmp_path / "nope.csv")
    with pytest.raises(SystemExit) as info:
        _run_cli_with_args(["--db", cli_env, "ingest", "--team", "t1", "--source", "csv_export", "--input", missing])
    assert info.value.code == 2
    assert f"Cannot read csv_export input {missing}" in capsys.readouterr().out
