from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class SyncRunsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def start(self, run_id: str, team_id: str, kind: str) -> int:
        """Record a run as started; returns the row id."""
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO sync_runs (run_id, team_id, kind, status, started_at) VALUES (?, ?, ?, 'running', ?)",
            (run_id, team_id, kind, datetime.now(timezone.utc).isoformat()),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def finish(
        self,
        run_id: str,
        *,
        status: str,
        attempted: int,
        succeeded: int,
        failed: int,
        summary: Optional[Dict[str, Any]] = None,
        halt_reason: Optional[str] = None,
    ) -> None:
        self.conn.execute(
            (
                "UPDATE sync_runs SET status = ?, attempted = ?, succeeded = ?, failed = ?, "
                "summary_json = ?, halt_reason = ?, finished_at = ? WHERE run_id = ?"
            ),
            (
                status,
                attempted,
                succeeded,
                failed,
                json.dumps(summary or {}, ensure_ascii=False),
                halt_reason,
                datetime.now(timezone.utc).isoformat(),
                run_id,
            ),
        )
        self.conn.commit()

    def get(self, run_id: str) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.row_factory = sqlite3.Row
        cur.execute("SELECT * FROM sync_runs WHERE run_id = ?", (run_id,))
        row = cur.fetchone()
        if not row:
            return None
        result = dict(row)
        result["summary"] = json.loads(result.pop("summary_json") or "{}")
        return result
