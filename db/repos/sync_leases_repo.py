from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional


class SyncLeasesRepo:
    """Per-team mutual exclusion for sync runs, backed by one row per team."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def acquire(self, team_id: str, holder: str, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        """Take the team's lease unless another holder has a live one. Returns True on success."""
        now = now or datetime.now(timezone.utc)
        expires = now + timedelta(seconds=ttl_seconds)
        cur = self.conn.cursor()
        # Expired leases are overwritten; a live lease held by someone else is left alone
        cur.execute(
            (
                "INSERT INTO sync_leases (team_id, holder, acquired_at, expires_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(team_id) DO UPDATE SET holder = excluded.holder, "
                " acquired_at = excluded.acquired_at, expires_at = excluded.expires_at "
                "WHERE sync_leases.expires_at <= ? OR sync_leases.holder = excluded.holder"
            ),
            (team_id, holder, now.isoformat(), expires.isoformat(), now.isoformat()),
        )
        self.conn.commit()
        return self.holder(team_id) == holder

    def release(self, team_id: str, holder: str) -> None:
        self.conn.execute("DELETE FROM sync_leases WHERE team_id = ? AND holder = ?", (team_id, holder))
        self.conn.commit()

    def holder(self, team_id: str) -> Optional[str]:
        cur = self.conn.cursor()
        cur.execute("SELECT holder FROM sync_leases WHERE team_id = ?", (team_id,))
        row = cur.fetchone()
        return row[0] if row else None
