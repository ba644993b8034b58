from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from models.connection_path import ConnectionPath
from models.prospect import Prospect
from services.domain_utils import normalize_company_domain
from services.errors import StoreWriteFailure


_SELECT = (
    "SELECT id, team_id, company_name, company_domain, industry, description, target_titles_json, "
    "connection_score, best_connector, connection_path_count, has_warm_intro, best_path_json, "
    "top_paths_json, matched_at, created_at FROM prospects "
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProspectsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _to_prospect(row: sqlite3.Row) -> Prospect:
        best = json.loads(row["best_path_json"]) if row["best_path_json"] else None
        top = json.loads(row["top_paths_json"]) if row["top_paths_json"] else []
        return Prospect(
            id=row["id"],
            team_id=row["team_id"],
            company_name=row["company_name"],
            company_domain=row["company_domain"],
            industry=row["industry"],
            description=row["description"],
            target_titles=json.loads(row["target_titles_json"]) if row["target_titles_json"] else [],
            connection_score=row["connection_score"] or 0,
            best_connector=row["best_connector"],
            connection_path_count=row["connection_path_count"] or 0,
            has_warm_intro=bool(row["has_warm_intro"]),
            best_path=ConnectionPath.model_validate(best) if best else None,
            top_paths=[ConnectionPath.model_validate(p) for p in top],
            matched_at=datetime.fromisoformat(row["matched_at"]) if row["matched_at"] else None,
            created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
        )

    def _query(self, sql: str, params: tuple) -> List[Prospect]:
        cur = self.conn.cursor()
        cur.row_factory = sqlite3.Row
        cur.execute(sql, params)
        return [self._to_prospect(row) for row in cur.fetchall()]

    def upsert_by_domain(
        self,
        team_id: str,
        company_name: str,
        company_domain: str,
        industry: Optional[str] = None,
        description: Optional[str] = None,
        target_titles: Optional[Sequence[str]] = None,
    ) -> int:
        """Insert or update a prospect using (team, domain) as the stable key; returns prospect id."""
        domain = normalize_company_domain(company_domain)
        if not domain:
            raise ValueError("prospect requires a company domain")
        titles_json = json.dumps(list(target_titles), ensure_ascii=False) if target_titles else None
        sql = (
            "INSERT INTO prospects (team_id, company_name, company_domain, industry, description, target_titles_json, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(team_id, company_domain) DO UPDATE SET "
            " company_name = COALESCE(excluded.company_name, prospects.company_name), "
            " industry = COALESCE(excluded.industry, prospects.industry), "
            " description = COALESCE(excluded.description, prospects.description), "
            " target_titles_json = COALESCE(excluded.target_titles_json, prospects.target_titles_json) "
            "RETURNING id;"
        )
        try:
            cur = self.conn.cursor()
            cur.execute(sql, (team_id, company_name, domain, industry, description, titles_json, _now()))
            row = cur.fetchone()
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreWriteFailure(f"upsert prospect {domain} failed: {e}") from e
        return int(row[0])

    def get(self, team_id: str, prospect_id: int) -> Optional[Prospect]:
        rows = self._query(_SELECT + "WHERE team_id = ? AND id = ?", (team_id, prospect_id))
        return rows[0] if rows else None

    def list_for_team(self, team_id: str, ids: Optional[Sequence[int]] = None) -> List[Prospect]:
        if ids:
            placeholders = ", ".join("?" for _ in ids)
            return self._query(
                _SELECT + f"WHERE team_id = ? AND id IN ({placeholders}) ORDER BY id",
                (team_id, *ids),
            )
        return self._query(_SELECT + "WHERE team_id = ? ORDER BY id", (team_id,))

    def list_ranked(self, team_id: str, limit: int = 20, warm_only: bool = False) -> List[Prospect]:
        """Best-connected prospects first; ties broken by name then id so output is stable."""
        where = "WHERE team_id = ?"
        if warm_only:
            where += " AND has_warm_intro = 1"
        sql = _SELECT + where + " ORDER BY connection_score DESC, company_name COLLATE NOCASE, id LIMIT ?"
        return self._query(sql, (team_id, limit))

    def save_score(
        self,
        team_id: str,
        prospect_id: int,
        *,
        score: int,
        best_connector: Optional[str],
        path_count: int,
        has_warm_intro: bool,
        best_path: Optional[ConnectionPath],
        top_paths: Sequence[ConnectionPath],
    ) -> None:
        """Replace the prospect's connection snapshot in one write."""
        sql = (
            "UPDATE prospects SET connection_score = ?, best_connector = ?, connection_path_count = ?, "
            "has_warm_intro = ?, best_path_json = ?, top_paths_json = ?, matched_at = ? "
            "WHERE team_id = ? AND id = ?"
        )
        params = (
            int(score),
            best_connector,
            int(path_count),
            1 if has_warm_intro else 0,
            best_path.model_dump_json() if best_path else None,
            json.dumps([p.model_dump() for p in top_paths], ensure_ascii=False),
            _now(),
            team_id,
            prospect_id,
        )
        try:
            cur = self.conn.cursor()
            cur.execute(sql, params)
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreWriteFailure(f"save score for prospect {prospect_id} failed: {e}") from e
        if cur.rowcount == 0:
            raise StoreWriteFailure(f"prospect {prospect_id} not found for team {team_id}")
