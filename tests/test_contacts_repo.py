from __future__ import annotations

from datetime import datetime, timezone

import pytest

from db.repos.contacts_repo import ContactsRepo
from db.repos.prospects_repo import ProspectsRepo
from models.connection_path import ConnectionPath
from models.contact import Contact, WorkHistoryEntry
from services.errors import StoreWriteFailure


def _contact(**kw):
    data = {"team_id": "t1", "full_name": "Jane Doe", "source": "csv_export"}
    data.update(kw)
    return Contact(**data)


def test_insert_and_read_back_round_trips_fields(conn):
    repo = ContactsRepo(conn)
    seen = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
    cid = repo.insert(
        _contact(
            email=" Jane@Acme.com ",
            profile_url="https://www.linkedin.com/in/janedoe/",
            connection_strength=65,
            interaction_count=2,
            last_interaction_at=seen,
            work_history=[WorkHistoryEntry(company_name="Acme", title="CTO", is_current=True)],
        )
    )
    got = repo.get("t1", cid)
    assert got.email == "Jane@Acme.com"
    assert got.connection_strength == 65
    assert got.last_interaction_at == seen
    assert got.work_history[0].title == "CTO"
    assert got.created_at is not None
    assert repo.find_by_profile_url("t1", "linkedin.com/in/JANEDOE").id == cid
    assert repo.find_by_email("t1", "jane@acme.com").id == cid
    assert repo.get("other-team", cid) is None


def test_unique_identifier_per_team(conn):
    repo = ContactsRepo(conn)
    repo.insert(_contact(email="jane@acme.com"))
    with pytest.raises(StoreWriteFailure):
        repo.insert(_contact(full_name="Other", email="JANE@acme.com"))
    # Same address in another team is a different person record
    repo.insert(_contact(team_id="t2", email="jane@acme.com"))


def test_update_keeps_stored_identifier_on_collision(conn):
    repo = ContactsRepo(conn)
    first = repo.insert(_contact(email="jane@acme.com"))
    second = repo.insert(_contact(full_name="J Doe", profile_url="linkedin.com/in/jdoe"))
    other = repo.get("t1", second)
    repo.update(other.model_copy(update={"email": "jane@acme.com", "title": "CEO"}))
    got = repo.get("t1", second)
    assert got.email is None
    assert got.title == "CEO"
    assert repo.find_by_email("t1", "jane@acme.com").id == first


def test_update_missing_row_fails(conn):
    with pytest.raises(StoreWriteFailure):
        ContactsRepo(conn).update(_contact(id=999))


def test_pending_enrichment_queue(conn):
    repo = ContactsRepo(conn)
    a = repo.insert(_contact(email="a@x.com"))
    repo.insert(_contact(full_name="No Handle"))
    c = repo.insert(_contact(full_name="Has Company", company_name="Acme"))
    assert [x.id for x in repo.list_pending_enrichment("t1")] == [a, c]
    repo.mark_enrichment_attempted("t1", a)
    assert [x.id for x in repo.list_pending_enrichment("t1")] == [c]


def test_candidates_for_matching_strongest_first(conn):
    repo = ContactsRepo(conn)
    weak = repo.insert(_contact(full_name="Weak", connection_strength=10))
    none = repo.insert(_contact(full_name="Unknown"))
    strong = repo.insert(_contact(full_name="Strong", connection_strength=90))
    assert [c.id for c in repo.list_candidates_for_matching("t1", 10)] == [strong, weak, none]
    assert len(repo.list_candidates_for_matching("t1", 1)) == 1


def test_prospect_upsert_and_snapshot(conn):
    repo = ProspectsRepo(conn)
    pid = repo.upsert_by_domain("t1", "Acme", "https://www.acme.com/", target_titles=["CTO"])
    assert repo.upsert_by_domain("t1", "Acme Inc", "acme.com") == pid
    prospect = repo.get("t1", pid)
    assert prospect.company_name == "Acme Inc"
    assert prospect.target_titles == ["CTO"]

    path = ConnectionPath(connector_name="Ann", target_name="Tia", strength=0.8)
    repo.save_score(
        "t1",
        pid,
        score=61,
        best_connector="Ann",
        path_count=1,
        has_warm_intro=True,
        best_path=path,
        top_paths=[path],
    )
    saved = repo.get("t1", pid)
    assert saved.connection_score == 61
    assert saved.has_warm_intro is True
    assert saved.best_path == path
    assert saved.top_paths == [path]
    assert saved.matched_at is not None


def test_ranked_prospects_are_deterministic(conn):
    repo = ProspectsRepo(conn)
    ids = {}
    for name, domain, score in [("beta", "b.com", 40), ("Alpha", "a.com", 40), ("Zed", "z.com", 80)]:
        ids[name] = repo.upsert_by_domain("t1", name, domain)
        repo.save_score(
            "t1",
            ids[name],
            score=score,
            best_connector=None,
            path_count=0,
            has_warm_intro=score >= 50,
            best_path=None,
            top_paths=[],
        )
    assert [p.company_name for p in repo.list_ranked("t1")] == ["Zed", "Alpha", "beta"]
    assert [p.company_name for p in repo.list_ranked("t1", warm_only=True)] == ["Zed"]
