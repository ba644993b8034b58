from __future__ import annotations

import pytest

from models.ai_match import AIMatch
from models.connection_path import ConnectionPath
from models.contact import Contact
from models.prospect import Prospect
from services.scoring import ai_match_to_path, has_warm_intro, rank_prospects, score_paths
from services.strength import contact_to_path, graph_to_contact, round_half_up


def _path(strength, connector="Ann"):
    return ConnectionPath(connector_name=connector, strength=strength)


def test_two_paths_score():
    result = score_paths([_path(0.8), _path(0.6)])
    assert result.score == 59
    assert result.path_count == 2
    assert result.best_path.strength == 0.8


def test_path_bonus_is_capped():
    assert score_paths([_path(1.0) for _ in range(10)]).score == 100


def test_no_paths_scores_zero():
    result = score_paths([])
    assert result.score == 0
    assert result.best_path is None
    assert result.path_count == 0


def test_single_weak_path():
    # 0.1 * 70 + 5 = 12
    assert score_paths([_path(0.1)]).score == 12


def test_half_rounds_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    # 0.75 * 70 + 5 = 57.5
    assert score_paths([_path(0.75)]).score == 58


def test_score_is_deterministic():
    paths = [_path(0.9, "Bob"), _path(0.4, "Cid"), _path(0.4, "Ann")]
    assert score_paths(paths) == score_paths(list(paths))


@pytest.mark.parametrize("score,expected", [(49, False), (50, True), (51, True)])
def test_warm_intro_threshold_is_inclusive(score, expected):
    assert has_warm_intro(score, 50) is expected


def test_ai_match_becomes_synthetic_path():
    contact = Contact(id=3, team_id="t1", full_name="Ann Lee", connection_strength=50, source="network_graph")
    match = AIMatch(name="Ann Lee", match_type="alumni", relevance_score=80, reasoning="Worked at Acme")
    path = ai_match_to_path(match, contact, "Acme")
    assert path.strength == pytest.approx(0.4)
    assert path.connector_contact_id == 3
    assert path.connection_type == "alumni"
    assert path.target_company == "Acme"
    assert path.shared_context == "Worked at Acme"


def test_ai_match_with_unknown_strength_contributes_zero():
    contact = Contact(id=3, team_id="t1", full_name="Ann Lee", source="csv_export")
    match = AIMatch(name="Ann Lee", match_type="current_employee", relevance_score=100)
    assert ai_match_to_path(match, contact).strength == 0.0


def test_strength_scale_conversions():
    assert graph_to_contact(0.756) == 76.0
    assert graph_to_contact(1.0) == 100.0
    assert contact_to_path(40) == 0.4
    assert contact_to_path(None) == 0.0


def test_rank_prospects_orders_by_score_then_name_then_id():
    prospects = [
        Prospect(id=3, team_id="t1", company_name="beta", company_domain="b.com", connection_score=70),
        Prospect(id=2, team_id="t1", company_name="Alpha", company_domain="a.com", connection_score=70),
        Prospect(id=1, team_id="t1", company_name="Zed", company_domain="z.com", connection_score=90),
        Prospect(id=4, team_id="t1", company_name="alpha", company_domain="a2.com", connection_score=70),
    ]
    assert [p.id for p in rank_prospects(prospects)] == [1, 2, 4, 3]
