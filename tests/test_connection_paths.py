from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from config.settings import get_settings
from models.graph_hit import GraphHit
from services.connection_paths import ConnectionPathFinder, describe_source, path_from_hit, sort_paths
from services.errors import ConfigurationError, QuotaExhausted, RateLimited, UpstreamError
from services.network_graph_client import NetworkGraphClient, parse_hits


def _hit(name, connections, company="Acme", website="acme.com"):
    return {
        "_source": {
            "profile_id": name.lower().replace(" ", "-"),
            "profile_info": {
                "full_name": name,
                "current_title": "VP Sales",
                "current_company": company,
                "current_company_website": website,
                "linkedin_url": f"https://linkedin.com/in/{name.lower().replace(' ', '')}",
            },
            "connections": connections,
        }
    }


def _conn(connector, strength, origin="work_history", **source):
    return {"connector_name": connector, "strength": strength, "sources": [{"origin": origin, **source}]}


class FakeResponse:
    def __init__(self, status_code=200, data: Any = None, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._data = data
        self.headers = headers or {}

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class FakeSession:
    def __init__(self, responses: List[FakeResponse]):
        self.responses = list(responses)
        self.bodies: List[Dict[str, Any]] = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.bodies.append(json)
        return self.responses.pop(0)


class FakeGraph:
    def __init__(self, hits):
        self.hits = hits
        self.calls = []

    def search(self, company_domain, target_titles=None):
        self.calls.append((company_domain, target_titles))
        return self.hits


@pytest.fixture
def graph_settings(monkeypatch):
    monkeypatch.setenv("NETWORK_GRAPH_API_KEY", "test-key")
    monkeypatch.setenv("NETWORK_GRAPH_PAGE_SIZE", "2")
    monkeypatch.setenv("NETWORK_GRAPH_MAX_PAGES", "3")
    get_settings.cache_clear()
    return get_settings()


def test_describe_source_variants():
    hit = GraphHit.from_source(
        _hit("T", [_conn("A", 0.5, company_name="Acme", overlap_start="2019-01-01", overlap_end="2021-06-30")])["_source"]
    )
    assert describe_source(hit.connections[0].sources[0]) == "Worked together at Acme (2019-2021)"
    edu = GraphHit.from_source(_hit("T", [_conn("A", 0.5, origin="education", school_name="TU Berlin")])["_source"])
    assert describe_source(edu.connections[0].sources[0]) == "Attended TU Berlin together"


def test_flat_hit_shape_is_accepted():
    hit = GraphHit.from_source(
        {
            "profile_info": {"full_name": "Tia Target"},
            "team_member_name": "Ann",
            "connection_strength": 0.7,
        }
    )
    assert hit.best_connection().connector_name == "Ann"
    assert path_from_hit(hit, hit.connections[0]).strength == 0.7


def test_malformed_hits_are_skipped():
    hits = parse_hits(
        [
            _hit("Good One", [_conn("Ann", 0.5)]),
            _hit("Bad Strength", [_conn("Bob", 87)]),
            {"_source": {"connections": []}},
            "not-a-hit",
        ]
    )
    assert [h.profile.full_name for h in hits] == ["Good One"]


def test_finder_sorts_strongest_first():
    hits = parse_hits(
        [
            _hit("Tia Target", [_conn("Cid", 0.3), _conn("Ann", 0.9)]),
            _hit("Sam Sales", [_conn("Bob", 0.9, origin="email")]),
        ]
    )
    graph = FakeGraph(hits)
    paths = ConnectionPathFinder(graph).find_paths("https://www.Acme.com/", ["VP"])
    assert graph.calls == [("acme.com", ["VP"])]
    assert [(p.connector_name, p.strength) for p in paths] == [("Ann", 0.9), ("Bob", 0.9), ("Cid", 0.3)]
    assert paths[1].shared_context == "Email correspondence"


def test_finder_empty_is_not_an_error():
    assert ConnectionPathFinder(FakeGraph([])).find_paths("acme.com") == []
    assert ConnectionPathFinder(FakeGraph([])).find_paths("") == []


def test_sort_paths_is_stable_under_input_order():
    hits = parse_hits([_hit("X", [_conn("b", 0.5), _conn("A", 0.5), _conn("c", 0.7)])])
    paths = [path_from_hit(hits[0], c) for c in hits[0].connections]
    assert sort_paths(paths) == sort_paths(list(reversed(paths)))
    assert [p.connector_name for p in sort_paths(paths)] == ["c", "A", "b"]


def test_client_requires_api_key(monkeypatch):
    monkeypatch.delenv("NETWORK_GRAPH_API_KEY", raising=False)
    get_settings.cache_clear()
    with pytest.raises(ConfigurationError):
        NetworkGraphClient()


def test_client_paginates_until_short_page(graph_settings):
    session = FakeSession(
        [
            FakeResponse(200, {"hits": {"hits": [_hit("A1", [_conn("Ann", 0.5)]), _hit("A2", [_conn("Ann", 0.4)])]}, "total": 3}),
            FakeResponse(200, {"hits": {"hits": [_hit("A3", [_conn("Bob", 0.2)])]}, "total": 3}),
        ]
    )
    client = NetworkGraphClient(graph_settings, session=session)
    hits = client.search("acme.com")
    assert [h.profile.full_name for h in hits] == ["A1", "A2", "A3"]
    assert [b["from"] for b in session.bodies] == [0, 2]
    assert client.api_calls_made == 2
    assert session.bodies[0]["query"] == {"term": {"profile_info.current_company_website": {"value": "acme.com"}}}



def test_client_keeps_paging_when_total_is_missing(graph_settings):
    session = FakeSession(
        [
            FakeResponse(200, {"hits": [_hit("A", [_conn("Ann", 0.5)]), _hit("B", [_conn("Ann", 0.4)])]}),
            FakeResponse(200, {"hits": [_hit("C", [_conn("Bob", 0.2)])]}),
        ]
    )
    client = NetworkGraphClient(graph_settings, session=session)
    hits = client.search("acme.com")
    assert [h.profile.full_name for h in hits] == ["A", "B", "C"]
    assert client.api_calls_made == 2


def test_client_reads_items_and_total_count_shape(graph_settings):
    session = FakeSession(
        [FakeResponse(200, {"items": [_hit("A", [_conn("Ann", 0.5)]), _hit("B", [_conn("Ann", 0.4)])], "total_count": 2})]
    )
    client = NetworkGraphClient(graph_settings, session=session)
    assert [h.profile.full_name for h in client.search("acme.com")] == ["A", "B"]
    # A full page that reaches total_count ends the scan without another request
    assert client.api_calls_made == 1


def test_client_stops_at_page_cap_without_total(graph_settings):
    full_page = {"hits": [_hit("A", [_conn("Ann", 0.5)]), _hit("B", [_conn("Ann", 0.4)])]}
    session = FakeSession([FakeResponse(200, full_page) for _ in range(5)])
    client = NetworkGraphClient(graph_settings, session=session)
    assert len(client.search("acme.com")) == 6
    assert client.api_calls_made == 3

def test_client_title_filter_builds_bool_query(graph_settings):
    session = FakeSession([FakeResponse(200, {"hits": []})])
    NetworkGraphClient(graph_settings, session=session).search("acme.com", ["CTO", "VP"])
    query = session.bodies[0]["query"]["bool"]
    assert query["minimum_should_match"] == 1
    assert len(query["should"]) == 2


@pytest.mark.parametrize(
    "status,exc",
    [(429, RateLimited), (402, QuotaExhausted), (401, ConfigurationError), (500, UpstreamError)],
)
def test_client_maps_status_codes(graph_settings, status, exc):
    session = FakeSession([FakeResponse(status, {}, headers={"Retry-After": "7"})])
    with pytest.raises(exc) as info:
        NetworkGraphClient(graph_settings, session=session).search("acme.com")
    if exc is RateLimited:
        assert info.value.retry_after == 7.0


def test_person_lookups_post_single_page_queries(graph_settings):
    session = FakeSession(
        [
            FakeResponse(200, {"hits": [_hit("Jane Doe", [_conn("Ann", 0.6)])]}),
            FakeResponse(200, {"hits": []}),
        ]
    )
    client = NetworkGraphClient(graph_settings, session=session)
    hits = client.search_person("Jane Doe", "Acme")
    assert [h.profile.full_name for h in hits] == ["Jane Doe"]
    assert len(session.bodies[0]["query"]["bool"]["must"]) == 2
    assert client.search_by_profile_url("https://www.linkedin.com/in/JaneDoe/") == []
    assert session.bodies[1]["query"] == {"term": {"profile_info.linkedin_url": {"value": "linkedin.com/in/janedoe"}}}
