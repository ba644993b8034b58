from __future__ import annotations

import pytest

from config.settings import get_settings
from models.contact import Contact, WorkHistoryEntry
from models.prospect import Prospect
from services.errors import ConfigurationError, MalformedUpstreamResponse
from services.llm_client import LLMClient
from services.relevance_matcher import RelevanceMatcher, build_prompt, parse_matches


PROSPECT = Prospect(id=1, team_id="t1", company_name="Acme", company_domain="acme.com", industry="Robotics")


class FakeLLM:
    def __init__(self, text):
        self.text = text
        self.requests = []

    def chat(self, **kwargs):
        self.requests.append(kwargs)
        return self.text


def _contacts(n):
    return [
        Contact(
            id=i,
            team_id="t1",
            full_name=f"Person {i}",
            title="Engineer",
            company_name="Initech",
            source="csv_export",
            work_history=[WorkHistoryEntry(company_name="Acme", title="Intern")],
        )
        for i in range(n)
    ]


def test_prompt_lists_contacts_with_history():
    prompt = build_prompt(PROSPECT, _contacts(2))
    assert "Company: Acme" in prompt
    assert "- Person 1 (Engineer @ Initech): Intern at Acme" in prompt
    assert "Description: No description" in prompt


def test_parses_fenced_json():
    text = 'Here you go:\n```json\n{"matches": [{"name": "Person 0", "match_type": "alumni", "relevance_score": 80, "reasoning": "Interned"}]}\n```'
    matches = parse_matches(text)
    assert matches[0].name == "Person 0"
    assert matches[0].relevance_score == 80


def test_accepts_camel_case_keys_and_empty_list():
    assert parse_matches('{"matches": [{"name": "A", "matchType": "competitor", "relevanceScore": 60}]}')[0].match_type == "competitor"
    assert parse_matches('{"matches": []}') == []


@pytest.mark.parametrize(
    "text",
    [
        "",
        "I could not find anyone.",
        '{"matches": [{"name": "A", "match_type": "friend", "relevance_score": 60}]}',
        '{"matches": [{"name": "A", "match_type": "alumni", "relevance_score": 160}]}',
        '{"matches": [{"name": "A", "match_type": "alumni"}]}',
        '{"matches": [{"name": "A", "match_type": "alumni", "relevance_score": 60, "confidence": "high"}]}',
        '{"results": []}',
    ],
)
def test_anything_off_schema_is_malformed(text):
    with pytest.raises(MalformedUpstreamResponse):
        parse_matches(text)


def test_matcher_bounds_candidates_and_routes_use_case():
    llm = FakeLLM('{"matches": []}')
    assert RelevanceMatcher(llm, max_candidates=3).match(PROSPECT, _contacts(10), team_id="t1") == []
    request = llm.requests[0]
    assert request["use_case"] == "relevance_matching"
    assert request["team_id"] == "t1"
    prompt = request["messages"][0]["content"]
    assert "Person 2" in prompt
    assert "Person 3" not in prompt


def test_matcher_skips_call_without_candidates():
    llm = FakeLLM("unused")
    assert RelevanceMatcher(llm).match(PROSPECT, [], team_id="t1") == []
    assert llm.requests == []


def test_llm_client_requires_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    get_settings.cache_clear()
    with pytest.raises(ConfigurationError):
        LLMClient()
