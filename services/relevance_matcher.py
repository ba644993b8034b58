from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from models.ai_match import AIMatch, AIMatchResponse
from models.contact import Contact
from models.prospect import Prospect
from ports.llm import LLMClientPort
from services.errors import MalformedUpstreamResponse


logger = logging.getLogger(__name__)

USE_CASE = "relevance_matching"
JOBS_PER_CONTACT = 5
MIN_RELEVANCE = 50
MAX_MATCHES = 10

PROMPT_TEMPLATE = """You are helping match sales prospects with network connections.

PROSPECT:
- Company: {company_name}
- Domain: {company_domain}
- Industry: {industry}
- Description: {description}

CONTACTS IN NETWORK (with work history):
{contact_summaries}

Find contacts who:
1. Currently work at {company_name} or a very similar company name
2. Previously worked at {company_name} (alumni)
3. Work at a direct competitor or closely related company
4. Have relevant industry experience that makes them a good intro path

Return JSON only:
{{
  "matches": [
    {{
      "name": "Contact Name",
      "match_type": "current_employee|alumni|competitor|industry_relevant",
      "relevance_score": 0-100,
      "reasoning": "Brief explanation"
    }}
  ]
}}

Only include contacts with relevance_score >= {min_relevance}. Max {max_matches} matches."""


def summarize_contact(contact: Contact) -> str:
    jobs = ", ".join(
        f"{job.title or 'Unknown'} at {job.company_name or 'Unknown'}"
        for job in contact.work_history[:JOBS_PER_CONTACT]
    ) or "No work history"
    return f"- {contact.full_name} ({contact.title or 'Unknown'} @ {contact.company_name or 'Unknown'}): {jobs}"


def build_prompt(prospect: Prospect, contacts: Sequence[Contact]) -> str:
    return PROMPT_TEMPLATE.format(
        company_name=prospect.company_name,
        company_domain=prospect.company_domain,
        industry=prospect.industry or "Unknown",
        description=prospect.description or "No description",
        contact_summaries="\n".join(summarize_contact(c) for c in contacts),
        min_relevance=MIN_RELEVANCE,
        max_matches=MAX_MATCHES,
    )


def _extract_json(text: Optional[str]) -> Optional[Any]:
    if not text:
        return None
    # Try raw parse first
    try:
        return json.loads(text)
    except ValueError:
        pass
    # Try fenced blocks
    m = re.search(r"```(?:json)?\n([\s\S]*?)\n```", text)
    if m:
        try:
            return json.loads(m.group(1))
        except ValueError:
            pass
    # Try to find first { ... } block
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except ValueError:
            pass
    return None


def parse_matches(text: Optional[str]) -> List[AIMatch]:
    """Validate model output against the strict match schema; anything off is malformed."""
    data = _extract_json(text)
    if data is None:
        raise MalformedUpstreamResponse("no JSON object in model output")
    try:
        return AIMatchResponse.model_validate(data).matches
    except ValidationError as e:
        raise MalformedUpstreamResponse(f"model output failed schema validation: {e.error_count()} errors") from e


class RelevanceMatcher:
    def __init__(self, llm: LLMClientPort, max_candidates: int = 50) -> None:
        self.llm = llm
        self.max_candidates = max_candidates

    def match(self, prospect: Prospect, contacts: Sequence[Contact], *, team_id: str) -> List[AIMatch]:
        """Ask the model which of (at most ``max_candidates``) contacts are good intro paths."""
        candidates = list(contacts)[: self.max_candidates]
        if not candidates:
            return []
        prompt = build_prompt(prospect, candidates)
        text = self.llm.chat(
            use_case=USE_CASE,
            messages=[{"role": "user", "content": prompt}],
            team_id=team_id,
            prompt_name=USE_CASE,
            prompt_text=prompt,
        )
        return parse_matches(text)
