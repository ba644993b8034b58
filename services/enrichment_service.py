from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from config.settings import Settings, get_settings
from models.contact import WorkHistoryEntry
from models.person_record import PersonRecord
from services.domain_utils import extract_apex_domain
from services.errors import (
    ConfigurationError,
    MalformedUpstreamResponse,
    QuotaExhausted,
    RateLimited,
    UpstreamError,
)


logger = logging.getLogger(__name__)

PROVIDER = "person_enrichment"
# Work history entries kept per person
MAX_EXPERIENCE = 10


def _first_email(data: Dict[str, Any]) -> Optional[str]:
    if data.get("work_email"):
        return data["work_email"]
    for key in ("personal_emails", "emails"):
        for item in data.get(key) or []:
            if isinstance(item, str) and item:
                return item
            if isinstance(item, dict) and item.get("address"):
                return item["address"]
    return None


def _nested_name(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("name")
    if isinstance(value, str):
        return value
    return None


def _work_history(experience: Any) -> List[WorkHistoryEntry]:
    entries: List[WorkHistoryEntry] = []
    if not isinstance(experience, list):
        return entries
    for job in experience[:MAX_EXPERIENCE]:
        if not isinstance(job, dict):
            continue
        company = job.get("company") if isinstance(job.get("company"), dict) else {}
        entries.append(
            WorkHistoryEntry(
                company_name=_nested_name(job.get("company")),
                company_domain=extract_apex_domain(company.get("website")),
                title=_nested_name(job.get("title")),
                start_date=job.get("start_date"),
                end_date=job.get("end_date"),
                is_current=bool(job.get("is_primary")) or not job.get("end_date"),
            )
        )
    return entries


def map_person(data: Dict[str, Any]) -> PersonRecord:
    """Map the provider's person payload onto our field names."""
    return PersonRecord(
        full_name=data.get("full_name"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        email=_first_email(data),
        profile_url=data.get("linkedin_url"),
        title=data.get("job_title"),
        company_name=data.get("job_company_name"),
        company_domain=extract_apex_domain(data.get("job_company_website")),
        phone=data.get("mobile_phone"),
        location=data.get("location_name"),
        work_history=_work_history(data.get("experience")),
    )


class PersonEnrichmentClient:
    """Person lookup against a People Data Labs style enrich endpoint."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        if not self.settings.enrichment_api_key:
            raise ConfigurationError("ENRICHMENT_API_KEY must be set to enrich contacts")
        self.session = session or requests.Session()

    @staticmethod
    def _lookup_params(
        profile_url: Optional[str],
        email: Optional[str],
        name: Optional[str],
        company: Optional[str],
    ) -> Optional[Dict[str, str]]:
        # Strongest identifier first
        if profile_url:
            return {"profile": profile_url}
        if email:
            return {"email": email}
        if name and company:
            return {"name": name, "company": company}
        return None

    def enrich(
        self,
        *,
        profile_url: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        company: Optional[str] = None,
    ) -> Optional[PersonRecord]:
        """Return the provider's view of a person, or None when it has no data."""
        params = self._lookup_params(profile_url, email, name, company)
        if params is None:
            return None
        try:
            response = self.session.get(
                self.settings.enrichment_url,
                params=params,
                headers={"X-Api-Key": self.settings.enrichment_api_key},
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"{PROVIDER} request failed: {e}") from e

        status = response.status_code
        if status == 404:
            return None
        if status == 402:
            raise QuotaExhausted(PROVIDER)
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                wait = float(retry_after) if retry_after else None
            except ValueError:
                wait = None
            raise RateLimited(PROVIDER, wait)
        if status in (401, 403):
            raise ConfigurationError(f"{PROVIDER} rejected the API key (HTTP {status})")
        if status != 200:
            raise UpstreamError(f"{PROVIDER} error: HTTP {status}")

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedUpstreamResponse(f"{PROVIDER} returned non-JSON body") from e
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return None
        return map_person(data)
