from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from config.settings import Settings, get_settings
from models.graph_hit import GraphHit
from services.domain_utils import normalize_company_domain, normalize_profile_url
from services.errors import (
    ConfigurationError,
    MalformedUpstreamResponse,
    QuotaExhausted,
    RateLimited,
    UpstreamError,
)


logger = logging.getLogger(__name__)

PROVIDER = "network_graph"
SEARCH_PATH = "/profiles/network-mapper"


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def extract_raw_hits(data: Dict[str, Any]) -> List[Any]:
    """Hits from ``{"hits": [...]}``, the nested ``{"hits": {"hits": [...]}}`` or the ``{"items": [...]}`` shape."""
    hits = data.get("hits") or data.get("items") or []
    if isinstance(hits, dict):
        hits = hits.get("hits") or []
    return list(hits) if isinstance(hits, list) else []


def parse_hits(raw_hits: List[Any]) -> List[GraphHit]:
    """Validate each hit; malformed ones are logged and dropped, the rest are kept."""
    parsed: List[GraphHit] = []
    for raw in raw_hits:
        source = raw.get("_source", raw) if isinstance(raw, dict) else None
        if not isinstance(source, dict):
            logger.warning("skipping non-object hit", extra={"provider": PROVIDER, "status": "malformed"})
            continue
        try:
            parsed.append(GraphHit.from_source(source))
        except ValidationError as e:
            logger.warning(
                "skipping malformed hit",
                extra={"provider": PROVIDER, "status": "malformed", "error": str(e.errors()[:1])},
            )
    return parsed


class NetworkGraphClient:
    """Client for the relationship-graph search API (Elasticsearch-style query bodies)."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        if not self.settings.network_graph_api_key:
            raise ConfigurationError("NETWORK_GRAPH_API_KEY must be set to query the network graph")
        self.base_url = self.settings.network_graph_url.rstrip("/")
        self.session = session or requests.Session()
        self.api_calls_made = 0

    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                f"{self.base_url}{SEARCH_PATH}",
                json=body,
                headers={"Content-Type": "application/json", "x-api-key": self.settings.network_graph_api_key},
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"{PROVIDER} request failed: {e}") from e
        self.api_calls_made += 1

        status = response.status_code
        if status == 429:
            raise RateLimited(PROVIDER, _retry_after(response))
        if status == 402:
            raise QuotaExhausted(PROVIDER)
        if status in (401, 403):
            raise ConfigurationError(f"{PROVIDER} rejected the API key (HTTP {status})")
        if status < 200 or status >= 300:
            raise UpstreamError(f"{PROVIDER} error: HTTP {status}")
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedUpstreamResponse(f"{PROVIDER} returned non-JSON body") from e
        if not isinstance(data, dict):
            raise MalformedUpstreamResponse(f"{PROVIDER} returned unexpected payload type")
        return data

    @staticmethod
    def _total(data: Dict[str, Any]) -> Optional[int]:
        """Reported hit count, or None when the page does not say."""
        total = data.get("total", data.get("total_count"))
        if total is None and isinstance(data.get("hits"), dict):
            total = data["hits"].get("total")
        if isinstance(total, dict):
            total = total.get("value")
        try:
            return int(total) if total is not None else None
        except (TypeError, ValueError):
            return None

    def _paginate(self, query: Dict[str, Any]) -> List[GraphHit]:
        page_size = self.settings.network_graph_page_size
        results: List[GraphHit] = []
        offset = 0
        for _page in range(self.settings.network_graph_max_pages):
            data = self._post({"query": query, "from": offset, "size": page_size})
            raw_hits = extract_raw_hits(data)
            results.extend(parse_hits(raw_hits))
            offset += len(raw_hits)
            if len(raw_hits) < page_size:
                break
            # Without a reported total only a short page or the page cap ends the scan
            total = self._total(data)
            if total is not None and offset >= total:
                break
        return results

    def search(self, company_domain: str, target_titles: Optional[List[str]] = None) -> List[GraphHit]:
        """Every known connection into people currently at ``company_domain``."""
        domain = normalize_company_domain(company_domain) or ""
        company_term = {"term": {"profile_info.current_company_website": {"value": domain}}}
        if target_titles:
            query: Dict[str, Any] = {
                "bool": {
                    "must": [company_term],
                    "should": [
                        {"match": {"profile_info.current_title": {"query": t, "fuzziness": "AUTO"}}}
                        for t in target_titles
                    ],
                    "minimum_should_match": 1,
                }
            }
        else:
            query = company_term
        return self._paginate(query)

    def search_person(self, name: str, company: Optional[str] = None) -> List[GraphHit]:
        must: List[Dict[str, Any]] = [{"match": {"profile_info.full_name": {"query": name, "fuzziness": "AUTO"}}}]
        if company:
            must.append({"match": {"profile_info.current_company": {"query": company, "fuzziness": "AUTO"}}})
        data = self._post({"query": {"bool": {"must": must}}, "size": 20})
        return parse_hits(extract_raw_hits(data))

    def search_by_profile_url(self, profile_url: str) -> List[GraphHit]:
        key = normalize_profile_url(profile_url) or ""
        data = self._post({"query": {"term": {"profile_info.linkedin_url": {"value": key}}}, "size": 10})
        return parse_hits(extract_raw_hits(data))
