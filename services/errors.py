"""Failure taxonomy shared by provider adapters and the sync pipelines.

"No data" from a provider is not an error: adapters return ``None`` or an
empty list for it. Everything below is raised.
"""
from __future__ import annotations

from typing import Optional


class ConfigurationError(RuntimeError):
    """Required configuration is missing. Fatal for the run."""


class RateLimited(Exception):
    """Provider asked us to slow down (HTTP 429). Recoverable by backoff."""

    def __init__(self, provider: str, retry_after: Optional[float] = None) -> None:
        super().__init__(f"{provider} rate limited")
        self.provider = provider
        self.retry_after = retry_after


class RetryBudgetExhausted(Exception):
    """A rate-limited call was retried up to the configured bound and still failed."""

    def __init__(self, provider: str, attempts: int) -> None:
        super().__init__(f"{provider} still rate limited after {attempts} attempts")
        self.provider = provider
        self.attempts = attempts


class QuotaExhausted(Exception):
    """Provider credits are used up (HTTP 402). Fatal for the whole run."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"{provider} quota exhausted")
        self.provider = provider


class MalformedUpstreamResponse(Exception):
    """Provider answered with something we cannot parse into the expected schema."""


class UpstreamError(Exception):
    """Any other provider failure (unexpected status, transport error)."""


class StoreWriteFailure(Exception):
    """A single record could not be written to the contact/prospect store."""
