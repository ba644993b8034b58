from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from services.errors import RateLimited, RetryBudgetExhausted


logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int,
    backoff_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, RateLimited], None]] = None,
    **kwargs: Any,
) -> T:
    """Call ``func`` and repeat the same call while the provider says it is rate limited.

    Waits ``backoff_seconds`` (or the provider's Retry-After, if larger) between
    attempts. After ``max_retries`` retries raises RetryBudgetExhausted. Any
    other exception propagates immediately.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except RateLimited as e:
            attempt += 1
            if attempt > max_retries:
                raise RetryBudgetExhausted(e.provider, attempt) from e
            wait = max(backoff_seconds, e.retry_after or 0.0)
            logger.warning(
                "rate limited, retry %d/%d in %.1fs",
                attempt,
                max_retries,
                wait,
                extra={"status": "rate_limited", "provider": e.provider},
            )
            if on_retry:
                on_retry(attempt, e)
            sleep(wait)
