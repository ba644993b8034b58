from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from config.llm_routes import ROUTES
from config.settings import Settings, get_settings
from services.errors import ConfigurationError, QuotaExhausted, RateLimited, UpstreamError
from utils.llm_logger import log_call, sha256_text


logger = logging.getLogger(__name__)


class LLMClient:
    """Minimal wrapper to centralize per-use-case routing and logging."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        if not self.settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY must be set for AI matching")

    def chat(
        self,
        *,
        use_case: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        team_id: Optional[str] = None,
        prompt_name: Optional[str] = None,
        prompt_text: Optional[str] = None,
    ) -> str:
        """Run one chat completion and return the text of the first choice ("" if none)."""
        route = ROUTES.get(use_case, {})
        provider = route.get("provider", "openai")
        model = route.get("model") or self.settings.openai_model or "gpt-4o-mini"
        op = route.get("operation", "chat")
        temp = temperature if temperature is not None else route.get("temperature")

        if provider != "openai":
            raise ConfigurationError(f"Provider not implemented: {provider}")

        import openai
        from openai import OpenAI

        client = OpenAI(api_key=self.settings.openai_api_key, timeout=self.settings.http_timeout_seconds)

        kwargs: Dict[str, Any] = {"model": model, "messages": messages}
        # Only pass temperature if explicitly provided (some models only accept default)
        if temp is not None:
            kwargs["temperature"] = temp
        if route.get("max_tokens"):
            kwargs["max_tokens"] = route["max_tokens"]

        def _log(status: str, duration_ms: int, error: Optional[str] = None, usage: Optional[Dict[str, Any]] = None) -> None:
            log_call(
                caller=f"llm_client.chat:{use_case}",
                provider=provider,
                model=model,
                operation=op,
                team_id=team_id,
                prompt_name=prompt_name,
                prompt_hash=sha256_text(prompt_text),
                duration_ms=duration_ms,
                status=status,
                error=error,
                usage=usage,
            )

        t0 = time.time()
        try:
            resp = client.chat.completions.create(**kwargs)
        except openai.RateLimitError as e:
            _log("rate_limited", int((time.time() - t0) * 1000), error=str(e))
            # OpenAI reports exhausted credits as a 429 with this code
            if getattr(e, "code", None) == "insufficient_quota":
                raise QuotaExhausted(provider) from e
            raise RateLimited(provider) from e
        except openai.APIError as e:
            _log("error", int((time.time() - t0) * 1000), error=str(e))
            raise UpstreamError(f"{provider} error: {e}") from e
        dt_ms = int((time.time() - t0) * 1000)

        usage_obj = None
        usage = getattr(resp, "usage", None)
        if usage:
            usage_obj = {
                "prompt_tokens": getattr(usage, "prompt_tokens", None),
                "completion_tokens": getattr(usage, "completion_tokens", None),
                "total_tokens": getattr(usage, "total_tokens", None),
            }
        _log("ok", dt_ms, usage=usage_obj)

        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""
