from __future__ import annotations

import os


# Central routing for LLM use-cases. Override the model per route via env vars.
#
# Keys are use_case identifiers consumed by services/llm_client.py
ROUTES: dict[str, dict] = {
    # Prospect <-> contact relevance matching (OpenAI chat)
    "relevance_matching": {
        "provider": os.getenv("LLM_MATCHING_PROVIDER", "openai"),
        "model": os.getenv("OPENAI_MODEL_MATCHING"),  # falls back to global OPENAI_MODEL
        "temperature": 0,
        "max_tokens": 1024,
        # Logical operation name for logging (not a vendor API name)
        "operation": "relevance_matching",
    },
}
