from __future__ import annotations

from typing import Dict, List, Optional, Protocol


class LLMClientPort(Protocol):
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
        ...
