from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.contact import Contact
from models.prospect import Prospect
from pipelines.runner import RunSummary


def _llm_usage_for_run(run_id: str) -> Dict[str, Dict[str, int]]:
    """Aggregate LLM usage from the JSONL trace for the given run_id.

    Returns dict like { 'openai': {'calls': N, 'tokens': T} }
    """
    from config.settings import get_settings

    result: Dict[str, Dict[str, int]] = {}
    log_path = Path(get_settings().llm_log_path)
    if not log_path.exists():
        return result
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except ValueError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            bucket = result.setdefault(rec.get("provider") or "unknown", {"calls": 0, "tokens": 0})
            bucket["calls"] += 1
            total_tokens = (rec.get("usage") or {}).get("total_tokens")
            if isinstance(total_tokens, int):
                bucket["tokens"] += total_tokens
    return result


def print_summary(title: str, summary: RunSummary, run_id: Optional[str] = None) -> None:
    """Print the end-of-run report. Halts are shown apart from per-item failures."""
    print("\n" + "=" * 60)
    print(title.upper())
    print("=" * 60)
    if run_id:
        print(f"Run: {run_id}")
    print(f"Status: {summary.status}")
    print(f"Attempted: {summary.attempted}")
    print(f"Succeeded: {summary.succeeded}")
    print(f"Failed: {summary.failed}")
    for key in sorted(summary.counts):
        print(f"  {key}: {summary.counts[key]}")
    if summary.halted:
        print(f"HALTED: {summary.halt_reason}")
    if summary.errors:
        print("Errors (first 5):")
        for message in summary.errors[:5]:
            print(f"  - {message}")

    from config.settings import get_settings

    settings = get_settings()
    trace_run_id = run_id or os.getenv("RUN_ID")
    if trace_run_id and settings.llm_trace:
        usage = _llm_usage_for_run(trace_run_id)
        if usage:
            print("LLM Usage:")
            for provider, stats in usage.items():
                print(f"  {provider}: calls={stats.get('calls', 0)}, tokens={stats.get('tokens', 0)}")
    print("=" * 60)


def prospect_rows(prospects: List[Prospect]) -> List[Dict[str, Any]]:
    return [
        {
            "prospect_id": p.id,
            "company_name": p.company_name,
            "company_domain": p.company_domain,
            "connection_score": p.connection_score,
            "has_warm_intro": p.has_warm_intro,
            "best_connector": p.best_connector,
            "connection_path_count": p.connection_path_count,
            "best_path": p.best_path.shared_context if p.best_path else None,
        }
        for p in prospects
    ]


def contact_row(contact: Contact) -> Dict[str, Any]:
    return contact.model_dump(mode="json", exclude={"work_history"}) | {
        "work_history": [h.model_dump() for h in contact.work_history[:5]],
    }
