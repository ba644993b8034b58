from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Protocol

from utils.logging_setup import init_logging


@dataclass
class RunSummary:
    """Counts reported at the end of a run. Per-item failures land here, never as exceptions."""

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    counts: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    halted: bool = False
    halt_reason: Optional[str] = None

    def bump(self, key: str, n: int = 1) -> None:
        self.counts[key] = self.counts.get(key, 0) + n

    def record_success(self, outcome: str) -> None:
        self.attempted += 1
        self.succeeded += 1
        self.bump(outcome)

    def record_failure(self, message: str) -> None:
        self.attempted += 1
        self.failed += 1
        self.errors.append(message)

    def halt(self, reason: str) -> None:
        self.halted = True
        self.halt_reason = reason

    @property
    def status(self) -> str:
        if self.halted:
            return "halted"
        return "completed_with_errors" if self.failed else "completed"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status
        return data


@dataclass
class RunContext:
    team_id: str
    owner_id: Optional[str] = None
    run_id: Optional[str] = None
    raw_contacts: list = field(default_factory=list)
    contacts: list = field(default_factory=list)
    prospects: list = field(default_factory=list)
    meta: dict = field(default_factory=dict)
    summary: RunSummary = field(default_factory=RunSummary)


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            if ctx.summary.halted:
                break
            ctx = step.run(ctx)
        return ctx
