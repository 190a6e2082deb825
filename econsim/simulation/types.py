"""Type definitions for simulation module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TypedDict

from ..world.errors import ActionError


class TickPhase(str, Enum):
    """Scheduler states. One tick walks IDLE through ADVANCING and back."""

    IDLE = "idle"
    DECIDING = "deciding"
    ACTING = "acting"
    RESOLVING = "resolving"
    APPLYING = "applying"
    ADVANCING = "advancing"
    HALTED = "halted"


# Legal successor for each phase; any phase may move to HALTED
NEXT_PHASE: dict[TickPhase, TickPhase] = {
    TickPhase.IDLE: TickPhase.DECIDING,
    TickPhase.DECIDING: TickPhase.ACTING,
    TickPhase.ACTING: TickPhase.RESOLVING,
    TickPhase.RESOLVING: TickPhase.APPLYING,
    TickPhase.APPLYING: TickPhase.ADVANCING,
    TickPhase.ADVANCING: TickPhase.IDLE,
}


@dataclass
class TickReport:
    """Outcome of one completed tick."""

    tick: int
    agents_active: int
    actions_resolved: int
    effects_applied: int
    failures: list[ActionError] = field(default_factory=list)

    @property
    def all_resolved(self) -> bool:
        return not self.failures


@dataclass
class ErrorRecord:
    """A single dropped action."""

    timestamp: datetime
    tick: int
    error_code: str
    agent_id: str
    action: str
    message: str


@dataclass
class ErrorStats:
    """Aggregated resolve failures for the run.

    Tracks failures by error code and by agent for the end-of-run summary.
    """

    total_errors: int = 0
    by_code: dict[str, int] = field(default_factory=dict)
    by_agent: dict[str, int] = field(default_factory=dict)
    recent_errors: list[ErrorRecord] = field(default_factory=list)
    max_recent: int = 10

    def record_error(self, tick: int, error: ActionError) -> None:
        code = error.code.value
        agent_id = error.agent_id or "unknown"
        self.total_errors += 1
        self.by_code[code] = self.by_code.get(code, 0) + 1
        self.by_agent[agent_id] = self.by_agent.get(agent_id, 0) + 1

        self.recent_errors.append(
            ErrorRecord(
                timestamp=datetime.now(),
                tick=tick,
                error_code=code,
                agent_id=agent_id,
                action=error.action_name or "unknown",
                message=error.message,
            )
        )
        if len(self.recent_errors) > self.max_recent:
            self.recent_errors = self.recent_errors[-self.max_recent:]


class HaltReport(TypedDict):
    """What a halted run reports, enough to reproduce from the last tick boundary."""

    tick: int
    effect: str | None
    agent_id: str | None
    kind: str
    error: str
    failed_index: int | None
    batch: list[dict[str, Any]]


class CheckpointData(TypedDict):
    """Structure for checkpoint file data."""

    version: int
    tick: int
    world: dict[str, Any]
    reason: str
    timestamp: str
