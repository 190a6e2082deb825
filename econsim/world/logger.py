"""JSONL audit log - what changed, tick by tick

The event log records every applied effect with the agent and action
that produced it, every dropped action and the halt report if a run
stops. tick_applied events are enough to replay a run from a
checkpoint (see econsim.simulation.replay).
"""

from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from .actions import Action
from .effects import TransferCash
from .errors import ActionError
from .executor import ScheduledEffect


class SummaryLogger:
    """Writes one summary line per tick to summary.jsonl."""

    output_path: Path

    def __init__(self, path: Path) -> None:
        self.output_path = path
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def log_summary(self, summary: dict[str, Any]) -> None:
        with open(self.output_path, "a") as f:
            f.write(json.dumps(summary) + "\n")


class SummaryCollector:
    """Accumulates per-tick metrics for summary logging.

    Record actions and effects during a tick, then call finalize() to
    get the summary dict and reset the counters.
    """

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._actions_resolved: int = 0
        self._actions_failed: int = 0
        self._actions_by_name: dict[str, int] = {}
        self._failures_by_code: dict[str, int] = {}
        self._effects_applied: int = 0
        self._cash_transferred: float = 0.0
        self._per_agent: dict[str, dict[str, int]] = {}

    def _agent(self, agent_id: str) -> dict[str, int]:
        if agent_id not in self._per_agent:
            self._per_agent[agent_id] = {"actions": 0, "successes": 0, "failures": 0}
        return self._per_agent[agent_id]

    def record_action(self, action_name: str, agent_id: str, success: bool = True) -> None:
        self._actions_by_name[action_name] = self._actions_by_name.get(action_name, 0) + 1
        stats = self._agent(agent_id)
        stats["actions"] += 1
        if success:
            self._actions_resolved += 1
            stats["successes"] += 1
        else:
            self._actions_failed += 1
            stats["failures"] += 1

    def record_failure_code(self, code: str) -> None:
        self._failures_by_code[code] = self._failures_by_code.get(code, 0) + 1

    def record_effects(self, batch: Sequence[ScheduledEffect]) -> None:
        """Count applied effects and total cash moved."""
        for scheduled in batch:
            self._effects_applied += 1
            if isinstance(scheduled.effect, TransferCash):
                self._cash_transferred += scheduled.effect.amount

    def finalize(self, tick: int, agents_active: int) -> dict[str, Any]:
        """Return the summary dict and reset the collector."""
        summary: dict[str, Any] = {
            "tick": tick,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "agents_active": agents_active,
            "actions_resolved": self._actions_resolved,
            "actions_failed": self._actions_failed,
            "actions_by_name": dict(sorted(self._actions_by_name.items())),
            "failures_by_code": dict(sorted(self._failures_by_code.items())),
            "effects_applied": self._effects_applied,
            "cash_transferred": self._cash_transferred,
            "per_agent": {k: v.copy() for k, v in sorted(self._per_agent.items())},
        }
        self._reset()
        return summary


class EventLogger:
    """Append-only JSONL event log with per-run directory support.

    Two modes:
    1. Per-run mode (run_id + logs_dir):
       - logs/{run_id}/events.jsonl
       - logs/{run_id}/summary.jsonl (companion SummaryLogger)
       - logs/latest -> {run_id} (symlink)
    2. Single-file mode (output_file only), truncated on start

    Every line carries a monotonic 'sequence', a UTC 'timestamp' and
    an 'event_type'.
    """

    output_path: Path
    summary_logger: SummaryLogger | None
    _sequence: int

    def __init__(
        self,
        output_file: str | Path = "run.jsonl",
        logs_dir: str | Path | None = None,
        run_id: str | None = None,
        summary_file: str | Path | None = None,
    ) -> None:
        self._sequence = 0
        self.summary_logger = None

        if logs_dir and run_id:
            self._setup_per_run_logging(Path(logs_dir), run_id)
        else:
            self.output_path = Path(output_file)
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self.output_path.write_text("")
            if summary_file:
                summary_path = Path(summary_file)
                summary_path.parent.mkdir(parents=True, exist_ok=True)
                summary_path.write_text("")
                self.summary_logger = SummaryLogger(summary_path)

    def _setup_per_run_logging(self, logs_dir: Path, run_id: str) -> None:
        run_dir = logs_dir / run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        self.output_path = run_dir / "events.jsonl"
        self.output_path.write_text("")
        self.summary_logger = SummaryLogger(run_dir / "summary.jsonl")

        latest_link = logs_dir / "latest"
        if latest_link.is_symlink():
            latest_link.unlink()
        elif latest_link.exists():
            if latest_link.is_dir():
                shutil.rmtree(latest_link)
            else:
                latest_link.unlink()
        latest_link.symlink_to(run_id)

    def log(self, event_type: str, data: dict[str, Any]) -> None:
        self._sequence += 1
        event: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "sequence": self._sequence,
            "event_type": event_type,
            **data,
        }
        with open(self.output_path, "a") as f:
            f.write(json.dumps(event) + "\n")

    def log_tick_applied(
        self,
        tick: int,
        actions: Sequence[Action],
        batch: Sequence[ScheduledEffect],
    ) -> None:
        """Record a fully applied tick: the actions that resolved and their effects."""
        self.log(
            "tick_applied",
            {
                "tick": tick,
                "actions": [a.to_dict() for a in actions],
                "effects": [s.to_dict() for s in batch],
            },
        )

    def log_action_failed(self, tick: int, error: ActionError) -> None:
        self.log("action_failed", {"tick": tick, **error.to_dict()})

    def log_run_halted(self, report: dict[str, Any]) -> None:
        self.log("run_halted", report)

    def log_summary(self, summary: dict[str, Any]) -> None:
        if self.summary_logger is not None:
            self.summary_logger.log_summary(summary)
