"""Replay of applied ticks from the audit log.

A tick log is the list of effects applied in one tick, read back from
the tick_applied events of an EventLogger file. Replaying a log applies
its effects and advances the tick, but only when the world sits exactly
at that log's tick. Feeding the same log twice is therefore harmless:
the second time the world has already moved past it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from ..world.executor import ScheduledEffect, TransactionExecutor
from ..world.state import WorldState

logger = logging.getLogger(__name__)


@dataclass
class TickLog:
    tick: int
    effects: list[ScheduledEffect] = field(default_factory=list)


def load_tick_logs(path: str | Path) -> list[TickLog]:
    """Read tick_applied events from a JSONL audit log, in file order."""
    logs: list[TickLog] = []
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            event = json.loads(line)
            if event.get("event_type") != "tick_applied":
                continue
            logs.append(
                TickLog(
                    tick=int(event["tick"]),
                    effects=[ScheduledEffect.from_dict(e) for e in event["effects"]],
                )
            )
    return logs


def replay_tick(executor: TransactionExecutor, log: TickLog) -> bool:
    """Apply one tick log if the world is at its tick.

    Returns:
        True if the log was applied, False if it was skipped.

    Raises:
        EffectError: If an effect in the log cannot be applied
    """
    if executor.tick != log.tick:
        logger.info(f"Skipping tick log {log.tick}: world is at tick {executor.tick}")
        return False
    executor.apply_batch(log.effects)
    executor.advance_tick()
    return True


def replay(world: WorldState, logs: Iterable[TickLog]) -> int:
    """Replay tick logs onto a world restored from a checkpoint.

    Returns:
        Number of tick logs applied.
    """
    executor = TransactionExecutor(world)
    applied = 0
    for log in logs:
        if replay_tick(executor, log):
            applied += 1
    logger.info(f"Replayed {applied} ticks, world now at tick {world.tick}")
    return applied
