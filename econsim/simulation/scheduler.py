"""Scheduler - drives the per-tick lifecycle.

Each tick walks the phases in order:

    IDLE -> DECIDING -> ACTING -> RESOLVING -> APPLYING -> ADVANCING -> IDLE

1. DECIDING: snapshot the world; every live agent decides against the
   snapshot with its own random stream (on the worker pool)
2. ACTING: decisions become actions (on the worker pool)
3. RESOLVING: actions resolve into effects in ascending AgentId order,
   each agent's actions in production order; rejected actions are
   dropped and recorded
4. APPLYING: the whole ordered effect list is applied by the single writer
5. ADVANCING: the tick counter moves forward by exactly one

A failed apply or a decision maker that raises moves the scheduler to
HALTED and raises SimulationHalted / DecisionError. A halted scheduler
never steps again.

Usage:
    scheduler = Scheduler(world, agents, config=validate_config_dict({}))
    with scheduler:
        scheduler.run(max_ticks=10)
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Sequence

from ..config import get_validated_config, load_config
from ..config_schema import AppConfig
from ..world.errors import EffectError
from ..world.executor import Resolution, ScheduledEffect, TransactionExecutor
from ..world.ids import AgentId
from ..world.logger import EventLogger, SummaryCollector
from ..world.state import WorldState, WorldView
from .agents import Decision, SimAgent, into_actions
from .checkpoint import save_checkpoint
from .pool import DecisionError, DecisionPool
from .rng import substream
from .types import NEXT_PHASE, ErrorStats, HaltReport, TickPhase, TickReport

logger = logging.getLogger(__name__)


class SimulationHalted(Exception):
    """An effect could not be applied; the run cannot continue.

    Carries the failing tick, the offending effect and its agent, and
    the full batch that was in flight.
    """

    def __init__(self, tick: int, batch: Sequence[ScheduledEffect], cause: EffectError) -> None:
        self.tick = tick
        self.batch = list(batch)
        self.cause = cause
        self.effect_name = cause.effect.name() if cause.effect is not None else None
        self.agent_id = cause.agent_id
        super().__init__(
            f"Run halted at tick {tick}: {self.effect_name} for {self.agent_id} "
            f"failed ({cause.kind.value}: {cause.message})"
        )

    def report(self) -> HaltReport:
        return {
            "tick": self.tick,
            "effect": self.effect_name,
            "agent_id": self.agent_id,
            "kind": self.cause.kind.value,
            "error": self.cause.message,
            "failed_index": self.cause.index,
            "batch": [s.to_dict() for s in self.batch],
        }


class Scheduler:
    """Runs ticks over one WorldState and a set of agents.

    The scheduler and its executor are the only holders of the world;
    decision makers and observers get snapshots.
    """

    def __init__(
        self,
        world: WorldState,
        agents: Sequence[SimAgent],
        config: AppConfig | None = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self._world = world
        self._executor = TransactionExecutor.from_config(world, self.config)
        self._agents: dict[AgentId, SimAgent] = {}
        for agent in agents:
            if agent.agent_id in self._agents:
                raise ValueError(f"Duplicate agent {agent.agent_id}")
            self._agents[agent.agent_id] = agent

        self._pool = DecisionPool(
            num_workers=self.config.pool.num_workers,
            parallel=self.config.simulation.parallel_decisions,
        )
        self.event_logger = event_logger
        self.phase = TickPhase.IDLE
        self.phase_history: list[TickPhase] = []
        self.error_stats = ErrorStats()
        self._summary = SummaryCollector()
        self.halt_report: HaltReport | None = None

    @classmethod
    def from_config(
        cls,
        world: WorldState,
        agents: Sequence[SimAgent],
        config_path: str | Path | None = None,
        run_id: str | None = None,
    ) -> Scheduler:
        """Build a scheduler from config/config.yaml (or the given path).

        Sets up the audit log as configured: per-run directory mode when
        run_id is given, single-file mode otherwise.
        """
        load_config(config_path)
        config = get_validated_config()
        event_logger: EventLogger | None = None
        if config.logging.enabled:
            logs_dir = Path(config.logging.logs_dir)
            summary_file = config.logging.summary_file
            event_logger = EventLogger(
                output_file=logs_dir / config.logging.output_file,
                logs_dir=logs_dir if run_id else None,
                run_id=run_id,
                summary_file=logs_dir / summary_file if summary_file else None,
            )
        return cls(world, agents, config=config, event_logger=event_logger)

    def __enter__(self) -> Scheduler:
        self._pool.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._pool.stop()

    @property
    def tick(self) -> int:
        return self._executor.tick

    @property
    def halted(self) -> bool:
        return self.phase == TickPhase.HALTED

    def view(self) -> WorldView:
        """Snapshot of the current world for observers."""
        return self._executor.snapshot()

    def _enter(self, phase: TickPhase) -> None:
        if phase != TickPhase.HALTED and NEXT_PHASE.get(self.phase) != phase:
            raise RuntimeError(f"Illegal phase transition {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.phase_history.append(phase)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def step(self) -> TickReport:
        """Run one full tick.

        Raises:
            RuntimeError: If the scheduler has halted
            DecisionError: If a decision maker raised
            SimulationHalted: If an effect could not be applied
        """
        if self.halted:
            raise RuntimeError("Scheduler has halted; restore from a checkpoint to continue")

        tick = self.tick

        self._enter(TickPhase.DECIDING)
        snapshot = self._executor.snapshot()
        live = [aid for aid in snapshot.live_agent_ids() if aid in self._agents]
        seed = self.config.simulation.seed

        def decide(agent_id: AgentId) -> Sequence[Decision]:
            rng = substream(seed, tick, agent_id)
            return self._agents[agent_id].decision_maker.decide(snapshot, rng)

        try:
            decisions = dict(self._pool.map_agents(decide, live))
            self._enter(TickPhase.ACTING)
            turns = self._pool.map_agents(lambda aid: into_actions(decisions[aid]), live)
        except DecisionError as e:
            self._halt_on_decision(tick, e)
            raise

        self._enter(TickPhase.RESOLVING)
        resolution = self._executor.resolve_all(turns, snapshot)
        self._record_resolution(tick, resolution)

        self._enter(TickPhase.APPLYING)
        try:
            self._executor.apply_batch(resolution.effects)
        except EffectError as e:
            halted = SimulationHalted(tick, resolution.effects, e)
            self._halt(halted)
            raise halted from e
        self._summary.record_effects(resolution.effects)
        if self.event_logger is not None:
            self.event_logger.log_tick_applied(tick, resolution.resolved_actions, resolution.effects)

        self._enter(TickPhase.ADVANCING)
        self._executor.advance_tick()
        self._after_advance(tick, len(live))

        self._enter(TickPhase.IDLE)
        logger.debug(
            f"Tick {tick} complete: {len(resolution.resolved_actions)} actions, "
            f"{len(resolution.effects)} effects, {len(resolution.failures)} dropped"
        )
        return TickReport(
            tick=tick,
            agents_active=len(live),
            actions_resolved=len(resolution.resolved_actions),
            effects_applied=len(resolution.effects),
            failures=resolution.failures,
        )

    def run(
        self,
        max_ticks: int | None = None,
        stop_event: threading.Event | None = None,
    ) -> list[TickReport]:
        """Run ticks until max_ticks have run or stop_event is set."""
        limit = max_ticks if max_ticks is not None else self.config.simulation.max_ticks
        reports: list[TickReport] = []
        logger.info(f"Starting run at tick {self.tick} for up to {limit} ticks")
        for _ in range(limit):
            if stop_event is not None and stop_event.is_set():
                logger.info(f"Stop requested at tick {self.tick}")
                break
            reports.append(self.step())
        logger.info(
            f"Run finished at tick {self.tick}: {sum(r.effects_applied for r in reports)} effects, "
            f"{self.error_stats.total_errors} dropped actions"
        )
        return reports

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record_resolution(self, tick: int, resolution: Resolution) -> None:
        for action in resolution.resolved_actions:
            self._summary.record_action(action.name(), action.agent_id)
        for error in resolution.failures:
            self.error_stats.record_error(tick, error)
            self._summary.record_action(
                error.action_name or "unknown", error.agent_id or "unknown", success=False
            )
            self._summary.record_failure_code(error.code.value)
            if self.event_logger is not None:
                self.event_logger.log_action_failed(tick, error)

    def _after_advance(self, tick: int, agents_active: int) -> None:
        summary = self._summary.finalize(tick, agents_active)
        if self.event_logger is not None:
            self.event_logger.log_summary(summary)

        interval = self.config.checkpoint.interval_ticks
        if interval and self.tick % interval == 0:
            path = save_checkpoint(self._world, self.config.checkpoint.checkpoint_file, "interval")
            logger.info(f"Checkpoint saved to {path} at tick {self.tick}")

    def _halt(self, halted: SimulationHalted) -> None:
        self._enter(TickPhase.HALTED)
        self.halt_report = halted.report()
        logger.error(str(halted))
        if self.event_logger is not None:
            self.event_logger.log_run_halted(dict(self.halt_report))

    def _halt_on_decision(self, tick: int, error: DecisionError) -> None:
        self._enter(TickPhase.HALTED)
        logger.error(f"Run halted at tick {tick}: {error}")
        if self.event_logger is not None:
            self.event_logger.log(
                "run_halted",
                {"tick": tick, "agent_id": error.agent_id, "error": str(error.cause)},
            )
