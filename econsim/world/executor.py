"""Transaction executor: resolve actions into effects, apply effects.

The executor is the only holder of the mutable WorldState during a run.

- resolve() reads a view of the world and returns the effects that
  would carry an action out, or raises ActionError. It never mutates.
- apply() mutates the world one effect at a time in the given order.
  It is fail-fast: the first effect that cannot be applied raises
  EffectError and the rest of the batch is skipped.

Apply is NOT atomic. Effects applied before a failing effect stay
applied; there is no rollback. Resolve checks every sufficiency
condition up front (against a TickView that accounts for claims made
earlier in the same tick), so an apply-time failure means resolve and
apply disagree and the run has to stop.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from . import actions as act
from . import effects as fx
from ..config_schema import AppConfig
from .errors import ActionError, EffectError, ErrorCode
from .ids import AgentId
from .resolvers import (
    BankingResolver,
    ConsumptionResolver,
    ProductionResolver,
    SettlementResolver,
    TradingResolver,
)
from .state import WorldState, WorldView
from .tick_view import TickView
from .validation import require_agent

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    def resolve(self, action: Any, view: TickView) -> list[fx.Effect]: ...


@dataclass(frozen=True)
class ScheduledEffect:
    """An effect together with the agent and action that produced it."""

    agent_id: AgentId
    action_name: str
    effect: fx.Effect

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "action": self.action_name,
            "effect": self.effect.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledEffect:
        return cls(
            agent_id=AgentId(data["agent_id"]),
            action_name=data["action"],
            effect=fx.effect_from_dict(data["effect"]),
        )


@dataclass
class Resolution:
    """Outcome of resolving every action of a tick."""

    effects: list[ScheduledEffect] = field(default_factory=list)
    failures: list[ActionError] = field(default_factory=list)
    resolved_actions: list[act.Action] = field(default_factory=list)


class TransactionExecutor:
    """Resolves actions and applies effects against one WorldState."""

    def __init__(
        self,
        world: WorldState,
        deposit_rate: float = 0.0,
        ticks_per_year: int = 365,
    ) -> None:
        self._world = world
        self._write_lock = threading.Lock()
        self._resolvers: list[tuple[type[act.SimAction], Resolver]] = [
            (act.BankingActionBase, BankingResolver(deposit_rate=deposit_rate)),
            (act.ConsumptionActionBase, ConsumptionResolver()),
            (act.ProductionActionBase, ProductionResolver()),
            (act.TradingActionBase, TradingResolver()),
            (act.SettlementActionBase, SettlementResolver(ticks_per_year=ticks_per_year)),
        ]
        self.effects_applied = 0

    @classmethod
    def from_config(cls, world: WorldState, config: AppConfig) -> TransactionExecutor:
        return cls(
            world,
            deposit_rate=config.banking.deposit_rate,
            ticks_per_year=config.simulation.ticks_per_year,
        )

    @property
    def tick(self) -> int:
        return self._world.tick

    def snapshot(self) -> WorldView:
        """Immutable view of the world for the Deciding phase."""
        return self._world.snapshot()

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    def resolve(self, action: act.Action, view: WorldView) -> list[fx.Effect]:
        """Resolve one action into its effects.

        Raises:
            ActionError: If a business rule rejects the action
        """
        tick_view = view if isinstance(view, TickView) else TickView(view)
        try:
            if isinstance(action, act.NoAction):
                return []
            elif isinstance(action, act.ClosePeriod):
                require_agent(tick_view, action.agent_id)
                return [fx.ResetPeriod(agent_id=action.agent_id)]
            for domain, resolver in self._resolvers:
                if isinstance(action, domain):
                    return resolver.resolve(action, tick_view)
            raise ActionError(
                f"No resolver for action {action.name()}",
                ErrorCode.UNHANDLED_ACTION,
            )
        except ActionError as e:
            if e.agent_id is None:
                e.agent_id = action.agent_id
            if e.action_name is None:
                e.action_name = action.name()
            raise

    def resolve_all(
        self,
        actions: Sequence[tuple[AgentId, Sequence[act.Action]]],
        view: WorldView,
    ) -> Resolution:
        """Resolve a tick's actions in the order given.

        The caller passes agents in ascending AgentId order with each
        agent's actions in production order. A rejected action is
        dropped and recorded; the rest of the tick goes on.
        """
        tick_view = TickView(view)
        resolution = Resolution()
        for agent_id, agent_actions in actions:
            for action in agent_actions:
                try:
                    effects = self.resolve(action, tick_view)
                except ActionError as e:
                    logger.warning(
                        f"Tick {tick_view.tick}: dropped {e.action_name} from {e.agent_id}: "
                        f"{e.message} ({e.code.value})"
                    )
                    resolution.failures.append(e)
                    continue
                tick_view.stage(effects)
                resolution.resolved_actions.append(action)
                resolution.effects.extend(
                    ScheduledEffect(agent_id=agent_id, action_name=action.name(), effect=effect)
                    for effect in effects
                )
        return resolution

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply(self, effects: Sequence[fx.Effect]) -> None:
        """Apply effects in order, stopping at the first failure.

        Raises:
            EffectError: The first effect that could not be applied.
                Effects before it remain applied.
        """
        with self._write_lock:
            for index, effect in enumerate(effects):
                self._apply_or_raise(effect, index)

    def apply_batch(self, batch: Sequence[ScheduledEffect]) -> None:
        """Apply a tick's scheduled effects; errors carry the producing agent."""
        with self._write_lock:
            for index, scheduled in enumerate(batch):
                try:
                    self._apply_or_raise(scheduled.effect, index)
                except EffectError as e:
                    e.agent_id = scheduled.agent_id
                    raise

    def advance_tick(self) -> int:
        with self._write_lock:
            return self._world.advance_tick()

    def _apply_or_raise(self, effect: fx.Effect, index: int) -> None:
        try:
            self._apply_one(effect)
        except EffectError as e:
            e.effect = effect
            e.index = index
            logger.error(f"Failed to apply {effect.name()} at position {index}: {e.message}")
            raise
        self.effects_applied += 1

    def _apply_one(self, effect: fx.Effect) -> None:
        world = self._world
        if isinstance(effect, fx.TransferCash):
            world.transfer_cash(effect.payer, effect.payee, effect.amount)
        elif isinstance(effect, fx.CreateInstrument):
            world.add_instrument(effect.instrument)
        elif isinstance(effect, fx.UpdateInstrument):
            world.update_principal(effect.instrument_id, effect.new_principal)
        elif isinstance(effect, fx.TransferInstrument):
            world.transfer_instrument(effect.instrument_id, effect.new_holder)
        elif isinstance(effect, fx.RemoveInstrument):
            world.remove_instrument(effect.instrument_id)
        elif isinstance(effect, fx.AccrueInterest):
            world.accrue_interest(effect.instrument_id, effect.amount)
        elif isinstance(effect, fx.ResetAccruedInterest):
            world.reset_accrued_interest(effect.instrument_id)
        elif isinstance(effect, fx.AddInventory):
            world.add_to_inventory(effect.owner, effect.good_id, effect.quantity, effect.unit_cost)
        elif isinstance(effect, fx.RemoveInventory):
            world.remove_from_inventory(effect.owner, effect.good_id, effect.quantity)
        elif isinstance(effect, fx.PlaceOrder):
            world.place_order(effect.good_id, effect.side, effect.agent_id, effect.quantity, effect.price)
        elif isinstance(effect, fx.FillOrder):
            world.fill_order(effect.good_id, effect.side, effect.sequence, effect.quantity, effect.price)
        elif isinstance(effect, fx.ClearBook):
            world.clear_book(effect.good_id)
        elif isinstance(effect, fx.Hire):
            world.hire(effect.firm, effect.count)
        elif isinstance(effect, fx.Fire):
            world.fire(effect.firm, effect.count)
        elif isinstance(effect, fx.UpdateIncome):
            world.add_income(effect.agent_id, effect.amount)
        elif isinstance(effect, fx.RecordRevenue):
            world.add_revenue(effect.agent_id, effect.amount)
        elif isinstance(effect, fx.ResetPeriod):
            world.reset_period(effect.agent_id)
        else:
            raise EffectError.application_error(f"Unknown effect: {effect!r}")
