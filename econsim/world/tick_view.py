"""TickView: the read-only world view resolvers check against.

Resolution runs in deterministic agent order against the tick's
snapshot. Once an action resolves, the cash, stock, order quantity,
cleared books and instrument state its effects touch are staged here,
so a later action in the same tick sees what is really left. Nothing
in the world is mutated; staging only changes what this view reports.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from . import effects as fx
from .ids import AgentId, GoodId, InstrumentId
from .markets import Order, Side
from .state import WorldView


class TickView(WorldView):
    """WorldView minus claims already staged in the current tick."""

    def __init__(self, view: WorldView) -> None:
        super().__init__(view._world)
        self._cash_claims: dict[AgentId, float] = defaultdict(float)
        self._stock_claims: dict[tuple[AgentId, GoodId], float] = defaultdict(float)
        self._fill_claims: dict[tuple[GoodId, Side, int], float] = defaultdict(float)
        self._fired: dict[AgentId, int] = defaultdict(int)
        self._cleared: set[GoodId] = set()
        self._principal: dict[InstrumentId, float] = {}
        self._accrued: dict[InstrumentId, float] = defaultdict(float)
        self._holders: dict[InstrumentId, AgentId] = {}
        self._settled: set[InstrumentId] = set()
        self._removed: set[InstrumentId] = set()
        self._new_ids: set[str] = set()

    def available_cash(self, agent_id: AgentId) -> float:
        return self.cash(agent_id) - self._cash_claims[agent_id]

    def available_quantity(self, owner: AgentId, good_id: GoodId) -> float:
        return self.quantity(owner, good_id) - self._stock_claims[(owner, good_id)]

    def available_workers(self, firm: AgentId) -> int:
        record = self.agent(firm)
        return (record.workers if record else 0) - self._fired[firm]

    def order_remaining(self, good_id: GoodId, side: Side, order: Order) -> float:
        return order.quantity - self._fill_claims[(good_id, side, order.sequence)]

    def best_order(
        self,
        good_id: GoodId,
        side: Side,
        min_quantity: float,
        exclude: AgentId | None = None,
    ) -> Order | None:
        """Best resting order still able to fill min_quantity this tick."""
        book = self.market(good_id)
        if book is None or good_id in self._cleared:
            return None
        return book.best(
            side,
            min_quantity=min_quantity,
            exclude=exclude,
            remaining=lambda order: self.order_remaining(good_id, side, order),
        )

    def live_instrument(self, instrument_id: InstrumentId) -> bool:
        return self.instrument(instrument_id) is not None and instrument_id not in self._removed

    def principal(self, instrument_id: InstrumentId) -> float:
        if instrument_id in self._principal:
            return self._principal[instrument_id]
        instrument = self.instrument(instrument_id)
        return instrument.principal if instrument else 0.0

    def accrued_interest(self, instrument_id: InstrumentId) -> float:
        """Snapshot accrual (zero once a payment is staged) plus accruals staged since."""
        staged = self._accrued[instrument_id]
        if instrument_id in self._settled:
            return staged
        instrument = self.instrument(instrument_id)
        return (instrument.accrued_interest if instrument else 0.0) + staged

    def holder(self, instrument_id: InstrumentId) -> AgentId | None:
        if instrument_id in self._holders:
            return self._holders[instrument_id]
        instrument = self.instrument(instrument_id)
        return instrument.holder if instrument else None

    def new_instrument_id(self, prefix: str) -> InstrumentId:
        """Allocate an id nobody holds yet, deterministically."""
        n = 0
        while True:
            candidate = f"{prefix}-{self.tick}-{n}"
            if not self.instrument_id_taken(candidate) and candidate not in self._new_ids:
                return InstrumentId(candidate)
            n += 1

    def stage(self, effects: Sequence[fx.Effect]) -> None:
        """Record what a resolved action's effects will consume."""
        for effect in effects:
            if isinstance(effect, fx.TransferCash):
                self._cash_claims[effect.payer] += effect.amount
            elif isinstance(effect, fx.RemoveInventory):
                self._stock_claims[(effect.owner, effect.good_id)] += effect.quantity
            elif isinstance(effect, fx.FillOrder):
                key = (effect.good_id, effect.side, effect.sequence)
                self._fill_claims[key] += effect.quantity
            elif isinstance(effect, fx.Fire):
                self._fired[effect.firm] += effect.count
            elif isinstance(effect, fx.ClearBook):
                self._cleared.add(effect.good_id)
            elif isinstance(effect, fx.UpdateInstrument):
                self._principal[effect.instrument_id] = effect.new_principal
            elif isinstance(effect, fx.AccrueInterest):
                self._accrued[effect.instrument_id] += effect.amount
            elif isinstance(effect, fx.ResetAccruedInterest):
                self._settled.add(effect.instrument_id)
                self._accrued.pop(effect.instrument_id, None)
            elif isinstance(effect, fx.TransferInstrument):
                self._holders[effect.instrument_id] = effect.new_holder
            elif isinstance(effect, fx.RemoveInstrument):
                self._removed.add(effect.instrument_id)
            elif isinstance(effect, fx.CreateInstrument):
                self._new_ids.add(effect.instrument.instrument_id)
