"""Tests for TransactionExecutor resolve/apply semantics."""

from __future__ import annotations

import pytest

from econsim.world import actions as act
from econsim.world import effects as fx
from econsim.world.errors import ActionError, EffectError, EffectErrorKind, ErrorCode
from econsim.world.executor import ScheduledEffect, TransactionExecutor
from econsim.world.ids import AgentId, InstrumentId
from econsim.world.markets import Side
from econsim.world.state import AgentKind, Instrument, WorldState
from econsim.world.tick_view import TickView
from testing_utils import BANK, BREAD, CONSUMER, FIRM, GOVERNMENT, SELLER


class TestApply:
    """Apply is ordered, fail-fast and not atomic."""

    def test_effects_apply_in_given_order(self, world: WorldState, executor: TransactionExecutor) -> None:
        """A credit that funds a later debit only works because order is kept."""
        executor.apply([
            fx.TransferCash(payer=CONSUMER, payee=FIRM, amount=100.0),
            fx.TransferCash(payer=FIRM, payee=SELLER, amount=150.0),
        ])
        view = world.snapshot()
        assert view.cash(CONSUMER) == 0.0
        assert view.cash(FIRM) == 0.0
        assert view.cash(SELLER) == 150.0

    def test_failure_aborts_rest_of_batch(self, world: WorldState, executor: TransactionExecutor) -> None:
        """RemoveInventory past the stock stops the batch with InvalidState."""
        batch = [
            fx.AddInventory(owner=CONSUMER, good_id=BREAD, quantity=1.0, unit_cost=2.0),
            fx.RemoveInventory(owner=SELLER, good_id=BREAD, quantity=50.0),
            fx.TransferCash(payer=CONSUMER, payee=SELLER, amount=10.0),
        ]
        with pytest.raises(EffectError) as exc_info:
            executor.apply(batch)

        error = exc_info.value
        assert error.kind == EffectErrorKind.INVALID_STATE
        assert error.index == 1
        assert error.effect == batch[1]

        view = world.snapshot()
        # No rollback: the first effect stays applied
        assert view.quantity(CONSUMER, BREAD) == 1.0
        # Fail-fast: the third effect never ran
        assert view.cash(CONSUMER) == 100.0
        assert view.quantity(SELLER, BREAD) == 20.0

    def test_apply_batch_attributes_agent(self, executor: TransactionExecutor) -> None:
        batch = [
            ScheduledEffect(
                agent_id=CONSUMER,
                action_name="Consumption::Consume",
                effect=fx.RemoveInventory(owner=CONSUMER, good_id=BREAD, quantity=1.0),
            )
        ]
        with pytest.raises(EffectError) as exc_info:
            executor.apply_batch(batch)
        assert exc_info.value.agent_id == CONSUMER
        assert exc_info.value.to_dict()["effect"] == "Inventory::RemoveInventory"

    def test_hire_applies_once(self, world: WorldState, executor: TransactionExecutor) -> None:
        executor.apply([fx.Hire(firm=FIRM, count=3)])
        assert world.snapshot().agent(FIRM).workers == 3  # type: ignore[union-attr]

    def test_advance_tick_only_changes_tick(self, world: WorldState, executor: TransactionExecutor) -> None:
        before = world.to_dict()
        assert executor.advance_tick() == 1
        after = world.to_dict()
        assert after.pop("tick") == 1
        before.pop("tick")
        assert after == before


class TestResolve:
    """Resolve is read-only and reports typed errors."""

    def test_resolve_does_not_mutate(self, world: WorldState, executor: TransactionExecutor) -> None:
        before = world.to_dict()
        effects = executor.resolve(
            act.Buy(agent_id=CONSUMER, good_id=BREAD, quantity=5.0), world.snapshot()
        )
        assert effects
        assert world.to_dict() == before

    def test_error_carries_agent_and_action(self, world: WorldState, executor: TransactionExecutor) -> None:
        with pytest.raises(ActionError) as exc_info:
            executor.resolve(act.Transfer(agent_id=CONSUMER, to=SELLER, amount=500.0), world.snapshot())
        error = exc_info.value
        assert error.code == ErrorCode.INSUFFICIENT_FUNDS
        assert error.agent_id == CONSUMER
        assert error.action_name == "Banking::Transfer"
        assert error.to_dict()["category"] == "resource"

    def test_no_action_resolves_to_nothing(self, world: WorldState, executor: TransactionExecutor) -> None:
        assert executor.resolve(act.NoAction(agent_id=CONSUMER), world.snapshot()) == []

    def test_close_period_resets_accumulators(self, world: WorldState, executor: TransactionExecutor) -> None:
        effects = executor.resolve(act.ClosePeriod(agent_id=CONSUMER), world.snapshot())
        assert effects == [fx.ResetPeriod(agent_id=CONSUMER)]

    def test_non_positive_amount_is_validation_error(
        self, world: WorldState, executor: TransactionExecutor
    ) -> None:
        with pytest.raises(ActionError) as exc_info:
            executor.resolve(act.Transfer(agent_id=CONSUMER, to=SELLER, amount=0.0), world.snapshot())
        assert exc_info.value.code == ErrorCode.INVALID_ARGUMENT
        assert "Amount must be positive" in exc_info.value.message


class TestResolveAll:
    """resolve_all drops failures and stages claims across agents."""

    def test_failed_action_dropped_others_kept(
        self, world: WorldState, executor: TransactionExecutor
    ) -> None:
        resolution = executor.resolve_all(
            [
                (CONSUMER, [act.Transfer(agent_id=CONSUMER, to=SELLER, amount=1000.0)]),
                (FIRM, [act.Hire(agent_id=FIRM, count=2)]),
            ],
            world.snapshot(),
        )
        assert [e.code for e in resolution.failures] == [ErrorCode.INSUFFICIENT_FUNDS]
        assert [s.effect for s in resolution.effects] == [fx.Hire(firm=FIRM, count=2)]
        assert resolution.resolved_actions == [act.Hire(agent_id=FIRM, count=2)]

    def test_cash_claimed_earlier_in_tick_is_not_reusable(
        self, world: WorldState, executor: TransactionExecutor
    ) -> None:
        """Two transfers that each fit, but not together: the second is dropped."""
        resolution = executor.resolve_all(
            [
                (
                    CONSUMER,
                    [
                        act.Transfer(agent_id=CONSUMER, to=SELLER, amount=70.0),
                        act.Transfer(agent_id=CONSUMER, to=FIRM, amount=70.0),
                    ],
                )
            ],
            world.snapshot(),
        )
        assert len(resolution.effects) == 1
        assert resolution.failures[0].code == ErrorCode.INSUFFICIENT_FUNDS

        executor.apply_batch(resolution.effects)
        assert world.snapshot().cash(CONSUMER) == 30.0

    def test_two_buyers_cannot_share_one_ask(self, world: WorldState, executor: TransactionExecutor) -> None:
        """Both buyers can afford it, but the ask only covers one of them."""
        world.add_agent("consumer_d", AgentKind.CONSUMER, cash=100.0)
        other = AgentId("consumer_d")
        resolution = executor.resolve_all(
            [
                (CONSUMER, [act.Buy(agent_id=CONSUMER, good_id=BREAD, quantity=15.0)]),
                (other, [act.Buy(agent_id=other, good_id=BREAD, quantity=15.0)]),
            ],
            world.snapshot(),
        )
        assert [e.agent_id for e in resolution.failures] == [other]
        assert resolution.failures[0].code == ErrorCode.NO_LIQUIDITY

        executor.apply_batch(resolution.effects)
        assert world.snapshot().quantity(CONSUMER, BREAD) == 15.0

    def test_tick_view_reports_claims(self, view: TickView) -> None:
        view.stage([
            fx.TransferCash(payer=CONSUMER, payee=SELLER, amount=40.0),
            fx.RemoveInventory(owner=SELLER, good_id=BREAD, quantity=5.0),
        ])
        assert view.available_cash(CONSUMER) == 60.0
        assert view.available_quantity(SELLER, BREAD) == 15.0
        # The snapshot itself is untouched
        assert view.cash(CONSUMER) == 100.0


class TestSameTickStaging:
    """Each kind of staged effect is visible to actions resolved later in the tick."""

    @pytest.fixture
    def loan_id(self, world: WorldState) -> InstrumentId:
        """A 1000 loan from the bank to the firm at 10%, with 5 already accrued."""
        world.add_instrument(
            Instrument(
                instrument_id=InstrumentId("loan-1"),
                issuer=FIRM,
                holder=BANK,
                principal=1000.0,
                rate=0.1,
                accrued_interest=5.0,
            )
        )
        return InstrumentId("loan-1")

    @pytest.fixture
    def deposit_id(self, world: WorldState, executor: TransactionExecutor) -> InstrumentId:
        """The consumer's 40 deposit at the bank."""
        effects = executor.resolve(
            act.Deposit(agent_id=CONSUMER, bank=BANK, amount=40.0), world.snapshot()
        )
        executor.apply(effects)
        return effects[1].instrument.instrument_id  # type: ignore[union-attr]

    def test_cleared_book_has_no_liquidity(self, world: WorldState, executor: TransactionExecutor) -> None:
        """A buy resolved after the market was cleared is dropped, not halted at apply."""
        world.add_agent("zz_buyer", AgentKind.CONSUMER, cash=100.0)
        buyer = AgentId("zz_buyer")
        resolution = executor.resolve_all(
            [
                (GOVERNMENT, [act.ClearMarket(agent_id=GOVERNMENT, good_id=BREAD)]),
                (buyer, [act.Buy(agent_id=buyer, good_id=BREAD, quantity=5.0)]),
            ],
            world.snapshot(),
        )
        assert [(e.agent_id, e.code) for e in resolution.failures] == [(buyer, ErrorCode.NO_LIQUIDITY)]

        executor.apply_batch(resolution.effects)
        view = world.snapshot()
        assert view.market(BREAD).asks == []  # type: ignore[union-attr]
        assert view.quantity(buyer, BREAD) == 0.0

    def test_view_reports_staged_books_and_instruments(
        self, world: WorldState, loan_id: InstrumentId
    ) -> None:
        view = TickView(world.snapshot())
        view.stage([
            fx.ClearBook(good_id=BREAD),
            fx.AccrueInterest(instrument_id=loan_id, amount=1.5),
            fx.TransferInstrument(instrument_id=loan_id, new_holder=CONSUMER),
        ])
        assert view.best_order(BREAD, Side.ASK, min_quantity=1.0) is None
        assert view.accrued_interest(loan_id) == pytest.approx(6.5)
        assert view.holder(loan_id) == CONSUMER

        view.stage([fx.ResetAccruedInterest(instrument_id=loan_id)])
        assert view.accrued_interest(loan_id) == 0.0

    def test_accrual_then_payment_pays_everything(
        self, world: WorldState, executor: TransactionExecutor, loan_id: InstrumentId
    ) -> None:
        """The payment covers what was accrued before and during the tick."""
        resolution = executor.resolve_all(
            [(BANK, [
                act.AccrueInterest(agent_id=BANK, instrument_id=loan_id),
                act.PayInterest(agent_id=BANK, instrument_id=loan_id),
            ])],
            world.snapshot(),
        )
        assert resolution.failures == []

        executor.apply_batch(resolution.effects)
        view = world.snapshot()
        assert view.cash(BANK) == pytest.approx(1006.0)
        assert view.cash(FIRM) == pytest.approx(44.0)
        assert view.instrument(loan_id).accrued_interest == 0.0  # type: ignore[union-attr]

    def test_accrual_after_payment_survives(
        self, world: WorldState, executor: TransactionExecutor, loan_id: InstrumentId
    ) -> None:
        resolution = executor.resolve_all(
            [
                (BANK, [act.PayInterest(agent_id=BANK, instrument_id=loan_id)]),
                (FIRM, [act.AccrueInterest(agent_id=FIRM, instrument_id=loan_id)]),
            ],
            world.snapshot(),
        )
        executor.apply_batch(resolution.effects)
        view = world.snapshot()
        assert view.cash(BANK) == 1005.0
        assert view.instrument(loan_id).accrued_interest == pytest.approx(1.0)  # type: ignore[union-attr]

    def test_assigned_instrument_changes_hands(
        self, world: WorldState, executor: TransactionExecutor, deposit_id: InstrumentId
    ) -> None:
        """After giving a deposit away, only the new holder may withdraw it."""
        resolution = executor.resolve_all(
            [
                (CONSUMER, [
                    act.AssignInstrument(agent_id=CONSUMER, instrument_id=deposit_id, to=FIRM),
                    act.Withdraw(agent_id=CONSUMER, instrument_id=deposit_id, amount=40.0),
                ]),
                (FIRM, [act.Withdraw(agent_id=FIRM, instrument_id=deposit_id, amount=40.0)]),
            ],
            world.snapshot(),
        )
        assert [(e.agent_id, e.code) for e in resolution.failures] == [(CONSUMER, ErrorCode.NOT_OWNER)]

        executor.apply_batch(resolution.effects)
        view = world.snapshot()
        assert view.cash(CONSUMER) == 60.0
        assert view.cash(FIRM) == 90.0
        assert view.instrument(deposit_id) is None

    def test_staged_principal_limits_withdrawals(
        self, world: WorldState, executor: TransactionExecutor, deposit_id: InstrumentId
    ) -> None:
        resolution = executor.resolve_all(
            [(CONSUMER, [
                act.Withdraw(agent_id=CONSUMER, instrument_id=deposit_id, amount=30.0),
                act.Withdraw(agent_id=CONSUMER, instrument_id=deposit_id, amount=30.0),
            ])],
            world.snapshot(),
        )
        assert [e.code for e in resolution.failures] == [ErrorCode.INSUFFICIENT_FUNDS]
        executor.apply_batch(resolution.effects)
        assert world.snapshot().instrument(deposit_id).principal == 10.0  # type: ignore[union-attr]

    def test_removed_instrument_is_gone(
        self, world: WorldState, executor: TransactionExecutor, deposit_id: InstrumentId
    ) -> None:
        resolution = executor.resolve_all(
            [(CONSUMER, [
                act.Withdraw(agent_id=CONSUMER, instrument_id=deposit_id, amount=40.0),
                act.AssignInstrument(agent_id=CONSUMER, instrument_id=deposit_id, to=FIRM),
            ])],
            world.snapshot(),
        )
        assert [e.code for e in resolution.failures] == [ErrorCode.NOT_FOUND]

    def test_fired_workers_are_gone(self, world: WorldState, executor: TransactionExecutor) -> None:
        resolution = executor.resolve_all(
            [(SELLER, [act.Fire(agent_id=SELLER, count=2), act.Fire(agent_id=SELLER, count=1)])],
            world.snapshot(),
        )
        assert [e.code for e in resolution.failures] == [ErrorCode.NO_WORKERS]
        executor.apply_batch(resolution.effects)
        assert world.snapshot().agent(SELLER).workers == 0  # type: ignore[union-attr]

    def test_claimed_stock_is_gone(self, world: WorldState, executor: TransactionExecutor) -> None:
        resolution = executor.resolve_all(
            [(SELLER, [
                act.Consume(agent_id=SELLER, good_id=BREAD, quantity=15.0),
                act.Consume(agent_id=SELLER, good_id=BREAD, quantity=15.0),
            ])],
            world.snapshot(),
        )
        assert [e.code for e in resolution.failures] == [ErrorCode.INSUFFICIENT_INVENTORY]
