"""Unit tests for WorldState and WorldView."""

from __future__ import annotations

import pytest

from econsim.world.errors import EffectError, EffectErrorKind
from econsim.world.ids import AgentId, GoodId, IDCollisionError, InstrumentId
from econsim.world.state import AgentKind, Instrument, WorldState
from testing_utils import BANK, BREAD, CONSUMER, FIRM, FLOUR, SELLER


class TestScenarioSetup:
    """Tests for building a world."""

    def test_add_agent_creates_balance_sheet_and_inventory(self, world: WorldState) -> None:
        """New agents start with the given cash and income and no stock."""
        view = world.snapshot()
        sheet = view.balance(CONSUMER)
        assert sheet is not None
        assert sheet.cash == 100.0
        assert sheet.income == 100.0
        assert sheet.revenue == 0.0
        assert view.inventories(CONSUMER) == {}

    def test_duplicate_agent_id_rejected(self, world: WorldState) -> None:
        """IDs are unique across the world."""
        with pytest.raises(IDCollisionError):
            world.add_agent(CONSUMER, AgentKind.CONSUMER)

    def test_id_unique_across_entity_types(self, world: WorldState) -> None:
        """A good and an agent cannot share an id."""
        with pytest.raises(IDCollisionError):
            world.add_agent("bread", AgentKind.CONSUMER)

    def test_negative_starting_cash_rejected(self) -> None:
        world = WorldState()
        with pytest.raises(ValueError):
            world.add_agent("x", AgentKind.CONSUMER, cash=-1.0)

    def test_live_agents_sorted(self, world: WorldState) -> None:
        """live_agent_ids is sorted and skips dead agents."""
        world.agents[SELLER].alive = False
        assert world.snapshot().live_agent_ids() == sorted(
            [BANK, CONSUMER, FIRM, AgentId("gov_g")]
        )


class TestInventory:
    """Tests for inventory mutation."""

    def test_weighted_average_cost(self, world: WorldState) -> None:
        """(q0*c0 + q1*c1) / (q0 + q1)."""
        world.add_to_inventory(SELLER, BREAD, 5.0, 4.0)
        item = world.snapshot().inventory(SELLER, BREAD)
        assert item is not None
        assert item.quantity == 25.0
        assert item.unit_cost == pytest.approx((20 * 1.0 + 5 * 4.0) / 25)

    def test_add_into_empty_takes_incoming_cost(self, world: WorldState) -> None:
        world.add_to_inventory(CONSUMER, BREAD, 3.0, 2.5)
        item = world.snapshot().inventory(CONSUMER, BREAD)
        assert item is not None
        assert item.unit_cost == 2.5

    def test_add_zero_to_empty_keeps_zero_cost(self, world: WorldState) -> None:
        """Adding nothing to nothing leaves the cost at 0 instead of dividing by zero."""
        world.add_to_inventory(CONSUMER, BREAD, 0.0, 9.0)
        item = world.snapshot().inventory(CONSUMER, BREAD)
        assert item is not None
        assert item.quantity == 0.0
        assert item.unit_cost == 0.0

    def test_remove_more_than_held_is_invalid_state(self, world: WorldState) -> None:
        """Never clamps: the stock is untouched and the error is reported."""
        with pytest.raises(EffectError) as exc_info:
            world.remove_from_inventory(SELLER, BREAD, 21.0)
        assert exc_info.value.kind == EffectErrorKind.INVALID_STATE
        assert "Insufficient inventory" in exc_info.value.message
        assert world.snapshot().quantity(SELLER, BREAD) == 20.0

    def test_remove_missing_good_is_invalid_state(self, world: WorldState) -> None:
        with pytest.raises(EffectError) as exc_info:
            world.remove_from_inventory(CONSUMER, BREAD, 1.0)
        assert exc_info.value.kind == EffectErrorKind.INVALID_STATE

    def test_negative_quantity_is_application_error(self, world: WorldState) -> None:
        with pytest.raises(EffectError) as exc_info:
            world.add_to_inventory(SELLER, BREAD, -1.0, 1.0)
        assert exc_info.value.kind == EffectErrorKind.APPLICATION_ERROR

    def test_unknown_good_rejected(self, world: WorldState) -> None:
        with pytest.raises(EffectError):
            world.add_to_inventory(SELLER, GoodId("cheese"), 1.0, 1.0)


class TestCash:
    """Tests for cash transfers."""

    def test_transfer_moves_cash(self, world: WorldState) -> None:
        world.transfer_cash(CONSUMER, SELLER, 10.0)
        view = world.snapshot()
        assert view.cash(CONSUMER) == 90.0
        assert view.cash(SELLER) == 10.0

    def test_transfer_uses_decimal_precision(self, world: WorldState) -> None:
        """0.1 + 0.2 lands on 0.3 exactly."""
        world.transfer_cash(CONSUMER, SELLER, 0.1)
        world.transfer_cash(CONSUMER, SELLER, 0.2)
        assert world.snapshot().cash(SELLER) == 0.3

    def test_overdraft_is_invalid_state(self, world: WorldState) -> None:
        with pytest.raises(EffectError) as exc_info:
            world.transfer_cash(CONSUMER, SELLER, 100.01)
        assert exc_info.value.kind == EffectErrorKind.INVALID_STATE
        assert world.snapshot().cash(CONSUMER) == 100.0

    def test_unknown_payee_is_invalid_state(self, world: WorldState) -> None:
        with pytest.raises(EffectError):
            world.transfer_cash(CONSUMER, AgentId("ghost"), 1.0)
        assert world.snapshot().cash(CONSUMER) == 100.0

    def test_reset_period_zeroes_accumulators(self, world: WorldState) -> None:
        world.add_revenue(CONSUMER, 5.0)
        world.reset_period(CONSUMER)
        sheet = world.snapshot().balance(CONSUMER)
        assert sheet is not None
        assert sheet.income == 0.0
        assert sheet.revenue == 0.0
        assert sheet.cash == 100.0


class TestInstruments:
    """Tests for instrument bookkeeping."""

    @pytest.fixture
    def loan(self) -> Instrument:
        return Instrument(
            instrument_id=InstrumentId("loan-1"),
            issuer=FIRM,
            holder=BANK,
            principal=40.0,
            rate=0.1,
        )

    def test_issuer_liabilities_track_principal(self, world: WorldState, loan: Instrument) -> None:
        world.add_instrument(loan)
        world.update_principal(loan.instrument_id, 25.0)
        sheet = world.snapshot().balance(FIRM)
        assert sheet is not None
        assert sheet.liabilities == 25.0

        world.remove_instrument(loan.instrument_id)
        assert world.snapshot().balance(FIRM).liabilities == 0.0  # type: ignore[union-attr]

    def test_instrument_ids_never_reused(self, world: WorldState, loan: Instrument) -> None:
        world.add_instrument(loan)
        world.remove_instrument(loan.instrument_id)
        with pytest.raises(EffectError):
            world.add_instrument(loan)

    def test_accrual_is_monotone(self, world: WorldState, loan: Instrument) -> None:
        world.add_instrument(loan)
        world.accrue_interest(loan.instrument_id, 0.5)
        with pytest.raises(EffectError) as exc_info:
            world.accrue_interest(loan.instrument_id, -0.1)
        assert exc_info.value.kind == EffectErrorKind.APPLICATION_ERROR
        assert world.snapshot().instrument(loan.instrument_id).accrued_interest == 0.5  # type: ignore[union-attr]


class TestSnapshot:
    """Tests for snapshots and serialization."""

    def test_snapshot_is_isolated(self, world: WorldState) -> None:
        """Mutating the world after snapshotting does not change the snapshot."""
        snapshot = world.snapshot()
        world.transfer_cash(CONSUMER, SELLER, 10.0)
        world.advance_tick()
        assert snapshot.cash(CONSUMER) == 100.0
        assert snapshot.tick == 0

    def test_to_dict_from_dict_restores_state(self, world: WorldState) -> None:
        world.remove_from_inventory(FIRM, FLOUR, 4.0)
        world.advance_tick()
        restored = WorldState.from_dict(world.to_dict())
        assert restored.to_dict() == world.to_dict()
        with pytest.raises(IDCollisionError):
            restored.add_agent(CONSUMER, AgentKind.CONSUMER)
