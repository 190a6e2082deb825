"""Shared precondition checks for resolvers.

Each helper raises an ActionError when the check fails and returns the
checked value (or record) otherwise, so resolvers read top to bottom.
"""

from __future__ import annotations

from .errors import ErrorCode, permission_error, resource_error, validation_error
from .ids import AgentId, GoodId, InstrumentId
from .state import AgentKind, AgentRecord, Instrument
from .tick_view import TickView

# Amounts at or below this are treated as nothing to settle
EPSILON = 1e-6


def positive_amount(value: float, field: str = "amount") -> float:
    if not value > 0:
        raise validation_error(f"Amount must be positive, got: {value:.2f}", field=field)
    return value


def non_negative_amount(value: float, field: str = "amount") -> float:
    if value < 0:
        raise validation_error(f"Amount must be non-negative, got: {value:.2f}", field=field)
    return value


def positive_integer(value: int, field: str) -> int:
    if value <= 0:
        raise validation_error(f"{field} must be greater than 0", field=field)
    return value


def require_agent(view: TickView, agent_id: AgentId, kind: AgentKind | None = None) -> AgentRecord:
    record = view.agent(agent_id)
    if record is None:
        raise resource_error(f"Agent {agent_id} not found", agent_id=agent_id)
    if kind is not None and record.kind != kind:
        raise permission_error(
            f"Agent {agent_id} is a {record.kind.value}, expected {kind.value}",
            code=ErrorCode.WRONG_AGENT_KIND,
            agent_id=agent_id,
        )
    return record


def require_cash(view: TickView, agent_id: AgentId, amount: float) -> None:
    available = view.available_cash(agent_id)
    if available < amount:
        raise resource_error(
            f"Insufficient funds for {agent_id}: have {available:.2f}, need {amount:.2f}",
            code=ErrorCode.INSUFFICIENT_FUNDS,
            available=available,
            required=amount,
        )


def require_inventory(view: TickView, owner: AgentId, good_id: GoodId, quantity: float) -> None:
    available = view.available_quantity(owner, good_id)
    if available < quantity:
        raise resource_error(
            f"Insufficient inventory of {good_id} for {owner}: have {available}, need {quantity}",
            code=ErrorCode.INSUFFICIENT_INVENTORY,
            good_id=good_id,
            available=available,
            required=quantity,
        )


def require_good(view: TickView, good_id: GoodId) -> None:
    if view.market(good_id) is None:
        raise resource_error(f"Unknown good {good_id}", good_id=good_id)


def require_instrument(view: TickView, instrument_id: InstrumentId) -> Instrument:
    instrument = view.instrument(instrument_id)
    if instrument is None or not view.live_instrument(instrument_id):
        raise resource_error(f"Instrument {instrument_id} not found", instrument_id=instrument_id)
    return instrument


def require_holder(view: TickView, instrument: Instrument, agent_id: AgentId) -> None:
    holder = view.holder(instrument.instrument_id)
    if holder != agent_id:
        raise permission_error(
            f"Instrument {instrument.instrument_id} is held by {holder}, not {agent_id}",
            instrument_id=instrument.instrument_id,
        )

