"""Effects: atomic, typed state deltas.

Effects are the only thing allowed to mutate the WorldState. Each one is
produced by resolving exactly one action and applied exactly once. The
aggregate Effect type is a closed union of four domains:

- Financial: cash transfers and instrument lifecycle
- Inventory: adding and removing stock
- Market: order book changes
- Agent: workforce and period accumulators

Every effect serializes to its fields plus a "name" discriminator of
the form "Domain::Variant", e.g. "Inventory::AddInventory".
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Union

from .errors import EffectError
from .ids import AgentId, GoodId, InstrumentId
from .markets import Side
from .state import Instrument


@dataclass(frozen=True)
class StateEffect:
    """Common behavior for every effect variant."""

    domain: ClassVar[str] = ""

    def name(self) -> str:
        return f"{self.domain}::{type(self).__name__}"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name()}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Instrument):
                value = value.to_dict()
            result[f.name] = value
        return result

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> StateEffect:
        return cls(**data)


# =============================================================================
# FINANCIAL
# =============================================================================


@dataclass(frozen=True)
class FinancialEffectBase(StateEffect):
    domain: ClassVar[str] = "Financial"


@dataclass(frozen=True)
class TransferCash(FinancialEffectBase):
    payer: AgentId
    payee: AgentId
    amount: float


@dataclass(frozen=True)
class CreateInstrument(FinancialEffectBase):
    instrument: Instrument

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> StateEffect:
        return cls(instrument=Instrument.from_dict(data["instrument"]))


@dataclass(frozen=True)
class UpdateInstrument(FinancialEffectBase):
    instrument_id: InstrumentId
    new_principal: float


@dataclass(frozen=True)
class TransferInstrument(FinancialEffectBase):
    instrument_id: InstrumentId
    new_holder: AgentId


@dataclass(frozen=True)
class RemoveInstrument(FinancialEffectBase):
    instrument_id: InstrumentId


@dataclass(frozen=True)
class AccrueInterest(FinancialEffectBase):
    instrument_id: InstrumentId
    amount: float


@dataclass(frozen=True)
class ResetAccruedInterest(FinancialEffectBase):
    instrument_id: InstrumentId


FinancialEffect = Union[
    TransferCash,
    CreateInstrument,
    UpdateInstrument,
    TransferInstrument,
    RemoveInstrument,
    AccrueInterest,
    ResetAccruedInterest,
]


# =============================================================================
# INVENTORY
# =============================================================================


@dataclass(frozen=True)
class InventoryEffectBase(StateEffect):
    domain: ClassVar[str] = "Inventory"


@dataclass(frozen=True)
class AddInventory(InventoryEffectBase):
    owner: AgentId
    good_id: GoodId
    quantity: float
    unit_cost: float


@dataclass(frozen=True)
class RemoveInventory(InventoryEffectBase):
    owner: AgentId
    good_id: GoodId
    quantity: float


InventoryEffect = Union[AddInventory, RemoveInventory]


# =============================================================================
# MARKET
# =============================================================================


@dataclass(frozen=True)
class MarketEffectBase(StateEffect):
    domain: ClassVar[str] = "Market"

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> StateEffect:
        if "side" in data:
            data = {**data, "side": Side(data["side"])}
        return cls(**data)


@dataclass(frozen=True)
class PlaceOrder(MarketEffectBase):
    good_id: GoodId
    side: Side
    agent_id: AgentId
    quantity: float
    price: float


@dataclass(frozen=True)
class FillOrder(MarketEffectBase):
    """Take quantity from the resting order with the given sequence."""

    good_id: GoodId
    side: Side
    sequence: int
    quantity: float
    price: float


@dataclass(frozen=True)
class ClearBook(MarketEffectBase):
    good_id: GoodId


MarketEffect = Union[PlaceOrder, FillOrder, ClearBook]


# =============================================================================
# AGENT
# =============================================================================


@dataclass(frozen=True)
class AgentEffectBase(StateEffect):
    domain: ClassVar[str] = "Agent"


@dataclass(frozen=True)
class Hire(AgentEffectBase):
    firm: AgentId
    count: int


@dataclass(frozen=True)
class Fire(AgentEffectBase):
    firm: AgentId
    count: int


@dataclass(frozen=True)
class UpdateIncome(AgentEffectBase):
    agent_id: AgentId
    amount: float


@dataclass(frozen=True)
class RecordRevenue(AgentEffectBase):
    agent_id: AgentId
    amount: float


@dataclass(frozen=True)
class ResetPeriod(AgentEffectBase):
    agent_id: AgentId


AgentEffect = Union[Hire, Fire, UpdateIncome, RecordRevenue, ResetPeriod]


Effect = Union[FinancialEffect, InventoryEffect, MarketEffect, AgentEffect]

EFFECT_TYPES: tuple[type[StateEffect], ...] = (
    TransferCash,
    CreateInstrument,
    UpdateInstrument,
    TransferInstrument,
    RemoveInstrument,
    AccrueInterest,
    ResetAccruedInterest,
    AddInventory,
    RemoveInventory,
    PlaceOrder,
    FillOrder,
    ClearBook,
    Hire,
    Fire,
    UpdateIncome,
    RecordRevenue,
    ResetPeriod,
)

_EFFECTS_BY_NAME: dict[str, type[StateEffect]] = {
    f"{cls.domain}::{cls.__name__}": cls for cls in EFFECT_TYPES
}


def effect_from_dict(data: dict[str, Any]) -> Effect:
    """Rebuild an effect from its serialized form.

    Raises:
        EffectError: If the name is not a known effect
    """
    payload = dict(data)
    name = payload.pop("name", None)
    cls = _EFFECTS_BY_NAME.get(str(name))
    if cls is None:
        raise EffectError.application_error(f"Unknown effect: {name}")
    return cls.from_fields(payload)  # type: ignore[return-value]
