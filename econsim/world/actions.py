"""Actions: typed intents derived from agent decisions.

An action names the acting agent plus its parameters and never touches
the world itself. The TransactionExecutor resolves it into effects.
The aggregate Action type is a closed union over the domain action
sets (Banking, Consumption, Production, Trading, Settlement, Common).

Every action exposes:
- name(): "Domain::Variant", used for logging and as the serialization
  discriminator
- agent_id: the acting agent, used for ordering and attribution
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Union

from .ids import AgentId, GoodId, InstrumentId, RecipeId


@dataclass(frozen=True)
class SimAction:
    """Common behavior for every action variant."""

    domain: ClassVar[str] = ""

    agent_id: AgentId

    def name(self) -> str:
        return f"{self.domain}::{type(self).__name__}"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name()}
        for f in fields(self):
            result[f.name] = getattr(self, f.name)
        return result


# =============================================================================
# BANKING
# =============================================================================


@dataclass(frozen=True)
class BankingActionBase(SimAction):
    domain: ClassVar[str] = "Banking"


@dataclass(frozen=True)
class Transfer(BankingActionBase):
    to: AgentId
    amount: float


@dataclass(frozen=True)
class Deposit(BankingActionBase):
    """Place cash with a bank in exchange for a deposit instrument."""

    bank: AgentId
    amount: float


@dataclass(frozen=True)
class Withdraw(BankingActionBase):
    instrument_id: InstrumentId
    amount: float


@dataclass(frozen=True)
class PayWages(BankingActionBase):
    employee: AgentId
    amount: float


@dataclass(frozen=True)
class AssignInstrument(BankingActionBase):
    """Hand a held instrument over to another agent."""

    instrument_id: InstrumentId
    to: AgentId


BankingAction = Union[Transfer, Deposit, Withdraw, PayWages, AssignInstrument]


# =============================================================================
# CONSUMPTION
# =============================================================================


@dataclass(frozen=True)
class ConsumptionActionBase(SimAction):
    domain: ClassVar[str] = "Consumption"


@dataclass(frozen=True)
class Buy(ConsumptionActionBase):
    """Buy from the best resting ask for the good."""

    good_id: GoodId
    quantity: float


@dataclass(frozen=True)
class Consume(ConsumptionActionBase):
    good_id: GoodId
    quantity: float


ConsumptionAction = Union[Buy, Consume]


# =============================================================================
# PRODUCTION
# =============================================================================


@dataclass(frozen=True)
class ProductionActionBase(SimAction):
    domain: ClassVar[str] = "Production"


@dataclass(frozen=True)
class Hire(ProductionActionBase):
    count: int


@dataclass(frozen=True)
class Fire(ProductionActionBase):
    count: int


@dataclass(frozen=True)
class Produce(ProductionActionBase):
    recipe_id: RecipeId
    batches: int


ProductionAction = Union[Hire, Fire, Produce]


# =============================================================================
# TRADING
# =============================================================================


@dataclass(frozen=True)
class TradingActionBase(SimAction):
    domain: ClassVar[str] = "Trading"


@dataclass(frozen=True)
class PostBid(TradingActionBase):
    good_id: GoodId
    quantity: float
    price: float


@dataclass(frozen=True)
class PostAsk(TradingActionBase):
    good_id: GoodId
    quantity: float
    price: float


@dataclass(frozen=True)
class Sell(TradingActionBase):
    """Sell into the best resting bid for the good."""

    good_id: GoodId
    quantity: float


@dataclass(frozen=True)
class ClearMarket(TradingActionBase):
    good_id: GoodId


TradingAction = Union[PostBid, PostAsk, Sell, ClearMarket]


# =============================================================================
# SETTLEMENT
# =============================================================================


@dataclass(frozen=True)
class SettlementActionBase(SimAction):
    domain: ClassVar[str] = "Settlement"


@dataclass(frozen=True)
class AccrueInterest(SettlementActionBase):
    instrument_id: InstrumentId


@dataclass(frozen=True)
class PayInterest(SettlementActionBase):
    instrument_id: InstrumentId


@dataclass(frozen=True)
class ProcessCouponPayment(SettlementActionBase):
    instrument_id: InstrumentId


SettlementAction = Union[AccrueInterest, PayInterest, ProcessCouponPayment]


# =============================================================================
# COMMON
# =============================================================================


@dataclass(frozen=True)
class CommonActionBase(SimAction):
    domain: ClassVar[str] = "Common"


@dataclass(frozen=True)
class NoAction(CommonActionBase):
    pass


@dataclass(frozen=True)
class ClosePeriod(CommonActionBase):
    """Reset the agent's income and revenue accumulators."""


CommonAction = Union[NoAction, ClosePeriod]


Action = Union[
    BankingAction,
    ConsumptionAction,
    ProductionAction,
    TradingAction,
    SettlementAction,
    CommonAction,
]

ACTION_TYPES: tuple[type[SimAction], ...] = (
    Transfer,
    Deposit,
    Withdraw,
    PayWages,
    AssignInstrument,
    Buy,
    Consume,
    Hire,
    Fire,
    Produce,
    PostBid,
    PostAsk,
    Sell,
    ClearMarket,
    AccrueInterest,
    PayInterest,
    ProcessCouponPayment,
    NoAction,
    ClosePeriod,
)

_ACTIONS_BY_NAME: dict[str, type[SimAction]] = {
    f"{cls.domain}::{cls.__name__}": cls for cls in ACTION_TYPES
}


def action_from_dict(data: dict[str, Any]) -> Action:
    """Rebuild an action from its serialized form.

    Raises:
        ValueError: If the name is not a known action
    """
    payload = dict(data)
    name = payload.pop("name", None)
    cls = _ACTIONS_BY_NAME.get(str(name))
    if cls is None:
        raise ValueError(f"Unknown action: {name}")
    return cls(**payload)  # type: ignore[return-value]
