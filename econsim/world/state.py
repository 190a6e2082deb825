"""World state: the single mutable ledger of simulation truth.

Holds balance sheets, inventories, instruments, order books, per-agent
metadata and the current tick. Setup helpers (add_agent, add_good, ...)
are used while building a scenario; during a run every mutation goes
through the TransactionExecutor, which is the only holder of the
WorldState. Everything else receives a WorldView.

Precision:
    Cash, income, revenue, liabilities and interest are stored as float
    but added and subtracted through Decimal (_decimal_add/_decimal_sub)
    so repeated small transfers do not drift.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from .errors import EffectError
from .ids import AgentId, GoodId, IDRegistry, InstrumentId, RecipeId
from .markets import OrderBook, Side


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(value))


def _from_decimal(value: Decimal) -> float:
    return float(value)


def _decimal_add(a: float, b: float) -> float:
    """Add two floats using Decimal arithmetic for precision."""
    return _from_decimal(_to_decimal(a) + _to_decimal(b))


def _decimal_sub(a: float, b: float) -> float:
    """Subtract two floats using Decimal arithmetic for precision."""
    return _from_decimal(_to_decimal(a) - _to_decimal(b))


class AgentKind(str, Enum):
    BANK = "bank"
    FIRM = "firm"
    CONSUMER = "consumer"
    GOVERNMENT = "government"


@dataclass
class AgentRecord:
    """Per-agent metadata."""

    agent_id: AgentId
    kind: AgentKind
    workers: int = 0
    alive: bool = True


@dataclass
class BalanceSheet:
    cash: float = 0.0
    income: float = 0.0
    revenue: float = 0.0
    liabilities: float = 0.0


@dataclass
class InventoryItem:
    quantity: float = 0.0
    unit_cost: float = 0.0


@dataclass(frozen=True)
class Recipe:
    """A production recipe: inputs per batch and the output per batch."""

    recipe_id: RecipeId
    inputs: tuple[tuple[GoodId, float], ...]
    output: GoodId
    output_quantity: float
    efficiency: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipe_id": self.recipe_id,
            "inputs": [[good, qty] for good, qty in self.inputs],
            "output": self.output,
            "output_quantity": self.output_quantity,
            "efficiency": self.efficiency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Recipe:
        return cls(
            recipe_id=RecipeId(data["recipe_id"]),
            inputs=tuple((GoodId(good), float(qty)) for good, qty in data["inputs"]),
            output=GoodId(data["output"]),
            output_quantity=float(data["output_quantity"]),
            efficiency=float(data.get("efficiency", 1.0)),
        )


@dataclass
class Instrument:
    """A financial claim of the holder on the issuer.

    Accrued interest only grows between payment events; a payment moves
    it from issuer to holder and resets it to zero.
    """

    instrument_id: InstrumentId
    issuer: AgentId
    holder: AgentId
    principal: float
    rate: float
    accrued_interest: float = 0.0
    coupon_schedule: tuple[int, ...] = ()
    kind: str = "loan"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["coupon_schedule"] = list(self.coupon_schedule)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Instrument:
        return cls(
            instrument_id=InstrumentId(data["instrument_id"]),
            issuer=AgentId(data["issuer"]),
            holder=AgentId(data["holder"]),
            principal=float(data["principal"]),
            rate=float(data["rate"]),
            accrued_interest=float(data.get("accrued_interest", 0.0)),
            coupon_schedule=tuple(int(t) for t in data.get("coupon_schedule", ())),
            kind=data.get("kind", "loan"),
        )


class WorldState:
    """Mutable world ledger. See module docstring for ownership rules."""

    def __init__(self, tick: int = 0) -> None:
        self.tick = tick
        self.registry = IDRegistry()
        self.agents: dict[AgentId, AgentRecord] = {}
        self.balances: dict[AgentId, BalanceSheet] = {}
        self.inventories: dict[AgentId, dict[GoodId, InventoryItem]] = {}
        self.recipes: dict[RecipeId, Recipe] = {}
        self.instruments: dict[InstrumentId, Instrument] = {}
        self.markets: dict[GoodId, OrderBook] = {}

    # ------------------------------------------------------------------
    # Scenario setup
    # ------------------------------------------------------------------

    def add_agent(
        self,
        agent_id: str,
        kind: AgentKind,
        cash: float = 0.0,
        income: float = 0.0,
        workers: int = 0,
    ) -> AgentRecord:
        """Create an agent with a balance sheet and empty inventory.

        Raises:
            IDCollisionError: If the id is already taken
            ValueError: If starting cash is negative
        """
        if cash < 0:
            raise ValueError(f"Starting cash must be non-negative, got {cash}")
        self.registry.register(agent_id, "agent")
        record = AgentRecord(agent_id=AgentId(agent_id), kind=kind, workers=workers)
        self.agents[record.agent_id] = record
        self.balances[record.agent_id] = BalanceSheet(cash=cash, income=income)
        self.inventories[record.agent_id] = {}
        return record

    def add_good(self, good_id: str) -> OrderBook:
        """Register a good and open its order book."""
        self.registry.register(good_id, "good")
        book = OrderBook(good_id=GoodId(good_id))
        self.markets[book.good_id] = book
        return book

    def add_recipe(self, recipe: Recipe) -> None:
        self.registry.register(recipe.recipe_id, "recipe")
        self.recipes[recipe.recipe_id] = recipe

    def seed_inventory(
        self, owner: AgentId, good_id: GoodId, quantity: float, unit_cost: float = 0.0
    ) -> None:
        """Give an agent starting stock."""
        self.add_to_inventory(owner, good_id, quantity, unit_cost)

    def seed_order(
        self, good_id: GoodId, side: Side, agent_id: AgentId, quantity: float, price: float
    ) -> None:
        """Place a resting order while building a scenario."""
        self.place_order(good_id, side, agent_id, quantity, price)

    # ------------------------------------------------------------------
    # Mutators (applied by the TransactionExecutor)
    # ------------------------------------------------------------------

    def _balance(self, agent_id: AgentId) -> BalanceSheet:
        sheet = self.balances.get(agent_id)
        if sheet is None:
            raise EffectError.invalid_state(f"Agent {agent_id} not found")
        return sheet

    def _agent(self, agent_id: AgentId) -> AgentRecord:
        record = self.agents.get(agent_id)
        if record is None:
            raise EffectError.invalid_state(f"Agent {agent_id} not found")
        return record

    def _instrument(self, instrument_id: InstrumentId) -> Instrument:
        instrument = self.instruments.get(instrument_id)
        if instrument is None:
            raise EffectError.invalid_state(f"Instrument {instrument_id} not found")
        return instrument

    def _market(self, good_id: GoodId) -> OrderBook:
        book = self.markets.get(good_id)
        if book is None:
            raise EffectError.invalid_state(f"No market for good {good_id}")
        return book

    @staticmethod
    def _require_non_negative(value: float, what: str) -> None:
        if value < 0:
            raise EffectError.application_error(f"{what} must be non-negative, got {value}")

    def transfer_cash(self, payer: AgentId, payee: AgentId, amount: float) -> None:
        """Move cash between balance sheets. Fails without partial effect."""
        self._require_non_negative(amount, "Transfer amount")
        payer_sheet = self._balance(payer)
        payee_sheet = self._balance(payee)
        if payer_sheet.cash < amount:
            raise EffectError.invalid_state(
                f"Insufficient cash for {payer}: have {payer_sheet.cash}, need {amount}"
            )
        payer_sheet.cash = _decimal_sub(payer_sheet.cash, amount)
        payee_sheet.cash = _decimal_add(payee_sheet.cash, amount)

    def add_income(self, agent_id: AgentId, amount: float) -> None:
        self._require_non_negative(amount, "Income")
        sheet = self._balance(agent_id)
        sheet.income = _decimal_add(sheet.income, amount)

    def add_revenue(self, agent_id: AgentId, amount: float) -> None:
        self._require_non_negative(amount, "Revenue")
        sheet = self._balance(agent_id)
        sheet.revenue = _decimal_add(sheet.revenue, amount)

    def reset_period(self, agent_id: AgentId) -> None:
        """Zero the period accumulators (income and revenue)."""
        sheet = self._balance(agent_id)
        sheet.income = 0.0
        sheet.revenue = 0.0

    def add_to_inventory(
        self, owner: AgentId, good_id: GoodId, quantity: float, unit_cost: float
    ) -> None:
        """Add stock, blending the unit cost as a weighted average."""
        self._require_non_negative(quantity, "Quantity")
        self._require_non_negative(unit_cost, "Unit cost")
        if owner not in self.inventories:
            raise EffectError.invalid_state(f"Agent {owner} not found")
        if good_id not in self.markets:
            raise EffectError.invalid_state(f"Unknown good {good_id}")
        item = self.inventories[owner].setdefault(good_id, InventoryItem())
        new_quantity = item.quantity + quantity
        if new_quantity > 0:
            item.unit_cost = (item.quantity * item.unit_cost + quantity * unit_cost) / new_quantity
        else:
            item.unit_cost = 0.0
        item.quantity = new_quantity

    def remove_from_inventory(self, owner: AgentId, good_id: GoodId, quantity: float) -> None:
        """Remove stock. Never clamps: asking for more than held is an error."""
        self._require_non_negative(quantity, "Quantity")
        stock = self.inventories.get(owner)
        if stock is None:
            raise EffectError.invalid_state(f"Agent {owner} not found")
        item = stock.get(good_id)
        if item is None:
            raise EffectError.invalid_state(f"No inventory for good {good_id} held by {owner}")
        if item.quantity < quantity:
            raise EffectError.invalid_state(
                f"Insufficient inventory for good {good_id}: have {item.quantity}, need {quantity}"
            )
        item.quantity -= quantity

    def add_instrument(self, instrument: Instrument) -> None:
        """Register a new instrument and book it as a liability of the issuer."""
        self._require_non_negative(instrument.principal, "Principal")
        issuer = self._balance(instrument.issuer)
        self._balance(instrument.holder)
        if instrument.instrument_id in self.instruments or self.registry.exists(
            instrument.instrument_id
        ):
            raise EffectError.invalid_state(f"Instrument {instrument.instrument_id} already exists")
        self.registry.register(instrument.instrument_id, "instrument")
        self.instruments[instrument.instrument_id] = copy.deepcopy(instrument)
        issuer.liabilities = _decimal_add(issuer.liabilities, instrument.principal)

    def update_principal(self, instrument_id: InstrumentId, new_principal: float) -> None:
        self._require_non_negative(new_principal, "Principal")
        instrument = self._instrument(instrument_id)
        issuer = self._balance(instrument.issuer)
        delta = _decimal_sub(new_principal, instrument.principal)
        issuer.liabilities = _decimal_add(issuer.liabilities, delta)
        instrument.principal = new_principal

    def transfer_instrument(self, instrument_id: InstrumentId, new_holder: AgentId) -> None:
        instrument = self._instrument(instrument_id)
        self._balance(new_holder)
        instrument.holder = new_holder

    def remove_instrument(self, instrument_id: InstrumentId) -> None:
        instrument = self._instrument(instrument_id)
        issuer = self._balance(instrument.issuer)
        issuer.liabilities = _decimal_sub(issuer.liabilities, instrument.principal)
        del self.instruments[instrument_id]

    def accrue_interest(self, instrument_id: InstrumentId, amount: float) -> None:
        # Accrued interest is monotone between payments
        self._require_non_negative(amount, "Accrued interest")
        instrument = self._instrument(instrument_id)
        instrument.accrued_interest = _decimal_add(instrument.accrued_interest, amount)

    def reset_accrued_interest(self, instrument_id: InstrumentId) -> None:
        self._instrument(instrument_id).accrued_interest = 0.0

    def hire(self, firm: AgentId, count: int) -> None:
        if count <= 0:
            raise EffectError.application_error(f"Hire count must be positive, got {count}")
        self._agent(firm).workers += count

    def fire(self, firm: AgentId, count: int) -> None:
        if count <= 0:
            raise EffectError.application_error(f"Fire count must be positive, got {count}")
        record = self._agent(firm)
        if record.workers < count:
            raise EffectError.invalid_state(
                f"Firm {firm} has {record.workers} workers, cannot fire {count}"
            )
        record.workers -= count

    def place_order(
        self, good_id: GoodId, side: Side, agent_id: AgentId, quantity: float, price: float
    ) -> None:
        if quantity <= 0 or price < 0:
            raise EffectError.application_error(
                f"Order needs positive quantity and non-negative price, got {quantity} @ {price}"
            )
        self._agent(agent_id)
        self._market(good_id).place(side, agent_id, quantity, price)

    def fill_order(
        self, good_id: GoodId, side: Side, sequence: int, quantity: float, price: float
    ) -> None:
        self._require_non_negative(quantity, "Fill quantity")
        self._market(good_id).fill(side, sequence, quantity, price)

    def clear_book(self, good_id: GoodId) -> None:
        self._market(good_id).clear()

    def advance_tick(self) -> int:
        self.tick += 1
        return self.tick

    # ------------------------------------------------------------------
    # Views and serialization
    # ------------------------------------------------------------------

    def snapshot(self) -> WorldView:
        """Read-only view over a deep copy of the current state."""
        return WorldView(copy.deepcopy(self))

    def to_dict(self) -> dict[str, Any]:
        """Serialize with sorted keys so equal states serialize identically."""
        return {
            "tick": self.tick,
            "registry": dict(sorted(self.registry.to_dict().items())),
            "agents": {
                aid: {"kind": r.kind.value, "workers": r.workers, "alive": r.alive}
                for aid, r in sorted(self.agents.items())
            },
            "balances": {aid: asdict(s) for aid, s in sorted(self.balances.items())},
            "inventories": {
                aid: {gid: asdict(item) for gid, item in sorted(stock.items())}
                for aid, stock in sorted(self.inventories.items())
            },
            "recipes": {rid: r.to_dict() for rid, r in sorted(self.recipes.items())},
            "instruments": {iid: i.to_dict() for iid, i in sorted(self.instruments.items())},
            "markets": {gid: m.to_dict() for gid, m in sorted(self.markets.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorldState:
        world = cls(tick=int(data["tick"]))
        for entity_id, entity_type in data.get("registry", {}).items():
            world.registry.register(entity_id, entity_type)
        for aid, record in data["agents"].items():
            agent_id = AgentId(aid)
            world.agents[agent_id] = AgentRecord(
                agent_id=agent_id,
                kind=AgentKind(record["kind"]),
                workers=int(record["workers"]),
                alive=bool(record["alive"]),
            )
        for aid, sheet in data["balances"].items():
            world.balances[AgentId(aid)] = BalanceSheet(**sheet)
        for aid, stock in data["inventories"].items():
            world.inventories[AgentId(aid)] = {
                GoodId(gid): InventoryItem(**item) for gid, item in stock.items()
            }
        for rid, recipe in data.get("recipes", {}).items():
            world.recipes[RecipeId(rid)] = Recipe.from_dict(recipe)
        for iid, instrument in data.get("instruments", {}).items():
            world.instruments[InstrumentId(iid)] = Instrument.from_dict(instrument)
        for gid, book in data.get("markets", {}).items():
            world.markets[GoodId(gid)] = OrderBook.from_dict(book)
        return world


class WorldView:
    """Read-only accessors over a WorldState.

    Handed to decision makers and resolvers. Returned records belong to
    the snapshot, never to the live world.
    """

    def __init__(self, world: WorldState) -> None:
        self._world = world

    @property
    def tick(self) -> int:
        return self._world.tick

    def agent_ids(self) -> list[AgentId]:
        return sorted(self._world.agents)

    def live_agent_ids(self) -> list[AgentId]:
        return sorted(aid for aid, r in self._world.agents.items() if r.alive)

    def has_agent(self, agent_id: AgentId) -> bool:
        return agent_id in self._world.agents

    def agent(self, agent_id: AgentId) -> AgentRecord | None:
        return self._world.agents.get(agent_id)

    def balance(self, agent_id: AgentId) -> BalanceSheet | None:
        return self._world.balances.get(agent_id)

    def cash(self, agent_id: AgentId) -> float:
        sheet = self._world.balances.get(agent_id)
        return sheet.cash if sheet else 0.0

    def inventory(self, owner: AgentId, good_id: GoodId) -> InventoryItem | None:
        return self._world.inventories.get(owner, {}).get(good_id)

    def quantity(self, owner: AgentId, good_id: GoodId) -> float:
        item = self.inventory(owner, good_id)
        return item.quantity if item else 0.0

    def inventories(self, owner: AgentId) -> dict[GoodId, InventoryItem]:
        return dict(self._world.inventories.get(owner, {}))

    def instrument(self, instrument_id: InstrumentId) -> Instrument | None:
        return self._world.instruments.get(instrument_id)

    def instruments(self) -> list[Instrument]:
        return [i for _, i in sorted(self._world.instruments.items())]

    def instrument_id_taken(self, instrument_id: str) -> bool:
        return self._world.registry.exists(instrument_id)

    def recipe(self, recipe_id: RecipeId) -> Recipe | None:
        return self._world.recipes.get(recipe_id)

    def market(self, good_id: GoodId) -> OrderBook | None:
        return self._world.markets.get(good_id)

    def goods(self) -> list[GoodId]:
        return sorted(self._world.markets)

    def to_dict(self) -> dict[str, Any]:
        return self._world.to_dict()
