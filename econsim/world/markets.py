"""Per-good order books.

Each good has one OrderBook holding resting bids and asks. Orders are
matched only through Buy and Sell actions, which take the best resting
order on the other side:

- best ask: lowest price, then earliest sequence
- best bid: highest price, then earliest sequence

Sequence numbers are assigned per book in placement order and are the
order's identity; fills refer to them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .errors import EffectError
from .ids import AgentId, GoodId


class Side(str, Enum):
    BID = "bid"
    ASK = "ask"


@dataclass
class Order:
    """A resting order."""

    sequence: int
    agent_id: AgentId
    quantity: float
    price: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "agent_id": self.agent_id,
            "quantity": self.quantity,
            "price": self.price,
        }


@dataclass
class OrderBook:
    """Resting orders and clearing state for one good."""

    good_id: GoodId
    bids: list[Order] = field(default_factory=list)
    asks: list[Order] = field(default_factory=list)
    last_price: float | None = None
    next_sequence: int = 0

    def orders(self, side: Side) -> list[Order]:
        return self.bids if side == Side.BID else self.asks

    def ranked(self, side: Side) -> list[Order]:
        """Orders on one side, best first."""
        if side == Side.ASK:
            return sorted(self.asks, key=lambda o: (o.price, o.sequence))
        return sorted(self.bids, key=lambda o: (-o.price, o.sequence))

    def best(
        self,
        side: Side,
        min_quantity: float = 0.0,
        exclude: AgentId | None = None,
        remaining: Callable[[Order], float] | None = None,
    ) -> Order | None:
        """Best order on a side that can fill at least min_quantity.

        Args:
            side: Which side of the book to search
            min_quantity: Smallest acceptable remaining quantity
            exclude: Skip orders placed by this agent
            remaining: Optional override for an order's available quantity
        """
        for order in self.ranked(side):
            if exclude is not None and order.agent_id == exclude:
                continue
            available = remaining(order) if remaining else order.quantity
            if available > 0 and available >= min_quantity:
                return order
        return None

    def place(self, side: Side, agent_id: AgentId, quantity: float, price: float) -> Order:
        order = Order(
            sequence=self.next_sequence,
            agent_id=agent_id,
            quantity=quantity,
            price=price,
        )
        self.next_sequence += 1
        self.orders(side).append(order)
        return order

    def fill(self, side: Side, sequence: int, quantity: float, price: float) -> None:
        """Take quantity from a resting order and record the trade price.

        Raises:
            EffectError: If the order is gone or too small
        """
        book = self.orders(side)
        for order in book:
            if order.sequence == sequence:
                break
        else:
            raise EffectError.invalid_state(
                f"No {side.value} #{sequence} resting in book for {self.good_id}"
            )
        if order.quantity < quantity:
            raise EffectError.invalid_state(
                f"{side.value} #{sequence} for {self.good_id} has {order.quantity}, "
                f"cannot fill {quantity}"
            )
        order.quantity -= quantity
        if order.quantity <= 0:
            book.remove(order)
        self.last_price = price

    def clear(self) -> None:
        self.bids.clear()
        self.asks.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "good_id": self.good_id,
            "bids": [o.to_dict() for o in self.bids],
            "asks": [o.to_dict() for o in self.asks],
            "last_price": self.last_price,
            "next_sequence": self.next_sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrderBook:
        return cls(
            good_id=GoodId(data["good_id"]),
            bids=[Order(**o) for o in data.get("bids", [])],
            asks=[Order(**o) for o in data.get("asks", [])],
            last_price=data.get("last_price"),
            next_sequence=int(data.get("next_sequence", 0)),
        )
