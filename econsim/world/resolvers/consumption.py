"""Consumption resolver: buying from the market and consuming stock."""

from __future__ import annotations

from .. import actions as act
from .. import effects as fx
from ..errors import ErrorCode, execution_error
from ..markets import Side
from ..tick_view import TickView
from ..validation import positive_amount, require_agent, require_cash, require_good, require_inventory


class ConsumptionResolver:
    """Resolves Consumption actions."""

    def resolve(self, action: act.ConsumptionAction, view: TickView) -> list[fx.Effect]:
        if isinstance(action, act.Buy):
            return self._buy(action, view)
        elif isinstance(action, act.Consume):
            return self._consume(action, view)
        raise TypeError(f"Not a consumption action: {action!r}")

    def _buy(self, action: act.Buy, view: TickView) -> list[fx.Effect]:
        """Take the best ask able to fill the whole quantity.

        Effects, in order: stock leaves the seller, arrives at the buyer
        at the trade price, payment moves buyer to seller, the seller
        books revenue, and the ask is filled.
        """
        quantity = positive_amount(action.quantity, "quantity")
        buyer = action.agent_id
        require_agent(view, buyer)
        require_good(view, action.good_id)

        ask = view.best_order(action.good_id, Side.ASK, quantity, exclude=buyer)
        if ask is None:
            raise execution_error(
                f"No ask for {quantity} {action.good_id} in the market",
                code=ErrorCode.NO_LIQUIDITY,
                good_id=action.good_id,
            )
        seller = ask.agent_id
        price = ask.price
        cost = quantity * price
        require_inventory(view, seller, action.good_id, quantity)
        require_cash(view, buyer, cost)

        return [
            fx.RemoveInventory(owner=seller, good_id=action.good_id, quantity=quantity),
            fx.AddInventory(owner=buyer, good_id=action.good_id, quantity=quantity, unit_cost=price),
            fx.TransferCash(payer=buyer, payee=seller, amount=cost),
            fx.RecordRevenue(agent_id=seller, amount=cost),
            fx.FillOrder(
                good_id=action.good_id,
                side=Side.ASK,
                sequence=ask.sequence,
                quantity=quantity,
                price=price,
            ),
        ]

    def _consume(self, action: act.Consume, view: TickView) -> list[fx.Effect]:
        quantity = positive_amount(action.quantity, "quantity")
        require_agent(view, action.agent_id)
        require_inventory(view, action.agent_id, action.good_id, quantity)
        return [fx.RemoveInventory(owner=action.agent_id, good_id=action.good_id, quantity=quantity)]
