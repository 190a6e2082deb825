"""Trading resolver: resting orders and selling into bids."""

from __future__ import annotations

from .. import actions as act
from .. import effects as fx
from ..errors import ErrorCode, execution_error
from ..markets import Side
from ..state import AgentKind
from ..tick_view import TickView
from ..validation import positive_amount, require_agent, require_cash, require_good, require_inventory


class TradingResolver:
    """Resolves Trading actions."""

    def resolve(self, action: act.TradingAction, view: TickView) -> list[fx.Effect]:
        if isinstance(action, act.PostBid):
            return self._post(action, Side.BID, view)
        elif isinstance(action, act.PostAsk):
            return self._post(action, Side.ASK, view)
        elif isinstance(action, act.Sell):
            return self._sell(action, view)
        elif isinstance(action, act.ClearMarket):
            require_agent(view, action.agent_id, kind=AgentKind.GOVERNMENT)
            require_good(view, action.good_id)
            return [fx.ClearBook(good_id=action.good_id)]
        raise TypeError(f"Not a trading action: {action!r}")

    def _post(self, action: act.PostBid | act.PostAsk, side: Side, view: TickView) -> list[fx.Effect]:
        quantity = positive_amount(action.quantity, "quantity")
        price = positive_amount(action.price, "price")
        require_agent(view, action.agent_id)
        require_good(view, action.good_id)
        if side == Side.BID:
            require_cash(view, action.agent_id, quantity * price)
        else:
            require_inventory(view, action.agent_id, action.good_id, quantity)
        return [
            fx.PlaceOrder(
                good_id=action.good_id,
                side=side,
                agent_id=action.agent_id,
                quantity=quantity,
                price=price,
            )
        ]

    def _sell(self, action: act.Sell, view: TickView) -> list[fx.Effect]:
        quantity = positive_amount(action.quantity, "quantity")
        seller = action.agent_id
        require_agent(view, seller)
        require_good(view, action.good_id)

        bid = view.best_order(action.good_id, Side.BID, quantity, exclude=seller)
        if bid is None:
            raise execution_error(
                f"No bid for {quantity} {action.good_id} in the market",
                code=ErrorCode.NO_LIQUIDITY,
                good_id=action.good_id,
            )
        buyer = bid.agent_id
        proceeds = quantity * bid.price
        require_inventory(view, seller, action.good_id, quantity)
        require_cash(view, buyer, proceeds)

        return [
            fx.RemoveInventory(owner=seller, good_id=action.good_id, quantity=quantity),
            fx.AddInventory(owner=buyer, good_id=action.good_id, quantity=quantity, unit_cost=bid.price),
            fx.TransferCash(payer=buyer, payee=seller, amount=proceeds),
            fx.RecordRevenue(agent_id=seller, amount=proceeds),
            fx.FillOrder(
                good_id=action.good_id,
                side=Side.BID,
                sequence=bid.sequence,
                quantity=quantity,
                price=bid.price,
            ),
        ]
