"""Banking resolver: cash transfers, deposits, withdrawals and wages."""

from __future__ import annotations

from .. import actions as act
from .. import effects as fx
from ..errors import ErrorCode, resource_error
from ..state import AgentKind, Instrument
from ..tick_view import TickView
from ..validation import (
    positive_amount,
    require_agent,
    require_cash,
    require_holder,
    require_instrument,
)


class BankingResolver:
    """Resolves Banking actions."""

    def __init__(self, deposit_rate: float = 0.0) -> None:
        self.deposit_rate = deposit_rate

    def resolve(self, action: act.BankingAction, view: TickView) -> list[fx.Effect]:
        if isinstance(action, act.Transfer):
            return self._transfer(action, view)
        elif isinstance(action, act.Deposit):
            return self._deposit(action, view)
        elif isinstance(action, act.Withdraw):
            return self._withdraw(action, view)
        elif isinstance(action, act.PayWages):
            return self._pay_wages(action, view)
        elif isinstance(action, act.AssignInstrument):
            return self._assign(action, view)
        raise TypeError(f"Not a banking action: {action!r}")

    def _transfer(self, action: act.Transfer, view: TickView) -> list[fx.Effect]:
        amount = positive_amount(action.amount)
        require_agent(view, action.agent_id)
        require_agent(view, action.to)
        require_cash(view, action.agent_id, amount)
        return [fx.TransferCash(payer=action.agent_id, payee=action.to, amount=amount)]

    def _deposit(self, action: act.Deposit, view: TickView) -> list[fx.Effect]:
        amount = positive_amount(action.amount)
        require_agent(view, action.agent_id)
        require_agent(view, action.bank, kind=AgentKind.BANK)
        require_cash(view, action.agent_id, amount)
        instrument = Instrument(
            instrument_id=view.new_instrument_id(f"deposit-{action.bank}-{action.agent_id}"),
            issuer=action.bank,
            holder=action.agent_id,
            principal=amount,
            rate=self.deposit_rate,
            kind="deposit",
        )
        return [
            fx.TransferCash(payer=action.agent_id, payee=action.bank, amount=amount),
            fx.CreateInstrument(instrument=instrument),
        ]

    def _withdraw(self, action: act.Withdraw, view: TickView) -> list[fx.Effect]:
        amount = positive_amount(action.amount)
        instrument = require_instrument(view, action.instrument_id)
        require_holder(view, instrument, action.agent_id)
        principal = view.principal(action.instrument_id)
        if principal < amount:
            raise resource_error(
                f"Cannot withdraw {amount:.2f} from {action.instrument_id}: "
                f"principal is {principal:.2f}",
                code=ErrorCode.INSUFFICIENT_FUNDS,
            )
        require_cash(view, instrument.issuer, amount)

        effects: list[fx.Effect] = [
            fx.TransferCash(payer=instrument.issuer, payee=action.agent_id, amount=amount)
        ]
        remaining = principal - amount
        if remaining > 0:
            effects.append(
                fx.UpdateInstrument(instrument_id=action.instrument_id, new_principal=remaining)
            )
        else:
            effects.append(fx.RemoveInstrument(instrument_id=action.instrument_id))
        return effects

    def _pay_wages(self, action: act.PayWages, view: TickView) -> list[fx.Effect]:
        amount = positive_amount(action.amount)
        require_agent(view, action.agent_id)
        require_agent(view, action.employee)
        require_cash(view, action.agent_id, amount)
        return [
            fx.TransferCash(payer=action.agent_id, payee=action.employee, amount=amount),
            fx.UpdateIncome(agent_id=action.employee, amount=amount),
        ]

    def _assign(self, action: act.AssignInstrument, view: TickView) -> list[fx.Effect]:
        instrument = require_instrument(view, action.instrument_id)
        require_holder(view, instrument, action.agent_id)
        require_agent(view, action.to)
        return [fx.TransferInstrument(instrument_id=action.instrument_id, new_holder=action.to)]
