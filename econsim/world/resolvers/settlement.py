"""Settlement resolver: interest accrual and payment on instruments.

Accrual per tick is principal * annual rate / ticks_per_year. Payments
move the accrued amount from issuer to holder and reset it to zero.
Either party to an instrument may trigger settlement on it.
"""

from __future__ import annotations

from .. import actions as act
from .. import effects as fx
from ..errors import ErrorCode, execution_error, permission_error
from ..state import Instrument
from ..tick_view import TickView
from ..validation import EPSILON, require_cash, require_instrument


class SettlementResolver:
    """Resolves Settlement actions."""

    def __init__(self, ticks_per_year: int = 365) -> None:
        if ticks_per_year <= 0:
            raise ValueError(f"ticks_per_year must be positive, got {ticks_per_year}")
        self.ticks_per_year = ticks_per_year

    def resolve(self, action: act.SettlementAction, view: TickView) -> list[fx.Effect]:
        instrument = require_instrument(view, action.instrument_id)
        if action.agent_id not in (instrument.issuer, view.holder(instrument.instrument_id)):
            raise permission_error(
                f"{action.agent_id} is not a party to {instrument.instrument_id}",
                instrument_id=instrument.instrument_id,
            )

        if isinstance(action, act.AccrueInterest):
            return self._accrue(instrument, view)
        elif isinstance(action, act.PayInterest):
            return self._pay(instrument, view)
        elif isinstance(action, act.ProcessCouponPayment):
            if view.tick not in instrument.coupon_schedule:
                raise execution_error(
                    f"No coupon due on {instrument.instrument_id} at tick {view.tick}",
                    code=ErrorCode.NOT_DUE,
                    instrument_id=instrument.instrument_id,
                )
            return self._pay(instrument, view)
        raise TypeError(f"Not a settlement action: {action!r}")

    def _accrue(self, instrument: Instrument, view: TickView) -> list[fx.Effect]:
        principal = view.principal(instrument.instrument_id)
        accrual = principal * instrument.rate / self.ticks_per_year
        if accrual <= EPSILON:
            return []
        return [fx.AccrueInterest(instrument_id=instrument.instrument_id, amount=accrual)]

    def _pay(self, instrument: Instrument, view: TickView) -> list[fx.Effect]:
        accrued = view.accrued_interest(instrument.instrument_id)
        if accrued <= EPSILON:
            return []
        require_cash(view, instrument.issuer, accrued)
        return [
            fx.TransferCash(
                payer=instrument.issuer,
                payee=view.holder(instrument.instrument_id) or instrument.holder,
                amount=accrued,
            ),
            fx.ResetAccruedInterest(instrument_id=instrument.instrument_id),
        ]
