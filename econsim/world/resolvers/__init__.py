"""Domain resolvers: turn one action into the effects that carry it out."""

from .banking import BankingResolver
from .consumption import ConsumptionResolver
from .production import ProductionResolver
from .settlement import SettlementResolver
from .trading import TradingResolver

__all__ = [
    "BankingResolver",
    "ConsumptionResolver",
    "ProductionResolver",
    "SettlementResolver",
    "TradingResolver",
]
