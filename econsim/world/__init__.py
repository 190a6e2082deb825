"""World package: state, actions, effects and the transaction executor."""

from __future__ import annotations

from .actions import Action, SimAction, action_from_dict
from .effects import Effect, StateEffect, effect_from_dict
from .errors import ActionError, EffectError, EffectErrorKind, ErrorCategory, ErrorCode
from .executor import Resolution, ScheduledEffect, TransactionExecutor
from .ids import AgentId, GoodId, IDCollisionError, IDRegistry, InstrumentId, RecipeId
from .logger import EventLogger, SummaryCollector, SummaryLogger
from .markets import Order, OrderBook, Side
from .state import (
    AgentKind,
    AgentRecord,
    BalanceSheet,
    Instrument,
    InventoryItem,
    Recipe,
    WorldState,
    WorldView,
)
from .tick_view import TickView

__all__ = [
    "Action",
    "SimAction",
    "action_from_dict",
    "Effect",
    "StateEffect",
    "effect_from_dict",
    "ActionError",
    "EffectError",
    "EffectErrorKind",
    "ErrorCategory",
    "ErrorCode",
    "Resolution",
    "ScheduledEffect",
    "TransactionExecutor",
    "AgentId",
    "GoodId",
    "IDCollisionError",
    "IDRegistry",
    "InstrumentId",
    "RecipeId",
    "EventLogger",
    "SummaryCollector",
    "SummaryLogger",
    "Order",
    "OrderBook",
    "Side",
    "AgentKind",
    "AgentRecord",
    "BalanceSheet",
    "Instrument",
    "InventoryItem",
    "Recipe",
    "WorldState",
    "WorldView",
    "TickView",
]
