"""Simulation module - drives ticks over the world."""

from .agents import ActionDecision, Decision, DecisionMaker, SimAgent, into_actions
from .checkpoint import load_checkpoint, save_checkpoint
from .pool import DecisionError, DecisionPool
from .replay import TickLog, load_tick_logs, replay, replay_tick
from .rng import substream
from .scheduler import Scheduler, SimulationHalted
from .types import ErrorStats, HaltReport, TickPhase, TickReport

__all__ = [
    "ActionDecision",
    "Decision",
    "DecisionMaker",
    "SimAgent",
    "into_actions",
    "load_checkpoint",
    "save_checkpoint",
    "DecisionError",
    "DecisionPool",
    "TickLog",
    "load_tick_logs",
    "replay",
    "replay_tick",
    "substream",
    "Scheduler",
    "SimulationHalted",
    "ErrorStats",
    "HaltReport",
    "TickPhase",
    "TickReport",
]
