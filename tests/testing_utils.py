"""Testing utilities: scenario builders and scripted decision makers.

Usage:
    from testing_utils import ScriptedMaker, build_market_world

    world = build_market_world()
    maker = ScriptedMaker({0: [Hire(agent_id=AgentId("firm_f"), count=3)]})
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from econsim.simulation.agents import ActionDecision, Decision
from econsim.world.actions import Action, Buy
from econsim.world.ids import AgentId, GoodId, RecipeId
from econsim.world.markets import Side
from econsim.world.state import AgentKind, Recipe, WorldState, WorldView

BREAD = GoodId("bread")
FLOUR = GoodId("flour")
BANK = AgentId("bank_b")
CONSUMER = AgentId("consumer_c")
FIRM = AgentId("firm_f")
SELLER = AgentId("seller_s")
GOVERNMENT = AgentId("gov_g")


def build_market_world() -> WorldState:
    """A small economy with a bread market priced at 2/unit.

    - consumer_c: 100 cash, income 100
    - seller_s: firm holding 20 bread at cost 1, asking 20 @ 2
    - firm_f: firm with 50 cash, 10 flour at cost 0.5, no workers
    - bank_b: bank with 1000 cash
    - gov_g: government
    - recipe "bake": 2 flour -> 1 bread
    """
    world = WorldState()
    world.add_good(BREAD)
    world.add_good(FLOUR)
    world.add_agent(BANK, AgentKind.BANK, cash=1000.0)
    world.add_agent(CONSUMER, AgentKind.CONSUMER, cash=100.0, income=100.0)
    world.add_agent(FIRM, AgentKind.FIRM, cash=50.0)
    world.add_agent(GOVERNMENT, AgentKind.GOVERNMENT)
    world.add_agent(SELLER, AgentKind.FIRM, workers=2)
    world.seed_inventory(SELLER, BREAD, 20.0, unit_cost=1.0)
    world.seed_inventory(FIRM, FLOUR, 10.0, unit_cost=0.5)
    world.seed_order(BREAD, Side.ASK, SELLER, 20.0, 2.0)
    world.add_recipe(
        Recipe(
            recipe_id=RecipeId("bake"),
            inputs=((FLOUR, 2.0),),
            output=BREAD,
            output_quantity=1.0,
        )
    )
    return world


@dataclass
class ScriptedMaker:
    """Returns pre-scripted actions keyed by tick; nothing for other ticks."""

    script: dict[int, list[Action]] = field(default_factory=dict)

    def decide(self, snapshot: WorldView, rng: np.random.Generator) -> Sequence[Decision]:
        return [ActionDecision(tuple(self.script.get(snapshot.tick, [])))]


@dataclass
class RandomBuyer:
    """Buys a random 1-3 units of a good every tick."""

    agent_id: AgentId
    good_id: GoodId

    def decide(self, snapshot: WorldView, rng: np.random.Generator) -> Sequence[Decision]:
        quantity = float(rng.integers(1, 4))
        return [ActionDecision((Buy(agent_id=self.agent_id, good_id=self.good_id, quantity=quantity),))]


class ThreadRecordingMaker:
    """Records which thread decided, then does nothing."""

    def __init__(self) -> None:
        self.threads: list[str] = []
        self._lock = threading.Lock()

    def decide(self, snapshot: WorldView, rng: np.random.Generator) -> Sequence[Decision]:
        with self._lock:
            self.threads.append(threading.current_thread().name)
        return []


class ExplodingMaker:
    """Raises from decide()."""

    def decide(self, snapshot: WorldView, rng: np.random.Generator) -> Sequence[Decision]:
        raise RuntimeError("model crashed")
