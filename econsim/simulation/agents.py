"""Agent-side contracts consumed by the scheduler.

A decision maker is any object with a decide(snapshot, rng) method. It
must be a pure function of its arguments: same snapshot and same random
stream, same decisions. Each decision turns into actions through
into_actions(), which never fails; whether the actions make sense is
decided later, at resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

import numpy as np

from ..world.actions import Action
from ..world.ids import AgentId
from ..world.state import WorldView


class Decision(Protocol):
    def into_actions(self) -> list[Action]: ...


class DecisionMaker(Protocol):
    def decide(self, snapshot: WorldView, rng: np.random.Generator) -> Sequence[Decision]: ...


@dataclass(frozen=True)
class ActionDecision:
    """A decision that already is a list of actions."""

    actions: tuple[Action, ...] = field(default_factory=tuple)

    def into_actions(self) -> list[Action]:
        return list(self.actions)


@dataclass
class SimAgent:
    """Binds an agent id in the world to the code that decides for it."""

    agent_id: AgentId
    decision_maker: DecisionMaker


def into_actions(decisions: Sequence[Decision]) -> list[Action]:
    """Flatten decisions into actions, keeping production order."""
    actions: list[Action] = []
    for decision in decisions:
        actions.extend(decision.into_actions())
    return actions
