"""Identifier types and the world-wide ID registry.

All identifiers are plain strings at runtime, so they are copyable,
hashable, JSON-friendly and totally ordered. The NewType wrappers only
exist for the type checker.

Usage:
    registry = IDRegistry()
    registry.register("firm_1", "agent")
    registry.register("bread", "good")
    registry.register("firm_1", "instrument")  # raises IDCollisionError
"""

from __future__ import annotations

from typing import Literal, NewType

AgentId = NewType("AgentId", str)
GoodId = NewType("GoodId", str)
RecipeId = NewType("RecipeId", str)
InstrumentId = NewType("InstrumentId", str)

EntityType = Literal["agent", "good", "recipe", "instrument"]

# Agent used for actions and effects that no single agent owns
SYSTEM_AGENT = AgentId("SYSTEM")


class IDCollisionError(Exception):
    """Raised when attempting to register an ID that already exists."""

    def __init__(self, entity_id: str, existing_type: str, new_type: str) -> None:
        self.entity_id = entity_id
        self.existing_type = existing_type
        self.new_type = new_type
        super().__init__(
            f"ID collision: '{entity_id}' already registered as '{existing_type}', "
            f"cannot register as '{new_type}'"
        )


class IDRegistry:
    """Single namespace for every id created during a run.

    IDs are never reused: unregistering is not supported, so an id that
    belonged to a removed instrument stays taken for the rest of the run.
    Not thread-safe; only the single writer registers ids.
    """

    _ids: dict[str, EntityType]

    def __init__(self) -> None:
        self._ids = {}

    def register(self, entity_id: str, entity_type: EntityType) -> None:
        """Register an ID in the global namespace.

        Raises:
            IDCollisionError: If the ID is already registered
        """
        if entity_id in self._ids:
            raise IDCollisionError(entity_id, self._ids[entity_id], entity_type)
        self._ids[entity_id] = entity_type

    def exists(self, entity_id: str) -> bool:
        return entity_id in self._ids

    def lookup(self, entity_id: str) -> EntityType | None:
        """Look up the entity type for an ID, None if unknown."""
        return self._ids.get(entity_id)

    def get_ids_by_type(self, entity_type: EntityType) -> list[str]:
        """Get all IDs of a specific type, sorted."""
        return sorted(eid for eid, etype in self._ids.items() if etype == entity_type)

    def count(self) -> int:
        return len(self._ids)

    def to_dict(self) -> dict[str, str]:
        return dict(self._ids)
