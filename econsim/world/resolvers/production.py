"""Production resolver: hiring, firing and running recipes."""

from __future__ import annotations

from .. import actions as act
from .. import effects as fx
from ..errors import ErrorCode, resource_error, validation_error
from ..state import AgentKind
from ..tick_view import TickView
from ..validation import positive_integer, require_agent, require_inventory


class ProductionResolver:
    """Resolves Production actions. Only firms may take them."""

    def resolve(self, action: act.ProductionAction, view: TickView) -> list[fx.Effect]:
        if isinstance(action, act.Hire):
            return self._hire(action, view)
        elif isinstance(action, act.Fire):
            return self._fire(action, view)
        elif isinstance(action, act.Produce):
            return self._produce(action, view)
        raise TypeError(f"Not a production action: {action!r}")

    def _hire(self, action: act.Hire, view: TickView) -> list[fx.Effect]:
        count = positive_integer(action.count, "count")
        require_agent(view, action.agent_id, kind=AgentKind.FIRM)
        return [fx.Hire(firm=action.agent_id, count=count)]

    def _fire(self, action: act.Fire, view: TickView) -> list[fx.Effect]:
        count = positive_integer(action.count, "count")
        require_agent(view, action.agent_id, kind=AgentKind.FIRM)
        workers = view.available_workers(action.agent_id)
        if workers < count:
            raise resource_error(
                f"Firm {action.agent_id} has {workers} workers, cannot fire {count}",
                code=ErrorCode.NO_WORKERS,
            )
        return [fx.Fire(firm=action.agent_id, count=count)]

    def _produce(self, action: act.Produce, view: TickView) -> list[fx.Effect]:
        """Consume recipe inputs and add the output at the inputs' cost."""
        batches = positive_integer(action.batches, "batches")
        firm = action.agent_id
        require_agent(view, firm, kind=AgentKind.FIRM)
        recipe = view.recipe(action.recipe_id)
        if recipe is None:
            raise resource_error(f"Recipe {action.recipe_id} not found", recipe_id=action.recipe_id)
        if view.available_workers(firm) <= 0:
            raise resource_error(
                f"Firm {firm} has no workers to run {recipe.recipe_id}",
                code=ErrorCode.NO_WORKERS,
            )

        output_quantity = recipe.output_quantity * batches * recipe.efficiency
        if output_quantity <= 0:
            raise validation_error(f"Recipe {recipe.recipe_id} yields no output")

        effects: list[fx.Effect] = []
        input_cost = 0.0
        for good_id, per_batch in recipe.inputs:
            needed = per_batch * batches
            require_inventory(view, firm, good_id, needed)
            item = view.inventory(firm, good_id)
            input_cost += needed * (item.unit_cost if item else 0.0)
            effects.append(fx.RemoveInventory(owner=firm, good_id=good_id, quantity=needed))

        effects.append(
            fx.AddInventory(
                owner=firm,
                good_id=recipe.output,
                quantity=output_quantity,
                unit_cost=input_cost / output_quantity,
            )
        )
        return effects
