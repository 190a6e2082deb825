"""Worker pool for the Deciding and Acting phases.

Both phases are pure with respect to the world: each agent gets the
same immutable snapshot and its own random stream. The pool runs them
on a ThreadPoolExecutor and hands results back keyed by agent, sorted
by AgentId, so completion order never leaks into the simulation.

Usage:
    with DecisionPool(num_workers=4) as pool:
        decisions = pool.map_agents(decide_for, agent_ids)
"""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Any, Callable, Sequence, TypeVar

from ..world.ids import AgentId

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DecisionError(Exception):
    """A decision maker (or its decisions) raised instead of returning."""

    def __init__(self, agent_id: AgentId, cause: BaseException) -> None:
        self.agent_id = agent_id
        self.cause = cause
        super().__init__(f"Agent {agent_id} failed to decide: {cause}")


class DecisionPool:
    """Pool of worker threads for per-agent work.

    With num_workers == 1 (or parallel=False) work runs inline on the
    calling thread, which is handy for debugging.
    """

    def __init__(self, num_workers: int = 4, parallel: bool = True) -> None:
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        self.num_workers = num_workers
        self.parallel = parallel and num_workers > 1
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None

    def __enter__(self) -> DecisionPool:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()

    def start(self) -> None:
        if self._executor is not None or not self.parallel:
            return
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.num_workers,
            thread_name_prefix="decision_worker",
        )
        logger.info(f"Started decision pool with {self.num_workers} workers")

    def stop(self) -> None:
        if self._executor is None:
            return
        self._executor.shutdown(wait=True)
        self._executor = None
        logger.info("Decision pool stopped")

    def map_agents(
        self,
        fn: Callable[[AgentId], T],
        agent_ids: Sequence[AgentId],
    ) -> list[tuple[AgentId, T]]:
        """Run fn for every agent and return (agent_id, result) sorted by agent.

        Raises:
            DecisionError: For the lowest failing AgentId, after every
                agent has finished
        """
        ordered = sorted(agent_ids)
        if not self.parallel:
            results: list[tuple[AgentId, T]] = []
            for agent_id in ordered:
                try:
                    results.append((agent_id, fn(agent_id)))
                except Exception as e:
                    raise DecisionError(agent_id, e) from e
            return results

        if self._executor is None:
            self.start()
        assert self._executor is not None

        futures: dict[concurrent.futures.Future[T], AgentId] = {
            self._executor.submit(fn, agent_id): agent_id for agent_id in ordered
        }
        collected: dict[AgentId, T] = {}
        failed: dict[AgentId, BaseException] = {}
        for future in concurrent.futures.as_completed(futures):
            agent_id = futures[future]
            try:
                collected[agent_id] = future.result()
            except Exception as e:
                logger.error(f"Agent {agent_id} raised exception: {e}")
                failed[agent_id] = e

        if failed:
            first = min(failed)
            raise DecisionError(first, failed[first]) from failed[first]
        return [(agent_id, collected[agent_id]) for agent_id in ordered]
