"""Per-agent, per-tick random streams.

Every agent gets a fresh numpy Generator each tick, seeded from
(root seed, tick, agent key). Streams never depend on which thread runs
the agent or in what order, so parallel and serial runs match.
"""

from __future__ import annotations

import hashlib

import numpy as np


def agent_key(agent_id: str) -> int:
    """Stable 64-bit integer for an agent id (Python's hash() is salted)."""
    digest = hashlib.sha256(agent_id.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def substream(seed: int, tick: int, agent_id: str) -> np.random.Generator:
    return np.random.default_rng(np.random.SeedSequence([seed, tick, agent_key(agent_id)]))
