"""Pytest fixtures for econsim tests.

Common fixtures for testing the simulation core.
"""

from __future__ import annotations

from typing import Iterator

import pytest

from econsim import config as config_module
from econsim.config_schema import AppConfig, validate_config_dict
from econsim.world.executor import TransactionExecutor
from econsim.world.state import WorldState
from econsim.world.tick_view import TickView
from testing_utils import build_market_world


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "scenario: end-to-end economic scenarios run through the scheduler"
    )


@pytest.fixture
def world() -> WorldState:
    """The standard bread-market world (see testing_utils.build_market_world)."""
    return build_market_world()


@pytest.fixture
def executor(world: WorldState) -> TransactionExecutor:
    """Executor over the standard world, with a 2% deposit rate and 100 ticks/year."""
    return TransactionExecutor(world, deposit_rate=0.02, ticks_per_year=100)


@pytest.fixture
def view(world: WorldState) -> TickView:
    """Fresh tick view over a snapshot of the standard world."""
    return TickView(world.snapshot())


@pytest.fixture
def serial_config() -> AppConfig:
    """Config running decisions inline on the calling thread."""
    return validate_config_dict({
        "simulation": {"seed": 7, "parallel_decisions": False},
        "pool": {"num_workers": 1},
    })


@pytest.fixture
def parallel_config() -> AppConfig:
    """Config running decisions on four worker threads."""
    return validate_config_dict({
        "simulation": {"seed": 7, "parallel_decisions": True},
        "pool": {"num_workers": 4},
    })


@pytest.fixture(autouse=True)
def _reset_global_config() -> Iterator[None]:
    """Forget any config a test loaded."""
    yield
    config_module.reset_config()
