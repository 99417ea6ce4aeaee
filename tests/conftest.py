# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- registry: OperatorRegistry with the built-in operators registered
- executor: PlanExecutor over that registry (no data fetcher)
- traffic_fetcher: InMemoryDataFetcher over a small page_views series
  with a one-day baseline shift and a spike at t=5

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from typing import Any

import pandas as pd
import pytest
from hypothesis import Phase, Verbosity, settings

from augur.contracts import PlanNodeDefinition, parse_plan_nodes
from augur.engine.executor import PlanExecutor
from augur.plugins.context import OperatorResources
from augur.plugins.data import InMemoryDataFetcher
from augur.plugins.manager import OperatorRegistry

DAY_MS = 24 * 60 * 60 * 1000
# Eight hourly points in the current window, starting at one day
HOUR_MS = 60 * 60 * 1000
WINDOW_START = DAY_MS
WINDOW_END = DAY_MS + 8 * HOUR_MS


def nodes(*raw: dict[str, Any]) -> tuple[PlanNodeDefinition, ...]:
    """Build node definitions from plain mappings."""
    return parse_plan_nodes(list(raw))


def traffic_frame() -> pd.DataFrame:
    """page_views for two countries: baseline day is flat, current day spikes at hour 5 in US."""
    rows = []
    for day in (0, 1):
        for hour in range(8):
            ts = day * DAY_MS + hour * HOUR_MS
            us = 100.0
            if day == 1 and hour == 5:
                us = 180.0
            rows.append({"ts": ts, "country": "US", "page_views": us})
            rows.append({"ts": ts, "country": "FR", "page_views": 50.0})
    return pd.DataFrame(rows)


@pytest.fixture
def registry() -> OperatorRegistry:
    """Registry with the built-in operators."""
    registry = OperatorRegistry()
    registry.register_builtin_operators()
    return registry


@pytest.fixture
def executor(registry: OperatorRegistry) -> PlanExecutor:
    return PlanExecutor(registry)


@pytest.fixture
def traffic_fetcher() -> InMemoryDataFetcher:
    return InMemoryDataFetcher({"web_traffic": traffic_frame()}, timestamp_column="ts")


@pytest.fixture
def data_executor(registry: OperatorRegistry, traffic_fetcher: InMemoryDataFetcher) -> PlanExecutor:
    return PlanExecutor(registry, OperatorResources(data_fetcher=traffic_fetcher))


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
