# src/augur/core/dag/models.py
"""Types, constants, and helpers for plan graph operations.

Leaf module: no intra-package imports beyond contracts (prevents import
cycles).
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass

from augur.contracts import GraphValidationError, PlanNodeDefinition

# Type tag of the built-in fan-out node. Registries may declare more.
ENUMERATOR_TYPE = "Enumerator"


@dataclass(frozen=True, slots=True)
class NodeInfo:
    """A plan node as stored on the graph.

    Attributes:
        definition: The validated node definition
        index: Position in the declared node list (tie-breaker for ordering)
        fan_out_source: Name of the enumerator this node is fanned out by,
            or None when the node runs exactly once
    """

    definition: PlanNodeDefinition
    index: int
    fan_out_source: str | None = None

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def type_tag(self) -> str:
        return self.definition.type


def _suggest_similar(name: str, candidates: list[str]) -> list[str]:
    """Suggest similar names for wiring validation errors."""
    return difflib.get_close_matches(name, candidates, n=3, cutoff=0.6)


__all__ = [
    "ENUMERATOR_TYPE",
    "GraphValidationError",
    "NodeInfo",
]
