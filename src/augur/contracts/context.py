# src/augur/contracts/context.py
"""Per-execution operator context.

An OperatorContext is built fresh for every operator execution, including
every fan-out variant. It holds read-only views only, so sibling variants
can never observe each other's inputs or params.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from augur.contracts.results import DetectionInterval, EnumerationItem


@dataclass(frozen=True, slots=True)
class OperatorContext:
    """Immutable bundle handed to an operator.

    Attributes:
        node_name: Plan node being executed
        interval: Detection window shared by the whole run
        inputs: Resolved inputs keyed by producer output key (or target_key)
        params: The node's params after template and variant substitution
        variant: Enumerated variant for fan-out executions, else None
    """

    node_name: str
    interval: DetectionInterval
    inputs: MappingProxyType[str, Any]
    params: MappingProxyType[str, Any]
    variant: EnumerationItem | None = None

    @classmethod
    def create(
        cls,
        *,
        node_name: str,
        interval: DetectionInterval,
        inputs: Mapping[str, Any],
        params: Mapping[str, Any],
        variant: EnumerationItem | None = None,
    ) -> OperatorContext:
        return cls(
            node_name=node_name,
            interval=interval,
            inputs=MappingProxyType(dict(inputs)),
            params=MappingProxyType(dict(params)),
            variant=variant,
        )

    @property
    def variant_index(self) -> int | None:
        return self.variant.index if self.variant is not None else None

    def require_input(self, key: str) -> Any:
        """Return an input value, failing loudly when the plan did not wire it."""
        if key not in self.inputs:
            available = ", ".join(sorted(self.inputs)) or "<none>"
            raise KeyError(f"Node '{self.node_name}' requires input '{key}'. Available inputs: {available}")
        return self.inputs[key]
