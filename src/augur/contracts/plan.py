# src/augur/contracts/plan.py
"""Declarative plan node definitions.

A detection plan is an ordered list of PlanNodeDefinition. Definitions
arrive already parsed (from the persistence layer or a YAML file) and are
frozen after validation; anything that needs different params builds a
new definition instead of mutating this one.

Input references accept three shapes:

    inputs:
      - current_data                      # every output of current_data
      - baseline_data.baselineData        # one output key
      - source_node: enumerator           # explicit mapping
        source_key: enumeration_items
        target_key: item
"""

from __future__ import annotations

import copy
import re
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

# '.' separates node and output key, '#' separates node and variant index
# in qualified output keys, so neither may appear in a node name.
NODE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")


class InputRef(BaseModel):
    """Pointer from a consumer node to a producer's named output(s).

    Attributes:
        source_node: Name of the producing node
        source_key: Output key on the producer, or None for all of its outputs
        target_key: Key the value is exposed under in the consumer's inputs
            (defaults to source_key)
    """

    model_config = {"frozen": True, "populate_by_name": True}

    source_node: str = Field(validation_alias=AliasChoices("source_node", "sourcePlanNode"))
    source_key: str | None = Field(default=None, validation_alias=AliasChoices("source_key", "sourceProperty"))
    target_key: str | None = Field(default=None, validation_alias=AliasChoices("target_key", "targetProperty"))

    @model_validator(mode="before")
    @classmethod
    def parse_shorthand(cls, data: Any) -> Any:
        """Accept 'node' and 'node.key' string shorthands."""
        if isinstance(data, str):
            node, sep, key = data.partition(".")
            if not node or (sep and not key):
                raise ValueError(f"Invalid input reference '{data}': expected 'node' or 'node.key'")
            return {"source_node": node, "source_key": key or None}
        return data

    @model_validator(mode="after")
    def validate_target_requires_source(self) -> InputRef:
        if self.target_key is not None and self.source_key is None:
            raise ValueError(f"Input reference to '{self.source_node}' sets target_key without source_key")
        return self

    @property
    def exposed_key(self) -> str | None:
        """Key under which the consumer sees this input (None = producer keys)."""
        return self.target_key if self.target_key is not None else self.source_key

    def __str__(self) -> str:
        if self.source_key is None:
            return self.source_node
        return f"{self.source_node}.{self.source_key}"


class PlanNodeDefinition(BaseModel):
    """One declarative node of a detection plan.

    Example YAML:
        - name: current_data
          type: DataFetcher
          params:
            metric: page_views
        - name: detector
          type: ThresholdDetector
          inputs: [current_data]
          params:
            max: 1000
          terminal: true
    """

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(description="Node name (unique within the plan)")
    type: str = Field(description="Operator type tag resolved by the node factory")
    params: dict[str, Any] = Field(default_factory=dict, description="Operator parameters")
    inputs: tuple[InputRef, ...] = Field(
        default=(),
        validation_alias=AliasChoices("inputs", "dependsOn", "depends_on"),
        description="Ordered references to other nodes' outputs",
    )
    terminal: bool = Field(default=False, description="Marks the node whose output the run returns")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not NODE_NAME_PATTERN.match(v):
            raise ValueError(f"Invalid node name '{v}': must match {NODE_NAME_PATTERN.pattern}")
        return v

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Node type must not be empty")
        return v

    @field_validator("params", mode="before")
    @classmethod
    def copy_params(cls, v: Any) -> Any:
        # Detach from the caller's structure so later edits cannot leak in.
        if v is None:
            return {}
        return copy.deepcopy(v)

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Producer node names in first-reference order, without duplicates."""
        return tuple(dict.fromkeys(ref.source_node for ref in self.inputs))

    def with_params(self, params: dict[str, Any]) -> PlanNodeDefinition:
        """Return a copy of this definition carrying different params."""
        return self.model_copy(update={"params": copy.deepcopy(params)})


def parse_plan_nodes(raw_nodes: list[Any] | tuple[Any, ...] | None) -> tuple[PlanNodeDefinition, ...]:
    """Validate raw node mappings (or already-built definitions) in order."""
    if raw_nodes is None:
        return ()
    return tuple(node if isinstance(node, PlanNodeDefinition) else PlanNodeDefinition.model_validate(node) for node in raw_nodes)
