"""Base classes for operator implementations.

Operators subclass BaseOperator, declare a type_tag, and implement
execute(). Params are validated in initialize() through a typed
OperatorConfig so that bad params surface as a clear error naming the
operator.

Example:
    class ScaleConfig(OperatorConfig):
        factor: float

    class Scale(BaseOperator):
        type_tag = "Scale"
        config_class = ScaleConfig

        def execute(self, ctx):
            frame = ctx.require_input("currentData")
            return {self.output_key: frame.assign(value=frame.value * self.config.factor)}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Self

from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from augur.contracts import OperatorContext, PlanNodeDefinition
    from augur.plugins.context import OperatorResources


class OperatorConfigError(ValueError):
    """Raised when operator params are invalid."""


class OperatorConfig(BaseModel):
    """Base class for typed operator params.

    Unknown params are rejected so typos fail instead of being ignored.
    """

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_params(cls, params: Mapping[str, Any], *, operator: str) -> Self:
        """Validate params with an error that names the operator.

        Raises:
            OperatorConfigError: If params are invalid
        """
        try:
            return cls.model_validate(dict(params))
        except ValidationError as e:
            raise OperatorConfigError(f"Invalid params for {operator}: {e}") from e


class EmptyConfig(OperatorConfig):
    """Params model for operators that take no params."""


class BaseOperator(ABC):
    """Base class for plan operators.

    Subclasses set:
        type_tag: Tag used in plan node 'type' fields
        config_class: OperatorConfig subclass validating params
        output_key: Key of the single output (ignored by multi-output
            operators, which set output_keys instead)
    """

    type_tag: ClassVar[str]
    config_class: ClassVar[type[OperatorConfig]] = EmptyConfig
    output_key: ClassVar[str] = "output"

    def __init__(self, node: PlanNodeDefinition, resources: OperatorResources) -> None:
        self.node = node
        self.resources = resources
        self._config: OperatorConfig | None = None

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def config(self) -> Any:
        """Validated params; only available after initialize()."""
        if self._config is None:
            raise RuntimeError(f"{type(self).__name__} for node '{self.node.name}' used before initialize()")
        return self._config

    def initialize(self, ctx: OperatorContext) -> None:
        self._config = self.config_class.from_params(ctx.params, operator=f"{self.type_tag} node '{self.node.name}'")

    @abstractmethod
    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        """Produce this operator's outputs."""
        ...
