"""Operator protocols defining the capability set of plan operators.

These protocols are structural: the engine probes an operator instance
with isinstance() and only calls what it supports.

Capabilities:
- Initializable: initialize(ctx) runs before execute, reads params only
- Executable: execute(ctx) returns the operator's named outputs
- MultiOutput: declares the output keys execute may return; operators
  without it may return at most one output
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from augur.contracts import OperatorContext, PlanNodeDefinition
    from augur.plugins.context import OperatorResources


@runtime_checkable
class OperatorProtocol(Protocol):
    """Base protocol for all operators.

    Lifecycle (per execution, never reused across runs or variants):
    1. factory(node, resources) - construction, no I/O
    2. initialize(ctx) - optional, parameter parsing
    3. execute(ctx) - optional, produces outputs
    """

    type_tag: str


@runtime_checkable
class InitializableOperator(Protocol):
    """Operator that prepares itself from the context before execution."""

    def initialize(self, ctx: "OperatorContext") -> None:
        """Parse params and inputs. Must not perform external I/O."""
        ...


@runtime_checkable
class ExecutableOperator(Protocol):
    """Operator that produces named outputs."""

    def execute(self, ctx: "OperatorContext") -> Mapping[str, Any]:
        """Run the operator.

        Returns:
            Mapping of output key -> value. Empty when the operator has
            nothing to emit.
        """
        ...


@runtime_checkable
class MultiOutputOperator(Protocol):
    """Operator that may emit several named outputs per execution."""

    output_keys: tuple[str, ...]


OperatorClass = type[OperatorProtocol]
"""Operator class as returned by the augur_get_operators hook."""

OperatorFactory = Callable[["PlanNodeDefinition", "OperatorResources"], OperatorProtocol]
"""Callable building a fresh operator for one node execution."""
