# src/augur/engine/executor.py
"""PlanExecutor: runs a validated PlanGraph in dependency order.

For each node in PlanGraph.execution_order():

1. Check cancellation (before every node, and every variant when they
   run sequentially)
2. Resolve inputs from the outputs already stored for its producers
3. Build a fresh OperatorContext
4. Construct, initialize and execute a fresh operator
5. Store every output under (node, key, variant_index)

Any operator failure is wrapped in PipelineExecutionError and aborts the
run; no partial output mapping is ever returned.

Qualified output keys:
    "<node>.<key>"            plain execution
    "<node>#<index>.<key>"    fan-out variant <index> (zero-based)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from augur.contracts import (
    DetectionInterval,
    EnumerationItem,
    InputRef,
    MissingInputError,
    OperatorContext,
    PipelineExecutionError,
    PlanNodeDefinition,
    RunCancelledError,
)
from augur.core.dag import PlanGraph
from augur.core.logging import get_logger
from augur.engine.fanout import FanOutPlanner, enumeration_items, substitute_variant
from augur.plugins.context import OperatorResources
from augur.plugins.manager import OperatorRegistry
from augur.plugins.protocols import ExecutableOperator, InitializableOperator, MultiOutputOperator

logger = get_logger(__name__)

__all__ = [
    "ExecutionState",
    "OutputStore",
    "PlanExecutor",
    "TerminalOutput",
    "qualified_key",
]


def qualified_key(node: str, key: str, variant_index: int | None = None) -> str:
    """Key of one output in the run_pipeline() mapping."""
    if variant_index is None:
        return f"{node}.{key}"
    return f"{node}#{variant_index}.{key}"


@dataclass(frozen=True, slots=True)
class TerminalOutput:
    """One output value of a terminal node."""

    node: str
    key: str
    variant_index: int | None
    value: Any

    @property
    def qualified_key(self) -> str:
        return qualified_key(self.node, self.key, self.variant_index)


class OutputStore:
    """Outputs keyed by (node, key, variant_index), in write order.

    Written only from the executing thread; variant workers hand their
    outputs back instead of writing here.
    """

    def __init__(self) -> None:
        self._values: dict[tuple[str, str, int | None], Any] = {}
        self._executed: set[tuple[str, int | None]] = set()

    def put(self, node: str, variant_index: int | None, outputs: Mapping[str, Any]) -> None:
        self._executed.add((node, variant_index))
        for key, value in outputs.items():
            self._values[(node, key, variant_index)] = value

    def executed(self, node: str, variant_index: int | None = None) -> bool:
        return (node, variant_index) in self._executed

    def has(self, node: str, key: str, variant_index: int | None = None) -> bool:
        return (node, key, variant_index) in self._values

    def get(self, node: str, key: str, variant_index: int | None = None) -> Any:
        return self._values[(node, key, variant_index)]

    def outputs_of(self, node: str, variant_index: int | None = None) -> dict[str, Any]:
        """All outputs of one execution, in the order the operator emitted them."""
        return {key: value for (n, key, v), value in self._values.items() if n == node and v == variant_index}

    def items(self) -> list[tuple[tuple[str, str, int | None], Any]]:
        return list(self._values.items())

    def __len__(self) -> int:
        return len(self._values)


@dataclass
class ExecutionState:
    """Mutable state of one run, owned by the executing thread.

    Attributes:
        graph: The graph being executed
        interval: Detection window of the run
        outputs: Stored node outputs
        enumerations: Items produced by each executed enumerator
        executed: Number of operator executions so far (variants count)
    """

    graph: PlanGraph
    interval: DetectionInterval
    outputs: OutputStore = field(default_factory=OutputStore)
    enumerations: dict[str, tuple[EnumerationItem, ...]] = field(default_factory=dict)
    executed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_execution(self) -> None:
        with self._lock:
            self.executed += 1

    def terminal_outputs(self) -> list[TerminalOutput]:
        """Outputs of the terminal nodes, by declaration order then variant index."""
        terminals = self.graph.terminal_nodes()
        found = [
            TerminalOutput(node=node, key=key, variant_index=variant, value=value)
            for (node, key, variant), value in self.outputs.items()
            if node in terminals
        ]
        rank = {name: i for i, name in enumerate(terminals)}
        return sorted(found, key=lambda out: (rank[out.node], -1 if out.variant_index is None else out.variant_index))

    def empty_fan_out_terminals(self) -> list[str]:
        """Terminal nodes skipped because their enumerator produced zero items."""
        empty: list[str] = []
        for node in self.graph.terminal_nodes():
            source = self.graph.fan_out_source(node)
            if source is not None and source in self.enumerations and not self.enumerations[source]:
                empty.append(node)
        return empty

    def output_mapping(self) -> dict[str, Any]:
        """Terminal outputs keyed by qualified output key."""
        return {out.qualified_key: out.value for out in self.terminal_outputs()}


class PlanExecutor:
    """Executes plan graphs with operators from an OperatorRegistry.

    Example:
        registry = OperatorRegistry()
        registry.register_builtin_operators()
        executor = PlanExecutor(registry)
        outputs = executor.run_pipeline(nodes, start=1000, end=2000)
    """

    def __init__(
        self,
        registry: OperatorRegistry,
        resources: OperatorResources | None = None,
        *,
        variant_max_workers: int = 1,
    ) -> None:
        """Initialize executor.

        Args:
            registry: Operator registry resolving node type tags
            resources: Collaborators handed to every operator
            variant_max_workers: Thread pool size for fan-out variants
                (1 runs variants sequentially)
        """
        self._registry = registry
        self._resources = resources if resources is not None else OperatorResources()
        self._fan_out = FanOutPlanner(max_workers=variant_max_workers)

    @property
    def registry(self) -> OperatorRegistry:
        return self._registry

    def build_graph(self, nodes: Sequence[PlanNodeDefinition]) -> PlanGraph:
        """Validate type tags and graph structure without executing anything.

        Raises:
            UnknownNodeTypeError: If a node's type tag is not registered
            GraphValidationError: If the graph is malformed
        """
        graph = PlanGraph.build(nodes, enumerator_types=self._registry.enumerator_types())
        self._registry.validate_types(nodes)
        return graph

    def run_pipeline(
        self,
        nodes: Sequence[PlanNodeDefinition],
        start: int,
        end: int,
        *,
        cancel_event: threading.Event | None = None,
    ) -> dict[str, Any]:
        """Execute a plan and return its terminal outputs.

        Returns:
            Mapping of qualified output key to value. Empty for an empty
            plan or when every terminal was skipped by zero-item fan-out.

        Raises:
            InvalidIntervalError: If start >= end
            GraphValidationError: If the graph is malformed
            UnknownNodeTypeError: If a type tag is not registered
            PipelineExecutionError: If any operator fails
            RunCancelledError: If cancel_event is set mid-run
        """
        interval = DetectionInterval(start, end)
        graph = self.build_graph(nodes)
        return self.execute(graph, interval, cancel_event=cancel_event).output_mapping()

    def execute(
        self,
        graph: PlanGraph,
        interval: DetectionInterval,
        *,
        cancel_event: threading.Event | None = None,
    ) -> ExecutionState:
        """Execute every node of a validated graph.

        Returns:
            The final ExecutionState (outputs of every node)
        """
        state = ExecutionState(graph=graph, interval=interval)
        started = time.perf_counter()
        logger.info("Plan execution started", nodes=graph.node_count, start=interval.start, end=interval.end)

        for name in graph.execution_order():
            self._check_cancelled(cancel_event, name, state)
            source = graph.fan_out_source(name)
            if source is None:
                outputs = self._execute_node(state, name, variant=None)
                state.outputs.put(name, None, outputs)
                if graph.is_enumerator(name):
                    try:
                        state.enumerations[name] = enumeration_items(name, outputs)
                    except TypeError as e:
                        raise PipelineExecutionError(name, e) from e
                    logger.debug("Enumerator produced items", node=name, items=len(state.enumerations[name]))
                continue

            items = state.enumerations[source]
            if not items:
                logger.debug("Skipping node, enumerator produced no items", node=name, enumerator=source)
                continue
            results = self._fan_out.run(
                items,
                lambda item, node=name: self._execute_node(state, node, variant=item),
                lambda node=name: self._check_cancelled(cancel_event, node, state),
            )
            for item, outputs in zip(items, results, strict=True):
                state.outputs.put(name, item.index, outputs)

        logger.info(
            "Plan execution finished",
            executions=state.executed,
            outputs=len(state.outputs),
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        return state

    def _check_cancelled(self, cancel_event: threading.Event | None, next_node: str, state: ExecutionState) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Plan execution cancelled", next_node=next_node, executed=state.executed)
            raise RunCancelledError(next_node, state.executed)

    def _execute_node(self, state: ExecutionState, name: str, variant: EnumerationItem | None) -> dict[str, Any]:
        """Run one operator execution and return its validated outputs.

        Safe to call from variant worker threads: it only reads the store
        (producers finished earlier) and returns outputs without writing.
        """
        graph = state.graph
        definition = graph.get_node_info(name).definition
        source = graph.fan_out_source(name)
        variant_index = variant.index if variant is not None else None
        inputs = self._resolve_inputs(state, definition, variant)

        logger.debug("Node started", node=name, type=definition.type, variant=variant_index)
        try:
            if variant is not None and source is not None:
                definition = definition.with_params(substitute_variant(definition.params, variant, source, node_name=name))
            ctx = OperatorContext.create(
                node_name=name,
                interval=state.interval,
                inputs=inputs,
                params=definition.params,
                variant=variant,
            )
            operator = self._registry.create(definition, self._resources)
            if isinstance(operator, InitializableOperator):
                operator.initialize(ctx)
            outputs = dict(operator.execute(ctx)) if isinstance(operator, ExecutableOperator) else {}
            _check_output_keys(operator, outputs)
        except Exception as e:
            logger.error("Node failed", node=name, variant=variant_index, error=str(e), error_type=type(e).__name__)
            raise PipelineExecutionError(name, e, variant_index=variant_index) from e

        state.record_execution()
        logger.debug("Node finished", node=name, variant=variant_index, outputs=sorted(outputs))
        return outputs

    def _resolve_inputs(self, state: ExecutionState, node: PlanNodeDefinition, variant: EnumerationItem | None) -> dict[str, Any]:
        """Collect a node's inputs, in reference order.

        Later references overwrite earlier ones that expose the same key.

        Raises:
            MissingInputError: If a producer has not executed or lacks the key
        """
        graph = state.graph
        variant_index = variant.index if variant is not None else None
        inputs: dict[str, Any] = {}
        for ref in node.inputs:
            producer = ref.source_node
            if variant is not None and producer == graph.fan_out_source(node.name):
                inputs.update(self._variant_item_inputs(state, node.name, ref, variant))
                continue

            producer_variant = variant_index if graph.fan_out_source(producer) is not None else None
            if not state.outputs.executed(producer, producer_variant):
                raise MissingInputError(node.name, str(ref), producer_variant)
            if ref.source_key is None:
                inputs.update(state.outputs.outputs_of(producer, producer_variant))
                continue
            if not state.outputs.has(producer, ref.source_key, producer_variant):
                raise MissingInputError(node.name, str(ref), producer_variant)
            inputs[ref.exposed_key or ref.source_key] = state.outputs.get(producer, ref.source_key, producer_variant)
        return inputs

    def _variant_item_inputs(self, state: ExecutionState, node: str, ref: InputRef, variant: EnumerationItem) -> dict[str, Any]:
        """Inputs from the fanning enumerator resolve to the current item."""
        emitted = state.outputs.outputs_of(ref.source_node)
        if ref.source_key is None:
            return dict.fromkeys(emitted, variant)
        if ref.source_key not in emitted:
            raise MissingInputError(node, str(ref), variant.index)
        return {ref.exposed_key or ref.source_key: variant}


def _check_output_keys(operator: object, outputs: Mapping[str, Any]) -> None:
    """Operators may only emit what they declare.

    Raises:
        ValueError: On undeclared keys, or several outputs from a
            single-output operator
    """
    if isinstance(operator, MultiOutputOperator):
        undeclared = sorted(set(outputs) - set(operator.output_keys))
        if undeclared:
            raise ValueError(f"Operator emitted undeclared output key(s) {undeclared}; declared: {list(operator.output_keys)}")
    elif len(outputs) > 1:
        raise ValueError(f"Single-output operator emitted {len(outputs)} outputs: {sorted(outputs)}")
