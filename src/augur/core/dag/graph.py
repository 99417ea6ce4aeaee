# src/augur/core/dag/graph.py
"""PlanGraph: construction, validation and traversal of a detection plan.

Wraps a NetworkX DiGraph keyed by node name. Edges point from producer to
consumer. Construction validates everything up front so that a graph that
exists is always executable: no duplicate names, no dangling references,
no cycles, at most one explicit terminal, no nested fan-out.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import cast

import networkx as nx
from networkx import DiGraph

from augur.contracts import PlanNodeDefinition
from augur.core.dag.models import ENUMERATOR_TYPE, GraphValidationError, NodeInfo, _suggest_similar

# DFS colouring for cycle detection
_UNVISITED, _ON_STACK, _DONE = 0, 1, 2


class PlanGraph:
    """Validated dependency graph of plan nodes.

    Build with PlanGraph.build(); the constructor only creates an empty
    graph. The execution order is computed once and cached.
    """

    def __init__(self) -> None:
        self._graph: DiGraph[str] = nx.DiGraph()
        self._order: list[str] | None = None
        self._enumerator_types: frozenset[str] = frozenset({ENUMERATOR_TYPE})

    # === Construction ===

    @classmethod
    def build(
        cls,
        nodes: Sequence[PlanNodeDefinition],
        *,
        enumerator_types: Iterable[str] = (ENUMERATOR_TYPE,),
    ) -> PlanGraph:
        """Build and validate a graph from ordered node definitions.

        Args:
            nodes: Node definitions in declaration order
            enumerator_types: Type tags whose dependents fan out

        Returns:
            Validated PlanGraph

        Raises:
            GraphValidationError: On duplicate names, unresolved references,
                cycles, multiple terminal tags, or nested fan-out
        """
        graph = cls()
        graph._enumerator_types = frozenset(enumerator_types)

        duplicates = sorted(name for name, count in Counter(node.name for node in nodes).items() if count > 1)
        if duplicates:
            raise GraphValidationError(
                f"Duplicate node name(s): {', '.join(duplicates)}. Node names must be unique within a plan.",
                node_names=duplicates,
            )

        for index, node in enumerate(nodes):
            graph._graph.add_node(node.name, info=NodeInfo(definition=node, index=index))

        declared = [node.name for node in nodes]
        for node in nodes:
            for ref in node.inputs:
                if ref.source_node not in graph._graph:
                    suggestions = _suggest_similar(ref.source_node, declared)
                    hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
                    raise GraphValidationError(
                        f"Node '{node.name}' references undeclared node '{ref.source_node}'.{hint}",
                        node_names=[node.name, ref.source_node],
                    )
                if graph._graph.has_edge(ref.source_node, node.name):
                    graph._graph.edges[ref.source_node, node.name]["refs"].append(ref)
                else:
                    graph._graph.add_edge(ref.source_node, node.name, refs=[ref])

        graph._check_cycles()
        graph._check_terminal_tags()
        graph._assign_fan_out_sources()
        return graph

    def _check_cycles(self) -> None:
        """Depth-first search with a recursion-stack marker.

        Reaching a node that is still on the stack closes a cycle; the
        error names every node on it. Roots are visited in declaration
        order so the reported cycle is deterministic.
        """
        state = dict.fromkeys(self._graph.nodes, _UNVISITED)
        for root in self._declared_names():
            if state[root] != _UNVISITED:
                continue
            path: list[str] = [root]
            state[root] = _ON_STACK
            stack = [iter(self._successors_in_order(root))]
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    state[path.pop()] = _DONE
                    stack.pop()
                    continue
                if state[child] == _ON_STACK:
                    cycle = path[path.index(child) :] + [child]
                    raise GraphValidationError(
                        f"Plan contains a cycle: {' -> '.join(cycle)}",
                        node_names=cycle[:-1],
                    )
                if state[child] == _UNVISITED:
                    state[child] = _ON_STACK
                    path.append(child)
                    stack.append(iter(self._successors_in_order(child)))

    def _check_terminal_tags(self) -> None:
        tagged = [name for name in self._declared_names() if self.get_node_info(name).definition.terminal]
        if len(tagged) > 1:
            raise GraphValidationError(
                f"Only one node may be tagged terminal, found {len(tagged)}: {', '.join(tagged)}",
                node_names=tagged,
            )

    def _assign_fan_out_sources(self) -> None:
        enumerators = [name for name in self._declared_names() if self.is_enumerator(name)]
        owners: dict[str, list[str]] = {}
        for enumerator in enumerators:
            for descendant in nx.descendants(self._graph, enumerator):
                owners.setdefault(descendant, []).append(enumerator)

        for name, sources in owners.items():
            if len(sources) > 1 or self.is_enumerator(name):
                chain = sorted(set(sources) | ({name} if self.is_enumerator(name) else set()))
                raise GraphValidationError(
                    f"Node '{name}' is downstream of enumerator(s) {', '.join(sorted(sources))}. "
                    "Nested or combined fan-out is not supported.",
                    node_names=chain,
                )
            info = self.get_node_info(name)
            self._graph.nodes[name]["info"] = replace(info, fan_out_source=sources[0])

    # === Queries ===

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        """Number of producer -> consumer edges (repeated references collapse)."""
        return self._graph.number_of_edges()

    def has_node(self, name: str) -> bool:
        return self._graph.has_node(name)

    def get_node_info(self, name: str) -> NodeInfo:
        """Get NodeInfo for a node.

        Raises:
            KeyError: If node doesn't exist
        """
        if not self._graph.has_node(name):
            raise KeyError(f"Node not found: {name}")
        return cast(NodeInfo, self._graph.nodes[name]["info"])

    def get_nodes(self) -> list[NodeInfo]:
        """All nodes in declaration order."""
        return [self.get_node_info(name) for name in self._declared_names()]

    def get_nx_graph(self) -> DiGraph[str]:
        """Return a frozen copy of the underlying NetworkX graph."""
        return nx.freeze(self._graph.copy())  # type: ignore[no-any-return]

    def producers(self, name: str) -> list[str]:
        return sorted(self._graph.predecessors(name), key=self._index)

    def consumers(self, name: str) -> list[str]:
        return sorted(self._graph.successors(name), key=self._index)

    def is_enumerator(self, name: str) -> bool:
        return self.get_node_info(name).type_tag in self._enumerator_types

    def fan_out_source(self, name: str) -> str | None:
        """Enumerator that multiplies this node, or None."""
        return self.get_node_info(name).fan_out_source

    def fan_out_scope(self, enumerator: str) -> list[str]:
        """Nodes re-executed once per variant of the given enumerator, in execution order."""
        return [name for name in self.execution_order() if self.fan_out_source(name) == enumerator]

    def execution_order(self) -> list[str]:
        """One topological order, ties broken by declaration order.

        The same node list always yields the same order.
        """
        if self._order is None:
            self._order = list(nx.lexicographical_topological_sort(self._graph, key=self._index))
        return list(self._order)

    def terminal_nodes(self) -> list[str]:
        """Nodes whose outputs the run returns.

        An explicitly tagged node wins; otherwise every node without
        consumers is terminal.
        """
        tagged = [name for name in self._declared_names() if self.get_node_info(name).definition.terminal]
        if tagged:
            return tagged
        return [name for name in self._declared_names() if self._graph.out_degree(name) == 0]

    def _declared_names(self) -> list[str]:
        return sorted(self._graph.nodes, key=self._index)

    def _successors_in_order(self, name: str) -> list[str]:
        return sorted(self._graph.successors(name), key=self._index)

    def _index(self, name: str) -> int:
        return cast(NodeInfo, self._graph.nodes[name]["info"]).index
