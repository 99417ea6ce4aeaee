"""Operator registry for discovery, registration, and lookup.

Uses pluggy for hook-based operator registration. Type tags map to
factories; a factory builds a fresh operator for one node execution.
"""

from collections.abc import Iterable
from typing import Any

import pluggy

from augur.contracts import PlanNodeDefinition, UnknownNodeTypeError
from augur.core.dag.models import ENUMERATOR_TYPE, _suggest_similar
from augur.core.logging import get_logger
from augur.plugins.context import OperatorResources
from augur.plugins.hookspecs import PROJECT_NAME, AugurOperatorSpec
from augur.plugins.protocols import OperatorClass, OperatorFactory, OperatorProtocol

logger = get_logger(__name__)


class OperatorRegistry:
    """Maps plan node type tags to operator factories.

    Usage:
        registry = OperatorRegistry()
        registry.register_builtin_operators()
        registry.register(MyPlugin())

        operator = registry.create(node, resources)
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(AugurOperatorSpec)

        # Hook-contributed classes, rebuilt on every register()
        self._operators: dict[str, OperatorClass] = {}
        # Factories registered directly, outside pluggy
        self._factories: dict[str, OperatorFactory] = {}
        self._fan_out_factories: set[str] = set()

    def register_builtin_operators(self) -> None:
        """Register the operators shipped with augur.

        Call this once at startup to make built-in operators available.
        """
        from augur.plugins.operators import BuiltinOperators

        self.register(BuiltinOperators())

    def load_entrypoint_plugins(self) -> int:
        """Register plugins advertised under the 'augur' entry point group.

        Returns:
            Number of plugins loaded
        """
        count = self._pm.load_setuptools_entrypoints(PROJECT_NAME)
        self._refresh_caches()
        logger.info("Loaded entry point plugins", count=count)
        return count

    def register(self, plugin: Any) -> None:
        """Register a plugin.

        Args:
            plugin: Plugin instance implementing augur_get_operators

        Raises:
            ValueError: If the plugin contributes an already registered tag
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def register_factory(self, type_tag: str, factory: OperatorFactory, *, fans_out: bool = False) -> None:
        """Register a single factory under a type tag.

        Args:
            type_tag: Tag used in plan node 'type' fields
            factory: Callable(node, resources) returning a fresh operator
            fans_out: Whether dependents of nodes with this tag fan out

        Raises:
            ValueError: If the tag is already registered
        """
        if type_tag in self._operators or type_tag in self._factories:
            raise ValueError(f"Duplicate operator type tag: '{type_tag}'")
        self._factories[type_tag] = factory
        if fans_out:
            self._fan_out_factories.add(type_tag)

    def _refresh_caches(self) -> None:
        """Refresh operator caches from hooks.

        Raises:
            ValueError: If a type tag is contributed twice
        """
        new_operators: dict[str, OperatorClass] = {}
        for operators in self._pm.hook.augur_get_operators():
            for cls in operators:
                tag = cls.type_tag
                if tag in new_operators or tag in self._factories:
                    previous = new_operators[tag].__name__ if tag in new_operators else "register_factory()"
                    raise ValueError(f"Duplicate operator type tag: '{tag}'. Already registered by {previous}")
                new_operators[tag] = cls
        self._operators = new_operators

    # === Lookup ===

    def type_tags(self) -> list[str]:
        """All registered type tags, sorted."""
        return sorted({*self._operators, *self._factories})

    def has_type(self, type_tag: str) -> bool:
        return type_tag in self._operators or type_tag in self._factories

    def enumerator_types(self) -> frozenset[str]:
        """Type tags whose dependents are multiplied per enumerated item."""
        tags = {tag for tag, cls in self._operators.items() if getattr(cls, "fans_out", False) or tag == ENUMERATOR_TYPE}
        return frozenset(tags | self._fan_out_factories)

    def get_operator_class(self, type_tag: str) -> OperatorClass | None:
        return self._operators.get(type_tag)

    def create(self, node: PlanNodeDefinition, resources: OperatorResources) -> OperatorProtocol:
        """Instantiate a fresh operator for one execution of node.

        Raises:
            UnknownNodeTypeError: If no factory is registered for node.type
        """
        if node.type in self._factories:
            return self._factories[node.type](node, resources)
        cls = self._operators.get(node.type)
        if cls is None:
            raise self._unknown(node)
        # Hook contributed classes take (node, resources), as BaseOperator does
        return cls(node, resources)  # type: ignore[call-arg]

    def validate_types(self, nodes: Iterable[PlanNodeDefinition]) -> None:
        """Check every node's type tag before anything executes.

        Raises:
            UnknownNodeTypeError: For the first node with an unknown tag
        """
        for node in nodes:
            if not self.has_type(node.type):
                raise self._unknown(node)

    def _unknown(self, node: PlanNodeDefinition) -> UnknownNodeTypeError:
        available = self.type_tags()
        return UnknownNodeTypeError(
            node.type,
            node_name=node.name,
            available=available,
            suggestions=_suggest_similar(node.type, available),
        )
