# tests/plugins/test_manager.py
"""Tests for the operator registry."""

from collections.abc import Mapping
from typing import Any

import pytest

from augur.contracts import OperatorContext, PlanNodeDefinition
from augur.plugins.base import BaseOperator
from augur.plugins.context import OperatorResources
from augur.plugins.hookspecs import hookimpl


class Constant(BaseOperator):
    """Emit a constant."""

    type_tag = "Constant"

    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        return {self.output_key: 42}


class DuplicateEcho(BaseOperator):
    type_tag = "Echo"

    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        return {}


class ConstantPlugin:
    @hookimpl
    def augur_get_operators(self) -> list[type]:
        return [Constant]


class DuplicateEchoPlugin:
    @hookimpl
    def augur_get_operators(self) -> list[type]:
        return [DuplicateEcho]


class TestOperatorRegistry:
    """Tests for OperatorRegistry."""

    def test_builtin_operators_registered(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()

        assert registry.type_tags() == ["DataFetcher", "Echo", "Enumerator", "PercentageChangeDetector", "ThresholdDetector"]

    def test_enumerator_types(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()

        assert registry.enumerator_types() == frozenset({"Enumerator"})

    def test_register_plugin(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()
        registry.register(ConstantPlugin())

        assert registry.has_type("Constant")
        assert registry.get_operator_class("Constant") is Constant

    def test_duplicate_tag_rejected_and_unregistered(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()

        with pytest.raises(ValueError, match="Duplicate operator type tag: 'Echo'"):
            registry.register(DuplicateEchoPlugin())

        # The registry is still usable and Echo still resolves to the built-in
        from augur.plugins.operators import Echo

        assert registry.get_operator_class("Echo") is Echo

    def test_register_factory(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_factory("Splitter", lambda node, resources: Constant(node, resources), fans_out=True)
        node = PlanNodeDefinition(name="s", type="Splitter")

        operator = registry.create(node, OperatorResources())

        assert isinstance(operator, Constant)
        assert "Splitter" in registry.enumerator_types()

    def test_register_factory_duplicate_rejected(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()

        with pytest.raises(ValueError, match="Duplicate operator type tag: 'Echo'"):
            registry.register_factory("Echo", lambda node, resources: Constant(node, resources))

    def test_plugin_clashing_with_factory_rejected(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_factory("Constant", lambda node, resources: Constant(node, resources))

        with pytest.raises(ValueError, match="register_factory"):
            registry.register(ConstantPlugin())

    def test_create_returns_fresh_instances(self) -> None:
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()
        node = PlanNodeDefinition(name="echo", type="Echo", params={"input_Echo": 1})

        first = registry.create(node, OperatorResources())
        second = registry.create(node, OperatorResources())

        assert first is not second

    def test_unknown_type_suggests(self) -> None:
        from augur.contracts import UnknownNodeTypeError
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()
        node = PlanNodeDefinition(name="n", type="Ecko")

        with pytest.raises(UnknownNodeTypeError, match="Did you mean: Echo") as exc_info:
            registry.create(node, OperatorResources())
        assert exc_info.value.node_name == "n"
        assert "Enumerator" in exc_info.value.available

    def test_validate_types_reports_first_unknown(self) -> None:
        from augur.contracts import UnknownNodeTypeError
        from augur.plugins.manager import OperatorRegistry

        registry = OperatorRegistry()
        registry.register_builtin_operators()
        plan = [
            PlanNodeDefinition(name="ok", type="Echo"),
            PlanNodeDefinition(name="bad", type="Nope"),
        ]

        with pytest.raises(UnknownNodeTypeError, match="'Nope' \\(node 'bad'\\)"):
            registry.validate_types(plan)

    def test_entrypoint_loading_with_none_installed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import pluggy

        from augur.plugins.manager import OperatorRegistry

        monkeypatch.setattr(pluggy.PluginManager, "load_setuptools_entrypoints", lambda self, group, name=None: 0)
        registry = OperatorRegistry()
        registry.register_builtin_operators()

        assert registry.load_entrypoint_plugins() == 0
        assert registry.has_type("Echo")
