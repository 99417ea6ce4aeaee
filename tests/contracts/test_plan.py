"""Tests for plan node definitions and input references."""

import pytest
from pydantic import ValidationError


class TestInputRef:
    """Tests for InputRef parsing."""

    def test_node_shorthand(self) -> None:
        from augur.contracts import InputRef

        ref = InputRef.model_validate("current_data")

        assert ref.source_node == "current_data"
        assert ref.source_key is None
        assert ref.exposed_key is None
        assert str(ref) == "current_data"

    def test_node_key_shorthand(self) -> None:
        from augur.contracts import InputRef

        ref = InputRef.model_validate("fetch.baselineData")

        assert ref.source_node == "fetch"
        assert ref.source_key == "baselineData"
        assert ref.exposed_key == "baselineData"
        assert str(ref) == "fetch.baselineData"

    def test_camel_case_mapping(self) -> None:
        """Stored templates use sourcePlanNode/sourceProperty/targetProperty."""
        from augur.contracts import InputRef

        ref = InputRef.model_validate({"sourcePlanNode": "fetch", "sourceProperty": "currentData", "targetProperty": "series"})

        assert ref.source_node == "fetch"
        assert ref.exposed_key == "series"

    def test_target_key_requires_source_key(self) -> None:
        from augur.contracts import InputRef

        with pytest.raises(ValidationError, match="target_key without source_key"):
            InputRef.model_validate({"source_node": "fetch", "target_key": "x"})

    @pytest.mark.parametrize("raw", ["", ".key", "node."])
    def test_malformed_shorthand_rejected(self, raw: str) -> None:
        from augur.contracts import InputRef

        with pytest.raises(ValidationError):
            InputRef.model_validate(raw)


class TestPlanNodeDefinition:
    """Tests for PlanNodeDefinition validation."""

    def test_minimal_node(self) -> None:
        from augur.contracts import PlanNodeDefinition

        node = PlanNodeDefinition(name="echo", type="Echo")

        assert node.params == {}
        assert node.inputs == ()
        assert node.terminal is False

    @pytest.mark.parametrize("name", ["a.b", "a#1", "1abc", "", "with space"])
    def test_invalid_names_rejected(self, name: str) -> None:
        """'.' and '#' are reserved for qualified output keys."""
        from augur.contracts import PlanNodeDefinition

        with pytest.raises(ValidationError, match="Invalid node name"):
            PlanNodeDefinition(name=name, type="Echo")

    def test_blank_type_rejected(self) -> None:
        from augur.contracts import PlanNodeDefinition

        with pytest.raises(ValidationError, match="must not be empty"):
            PlanNodeDefinition(name="n", type="  ")

    def test_unknown_field_rejected(self) -> None:
        from augur.contracts import PlanNodeDefinition

        with pytest.raises(ValidationError):
            PlanNodeDefinition.model_validate({"name": "n", "type": "Echo", "paramz": {}})

    def test_depends_on_alias(self) -> None:
        from augur.contracts import PlanNodeDefinition

        node = PlanNodeDefinition.model_validate({"name": "n", "type": "Echo", "dependsOn": ["a", "b.x"]})

        assert [str(ref) for ref in node.inputs] == ["a", "b.x"]

    def test_params_detached_from_caller(self) -> None:
        from augur.contracts import PlanNodeDefinition

        raw = {"nested": {"values": [1, 2]}}
        node = PlanNodeDefinition(name="n", type="Echo", params=raw)
        raw["nested"]["values"].append(3)

        assert node.params == {"nested": {"values": [1, 2]}}

    def test_dependencies_deduplicated_in_order(self) -> None:
        from augur.contracts import PlanNodeDefinition

        node = PlanNodeDefinition.model_validate({"name": "n", "type": "X", "inputs": ["b.one", "a", "b.two"]})

        assert node.dependencies == ("b", "a")

    def test_with_params_returns_new_definition(self) -> None:
        from augur.contracts import PlanNodeDefinition

        node = PlanNodeDefinition(name="n", type="Echo", params={"input_Echo": 1})
        updated = node.with_params({"input_Echo": 2})

        assert updated.params == {"input_Echo": 2}
        assert node.params == {"input_Echo": 1}
        assert updated.name == "n"

    def test_frozen(self) -> None:
        from augur.contracts import PlanNodeDefinition

        node = PlanNodeDefinition(name="n", type="Echo")

        with pytest.raises(ValidationError):
            node.name = "m"  # type: ignore[misc]


class TestParsePlanNodes:
    def test_none_is_empty(self) -> None:
        from augur.contracts import parse_plan_nodes

        assert parse_plan_nodes(None) == ()

    def test_accepts_built_definitions(self) -> None:
        from augur.contracts import PlanNodeDefinition, parse_plan_nodes

        built = PlanNodeDefinition(name="a", type="Echo")
        parsed = parse_plan_nodes([built, {"name": "b", "type": "Echo"}])

        assert parsed[0] is built
        assert parsed[1].name == "b"
