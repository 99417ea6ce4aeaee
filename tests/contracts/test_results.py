"""Tests for result contracts and alert shapes."""

import pytest


class TestDetectionInterval:
    def test_rejects_empty_or_inverted_window(self) -> None:
        from augur.contracts import DetectionInterval, InvalidIntervalError

        with pytest.raises(InvalidIntervalError, match="must be before end"):
            DetectionInterval(2000, 2000)
        with pytest.raises(InvalidIntervalError):
            DetectionInterval(2000, 1000)

    def test_invalid_interval_is_value_error(self) -> None:
        from augur.contracts import DetectionInterval

        with pytest.raises(ValueError):
            DetectionInterval(5, 1)

    def test_half_open(self) -> None:
        from augur.contracts import DetectionInterval

        interval = DetectionInterval(1000, 2000)

        assert interval.contains(1000)
        assert interval.contains(1999)
        assert not interval.contains(2000)
        assert interval.duration_ms == 1000

    def test_shifted_moves_back(self) -> None:
        from augur.contracts import DetectionInterval

        assert DetectionInterval(1000, 2000).shifted(500) == DetectionInterval(500, 1500)


class TestDetectionPipelineResult:
    def test_empty_is_distinct_from_passthrough_none(self) -> None:
        from augur.contracts import DetectionPipelineResult, ResultKind

        empty = DetectionPipelineResult.empty()
        passthrough = DetectionPipelineResult.passthrough(None)

        assert empty.is_empty
        assert not passthrough.is_empty
        assert passthrough.kind == ResultKind.PASSTHROUGH

    def test_anomalies_flatten_in_result_order(self) -> None:
        from augur.contracts import Anomaly, DetectionPipelineResult, DetectionResult

        first = DetectionResult(anomalies=(Anomaly(start_time=1, end_time=2, current=5.0),))
        second = DetectionResult(anomalies=(Anomaly(start_time=3, end_time=4, current=6.0),))

        result = DetectionPipelineResult.detection(first, second)

        assert [a.start_time for a in result.anomalies] == [1, 3]

    def test_passthrough_has_no_anomalies(self) -> None:
        from augur.contracts import DetectionPipelineResult

        assert DetectionPipelineResult.passthrough("x").anomalies == ()


class TestEnumerationItem:
    def test_params_are_read_only_copy(self) -> None:
        from augur.contracts import EnumerationItem

        raw = {"country": "US"}
        item = EnumerationItem.create(0, raw)
        raw["country"] = "FR"

        assert item.params["country"] == "US"
        with pytest.raises(TypeError):
            item.params["country"] = "DE"  # type: ignore[index]


class TestOperatorContext:
    def test_require_input_names_available_inputs(self) -> None:
        from augur.contracts import DetectionInterval, OperatorContext

        ctx = OperatorContext.create(
            node_name="detector",
            interval=DetectionInterval(0, 10),
            inputs={"currentData": 1},
            params={},
        )

        assert ctx.require_input("currentData") == 1
        assert ctx.variant_index is None
        with pytest.raises(KeyError, match="Available inputs: currentData"):
            ctx.require_input("baselineData")

    def test_inputs_detached_from_caller(self) -> None:
        from augur.contracts import DetectionInterval, OperatorContext

        inputs = {"a": 1}
        ctx = OperatorContext.create(node_name="n", interval=DetectionInterval(0, 10), inputs=inputs, params={})
        inputs["b"] = 2

        assert dict(ctx.inputs) == {"a": 1}


class TestAlert:
    def test_template_selects_plan_path(self) -> None:
        from augur.contracts import Alert, is_plan_alert

        alert = Alert.model_validate({"name": "a", "template": {"nodes": []}})

        assert is_plan_alert(alert)
        assert alert.template is not None
        assert alert.template.nodes == ()

    def test_flat_properties_select_legacy_path(self) -> None:
        from augur.contracts import Alert, is_plan_alert

        alert = Alert.model_validate({"name": "a", "properties": {"metric": "m"}})

        assert not is_plan_alert(alert)

    def test_camel_case_template_properties(self) -> None:
        from augur.contracts import Alert

        alert = Alert.model_validate({"template": {"nodes": []}, "templateProperties": {"x": 1}})

        assert alert.template_properties == {"x": 1}

    def test_template_nodes_parsed(self) -> None:
        from augur.contracts import Alert, PlanNodeDefinition

        alert = Alert.model_validate({"template": {"nodes": [{"name": "echo", "type": "Echo"}]}})

        assert alert.template is not None
        assert isinstance(alert.template.nodes[0], PlanNodeDefinition)
