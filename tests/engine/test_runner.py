# tests/engine/test_runner.py
"""Tests for DetectionPipelineRunner: path selection and full plan runs."""

import json
import threading
from typing import Any

import pytest

from augur.contracts import Alert, ResultKind
from augur.core.config import AugurSettings
from tests.conftest import DAY_MS, HOUR_MS, WINDOW_END, WINDOW_START


def plan_alert(nodes: list[dict[str, Any]], **kwargs: Any) -> Alert:
    return Alert.model_validate({"id": 7, "name": "views", "template": {"nodes": nodes, **kwargs.pop("template", {})}, **kwargs})


@pytest.fixture
def runner(traffic_fetcher: Any) -> Any:
    from augur.engine.runner import DetectionPipelineRunner

    return DetectionPipelineRunner.from_settings(AugurSettings(), data_fetcher=traffic_fetcher)


DIMENSION_PLAN = [
    {"name": "countries", "type": "Enumerator", "params": {"items": "${countries}"}},
    {
        "name": "fetch",
        "type": "DataFetcher",
        "inputs": ["countries"],
        "params": {
            "metric": "${metric}",
            "dataset": "web_traffic",
            "filters": {"country": "<countries.country>"},
            "offset_ms": DAY_MS,
        },
    },
    {
        "name": "detect",
        "type": "PercentageChangeDetector",
        "inputs": ["fetch"],
        "params": {"percentage_change": 0.5, "dimensions": {"country": "<countries.country>"}},
    },
]


class TestPlanPath:
    def test_echo_result_with_metadata(self, runner: Any) -> None:
        alert = plan_alert(
            [{"name": "echo", "type": "Echo", "params": {"input_Echo": "${message}"}}],
            template={"properties": {"message": "default"}},
            template_properties={"message": "hello"},
        )

        result = runner.run(alert, 1000, 2000)

        assert result.kind == ResultKind.PASSTHROUGH
        assert result.payload == "hello"
        assert result.metadata.alert_id == 7
        assert result.metadata.alert_name == "views"
        assert (result.metadata.interval.start, result.metadata.interval.end) == (1000, 2000)
        assert len(result.metadata.run_id) == 32

    def test_template_defaults_used(self, runner: Any) -> None:
        alert = plan_alert(
            [{"name": "echo", "type": "Echo", "params": {"input_Echo": "${message}"}}],
            template={"properties": {"message": "default"}},
        )

        assert runner.run(alert, 1000, 2000).payload == "default"

    def test_unresolved_property_raises(self, runner: Any) -> None:
        from augur.contracts import TemplateRenderError

        alert = plan_alert([{"name": "echo", "type": "Echo", "params": {"input_Echo": "${message}"}}])

        with pytest.raises(TemplateRenderError, match="message"):
            runner.run(alert, 1000, 2000)

    def test_empty_plan_reports_no_terminal_output(self, runner: Any) -> None:
        from augur.contracts import NoTerminalOutputError

        with pytest.raises(NoTerminalOutputError):
            runner.run(plan_alert([]), 1000, 2000)

    def test_two_terminals_rejected(self, runner: Any) -> None:
        from augur.contracts import MultipleRootOutputsError

        alert = plan_alert(
            [
                {"name": "a", "type": "Echo", "params": {"input_Echo": 1}},
                {"name": "b", "type": "Echo", "params": {"input_Echo": 2}},
            ]
        )

        with pytest.raises(MultipleRootOutputsError):
            runner.run(alert, 1000, 2000)

    def test_terminal_tag_selects_output(self, runner: Any) -> None:
        alert = plan_alert(
            [
                {"name": "a", "type": "Echo", "params": {"input_Echo": 1}, "terminal": True},
                {"name": "b", "type": "Echo", "params": {"input_Echo": 2}},
            ]
        )

        assert runner.run(alert, 1000, 2000).payload == 1

    def test_zero_variant_terminal_gives_empty_result(self, runner: Any) -> None:
        alert = plan_alert(
            [
                {"name": "enum", "type": "Enumerator", "params": {"values": []}},
                {"name": "echo", "type": "Echo", "inputs": ["enum"], "params": {"input_Echo": "<enum.value>"}},
            ]
        )

        result = runner.run(alert, 1000, 2000)

        assert result.is_empty
        assert result.metadata is not None

    def test_dimension_fan_out_detection(self, runner: Any) -> None:
        alert = plan_alert(
            DIMENSION_PLAN,
            template_properties={"metric": "page_views", "countries": [{"country": "US"}, {"country": "FR"}]},
        )

        result = runner.run(alert, WINDOW_START, WINDOW_END)

        assert result.kind == ResultKind.DETECTION
        assert len(result.detection_results) == 2
        (anomaly,) = result.anomalies
        assert dict(anomaly.dimensions) == {"country": "US"}
        assert anomaly.start_time == WINDOW_START + 5 * HOUR_MS
        assert anomaly.current == 180.0
        assert anomaly.baseline == 100.0

    def test_operator_failure_propagates(self, runner: Any) -> None:
        from augur.contracts import PipelineExecutionError

        alert = plan_alert([{"name": "fetch", "type": "DataFetcher", "params": {"metric": "page_views", "dataset": "nope"}}])

        with pytest.raises(PipelineExecutionError) as exc_info:
            runner.run(alert, WINDOW_START, WINDOW_END)
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_cancelled_run(self, runner: Any) -> None:
        from augur.contracts import RunCancelledError

        event = threading.Event()
        event.set()

        with pytest.raises(RunCancelledError):
            runner.run(plan_alert([{"name": "echo", "type": "Echo", "params": {"input_Echo": 1}}]), 0, 10, cancel_event=event)

    def test_failure_logged_with_run_context(self, runner: Any, capsys: pytest.CaptureFixture[str]) -> None:
        from augur.contracts import NoTerminalOutputError
        from augur.core.logging import configure_logging

        configure_logging(json_output=True)
        with pytest.raises(NoTerminalOutputError):
            runner.run(plan_alert([]), 1000, 2000)

        records = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        failure = next(r for r in records if r["event"] == "Alert run failed")
        assert failure["alert_id"] == 7
        assert len(failure["run_id"]) == 32

    def test_pooled_variants_log_with_run_context(self, traffic_fetcher: Any, capsys: pytest.CaptureFixture[str]) -> None:
        from augur.core.config import EngineSettings
        from augur.core.logging import configure_logging
        from augur.engine.runner import DetectionPipelineRunner

        pooled = DetectionPipelineRunner.from_settings(
            AugurSettings(engine=EngineSettings(variant_max_workers=4)), data_fetcher=traffic_fetcher
        )
        alert = plan_alert(
            [
                {"name": "enum", "type": "Enumerator", "params": {"values": ["a", "b", "c"]}},
                {"name": "echo", "type": "Echo", "inputs": ["enum"], "params": {"input_Echo": "<enum.value>"}},
            ]
        )

        configure_logging(json_output=True, level="DEBUG")
        result = pooled.run(alert, 1000, 2000)

        assert result.payload == ("a", "b", "c")
        records = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        finished = [r for r in records if r["event"] == "Node finished" and r["node"] == "echo"]
        assert sorted(r["variant"] for r in finished) == [0, 1, 2]
        assert {r["run_id"] for r in finished} == {result.metadata.run_id}
        assert {r["alert_id"] for r in finished} == {7}


class TestLegacyPath:
    def test_flat_alert_runs_legacy_pipeline(self, runner: Any) -> None:
        from augur.engine.legacy import LegacyPipelineResult

        alert = Alert.model_validate(
            {
                "name": "legacy",
                "properties": {
                    "metric": "page_views",
                    "dataset": "web_traffic",
                    "filters": {"country": "US"},
                    "detector": {"type": "THRESHOLD", "max": 150},
                },
            }
        )

        result = runner.run(alert, WINDOW_START, WINDOW_END)

        assert isinstance(result, LegacyPipelineResult)
        assert [a.start_time for a in result.anomalies] == [WINDOW_START + 5 * HOUR_MS]

    def test_legacy_needs_data_fetcher(self) -> None:
        from augur.contracts import MissingDataFetcherError
        from augur.engine.runner import DetectionPipelineRunner

        runner = DetectionPipelineRunner.from_settings(AugurSettings())
        alert = Alert.model_validate({"properties": {"metric": "m", "detector": {"type": "THRESHOLD", "max": 1}}})

        with pytest.raises(MissingDataFetcherError, match="needs a data fetcher"):
            runner.run(alert, 0, 10)

    def test_legacy_fetch_failure_logged_with_run_context(self, runner: Any, capsys: pytest.CaptureFixture[str]) -> None:
        from augur.contracts import PipelineExecutionError
        from augur.core.logging import configure_logging

        configure_logging(json_output=True)
        alert = Alert.model_validate(
            {"id": 9, "properties": {"metric": "page_views", "dataset": "nope", "detector": {"type": "THRESHOLD", "max": 1}}}
        )

        with pytest.raises(PipelineExecutionError):
            runner.run(alert, WINDOW_START, WINDOW_END)

        records = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        failure = next(r for r in records if r["event"] == "Alert run failed")
        assert failure["alert_id"] == 9
        assert failure["error_type"] == "PipelineExecutionError"

    def test_plan_runner_rejects_alert_without_template(self, runner: Any) -> None:
        alert = Alert.model_validate({"properties": {"metric": "m"}})

        with pytest.raises(ValueError, match="no template"):
            runner._run_plan(alert, 0, 10, run_id="r", cancel_event=None)
