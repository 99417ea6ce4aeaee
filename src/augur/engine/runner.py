# src/augur/engine/runner.py
"""DetectionPipelineRunner: one alert run from alert to result.

Path selection happens once per run with is_plan_alert():

- Plan alerts: merge template default properties with the alert's
  template properties, render ${...} placeholders into node params,
  execute the plan, aggregate the single terminal output.
- Legacy alerts: build a LegacyDetectionPipeline from flat properties
  and run it.

There is no fallback from one path to the other.
"""

from __future__ import annotations

import threading
import uuid

import structlog

from augur.contracts import (
    Alert,
    AugurError,
    DetectionInterval,
    DetectionPipelineResult,
    MissingDataFetcherError,
    RunMetadata,
    is_plan_alert,
)
from augur.core.config import AugurSettings
from augur.core.logging import get_logger
from augur.core.templates import merge_properties, render_template_properties
from augur.engine.aggregator import ResultAggregator
from augur.engine.executor import PlanExecutor
from augur.engine.legacy import LegacyDetectionPipeline, LegacyPipelineResult
from augur.plugins.context import OperatorResources
from augur.plugins.data import DataFetcherProtocol
from augur.plugins.manager import OperatorRegistry

logger = get_logger(__name__)


class DetectionPipelineRunner:
    """Runs alerts on either execution path.

    Example:
        runner = DetectionPipelineRunner.from_settings(settings, data_fetcher=fetcher)
        result = runner.run(alert, start=1_700_000_000_000, end=1_700_086_400_000)
    """

    def __init__(
        self,
        executor: PlanExecutor,
        *,
        data_fetcher: DataFetcherProtocol | None = None,
        aggregator: ResultAggregator | None = None,
    ) -> None:
        self._executor = executor
        self._data_fetcher = data_fetcher
        self._aggregator = aggregator if aggregator is not None else ResultAggregator()

    @classmethod
    def from_settings(
        cls,
        settings: AugurSettings,
        *,
        data_fetcher: DataFetcherProtocol | None = None,
        registry: OperatorRegistry | None = None,
    ) -> DetectionPipelineRunner:
        """Wire registry, executor and aggregator from settings.

        A registry passed in is used as-is; otherwise built-in operators
        (and entry point plugins, when enabled) are registered.
        """
        if registry is None:
            registry = OperatorRegistry()
            registry.register_builtin_operators()
            if settings.engine.load_entrypoint_plugins:
                registry.load_entrypoint_plugins()
        executor = PlanExecutor(
            registry,
            OperatorResources(data_fetcher=data_fetcher),
            variant_max_workers=settings.engine.variant_max_workers,
        )
        return cls(executor, data_fetcher=data_fetcher)

    def run(
        self,
        alert: Alert,
        start: int,
        end: int,
        *,
        cancel_event: threading.Event | None = None,
    ) -> DetectionPipelineResult | LegacyPipelineResult:
        """Run one alert over [start, end).

        Returns:
            DetectionPipelineResult with run metadata for plan alerts,
            LegacyPipelineResult for flat legacy alerts

        Raises:
            AugurError: Any validation, execution or aggregation failure
        """
        run_id = uuid.uuid4().hex
        with structlog.contextvars.bound_contextvars(run_id=run_id, alert_id=alert.id):
            try:
                if is_plan_alert(alert):
                    return self._run_plan(alert, start, end, run_id=run_id, cancel_event=cancel_event)
                return self._run_legacy(alert, start, end)
            except AugurError as e:
                logger.error("Alert run failed", alert_name=alert.name, error=str(e), error_type=type(e).__name__)
                raise

    def _run_plan(
        self,
        alert: Alert,
        start: int,
        end: int,
        *,
        run_id: str,
        cancel_event: threading.Event | None,
    ) -> DetectionPipelineResult:
        template = alert.template
        if template is None:
            raise ValueError(f"Alert '{alert.name}' has no template; it runs on the legacy path")
        interval = DetectionInterval(start, end)
        properties = merge_properties(template.properties, alert.template_properties)
        nodes = render_template_properties(template.nodes, properties)
        logger.info("Running plan alert", alert_name=alert.name, nodes=len(nodes), start=start, end=end)

        graph = self._executor.build_graph(nodes)
        state = self._executor.execute(graph, interval, cancel_event=cancel_event)
        return self._aggregator.aggregate(
            state.terminal_outputs(),
            empty_terminals=state.empty_fan_out_terminals(),
            metadata=RunMetadata(run_id=run_id, alert_id=alert.id, alert_name=alert.name, interval=interval),
        )

    def _run_legacy(self, alert: Alert, start: int, end: int) -> LegacyPipelineResult:
        if self._data_fetcher is None:
            raise MissingDataFetcherError(f"Legacy alert '{alert.name}' needs a data fetcher but the runner has none configured")
        logger.info("Running legacy alert", alert_name=alert.name, start=start, end=end)
        return LegacyDetectionPipeline.from_alert(alert, self._data_fetcher).run(start, end)
